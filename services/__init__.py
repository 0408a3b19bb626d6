"""
Services Module - Core services for Bar Order Relay
===================================================

This module provides the main services:
- Order Relay: token, rate limit and field validation pipeline
- Hook Forwarder: delivery through the automation gateway
- Order Client: guest-side submission and bar state
"""

from .models import Order
from .forwarder import HookForwarder
from .relay import OrderRelay, read_limited_body
from .order_client import OrderClient, BarState, SubmissionResult, is_host_mode

__all__ = [
    "Order",
    "HookForwarder",
    "OrderRelay",
    "read_limited_body",
    "OrderClient",
    "BarState",
    "SubmissionResult",
    "is_host_mode",
]
