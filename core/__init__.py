"""
Core Module - Foundation components for Bar Order Relay
=======================================================

This module provides the foundational components including:
- Configuration management
- Per-device local storage
- Logging setup and structured events
- Exception handling
- Rate limiting
- Security utilities
"""

from .config import Config, GatewayHooks, load_config, load_gateway_hooks, save_config
from .database import LocalStore, init_store
from .exceptions import (
    RelayError,
    ConfigError,
    RateLimitError,
    AuthError,
    ValidationError,
    PayloadTooLargeError,
    InvalidPayloadError,
    ForwardError,
    ClientError,
)
from .logging import setup_logging, get_logger, log_event
from .rate_limiter import RateLimiter, RateLimitResult, RateWindow
from .security import tokens_match, clean_field, normalize_address

__all__ = [
    "Config",
    "GatewayHooks",
    "load_config",
    "load_gateway_hooks",
    "save_config",
    "LocalStore",
    "init_store",
    "RelayError",
    "ConfigError",
    "RateLimitError",
    "AuthError",
    "ValidationError",
    "PayloadTooLargeError",
    "InvalidPayloadError",
    "ForwardError",
    "ClientError",
    "setup_logging",
    "get_logger",
    "log_event",
    "RateLimiter",
    "RateLimitResult",
    "RateWindow",
    "tokens_match",
    "clean_field",
    "normalize_address",
]
