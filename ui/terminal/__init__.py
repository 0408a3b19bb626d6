"""
Terminal UI Module - Textual-based guest order form
===================================================

This module provides the guest order form in the terminal using Textual.
"""

from .app import OrderFormApp, run_tui

__all__ = [
    "OrderFormApp",
    "run_tui",
]
