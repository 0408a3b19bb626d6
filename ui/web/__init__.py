"""
Web Module - FastAPI-based relay server
=======================================

This module exposes the relay over HTTP:
- Health checks on the mount paths
- Order intake with token and rate limit checks
- CORS preflight handling
"""

from .app import create_app, run_app
from .routes import build_router

__all__ = [
    "create_app",
    "run_app",
    "build_router",
]
