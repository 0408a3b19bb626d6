"""
FastAPI Application - Relay server setup
========================================

This module creates and configures the relay's FastAPI application:
startup checks, CORS headers, error mapping and routes.
"""

import math
from typing import Optional

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from core.config import Config, load_config, load_gateway_hooks
from core.exceptions import RateLimitError, RelayError
from core.logging import setup_logging, get_logger
from core.rate_limiter import RateLimiter
from services.forwarder import HookForwarder
from services.relay import OrderRelay
from .routes import RelayJSONResponse, build_router

logger = get_logger("web.app")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "content-type, x-order-token",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def create_app(
    config: Optional[Config] = None,
    forwarder: Optional[HookForwarder] = None,
    rate_limiter: Optional[RateLimiter] = None,
    debug: bool = False
) -> FastAPI:
    """
    Create and configure the relay application.

    Startup is all-or-nothing: a missing shared token or an unusable
    gateway hook file raises before the app exists.

    Args:
        config: Application configuration
        forwarder: Pre-built forwarder (tests inject one)
        rate_limiter: Pre-built rate limiter (tests inject one)
        debug: Enable debug mode

    Returns:
        Configured FastAPI application

    Raises:
        ConfigError: If the token or the gateway hooks are missing
    """
    if config is None:
        config = load_config()

    config.relay.require_token()

    if forwarder is None:
        hooks = load_gateway_hooks(config.relay.gateway_config_path)
        forwarder = HookForwarder(hooks, config.delivery)

    relay = OrderRelay(config, forwarder, rate_limiter)

    app = FastAPI(
        title="Bar Order Relay",
        version=config.version,
        debug=debug or config.debug,
        redirect_slashes=False,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response

    app.state.config = config
    app.state.relay = relay
    app.state.forwarder = forwarder

    app.include_router(build_router(config.relay))

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        headers = None
        if isinstance(exc, RateLimitError) and exc.retry_after > 0:
            headers = {"Retry-After": str(math.ceil(exc.retry_after))}
        if exc.status_code >= 500:
            logger.error(f"Order failed on {request.url.path}: {exc}")
        return RelayJSONResponse(status_code=exc.status_code, content=exc.to_response(), headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and wrong methods both look like a missing route
        if exc.status_code in (404, 405):
            return RelayJSONResponse(status_code=404, content={"ok": False, "error": "not_found"})
        return RelayJSONResponse(status_code=exc.status_code, content={"ok": False, "error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return RelayJSONResponse(
            status_code=500,
            content={"ok": False, "error": "server_error"},
            headers=CORS_HEADERS,
        )

    logger.info("Relay application created")

    return app


def run_app(
    host: Optional[str] = None,
    port: Optional[int] = None,
    debug: bool = False,
    config: Optional[Config] = None
) -> None:
    """
    Run the relay server.

    Args:
        host: Host address to bind (defaults to config)
        port: Port to listen on (defaults to config)
        debug: Enable debug mode
        config: Application configuration
    """
    if config is None:
        config = load_config()

    setup_logging(
        log_level="DEBUG" if debug else "INFO",
        console_output=True
    )

    app = create_app(config=config, debug=debug)

    host = host or config.relay.host
    port = port or config.relay.port
    mounts = "|".join(p.lstrip("/") for p in config.relay.order_paths if p != "/")

    logger.info(f"order relay listening on http://{host}:{port}/({mounts})")
    logger.info(f"forwarding to agent hook: {app.state.forwarder.target_url}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="debug" if debug else "info",
        access_log=debug
    )
