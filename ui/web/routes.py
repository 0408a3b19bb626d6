"""
Web Routes - Relay HTTP endpoints
=================================

Mount paths come from configuration, so routes are registered on a router
built at application start rather than with decorators.
"""

from typing import Iterable, List

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.config import RelayConfig
from core.logging import get_logger
from services.relay import read_limited_body

logger = get_logger("web.routes")


class RelayJSONResponse(JSONResponse):
    """JSON response with an explicit charset."""
    media_type = "application/json; charset=utf-8"


class Ack(BaseModel):
    """Bare success body."""
    ok: bool = True


class HealthStatus(BaseModel):
    """Health check body."""
    ok: bool = True
    service: str


def _unique(paths: Iterable[str]) -> List[str]:
    seen = []
    for path in paths:
        if path not in seen:
            seen.append(path)
    return seen


async def health(request: Request):
    """Reachability check guests can open in a browser."""
    return HealthStatus(service=request.app.state.config.relay.service_name)


async def preflight(request: Request, path: str):
    """CORS preflight. Always succeeds; headers are added by middleware."""
    return Ack()


async def submit_order(request: Request):
    """Accept one guest order and forward it."""
    relay = request.app.state.relay
    limit = request.app.state.config.relay.max_body_bytes

    return await relay.handle(
        address=request.client.host if request.client else None,
        url=request.url.path,
        token=request.headers.get("x-order-token"),
        read_body=lambda: read_limited_body(
            request.stream(),
            limit,
            request.headers.get("content-length")
        ),
    )


def build_router(relay_config: RelayConfig) -> APIRouter:
    """
    Build the relay router for the configured mount paths.

    Args:
        relay_config: Relay section of the configuration

    Returns:
        APIRouter with health, order and preflight routes
    """
    router = APIRouter(default_response_class=RelayJSONResponse)

    for path in _unique(relay_config.health_paths):
        router.add_api_route(
            path, health, methods=["GET"], response_model=HealthStatus, include_in_schema=False
        )

    for path in _unique(relay_config.order_paths):
        router.add_api_route(path, submit_order, methods=["POST"], include_in_schema=False)

    router.add_api_route(
        "/{path:path}", preflight, methods=["OPTIONS"], response_model=Ack, include_in_schema=False
    )

    logger.debug(
        "Relay routes registered",
        extra={"order_paths": relay_config.order_paths, "health_paths": relay_config.health_paths}
    )
    return router
