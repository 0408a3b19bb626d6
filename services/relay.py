"""
Order Relay - Validation pipeline between guests and the agent hook
===================================================================

Each POSTed order goes through these steps, stopping at the first failure:

1. Rate limit, keyed by caller address
2. Shared token check
3. Body read (size ceiling) and JSON parse
4. Field cleaning and required-field check
5. Forward to the agent hook

Every step but the last raises a :class:`~core.exceptions.RelayError`
subclass; the HTTP layer turns those into JSON responses.
"""

import json
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from core.config import Config
from core.exceptions import (
    AuthError,
    ForwardError,
    InvalidPayloadError,
    PayloadTooLargeError,
    RateLimitError,
    ValidationError,
)
from core.logging import get_logger, log_event
from core.rate_limiter import RateLimiter
from core.security import clean_field, normalize_address, tokens_match
from .forwarder import HookForwarder
from .models import DRINK_MAX_LENGTH, GUEST_MAX_LENGTH, Order

logger = get_logger("services.relay")

SOURCE_URL_MAX_LENGTH = 2048
TIMESTAMP_MAX_LENGTH = 64


async def read_limited_body(
    chunks: AsyncIterator[bytes],
    limit: int,
    content_length: Optional[str] = None
) -> bytes:
    """
    Collect a request body, refusing anything larger than ``limit`` bytes.

    A declared Content-Length over the limit is refused before reading.

    Raises:
        PayloadTooLargeError: If the body exceeds the limit
    """
    if content_length and content_length.isdigit() and int(content_length) > limit:
        raise PayloadTooLargeError("payload too large", {"limit": limit})

    body = bytearray()
    async for chunk in chunks:
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError("payload too large", {"limit": limit})
    return bytes(body)


class OrderRelay:
    """
    Authenticates, validates and forwards guest orders.

    The relay holds no order state. The only shared mutable state is the
    rate limiter's address table.

    Example:
        relay = OrderRelay(config, forwarder)
        await relay.handle("203.0.113.9", "/bar-orders", token, read_body)
    """

    def __init__(
        self,
        config: Config,
        forwarder: HookForwarder,
        rate_limiter: Optional[RateLimiter] = None
    ):
        """
        Initialize the relay.

        Args:
            config: Application configuration (shared token must be set)
            forwarder: Agent hook forwarder
            rate_limiter: Optional pre-built limiter

        Raises:
            ConfigError: If no shared token is configured
        """
        self.config = config
        self.order_token = config.relay.require_token()
        self.forwarder = forwarder
        self.rate_limiter = rate_limiter or RateLimiter(
            window_seconds=config.rate_limit.window_seconds,
            max_requests=config.rate_limit.max_requests,
            max_tracked_addresses=config.rate_limit.max_tracked_addresses
        )

    async def handle(
        self,
        address: Optional[str],
        url: str,
        token: Optional[str],
        read_body: Callable[[], Awaitable[bytes]]
    ) -> Dict[str, Any]:
        """
        Run one order through the pipeline.

        Args:
            address: Caller network address
            url: Request path, for event lines
            token: Value of the ``x-order-token`` header
            read_body: Coroutine factory returning the raw body

        Returns:
            ``{"ok": True}`` once the hook accepted the order

        Raises:
            RelayError: Subclass describing the first failed step
        """
        ip = normalize_address(address)

        limit = self.rate_limiter.check_and_record(ip)
        if not limit.allowed:
            log_event("rate_limited", ip=ip, url=url)
            raise RateLimitError("Too many orders from this address", retry_after=limit.retry_after)

        if not tokens_match(token, self.order_token):
            log_event("unauthorized", ip=ip, url=url)
            raise AuthError("Missing or invalid order token")

        raw = await read_body()
        data = self.parse_body(raw)

        try:
            order = self.build_order(data)
        except ValidationError:
            log_event("bad_request", ip=ip, url=url, error="missing_fields")
            raise

        log_event("order_received", ip=ip, url=url, guest=order.guest, drink=order.drink)

        try:
            await self.forwarder.forward(order)
        except ForwardError as e:
            log_event("forward_failed", ip=ip, url=url, guest=order.guest, drink=order.drink, error=e.message)
            raise

        log_event("order_forwarded", ip=ip, guest=order.guest, drink=order.drink)
        return {"ok": True}

    @staticmethod
    def parse_body(raw: bytes) -> Dict[str, Any]:
        """
        Decode a JSON object body. An empty body counts as ``{}``.

        Raises:
            InvalidPayloadError: If the body is not a UTF-8 JSON object
        """
        if not raw:
            return {}

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidPayloadError(f"Request body is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise InvalidPayloadError("Request body must be a JSON object")

        return data

    @staticmethod
    def build_order(data: Dict[str, Any]) -> Order:
        """
        Clean the guest fields and build an :class:`Order`.

        Unknown fields are ignored.

        Raises:
            ValidationError: If guest or drink is empty after cleaning
        """
        guest = clean_field(data.get("guest"), GUEST_MAX_LENGTH)
        drink = clean_field(data.get("drink"), DRINK_MAX_LENGTH)

        if not guest or not drink:
            raise ValidationError("guest and drink are required", {"guest": bool(guest), "drink": bool(drink)})

        return Order.from_dict({
            "guest": guest,
            "drink": drink,
            "sourceUrl": clean_field(data.get("sourceUrl"), SOURCE_URL_MAX_LENGTH),
            "timestamp": clean_field(data.get("timestamp"), TIMESTAMP_MAX_LENGTH),
        })
