"""
Hook Forwarder - Delivers orders through the automation gateway
===============================================================

The relay never talks to a messaging service directly. It asks the
gateway's agent hook to run one agent turn whose only job is to deliver
a fixed message on a chat channel.

The agent hook is used rather than the wake hook: wake would only enqueue
a system event in the gateway's main session and nothing would be sent.
"""

import time
from typing import Any, Callable, Dict, Optional

import httpx

from core.config import DeliveryConfig, GatewayHooks
from core.exceptions import ForwardError
from core.logging import get_logger
from .models import Order

logger = get_logger("services.forwarder")


class HookForwarder:
    """
    Forwards cleaned orders to the gateway's agent hook.

    A fresh ``httpx.AsyncClient`` is opened per forward, so a slow hook only
    suspends the request that is waiting on it. There are no retries: the
    first failure is reported back to the caller.

    Example:
        forwarder = HookForwarder(load_gateway_hooks(path), DeliveryConfig())
        await forwarder.forward(Order(guest="Ada", drink="Martini"))
    """

    def __init__(
        self,
        hooks: GatewayHooks,
        delivery: Optional[DeliveryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the forwarder.

        Args:
            hooks: Gateway hook URLs and bearer token
            delivery: Channel, destination and agent hints
            transport: Optional httpx transport (tests pass a MockTransport)
            clock: Time source for session keys, defaults to ``time.time``
        """
        self.hooks = hooks
        self.delivery = delivery or DeliveryConfig()
        self._transport = transport
        self._clock = clock or time.time

    @property
    def target_url(self) -> str:
        return self.hooks.agent_url

    def build_message(self, guest: str, drink: str) -> str:
        """Instruction handed to the agent, delivered verbatim to the host."""
        return "\n".join([
            f"Send a WhatsApp message to {self.delivery.recipient_name} "
            "with this exact content (no extra commentary):",
            "",
            self.delivery.order_title,
            f"- Guest: {guest}",
            f"- Drink: {drink}",
        ])

    def build_payload(self, guest: str, drink: str) -> Dict[str, Any]:
        """JSON envelope for the agent hook."""
        return {
            "message": self.build_message(guest, drink),
            "name": self.delivery.hook_name,
            "sessionKey": f"{self.delivery.session_prefix}:{int(self._clock() * 1000)}",
            "wakeMode": self.delivery.wake_mode,
            "deliver": True,
            "channel": self.delivery.channel,
            "to": self.delivery.to,
            "thinking": self.delivery.thinking,
            "timeoutSeconds": self.delivery.timeout_seconds,
        }

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.hooks.token}",
        }

    async def forward(self, order: Order) -> None:
        """
        Send one order to the agent hook.

        Args:
            order: Cleaned order

        Raises:
            ForwardError: On a non-2xx answer or a transport failure
        """
        payload = self.build_payload(order.guest, order.drink)

        try:
            async with httpx.AsyncClient(
                timeout=self.delivery.http_timeout,
                transport=self._transport
            ) as client:
                response = await client.post(
                    self.hooks.agent_url,
                    json=payload,
                    headers=self._build_headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"Agent hook unreachable: {e}")
            raise ForwardError(
                f"Agent hook unreachable: {e}",
                details={"url": self.hooks.agent_url}
            )

        if not (response.status_code == 202 or response.is_success):
            text = response.text
            logger.warning(
                f"Agent hook answered {response.status_code}",
                extra={"body": text[:200]}
            )
            raise ForwardError(f"Agent hook failed ({response.status_code}): {text}")

        logger.debug(f"Agent hook accepted order ({response.status_code})")
