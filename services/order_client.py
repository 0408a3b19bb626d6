"""
Order Client - Guest-side order submission
==========================================

This module is the guest half of the system:
- Bar open/closed flag kept in per-device storage
- Host mode unlocked by a URL fragment (a convenience, not authentication)
- Order submission to the relay with the shared token
- SMS composer fallback when no relay endpoint is configured
"""

import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote, unquote, urlsplit

import httpx

from core.config import ClientConfig
from core.database import LocalStore
from core.logging import get_logger
from .models import Order

logger = get_logger("services.order_client")


STATUS_SENDING = "Sending…"
STATUS_CLOSED = "Bar is closed."
STATUS_CLOSED_BANNER = "Bar is currently closed."
STATUS_MISSING_FIELDS = "Please enter your name and pick a drink."
STATUS_FALLBACK = "Opening message…"
STATUS_TIMEOUT = "The bar didn't answer in time. Please try again."
STATUS_NETWORK = "Couldn't reach the bar. Check your connection and try again."
STATUS_ERROR = "Something went wrong sending the order."


def confirmation_message(guest: str, drink: str) -> str:
    return f"Sent. ✅ {guest} ordered “{drink}”."


def is_host_mode(fragment: Optional[str], pin: Optional[str]) -> bool:
    """
    Check whether a URL fragment unlocks the host toggle.

    The fragment must equal ``#host-<pin>`` ignoring case, after URL
    decoding and trimming. A full URL is accepted too; only its fragment
    is compared. An empty pin disables host mode.

    Args:
        fragment: ``#host-science``, ``host-science`` or a full URL
        pin: Configured host pin

    Returns:
        True if the host toggle should be shown
    """
    pin = (pin or "").strip()
    if not pin:
        return False

    value = (fragment or "").strip()
    if "://" in value:
        value = "#" + urlsplit(value).fragment
    value = unquote(value).strip()
    if value and not value.startswith("#"):
        value = "#" + value

    return value.lower() == f"#host-{pin}".lower()


class BarState:
    """
    The per-device bar open/closed flag.

    No server holds this flag: every device has its own, defaulting to the
    configured value until a host flips it.
    """

    STORAGE_KEY = "the-scientists:barOpen"

    def __init__(self, store: LocalStore, default_open: bool = True):
        self.store = store
        self.default_open = default_open

    def is_open(self) -> bool:
        raw = self.store.get(self.STORAGE_KEY)
        if raw is None:
            return bool(self.default_open)
        return raw is True or raw == "true"

    def set_open(self, value: bool) -> None:
        self.store.set(self.STORAGE_KEY, bool(value))
        logger.info(f"Bar marked {'open' if value else 'closed'} on this device")

    def toggle(self) -> bool:
        """Flip the flag and return the new value."""
        new_value = not self.is_open()
        self.set_open(new_value)
        return new_value

    def reset(self) -> bool:
        """Forget the stored flag so the configured default applies again."""
        self.store.delete(self.STORAGE_KEY)
        return self.is_open()


@dataclass
class SubmissionResult:
    """
    Outcome of one submit attempt.

    Attributes:
        outcome (str): closed, invalid, sent, fallback, timeout, network or error
        message (str): Status line shown to the guest
        order (Order): The order that was built, if any
    """
    outcome: str
    message: str
    order: Optional[Order] = None

    @property
    def reset_form(self) -> bool:
        return self.outcome == "sent"


class OrderClient:
    """
    Submits guest orders to the relay.

    With an endpoint configured, orders are POSTed as JSON with the shared
    token and a request timeout. Without one, the device's SMS composer is
    opened with a pre-filled summary instead.

    Example:
        client = OrderClient(config.client, BarState(init_store(path)))
        result = client.submit("Ada", "Martini")
        print(result.message)
    """

    def __init__(
        self,
        config: ClientConfig,
        bar_state: BarState,
        sms_opener: Optional[Callable[[str], Any]] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration
            bar_state: Per-device bar flag
            sms_opener: Called with an ``sms:`` URI in fallback mode
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.config = config
        self.bar_state = bar_state
        self.sms_opener = sms_opener or webbrowser.open
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return (self.config.endpoint or "").strip()

    def build_order(self, guest: str, drink: str) -> Order:
        return Order(guest=guest, drink=drink, source_url=self.config.site_url)

    def build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = (self.config.token or "").strip()
        if token:
            headers["x-order-token"] = token
        return headers

    @staticmethod
    def fallback_uri(order: Order) -> str:
        """``sms:`` URI with the order summary as the message body."""
        text = f"the scientists order: {order.guest} — {order.drink}"
        return f"sms:?&body={quote(text, safe='')}"

    def submit(self, guest: str, drink: str) -> SubmissionResult:
        """
        Submit one order.

        Args:
            guest: Guest name as typed
            drink: Selected drink

        Returns:
            SubmissionResult describing what happened
        """
        if not self.bar_state.is_open():
            return SubmissionResult("closed", STATUS_CLOSED)

        guest = (guest or "").strip()
        drink = (drink or "").strip()
        if not guest or not drink:
            return SubmissionResult("invalid", STATUS_MISSING_FIELDS)

        order = self.build_order(guest, drink)

        if not self.endpoint:
            self.sms_opener(self.fallback_uri(order))
            logger.info("No order endpoint configured, opened SMS composer")
            return SubmissionResult("fallback", STATUS_FALLBACK, order)

        try:
            with httpx.Client(timeout=self.config.request_timeout, transport=self._transport) as client:
                response = client.post(self.endpoint, json=order.to_dict(), headers=self.build_headers())
        except httpx.TimeoutException:
            logger.warning(f"Order request timed out after {self.config.request_timeout}s")
            return SubmissionResult("timeout", STATUS_TIMEOUT, order)
        except httpx.TransportError as e:
            logger.warning(f"Order request failed: {e}")
            return SubmissionResult("network", STATUS_NETWORK, order)
        except httpx.HTTPError as e:
            logger.error(f"Order request error: {e}")
            return SubmissionResult("error", STATUS_ERROR, order)

        if not response.is_success:
            message = f"Order failed ({response.status_code}). {response.text}".strip()
            return SubmissionResult("error", message, order)

        logger.info(f"Order sent: {order}")
        return SubmissionResult("sent", confirmation_message(guest, drink), order)

    def check_health(self) -> Dict[str, Any]:
        """
        GET the endpoint and return its JSON body.

        Raises:
            httpx.HTTPError: If the relay cannot be reached or answers non-2xx
        """
        with httpx.Client(timeout=self.config.request_timeout, transport=self._transport) as client:
            response = client.get(self.endpoint)
            response.raise_for_status()
            return response.json()
