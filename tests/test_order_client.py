"""
Test Order Client
=================

Unit tests for the guest client: bar state, host mode, submission and
the SMS fallback.
"""

import json
import pytest
from pathlib import Path
from unittest.mock import MagicMock

import httpx

# Add parent directory to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import ClientConfig
from core.database import LocalStore
from services.models import Order
from services.order_client import (
    STATUS_CLOSED,
    STATUS_FALLBACK,
    STATUS_MISSING_FIELDS,
    STATUS_NETWORK,
    STATUS_TIMEOUT,
    BarState,
    OrderClient,
    is_host_mode,
)


ENDPOINT = "https://relay.example/bar-orders"


@pytest.fixture
def store(tmp_path):
    local_store = LocalStore(str(tmp_path / "client.db"))
    yield local_store
    local_store.close()


def make_client(store, handler=None, endpoint=ENDPOINT, token="party-token", is_open=True):
    calls = []

    def record(request):
        calls.append(request)
        if handler is None:
            return httpx.Response(200, json={"ok": True})
        return handler(request)

    bar_state = BarState(store, default_open=is_open)
    opener = MagicMock()
    client = OrderClient(
        ClientConfig(endpoint=endpoint, token=token),
        bar_state,
        sms_opener=opener,
        transport=httpx.MockTransport(record)
    )
    return client, calls, opener


class TestOrder:
    """Tests for the Order wire form."""

    def test_from_dict_defaults(self):
        order = Order.from_dict({"guest": "Ada", "drink": "Martini"})

        assert order.source_url == ""
        assert order.timestamp.endswith("Z")

    def test_from_dict_keeps_wire_fields(self):
        order = Order.from_dict({
            "guest": "Ada",
            "drink": "Martini",
            "sourceUrl": "https://the-scientists.local/",
            "timestamp": "2026-10-19T20:00:00.000Z",
        })

        assert order.source_url == "https://the-scientists.local/"
        assert order.timestamp == "2026-10-19T20:00:00.000Z"


class TestBarState:
    """Tests for BarState."""

    def test_default_open(self, store):
        assert BarState(store, default_open=True).is_open() is True

    def test_default_closed(self, store):
        assert BarState(store, default_open=False).is_open() is False

    def test_toggle_persists(self, store, tmp_path):
        """The flag survives reopening the store."""
        state = BarState(store, default_open=True)
        assert state.toggle() is False

        reopened = BarState(LocalStore(str(tmp_path / "client.db")), default_open=True)
        assert reopened.is_open() is False

    def test_reset_restores_default(self, store):
        state = BarState(store, default_open=True)
        state.set_open(False)

        assert state.reset() is True
        assert store.get(BarState.STORAGE_KEY) is None

    def test_string_value_accepted(self, store):
        store.set(BarState.STORAGE_KEY, "true")
        assert BarState(store, default_open=False).is_open() is True


class TestHostMode:
    """Tests for is_host_mode."""

    @pytest.mark.parametrize("fragment", [
        "#host-science",
        "#HOST-Science",
        "host-science",
        "  #host-science ",
        "https://the-scientists.local/#host-science",
        "%23host-science",
    ])
    def test_unlocked(self, fragment):
        assert is_host_mode(fragment, "science") is True

    @pytest.mark.parametrize("fragment", ["", None, "#host-", "#host-art", "#science"])
    def test_locked(self, fragment):
        assert is_host_mode(fragment, "science") is False

    def test_empty_pin_disables(self):
        assert is_host_mode("#host-", "") is False


class TestOrderClient:
    """Tests for OrderClient.submit."""

    def test_closed_makes_no_request(self, store):
        client, calls, opener = make_client(store, is_open=False)

        result = client.submit("Ada", "Martini")

        assert result.outcome == "closed"
        assert result.message == STATUS_CLOSED
        assert calls == []
        opener.assert_not_called()

    def test_missing_fields(self, store):
        client, calls, opener = make_client(store)

        result = client.submit("  ", "Martini")

        assert result.message == STATUS_MISSING_FIELDS
        assert calls == []

    def test_success(self, store):
        """The order is posted with the token and confirmed."""
        client, calls, opener = make_client(store)

        result = client.submit(" Ada ", "Martini")

        assert result.outcome == "sent"
        assert result.reset_form is True
        assert "Ada" in result.message
        assert "Martini" in result.message

        request = calls[0]
        assert str(request.url) == ENDPOINT
        assert request.headers["x-order-token"] == "party-token"
        body = json.loads(request.content)
        assert body["guest"] == "Ada"
        assert body["drink"] == "Martini"
        assert body["sourceUrl"] == "https://the-scientists.local/"
        assert body["timestamp"].endswith("Z")

    def test_request_timeout_is_eight_seconds(self, store):
        client, calls, opener = make_client(store)

        client.submit("Ada", "Martini")

        timeout = calls[0].extensions["timeout"]
        assert timeout["connect"] == 8.0
        assert timeout["read"] == 8.0

    def test_posted_body_reads_back_as_order(self, store):
        client, calls, opener = make_client(store)

        result = client.submit("Ada", "Martini")

        assert Order.from_dict(json.loads(calls[0].content)) == result.order

    def test_no_token_header_when_unset(self, store):
        client, calls, opener = make_client(store, token="")
        client.submit("Ada", "Martini")
        assert "x-order-token" not in calls[0].headers

    def test_error_status(self, store):
        client, calls, opener = make_client(
            store, handler=lambda r: httpx.Response(401, json={"ok": False, "error": "unauthorized"})
        )

        result = client.submit("Ada", "Martini")

        assert result.outcome == "error"
        assert result.message.startswith("Order failed (401).")
        assert "unauthorized" in result.message
        assert result.reset_form is False

    def test_timeout(self, store):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, calls, opener = make_client(store, handler=handler)

        result = client.submit("Ada", "Martini")

        assert result.outcome == "timeout"
        assert result.message == STATUS_TIMEOUT

    def test_network_error(self, store):
        def handler(request):
            raise httpx.ConnectError("no route to host", request=request)

        client, calls, opener = make_client(store, handler=handler)

        result = client.submit("Ada", "Martini")

        assert result.outcome == "network"
        assert result.message == STATUS_NETWORK

    def test_sms_fallback(self, store):
        """Without an endpoint the SMS composer opens exactly once."""
        client, calls, opener = make_client(store, endpoint="")

        result = client.submit("Ada", "Martini")

        assert result.outcome == "fallback"
        assert result.message == STATUS_FALLBACK
        assert calls == []
        opener.assert_called_once_with(
            "sms:?&body=the%20scientists%20order%3A%20Ada%20%E2%80%94%20Martini"
        )

    def test_fallback_uri_encodes(self):
        uri = OrderClient.fallback_uri(Order(guest="Zoë & Co", drink="Gin & Tonic"))
        assert uri.startswith("sms:?&body=")
        assert "&" not in uri[len("sms:?&body="):]

    def test_check_health(self, store):
        client, calls, opener = make_client(
            store, handler=lambda r: httpx.Response(200, json={"ok": True, "service": "relay"})
        )

        assert client.check_health() == {"ok": True, "service": "relay"}
        assert calls[0].method == "GET"
