"""
Textual Application - Guest order form
======================================

Terminal rendition of the guest order page: an OPEN/CLOSED pill, a name
field, a drink picker and a send button. Started with the host fragment,
it also shows the open/close toggle for this device.
"""

from typing import Optional

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Input, Label, Select, Static

from core.config import Config, load_config
from core.database import init_store
from core.logging import get_logger
from services.order_client import (
    STATUS_CLOSED_BANNER,
    STATUS_SENDING,
    BarState,
    OrderClient,
    SubmissionResult,
    is_host_mode,
)

logger = get_logger("tui.app")


class OrderFormApp(App):
    """
    Guest order form.

    Ordering controls are disabled while the bar is closed on this device.
    """

    CSS = """
    Screen {
        background: $surface;
        align: center top;
    }

    #form {
        width: 60;
        height: auto;
        padding: 1 2;
        border: solid $primary;
    }

    #open-pill {
        width: auto;
        padding: 0 1;
        background: $success;
        color: $text;
        text-style: bold;
    }

    #open-pill.closed {
        background: $error;
    }

    #status {
        margin: 1 0 0 0;
        color: $text-muted;
    }

    #host-controls {
        height: auto;
        margin: 1 0 0 0;
    }

    Input, Select {
        margin: 0 0 1 0;
        width: 100%;
    }

    Label {
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+s", "send", "Send order"),
    ]

    def __init__(
        self,
        config: Optional[Config] = None,
        client: Optional[OrderClient] = None,
        fragment: str = ""
    ):
        super().__init__()
        self.status_message = ""

        self.config = config or load_config()

        if client is None:
            store = init_store(str(self.config.client_state_path()))
            bar_state = BarState(store, self.config.client.bar_open_default)
            client = OrderClient(self.config.client, bar_state)

        self.client = client
        self.host_mode = is_host_mode(fragment, self.config.client.host_pin)

    def compose(self) -> ComposeResult:
        yield Header()

        with Vertical(id="form"):
            yield Static("OPEN", id="open-pill")
            yield Label("Your name")
            yield Input(placeholder="Name", max_length=40, id="guest")
            yield Label("Drink")
            yield Select(
                [(drink, drink) for drink in self.config.client.drinks],
                prompt="Pick a drink",
                id="drink"
            )
            yield Button("Send order", id="send", variant="primary")
            yield Static("", id="status")

            with Horizontal(id="host-controls"):
                yield Button("Close bar", id="toggle-open", variant="default")

        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#host-controls").display = self.host_mode
        self.render_bar_state()

    def set_status(self, message: str) -> None:
        self.status_message = message
        self.query_one("#status", Static).update(message)

    def render_bar_state(self) -> None:
        """Sync pill, controls and status line with the bar flag."""
        is_open = self.client.bar_state.is_open()

        pill = self.query_one("#open-pill", Static)
        pill.update("OPEN" if is_open else "CLOSED")
        pill.set_class(not is_open, "closed")

        for selector in ("#guest", "#drink", "#send"):
            self.query_one(selector).disabled = not is_open

        self.query_one("#toggle-open", Button).label = "Close bar" if is_open else "Open bar"
        self.set_status("" if is_open else STATUS_CLOSED_BANNER)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send":
            self.action_send()
        elif event.button.id == "toggle-open" and self.host_mode:
            self.client.bar_state.toggle()
            self.render_bar_state()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.action_send()

    def action_send(self) -> None:
        guest = self.query_one("#guest", Input).value
        value = self.query_one("#drink", Select).value
        drink = value if isinstance(value, str) else ""

        self.set_status(STATUS_SENDING)
        self.send_order(guest, drink)

    @work(thread=True, exclusive=True)
    def send_order(self, guest: str, drink: str) -> None:
        result = self.client.submit(guest, drink)
        self.call_from_thread(self.show_result, result)

    def show_result(self, result: SubmissionResult) -> None:
        self.set_status(result.message)
        if result.reset_form:
            self.query_one("#guest", Input).value = ""
            self.query_one("#drink", Select).clear()


def run_tui(config: Optional[Config] = None, fragment: str = "") -> None:
    app = OrderFormApp(config=config, fragment=fragment)
    app.run()


if __name__ == "__main__":
    run_tui()
