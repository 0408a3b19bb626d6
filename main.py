#!/usr/bin/env python3
"""
Bar Order Relay - Main Entry Point
==================================

Command-line interface for running the relay and for placing orders
from a terminal.

Usage:
    python main.py --serve                 # Run the relay
    python main.py --order "Ada" "Martini" # Submit one order
    python main.py --tui                   # Guest order form
    python main.py --bar toggle            # Flip this device's bar flag
    python main.py --status                # Check the relay is reachable
    python main.py --init                  # Write a default config file
    python main.py --help                  # Show help
"""

import os
import sys
import argparse
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.config import Config, load_config, save_config
from core.database import init_store
from core.exceptions import RelayError
from core.logging import setup_logging, get_logger
from core.security import mask_token

logger = get_logger("main")


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Bar Order Relay - guest drink orders to a chat message",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ORDER_PUBLIC_TOKEN=... python main.py --serve
  python main.py --serve --port 9000
  python main.py --order "Ada" "Martini"
  python main.py --tui --fragment "#host-science"
  python main.py --bar closed
  python main.py --status
        """
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--serve",
        action="store_true",
        help="Run the order relay"
    )
    mode_group.add_argument(
        "--order",
        nargs=2,
        metavar=("GUEST", "DRINK"),
        help="Submit one order as a guest"
    )
    mode_group.add_argument(
        "--tui",
        action="store_true",
        help="Start the terminal order form"
    )
    mode_group.add_argument(
        "--bar",
        choices=["open", "closed", "toggle", "reset"],
        help="Set this device's bar open/closed flag"
    )
    mode_group.add_argument(
        "--init",
        action="store_true",
        help="Write a default config.yaml to the config directory"
    )
    mode_group.add_argument(
        "--status",
        action="store_true",
        help="Check configuration and relay reachability"
    )

    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Bind address for --serve (default: ORDER_RELAY_BIND or 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port for --serve (default: ORDER_RELAY_PORT or 8800)"
    )
    parser.add_argument(
        "--fragment",
        type=str,
        default="",
        help="URL fragment for --tui, e.g. '#host-<pin>' to show host controls"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )

    return parser.parse_args(argv)


def build_client(config: Config):
    """Order client wired to this device's local store."""
    from services.order_client import BarState, OrderClient

    store = init_store(str(config.client_state_path()))
    return OrderClient(config.client, BarState(store, config.client.bar_open_default))


def run_serve(config: Config, host, port, debug: bool) -> None:
    """Run the relay server."""
    from ui.web.app import run_app

    run_app(host=host, port=port, debug=debug, config=config)


def run_order(config: Config, guest: str, drink: str) -> int:
    """Submit one order and print the status line."""
    client = build_client(config)
    result = client.submit(guest, drink)
    print(result.message)
    return 0 if result.outcome in ("sent", "fallback") else 1


def run_bar(config: Config, action: str) -> None:
    """Set or flip this device's bar flag."""
    client = build_client(config)
    if action == "toggle":
        is_open = client.bar_state.toggle()
    elif action == "reset":
        is_open = client.bar_state.reset()
    else:
        is_open = action == "open"
        client.bar_state.set_open(is_open)
    print(f"Bar is {'OPEN' if is_open else 'CLOSED'} on this device")


def run_status_check(config: Config) -> None:
    """Check and display configuration and relay reachability."""
    import httpx
    from core.config import load_gateway_hooks

    print("\n" + "=" * 50)
    print("Bar Order Relay - Status")
    print("=" * 50 + "\n")

    print("Relay")
    print("-" * 30)
    print(f"  Bind: {config.relay.host}:{config.relay.port}")
    print(f"  Paths: {', '.join(config.relay.order_paths)}")
    token = config.relay.order_token.strip()
    print(f"  Order token: {'✓ ' + mask_token(token) if token else '✗ Not Set'}")
    try:
        hooks = load_gateway_hooks(config.relay.gateway_config_path)
        print(f"  Agent hook: ✓ {hooks.agent_url}")
        print(f"  Wake hook (unused): {hooks.wake_url}")
    except RelayError as e:
        print(f"  Agent hook: ✗ {e}")

    print("\nClient")
    print("-" * 30)
    client = build_client(config)
    print(f"  Bar: {'OPEN' if client.bar_state.is_open() else 'CLOSED'}")
    if client.endpoint:
        print(f"  Endpoint: {client.endpoint}")
        try:
            body = client.check_health()
            print(f"  Reachable: ✓ {body.get('service', '')}")
        except httpx.HTTPError as e:
            print(f"  Reachable: ✗ {e}")
    else:
        print("  Endpoint: not set (orders open the SMS composer)")

    print("\n" + "=" * 50 + "\n")


def run_init(config: Config, config_path=None) -> None:
    """Write the current configuration as a starting config file."""
    target = Path(config_path) if config_path else Path(config.config_dir) / "config.yaml"
    if target.exists():
        print(f"Config already exists: {target}")
        return

    save_config(config, str(target))
    print(f"✓ Wrote {target}")
    print("  The order token is not stored there; set ORDER_PUBLIC_TOKEN in the environment or .env")


def run_terminal_ui(config: Config, fragment: str) -> None:
    """Run the terminal order form."""
    from ui.terminal.app import run_tui

    run_tui(config=config, fragment=fragment)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        if args.init:
            # --config names the file to create, not one to read
            run_init(load_config(), args.config)
            return 0

        config = load_config(args.config)

        if args.debug:
            config.debug = True

        setup_logging(
            log_dir=os.environ.get("BAR_ORDER_LOG_DIR"),
            log_level="DEBUG" if args.debug else "INFO",
            console_output=not args.tui
        )

        if args.serve:
            run_serve(config, args.host, args.port, args.debug)
        elif args.order:
            return run_order(config, args.order[0], args.order[1])
        elif args.tui:
            run_terminal_ui(config, args.fragment)
        elif args.bar:
            run_bar(config, args.bar)
        else:
            run_status_check(config)
            if not args.status:
                print("No mode specified. Use --serve, --order, --tui, --bar, --init or --help")

        return 0

    except RelayError as e:
        logger.error(str(e))
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 0
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=args.debug)
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
