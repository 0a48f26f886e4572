#!/usr/bin/env python3
"""
Simple Bot - Main Entry Point
=============================

Command-line interface for running the bot.

Usage:
    python main.py                     # Serve relay events (same as --bridge)
    python main.py --console           # Chat with the bot on the terminal
    python main.py --check             # Validate settings and actions
    python main.py --test "hello"      # Evaluate one message
    python main.py --setup             # Write a starter settings file
"""

import io
import sys
import argparse
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.config import Settings, load_settings, create_default_settings
from core.logging import setup_logging, get_logger
from core.exceptions import BotError
from rules.engine import Message, Sender, TargetContext

logger = get_logger("main")


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Simple Bot - rule based chat responder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --settings bot/settings.yaml   Serve relay events
  python main.py --console                      Chat on the terminal
  python main.py --test "hello" client          Evaluate a private message
  python main.py --check                        Validate settings and actions
        """
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--bridge",
        action="store_true",
        help="Serve events from the relay (default)"
    )
    mode_group.add_argument(
        "--console",
        action="store_true",
        help="Read messages from stdin and print replies"
    )
    mode_group.add_argument(
        "--check",
        action="store_true",
        help="Load settings and actions, then print a summary"
    )
    mode_group.add_argument(
        "--test",
        nargs="+",
        metavar=("MESSAGE", "CONTEXT"),
        help="Evaluate one message (context: server, channel, client or poke)"
    )
    mode_group.add_argument(
        "--setup",
        action="store_true",
        help="Write a starter settings file"
    )

    parser.add_argument(
        "-s", "--settings",
        type=str,
        metavar="PATH",
        help="Path of the settings file"
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Address for the relay endpoint (default: from settings)"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port for the relay endpoint (default: from settings)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def run_check(settings: Settings) -> None:
    """Load all actions and print what was found."""
    from services.bot import build_state
    from rules.listing import render_page

    state = build_state(settings)

    print(f"\nSettings: {settings.settings_path}")
    print(f"  Address: {settings.address}")
    print(f"  Name: {settings.name}")
    print(f"  Prefix: {settings.prefix}")
    print(f"  Rate limit: {settings.rate_limit} per {settings.rate_limit_window}s")
    print(f"  Dynamic actions: {settings.dynamic_actions_path}")
    print(f"\nActions: {len(state.rules)}")
    print(render_page(list(state.pages), 1))


def run_test_message(settings: Settings, text: str, context: str = "channel") -> None:
    """Evaluate one message without connecting anywhere."""
    from services.bot import ChatBot
    from services.transport import ConsoleTransport

    transport = ConsoleTransport(input_stream=io.StringIO())
    transport.connect(settings)
    bot = ChatBot(settings, transport)

    target = TargetContext.parse(context)
    message = Message(target, Sender(ConsoleTransport.USER_CLIENT_ID, transport.user_name), text)
    reply = bot.state.rules.handle(bot, message)

    print(f"\nTest Message: {text}")
    print(f"Context: {target.label}")
    print("-" * 50)
    print(reply if reply is not None else "(no reply)")


def run_console(settings: Settings) -> None:
    """Chat with the bot on the terminal."""
    from services.bot import ChatBot
    from services.transport import ConsoleTransport

    transport = ConsoleTransport()
    bot = ChatBot(settings, transport)
    transport.connect(settings)
    transport.listen(bot)

    print(f"Talking to {settings.name}. Prefix lines with 'poke:' or 'client:' to change the target.")
    try:
        bot.run()
    finally:
        bot.shutdown()


def run_bridge(settings: Settings, host: str, port: int, debug: bool) -> None:
    """Serve relay events."""
    from ui.web.app import run_bridge as serve

    serve(settings, host=host, port=port, debug=debug)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        if args.setup:
            directory = str(Path(args.settings).parent) if args.settings else None
            settings = create_default_settings(directory)
            print(f"Wrote {settings.settings_path}")
            return 0

        settings = load_settings(args.settings)

        setup_logging(
            log_dir=str(settings.resolve_path(settings.logging.log_dir)) if settings.logging.log_dir else None,
            log_level="DEBUG" if args.verbose else settings.logging.level,
            json_format=settings.logging.json_format,
            console_output=True
        )

        if args.check:
            run_check(settings)
        elif args.test:
            context = args.test[1] if len(args.test) > 1 else "channel"
            run_test_message(settings, args.test[0], context)
        elif args.console:
            run_console(settings)
        else:
            run_bridge(settings, args.host, args.port, args.verbose)

        return 0

    except BotError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
