#!/usr/bin/env python3
"""
Idea Intake - collect feature ideas, dedupe and enrich them with an LLM.

Command-line entry point:
  - Submit an idea through the same path chat messages take
    (rate limit, duplicate check, save, enrichment)
  - Serve the moderation API

Usage:
    python main.py submit "Add a dark mode toggle"   # Submit one idea
    python main.py submit "..." --user-id 42         # Submit as a given user
    python main.py web                               # Serve the moderation API
    python main.py --show-config                     # Print configuration

Examples:
    # Local run against a scratch database
    python main.py -v submit "Export ideas to CSV from the web UI" --db /tmp/ideas.db
"""

import argparse
import dataclasses
import sys

from idea_intake.bot import ConsoleTransport, IncomingMessage, build_bot
from idea_intake.config import (
    LOG_LEVEL,
    WEB_HOST,
    WEB_PORT,
    IntakeSettings,
    print_config_summary,
    validate_config,
)
from idea_intake.logging_setup import configure_logging
from idea_intake.pipeline import build_pipeline


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="idea-intake",
        description="Collect, deduplicate and enrich feature ideas.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s submit "Add dark mode toggle"       Submit one idea
  %(prog)s submit "..." --username alice       Submit on behalf of a user
  %(prog)s web --port 9000                     Serve the moderation API
  %(prog)s --show-config                       Print configuration and exit
        """,
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging",
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    submit = subparsers.add_parser("submit", help="Submit one idea")
    submit.add_argument("text", help="Idea text (10-2000 characters)")
    submit.add_argument(
        "--user-id",
        type=int,
        default=0,
        metavar="ID",
        help="Submitter ID used for rate limiting (default: 0)",
    )
    submit.add_argument(
        "--username",
        default="cli",
        help="Submitter name passed to the enrichment prompt (default: cli)",
    )
    submit.add_argument(
        "--db",
        default=None,
        metavar="PATH",
        help="SQLite database path (default: SQLITE_PATH)",
    )

    web = subparsers.add_parser("web", help="Serve the moderation API")
    web.add_argument("--host", default=WEB_HOST, help=f"Bind address (default: {WEB_HOST})")
    web.add_argument("--port", type=int, default=WEB_PORT, help=f"Port (default: {WEB_PORT})")

    return parser


def show_config() -> None:
    """Display current configuration."""
    print("=" * 60)
    print("Idea Intake Configuration")
    print("=" * 60)
    print_config_summary()

    errors = validate_config()
    if errors:
        print("\nConfiguration warnings:")
        for error in errors:
            print(f"  ⚠️  {error}")
    else:
        print("\n✓ Configuration valid")
    print("=" * 60)


def run_submit(args) -> int:
    """Push one idea through the chat handler using the console transport."""
    settings = IntakeSettings.from_env()
    if args.db:
        settings = dataclasses.replace(settings, sqlite_path=args.db)
    # Console messages carry no real chat ID
    settings = dataclasses.replace(settings, allowed_chats=())

    pipeline = build_pipeline(settings)
    bot = build_bot(settings, pipeline, ConsoleTransport(), max_workers=1)
    message = IncomingMessage(
        chat_id=0,
        message_id=1,
        user_id=args.user_id,
        text=f"/idea {args.text.strip()}",
        username=args.username,
    )

    try:
        result = bot.handle_message(message)
    finally:
        bot.shutdown()

    if result is None:
        return 1

    print()
    print(result.to_summary())
    return 0 if result.outcome.is_success else 1


def run_web(args) -> int:
    from web.app import run

    run(host=args.host, port=args.port)
    return 0


def main(argv: list = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        Exit code (0 = success, 1 = error, 130 = interrupted).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else LOG_LEVEL)

    if args.show_config:
        show_config()
        return 0

    if args.command is None:
        parser.print_help()
        return 1

    try:
        if args.command == "submit":
            return run_submit(args)
        return run_web(args)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except Exception as e:
        print(f"\n❌ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
