"""Issue board entry point.

Serves the issue page and the change webhook. Usage:
issueboard [serve] [--config PATH] [--check] [--demo [--demo-user EMAIL:PASSWORD ...]].
"""

import argparse
import logging
import sys
from pathlib import Path

from issueboard.config import load_config
from issueboard.feed import ChangeFeed
from issueboard.logging import IssueBoardLogging
from issueboard.models import User

DEFAULT_DEMO_USER = "demo@example.com:demo"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI with optional subcommand (serve)."""
    argv = list(argv if argv is not None else sys.argv[1:])
    if argv and argv[0] == "serve":
        argv = argv[1:]
    parser = argparse.ArgumentParser(
        prog="issueboard",
        description="Issue board - personal issue tracker with live updates",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load and validate config, then exit",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Serve against an in-memory backend instead of Supabase",
    )
    parser.add_argument(
        "--demo-user",
        action="append",
        default=[],
        metavar="EMAIL:PASSWORD",
        help="User for --demo (repeatable)",
    )
    return parser.parse_args(argv)


def _demo_users(specs: list[str]) -> dict[str, tuple[str, User]]:
    users: dict[str, tuple[str, User]] = {}
    for index, spec in enumerate(specs or [DEFAULT_DEMO_USER], start=1):
        email, _, password = spec.partition(":")
        if not email or not password:
            raise ValueError(f"Invalid --demo-user {spec!r}, expected EMAIL:PASSWORD")
        users[email] = (password, User(id=f"demo-{index}", email=email))
    return users


def main(argv: list[str] | None = None) -> int:
    """Entry point: load config, set up logging, serve."""
    args = parse_args(argv)

    config_path = args.config
    if not config_path.is_file() and config_path == Path("config.yaml"):
        if Path("config.example.yaml").is_file():
            config_path = Path("config.example.yaml")
            logging.basicConfig(level=logging.INFO)
            logging.getLogger("issueboard").warning("config.yaml not found, using config.example.yaml")

    config = load_config(config_path)

    if args.check:
        print("Config OK:", config.supabase.url, config.supabase.table)
        return 0

    IssueBoardLogging(config.logging).setup()
    log = logging.getLogger("issueboard.main")

    from issueboard.web.server import demo_page_factory, run_server, supabase_page_factory

    feed = ChangeFeed()
    try:
        if args.demo:
            users = _demo_users(args.demo_user)
            factory = demo_page_factory(config, feed, users)
            log.info("Demo mode with users: %s", ", ".join(users))
        else:
            factory = supabase_page_factory(config, feed)
        run_server(config, factory=factory, feed=feed)
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        log.exception("Fatal error: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
