"""Admin command line for the portfolio notification engine."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from portfolio_events.checkpoint import JsonCheckpointStore
from portfolio_events.config import EventsConfig, load_config
from portfolio_events.dates import format_age
from portfolio_events.feed import FeedFilter, LiveFeed
from portfolio_events.logging_config import setup_logging
from portfolio_events.session import BusinessNotifications, open_session, open_store


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="portfolio-events", description=__doc__)
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="Show recent notifications")
    list_cmd.add_argument("--limit", type=int, default=None)
    list_cmd.add_argument("--unread", action="store_true", help="Only unread notifications")

    for name, help_text in (
        ("read", "Mark a notification read"),
        ("unread", "Mark a notification unread"),
        ("delete", "Delete a notification"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("notification_id")

    sub.add_parser("read-all", help="Mark every notification read")
    sub.add_parser("check", help="Run due periodic checks once")
    sub.add_parser("run", help="Run periodic checks until interrupted")
    return parser


async def _list(config: EventsConfig, limit: Optional[int], unread_only: bool) -> int:
    async with open_store(config) as store:
        async with LiveFeed(store, limit=limit or config.feed_limit) as feed:
            records = feed.filtered(FeedFilter(status="unread" if unread_only else "all"))
            print(f"{feed.unread_count} unread")
            for record in records:
                marker = " " if record.read else "*"
                print(f"{marker} {record.id}  [{record.type.value:<7}] {record.category.value:<11} {record.title}")
                print(f"    {record.message.splitlines()[0] if record.message else ''}  ({format_age(record.created_at)})")
    return 0


async def _read_all(config: EventsConfig) -> int:
    async with open_store(config) as store:
        count = await LiveFeed(store, limit=config.feed_limit).mark_all_read()
    print(f"Marked {count} notifications read")
    return 0


async def _mutate(config: EventsConfig, command: str, notification_id: str) -> int:
    async with open_store(config) as store:
        feed = LiveFeed(store, limit=config.feed_limit)
        if command == "read":
            ok = await feed.mark_read(notification_id)
        elif command == "unread":
            ok = await feed.mark_unread(notification_id)
        else:
            ok = await feed.delete(notification_id)
        if not ok:
            print(f"Notification not found: {notification_id}", file=sys.stderr)
            return 1
    return 0


async def _check(config: EventsConfig) -> int:
    async with open_store(config) as store:
        session = BusinessNotifications(store, JsonCheckpointStore(Path(config.checkpoint_path)), config=config)
        await session.scheduler.run_due_checks()
        await session.scheduler.drain()
    return 0


async def _run(config: EventsConfig) -> int:
    async with open_session(config):
        await asyncio.Event().wait()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    config = load_config(args.config)
    setup_logging(args.log_level or config.log_level)

    if args.command == "list":
        coro = _list(config, args.limit, args.unread)
    elif args.command == "read-all":
        coro = _read_all(config)
    elif args.command in ("read", "unread", "delete"):
        coro = _mutate(config, args.command, args.notification_id)
    elif args.command == "check":
        coro = _check(config)
    else:
        coro = _run(config)

    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        return 130
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
