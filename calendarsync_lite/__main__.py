"""Command-line entry for calendarsync_lite.

Fetches a feed, normalizes it and prints the events as a JSON array.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from . import _init_logging
from .config_loader import Config, apply_overrides, load_config
from .core.exceptions import CalendarSyncError
from .core.logging_config import configure_logging, get_logging_status
from .domain.pipeline import events_to_json, sync_feed
from .domain.publisher import RecordingPublisher

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for calendarsync_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendarsync_lite",
        description="Normalize an iCalendar feed into JSON events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendarsync_lite https://example.com/calendar.ics
  python -m calendarsync_lite https://example.com/calendar.ics Work creds.json
  python -m calendarsync_lite URL --date-only-policy compare --output events.json
  python -m calendarsync_lite URL Work --dry-run
        """,
    )

    parser.add_argument("url", help="URL of the iCalendar feed")
    parser.add_argument(
        "calendar_name",
        nargs="?",
        default=None,
        help="Target calendar name for publishing (default: Test)",
    )
    parser.add_argument(
        "credentials_path",
        nargs="?",
        default=None,
        help="Credentials file for publishing (default: credentials.json)",
    )
    parser.add_argument("--config", metavar="PATH", help="YAML configuration file")
    parser.add_argument("--output", metavar="PATH", help="Write JSON to PATH instead of stdout")
    parser.add_argument(
        "--date-only-policy",
        choices=["retain", "compare"],
        default=None,
        help="How all-day events are filtered (default: retain)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Hand events to an in-memory publisher and log each insert",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser


def build_config(args: argparse.Namespace) -> Config:
    """Merge config file, environment and command line (command line wins)."""
    config = load_config(args.config)
    return apply_overrides(
        config,
        feed_url=args.url,
        calendar_name=args.calendar_name,
        credentials_path=args.credentials_path,
        date_only_policy=args.date_only_policy,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Run the calendarsync_lite CLI.

    Returns:
        Process exit status: 0 on success, 1 on fatal errors
    """
    args = _create_parser().parse_args(argv)

    _init_logging("DEBUG" if args.debug else None)

    try:
        config = build_config(args)
        configure_logging(debug_mode=args.debug, log_level=config.log_level)
        logger.debug("Logger levels: %s", get_logging_status())
        logger.debug(
            "Target calendar %r, credentials %s (used by publishers only)",
            config.calendar_name,
            config.credentials_path,
        )
        publisher = RecordingPublisher(calendar_name=config.calendar_name) if args.dry_run else None
        report = asyncio.run(sync_feed(config, publisher=publisher))
    except CalendarSyncError as e:
        logger.error("%s", e.message)  # noqa: TRY400
        return 1

    output = events_to_json(report.events, indent=config.output_indent or None)
    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        logger.info("Wrote %d events to %s", len(report.events), args.output)
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
