"""CLI entrypoint for the AptWatcher agent."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from aptwatcher.export import export_store_to_xlsx
from aptwatcher.migrate import migrate_file
from aptwatcher.notifications import build_notifier_from_env, format_notifications, format_price
from aptwatcher.runner import AptWatcherRunner
from aptwatcher.scraper import SCRAPERS
from aptwatcher.store import StoreCorruptError, StoreFile, resolve_store_path

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="AptWatcher apartment price tracker")
    parser.add_argument("--run", action="store_true", help="execute one scrape and reconciliation")
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="convert a legacy per-unit store file into the normalized format and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="skip writing the store while still scraping and reconciling",
    )
    parser.add_argument(
        "--preserve-delistings",
        action="store_true",
        help="keep legacy deleted changes as delisted markers when migrating",
    )
    parser.add_argument(
        "--store",
        default=os.getenv("APTWATCHER_STORE", "data/apartments.json"),
        help="store file location (overrides APTWATCHER_STORE env var)",
    )
    parser.add_argument(
        "--site",
        action="append",
        choices=sorted(SCRAPERS),
        help="restrict scraping to the given site (repeatable)",
    )
    parser.add_argument("--as-of", help="calendar day label for new timeline entries")
    parser.add_argument("--export", type=Path, help="write an xlsx workbook after the run")
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    store_path = resolve_store_path(args.store)

    if args.migrate:
        try:
            store = migrate_file(
                store_path,
                dry_run=args.dry_run,
                preserve_delistings=args.preserve_delistings,
            )
        except StoreCorruptError as exc:
            logger.error("Migration failed: %s", exc)
            return 1
        if store is not None:
            logger.info("Units: %d", len(store.units))
            logger.info("Prices: %d", len(store.prices))
        return 0

    if not args.run:
        parser.print_help()
        return 1

    scrapers = dict(SCRAPERS)
    if args.site:
        scrapers = {name: scraper for name, scraper in SCRAPERS.items() if name in args.site}

    store_file = StoreFile(path=store_path)
    runner = AptWatcherRunner(
        store_file=store_file,
        scrapers=scrapers,
        inactive_sources=set(SCRAPERS) - set(scrapers),
    )
    notifier = build_notifier_from_env()

    try:
        summary = runner.run(dry_run=args.dry_run, as_of=args.as_of)
    except StoreCorruptError as exc:
        logger.error("Refusing to overwrite corrupt store: %s", exc)
        return 1

    for change in summary.changes.changed:
        logger.info(
            "%s | %s -> %s",
            change.entry.residence,
            format_price(change.previous.price),
            format_price(change.entry.price),
        )
    logger.info(
        "Run %s (%s): %d units, %d prices",
        summary.executed_at,
        summary.status,
        summary.units_written,
        summary.prices_written,
    )

    if not args.dry_run and notifier:
        messages = format_notifications(summary)
        if messages:
            logger.info("Delivering %d notification(s)", len(messages))
            for message in messages:
                if not notifier.send(message):
                    logger.warning("Notification was not delivered to any channel")
        else:
            logger.debug("No timeline notifications to deliver.")

    if args.export and summary.status == "success":
        try:
            export_store_to_xlsx(store_file.load(), args.export)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to export store workbook")
    return 0


if __name__ == "__main__":
    sys.exit(main())
