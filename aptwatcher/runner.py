"""Core execution workflow for AptWatcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Set

from .models import ChangeSet, RunSummary
from .reconcile import reconcile, summarize_changes, today_label
from .scraper import SCRAPERS, Scraper, collect_snapshot
from .store import StoreFile

logger = logging.getLogger(__name__)


@dataclass
class AptWatcherRunner:
    """Coordinates scrape, reconcile, and persistence steps."""

    store_file: StoreFile
    scrapers: Dict[str, Scraper] = field(default_factory=lambda: dict(SCRAPERS))
    # Sites tracked in the store that this runner deliberately does not scrape.
    inactive_sources: Set[str] = field(default_factory=set)

    def run(self, dry_run: bool = False, as_of: str | None = None) -> RunSummary:
        """Execute a single monitoring cycle."""
        executed_at = as_of or today_label()
        logger.info("Starting monitor cycle for %s", executed_at)

        # Load before scraping so a corrupt store aborts the run early.
        store = self.store_file.load()
        scraped = collect_snapshot(self.scrapers)

        if scraped.failed_sources and not scraped.source_counts:
            logger.warning(
                "All scrapers failed (%s); skipping reconciliation",
                ", ".join(scraped.failed_sources),
            )
            return RunSummary(
                executed_at=executed_at,
                status="skipped",
                units_written=len(store.units),
                prices_written=len(store.prices),
                changes=ChangeSet(),
                source_counts=scraped.source_counts,
                failed_sources=scraped.failed_sources,
            )

        unscraped = set(scraped.failed_sources) | set(self.inactive_sources)
        if unscraped:
            logger.info("Keeping units from %s listed this run", ", ".join(sorted(unscraped)))
        updated = reconcile(
            store,
            scraped.snapshot,
            as_of=executed_at,
            unscraped_sites=unscraped,
        )
        changes = summarize_changes(store, updated)
        logger.info(
            "Reconciled %d units: %d new, %d price changes, %d relisted, %d delisted",
            len(scraped.snapshot),
            len(changes.added),
            len(changes.changed),
            len(changes.relisted),
            len(changes.delisted),
        )

        if dry_run:
            logger.info("Dry run; store at %s left unchanged", self.store_file.path)
            status = "dry_run"
        else:
            self.store_file.save(updated)
            status = "success"

        return RunSummary(
            executed_at=executed_at,
            status=status,
            units_written=len(updated.units),
            prices_written=len(updated.prices),
            changes=changes,
            source_counts=scraped.source_counts,
            failed_sources=scraped.failed_sources,
        )
