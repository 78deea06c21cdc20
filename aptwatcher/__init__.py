"""AptWatcher package initialization."""

from .migrate import migrate, migrate_file, parse_legacy
from .models import (
    ChangeSet,
    LegacyChange,
    LegacyStore,
    LegacyUnit,
    PriceChange,
    PriceEntry,
    RunSummary,
    ScrapeResult,
    Snapshot,
    SnapshotUnit,
    Store,
    Unit,
)
from .reconcile import coerce_price, latest_entries, reconcile, summarize_changes
from .runner import AptWatcherRunner
from .scraper import SCRAPERS, collect_snapshot, scrape_journaljc
from .store import StoreCorruptError, StoreFile

__all__ = [
    "AptWatcherRunner",
    "ChangeSet",
    "LegacyChange",
    "LegacyStore",
    "LegacyUnit",
    "PriceChange",
    "PriceEntry",
    "RunSummary",
    "SCRAPERS",
    "ScrapeResult",
    "Snapshot",
    "SnapshotUnit",
    "Store",
    "StoreCorruptError",
    "StoreFile",
    "Unit",
    "coerce_price",
    "collect_snapshot",
    "latest_entries",
    "migrate",
    "migrate_file",
    "parse_legacy",
    "reconcile",
    "scrape_journaljc",
    "summarize_changes",
]
