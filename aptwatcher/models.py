"""Core data models for AptWatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional


@dataclass(frozen=True)
class Unit:
    """Static attributes of a rentable unit, keyed by residence."""

    residence: str
    bedroom: str
    bathroom: str
    size: float
    site: Optional[str] = None


@dataclass(frozen=True)
class PriceEntry:
    """One observation on a residence's price timeline.

    ``deleted`` marks the residence as delisted; the price is carried
    forward from the last listed observation.
    """

    residence: str
    price: float
    timestamp: str
    deleted: bool = False
    site: Optional[str] = None


@dataclass
class Store:
    """Normalized dataset: unit records plus the append-only price timeline."""

    units: Dict[str, Unit] = field(default_factory=dict)
    prices: List[PriceEntry] = field(default_factory=list)


@dataclass(frozen=True)
class SnapshotUnit:
    """A unit as observed by a scraper at one point in time."""

    residence: str
    bedroom: str
    bathroom: str
    size: float
    price: Optional[float]
    site: Optional[str] = None


Snapshot = Mapping[str, SnapshotUnit]


@dataclass(frozen=True)
class LegacyChange:
    price: float
    deleted: bool
    timestamp: str


@dataclass
class LegacyUnit:
    """Per-unit record of the legacy nested format, with its change log."""

    residence: str
    bedroom: str
    bathroom: str
    sf: float
    changes: List[LegacyChange] = field(default_factory=list)


@dataclass
class LegacyStore:
    """Legacy document. ``units`` keys are unique residences."""

    timestamp: Optional[float]
    units: Dict[str, LegacyUnit] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceChange:
    """A price timeline entry paired with the entry it superseded."""

    entry: PriceEntry
    previous: Optional[PriceEntry] = None


@dataclass
class ChangeSet:
    """Classification of the entries appended by one reconciliation."""

    added: List[PriceChange] = field(default_factory=list)
    changed: List[PriceChange] = field(default_factory=list)
    relisted: List[PriceChange] = field(default_factory=list)
    delisted: List[PriceChange] = field(default_factory=list)

    def __len__(self) -> int:
        return (
            len(self.added)
            + len(self.changed)
            + len(self.relisted)
            + len(self.delisted)
        )


@dataclass
class ScrapeResult:
    """Merged snapshot plus per-source bookkeeping."""

    snapshot: Snapshot
    source_counts: Dict[str, int] = field(default_factory=dict)
    failed_sources: List[str] = field(default_factory=list)


@dataclass
class RunSummary:
    """Aggregated result returned by a monitoring cycle."""

    executed_at: str
    status: str
    units_written: int
    prices_written: int
    changes: ChangeSet
    source_counts: Dict[str, int] = field(default_factory=dict)
    failed_sources: List[str] = field(default_factory=list)
