"""Reconcile a scraped snapshot against the stored unit and price history."""

from __future__ import annotations

import datetime as dt
import logging
import math
import re
from typing import Collection, Dict, Iterable, List, Optional

from .models import ChangeSet, PriceChange, PriceEntry, Snapshot, Store, Unit

logger = logging.getLogger(__name__)

_PRICE_NOISE = re.compile(r"[$*,\s]")


def today_label() -> str:
    """Return the calendar-day label used as a timeline timestamp."""
    return dt.date.today().isoformat()


def parse_price(text: str | None) -> Optional[float]:
    """Parse a listed price such as ``$2,100*``; ``None`` when unparseable."""
    if text is None:
        return None
    cleaned = _PRICE_NOISE.sub("", text)
    try:
        return float(cleaned)
    except ValueError:
        return None


def coerce_price(value: object, residence: str = "") -> float:
    """Return a usable price, degrading anything unusable to ``0.0``.

    Unparseable, missing, non-finite and negative prices are logged and
    recorded as zero rather than raising.
    """
    price: Optional[float] = None
    if isinstance(value, bool):
        price = None
    elif isinstance(value, (int, float)):
        price = float(value)
    elif isinstance(value, str):
        price = parse_price(value)

    if price is None or not math.isfinite(price) or price < 0:
        logger.warning(
            "Unparseable price %r for residence %s; recording 0",
            value,
            residence or "?",
        )
        return 0.0
    return price


def latest_entries(prices: Iterable[PriceEntry]) -> Dict[str, PriceEntry]:
    """Return the last timeline entry for every residence, in first-seen order."""
    latest: Dict[str, PriceEntry] = {}
    for entry in prices:
        latest[entry.residence] = entry
    return latest


def reconcile(
    store: Store,
    snapshot: Snapshot,
    as_of: str | None = None,
    unscraped_sites: Collection[str] = (),
) -> Store:
    """Merge ``snapshot`` into ``store`` and return the updated store.

    Unit attributes are overwritten for every observed residence. A price
    entry is appended only for first observations, reappearances and price
    changes. Residences missing from the snapshot get a single delisted
    marker, except residences whose site is in ``unscraped_sites`` (sources
    that failed or were not run this time). New entries for observed units
    come first, delistings second. The input store is left untouched.
    """
    timestamp = as_of or today_label()
    units: Dict[str, Unit] = dict(store.units)
    prices: List[PriceEntry] = list(store.prices)
    latest = latest_entries(store.prices)

    for residence, observed in snapshot.items():
        units[residence] = Unit(
            residence=residence,
            bedroom=observed.bedroom,
            bathroom=observed.bathroom,
            size=observed.size,
            site=observed.site,
        )

        price = coerce_price(observed.price, residence)
        previous = latest.get(residence)
        if previous is not None and not previous.deleted and previous.price == price:
            continue

        prices.append(
            PriceEntry(
                residence=residence,
                price=price,
                timestamp=timestamp,
                site=observed.site,
            )
        )

    known = list(store.units)
    known.extend(residence for residence in latest if residence not in store.units)
    for residence in known:
        if residence in snapshot:
            continue
        previous = latest.get(residence)
        if previous is None:
            logger.debug("Residence %s has no price history; nothing to delist", residence)
            continue
        if previous.deleted:
            continue
        unit = units.get(residence)
        site = (unit.site if unit is not None else None) or previous.site
        if site is not None and site in unscraped_sites:
            logger.debug("Residence %s is from unscraped site %s; keeping listed", residence, site)
            continue
        prices.append(
            PriceEntry(
                residence=residence,
                price=previous.price,
                timestamp=timestamp,
                deleted=True,
                site=previous.site,
            )
        )

    return Store(units=units, prices=prices)


def summarize_changes(before: Store, after: Store) -> ChangeSet:
    """Classify the price entries ``after`` appended beyond ``before``."""
    latest = latest_entries(before.prices)
    changes = ChangeSet()
    for entry in after.prices[len(before.prices):]:
        previous = latest.get(entry.residence)
        change = PriceChange(entry=entry, previous=previous)
        if entry.deleted:
            changes.delisted.append(change)
        elif previous is None:
            changes.added.append(change)
        elif previous.deleted:
            changes.relisted.append(change)
        else:
            changes.changed.append(change)
        latest[entry.residence] = entry
    return changes
