"""One-time migration from the legacy nested format to the normalized store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from .models import LegacyChange, LegacyStore, LegacyUnit, PriceEntry, Store, Unit
from .reconcile import coerce_price
from .store import StoreCorruptError, StoreFile

logger = logging.getLogger(__name__)


def is_legacy_payload(payload: Any) -> bool:
    """Legacy documents key units by residence and carry no price array."""
    return (
        isinstance(payload, dict)
        and isinstance(payload.get("units"), dict)
        and "prices" not in payload
    )


def parse_legacy(payload: Any) -> LegacyStore:
    """Decode a legacy document into :class:`LegacyStore`."""
    if not is_legacy_payload(payload):
        raise StoreCorruptError("document is not in the legacy per-unit format")

    legacy = LegacyStore(timestamp=payload.get("timestamp"))
    try:
        for key, raw in payload["units"].items():
            changes = [
                LegacyChange(
                    price=coerce_price(change["price"], key),
                    deleted=bool(change.get("deleted", False)),
                    timestamp=change["timestamp"],
                )
                for change in raw.get("changes", [])
            ]
            legacy.units[key] = LegacyUnit(
                residence=raw.get("residence") or key,
                bedroom=raw.get("bedroom", ""),
                bathroom=raw.get("bathroom", ""),
                sf=raw.get("sf", 0),
                changes=changes,
            )
    except (KeyError, TypeError, AttributeError) as exc:
        raise StoreCorruptError(f"malformed legacy unit record: {exc!r}") from exc
    return legacy


def migrate(legacy: LegacyStore, preserve_delistings: bool = False) -> Store:
    """Flatten per-unit change logs into units plus one price timeline.

    Each legacy unit yields one :class:`Unit`; each non-deleted change
    yields one :class:`PriceEntry`, in legacy order. Deleted changes are
    dropped unless ``preserve_delistings`` is set, in which case they are
    written as ``deleted`` markers exactly as reconciliation writes them.
    """
    store = Store()
    for legacy_unit in legacy.units.values():
        residence = legacy_unit.residence
        store.units[residence] = Unit(
            residence=residence,
            bedroom=legacy_unit.bedroom,
            bathroom=legacy_unit.bathroom,
            size=legacy_unit.sf,
        )
        for change in legacy_unit.changes:
            if change.deleted and not preserve_delistings:
                continue
            store.prices.append(
                PriceEntry(
                    residence=residence,
                    price=change.price,
                    timestamp=change.timestamp,
                    deleted=change.deleted,
                )
            )
    return store


def migrate_file(
    path: Path,
    dry_run: bool = False,
    preserve_delistings: bool = False,
) -> Optional[Store]:
    """Migrate the store file at ``path`` in place.

    Returns the migrated store, or ``None`` when there was nothing to do.
    Corrupt JSON raises :class:`StoreCorruptError` and leaves the file as is.
    """
    store_file = StoreFile(path=path)
    payload = store_file.read_payload()
    if payload is None:
        logger.info("No existing data file found at %s. Migration not needed.", path)
        return None
    if not is_legacy_payload(payload):
        if isinstance(payload, dict) and isinstance(payload.get("prices"), list):
            logger.info("%s is already normalized. Migration not needed.", path)
            return None
        raise StoreCorruptError(f"{path} is neither a legacy nor a normalized store")

    store = migrate(parse_legacy(payload), preserve_delistings=preserve_delistings)
    if dry_run:
        logger.info("Dry run: migration of %s not written", path)
    else:
        store_file.save(store)
    logger.info(
        "Migration completed: %d units, %d prices",
        len(store.units),
        len(store.prices),
    )
    return store
