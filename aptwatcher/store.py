"""JSON-file persistence for the normalized store."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .models import PriceEntry, Store, Unit
from .reconcile import coerce_price

logger = logging.getLogger(__name__)

FILE_PREFIX = "file://"


class StoreCorruptError(ValueError):
    """Raised when an existing store file cannot be read as structured data."""


def resolve_store_path(store_url: str) -> Path:
    """Translate a store location (path or ``file://`` URL) into a filesystem path."""
    if not store_url:
        raise ValueError("store location must not be empty")

    if store_url.startswith(FILE_PREFIX):
        path = Path(store_url[len(FILE_PREFIX):])
    else:
        path = Path(store_url)

    path = path.expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path

    return path.resolve()


def unit_to_dict(unit: Unit) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "residence": unit.residence,
        "bedroom": unit.bedroom,
        "bathroom": unit.bathroom,
        "size": unit.size,
    }
    if unit.site is not None:
        record["site"] = unit.site
    return record


def price_to_dict(entry: PriceEntry) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "residence": entry.residence,
        "price": entry.price,
        "timestamp": entry.timestamp,
        "deleted": entry.deleted,
    }
    if entry.site is not None:
        record["site"] = entry.site
    return record


def store_to_dict(store: Store) -> Dict[str, Any]:
    """Render a store in its persisted document layout."""
    return {
        "units": [unit_to_dict(unit) for unit in store.units.values()],
        "prices": [price_to_dict(entry) for entry in store.prices],
    }


def store_from_dict(payload: Any) -> Store:
    """Build a :class:`Store` from a decoded document.

    Raises :class:`StoreCorruptError` when the document does not have the
    normalized layout.
    """
    if not isinstance(payload, dict):
        raise StoreCorruptError("store document must be a JSON object")
    raw_units = payload.get("units", [])
    raw_prices = payload.get("prices", [])
    if not isinstance(raw_units, list) or not isinstance(raw_prices, list):
        raise StoreCorruptError("store document must hold 'units' and 'prices' arrays")

    store = Store()
    try:
        for item in raw_units:
            unit = Unit(
                residence=str(item["residence"]),
                bedroom=item.get("bedroom", ""),
                bathroom=item.get("bathroom", ""),
                size=item.get("size", 0),
                site=item.get("site"),
            )
            # Later rows win; the array form does not enforce uniqueness.
            store.units[unit.residence] = unit
        for item in raw_prices:
            store.prices.append(
                PriceEntry(
                    residence=str(item["residence"]),
                    price=coerce_price(item["price"], str(item["residence"])),
                    timestamp=item["timestamp"],
                    deleted=bool(item.get("deleted", False)),
                    site=item.get("site"),
                )
            )
    except (KeyError, TypeError, AttributeError) as exc:
        raise StoreCorruptError(f"malformed store record: {exc!r}") from exc
    return store


@dataclass
class StoreFile:
    """Reads and writes the store document at ``path``."""

    path: Path

    def exists(self) -> bool:
        return self.path.exists()

    def read_payload(self) -> Optional[Any]:
        """Return the decoded document, or ``None`` when there is no data."""
        if not self.path.exists():
            return None
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            logger.warning("Store file %s is empty; treating as no data", self.path)
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreCorruptError(f"{self.path} is not valid JSON: {exc}") from exc

    def load(self) -> Store:
        payload = self.read_payload()
        if payload is None:
            logger.info("No existing store at %s; starting empty", self.path)
            return Store()
        store = store_from_dict(payload)
        logger.debug(
            "Loaded %d units and %d prices from %s",
            len(store.units),
            len(store.prices),
            self.path,
        )
        return store

    def save(self, store: Store) -> None:
        self.write_payload(store_to_dict(store))
        logger.info(
            "Saved %d units and %d prices to %s",
            len(store.units),
            len(store.prices),
            self.path,
        )

    def write_payload(self, payload: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
                handle.write("\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
