"""Spreadsheet export of the stored units and price timeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from openpyxl import Workbook

from .models import PriceEntry, Store, Unit
from .reconcile import latest_entries

logger = logging.getLogger(__name__)

PRICE_HEADERS = [
    "residence",
    "site",
    "bedroom",
    "bathroom",
    "size",
    "price",
    "timestamp",
    "deleted",
]

CURRENT_HEADERS = [
    "residence",
    "site",
    "bedroom",
    "bathroom",
    "size",
    "price",
    "status",
    "since",
]


def export_store_to_xlsx(store: Store, path: Path) -> Path:
    """Write the timeline and the latest state per unit to an xlsx workbook."""
    path.parent.mkdir(parents=True, exist_ok=True)
    workbook = Workbook()

    prices_sheet = workbook.active
    prices_sheet.title = "prices"
    prices_sheet.append(PRICE_HEADERS)
    for entry in store.prices:
        unit = store.units.get(entry.residence)
        prices_sheet.append([
            entry.residence,
            entry.site or (unit.site if unit else None),
            unit.bedroom if unit else None,
            unit.bathroom if unit else None,
            unit.size if unit else None,
            entry.price,
            entry.timestamp,
            entry.deleted,
        ])

    current_sheet = workbook.create_sheet("current")
    current_sheet.append(CURRENT_HEADERS)
    latest = latest_entries(store.prices)
    for residence, unit in store.units.items():
        entry = latest.get(residence)
        current_sheet.append(_current_row(unit, entry))

    for sheet in (prices_sheet, current_sheet):
        sheet.freeze_panes = "A2"

    workbook.save(path)
    logger.info("Exported %d timeline rows to %s", len(store.prices), path)
    return path


def _current_row(unit: Unit, entry: Optional[PriceEntry]) -> list:
    if entry is None:
        return [unit.residence, unit.site, unit.bedroom, unit.bathroom, unit.size, None, "unpriced", None]
    status = "delisted" if entry.deleted else "listed"
    return [
        unit.residence,
        unit.site,
        unit.bedroom,
        unit.bathroom,
        unit.size,
        entry.price,
        status,
        entry.timestamp,
    ]
