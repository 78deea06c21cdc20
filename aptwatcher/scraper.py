"""Snapshot collection and site scrapers."""

from __future__ import annotations

import logging
import re
from enum import IntEnum
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from .models import ScrapeResult, Snapshot, SnapshotUnit
from .reconcile import parse_price

logger = logging.getLogger(__name__)

Scraper = Callable[[], Snapshot]

JOURNALJC_SITE = "journaljc"
JOURNALJC_URL = "https://www.journaljc.com/availability"
DEFAULT_BEDROOMS = ("1 Bedroom",)

_SQUARE_FEET = re.compile(r"(\d[\d,]*)\s?SF")


class Column(IntEnum):
    """Cell positions within an availability table row."""

    RESIDENCE = 0
    BEDROOM = 1
    BATHROOM = 2
    FLOOR_PLAN = 3
    PRICE = 4


def collect_snapshot(scrapers: Mapping[str, Scraper]) -> ScrapeResult:
    """Run every scraper and merge their snapshots.

    Sources run in registration order and later sources overwrite earlier
    ones for the same residence. A failing source is logged and left out.
    """
    merged: Dict[str, SnapshotUnit] = {}
    result = ScrapeResult(snapshot=MappingProxyType(merged))

    for name, scraper in scrapers.items():
        logger.info("Running scraper %s", name)
        try:
            site_data = scraper()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Scraper %s failed: %s", name, exc)
            result.failed_sources.append(name)
            continue

        merged.update(site_data)
        result.source_counts[name] = len(site_data)
        logger.info("Scraped %d units from %s", len(site_data), name)

    return result


def scrape_journaljc(
    url: str = JOURNALJC_URL,
    bedrooms: Iterable[str] | None = DEFAULT_BEDROOMS,
    timeout: int = 20,
) -> Dict[str, SnapshotUnit]:
    """Scrape the Journal JC availability table.

    Only rows whose bedroom label is in ``bedrooms`` are kept (all rows when
    ``bedrooms`` is ``None``). Square footage is looked up once per floor
    plan code.
    """
    logger.debug("Fetching availability page %s", url)
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()

    wanted = set(bedrooms) if bedrooms is not None else None
    soup = BeautifulSoup(response.text, "html.parser")
    rows = soup.select(".tableRow[data-residence]")
    floor_plans: Dict[str, float] = {}
    data: Dict[str, SnapshotUnit] = {}

    for index, row in enumerate(rows, start=1):
        cells = row.find_all("div")
        if len(cells) <= Column.PRICE:
            logger.debug("Skipping row %d with %d cells", index, len(cells))
            continue

        bedroom = cells[Column.BEDROOM].get_text(strip=True)
        if wanted is not None and bedroom not in wanted:
            continue

        residence = cells[Column.RESIDENCE].get_text(strip=True) or row.get(
            "data-residence", ""
        )
        if not residence:
            continue

        plan = residence[2:4]
        if plan not in floor_plans:
            floor_plans[plan] = _lookup_square_feet(
                cells[Column.FLOOR_PLAN], url, timeout
            )

        data[residence] = SnapshotUnit(
            residence=residence,
            bedroom=bedroom,
            bathroom=cells[Column.BATHROOM].get_text(strip=True),
            size=floor_plans[plan],
            price=parse_price(cells[Column.PRICE].get_text(strip=True)),
            site=JOURNALJC_SITE,
        )
        logger.debug("JournalJC unit %d/%d: %s", index, len(rows), residence)

    logger.info("Collected %d units from %s", len(data), url)
    return data


def _lookup_square_feet(cell, base_url: str, timeout: int) -> float:
    """Find ``NNN SF`` in the floor plan cell or the page it links to."""
    size = _extract_square_feet(cell.get_text(" ", strip=True))
    if size is not None:
        return size

    anchor = cell.find("a", href=True)
    if anchor is None:
        return 0

    plan_url = urljoin(base_url, anchor["href"])
    try:
        response = requests.get(plan_url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Floor plan lookup failed for %s: %s", plan_url, exc)
        return 0

    text = BeautifulSoup(response.text, "html.parser").get_text(" ", strip=True)
    size = _extract_square_feet(text)
    return size if size is not None else 0


def _extract_square_feet(text: str) -> Optional[float]:
    match = _SQUARE_FEET.search(text)
    if not match:
        return None
    return float(match.group(1).replace(",", ""))


SCRAPERS: Dict[str, Scraper] = {
    JOURNALJC_SITE: scrape_journaljc,
}
