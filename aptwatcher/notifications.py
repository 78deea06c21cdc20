"""Notification helpers for delivering price timeline changes to external channels."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from .models import PriceChange, RunSummary

logger = logging.getLogger(__name__)

MAX_UNITS_PER_MESSAGE = 5


class Notifier(Protocol):
    """Protocol defining the notifier contract."""

    def send(self, message: str) -> None:
        ...


@dataclass
class SlackNotifier:
    """Post timeline changes to a Slack Incoming Webhook as block messages."""

    webhook_url: str
    username: Optional[str] = None
    timeout: int = 10

    def send(self, message: str) -> None:
        response = requests.post(
            self.webhook_url,
            json=build_slack_payload(message, username=self.username),
            timeout=self.timeout,
        )
        response.raise_for_status()


def build_slack_payload(message: str, username: Optional[str] = None) -> Dict[str, Any]:
    """Split a rendered message into a bold heading block and a unit-list block.

    ``text`` keeps the plain message for clients that do not render blocks.
    """
    heading, _, body = message.partition("\n")
    blocks: List[Dict[str, Any]] = [
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*{heading}*"}}
    ]
    if body:
        blocks.append({"type": "divider"})
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": body}})
    payload: Dict[str, Any] = {"text": message, "blocks": blocks}
    if username:
        payload["username"] = username
    return payload


@dataclass
class CompositeNotifier:
    """Fans messages out to every configured channel."""

    notifiers: List[Notifier]

    def send(self, message: str) -> int:
        """Deliver ``message`` everywhere; return how many channels accepted it."""
        delivered = 0
        for notifier in self.notifiers:
            try:
                notifier.send(message)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to deliver notification via %s", type(notifier).__name__)
            else:
                delivered += 1
        return delivered


def build_notifier_from_env() -> CompositeNotifier | None:
    """Build a notifier from ``SLACK_WEBHOOK`` and optional ``SLACK_USERNAME``."""
    slack_webhook = (os.getenv("SLACK_WEBHOOK") or "").strip()
    if not slack_webhook:
        return None
    username = (os.getenv("SLACK_USERNAME") or "").strip() or None
    return CompositeNotifier(
        notifiers=[SlackNotifier(webhook_url=slack_webhook, username=username)]
    )


def format_notifications(summary: RunSummary) -> List[str]:
    """Render a run's timeline changes into human-friendly messages."""
    changes = summary.changes
    sections = [
        (":new: New units listed", changes.added),
        (":chart_with_downwards_trend: Price changes", changes.changed),
        (":recycle: Units back on the market", changes.relisted),
        (":x: Units delisted", changes.delisted),
    ]
    messages: List[str] = []
    for header, entries in sections:
        message = _build_message(f"{header} ({summary.executed_at})", entries)
        if message:
            messages.append(message)
    return messages


def _build_message(header: str, changes: Sequence[PriceChange]) -> str:
    if not changes:
        return ""
    lines = [header]
    for change in changes[:MAX_UNITS_PER_MESSAGE]:
        lines.append(_describe_change(change))
    if len(changes) > MAX_UNITS_PER_MESSAGE:
        remaining = len(changes) - MAX_UNITS_PER_MESSAGE
        lines.append(f"...and {remaining} more")
    return "\n".join(lines)


def _describe_change(change: PriceChange) -> str:
    entry = change.entry
    site = f" [{entry.site}]" if entry.site else ""
    if entry.deleted:
        return f"- {entry.residence}{site} | last price {format_price(entry.price)}"
    previous = change.previous
    if previous is not None and not previous.deleted:
        return (
            f"- {entry.residence}{site} | "
            f"{format_price(previous.price)} -> {format_price(entry.price)}"
        )
    return f"- {entry.residence}{site} | {format_price(entry.price)}"


def format_price(price: object) -> str:
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return "N/A"
    if not math.isfinite(price):
        return "N/A"
    if float(price).is_integer():
        return f"${price:,.0f}"
    return f"${price:,.2f}"


__all__ = [
    "CompositeNotifier",
    "Notifier",
    "SlackNotifier",
    "build_slack_payload",
    "build_notifier_from_env",
    "format_notifications",
    "format_price",
]
