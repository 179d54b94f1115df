"""Shared status event formatting helpers.

Keeping formatting here prevents drift between status sinks and keeps event
text consistent regardless of the channel it is written to.
"""

from __future__ import annotations

import html
from typing import List

from core.models import StatusEvent, StatusEventKind

_TITLES = {
    StatusEventKind.MESSAGE_FORWARDED: "SMS accepted for forwarding",
    StatusEventKind.MESSAGE_FILTERED: "SMS filtered",
    StatusEventKind.DELIVERY_SUCCEEDED: "Email delivered",
    StatusEventKind.DELIVERY_FAILED: "Email delivery failed",
}


def _detail_lines(event: StatusEvent) -> List[str]:
    lines = [f"From: {event.sender}"]
    if event.kind is StatusEventKind.MESSAGE_FILTERED and event.reasons:
        lines.append(f"Why: {'; '.join(event.reasons)}")
    if event.kind in (StatusEventKind.DELIVERY_SUCCEEDED, StatusEventKind.DELIVERY_FAILED):
        lines.append(f"Attempts: {event.attempts}")
    if event.kind is StatusEventKind.DELIVERY_FAILED and event.last_error:
        lines.append(f"Last error: {event.last_error}")
    return lines


def _format_plain(event: StatusEvent) -> str:
    return " | ".join([_TITLES[event.kind]] + _detail_lines(event))


def _format_html(event: StatusEvent) -> str:
    parts = [f"<b>{html.escape(_TITLES[event.kind])}</b>"]
    for line in _detail_lines(event):
        label, _, value = line.partition(": ")
        parts.append(f"<b>{html.escape(label)}:</b> {html.escape(value)}")
    return "\n".join(parts)


def format_event(event: StatusEvent, mode: str) -> str:
    """Return the event formatted for the requested mode."""

    if mode == "plain":
        return _format_plain(event)
    if mode == "html":
        return _format_html(event)
    raise ValueError(f"Unsupported notification format: {mode}")
