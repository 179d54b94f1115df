"""Mail rendering for accepted messages (core domain).

Formatting must never block delivery: a broken subject template or date
pattern degrades to a fixed fallback instead of raising. Day and month names
come from the tables below rather than the process locale, so the same input
always renders the same text.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import re
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.config import TemplateConfig
from core.models import AssembledMessage, FormattedPayload
from core.numbers import UNKNOWN_CARRIER, detect_carrier

LOGGER = logging.getLogger(__name__)

FALLBACK_DATE_FORMAT = "%d/%m/%Y %H:%M"
EMPTY_MESSAGE = "[Empty message]"
UNKNOWN_SENDER_LABEL = "Unknown Sender"
DIVIDER = "────────────────────────────────────────"

_LOCALE_NAMES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "en": {
        "days": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
        "months": (
            "January", "February", "March", "April", "May", "June",
            "July", "August", "September", "October", "November", "December",
        ),
    },
    "hr": {
        "days": ("ponedjeljak", "utorak", "srijeda", "četvrtak", "petak", "subota", "nedjelja"),
        "months": (
            "siječanj", "veljača", "ožujak", "travanj", "svibanj", "lipanj",
            "srpanj", "kolovoz", "rujan", "listopad", "studeni", "prosinac",
        ),
    },
}

# strftime directives whose output does not depend on the process locale.
_NEUTRAL_DIRECTIVES = set("dmyYHIMSfzZjUWGuVeF%T")
_DIRECTIVE = re.compile(r"%(.?)", re.DOTALL)
_PLACEHOLDER = re.compile(r"%(?:(\d+)\$)?(.?)", re.DOTALL)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
# Header values must stay on one line.
_HEADER_BREAKS = re.compile(r"\s*[\x00-\x1f\x7f]+\s*")


class TemplateError(ValueError):
    """Raised when a subject template uses an unsupported placeholder."""


def _localize_pattern(pattern: str, when: datetime, locale: str) -> str:
    names = _LOCALE_NAMES.get(locale, _LOCALE_NAMES["en"])

    def _replace(match: re.Match) -> str:
        directive = match.group(1)
        if directive == "A":
            return names["days"][when.weekday()]
        if directive == "a":
            return names["days"][when.weekday()][:3]
        if directive == "B":
            return names["months"][when.month - 1]
        if directive == "b":
            return names["months"][when.month - 1][:3]
        if directive and directive in _NEUTRAL_DIRECTIVES:
            return match.group(0)
        raise ValueError(f"Unsupported date directive: %{directive}")

    return _DIRECTIVE.sub(_replace, pattern)


def _resolve_zone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning("Unknown time zone %r, using UTC", name)
        return timezone.utc


def format_timestamp(timestamp_millis: int, pattern: str, locale: str = "en", tz_name: str = "UTC") -> str:
    """Render epoch milliseconds with `pattern`, falling back to a safe pattern."""

    zone = _resolve_zone(tz_name)
    try:
        when = datetime.fromtimestamp(timestamp_millis / 1000, tz=zone)
    except (OverflowError, OSError, ValueError):
        return str(timestamp_millis)

    try:
        return when.strftime(_localize_pattern(pattern, when, locale))
    except ValueError as exc:
        LOGGER.warning("Date pattern %r failed (%s), using fallback", pattern, exc)
        return when.strftime(FALLBACK_DATE_FORMAT)


def render_subject(template: str, sender: str, timestamp: str) -> str:
    """Substitute `%1$s`/`%2$s` (or sequential `%s`) placeholders.

    Raises TemplateError for any other conversion or an out-of-range index.
    """

    values = (sender, timestamp)
    sequential = 0

    def _replace(match: re.Match) -> str:
        nonlocal sequential
        index, conversion = match.group(1), match.group(2)
        if conversion == "%" and index is None:
            return "%"
        if conversion != "s":
            raise TemplateError(f"Unsupported placeholder {match.group(0)!r}")
        if index is None:
            position = sequential
            sequential += 1
        else:
            position = int(index) - 1
        if not 0 <= position < len(values):
            raise TemplateError(f"Placeholder {match.group(0)!r} has no value")
        return values[position]

    return _PLACEHOLDER.sub(_replace, template)


def format_sender(sender: Optional[str]) -> str:
    cleaned = _HEADER_BREAKS.sub(" ", sender or "").strip()
    return cleaned or UNKNOWN_SENDER_LABEL


def format_content(body: Optional[str]) -> str:
    """Normalize line endings and strip control characters from the SMS text."""

    if body is None or not body.strip():
        return EMPTY_MESSAGE
    text = body.strip().replace("\r\n", "\n").replace("\r", "\n")
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return _CONTROL_CHARS.sub("", text)


def _format_body(msg: AssembledMessage, templates: TemplateConfig, sender: str) -> str:
    lines: List[str] = ["SMS Message Received", "=" * len(DIVIDER), ""]

    if templates.include_sender:
        lines.append(f"From: {sender}")
        carrier = detect_carrier(msg.sender)
        if carrier != UNKNOWN_CARRIER:
            lines.append(f"Carrier: {carrier}")
    if templates.include_timestamp:
        received = format_timestamp(
            msg.timestamp, templates.body_date_format, templates.locale, templates.timezone
        )
        lines.append(f"Received: {received}")

    lines.extend(
        [
            "",
            "Message:",
            DIVIDER,
            format_content(msg.body),
            DIVIDER,
            "",
            f"Message length: {len(msg.body)} characters",
            "Forwarded by smsforward",
        ]
    )
    return "\n".join(lines) + "\n"


def format_message(msg: AssembledMessage, templates: TemplateConfig) -> FormattedPayload:
    """Render the mail subject and body for an accepted message."""

    sender = format_sender(msg.sender)
    timestamp = format_timestamp(msg.timestamp, templates.date_format, templates.locale, templates.timezone)
    try:
        subject = render_subject(templates.subject_format or "", sender, timestamp)
    except TemplateError as exc:
        LOGGER.warning("Subject template %r failed (%s), using fallback", templates.subject_format, exc)
        subject = f"SMS from {sender} - {timestamp}"
    subject = _HEADER_BREAKS.sub(" ", subject).strip()
    if not subject:
        subject = f"SMS from {sender} - {timestamp}"

    return FormattedPayload(subject=subject, body=_format_body(msg, templates, sender))
