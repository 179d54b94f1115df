"""Sender number normalization (core domain).

Senders arrive in whatever shape the carrier hands us: national format with
a trunk zero, international with or without "+", spaced or dashed. Everything
here is pure and total so it can run on untrusted input without guards.
"""

from __future__ import annotations

import re
from typing import Optional

from core.config import DEFAULT_COUNTRY_CODE
from core.models import NormalizedNumber

UNKNOWN_CARRIER = "Unknown/International"

_NON_DIGITS = re.compile(r"\D")
_DIALABLE = re.compile(r"^\+?[\d\s\-()./]+$")

# (prefix without country code, carrier label); checked in order.
_CROATIAN_CARRIERS = (
    ("91", "A1 Croatia"),
    ("98", "Hrvatski Telekom (HT)"),
    ("99", "Hrvatski Telekom (HT)"),
    ("95", "Tele2 Croatia"),
)


def _clean(raw: str) -> str:
    stripped = raw.strip()
    digits = _NON_DIGITS.sub("", stripped)
    if stripped.startswith("+"):
        return f"+{digits}"
    return digits


def normalize(raw: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> NormalizedNumber:
    """Canonicalize a sender identifier.

    Rules, first match wins:
    - "+<cc>..." is already canonical
    - "<cc>..." gains a "+"
    - national "0..." with at least 8 characters swaps the trunk zero for "+<cc>"
    - bare 8-9 digit local numbers gain "+<cc>"
    - anything else (short codes, alphanumeric senders) passes through untouched
    """

    if not raw:
        return NormalizedNumber(canonical=raw or "")

    cleaned = _clean(raw)
    if cleaned.startswith(f"+{country_code}"):
        return NormalizedNumber(canonical=cleaned, country_hint=country_code)
    if cleaned.startswith(country_code):
        return NormalizedNumber(canonical=f"+{cleaned}", country_hint=country_code)

    if cleaned.isdigit():
        if cleaned.startswith("0") and len(cleaned) >= 8:
            return NormalizedNumber(canonical=f"+{country_code}{cleaned[1:]}", country_hint=country_code)
        if 8 <= len(cleaned) <= 9 and not cleaned.startswith("0"):
            return NormalizedNumber(canonical=f"+{country_code}{cleaned}", country_hint=country_code)

    return NormalizedNumber(canonical=raw)


def matching_key(number: str) -> str:
    """Return the form used for list matching: "+" and digits for anything dialable.

    Numbers outside the configured country keep their formatting in
    `normalize`, so "+44 20 7946 0958" and "+442079460958" only compare equal
    after this step. Alphanumeric senders are compared as given.
    """

    stripped = number.strip()
    if _DIALABLE.match(stripped) and _NON_DIGITS.sub("", stripped):
        return _clean(stripped)
    return stripped


def numbers_match(first: str, second: str) -> bool:
    """Exact or suffix match in either direction, tolerating a missing country code."""

    if not first or not second:
        return False
    if first == second:
        return True
    return first.endswith(second) or second.endswith(first)


def detect_carrier(number: Optional[str]) -> str:
    """Return a carrier label for Croatian mobile prefixes."""

    if not number:
        return UNKNOWN_CARRIER

    digits = _NON_DIGITS.sub("", number)
    for prefix, label in _CROATIAN_CARRIERS:
        if digits.startswith(f"385{prefix}") or digits.startswith(prefix):
            return label
    if digits.startswith("385"):
        return "Croatia (Other carrier)"
    return UNKNOWN_CARRIER
