"""Forwarding decision logic (core domain).

Every check runs independently and appends its own reason, so one message
can collect several reasons. That trail is what the `check` command shows.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from core.config import FilterConfig, FilterMode
from core.models import AssembledMessage, FilterDecision
from core.numbers import matching_key, normalize, numbers_match
from core.rules_engine import DEFAULT_SPAM_RULES, SpamRule

LOGGER = logging.getLogger(__name__)

REASON_LENGTH = "length out of range"
REASON_BLOCKED = "number blocked"
REASON_NOT_ALLOWED = "number not allowed"


def _number_in_set(canonical: str, numbers: Iterable[str], country_code: str) -> bool:
    key = matching_key(canonical)
    for entry in numbers:
        if numbers_match(key, matching_key(normalize(entry, country_code).canonical)):
            return True
    return False


def _check_length(body: str, cfg: FilterConfig) -> Optional[str]:
    if cfg.min_length <= len(body) <= cfg.max_length:
        return None
    return REASON_LENGTH


def _check_number(sender: str, cfg: FilterConfig) -> Optional[str]:
    canonical = normalize(sender, cfg.country_code).canonical
    if cfg.mode is FilterMode.BLACKLIST:
        if _number_in_set(canonical, cfg.blocked_numbers, cfg.country_code):
            return REASON_BLOCKED
    elif cfg.mode is FilterMode.WHITELIST:
        if not _number_in_set(canonical, cfg.allowed_numbers, cfg.country_code):
            return REASON_NOT_ALLOWED
    return None


def _check_keywords(body: str, cfg: FilterConfig) -> Optional[str]:
    folded = body.casefold()
    hits = sorted(k for k in cfg.keywords if k and k.casefold() in folded)
    if not hits:
        return None
    return f"keyword: {hits[0]}"


def _check_spam(body: str, cfg: FilterConfig, spam_rules: Sequence[SpamRule]) -> Optional[str]:
    if not cfg.spam_filter_enabled:
        return None
    for rule in spam_rules:
        if rule.matches(body):
            return f"spam: {rule.name}"
    return None


def decide(
    msg: AssembledMessage,
    cfg: FilterConfig,
    spam_rules: Sequence[SpamRule] = DEFAULT_SPAM_RULES,
) -> FilterDecision:
    """Return whether `msg` should be forwarded and why not, if it should not."""

    if not cfg.enabled:
        return FilterDecision(forward=True)

    reasons: List[str] = []
    for reason in (
        _check_length(msg.body, cfg),
        _check_number(msg.sender, cfg),
        _check_keywords(msg.body, cfg),
        _check_spam(msg.body, cfg, spam_rules),
    ):
        if reason:
            reasons.append(reason)

    if reasons:
        LOGGER.debug("Filtered message from %s: %s", msg.sender, "; ".join(reasons))
    return FilterDecision(forward=not reasons, reasons=tuple(reasons))


def describe_config(cfg: FilterConfig) -> str:
    """Summarize a filter snapshot for diagnostics (counts only)."""

    lines = [
        "=== SMS filtering configuration ===",
        f"Filter enabled: {cfg.enabled}",
        f"Filter mode: {cfg.mode.value}",
        f"Spam filter: {cfg.spam_filter_enabled}",
        f"Min message length: {cfg.min_length}",
        f"Max message length: {cfg.max_length}",
        f"Country code: +{cfg.country_code}",
        f"Blocked numbers: {len(cfg.blocked_numbers)}",
        f"Allowed numbers: {len(cfg.allowed_numbers)}",
        f"Filter keywords: {len(cfg.keywords)}",
    ]
    return "\n".join(lines)
