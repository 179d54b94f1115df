"""Spam rule catalog and matching logic (core domain).

The catalog is an ordered list of named rules. Each rule is either a regex
pattern or a statistical heuristic over the whole body; the filter engine
only walks the list, so new rules never touch its control flow.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Callable, Iterable, List, Union

UPPERCASE_RATIO_LIMIT = 0.7
UPPERCASE_MIN_LENGTH = 20
MAX_EXCLAMATIONS = 3


@dataclass(frozen=True)
class PatternRule:
    """Rule that fires when its regex is found anywhere in the body."""

    name: str
    pattern: re.Pattern

    kind = "pattern"

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True)
class HeuristicRule:
    """Rule that fires when a statistical predicate holds for the body."""

    name: str
    predicate: Callable[[str], bool]

    kind = "heuristic"

    def matches(self, text: str) -> bool:
        return bool(text) and self.predicate(text)


SpamRule = Union[PatternRule, HeuristicRule]


def _pattern(name: str, regex: str) -> PatternRule:
    return PatternRule(name=name, pattern=re.compile(regex, re.IGNORECASE))


def _excessive_uppercase(text: str) -> bool:
    upper = sum(1 for ch in text if ch.isupper())
    return len(text) > UPPERCASE_MIN_LENGTH and upper / len(text) > UPPERCASE_RATIO_LIMIT


def _excessive_exclamations(text: str) -> bool:
    return text.count("!") > MAX_EXCLAMATIONS


# Croatian vocabulary comes first since that is where most of our traffic is.
PROMOTIONAL_RULES: List[SpamRule] = [
    _pattern("promo:free", r"besplat|\bfree\b"),
    _pattern("promo:prize", r"nagrada|\bprize\b"),
    _pattern("promo:winner", r"pobjednik|\bwinner\b"),
    _pattern("promo:credit", r"kredit"),
    _pattern("promo:call_now", r"poziv.*sada|\bcall now\b"),
    _pattern("promo:urgent", r"hitno"),
    _pattern("promo:limited", r"ograničen|\blimited offer\b"),
    _pattern("promo:exclusive", r"ekskluziv"),
    _pattern("promo:bonus", r"bonus"),
    _pattern("promo:promotion", r"promocij"),
    _pattern("promo:click_link", r"klik.*link|\bclick\b.*\blink\b"),
    _pattern("promo:register", r"registruj"),
    _pattern("promo:confirm", r"potvrdi"),
]

LINK_RULES: List[SpamRule] = [
    _pattern("link:www", r"www\."),
    _pattern("link:http", r"http"),
    _pattern("link:bitly", r"bit\.ly"),
    _pattern("link:tinyurl", r"tinyurl"),
]

AMOUNT_RULES: List[SpamRule] = [
    _pattern("amount:eur", r"\d{4,}.*€"),
    _pattern("amount:kn", r"\d{4,}.*kn"),
    _pattern("amount:din", r"\d{4,}.*din"),
]

HEURISTIC_RULES: List[SpamRule] = [
    HeuristicRule(name="heuristic:uppercase", predicate=_excessive_uppercase),
    HeuristicRule(name="heuristic:exclamations", predicate=_excessive_exclamations),
    _pattern("heuristic:premium_rate_number", r"\b09[0-9]\d{6,7}\b"),
    _pattern("heuristic:punctuation_run", r"[!@#$%^&*()_+={}\[\]|\\:;\"'<>,.?/~`]{3,}"),
]

DEFAULT_SPAM_RULES: List[SpamRule] = PROMOTIONAL_RULES + LINK_RULES + AMOUNT_RULES + HEURISTIC_RULES


def build_spam_rules(rules_config: Iterable[dict] = ()) -> List[SpamRule]:
    """Return the default catalog followed by user-configured pattern rules.

    Disabled entries are skipped. Each entry needs a "name" and a "regex".
    """

    compiled: List[SpamRule] = list(DEFAULT_SPAM_RULES)
    for rule in rules_config:
        if not rule.get("enabled", True):
            continue
        compiled.append(_pattern(f"custom:{rule['name']}", rule["regex"]))
    return compiled


def match_spam_rules(text: str, rules: Iterable[SpamRule]) -> List[str]:
    """Return the names of every rule that fires, in catalog order."""

    return [rule.name for rule in rules if rule.matches(text)]
