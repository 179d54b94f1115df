from __future__ import annotations

from core.config import FilterConfig, FilterMode
from core.filter_engine import (
    REASON_BLOCKED,
    REASON_LENGTH,
    REASON_NOT_ALLOWED,
    decide,
    describe_config,
)
from core.models import AssembledMessage
from core.rules_engine import DEFAULT_SPAM_RULES, build_spam_rules, match_spam_rules

SPAM_BODY = "WIN FREE PRIZE NOW!!!! CALL 0900123456"


def _message(body: str, sender: str = "+385911234567") -> AssembledMessage:
    return AssembledMessage(sender=sender, body=body, timestamp=0)


def _config(**overrides) -> FilterConfig:
    values = {"enabled": True, "spam_filter_enabled": False}
    values.update(overrides)
    return FilterConfig(**values)


def test_disabled_filter_forwards_everything() -> None:
    cfg = FilterConfig(enabled=False, min_length=100, mode=FilterMode.WHITELIST)
    decision = decide(_message(SPAM_BODY), cfg)
    assert decision.forward
    assert decision.reasons == ()


def test_length_below_minimum() -> None:
    decision = decide(_message("hi"), _config(min_length=5, max_length=10))
    assert not decision.forward
    assert "length" in decision.reasons[0]


def test_length_above_maximum() -> None:
    decision = decide(_message("x" * 11), _config(min_length=1, max_length=10))
    assert decision.reasons == (REASON_LENGTH,)


def test_length_bounds_are_inclusive() -> None:
    cfg = _config(min_length=2, max_length=4)
    assert decide(_message("ab"), cfg).forward
    assert decide(_message("abcd"), cfg).forward


def test_blacklisted_sender_is_rejected() -> None:
    cfg = _config(mode=FilterMode.BLACKLIST, blocked_numbers=frozenset({"+385911234567"}))
    decision = decide(_message("Hello there", sender="+385911234567"), cfg)
    assert not decision.forward
    assert decision.reasons == (REASON_BLOCKED,)


def test_blacklist_matches_national_format_entries() -> None:
    cfg = _config(mode=FilterMode.BLACKLIST, blocked_numbers=frozenset({"091 123 4567"}))
    assert not decide(_message("Hello there", sender="+385911234567"), cfg).forward
    assert decide(_message("Hello there", sender="+385981234567"), cfg).forward


def test_whitelist_only_allows_listed_senders() -> None:
    cfg = _config(mode=FilterMode.WHITELIST, allowed_numbers=frozenset({"+385911234567"}))
    rejected = decide(_message("Hello there", sender="+385981111111"), cfg)
    assert rejected.reasons == (REASON_NOT_ALLOWED,)
    assert decide(_message("Hello there", sender="091 123 4567"), cfg).forward


def test_blacklist_matches_foreign_numbers_regardless_of_formatting() -> None:
    cfg = _config(mode=FilterMode.BLACKLIST, blocked_numbers=frozenset({"+44 20 7946 0958"}))
    decision = decide(_message("hello there", sender="+442079460958"), cfg)
    assert decision.reasons == (REASON_BLOCKED,)

    reverse = _config(mode=FilterMode.BLACKLIST, blocked_numbers=frozenset({"+442079460958"}))
    assert not decide(_message("hello there", sender="+44 20-7946-0958"), reverse).forward


def test_whitelist_accepts_foreign_numbers_regardless_of_formatting() -> None:
    cfg = _config(mode=FilterMode.WHITELIST, allowed_numbers=frozenset({"+44 (20) 7946 0958"}))
    assert decide(_message("hello there", sender="+442079460958"), cfg).forward
    assert not decide(_message("hello there", sender="+442079460000"), cfg).forward


def test_alphanumeric_sender_is_matched_as_given() -> None:
    cfg = _config(mode=FilterMode.BLACKLIST, blocked_numbers=frozenset({"BANK-INFO"}))
    assert not decide(_message("hello there", sender="BANK-INFO"), cfg).forward
    assert decide(_message("hello there", sender="SHOP"), cfg).forward


def test_empty_whitelist_rejects_everyone() -> None:
    cfg = _config(mode=FilterMode.WHITELIST)
    assert not decide(_message("Hello there"), cfg).forward


def test_keyword_match_is_case_insensitive() -> None:
    cfg = _config(keywords=frozenset({"Lottery"}))
    decision = decide(_message("You won the LOTTERY today"), cfg)
    assert not decision.forward
    assert decision.reasons == ("keyword: Lottery",)


def test_spam_scenario_is_rejected() -> None:
    decision = decide(_message(SPAM_BODY), _config(spam_filter_enabled=True))
    assert not decision.forward
    assert any(reason.startswith("spam:") for reason in decision.reasons)


def test_spam_check_skipped_when_disabled() -> None:
    assert decide(_message(SPAM_BODY), _config(spam_filter_enabled=False)).forward


def test_reasons_accumulate_in_evaluation_order() -> None:
    cfg = _config(min_length=100, keywords=frozenset({"win"}), spam_filter_enabled=True)
    decision = decide(_message(SPAM_BODY), cfg)
    assert not decision.forward
    assert len(decision.reasons) == 3
    assert decision.reasons[0] == REASON_LENGTH
    assert decision.reasons[1].startswith("keyword:")
    assert decision.reasons[2].startswith("spam:")


def test_ordinary_message_passes_spam_filter() -> None:
    decision = decide(_message("See you at 5 pm tomorrow"), _config(spam_filter_enabled=True))
    assert decision.forward
    assert decision.reasons == ()


def test_custom_spam_rules_extend_catalog() -> None:
    rules = build_spam_rules(
        [
            {"name": "crypto", "regex": "bitcoin"},
            {"name": "off", "regex": "tomorrow", "enabled": False},
        ]
    )
    assert len(rules) == len(DEFAULT_SPAM_RULES) + 1
    decision = decide(_message("buy bitcoin tomorrow"), _config(spam_filter_enabled=True), rules)
    assert decision.reasons == ("spam: custom:crypto",)


def test_heuristic_rules() -> None:
    assert "heuristic:uppercase" in match_spam_rules("THIS IS A VERY LOUD MESSAGE OK", DEFAULT_SPAM_RULES)
    assert "heuristic:exclamations" in match_spam_rules("Hi! Hi! Hi! Hi!", DEFAULT_SPAM_RULES)
    assert "heuristic:punctuation_run" in match_spam_rules("Wait... what", DEFAULT_SPAM_RULES)
    assert "heuristic:premium_rate_number" in match_spam_rules("call 0901234567", DEFAULT_SPAM_RULES)


def test_short_uppercase_text_is_not_flagged() -> None:
    assert "heuristic:uppercase" not in match_spam_rules("OK SEE YOU", DEFAULT_SPAM_RULES)


def test_describe_config_reports_counts_only() -> None:
    cfg = _config(mode=FilterMode.BLACKLIST, blocked_numbers=frozenset({"+385911234567"}))
    summary = describe_config(cfg)
    assert "Filter mode: blacklist" in summary
    assert "Blocked numbers: 1" in summary
    assert "+385911234567" not in summary
