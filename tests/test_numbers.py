from __future__ import annotations

import pytest

from core.numbers import detect_carrier, matching_key, normalize, numbers_match


def test_national_number_with_spaces() -> None:
    result = normalize("091 123 4567", "385")
    assert result.canonical == "+385911234567"
    assert result.country_hint == "385"


@pytest.mark.parametrize(
    "raw",
    ["+385 91 123 4567", "385911234567", "0911234567", "(091) 123-4567"],
)
def test_croatian_variants_share_one_canonical_form(raw: str) -> None:
    assert normalize(raw).canonical == "+385911234567"


def test_bare_local_number_gets_country_code() -> None:
    assert normalize("91234567").canonical == "+38591234567"


def test_short_codes_and_names_pass_through() -> None:
    assert normalize("12345").canonical == "12345"
    alpha = normalize("VIP-BANK")
    assert alpha.canonical == "VIP-BANK"
    assert alpha.country_hint is None


def test_foreign_international_number_passes_through() -> None:
    assert normalize("+44 20 7946 0958").canonical == "+44 20 7946 0958"


def test_empty_input_is_total() -> None:
    assert normalize("").canonical == ""
    assert normalize(None).canonical == ""


@pytest.mark.parametrize(
    "raw",
    ["091 123 4567", "+385911234567", "385 98 765 432", "91234567", "12345", "+44 20 7946 0958"],
)
def test_normalize_is_idempotent(raw: str) -> None:
    first = normalize(raw)
    assert normalize(first.canonical) == first


def test_numbers_match_exact_and_suffix() -> None:
    assert numbers_match("+385911234567", "+385911234567")
    assert numbers_match("+385911234567", "911234567")
    assert numbers_match("911234567", "+385911234567")
    assert not numbers_match("+385911234567", "+385921234567")
    assert not numbers_match("", "+385911234567")


def test_detect_carrier() -> None:
    assert detect_carrier("+385911234567") == "A1 Croatia"
    assert detect_carrier("+385981234567") == "Hrvatski Telekom (HT)"
    assert detect_carrier("+385 95 123 4567") == "Tele2 Croatia"
    assert detect_carrier("+38521123456") == "Croatia (Other carrier)"
    assert detect_carrier("+4420794609") == "Unknown/International"
    assert detect_carrier(None) == "Unknown/International"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("+44 20 7946 0958", "+442079460958"),
        ("+44 (20) 7946-0958", "+442079460958"),
        ("1234", "1234"),
        ("BANK-INFO", "BANK-INFO"),
        ("  ", ""),
    ],
)
def test_matching_key(raw: str, expected: str) -> None:
    assert matching_key(raw) == expected
