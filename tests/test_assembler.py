from __future__ import annotations

import pytest

from core.assembler import EmptyInputError, assemble
from core.models import RawFragment


def test_empty_sequence_is_rejected() -> None:
    with pytest.raises(EmptyInputError):
        assemble([])


def test_bodies_are_concatenated_in_order_and_trimmed() -> None:
    fragments = [
        RawFragment("+385911234567", "  Hello ", 1000, 1),
        RawFragment("+385911234567", "wor", 1001, 2),
        RawFragment("+385911234567", "ld  \n", 1002, 3),
    ]
    message = assemble(fragments)
    assert message.body == "Hello world"
    assert message.sender == "+385911234567"
    assert message.timestamp == 1000


def test_no_reordering_by_sequence_hint() -> None:
    fragments = [
        RawFragment("a", "second", 1, 2),
        RawFragment("a", "first", 2, 1),
    ]
    assert assemble(fragments).body == "secondfirst"


def test_sender_taken_from_first_fragment_with_sender() -> None:
    fragments = [
        RawFragment(None, "part one ", 1),
        RawFragment("+385981234567", "part two", 2),
    ]
    message = assemble(fragments)
    assert message.sender == "+385981234567"
    assert message.timestamp == 2
    assert message.body == "part one part two"


def test_unknown_sender_when_no_fragment_has_one() -> None:
    message = assemble([RawFragment(None, "text", 42), RawFragment(None, None, 43)])
    assert message.sender == "Unknown"
    assert message.timestamp == 42
    assert message.body == "text"
