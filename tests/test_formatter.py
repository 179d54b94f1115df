from __future__ import annotations

import pytest

from core.config import TemplateConfig
from core.formatter import (
    TemplateError,
    format_content,
    format_message,
    format_sender,
    format_timestamp,
    render_subject,
)
from core.models import AssembledMessage

# 2024-03-15 14:30:00 UTC, a Friday.
TIMESTAMP = 1710513000000


def _message(body: str = "Meeting moved to 10:00") -> AssembledMessage:
    return AssembledMessage(sender="+385911234567", body=body, timestamp=TIMESTAMP)


def test_positional_placeholders() -> None:
    assert render_subject("SMS from %1$s - %2$s", "A", "T") == "SMS from A - T"
    assert render_subject("%2$s / %1$s", "A", "T") == "T / A"


def test_sequential_placeholders_and_escaped_percent() -> None:
    assert render_subject("%s at %s", "A", "T") == "A at T"
    assert render_subject("100%% sure %1$s", "A", "T") == "100% sure A"


@pytest.mark.parametrize("template", ["%3$s", "%d", "%s %s %s", "trailing %"])
def test_unsupported_placeholders_raise(template: str) -> None:
    with pytest.raises(TemplateError):
        render_subject(template, "A", "T")


def test_default_subject() -> None:
    payload = format_message(_message(), TemplateConfig())
    assert payload.subject == "SMS from +385911234567 - 15.03.2024 14:30"


def test_broken_template_falls_back() -> None:
    payload = format_message(_message(), TemplateConfig(subject_format="From %1$s %d"))
    assert payload.subject == "SMS from +385911234567 - 15.03.2024 14:30"


def test_line_breaks_in_template_are_flattened() -> None:
    payload = format_message(_message(), TemplateConfig(subject_format="SMS from %1$s\n%2$s\r\n"))
    assert payload.subject == "SMS from +385911234567 15.03.2024 14:30"


def test_sender_with_line_breaks_stays_on_one_line() -> None:
    message = AssembledMessage(sender="BANK\r\nBcc: x@example.com", body="hello", timestamp=TIMESTAMP)
    payload = format_message(message, TemplateConfig())
    assert "\n" not in payload.subject
    assert "\r" not in payload.subject
    assert payload.subject.startswith("SMS from BANK Bcc: x@example.com - ")
    assert "From: BANK Bcc: x@example.com\n" in payload.body


def test_sender_of_only_control_characters_is_unknown() -> None:
    assert format_sender("\n\x00") == "Unknown Sender"


def test_timestamp_uses_explicit_locale_names() -> None:
    assert format_timestamp(TIMESTAMP, "%A, %d %B %Y", "en") == "Friday, 15 March 2024"
    assert format_timestamp(TIMESTAMP, "%A, %d %B %Y", "hr") == "petak, 15 ožujak 2024"
    assert format_timestamp(TIMESTAMP, "%a %b", "en") == "Fri Mar"


def test_invalid_date_pattern_falls_back() -> None:
    assert format_timestamp(TIMESTAMP, "%Q %Y") == "15/03/2024 14:30"


def test_unknown_time_zone_falls_back_to_utc() -> None:
    assert format_timestamp(TIMESTAMP, "%H:%M", tz_name="Mars/Olympus") == "14:30"


def test_body_contains_metadata_and_text() -> None:
    payload = format_message(_message(), TemplateConfig())
    assert "From: +385911234567" in payload.body
    assert "Carrier: A1 Croatia" in payload.body
    assert "Received: Friday, 15 March 2024 at 14:30:00" in payload.body
    assert "Meeting moved to 10:00" in payload.body
    assert "Message length: 22 characters" in payload.body


def test_body_can_omit_sender_and_timestamp() -> None:
    templates = TemplateConfig(include_sender=False, include_timestamp=False)
    payload = format_message(_message(), templates)
    assert "From:" not in payload.body
    assert "Received:" not in payload.body


def test_formatting_is_deterministic() -> None:
    templates = TemplateConfig(subject_format="%2$s | %1$s", locale="hr")
    first = format_message(_message(), templates)
    second = format_message(_message(), templates)
    assert first == second


def test_content_cleanup() -> None:
    assert format_content("a\r\n\r\n\r\n\r\nb") == "a\n\nb"
    assert format_content("bell\x07 text") == "bell text"
    assert format_content("   ") == "[Empty message]"
