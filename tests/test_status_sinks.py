from __future__ import annotations

import asyncio
import logging
from typing import List

from adapters.status_sinks import FanoutStatusSink, LoggingStatusSink
from adapters.telegram_bot_notifier import TelegramBotNotifier
from core.models import StatusEvent, StatusEventKind

FAILED = StatusEvent(kind=StatusEventKind.DELIVERY_FAILED, sender="+385911234567", attempts=3, last_error="boom")
FORWARDED = StatusEvent(kind=StatusEventKind.MESSAGE_FORWARDED, sender="+385911234567")


class RecordingSink:
    def __init__(self) -> None:
        self.events: List[StatusEvent] = []

    async def publish(self, event: StatusEvent) -> None:
        self.events.append(event)


class BrokenSink:
    async def publish(self, event: StatusEvent) -> None:
        raise RuntimeError("offline")


def test_logging_sink_levels(caplog) -> None:
    sink = LoggingStatusSink()
    with caplog.at_level(logging.INFO, logger="smsforward.status"):
        asyncio.run(sink.publish(FORWARDED))
        asyncio.run(sink.publish(FAILED))

    levels = [record.levelno for record in caplog.records]
    assert levels == [logging.INFO, logging.ERROR]
    assert "Last error: boom" in caplog.records[-1].getMessage()


def test_fanout_continues_after_broken_sink() -> None:
    recording = RecordingSink()
    sink = FanoutStatusSink([BrokenSink(), recording])

    asyncio.run(sink.publish(FAILED))

    assert recording.events == [FAILED]


def test_bot_notifier_only_sends_selected_kinds(monkeypatch) -> None:
    notifier = TelegramBotNotifier("123:abc", "42")
    posted = []
    monkeypatch.setattr(notifier, "_post", lambda request: posted.append(request))

    asyncio.run(notifier.publish(FORWARDED))
    asyncio.run(notifier.publish(FAILED))

    assert len(posted) == 1
    assert posted[0].full_url == "https://api.telegram.org/bot123:abc/sendMessage"
    assert b'"chat_id": "42"' in posted[0].data
