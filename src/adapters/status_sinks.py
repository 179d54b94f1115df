"""Logging and fan-out status sinks."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from adapters.notification_formatting import format_event
from core.models import StatusEvent, StatusEventKind
from core.ports import StatusSinkPort

_LEVELS = {
    StatusEventKind.MESSAGE_FORWARDED: logging.INFO,
    StatusEventKind.MESSAGE_FILTERED: logging.INFO,
    StatusEventKind.DELIVERY_SUCCEEDED: logging.INFO,
    StatusEventKind.DELIVERY_FAILED: logging.ERROR,
}


class LoggingStatusSink:
    """Write every event to the `smsforward.status` logger."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("smsforward.status")

    async def publish(self, event: StatusEvent) -> None:
        self._logger.log(_LEVELS[event.kind], format_event(event, mode="plain"))


class FanoutStatusSink:
    """Publish each event to several sinks; one failing sink does not stop the rest."""

    def __init__(self, sinks: Iterable[StatusSinkPort]) -> None:
        self._sinks = list(sinks)

    async def publish(self, event: StatusEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.publish(event)
            except Exception:
                logging.getLogger(__name__).exception("Status sink %s failed", type(sink).__name__)
