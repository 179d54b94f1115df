"""Telegram Bot API status sink.

Pushes delivery failures (and optionally every event) to a bot chat so the
owner hears about problems without watching the logs.
"""

from __future__ import annotations

import asyncio
import json
from typing import Iterable, Optional
import urllib.error
import urllib.request

from adapters.notification_formatting import format_event
from core.models import StatusEvent, StatusEventKind

DEFAULT_KINDS = frozenset({StatusEventKind.DELIVERY_FAILED})


class TelegramBotNotifier:
    """StatusSinkPort adapter that sends events via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        kinds: Optional[Iterable[StatusEventKind]] = None,
        timeout: float = 10,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._kinds = frozenset(kinds) if kinds is not None else DEFAULT_KINDS
        self._timeout = timeout

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    def _build_request(self, event: StatusEvent) -> urllib.request.Request:
        payload = {
            "chat_id": self._chat_id,
            "text": format_event(event, mode="html"),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        return request

    def _post(self, request: urllib.request.Request) -> None:
        try:
            with urllib.request.urlopen(request, timeout=self._timeout):
                pass
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"Bot API error {e.code}: {body}") from e

    async def publish(self, event: StatusEvent) -> None:
        """Send the formatted event via the Bot API."""

        if event.kind not in self._kinds:
            return
        # urllib blocks, so run it off the event loop to keep other workers moving.
        await asyncio.to_thread(self._post, self._build_request(event))
