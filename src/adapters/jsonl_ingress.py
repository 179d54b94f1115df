"""JSON-lines ingress adapter.

Each line is one transport-level delivery event, either
`{"fragments": [{...}, ...]}` or a single fragment object. A fragment carries
`sender`, `body`, `timestamp` (epoch milliseconds) and an optional
`sequence`. This keeps gateway-specific details out of the core pipeline.
"""

from __future__ import annotations

import asyncio
import json
import threading
from typing import AsyncIterator, Iterator, List, Optional, TextIO, Tuple

from core.models import RawFragment

_END = object()


class IngressError(ValueError):
    """Raised for a delivery event that cannot be turned into fragments."""


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def parse_fragment(raw: dict) -> RawFragment:
    if not isinstance(raw, dict):
        raise IngressError(f"Fragment must be an object, got {type(raw).__name__}")
    try:
        timestamp = int(raw.get("timestamp", 0))
        sequence = raw.get("sequence")
        sequence_hint = int(sequence) if sequence is not None else None
    except (TypeError, ValueError) as exc:
        raise IngressError(f"Invalid numeric field in fragment: {exc}") from exc
    return RawFragment(
        sender_raw=_optional_str(raw.get("sender")),
        body_raw=_optional_str(raw.get("body")),
        timestamp_millis=timestamp,
        sequence_hint=sequence_hint,
    )


def order_fragments(fragments: List[RawFragment]) -> Tuple[RawFragment, ...]:
    """Order by sequence hint when every fragment has one, else keep delivery order."""

    if fragments and all(f.sequence_hint is not None for f in fragments):
        return tuple(sorted(fragments, key=lambda f: f.sequence_hint))
    return tuple(fragments)


def parse_event(line: str) -> Tuple[RawFragment, ...]:
    """Parse one JSON line into the ordered fragments of one logical message."""

    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise IngressError(f"Malformed JSON: {exc}") from exc

    if isinstance(data, dict) and "fragments" in data:
        raw_fragments = data["fragments"]
        if not isinstance(raw_fragments, list):
            raise IngressError("'fragments' must be a list")
    else:
        raw_fragments = [data]

    return order_fragments([parse_fragment(raw) for raw in raw_fragments])


def read_events(stream: TextIO) -> Iterator[Tuple[int, str]]:
    """Yield (line number, line) for every non-blank line of the stream."""

    for line_number, line in enumerate(stream, start=1):
        if line.strip():
            yield line_number, line


async def stream_events(stream: TextIO) -> AsyncIterator[Tuple[int, str]]:
    """Async view of `read_events` for use inside the event loop.

    The blocking reads happen on a daemon thread that feeds a queue, so a
    cancelled consumer (Ctrl-C on stdin) never waits for the next line and
    the interpreter can exit while the reader is still blocked.
    """

    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[object]" = asyncio.Queue()

    def _put(item: object) -> bool:
        try:
            loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed; nobody is left to consume.
            return False
        return True

    def _pump() -> None:
        try:
            for item in read_events(stream):
                if not _put(item):
                    return
        except Exception as exc:
            _put(exc)
            return
        _put(_END)

    threading.Thread(target=_pump, name="jsonl-ingress", daemon=True).start()

    while True:
        item = await queue.get()
        if item is _END:
            return
        if isinstance(item, Exception):
            raise item
        yield item
