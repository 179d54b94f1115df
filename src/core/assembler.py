"""Multi-part SMS reassembly (core domain)."""

from __future__ import annotations

from typing import Sequence

from core.models import AssembledMessage, RawFragment

UNKNOWN_SENDER = "Unknown"


class EmptyInputError(ValueError):
    """Raised when there are no fragments to assemble."""

    def __init__(self) -> None:
        super().__init__("Cannot assemble a message from zero fragments")


def assemble(fragments: Sequence[RawFragment]) -> AssembledMessage:
    """Merge the fragments of one logical message.

    Fragments are concatenated in the order given; ordering is the ingress
    adapter's job. Sender and timestamp come from the first fragment that has
    a sender, falling back to the first fragment's timestamp.
    """

    if not fragments:
        raise EmptyInputError()

    sender = UNKNOWN_SENDER
    timestamp = fragments[0].timestamp_millis
    for fragment in fragments:
        if fragment.sender_raw is not None:
            sender = fragment.sender_raw
            timestamp = fragment.timestamp_millis
            break

    body = "".join(fragment.body_raw for fragment in fragments if fragment.body_raw is not None)
    return AssembledMessage(sender=sender, body=body.strip(), timestamp=timestamp)
