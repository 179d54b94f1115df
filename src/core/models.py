"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any transport-specific types. Every model is a frozen value type
that lives only as long as the processing of one logical message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class RawFragment:
    """One physically transmitted piece of a possibly multi-part SMS."""

    sender_raw: Optional[str]
    body_raw: Optional[str]
    timestamp_millis: int
    sequence_hint: Optional[int] = None


@dataclass(frozen=True)
class NormalizedNumber:
    """Sender identifier in a comparable international form."""

    canonical: str
    country_hint: Optional[str] = None


@dataclass(frozen=True)
class AssembledMessage:
    """Logical message after fragment reassembly."""

    sender: str
    body: str
    timestamp: int


@dataclass(frozen=True)
class FilterDecision:
    """Accept/reject verdict with every failing check, in evaluation order."""

    forward: bool
    reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FormattedPayload:
    """Rendered mail subject and body."""

    subject: str
    body: str


class DeliveryStatus(str, Enum):
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    FATAL_FAILURE = "fatal_failure"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class DeliveryAttempt:
    """Result of a single transport call."""

    attempt_number: int
    outcome: DeliveryStatus
    error_detail: Optional[str] = None


@dataclass(frozen=True)
class DeliveryOutcome:
    """Terminal result of one delivery run.

    `history` keeps every attempt for diagnostics; callers usually only look
    at `status`, `attempts` and `last_error`.
    """

    status: DeliveryStatus
    attempts: int
    last_error: Optional[str] = None
    history: Tuple[DeliveryAttempt, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.status is DeliveryStatus.SUCCESS


class StatusEventKind(str, Enum):
    MESSAGE_FORWARDED = "message_forwarded"
    MESSAGE_FILTERED = "message_filtered"
    DELIVERY_SUCCEEDED = "delivery_succeeded"
    DELIVERY_FAILED = "delivery_failed"


@dataclass(frozen=True)
class StatusEvent:
    """Observability event emitted by the pipeline driver."""

    kind: StatusEventKind
    sender: str
    reasons: Tuple[str, ...] = ()
    attempts: int = 0
    last_error: Optional[str] = None
