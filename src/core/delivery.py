"""Resilient mail delivery (core domain).

State machine per call: PENDING -> attempt -> SUCCESS | RETRY | FATAL.
Transport errors are opaque here: we never look at SMTP codes, only at
whether `send` raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from core.config import RetryPolicy
from core.models import DeliveryAttempt, DeliveryOutcome, DeliveryStatus, FormattedPayload
from core.ports import MailTransportPort

LOGGER = logging.getLogger(__name__)

CANCELLED = "cancelled"


def backoff_seconds(policy: RetryPolicy, attempt_number: int) -> float:
    """Delay after a failed attempt: base_delay_ms * attempt_number."""

    return policy.base_delay_ms * attempt_number / 1000


async def _wait_or_cancelled(delay: float, cancel_event: Optional[asyncio.Event]) -> bool:
    """Suspend for `delay` seconds; return True if cancellation was requested."""

    if cancel_event is None:
        await asyncio.sleep(delay)
        return False
    if cancel_event.is_set() or delay <= 0:
        return cancel_event.is_set()
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True


async def deliver(
    payload: FormattedPayload,
    transport: MailTransportPort,
    policy: RetryPolicy,
    cancel_event: Optional[asyncio.Event] = None,
) -> DeliveryOutcome:
    """Send `payload` with bounded retries and report exactly one terminal outcome."""

    missing = transport.missing_configuration()
    if missing:
        detail = f"missing transport settings: {', '.join(missing)}"
        LOGGER.error("Delivery skipped, transport not configured (%s)", detail)
        return DeliveryOutcome(status=DeliveryStatus.NOT_CONFIGURED, attempts=0, last_error=detail)

    max_attempts = max(1, policy.max_attempts)
    history: List[DeliveryAttempt] = []
    last_error: Optional[str] = None

    for attempt_number in range(1, max_attempts + 1):
        try:
            await transport.send(payload)
        except Exception as exc:
            last_error = str(exc) or type(exc).__name__
        else:
            history.append(DeliveryAttempt(attempt_number, DeliveryStatus.SUCCESS))
            LOGGER.info("Delivered %r on attempt %s", payload.subject, attempt_number)
            return DeliveryOutcome(
                status=DeliveryStatus.SUCCESS,
                attempts=attempt_number,
                history=tuple(history),
            )

        if attempt_number >= max_attempts:
            history.append(DeliveryAttempt(attempt_number, DeliveryStatus.FATAL_FAILURE, last_error))
            break

        history.append(DeliveryAttempt(attempt_number, DeliveryStatus.TRANSIENT_FAILURE, last_error))
        delay = backoff_seconds(policy, attempt_number)
        LOGGER.warning(
            "Delivery attempt %s/%s failed: %s - retrying in %.1fs",
            attempt_number,
            max_attempts,
            last_error,
            delay,
        )
        if await _wait_or_cancelled(delay, cancel_event):
            LOGGER.warning("Delivery cancelled after %s attempt(s)", attempt_number)
            return DeliveryOutcome(
                status=DeliveryStatus.FATAL_FAILURE,
                attempts=attempt_number,
                last_error=CANCELLED,
                history=tuple(history),
            )

    LOGGER.error("Delivery failed after %s attempt(s): %s", max_attempts, last_error)
    return DeliveryOutcome(
        status=DeliveryStatus.FATAL_FAILURE,
        attempts=max_attempts,
        last_error=last_error,
        history=tuple(history),
    )
