"""Core message processing pipeline.

This module is transport-agnostic. It only relies on ports for mail delivery,
configuration and status events, enabling other ingress adapters without
changes here.

Order for one logical message:
1) Read the configuration snapshot (once; never re-read during retries)
2) Assemble fragments and validate the body
3) Apply the filter engine
4) Format the mail payload
5) Deliver with retry/backoff
6) Report the outcome to the status sink
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
import logging
from typing import Optional, Sequence, Set

from core.assembler import EmptyInputError, assemble
from core.config import RetryPolicy
from core.delivery import deliver
from core.filter_engine import decide
from core.formatter import format_message
from core.models import DeliveryOutcome, DeliveryStatus, RawFragment, StatusEvent, StatusEventKind
from core.numbers import normalize
from core.ports import ConfigProviderPort, MailTransportPort, StatusSinkPort
from core.rules_engine import DEFAULT_SPAM_RULES, SpamRule

LOGGER = logging.getLogger(__name__)


@dataclass
class PipelineState:
    """Mutable state owned by one driver instance and shared with its workers."""

    running: bool = True
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    in_flight: Set["asyncio.Task[Optional[DeliveryOutcome]]"] = field(default_factory=set)
    forwarded: int = 0
    filtered: int = 0
    delivered: int = 0
    failed: int = 0
    invalid: int = 0


class MessageProcessor:
    """Orchestrates assembly, filtering, formatting, delivery and reporting."""

    def __init__(
        self,
        config_provider: ConfigProviderPort,
        transport: MailTransportPort,
        status_sink: StatusSinkPort,
        policy: RetryPolicy = RetryPolicy(),
        spam_rules: Sequence[SpamRule] = DEFAULT_SPAM_RULES,
        state: Optional[PipelineState] = None,
    ) -> None:
        self._config_provider = config_provider
        self._transport = transport
        self._status_sink = status_sink
        self._policy = policy
        self._spam_rules = list(spam_rules)
        self.state = state or PipelineState()

    async def _publish(self, event: StatusEvent) -> None:
        # Status reporting is observability only; a broken sink must not
        # change what happens to the message.
        try:
            await self._status_sink.publish(event)
        except Exception:
            LOGGER.exception("Status sink failed for %s", event.kind.value)

    async def handle(self, fragments: Sequence[RawFragment]) -> Optional[DeliveryOutcome]:
        """Process one logical message end to end.

        Returns the delivery outcome, or None when the message was invalid or
        filtered out (no delivery attempted).
        """

        snapshot = self._config_provider.snapshot()

        try:
            message = assemble(fragments)
        except EmptyInputError as exc:
            self.state.invalid += 1
            LOGGER.warning("Dropping delivery event: %s", exc)
            return None
        if not message.body:
            self.state.invalid += 1
            LOGGER.warning("Dropping message from %s: empty body after assembly", message.sender)
            return None

        sender = normalize(message.sender, snapshot.filter.country_code).canonical
        message = replace(message, sender=sender)
        decision = decide(message, snapshot.filter, self._spam_rules)
        if not decision.forward:
            # Filtering is a normal outcome, not a failure.
            self.state.filtered += 1
            LOGGER.info("Message from %s filtered (%s)", sender, "; ".join(decision.reasons))
            await self._publish(
                StatusEvent(kind=StatusEventKind.MESSAGE_FILTERED, sender=sender, reasons=decision.reasons)
            )
            return None

        self.state.forwarded += 1
        await self._publish(StatusEvent(kind=StatusEventKind.MESSAGE_FORWARDED, sender=sender))

        payload = format_message(message, snapshot.templates)
        outcome = await deliver(payload, self._transport, self._policy, self.state.cancel_event)

        if outcome.status is DeliveryStatus.SUCCESS:
            self.state.delivered += 1
            await self._publish(
                StatusEvent(
                    kind=StatusEventKind.DELIVERY_SUCCEEDED,
                    sender=sender,
                    attempts=outcome.attempts,
                )
            )
        else:
            self.state.failed += 1
            await self._publish(
                StatusEvent(
                    kind=StatusEventKind.DELIVERY_FAILED,
                    sender=sender,
                    attempts=outcome.attempts,
                    last_error=outcome.last_error,
                )
            )
        return outcome

    async def _run_worker(self, fragments: Sequence[RawFragment]) -> Optional[DeliveryOutcome]:
        try:
            return await self.handle(fragments)
        except Exception:
            LOGGER.exception("Error while processing message")
            return None

    def submit(self, fragments: Sequence[RawFragment]) -> "asyncio.Task[Optional[DeliveryOutcome]]":
        """Start a worker task for one logical message and return immediately.

        Must be called from inside a running event loop.
        """

        if not self.state.running:
            raise RuntimeError("Pipeline is stopped; not accepting new messages")
        # Copy so later mutation by the caller cannot leak into assembly.
        task = asyncio.get_running_loop().create_task(self._run_worker(tuple(fragments)))
        self.state.in_flight.add(task)
        task.add_done_callback(self.state.in_flight.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight worker to finish."""

        while self.state.in_flight:
            await asyncio.gather(*list(self.state.in_flight), return_exceptions=True)

    def stop(self) -> None:
        """Refuse new work and cut short any pending backoff waits."""

        self.state.running = False
        self.state.cancel_event.set()
