"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for transport, configuration and status
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Protocol

from core.config import ConfigSnapshot
from core.models import FormattedPayload, StatusEvent


class MailTransportPort(Protocol):
    """Outbound mail operations required by the delivery pipeline.

    `send` signals failure by raising; the pipeline treats every exception
    as an opaque failure.
    """

    def missing_configuration(self) -> List[str]:
        ...

    async def send(self, payload: FormattedPayload) -> None:
        ...


class ConfigProviderPort(Protocol):
    """Supplies an immutable configuration snapshot per read."""

    def snapshot(self) -> ConfigSnapshot:
        ...


class StatusSinkPort(Protocol):
    """Receives pipeline events for observability only."""

    async def publish(self, event: StatusEvent) -> None:
        ...
