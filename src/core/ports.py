"""Ports (interfaces) used by the core monitor.

Ports define the minimal contracts for probe, notification and status
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Protocol

from core.models import ProbeOptions, ProbeResult, TargetAddress, TargetStatus


class ProberPort(Protocol):
    """Health probe required by the target monitor.

    Implementations raise ProbeError for a failed check.
    """

    async def probe(self, address: TargetAddress, options: ProbeOptions) -> ProbeResult:
        ...


class NotifierPort(Protocol):
    """Delivery of a decided alert.

    Returns False when the notifier has nothing to deliver for this target.
    Implementations raise NotifierError when delivery fails.
    """

    async def send(self, status: TargetStatus) -> bool:
        ...


class StatusSinkPort(Protocol):
    """Receives every status snapshot the monitor emits."""

    def publish(self, status: TargetStatus) -> None:
        ...
