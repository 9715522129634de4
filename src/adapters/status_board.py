"""In-memory status sink.

Keeps the latest snapshot per target for reporting and logs every
online/offline change it sees. Nothing is persisted across restarts.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.table import Table

from adapters.notification_formatting import format_duration
from core.models import Clock, TargetStatus, utcnow

LOGGER = logging.getLogger(__name__)


class StatusBoard:
    """StatusSinkPort implementation backing the console report."""

    def __init__(self, verbose: bool = False, clock: Clock = utcnow) -> None:
        self._verbose = verbose
        self._clock = clock
        self._latest: dict[int, TargetStatus] = {}

    def publish(self, status: TargetStatus) -> None:
        previous = self._latest.get(status.target.id)
        self._latest[status.target.id] = status
        if previous is not None and previous.online != status.online:
            LOGGER.info("%s is now %s", status.label, "online" if status.online else "offline")
        elif previous is None and not status.online:
            LOGGER.info("%s is offline", status.label)
        if self._verbose:
            LOGGER.info("%s snapshot online=%s error=%r", status.label, status.online, status.error)

    def get(self, target_id: int) -> Optional[TargetStatus]:
        return self._latest.get(target_id)

    def snapshots(self) -> list[TargetStatus]:
        return [self._latest[key] for key in sorted(self._latest)]

    def counts(self) -> tuple[int, int]:
        """Return (online, offline) counts."""

        online = sum(1 for status in self._latest.values() if status.online)
        return online, len(self._latest) - online

    def render(self) -> Table:
        """Build a rich table of the latest snapshots."""

        online, offline = self.counts()
        table = Table(title=f"upwatch: {online} online, {offline} offline")
        table.add_column("ID", justify="right")
        table.add_column("Name")
        table.add_column("Address")
        table.add_column("Status")
        table.add_column("For")
        table.add_column("Last check")
        table.add_column("Error")

        now = self._clock()
        for status in self.snapshots():
            state = "[green]ONLINE[/green]" if status.online else "[red]OFFLINE[/red]"
            # since only moves on an offline edge, so the run length is only
            # meaningful while the target is down.
            duration = "" if status.online else format_duration(status.downtime(now))
            last_check = status.last_check.astimezone().strftime("%H:%M:%S") if status.last_check else ""
            table.add_row(
                str(status.target.id),
                status.target.name,
                status.target.addr,
                state,
                duration,
                last_check,
                status.error,
            )
        return table
