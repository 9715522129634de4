"""Flap suppression for alert requests.

The debouncer turns the monitor's stream of alert requests into the minimal
set of notifications worth sending. It is a two-state machine:

- WAITING: nothing is held back. Recoveries and outages that are already
  older than FRESH_OUTAGE_WINDOW are dispatched immediately; a fresh outage is
  held and a standoff timer starts.
- SUPPRESSING: a fresh outage is pending. Further "down" requests are
  absorbed. If the timer expires first the pending outage is dispatched. If a
  recovery arrives first, it is dispatched only when the total downtime
  exceeded the standoff; otherwise the whole down/up pair is dropped.

Each suppression cycle has a number. A timer event carrying an old cycle
number is ignored, so a timer that outlives its cycle can never fire against
newer state.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from datetime import datetime, timedelta
from typing import Optional

from core.config import FRESH_OUTAGE_WINDOW
from core.models import Clock, TargetStatus, utcnow
from core.ports import NotifierPort

LOGGER = logging.getLogger(__name__)


class DebounceState(enum.Enum):
    WAITING = "waiting"
    SUPPRESSING = "suppressing"


class AlertDebouncer:
    """Decides whether and when an alert request becomes a notification."""

    def __init__(
        self,
        standoff: float,
        notifier: NotifierPort,
        clock: Clock = utcnow,
        verbose: bool = False,
    ) -> None:
        self._standoff = standoff
        self._notifier = notifier
        self._clock = clock
        self._verbose = verbose
        self._state = DebounceState.WAITING
        self._pending: Optional[TargetStatus] = None
        self._cycle = 0
        self._last_alert: Optional[datetime] = None

    @property
    def state(self) -> DebounceState:
        return self._state

    @property
    def pending(self) -> Optional[TargetStatus]:
        return self._pending

    @property
    def cycle(self) -> int:
        return self._cycle

    @property
    def standoff(self) -> float:
        return self._standoff

    @property
    def last_alert(self) -> Optional[datetime]:
        """Time of the last dispatched notification, None before the first."""

        return self._last_alert

    def on_request(self, status: TargetStatus, now: datetime) -> Optional[TargetStatus]:
        """Feed one alert request; return the snapshot to dispatch, if any."""

        if self._state is DebounceState.WAITING:
            # Target is online, or has been offline for longer than a minute.
            if status.online or status.downtime(now) > FRESH_OUTAGE_WINDOW:
                return status
            self._pending = status
            self._state = DebounceState.SUPPRESSING
            self._cycle += 1
            return None

        if not status.online:
            # Still down: keep waiting for the timer or a recovery.
            return None

        downtime = status.downtime(now)
        self._resolve()
        if downtime > timedelta(seconds=self._standoff):
            return status
        if self._verbose:
            LOGGER.info("%s down/up alerts skipped due to standoff", status.label)
        return None

    def on_timer(self, cycle: int) -> Optional[TargetStatus]:
        """Standoff expiry for ``cycle``; return the withheld outage if still pending."""

        if self._state is not DebounceState.SUPPRESSING or cycle != self._cycle:
            return None
        pending = self._pending
        self._resolve()
        return pending

    def _resolve(self) -> None:
        self._state = DebounceState.WAITING
        self._pending = None

    async def dispatch(self, status: TargetStatus) -> None:
        """Hand a decided alert to the notifier and record the alert time.

        The alert counts as sent even if delivery failed.
        """

        try:
            await self._notifier.send(status)
        finally:
            self._last_alert = self._clock()

    async def run(self, requests: "asyncio.Queue[TargetStatus]") -> None:
        """Consume alert requests forever, driving the standoff timer."""

        loop = asyncio.get_running_loop()
        deadline = 0.0
        while True:
            decision: Optional[TargetStatus]
            if self._state is DebounceState.WAITING:
                status = await requests.get()
                decision = self.on_request(status, self._clock())
                if self._state is DebounceState.SUPPRESSING:
                    deadline = loop.time() + self._standoff
            else:
                cycle = self._cycle
                try:
                    status = await asyncio.wait_for(requests.get(), max(0.0, deadline - loop.time()))
                except asyncio.TimeoutError:
                    decision = self.on_timer(cycle)
                else:
                    decision = self.on_request(status, self._clock())

            if decision is not None:
                await self.dispatch(decision)
