"""Per-target polling loop and up/down edge detection.

One TargetMonitor runs per configured target. Each cycle it probes the
target, updates the online/offline state it exclusively owns, publishes a
snapshot to the status sink and, on an edge or a due "still down" reminder,
hands a snapshot to its paired debouncer through a single-slot queue.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from core.config import MonitorConfig, effective_interval
from core.errors import ConfigurationError, ProbeError
from core.models import (
    Clock,
    ProbeOptions,
    Target,
    TargetAddress,
    TargetStatus,
    parse_address,
    utcnow,
)
from core.ports import ProberPort, StatusSinkPort

LOGGER = logging.getLogger(__name__)


def probe_options(target: Target, config: MonitorConfig) -> ProbeOptions:
    """The host override doubles as the TLS server name."""

    return ProbeOptions(
        timeout=config.timeout,
        host_override=target.host,
        tls_name_override=target.host,
        keyword=target.keyword,
    )


class TargetMonitor:
    """Runs the probe on schedule and decides when to signal the debouncer."""

    def __init__(
        self,
        target: Target,
        config: MonitorConfig,
        prober: ProberPort,
        sink: StatusSinkPort,
        alert_requests: "asyncio.Queue[TargetStatus]",
        last_alert: Callable[[], Optional[datetime]] = lambda: None,
        clock: Clock = utcnow,
    ) -> None:
        self._target = target
        self._config = config
        self._prober = prober
        self._sink = sink
        self._alert_requests = alert_requests
        self._last_alert = last_alert
        self._clock = clock
        self._interval = effective_interval(target.interval, config)
        self._address: Optional[TargetAddress] = None
        self._status = TargetStatus(target=target, online=True, since=clock())

    @property
    def interval(self) -> int:
        return self._interval

    @property
    def status(self) -> TargetStatus:
        return self._status

    @property
    def label(self) -> str:
        return self._status.label

    async def run(self) -> None:
        """Validate the address, wait a random offset, then poll forever.

        Ticks are a plain sleep of one interval after each cycle, so the
        schedule drifts by the duration of each check over long runtimes.
        """

        LOGGER.info("Starting monitor for %s %s", self._target.name, self.label)
        try:
            self._address = parse_address(self._target.addr)
        except ConfigurationError as exc:
            LOGGER.error("%s %s, monitor stopped", self.label, exc)
            return

        # Randomize the first check so many targets do not poll in lockstep.
        await asyncio.sleep(random.randrange(self._interval))

        while True:
            await self.check_once()
            await asyncio.sleep(self._interval)

    async def check_once(self) -> TargetStatus:
        """Run a single probe cycle and return the snapshot it emitted."""

        if self._address is None:
            self._address = parse_address(self._target.addr)

        failed = False
        error = ""
        try:
            result = await self._prober.probe(self._address, probe_options(self._target, self._config))
        except ProbeError as exc:
            LOGGER.warning("%s %s check error, %s", self.label, self._address.scheme, exc)
            failed = True
            error = str(exc)
        else:
            failed = not result.healthy
            error = result.message

        now = self._clock()
        status = replace(
            self._status,
            error=error,
            last_check=now,
            last_alert=self._last_alert(),
        )

        if self._config.verbose:
            LOGGER.info(
                "%s failed=%s, online=%s, since=%s, last_alert=%s, last_check=%s",
                self.label,
                failed,
                status.online,
                status.since,
                status.last_alert,
                status.last_check,
            )

        request_alert = False
        if failed:
            if status.online:
                # was online, now offline
                status = replace(status, online=False, since=now)
                request_alert = True
            elif self._reminder_due(status, now):
                # was offline, still offline
                request_alert = True
        elif not status.online:
            # was offline, now online; since keeps the outage start
            status = replace(status, online=True)
            if self._config.verbose:
                LOGGER.info("%s was offline, now online - down for %s", self.label, status.downtime(now))
            request_alert = True

        self._status = status
        if request_alert:
            # Blocks while the debouncer has not consumed the previous request.
            await self._alert_requests.put(status)
        self._sink.publish(status)
        return status

    def _reminder_due(self, status: TargetStatus, now: datetime) -> bool:
        if status.last_alert is None:
            return True
        return now - status.last_alert > timedelta(seconds=self._config.alert.interval)
