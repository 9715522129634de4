"""Wiring of monitor/debouncer pairs.

Every target gets its own monitor task and its own debouncer task, joined by
a single-slot queue. Targets share nothing but the read-only MonitorConfig,
and a failure in one task is logged without touching any other target.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Iterable

from core.config import MonitorConfig, effective_interval, effective_standoff
from core.debounce import AlertDebouncer
from core.models import Clock, Target, TargetStatus, utcnow
from core.monitor import TargetMonitor
from core.ports import NotifierPort, ProberPort, StatusSinkPort

LOGGER = logging.getLogger(__name__)


class TargetWatch:
    """A target's monitor and debouncer joined by a capacity-1 queue."""

    def __init__(
        self,
        target: Target,
        config: MonitorConfig,
        prober: ProberPort,
        notifier: NotifierPort,
        sink: StatusSinkPort,
        clock: Clock = utcnow,
    ) -> None:
        self.target = target
        self.requests: "asyncio.Queue[TargetStatus]" = asyncio.Queue(maxsize=1)
        interval = effective_interval(target.interval, config)
        standoff = effective_standoff(config, interval)
        if config.standoff and standoff != config.standoff:
            LOGGER.warning(
                "[%s:%s] Standoff %s can't be <= Interval %s, Standoff now %s",
                target.id,
                target.addr,
                config.standoff,
                interval,
                standoff,
            )
        self.debouncer = AlertDebouncer(
            standoff=standoff,
            notifier=notifier,
            clock=clock,
            verbose=config.verbose,
        )
        # The monitor reads the debouncer's last alert time; both run on the
        # same event loop so no lock is needed.
        self.monitor = TargetMonitor(
            target=target,
            config=config,
            prober=prober,
            sink=sink,
            alert_requests=self.requests,
            last_alert=lambda: self.debouncer.last_alert,
            clock=clock,
        )

    def start(self) -> list["asyncio.Task[None]"]:
        name = f"target-{self.target.id}"
        return [
            asyncio.create_task(_guarded(self.monitor.run(), self.monitor.label, "monitor"), name=f"{name}-monitor"),
            asyncio.create_task(
                _guarded(self.debouncer.run(self.requests), self.monitor.label, "debouncer"),
                name=f"{name}-debouncer",
            ),
        ]


async def _guarded(coro: Awaitable[None], label: str, role: str) -> None:
    try:
        await coro
    except asyncio.CancelledError:
        raise
    except Exception:
        LOGGER.exception("%s %s task failed", label, role)


async def run_targets(
    targets: Iterable[Target],
    config: MonitorConfig,
    prober: ProberPort,
    notifier: NotifierPort,
    sink: StatusSinkPort,
) -> None:
    """Start a watch per target and run until the process ends."""

    tasks: list["asyncio.Task[None]"] = []
    for target in targets:
        tasks.extend(TargetWatch(target, config, prober, notifier, sink).start())
    if not tasks:
        LOGGER.warning("No targets configured")
        return
    await asyncio.gather(*tasks)
