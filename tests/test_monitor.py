from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from core.config import AlertConfig, MonitorConfig
from core.errors import ProbeError
from core.models import ProbeOptions, ProbeResult, Target, TargetAddress, TargetStatus
from core.monitor import TargetMonitor

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class ScriptedProber:
    """Returns results from a script; strings become ProbeErrors."""

    def __init__(self, script: list) -> None:
        self._script = list(script)
        self.calls: list[tuple[TargetAddress, ProbeOptions]] = []

    async def probe(self, address: TargetAddress, options: ProbeOptions) -> ProbeResult:
        self.calls.append((address, options))
        outcome = self._script.pop(0)
        if isinstance(outcome, str):
            raise ProbeError(outcome)
        return ProbeResult(healthy=outcome)


class FakeSink:
    def __init__(self) -> None:
        self.published: list[TargetStatus] = []

    def publish(self, status: TargetStatus) -> None:
        self.published.append(status)


class FakeClock:
    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _monitor(
    script: list,
    *,
    clock: FakeClock,
    last_alert: Optional[datetime] = None,
    alert_interval: int = 3600,
    target: Optional[Target] = None,
):
    target = target or Target(id=7, name="web", addr="https://example.com", host="www.example.com", keyword="ok")
    config = MonitorConfig(timeout=5, alert=AlertConfig(interval=alert_interval))
    queue: asyncio.Queue[TargetStatus] = asyncio.Queue(maxsize=1)
    sink = FakeSink()
    prober = ScriptedProber(script)
    monitor = TargetMonitor(
        target=target,
        config=config,
        prober=prober,
        sink=sink,
        alert_requests=queue,
        last_alert=lambda: last_alert,
        clock=clock,
    )
    return monitor, queue, sink, prober


def _drain(queue: asyncio.Queue) -> list[TargetStatus]:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def test_starts_online_and_stays_quiet_while_healthy() -> None:
    clock = FakeClock()
    monitor, queue, sink, _ = _monitor([True, True], clock=clock)

    async def scenario() -> list[TargetStatus]:
        clock.advance(30)
        await monitor.check_once()
        clock.advance(30)
        await monitor.check_once()
        return _drain(queue)

    assert asyncio.run(scenario()) == []
    assert len(sink.published) == 2
    assert all(status.online for status in sink.published)
    assert sink.published[-1].since == T0
    assert sink.published[-1].last_check == T0 + timedelta(seconds=60)


def test_offline_edge_resets_since_and_requests_alert() -> None:
    clock = FakeClock()
    monitor, queue, sink, _ = _monitor(["connection refused"], clock=clock)

    async def scenario() -> list[TargetStatus]:
        clock.advance(30)
        await monitor.check_once()
        return _drain(queue)

    requests = asyncio.run(scenario())
    assert len(requests) == 1
    assert requests[0].online is False
    assert requests[0].since == T0 + timedelta(seconds=30)
    assert requests[0].error == "connection refused"
    assert sink.published == requests


def test_since_does_not_move_on_repeated_failures() -> None:
    clock = FakeClock()
    monitor, queue, sink, _ = _monitor([False, False, False], clock=clock, last_alert=T0)

    async def scenario() -> None:
        for _ in range(3):
            clock.advance(30)
            await monitor.check_once()
            _drain(queue)

    asyncio.run(scenario())
    assert [status.since for status in sink.published] == [T0 + timedelta(seconds=30)] * 3


def test_still_down_requests_only_after_alert_interval() -> None:
    clock = FakeClock()
    last_alert = T0 + timedelta(seconds=30)
    monitor, queue, _, _ = _monitor([False, False, False], clock=clock, last_alert=last_alert, alert_interval=100)

    async def scenario() -> list[int]:
        counts = []
        for step in (30, 60, 60):
            clock.advance(step)
            await monitor.check_once()
            counts.append(len(_drain(queue)))
        return counts

    # edge at t=30, t=90 is within the interval, t=150 is past it
    assert asyncio.run(scenario()) == [1, 0, 1]


def test_still_down_requests_every_cycle_before_first_alert() -> None:
    clock = FakeClock()
    monitor, queue, _, _ = _monitor([False, False], clock=clock, last_alert=None)

    async def scenario() -> list[int]:
        counts = []
        for _ in range(2):
            clock.advance(30)
            await monitor.check_once()
            counts.append(len(_drain(queue)))
        return counts

    assert asyncio.run(scenario()) == [1, 1]


def test_recovery_keeps_outage_start() -> None:
    clock = FakeClock()
    monitor, queue, sink, _ = _monitor([False, True, True], clock=clock)

    async def scenario() -> list[list[TargetStatus]]:
        batches = []
        for _ in range(3):
            clock.advance(30)
            await monitor.check_once()
            batches.append(_drain(queue))
        return batches

    batches = asyncio.run(scenario())
    recovery = batches[1][0]
    assert recovery.online is True
    assert recovery.since == T0 + timedelta(seconds=30)
    assert recovery.downtime(clock()) == timedelta(seconds=60)
    assert batches[2] == []
    assert sink.published[-1].since == T0 + timedelta(seconds=30)


def test_probe_options_carry_overrides_and_timeout() -> None:
    clock = FakeClock()
    monitor, _, _, prober = _monitor([True], clock=clock)

    asyncio.run(monitor.check_once())

    address, options = prober.calls[0]
    assert address.scheme == "https"
    assert address.host == "example.com"
    assert options == ProbeOptions(
        timeout=5,
        host_override="www.example.com",
        tls_name_override="www.example.com",
        keyword="ok",
    )


def test_alert_request_blocks_while_queue_is_full() -> None:
    clock = FakeClock()
    monitor, queue, _, _ = _monitor([False, True], clock=clock)

    async def scenario() -> None:
        await monitor.check_once()
        assert queue.full()
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(monitor.check_once(), timeout=0.1)

    asyncio.run(scenario())


def test_run_stops_on_unparseable_address() -> None:
    clock = FakeClock()
    target = Target(id=3, name="broken", addr="http://host:notaport/")
    monitor, queue, sink, prober = _monitor([], clock=clock, target=target)

    asyncio.run(asyncio.wait_for(monitor.run(), timeout=1))

    assert queue.empty()
    assert sink.published == []
    assert prober.calls == []


def test_interval_is_clamped_to_minimum() -> None:
    clock = FakeClock()
    target = Target(id=4, name="fast", addr="tcp://db:5432", interval=5)
    monitor, _, _, _ = _monitor([], clock=clock, target=target)
    assert monitor.interval == 30
