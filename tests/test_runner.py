from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import core.monitor as monitor_module
from core.config import MonitorConfig
from core.debounce import DebounceState
from core.models import ProbeOptions, ProbeResult, Target, TargetAddress, TargetStatus
from core.runner import TargetWatch, _guarded, run_targets

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class ToggleProber:
    def __init__(self) -> None:
        self.healthy = True

    async def probe(self, address: TargetAddress, options: ProbeOptions) -> ProbeResult:
        return ProbeResult(healthy=self.healthy, message="" if self.healthy else "unreachable")


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[TargetStatus] = []

    async def send(self, status: TargetStatus) -> bool:
        self.sent.append(status)
        return True


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


def _watch(config: MonitorConfig, clock: FakeClock, target: Optional[Target] = None):
    target = target or Target(id=1, name="web", addr="http://example.com", interval=45)
    prober = ToggleProber()
    notifier = FakeNotifier()
    sink = FakeSink()
    watch = TargetWatch(target, config, prober, notifier, sink, clock=clock)
    return watch, prober, notifier, sink


def test_standoff_is_raised_above_target_interval() -> None:
    watch, _, _, _ = _watch(MonitorConfig(standoff=40), FakeClock())
    assert watch.monitor.interval == 45
    assert watch.debouncer.standoff == 46


def test_flap_produces_no_notification_end_to_end() -> None:
    clock = FakeClock()
    watch, prober, notifier, sink = _watch(MonitorConfig(), clock)

    async def scenario() -> None:
        task = asyncio.create_task(watch.debouncer.run(watch.requests))
        prober.healthy = False
        clock.now = T0 + timedelta(seconds=45)
        await watch.monitor.check_once()
        await asyncio.sleep(0)
        assert watch.debouncer.state is DebounceState.SUPPRESSING

        prober.healthy = True
        clock.now = T0 + timedelta(seconds=90)
        await watch.monitor.check_once()
        await asyncio.sleep(0.01)
        task.cancel()

    asyncio.run(scenario())
    assert notifier.sent == []
    assert watch.debouncer.state is DebounceState.WAITING
    assert [status.online for status in sink.published] == [False, True]


def test_dispatched_alert_is_visible_to_monitor() -> None:
    clock = FakeClock()
    watch, prober, notifier, _ = _watch(MonitorConfig(), clock)

    async def scenario() -> TargetStatus:
        prober.healthy = False
        clock.now = T0 + timedelta(seconds=45)
        await watch.monitor.check_once()
        request = watch.requests.get_nowait()
        assert watch.debouncer.on_request(request, clock()) is None

        clock.now = T0 + timedelta(seconds=92)
        released = watch.debouncer.on_timer(watch.debouncer.cycle)
        await watch.debouncer.dispatch(released)

        clock.now = T0 + timedelta(seconds=135)
        return await watch.monitor.check_once()

    status = asyncio.run(scenario())
    assert len(notifier.sent) == 1
    assert notifier.sent[0].online is False
    assert status.last_alert == T0 + timedelta(seconds=92)
    # The alert is recent, so no reminder is queued.
    assert watch.requests.empty()


def test_guard_logs_task_failure(caplog) -> None:
    async def explode() -> None:
        raise RuntimeError("kaboom")

    with caplog.at_level(logging.ERROR, logger="core.runner"):
        asyncio.run(_guarded(explode(), "[1:x]", "monitor"))

    assert "[1:x] monitor task failed" in caplog.text


class RecordingProber(ToggleProber):
    def __init__(self) -> None:
        super().__init__()
        self.hosts: list[str] = []

    async def probe(self, address: TargetAddress, options: ProbeOptions) -> ProbeResult:
        self.hosts.append(address.host)
        return await super().probe(address, options)


def test_bad_address_stops_only_that_target(monkeypatch) -> None:
    monkeypatch.setattr(monitor_module.random, "randrange", lambda stop: 0)
    prober = RecordingProber()
    sink = FakeSink()
    targets = [
        Target(id=1, name="broken", addr="not a url"),
        Target(id=2, name="ok", addr="http://example.com"),
    ]

    async def scenario() -> None:
        runner = asyncio.create_task(run_targets(targets, MonitorConfig(), prober, FakeNotifier(), sink))
        await asyncio.sleep(0.05)
        runner.cancel()

    asyncio.run(scenario())
    assert prober.hosts == ["example.com"]
    assert [status.target.id for status in sink.published] == [2]
    assert sink.published[0].online is True
