from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from adapters.notification_formatting import (
    alert_kind,
    format_duration,
    format_html,
    format_notification,
    format_plain,
    format_subject,
)
from core.models import Target, TargetStatus

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _status(
    *,
    online: bool,
    last_alert: Optional[datetime] = None,
    error: str = "",
    name: str = "Shop",
) -> TargetStatus:
    target = Target(id=1, name=name, addr="https://shop.example.com")
    return TargetStatus(target=target, online=online, since=T0, error=error, last_alert=last_alert)


def test_format_duration() -> None:
    assert format_duration(timedelta(seconds=7)) == "7s"
    assert format_duration(timedelta(minutes=3, seconds=4)) == "3m 04s"
    assert format_duration(timedelta(hours=2, minutes=5, seconds=7)) == "2h 05m 07s"
    assert format_duration(timedelta(seconds=-5)) == "0s"


def test_alert_kind_distinguishes_reminders() -> None:
    assert alert_kind(_status(online=True)) == "UP"
    assert alert_kind(_status(online=False)) == "DOWN"
    assert alert_kind(_status(online=False, last_alert=T0 - timedelta(hours=1))) == "DOWN"
    assert alert_kind(_status(online=False, last_alert=T0 + timedelta(minutes=5))) == "STILL DOWN"


def test_subject_uses_name_or_address() -> None:
    assert format_subject(_status(online=False)) == "[DOWN] Shop"
    assert format_subject(_status(online=True, name="")) == "[UP] https://shop.example.com"


def test_plain_recovery_includes_downtime() -> None:
    body = format_plain(_status(online=True), T0 + timedelta(minutes=2, seconds=30))
    assert "Target: Shop (https://shop.example.com)" in body
    assert "Status: online" in body
    assert "Downtime: 2m 30s" in body


def test_plain_outage_includes_error() -> None:
    body = format_plain(_status(online=False, error="keyword 'OK' not found"), T0)
    assert "Status: offline" in body
    assert "Error: keyword 'OK' not found" in body
    assert "Downtime" not in body


def test_html_escapes_values() -> None:
    body = format_html(_status(online=False, error="<timeout>"), T0)
    assert "&lt;timeout&gt;" in body
    assert body.startswith("<b>[DOWN] Shop</b>")


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_notification(_status(online=True), T0, mode="markdown")
