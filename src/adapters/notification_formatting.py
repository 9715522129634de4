"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from datetime import datetime, timedelta

from core.models import TargetStatus


def format_duration(delta: timedelta) -> str:
    """Render a duration as e.g. '2h 05m 07s'."""

    seconds = max(0, int(delta.total_seconds()))
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {seconds:02d}s"
    if minutes:
        return f"{minutes}m {seconds:02d}s"
    return f"{seconds}s"


def alert_kind(status: TargetStatus) -> str:
    """Classify an alert as DOWN, STILL DOWN (reminder) or UP."""

    if status.online:
        return "UP"
    if status.last_alert is not None and status.last_alert >= status.since:
        return "STILL DOWN"
    return "DOWN"


def target_label(status: TargetStatus) -> str:
    target = status.target
    if target.name and target.name != target.addr:
        return f"{target.name} ({target.addr})"
    return target.addr


def format_subject(status: TargetStatus) -> str:
    return f"[{alert_kind(status)}] {status.target.name or status.target.addr}"


def _timestamp(value: datetime) -> str:
    return value.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()


def _lines(status: TargetStatus, now: datetime) -> list[tuple[str, str]]:
    kind = alert_kind(status)
    rows = [("Target", target_label(status))]
    if status.online:
        rows.append(("Status", "online"))
        rows.append(("Down since", _timestamp(status.since)))
        rows.append(("Downtime", format_duration(status.downtime(now))))
    else:
        rows.append(("Status", "offline"))
        rows.append(("Since", _timestamp(status.since)))
        if kind == "STILL DOWN":
            rows.append(("Down for", format_duration(status.downtime(now))))
        if status.error:
            rows.append(("Error", status.error))
    if status.last_check is not None:
        rows.append(("Last check", _timestamp(status.last_check)))
    return rows


def format_plain(status: TargetStatus, now: datetime) -> str:
    """Create the plain-text body used by email."""

    lines = [f"{label}: {value}" for label, value in _lines(status, now)]
    lines.extend(["", "---", "upwatch notification"])
    return "\n".join(lines)


def format_html(status: TargetStatus, now: datetime) -> str:
    """Create the HTML body used by the Bot API adapter."""

    parts = [f"<b>{html.escape(format_subject(status))}</b>", "──────────────"]
    for label, value in _lines(status, now):
        parts.append(f"<b>{html.escape(label)}:</b> {html.escape(value)}")
    return "\n".join(parts)


def format_notification(status: TargetStatus, now: datetime, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "plain":
        return format_plain(status, now)
    if mode == "html":
        return format_html(status, now)
    raise ValueError(f"Unsupported notification format: {mode}")
