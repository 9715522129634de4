"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

# Minimum interval between checks, in seconds. Used when none is configured.
CHECK_INTERVAL = 30

# Don't alert if a target goes down and comes back within this many seconds.
STANDOFF_INTERVAL = 60

# Outages older than this when first seen by the debouncer skip suppression.
# Fixed on purpose: it does not follow the per-target standoff.
FRESH_OUTAGE_WINDOW = timedelta(minutes=1)


@dataclass(frozen=True)
class EmailConfig:
    """SMTP settings for the email notifier."""

    smtp_host: str
    smtp_port: int
    from_address: str
    to_address: str
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    use_tls: bool = True


@dataclass(frozen=True)
class TelegramConfig:
    """Bot API settings for the Telegram notifier."""

    bot_token: str
    chat_id: str


@dataclass(frozen=True)
class AlertConfig:
    """Alert delivery settings.

    ``interval`` is the "still down" re-notify period in seconds while an
    outage lasts.
    """

    interval: int = 3600
    email: Optional[EmailConfig] = None
    telegram: Optional[TelegramConfig] = None


@dataclass(frozen=True)
class MonitorConfig:
    """Global settings shared read-only by every monitor and debouncer."""

    check_interval: int = CHECK_INTERVAL
    standoff: int = STANDOFF_INTERVAL
    timeout: float = 10.0
    alert: AlertConfig = field(default_factory=AlertConfig)
    verbose: bool = False


def effective_interval(configured: Optional[int], config: MonitorConfig) -> int:
    """Clamp a target interval to the configured minimum."""

    minimum = max(config.check_interval, CHECK_INTERVAL)
    if not configured or configured < minimum:
        return minimum
    return configured


def effective_standoff(config: MonitorConfig, interval: int) -> int:
    """Return the standoff for a target polled every ``interval`` seconds.

    An unset standoff falls back to the default, and a standoff that would not
    outlast one polling interval is raised to ``interval + 1``.
    """

    standoff = config.standoff or STANDOFF_INTERVAL
    if standoff <= interval:
        return interval + 1
    return standoff
