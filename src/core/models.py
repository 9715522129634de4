"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any protocol or transport specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from urllib.parse import urlsplit

from core.errors import ConfigurationError

HTTP_SCHEMES = ("http", "https")
PING_SCHEME = "ping"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Target:
    """A monitored endpoint, immutable after configuration is loaded."""

    id: int
    name: str
    # Address of the target, e.g. "https://example.com/health" or "tcp://db:5432".
    addr: str
    # HTTP "Host:" header and TLS server name, if different from addr.
    host: str = ""
    # Polling interval in seconds; clamped to the configured minimum.
    interval: int = 0
    # Look for this string in the response body.
    keyword: str = ""
    # Shell command to run when an alert is dispatched.
    command: str = ""


@dataclass(frozen=True)
class TargetAddress:
    """A parsed target address."""

    scheme: str
    host: str
    port: Optional[int]
    path: str
    url: str

    @property
    def netloc(self) -> str:
        if self.port is None:
            return self.host
        return f"{self.host}:{self.port}"


def parse_address(addr: str) -> TargetAddress:
    """Parse a target address, raising ConfigurationError if it is unusable."""

    raw = (addr or "").strip()
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"target address {raw!r} could not be read, {exc}") from exc

    scheme = parts.scheme.lower()
    if not scheme or not parts.hostname:
        raise ConfigurationError(f"target address {raw!r} needs a scheme and a host")
    # Anything that is neither HTTP(S) nor ping is checked with a TCP connect.
    if scheme not in HTTP_SCHEMES and scheme != PING_SCHEME and port is None:
        raise ConfigurationError(f"target address {raw!r} needs a port for a tcp check")

    return TargetAddress(
        scheme=scheme,
        host=parts.hostname,
        port=port,
        path=parts.path,
        url=raw,
    )


@dataclass(frozen=True)
class ProbeOptions:
    """Per-check options handed to the prober."""

    timeout: float
    host_override: str = ""
    tls_name_override: str = ""
    keyword: str = ""


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one health probe."""

    healthy: bool
    message: str = ""


@dataclass(frozen=True)
class TargetStatus:
    """Immutable snapshot of a target's state at the moment it was emitted.

    ``since`` marks the start of the current online/offline run and only moves
    on an offline edge. On recovery it still points at the start of the outage
    that just ended, which is what the debouncer measures downtime against.
    """

    target: Target
    online: bool
    since: datetime
    error: str = ""
    last_check: Optional[datetime] = None
    last_alert: Optional[datetime] = None

    def downtime(self, now: datetime) -> timedelta:
        return now - self.since

    @property
    def label(self) -> str:
        return f"[{self.target.id}:{self.target.addr}]"
