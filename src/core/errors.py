"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for upwatch errors."""


class ProbeError(MonitorError):
    """A health probe failed (network error, protocol error, keyword missing)."""


class ConfigurationError(MonitorError):
    """A target cannot be monitored, e.g. its address is unparseable."""


class NotifierError(MonitorError):
    """A decided alert could not be delivered."""
