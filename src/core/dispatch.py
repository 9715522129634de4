"""Alert fan-out to the configured notifier adapters."""

from __future__ import annotations

import logging
from typing import Iterable

from core.errors import NotifierError
from core.models import TargetStatus
from core.ports import NotifierPort

LOGGER = logging.getLogger(__name__)


class AlertDispatcher:
    """Send a decided alert through every notifier.

    A failing notifier is logged and skipped; delivery is never retried and
    never raises back into the debouncer.
    """

    def __init__(self, notifiers: Iterable[NotifierPort]) -> None:
        self._notifiers = list(notifiers)

    async def send(self, status: TargetStatus) -> bool:
        state = "online" if status.online else "offline"
        any_delivered = False
        for notifier in self._notifiers:
            name = type(notifier).__name__
            try:
                delivered = await notifier.send(status)
            except NotifierError as exc:
                LOGGER.error("%s %s alert failed via %s: %s", status.label, state, name, exc)
            except Exception:
                LOGGER.exception("%s unexpected error in %s", status.label, name)
            else:
                if delivered:
                    any_delivered = True
                    LOGGER.info("%s %s alert sent via %s", status.label, state, name)
        if not any_delivered:
            LOGGER.info("%s %s alert NOT sent, no notifier delivered it", status.label, state)
        return any_delivered
