"""Shell command notification adapter.

Runs the target's configured command when an alert is dispatched. The
command is started and left running; its exit status is logged from a
background task so a slow command never holds up the debouncer.
"""

from __future__ import annotations

import asyncio
import logging

from core.errors import NotifierError
from core.models import TargetStatus

LOGGER = logging.getLogger(__name__)

SHELL = "/bin/bash"


class CommandNotifier:
    """Notifier adapter that runs ``target.command`` through bash."""

    def __init__(self, shell: str = SHELL) -> None:
        self._shell = shell
        self._running: set["asyncio.Task[None]"] = set()

    @property
    def running(self) -> int:
        return len(self._running)

    async def send(self, status: TargetStatus) -> bool:
        command = status.target.command
        if not command:
            return False

        try:
            proc = await asyncio.create_subprocess_exec(self._shell, "-c", command)
        except OSError as exc:
            raise NotifierError(f"error run command, err {exc}") from exc

        # Keep a reference so the reaper is not garbage collected mid-wait.
        task = asyncio.create_task(self._reap(proc, status.label, command))
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return True

    async def wait_finished(self) -> None:
        """Wait for every command started so far to exit."""

        if self._running:
            await asyncio.gather(*self._running)

    async def _reap(self, proc: asyncio.subprocess.Process, label: str, command: str) -> None:
        returncode = await proc.wait()
        if returncode != 0:
            LOGGER.error("%s %s", label, NotifierError(f"command {command!r} exited with status {returncode}"))
            return
        LOGGER.debug("%s command %r finished", label, command)
