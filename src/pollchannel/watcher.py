"""Polling watcher for a single channel file.

Re-reads one file every poll interval and reports content transitions.
"""

from __future__ import annotations

import logging
from typing import Callable

from pollchannel.errors import TransientPollError
from pollchannel.scheduler import Scheduler, TimerHandle
from pollchannel.vfs import VirtualFilesystem

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


def _log_poll_error(error: TransientPollError) -> None:
    logger.error("%s", error, exc_info=error.cause)


class PollingWatcher:
    """Watches one file and calls ``on_change`` once per content transition.

    The first successful read only seeds the baseline. Read failures are
    reported to ``on_error`` and never stop the loop.
    """

    def __init__(
        self,
        fs: VirtualFilesystem,
        path: str,
        on_change: Callable[[str], None],
        scheduler: Scheduler,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_error: Callable[[TransientPollError], None] | None = None,
    ) -> None:
        self.fs = fs
        self.path = path
        self.on_change = on_change
        self.scheduler = scheduler
        self.poll_interval = poll_interval
        self.on_error = on_error or _log_poll_error
        self.baseline: str | None = None
        self._running = False
        self._timer: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def seeded(self) -> bool:
        return self.baseline is not None

    def start(self) -> None:
        """Schedule the first read cycle immediately."""
        if self._running:
            return
        self._running = True
        logger.info("Watching %s (poll interval: %.2fs)", self.path, self.poll_interval)
        if self._timer is None:
            self._timer = self.scheduler.call_soon(self._check)

    def stop(self) -> None:
        """Stop scheduling further cycles. An in-flight cycle still completes."""
        if not self._running:
            return
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.info("Stopped watching %s", self.path)

    def _check(self) -> None:
        self._timer = None
        if not self._running:
            return
        try:
            self.check_once()
        except Exception as exc:
            self.on_error(TransientPollError(self.path, exc))
        finally:
            # start() from inside this cycle may already have scheduled the next one
            if self._running and self._timer is None:
                self._timer = self.scheduler.call_later(self.poll_interval, self._check)

    def check_once(self) -> bool:
        """Run one read/compare cycle. Returns True if a change was reported."""
        content = self.fs.read_file(self.path)

        if self.baseline is None:
            self.baseline = content
            return False

        if content == self.baseline:
            return False

        logger.info("File %s has changed", self.path)
        self.baseline = content
        self.on_change(content)
        return True
