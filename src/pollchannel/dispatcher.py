"""Action dispatcher: turns channel changes into host actions.

Watcher callbacks are debounced, handled one at a time, and the channel is
always emptied afterwards so the sender can issue the next command.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from pollchannel.commands import parse_command, parse_location
from pollchannel.errors import ValidationError
from pollchannel.host import Navigator
from pollchannel.models import CommandType, DispatchResult, Outcome, PendingAction
from pollchannel.scheduler import Scheduler, TimerHandle
from pollchannel.vfs import VirtualFilesystem
from pollchannel.watcher import DEFAULT_POLL_INTERVAL, PollingWatcher

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_PATH = "/easyrpg/Save/Text/current_action.txt"
DEFAULT_DEBOUNCE_DELAY = 0.1
DEFAULT_SETTLE_DELAY = 0.1


def _log_error(error: Exception) -> None:
    logger.error("Error handling current action: %s", error, exc_info=error)


class ActionDispatcher:
    """Owns the channel: bootstrap, debounce, guarded handling."""

    def __init__(
        self,
        fs: VirtualFilesystem,
        navigator: Navigator,
        scheduler: Scheduler,
        channel_path: str = DEFAULT_CHANNEL_PATH,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        debounce_delay: float = DEFAULT_DEBOUNCE_DELAY,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.fs = fs
        self.navigator = navigator
        self.scheduler = scheduler
        self.channel_path = channel_path
        self.poll_interval = poll_interval
        self.debounce_delay = debounce_delay
        self.settle_delay = settle_delay
        self.on_error = on_error or _log_error

        self.initialized = False
        self.processing = False
        self.pending: PendingAction | None = None
        self.watcher: PollingWatcher | None = None
        self.last_result: DispatchResult | None = None
        self._settle: TimerHandle | None = None

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        fs: VirtualFilesystem,
        navigator: Navigator,
        scheduler: Scheduler,
    ) -> ActionDispatcher:
        return cls(
            fs,
            navigator,
            scheduler,
            channel_path=config.get("channel_path", DEFAULT_CHANNEL_PATH),
            poll_interval=config.get("poll_interval", DEFAULT_POLL_INTERVAL),
            debounce_delay=config.get("debounce_delay", DEFAULT_DEBOUNCE_DELAY),
            settle_delay=config.get("settle_delay", DEFAULT_SETTLE_DELAY),
        )

    # --- Bootstrap ---

    def initialize(self) -> bool:
        """Clear any leftover command, then start watching after the settle delay.

        Returns False if the leftover command could not be cleared; the
        watcher is not started in that case.
        """
        current = ""
        try:
            current = self.fs.read_file(self.channel_path)
        except Exception as exc:
            logger.warning(
                "%s not found or unreadable, it will be initialized: %s",
                self.channel_path, exc,
            )

        if current.strip():
            logger.info("Found non-empty channel, clearing: %r", current)
            try:
                self.clear_channel()
            except Exception as exc:
                self.on_error(exc)
                return False
        else:
            logger.debug("Channel %s is already empty", self.channel_path)

        self._settle = self.scheduler.call_later(self.settle_delay, self._start_watching)
        return True

    def _start_watching(self) -> None:
        self._settle = None
        self.watcher = PollingWatcher(
            self.fs,
            self.channel_path,
            self.on_change,
            self.scheduler,
            poll_interval=self.poll_interval,
        )
        self.watcher.start()
        self.initialized = True
        logger.info("Current action system initialized")

    def stop(self) -> None:
        """Stop polling and drop any debounced action that has not fired yet."""
        if self._settle is not None:
            self._settle.cancel()
            self._settle = None
        if self.watcher is not None:
            self.watcher.stop()
        if self.pending is not None:
            self.pending.cancel()
            self.pending = None
        self.initialized = False

    # --- Debounce ---

    def on_change(self, content: str) -> None:
        """Watcher callback. Re-arms the debounce timer with ``content``."""
        if self.pending is not None:
            self.pending.cancel()
        handle = self.scheduler.call_later(self.debounce_delay, self._fire, content)
        self.pending = PendingAction(handle=handle, content=content)

    def _fire(self, content: str) -> None:
        self.pending = None
        self.handle(content)

    # --- Handling ---

    def handle(self, content: str) -> DispatchResult:
        """Handle one command. Overlapping calls are dropped, not queued."""
        if not self.initialized or self.processing:
            logger.debug("Dropping trigger while busy or uninitialized: %r", content)
            return DispatchResult(outcome=Outcome.DROPPED, content=content)

        self.processing = True
        try:
            result = self._execute(content)
        except Exception as exc:
            self.on_error(exc)
            result = DispatchResult(outcome=Outcome.FAILED, content=content, error=str(exc))
        finally:
            self.processing = False

        self.last_result = result
        return result

    def _execute(self, content: str) -> DispatchResult:
        command = parse_command(content)

        if command.type == CommandType.NAVIGATE:
            try:
                location = parse_location(command.argument)
            except ValidationError as exc:
                self.on_error(exc)
                self.clear_channel()
                return DispatchResult(
                    outcome=Outcome.INVALID_LOCATION, content=content, error=str(exc),
                )
            # channel must be empty before the host navigates away
            self.clear_channel()
            self.navigator.navigate(location)
            return DispatchResult(outcome=Outcome.NAVIGATED, content=content, location=location)

        if content:
            logger.info("Ignoring unrecognized command: %r", content[:80])
        self.clear_channel()
        return DispatchResult(
            outcome=Outcome.UNRECOGNIZED if content else Outcome.IDLE,
            content=content,
        )

    def clear_channel(self) -> None:
        self.fs.write_file(self.channel_path, "")
