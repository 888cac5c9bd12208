"""Host side effects the channel can trigger."""

from __future__ import annotations

import logging
import webbrowser
from typing import Protocol

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    def navigate(self, location: str) -> None: ...


class BrowserNavigator:
    """Opens locations in the host's web browser."""

    def __init__(self, new: int = 0) -> None:
        self.new = new

    def navigate(self, location: str) -> None:
        logger.info("Navigating to %s", location)
        if not webbrowser.open(location, new=self.new):
            logger.warning("No browser available to open %s", location)


class LoggingNavigator:
    """Records locations instead of opening them. Useful for dry runs."""

    def __init__(self) -> None:
        self.history: list[str] = []

    def navigate(self, location: str) -> None:
        logger.info("Navigation requested: %s", location)
        self.history.append(location)


def build_navigator(kind: str) -> Navigator:
    if kind == "browser":
        return BrowserNavigator()
    if kind == "log":
        return LoggingNavigator()
    raise ValueError(f"Unknown navigator: {kind}")
