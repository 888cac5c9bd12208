"""Core data models for pollchannel."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pollchannel.scheduler import TimerHandle


class EntryType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    UNKNOWN = "unknown"


class CommandType(str, Enum):
    NAVIGATE = "navigate"
    UNRECOGNIZED = "unrecognized"


class Outcome(str, Enum):
    """What a single handling invocation did."""
    NAVIGATED = "navigated"
    INVALID_LOCATION = "invalid_location"
    UNRECOGNIZED = "unrecognized"
    IDLE = "idle"
    DROPPED = "dropped"
    FAILED = "failed"


@dataclass
class DirectoryItem:
    name: str
    type: EntryType

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type.value}


@dataclass
class Command:
    """A parsed line read from the channel.

    ``argument`` holds the trimmed remainder after the command prefix, or the
    raw content for unrecognized commands.
    """
    type: CommandType
    argument: str = ""
    raw: str = ""


@dataclass
class PendingAction:
    """A debounced handling call waiting for its timer."""
    handle: TimerHandle
    content: str

    def cancel(self) -> None:
        self.handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self.handle.cancelled


@dataclass
class DispatchResult:
    outcome: Outcome
    content: str
    location: str | None = None
    error: str | None = None
