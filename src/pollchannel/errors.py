"""Error taxonomy for the command channel."""

from __future__ import annotations


class ChannelError(Exception):
    """Base class for every error raised by pollchannel."""


class NotFoundError(ChannelError, FileNotFoundError):
    """A file or directory that was expected to exist does not."""

    def __init__(self, path: str, kind: str = "File") -> None:
        super().__init__(f"{kind} does not exist: {path}")
        self.path = path


class ChannelIOError(ChannelError, OSError):
    """A write, directory creation or other raw filesystem call failed."""

    def __init__(self, path: str, reason: str = "", action: str = "write") -> None:
        message = f"Failed to {action} {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = path


class ValidationError(ChannelError, ValueError):
    """A command payload is malformed."""


class TransientPollError(ChannelError):
    """A single watcher read cycle failed; the loop keeps going."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"Error watching file {path}: {cause}")
        self.path = path
        self.cause = cause
