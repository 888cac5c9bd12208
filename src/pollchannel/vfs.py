"""Virtual filesystem access: raw handles and the path-normalizing adapter.

The host only gives us a raw filesystem handle (an in-memory tree, or a
directory on disk standing in for one). VirtualFilesystem wraps whichever
handle is injected and is the only thing the watcher and dispatcher talk to.
"""

from __future__ import annotations

import logging
import posixpath
import stat
from pathlib import Path
from typing import Protocol

from pollchannel.errors import ChannelIOError, NotFoundError
from pollchannel.models import DirectoryItem, EntryType

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "/"

_DIR_MODE = stat.S_IFDIR | 0o755
_FILE_MODE = stat.S_IFREG | 0o644


class RawFilesystem(Protocol):
    """Capabilities the host filesystem handle must provide."""

    def path_exists(self, path: str) -> bool: ...

    def readdir(self, path: str) -> list[str]: ...

    def stat(self, path: str) -> int: ...

    def is_dir(self, mode: int) -> bool: ...

    def mkdir_tree(self, path: str) -> None: ...

    def read_file(self, path: str) -> str: ...

    def write_file(self, path: str, content: str) -> None: ...


class MemoryFilesystem:
    """In-process filesystem tree keyed by absolute POSIX paths."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self._dirs: set[str] = {"/"}
        self._files: dict[str, str] = {}
        for path, content in (files or {}).items():
            self.mkdir_tree(posixpath.dirname(self._key(path)))
            self.write_file(path, content)

    @staticmethod
    def _key(path: str) -> str:
        return posixpath.normpath("/" + path.lstrip("/"))

    def path_exists(self, path: str) -> bool:
        key = self._key(path)
        return key in self._dirs or key in self._files

    def readdir(self, path: str) -> list[str]:
        key = self._key(path)
        if key in self._files:
            raise NotADirectoryError(path)
        if key not in self._dirs:
            raise FileNotFoundError(path)
        children = {
            p for p in self._dirs | self._files.keys()
            if p != key and posixpath.dirname(p) == key
        }
        return sorted(posixpath.basename(p) for p in children)

    def stat(self, path: str) -> int:
        key = self._key(path)
        if key in self._dirs:
            return _DIR_MODE
        if key in self._files:
            return _FILE_MODE
        raise FileNotFoundError(path)

    def is_dir(self, mode: int) -> bool:
        return stat.S_ISDIR(mode)

    def mkdir_tree(self, path: str) -> None:
        key = self._key(path)
        parts = [p for p in key.split("/") if p]
        current = ""
        for part in parts:
            current = f"{current}/{part}"
            if current in self._files:
                raise NotADirectoryError(current)
            self._dirs.add(current)

    def read_file(self, path: str) -> str:
        key = self._key(path)
        if key in self._dirs:
            raise IsADirectoryError(path)
        try:
            return self._files[key]
        except KeyError:
            raise FileNotFoundError(path) from None

    def write_file(self, path: str, content: str) -> None:
        key = self._key(path)
        if key in self._dirs:
            raise IsADirectoryError(path)
        if posixpath.dirname(key) not in self._dirs:
            raise FileNotFoundError(posixpath.dirname(key))
        self._files[key] = content


class OSFilesystem:
    """Maps virtual absolute paths onto a base directory on the host disk."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir).resolve()

    def _real(self, path: str) -> Path:
        real = (self.base_dir / path.lstrip("/")).resolve()
        if real != self.base_dir and self.base_dir not in real.parents:
            raise PermissionError(f"Path escapes base directory: {path}")
        return real

    def path_exists(self, path: str) -> bool:
        return self._real(path).exists()

    def readdir(self, path: str) -> list[str]:
        return sorted(item.name for item in self._real(path).iterdir())

    def stat(self, path: str) -> int:
        return self._real(path).stat().st_mode

    def is_dir(self, mode: int) -> bool:
        return stat.S_ISDIR(mode)

    def mkdir_tree(self, path: str) -> None:
        self._real(path).mkdir(parents=True, exist_ok=True)

    def read_file(self, path: str) -> str:
        return self._real(path).read_text(encoding="utf-8")

    def write_file(self, path: str, content: str) -> None:
        self._real(path).write_text(content, encoding="utf-8")


class VirtualFilesystem:
    """Path-normalizing adapter over an injected RawFilesystem."""

    def __init__(self, raw: RawFilesystem, root: str = DEFAULT_ROOT) -> None:
        if raw is None:
            raise ValueError("File system handler is required")
        if root and not root.endswith("/"):
            root += "/"
        self.raw = raw
        self.root = root

    def normalize_path(self, path: str) -> str:
        """Map ``path`` into the root. Idempotent."""
        if not path.startswith(self.root):
            return self.root + path.lstrip("/")
        return path

    def exists(self, path: str) -> bool:
        try:
            return bool(self.raw.path_exists(self.normalize_path(path)))
        except Exception:
            logger.debug("Existence check failed for %s", path, exc_info=True)
            return False

    def list_directory(self, path: str) -> list[DirectoryItem]:
        normalized = self.normalize_path(path)
        if not self.exists(normalized):
            logger.error("Error listing directory %s: not found", normalized)
            raise NotFoundError(normalized, kind="Directory")

        try:
            names = self.raw.readdir(normalized)
        except Exception as exc:
            logger.error("Error listing directory %s: %s", normalized, exc)
            raise ChannelIOError(normalized, str(exc), action="list") from exc

        items = [self._entry_info(normalized, name) for name in names]
        logger.debug("Contents of %s: %s", normalized, [i.to_dict() for i in items])
        return items

    def _entry_info(self, base: str, name: str) -> DirectoryItem:
        full_path = f"{base.rstrip('/')}/{name}"
        try:
            mode = self.raw.stat(full_path)
            kind = EntryType.DIRECTORY if self.raw.is_dir(mode) else EntryType.FILE
        except Exception as exc:
            logger.warning("Unable to determine type for %s: %s", name, exc)
            kind = EntryType.UNKNOWN
        return DirectoryItem(name=name, type=kind)

    def read_file(self, path: str) -> str:
        normalized = self.normalize_path(path)
        if not self.exists(normalized):
            raise NotFoundError(normalized)
        try:
            return self.raw.read_file(normalized)
        except FileNotFoundError as exc:
            raise NotFoundError(normalized) from exc
        except Exception as exc:
            logger.error("Failed to read file %s: %s", normalized, exc)
            raise ChannelIOError(normalized, str(exc), action="read") from exc

    def write_file(self, path: str, content: str) -> None:
        """Overwrite ``path`` with ``content``, creating parent directories."""
        normalized = self.normalize_path(path)
        self._ensure_parent(normalized)
        try:
            self.raw.write_file(normalized, content)
        except Exception as exc:
            logger.error("Failed to write file %s: %s", normalized, exc)
            raise ChannelIOError(normalized, str(exc)) from exc
        logger.debug("File written successfully: %s", normalized)

    def _ensure_parent(self, file_path: str) -> None:
        idx = file_path.rfind("/")
        if idx <= 0:
            return
        parent = file_path[:idx]
        if self.exists(parent):
            return
        try:
            self.raw.mkdir_tree(parent)
        except Exception as exc:
            logger.error("Directory creation failed for %s: %s", parent, exc)
            raise ChannelIOError(parent, str(exc), action="create directory") from exc
