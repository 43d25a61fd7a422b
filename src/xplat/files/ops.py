"""File content provider used by analyzers and the apply path.

Pure filesystem I/O. No index dependency. Every failure surfaces as
FileUnavailableError so callers handle one error type.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from xplat.core.errors import FileUnavailableError


@runtime_checkable
class FileSystemReader(Protocol):
    """Read-only file capability consumed by analyzers."""

    def read_file(self, path: str) -> str: ...

    def exists(self, path: str) -> bool: ...


@runtime_checkable
class FileSystem(FileSystemReader, Protocol):
    """Read/write file capability consumed by the diff and refactor apply path."""

    def write_file(self, path: str, content: str) -> None: ...

    def delete_file(self, path: str) -> None: ...


class LocalFileSystem:
    """FileSystem over the local disk.

    Relative paths resolve against root when one is given.
    """

    def __init__(self, root: Path | None = None, *, encoding: str = "utf-8") -> None:
        self._root = root
        self._encoding = encoding

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        if self._root is not None and not p.is_absolute():
            return self._root / p
        return p

    def read_file(self, path: str) -> str:
        try:
            return self._resolve(path).read_text(encoding=self._encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise FileUnavailableError.for_path(path, str(e)) from e

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def write_file(self, path: str, content: str) -> None:
        full_path = self._resolve(path)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_text(content, encoding=self._encoding)
        except OSError as e:
            raise FileUnavailableError.for_path(path, str(e)) from e

    def delete_file(self, path: str) -> None:
        try:
            self._resolve(path).unlink()
        except OSError as e:
            raise FileUnavailableError.for_path(path, str(e)) from e
