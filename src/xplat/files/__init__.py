"""File content provider."""

from xplat.files.ops import FileSystem, FileSystemReader, LocalFileSystem

__all__ = ["FileSystem", "FileSystemReader", "LocalFileSystem"]
