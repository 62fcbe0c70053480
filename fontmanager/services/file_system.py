"""
Filesystem access service.

The sync components never touch `os`/`shutil` directly; they receive a
FileSystem instance. LocalFileSystem is the real implementation, tests
substitute an in-memory one.

Handles:
- Directory listing
- Chunked reads
- Overwriting copies
- Directory creation with intermediates
"""

from __future__ import annotations

import os
import shutil
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Iterator


DEFAULT_BUFFER_SIZE = 1024 * 1024  # 1 MiB


class FileSystem(ABC):
    """
    Filesystem capability used by the sync engine.

    Methods raise OSError subclasses on failure; callers decide how to degrade.
    """

    @abstractmethod
    def list_dir(self, path: Path) -> list[Path]:
        """Return the direct children of a directory (full paths)."""
        pass

    @abstractmethod
    def is_file(self, path: Path) -> bool:
        pass

    @abstractmethod
    def is_dir(self, path: Path) -> bool:
        pass

    @abstractmethod
    def exists(self, path: Path) -> bool:
        pass

    @abstractmethod
    def size(self, path: Path) -> int:
        """Size of a file in bytes from metadata, without reading content."""
        pass

    @abstractmethod
    def open_read(self, path: Path) -> BinaryIO:
        """Open a file for binary reading. Use as a context manager."""
        pass

    @abstractmethod
    def copy(self, source: Path, target: Path) -> int:
        """Copy a file, overwriting target. Returns bytes copied."""
        pass

    @abstractmethod
    def delete(self, path: Path) -> None:
        """Delete a single file."""
        pass

    @abstractmethod
    def make_dirs(self, path: Path) -> None:
        """Create a directory and any missing parents. No-op if it exists."""
        pass

    def is_symlink(self, path: Path) -> bool:
        """True if the entry itself is a symbolic link."""
        return False

    def real_path(self, path: Path) -> Path:
        """Canonical path with symbolic links resolved."""
        return Path(path)

    def read_chunks(
        self,
        path: Path,
        chunk_size: int = DEFAULT_BUFFER_SIZE
    ) -> Iterator[bytes]:
        """Yield the file's content in chunks; the file is closed afterwards."""
        with self.open_read(path) as f:
            while chunk := f.read(chunk_size):
                yield chunk


class LocalFileSystem(FileSystem):
    """FileSystem backed by the local disk."""

    def __init__(
        self,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        preserve_timestamps: bool = True,
        preserve_permissions: bool = True
    ):
        self.buffer_size = buffer_size
        self.preserve_timestamps = preserve_timestamps
        self.preserve_permissions = preserve_permissions

    def list_dir(self, path: Path) -> list[Path]:
        return [Path(entry.path) for entry in os.scandir(path)]

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def is_symlink(self, path: Path) -> bool:
        return Path(path).is_symlink()

    def real_path(self, path: Path) -> Path:
        return Path(path).resolve()

    def size(self, path: Path) -> int:
        return Path(path).stat().st_size

    def open_read(self, path: Path) -> BinaryIO:
        return open(path, 'rb')

    def copy(self, source: Path, target: Path) -> int:
        source = Path(source)
        target = Path(target)

        bytes_copied = 0

        with open(source, 'rb') as src:
            with open(target, 'wb') as dst:
                while chunk := src.read(self.buffer_size):
                    dst.write(chunk)
                    bytes_copied += len(chunk)

        # Metadata is best effort, the content is already in place
        try:
            if self.preserve_timestamps:
                stat = source.stat()
                os.utime(target, (stat.st_atime, stat.st_mtime))

            if self.preserve_permissions:
                shutil.copymode(source, target)
        except OSError as e:
            logging.debug(f"LocalFileSystem - Could not copy metadata to {target}: {e}")

        return bytes_copied

    def delete(self, path: Path) -> None:
        Path(path).unlink()

    def make_dirs(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)
