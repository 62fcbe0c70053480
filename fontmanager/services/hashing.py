"""
Streamed content digests for font files.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import xxhash

from fontmanager.services.file_system import DEFAULT_BUFFER_SIZE, FileSystem, LocalFileSystem


class HashAlgorithm(Enum):
    """Digest algorithms usable for content comparison."""
    SHA256 = 'sha256'
    SHA512 = 'sha512'
    XXH3_128 = 'xxh3_128'  # Much faster, not collision resistant against attackers

    @property
    def is_cryptographic(self) -> bool:
        return self is not HashAlgorithm.XXH3_128

    def new(self):
        """A fresh hasher object with update/digest/hexdigest."""
        if self is HashAlgorithm.XXH3_128:
            return xxhash.xxh3_128()
        return hashlib.new(self.value)

    @classmethod
    def from_string(cls, value: str) -> 'HashAlgorithm':
        """Parse 'sha256', 'SHA256', 'xxh3_128'... Unknown names give SHA256."""
        key = str(value).strip()
        for algorithm in cls:
            if key.upper() == algorithm.name or key.lower() == algorithm.value:
                return algorithm

        logging.warning(f"HashAlgorithm - Unknown algorithm {value!r}, using SHA256")
        return cls.SHA256


@dataclass(frozen=True)
class FileDigest:
    """Digest of a file's content as it was actually read."""
    algorithm: HashAlgorithm
    digest: bytes
    bytes_read: int
    path: Optional[Path] = None

    @property
    def hexdigest(self) -> str:
        return self.digest.hex()

    def same_content(self, other: 'FileDigest') -> bool:
        return (self.algorithm is other.algorithm
                and self.bytes_read == other.bytes_read
                and self.digest == other.digest)


@dataclass
class DigestProgress:
    path: Path
    bytes_read: int
    total_bytes: int

    @property
    def fraction(self) -> float:
        if self.total_bytes <= 0:
            return 1.0
        return min(self.bytes_read / self.total_bytes, 1.0)


class DigestService:
    """
    Computes digests chunk by chunk through a FileSystem.

    Memory use is bounded by `chunk_size` whatever the file size.
    """

    def __init__(
        self,
        algorithm: HashAlgorithm = HashAlgorithm.SHA256,
        chunk_size: int = DEFAULT_BUFFER_SIZE,
        file_system: Optional[FileSystem] = None
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.algorithm = algorithm
        self.chunk_size = chunk_size
        self.file_system = file_system or LocalFileSystem()

    def digest_file(
        self,
        path: Path | str,
        progress_callback: Optional[Callable[[DigestProgress], None]] = None
    ) -> FileDigest:
        """
        Digest a file's content.

        `bytes_read` is what was actually streamed, which differs from the
        stat size if the file changed underneath.

        Raises:
            OSError: if the file cannot be opened or read
        """
        path = Path(path)
        hasher = self.algorithm.new()
        total = self.file_system.size(path) if progress_callback else 0
        bytes_read = 0

        for chunk in self.file_system.read_chunks(path, self.chunk_size):
            hasher.update(chunk)
            bytes_read += len(chunk)
            if progress_callback:
                progress_callback(DigestProgress(path, bytes_read, total))

        return FileDigest(self.algorithm, hasher.digest(), bytes_read, path)

    def digest_bytes(self, data: bytes) -> FileDigest:
        hasher = self.algorithm.new()
        hasher.update(data)
        return FileDigest(self.algorithm, hasher.digest(), len(data))
