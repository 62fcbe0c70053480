"""
File content comparison.

Two files are equal when their sizes match and their streamed digests
match. Size is checked first so that files of different length are never
opened.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fontmanager.core.models import CompareOutcome
from fontmanager.services.file_system import DEFAULT_BUFFER_SIZE, FileSystem, LocalFileSystem
from fontmanager.services.hashing import DigestService, HashAlgorithm


class ContentComparer:
    """
    Compares two files by size, then by digest.

    Any read failure makes the outcome INDETERMINATE, which `files_equal`
    reports as not equal so the caller re-copies instead of skipping.
    """

    def __init__(
        self,
        algorithm: HashAlgorithm = HashAlgorithm.SHA256,
        chunk_size: int = DEFAULT_BUFFER_SIZE,
        file_system: Optional[FileSystem] = None
    ):
        self.file_system = file_system or LocalFileSystem()
        self.digests = DigestService(
            algorithm=algorithm,
            chunk_size=chunk_size,
            file_system=self.file_system,
        )

    @property
    def algorithm(self) -> HashAlgorithm:
        return self.digests.algorithm

    def compare(self, path_a: Path | str, path_b: Path | str) -> CompareOutcome:
        """Compare two files and report EQUAL, DIFFERENT or INDETERMINATE."""
        path_a = Path(path_a)
        path_b = Path(path_b)

        try:
            size_a = self.file_system.size(path_a)
            size_b = self.file_system.size(path_b)
        except OSError as e:
            logging.debug(f"ContentComparer - Cannot stat {path_a} / {path_b}: {e}")
            return CompareOutcome.INDETERMINATE

        if size_a != size_b:
            return CompareOutcome.DIFFERENT

        try:
            digest_a = self.digests.digest_file(path_a)
            digest_b = self.digests.digest_file(path_b)
        except OSError as e:
            logging.debug(f"ContentComparer - Cannot read {path_a} / {path_b}: {e}")
            return CompareOutcome.INDETERMINATE

        # A file that changed length while being read cannot be trusted
        if digest_a.bytes_read != size_a or digest_b.bytes_read != size_b:
            logging.debug(f"ContentComparer - Size changed during read: {path_a} / {path_b}")
            return CompareOutcome.INDETERMINATE

        if digest_a.same_content(digest_b):
            return CompareOutcome.EQUAL
        return CompareOutcome.DIFFERENT

    def files_equal(self, path_a: Path | str, path_b: Path | str) -> bool:
        return self.compare(path_a, path_b).is_equal
