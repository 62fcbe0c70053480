"""
Font file detection by leading-byte signature.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from fontmanager.core.models import DEFAULT_FONT_FORMATS, FontFormat
from fontmanager.services.file_system import FileSystem, LocalFileSystem


SIGNATURE_LENGTH = 4


class FontClassifier:
    """
    Decides whether a file is a font by reading its first 4 bytes.

    Only the formats in `accepted_formats` are matched. By default that is
    OpenType ('OTTO') and TrueType (00 01 00 00); WOFF, WOFF2 and the legacy
    Apple signatures must be enabled explicitly.
    """

    def __init__(
        self,
        accepted_formats: Optional[Iterable[FontFormat]] = None,
        file_system: Optional[FileSystem] = None
    ):
        formats = DEFAULT_FONT_FORMATS if accepted_formats is None else accepted_formats
        self.accepted_formats = frozenset(formats)
        self.file_system = file_system or LocalFileSystem()
        self._by_signature = {fmt.signature: fmt for fmt in self.accepted_formats}

    def classify(self, path: Path | str) -> Optional[FontFormat]:
        """
        Return the font format of a file, or None.

        Unreadable files and files shorter than the signature are not fonts.
        """
        path = Path(path)

        try:
            with self.file_system.open_read(path) as f:
                magic = f.read(SIGNATURE_LENGTH)
        except OSError as e:
            logging.debug(f"FontClassifier - Cannot read {path}: {e}")
            return None

        if len(magic) != SIGNATURE_LENGTH:
            return None

        return self._by_signature.get(magic)

    def is_font_file(self, path: Path | str) -> bool:
        return self.classify(path) is not None


def is_font_file(path: Path | str) -> bool:
    """Check a local file against the default font signatures."""
    return FontClassifier().is_font_file(path)
