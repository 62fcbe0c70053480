"""
Single-level directory scanner for font sync.

Lists the direct children of a directory:
- Font files (checked by signature)
- Subdirectories

Hidden entries and symlinked directories are skipped unless asked for. An
unreadable directory is reported as empty.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fontmanager.core.folder.classifier import FontClassifier
from fontmanager.core.models import FontFileCandidate
from fontmanager.services.file_system import FileSystem, LocalFileSystem


class DirectoryScanner:
    """
    Lists font files and subdirectories of one directory.

    Results are sorted by name so that planning is deterministic.
    """

    def __init__(
        self,
        classifier: Optional[FontClassifier] = None,
        file_system: Optional[FileSystem] = None,
        include_hidden: bool = False,
        follow_symlinks: bool = False
    ):
        self.file_system = file_system or LocalFileSystem()
        self.classifier = classifier or FontClassifier(file_system=self.file_system)
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks

    def list_font_files(self, directory: Path | str) -> list[FontFileCandidate]:
        """Font files directly inside `directory`."""
        result = []

        for entry in self._list_entries(Path(directory)):
            try:
                if not self.file_system.is_file(entry):
                    continue
            except OSError as e:
                logging.debug(f"DirectoryScanner - Cannot stat {entry}: {e}")
                continue

            if self.classifier.is_font_file(entry):
                result.append(FontFileCandidate.from_path(entry))

        return result

    def list_subdirectories(self, directory: Path | str) -> list[Path]:
        """
        Subdirectories directly inside `directory`.

        Symlinked directories are skipped unless `follow_symlinks` is set.
        """
        result = []

        for entry in self._list_entries(Path(directory)):
            try:
                if not self.file_system.is_dir(entry):
                    continue
                if not self.follow_symlinks and self.file_system.is_symlink(entry):
                    logging.debug(f"DirectoryScanner - Skipping symlinked directory {entry}")
                    continue
                result.append(entry)
            except OSError as e:
                logging.debug(f"DirectoryScanner - Cannot stat {entry}: {e}")

        return result

    def _list_entries(self, directory: Path) -> list[Path]:
        """Visible entries of a directory, sorted by name."""
        try:
            entries = self.file_system.list_dir(directory)
        except OSError as e:
            logging.warning(f"DirectoryScanner - Unable to read directory {directory}: {e}")
            return []

        if not self.include_hidden:
            entries = [e for e in entries if not e.name.startswith('.')]

        return sorted(entries, key=lambda p: p.name)
