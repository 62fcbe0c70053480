"""
Sync planning for one directory level.

Files are matched by basename only. A renamed font is therefore planned as
a removal of the old name plus a copy of the new one.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from fontmanager.core.folder.comparer import ContentComparer
from fontmanager.core.models import FontFileCandidate, SyncOperation, SyncPlan


class SyncPlanner:
    """
    Computes the operations that make a destination level mirror its source.

    Copies (adds and updates) come first in source order, then removals in
    destination order.
    """

    def __init__(self, comparer: Optional[ContentComparer] = None):
        self.comparer = comparer or ContentComparer()

    def plan(
        self,
        source_files: Sequence[FontFileCandidate],
        destination_files: Sequence[FontFileCandidate],
        destination_dir: Path | str,
        source_dir: Optional[Path | str] = None
    ) -> SyncPlan:
        """
        Create a plan for one level.

        Args:
            source_files: Font files of the source directory
            destination_files: Font files of the destination directory
            destination_dir: Where copied files are written
            source_dir: Source directory, for reporting only

        Returns:
            SyncPlan with copies followed by removals
        """
        destination_dir = Path(destination_dir)
        if source_dir is None:
            source_dir = source_files[0].path.parent if source_files else destination_dir
        source_dir = Path(source_dir)

        # First occurrence wins if a listing ever repeats a name
        destination_by_name: dict[str, FontFileCandidate] = {}
        for candidate in destination_files:
            destination_by_name.setdefault(candidate.name, candidate)
        source_names = {candidate.name for candidate in source_files}

        operations: list[SyncOperation] = []

        for source in source_files:
            match = destination_by_name.get(source.name)

            if match is None:
                operations.append(SyncOperation.copy_from_source(
                    source.path,
                    destination_dir / source.name,
                    reason="New file in source",
                ))
            elif not self.comparer.files_equal(source.path, match.path):
                operations.append(SyncOperation.copy_from_source(
                    source.path,
                    match.path,
                    reason="Content differs",
                ))

        for destination in destination_files:
            if destination.name not in source_names:
                operations.append(SyncOperation.remove_from_destination(
                    destination.path,
                    reason="Does not exist in source",
                ))

        return SyncPlan(
            operations=operations,
            source_dir=source_dir,
            destination_dir=destination_dir,
        )
