"""
Core data models for the font synchronization engine.

This module defines the data structures shared by the sync components:
- Font format signatures
- Scan and plan models
- Per-level and per-session results

All models are:
- Filesystem-agnostic (paths are plain values)
- Short-lived (nothing here is persisted)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from threading import Lock
from typing import Iterator, Optional


# =============================================================================
# Enumerations
# =============================================================================

class FontFormat(Enum):
    """Binary font container formats, keyed by their 4-byte signature."""
    OPENTYPE = b'OTTO'
    TRUETYPE = b'\x00\x01\x00\x00'
    APPLE_TRUETYPE = b'true'
    POSTSCRIPT_TYPE1 = b'typ1'
    WOFF = b'wOFF'
    WOFF2 = b'wOF2'

    @property
    def signature(self) -> bytes:
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'FontFormat':
        """Look up a format by name, case-insensitive (e.g. 'woff2')."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown font format: {value}") from None


# Only desktop containers are mirrored unless more are enabled explicitly
DEFAULT_FONT_FORMATS: frozenset[FontFormat] = frozenset({
    FontFormat.OPENTYPE,
    FontFormat.TRUETYPE,
})


class SyncAction(Enum):
    """Action to take during synchronization."""
    COPY_FROM_SOURCE = auto()
    REMOVE_FROM_DESTINATION = auto()


class CompareOutcome(Enum):
    """Result of a content comparison."""
    EQUAL = auto()
    DIFFERENT = auto()
    INDETERMINATE = auto()  # Could not read one of the files

    @property
    def is_equal(self) -> bool:
        return self is CompareOutcome.EQUAL


# =============================================================================
# Scan Models
# =============================================================================

@dataclass(frozen=True)
class FontFileCandidate:
    """A font file found in one directory during a sync pass."""
    path: Path
    name: str

    @classmethod
    def from_path(cls, path: Path | str) -> 'FontFileCandidate':
        path = Path(path)
        return cls(path=path, name=path.name)


@dataclass(frozen=True)
class DirectoryPair:
    """One (source, destination) correspondence of the recursive sync."""
    source: Path
    destination: Path
    depth: int = 0

    def child(self, name: str) -> 'DirectoryPair':
        """Pair for a same-named subdirectory on both sides."""
        return DirectoryPair(
            source=self.source / name,
            destination=self.destination / name,
            depth=self.depth + 1,
        )

    def __str__(self) -> str:
        return f"{self.source} -> {self.destination}"


# =============================================================================
# Plan Models
# =============================================================================

@dataclass(frozen=True)
class SyncOperation:
    """
    A single planned file operation.

    For COPY_FROM_SOURCE, `path` is the source file and `target` the
    destination file it will be written to. For REMOVE_FROM_DESTINATION,
    `path` is the destination file to delete.
    """
    action: SyncAction
    path: Path
    target: Optional[Path] = None
    reason: str = ""

    @classmethod
    def copy_from_source(
        cls,
        source: Path,
        target: Path,
        reason: str = ""
    ) -> 'SyncOperation':
        return cls(SyncAction.COPY_FROM_SOURCE, source, target, reason)

    @classmethod
    def remove_from_destination(cls, path: Path, reason: str = "") -> 'SyncOperation':
        return cls(SyncAction.REMOVE_FROM_DESTINATION, path, None, reason)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_copy(self) -> bool:
        return self.action == SyncAction.COPY_FROM_SOURCE

    @property
    def is_remove(self) -> bool:
        return self.action == SyncAction.REMOVE_FROM_DESTINATION

    def __str__(self) -> str:
        if self.is_copy:
            return f"copy {self.path} -> {self.target}"
        return f"remove {self.path}"


@dataclass
class SyncPlan:
    """Planned operations for one directory level."""
    operations: list[SyncOperation]
    source_dir: Path
    destination_dir: Path

    @property
    def total_operations(self) -> int:
        return len(self.operations)

    @property
    def copy_count(self) -> int:
        return sum(1 for op in self.operations if op.is_copy)

    @property
    def remove_count(self) -> int:
        return sum(1 for op in self.operations if op.is_remove)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def iter_by_action(self, action: SyncAction) -> Iterator[SyncOperation]:
        """Iterate over operations with the given action."""
        for op in self.operations:
            if op.action == action:
                yield op


# =============================================================================
# Result Models
# =============================================================================

@dataclass
class LevelResult:
    """Outcome of syncing one directory level (not its children)."""
    pair: DirectoryPair
    copied: int = 0
    removed: int = 0
    failed: int = 0
    skipped: int = 0
    directories_created: int = 0
    bytes_copied: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)  # (path, error)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def record_error(self, path: Path | str, message: str) -> None:
        self.failed += 1
        self.errors.append((str(path), message))

    def __str__(self) -> str:
        return (f"+{self.copied} -{self.removed} !{self.failed} "
                f"dirs={self.directories_created}")


class SyncReport:
    """
    Aggregate of every level finished in one sync session.

    Levels run on pool threads, so all mutation goes through a lock.
    """

    def __init__(self, source_root: Path, destination_root: Path):
        self.source_root = source_root
        self.destination_root = destination_root
        self._lock = Lock()
        self._levels: list[LevelResult] = []
        self._task_errors: list[tuple[str, str]] = []

    def add_level(self, result: LevelResult) -> None:
        with self._lock:
            self._levels.append(result)

    def add_task_error(self, where: str, message: str) -> None:
        with self._lock:
            self._task_errors.append((where, message))

    @property
    def levels(self) -> list[LevelResult]:
        with self._lock:
            return list(self._levels)

    @property
    def errors(self) -> list[tuple[str, str]]:
        with self._lock:
            errors = [e for level in self._levels for e in level.errors]
            return errors + list(self._task_errors)

    @property
    def copied(self) -> int:
        return sum(level.copied for level in self.levels)

    @property
    def removed(self) -> int:
        return sum(level.removed for level in self.levels)

    @property
    def failed(self) -> int:
        with self._lock:
            return sum(level.failed for level in self._levels) + len(self._task_errors)

    @property
    def skipped(self) -> int:
        return sum(level.skipped for level in self.levels)

    @property
    def directories_created(self) -> int:
        return sum(level.directories_created for level in self.levels)

    @property
    def bytes_copied(self) -> int:
        return sum(level.bytes_copied for level in self.levels)

    @property
    def has_errors(self) -> bool:
        return self.failed > 0

    @property
    def success(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        """Human-readable one-line summary."""
        return (f"{len(self.levels)} directories, {self.copied} copied, "
                f"{self.removed} removed, {self.failed} failed, "
                f"{self.directories_created} directories created")


# =============================================================================
# Error Models
# =============================================================================

class SyncError(Exception):
    """Base class for sync engine errors."""
    pass


class DestinationUnavailableError(SyncError):
    """The destination root could not be created or is not a directory."""

    def __init__(self, path: Path | str, reason: str):
        super().__init__(f"Destination unavailable: {path} ({reason})")
        self.path = Path(path)
        self.reason = reason


class SourceUnavailableError(SyncError):
    """The source root does not exist or is not a directory."""

    def __init__(self, path: Path | str, reason: str):
        super().__init__(f"Source unavailable: {path} ({reason})")
        self.path = Path(path)
        self.reason = reason
