"""
Font folder synchronization engine.

Provides one-way mirror synchronization of font files with:
- Signature-based font detection
- Size + digest change detection
- Concurrent, fire-and-forget recursion into subdirectories
- Optional completion barrier and cancellation
- Preview mode
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from fontmanager.core.folder.classifier import FontClassifier
from fontmanager.core.folder.comparer import ContentComparer
from fontmanager.core.folder.planner import SyncPlanner
from fontmanager.core.folder.scanner import DirectoryScanner
from fontmanager.core.models import (
    DirectoryPair,
    DestinationUnavailableError,
    FontFormat,
    LevelResult,
    SourceUnavailableError,
    SyncError,
    SyncPlan,
    SyncReport,
)
from fontmanager.services.file_system import DEFAULT_BUFFER_SIZE, FileSystem, LocalFileSystem
from fontmanager.services.hashing import HashAlgorithm
from fontmanager.workers.thread_pool import WorkerPool


DEFAULT_NAMESPACE = "Sync"


@dataclass
class SyncOptions:
    """Options for synchronization."""
    # Detection
    accepted_formats: Optional[frozenset[FontFormat]] = None  # None = OTF + TTF
    include_hidden: bool = False
    follow_symlinks: bool = False  # Each real directory is still synced once per session

    # Comparison
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    chunk_size: int = DEFAULT_BUFFER_SIZE

    # Safety
    preview_only: bool = False     # Plan and log, don't change anything
    require_source: bool = False   # Fail if the source root is not a directory

    # Concurrency
    max_workers: Optional[int] = None

    # Called with each LevelResult, on the thread that ran the level
    level_callback: Optional[Callable[[LevelResult], None]] = None

    # Called with each new session before its root level runs
    session_callback: Optional[Callable[["SyncSession"], None]] = None


class SyncSession:
    """
    Handle on one running sync.

    Subdirectory levels keep running after `SyncOrchestrator.run` returns.
    `wait` is the barrier for the whole tree; `cancel` stops levels from
    starting new operations or spawning children.
    """

    def __init__(
        self,
        source_root: Path,
        destination_root: Path,
        pool: WorkerPool
    ):
        self.source_root = source_root
        self.destination_root = destination_root
        self.pool = pool
        self.report = SyncReport(source_root, destination_root)
        self.started_at = time.time()
        self._cancelled = threading.Event()
        self._visited: set[Path] = set()
        self._visited_lock = threading.Lock()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def is_done(self) -> bool:
        """True when no level of this session is queued or running."""
        return self.pool.pending_count == 0

    @property
    def elapsed(self) -> float:
        return time.time() - self.started_at

    def cancel(self) -> None:
        """Cancel the remaining work of this session."""
        logging.info(f"SyncSession - Cancelling sync {self.source_root} -> {self.destination_root}")
        self._cancelled.set()
        self.pool.clear()

    def claim_directory(self, real_path: Path) -> bool:
        """Mark a real source directory as synced. False if it already was."""
        with self._visited_lock:
            if real_path in self._visited:
                return False
            self._visited.add(real_path)
            return True

    def wait(self, timeout: int = -1) -> bool:
        """
        Block until every level of the tree has finished.

        Args:
            timeout: Timeout in milliseconds (-1 for infinite)

        Returns:
            True if all levels finished, False on timeout
        """
        return self.pool.wait_all(timeout)


class SyncExecutor:
    """
    Applies plans and drives the recursion.

    One call to `sync_level` scans both sides of a directory pair, plans,
    applies the plan in order, then hands every source subdirectory to the
    session's pool without waiting for it.
    """

    def __init__(
        self,
        scanner: DirectoryScanner,
        planner: SyncPlanner,
        file_system: FileSystem,
        options: Optional[SyncOptions] = None
    ):
        self.scanner = scanner
        self.planner = planner
        self.file_system = file_system
        self.options = options or SyncOptions()

    def plan_level(self, pair: DirectoryPair) -> SyncPlan:
        """Scan both sides of a pair and plan that level."""
        source_files = self.scanner.list_font_files(pair.source)
        destination_files = self.scanner.list_font_files(pair.destination)

        return self.planner.plan(
            source_files,
            destination_files,
            pair.destination,
            source_dir=pair.source,
        )

    def sync_level(self, pair: DirectoryPair, session: SyncSession) -> Optional[LevelResult]:
        """Sync one directory level and schedule its subdirectories."""
        if session.is_cancelled:
            return None

        try:
            real_source = self.file_system.real_path(pair.source)
        except OSError:
            real_source = pair.source
        if not session.claim_directory(real_source):
            logging.warning(f"SyncExecutor - Skipping {pair.source}, {real_source} was already synced")
            return None

        plan = self.plan_level(pair)
        logging.debug(
            f"SyncExecutor - Planned {plan.copy_count} copies, "
            f"{plan.remove_count} removals for {pair}"
        )

        result = LevelResult(pair=pair)
        self.execute(plan, result, session)
        self._descend(pair, result, session)

        session.report.add_level(result)
        logging.info(f"SyncExecutor - Synced {pair}: {result}")

        if self.options.level_callback:
            self.options.level_callback(result)

        return result

    def execute(
        self,
        plan: SyncPlan,
        result: Optional[LevelResult] = None,
        session: Optional[SyncSession] = None
    ) -> LevelResult:
        """
        Apply a plan in order.

        A failed copy or delete is logged and recorded; the remaining
        operations still run.
        """
        if result is None:
            result = LevelResult(pair=DirectoryPair(plan.source_dir, plan.destination_dir))

        for op in plan.operations:
            if session and session.is_cancelled:
                break

            if self.options.preview_only:
                logging.info(f"SyncExecutor - Preview: would {op} ({op.reason})")
                result.skipped += 1
                continue

            try:
                if op.is_copy:
                    result.bytes_copied += self.file_system.copy(op.path, op.target)
                    result.copied += 1
                else:
                    self.file_system.delete(op.path)
                    result.removed += 1
                logging.debug(f"SyncExecutor - Done: {op} ({op.reason})")

            except OSError as e:
                logging.error(f"SyncExecutor - Unable to {op}: {e}")
                result.record_error(op.path, str(e))

        return result

    def _descend(
        self,
        pair: DirectoryPair,
        result: LevelResult,
        session: SyncSession
    ) -> None:
        """Ensure destination subdirectories exist and spawn their syncs."""
        for subdirectory in self.scanner.list_subdirectories(pair.source):
            if session.is_cancelled:
                return

            child = pair.child(subdirectory.name)

            if not self._ensure_directory(child.destination, result):
                continue

            self.spawn(child, session)

    def _ensure_directory(self, path: Path, result: LevelResult) -> bool:
        """Create a destination directory if missing. False if unusable."""
        try:
            if self.file_system.is_dir(path):
                return True

            if self.options.preview_only:
                logging.info(f"SyncExecutor - Preview: would create directory {path}")
                return True

            self.file_system.make_dirs(path)
            result.directories_created += 1
            return True

        except OSError as e:
            logging.error(f"SyncExecutor - Unable to access sub-directory {path}: {e}")
            result.record_error(path, str(e))
            return False

    def spawn(self, pair: DirectoryPair, session: SyncSession) -> str:
        """Run a level on the session pool. The caller does not wait for it."""
        def on_error(error: Exception) -> None:
            session.report.add_task_error(str(pair.source), str(error))

        return session.pool.submit(
            self.sync_level,
            pair,
            session,
            label=str(pair.source),
            error_callback=on_error,
        )


class SyncOrchestrator:
    """
    Entry point of a sync.

    Makes sure the destination root exists, runs the root level on the
    calling thread and lets subdirectory levels continue in the background.

    Usage:
        orchestrator = SyncOrchestrator()
        session = orchestrator.run(source, destination)
        session.wait()  # optional barrier
    """

    def __init__(
        self,
        options: Optional[SyncOptions] = None,
        file_system: Optional[FileSystem] = None
    ):
        self.options = options or SyncOptions()
        self.file_system = file_system or LocalFileSystem()

        classifier = FontClassifier(
            accepted_formats=self.options.accepted_formats,
            file_system=self.file_system,
        )
        comparer = ContentComparer(
            algorithm=self.options.hash_algorithm,
            chunk_size=self.options.chunk_size,
            file_system=self.file_system,
        )
        scanner = DirectoryScanner(
            classifier=classifier,
            file_system=self.file_system,
            include_hidden=self.options.include_hidden,
            follow_symlinks=self.options.follow_symlinks,
        )
        self.executor = SyncExecutor(
            scanner=scanner,
            planner=SyncPlanner(comparer),
            file_system=self.file_system,
            options=self.options,
        )

    def run(
        self,
        source_root: Path | str,
        destination_root: Path | str,
        wait: bool = False
    ) -> SyncSession:
        """
        Mirror `source_root` onto `destination_root`.

        Args:
            source_root: Authoritative directory
            destination_root: Directory made to match it
            wait: Block until the whole tree has been synced

        Returns:
            SyncSession for the running sync

        Raises:
            DestinationUnavailableError: destination root cannot be created
            SourceUnavailableError: source root missing and `require_source` set
        """
        source_root = Path(source_root)
        destination_root = Path(destination_root)

        if self.options.require_source:
            self._check_source(source_root)
        self._ensure_destination(destination_root)

        session = SyncSession(
            source_root,
            destination_root,
            WorkerPool(self.options.max_workers),
        )
        logging.info(f"SyncOrchestrator - Starting sync {source_root} -> {destination_root}")

        if self.options.session_callback:
            self.options.session_callback(session)

        self.executor.sync_level(DirectoryPair(source_root, destination_root), session)

        if wait:
            session.wait()
            logging.info(
                f"SyncOrchestrator - Completed sync in {session.elapsed:.2f}s: "
                f"{session.report.summary()}"
            )

        return session

    def run_into(
        self,
        source_root: Path | str,
        fonts_root: Path | str,
        namespace: str = DEFAULT_NAMESPACE,
        wait: bool = False
    ) -> SyncSession:
        """Mirror a folder into `<fonts_root>/<namespace>/<source folder name>`."""
        destination = self.namespace_destination(source_root, fonts_root, namespace)
        return self.run(source_root, destination, wait=wait)

    def run_watched(
        self,
        folders: Iterable[Path | str],
        fonts_root: Path | str,
        namespace: str = DEFAULT_NAMESPACE,
        wait: bool = True
    ) -> tuple[dict[Path, SyncSession], dict[Path, SyncError]]:
        """
        Sync every watched folder into the namespace.

        A folder that fails to start does not stop the others.

        Returns:
            (sessions by folder, fatal errors by folder)
        """
        sessions: dict[Path, SyncSession] = {}
        failures: dict[Path, SyncError] = {}

        for folder in folders:
            folder = Path(folder)
            try:
                sessions[folder] = self.run_into(folder, fonts_root, namespace, wait=wait)
            except SyncError as e:
                logging.error(f"SyncOrchestrator - Skipping watched folder {folder}: {e}")
                failures[folder] = e

        return sessions, failures

    @staticmethod
    def namespace_destination(
        source_root: Path | str,
        fonts_root: Path | str,
        namespace: str = DEFAULT_NAMESPACE
    ) -> Path:
        """Destination used by `run_into` for a source folder."""
        source_root = Path(source_root)
        name = source_root.name or source_root.resolve().name
        if not name:
            raise ValueError(f"Cannot derive a folder name from {source_root}")

        base = Path(fonts_root)
        if namespace:
            base = base / namespace
        return base / name

    def _check_source(self, source_root: Path) -> None:
        try:
            is_dir = self.file_system.is_dir(source_root)
        except OSError as e:
            raise SourceUnavailableError(source_root, str(e)) from e

        if not is_dir:
            logging.critical(f"SyncOrchestrator - Source is not a directory: {source_root}")
            raise SourceUnavailableError(source_root, "not a directory")

    def _ensure_destination(self, destination_root: Path) -> None:
        """Create the destination root, or raise DestinationUnavailableError."""
        try:
            if self.file_system.is_dir(destination_root):
                return

            if self.file_system.exists(destination_root):
                raise DestinationUnavailableError(destination_root, "not a directory")

            if self.options.preview_only:
                logging.info(f"SyncOrchestrator - Preview: would create {destination_root}")
                return

            self.file_system.make_dirs(destination_root)

        except DestinationUnavailableError as e:
            logging.critical(f"SyncOrchestrator - {e}")
            raise
        except OSError as e:
            logging.critical(f"SyncOrchestrator - Cannot create destination {destination_root}: {e}")
            raise DestinationUnavailableError(destination_root, str(e)) from e
