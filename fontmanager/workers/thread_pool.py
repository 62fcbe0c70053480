"""
Thread pool for sync levels.

Each sync session owns one pool. Levels are submitted without anyone
waiting on them; the session joins the whole tree through `wait_all`,
which also covers levels submitted by running levels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from PyQt6.QtCore import QObject, QThreadPool, QRunnable, pyqtSignal, QMutex, QMutexLocker


@dataclass
class Task:
    """A unit of work queued on the pool."""
    id: str
    label: str
    func: Callable[..., Any]
    args: tuple = field(default_factory=tuple)
    kwargs: dict = field(default_factory=dict)
    callback: Optional[Callable[[Any], None]] = None
    error_callback: Optional[Callable[[Exception], None]] = None


class WorkerPool(QObject):
    """
    Pool of worker threads backed by a private QThreadPool.

    A task is pending from `submit` until it returns or raises, or until
    `clear` drops it from the queue.

    Usage:
        pool = WorkerPool()
        pool.submit(sync_level, pair, session, label=str(pair.source))
        pool.wait_all()
    """

    # (task_id, label, error message or "")
    task_finished = pyqtSignal(str, str, str)

    # Emitted when the last pending task finishes
    drained = pyqtSignal()

    def __init__(
        self,
        max_workers: Optional[int] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)

        self._pool = QThreadPool()
        if max_workers is not None:
            self._pool.setMaxThreadCount(max_workers)

        self._mutex = QMutex()
        self._counter = 0
        self._queued: dict[str, Task] = {}
        self._running: dict[str, Task] = {}

    @property
    def max_workers(self) -> int:
        return self._pool.maxThreadCount()

    @max_workers.setter
    def max_workers(self, value: int) -> None:
        self._pool.setMaxThreadCount(value)

    @property
    def pending_count(self) -> int:
        """Tasks queued or running."""
        with QMutexLocker(self._mutex):
            return len(self._queued) + len(self._running)

    @property
    def running_labels(self) -> list[str]:
        with QMutexLocker(self._mutex):
            return [task.label for task in self._running.values()]

    def submit(
        self,
        func: Callable[..., Any],
        *args,
        label: str = "",
        callback: Optional[Callable[[Any], None]] = None,
        error_callback: Optional[Callable[[Exception], None]] = None,
        **kwargs
    ) -> str:
        """
        Queue `func(*args, **kwargs)` on the pool and return at once.

        Args:
            label: Shown in logs, e.g. the directory a level syncs
            callback: Called with the result, on the worker thread
            error_callback: Called with the exception, on the worker thread

        Returns:
            Task ID
        """
        with QMutexLocker(self._mutex):
            self._counter += 1
            task = Task(
                id=f"task_{self._counter}",
                label=label or getattr(func, '__name__', 'task'),
                func=func,
                args=args,
                kwargs=kwargs,
                callback=callback,
                error_callback=error_callback,
            )
            self._queued[task.id] = task

        self._pool.start(_TaskRunnable(self, task))
        return task.id

    def wait_all(self, timeout: int = -1) -> bool:
        """
        Block until no task is queued or running.

        Args:
            timeout: Timeout in milliseconds (-1 for infinite)

        Returns:
            True if the pool drained, False on timeout
        """
        return self._pool.waitForDone(timeout)

    def clear(self) -> int:
        """Drop queued tasks. Running tasks complete. Returns the number dropped."""
        self._pool.clear()
        with QMutexLocker(self._mutex):
            dropped = len(self._queued)
            self._queued.clear()
            drained = not self._running

        if dropped:
            logging.debug(f"WorkerPool - Dropped {dropped} queued task(s)")
        if drained:
            self.drained.emit()
        return dropped

    def _start(self, task: Task) -> bool:
        """Move a task to running. False if it was cleared meanwhile."""
        with QMutexLocker(self._mutex):
            if self._queued.pop(task.id, None) is None:
                return False
            self._running[task.id] = task
            return True

    def _finish(self, task: Task, error: str = "") -> None:
        with QMutexLocker(self._mutex):
            self._running.pop(task.id, None)
            drained = not self._running and not self._queued

        self.task_finished.emit(task.id, task.label, error)
        if drained:
            self.drained.emit()


class _TaskRunnable(QRunnable):
    """Runs one Task and reports back to its pool."""

    def __init__(self, pool: WorkerPool, task: Task):
        super().__init__()
        self.pool = pool
        self.task = task
        self.setAutoDelete(True)

    def run(self) -> None:
        task = self.task
        if not self.pool._start(task):
            return

        error = ""
        try:
            result = task.func(*task.args, **task.kwargs)
            if task.callback:
                task.callback(result)

        except Exception as e:
            error = str(e)
            logging.exception(f"WorkerPool - Task {task.id} ({task.label}) failed")
            if task.error_callback:
                task.error_callback(e)

        finally:
            self.pool._finish(task, error)
