"""
Background workers for concurrent operations.

Provides a QThreadPool-based pool used to run directory levels
of a sync concurrently.
"""

from fontmanager.workers.thread_pool import (
    WorkerPool,
)

__all__ = [
    'WorkerPool',
]
