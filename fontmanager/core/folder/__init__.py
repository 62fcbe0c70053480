"""
Font folder synchronization module.

Provides functionality for:
- Font file detection by signature
- Content comparison by size and digest
- Single-level directory scanning
- Sync planning and recursive execution
"""

from fontmanager.core.folder.classifier import (
    FontClassifier,
    is_font_file,
)
from fontmanager.core.folder.comparer import (
    ContentComparer,
)
from fontmanager.core.folder.scanner import (
    DirectoryScanner,
)
from fontmanager.core.folder.planner import (
    SyncPlanner,
)
from fontmanager.core.folder.sync import (
    SyncExecutor,
    SyncOptions,
    SyncOrchestrator,
    SyncSession,
)

__all__ = [
    # Classifier
    'FontClassifier',
    'is_font_file',
    # Comparer
    'ContentComparer',
    # Scanner
    'DirectoryScanner',
    # Planner
    'SyncPlanner',
    # Sync
    'SyncExecutor',
    'SyncOptions',
    'SyncOrchestrator',
    'SyncSession',
]
