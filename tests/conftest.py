"""Shared fixtures: Qt core application, font file builders, in-memory filesystem."""

import io
import threading
from pathlib import Path

import pytest
from PyQt6.QtCore import QCoreApplication

from fontmanager.services.file_system import FileSystem


OTF_MAGIC = b'OTTO'
TTF_MAGIC = b'\x00\x01\x00\x00'
WOFF2_MAGIC = b'wOF2'


class MemoryFileSystem(FileSystem):
    """
    In-memory FileSystem for tests.

    Failures are injected per path through the `fail_*` sets and
    `unlistable`. Every open is recorded in `opened`.
    """

    def __init__(self):
        self.files: dict[Path, bytes] = {}
        self.dirs: set[Path] = {Path('/')}
        self.opened: list[Path] = []
        self.fail_open: set[Path] = set()
        self.fail_copy: set[Path] = set()
        self.fail_delete: set[Path] = set()
        self.fail_mkdir: set[Path] = set()
        self.unlistable: set[Path] = set()
        self._lock = threading.Lock()

    def add_file(self, path, data: bytes) -> Path:
        path = Path(path)
        self.make_dirs(path.parent)
        with self._lock:
            self.files[path] = data
        return path

    def add_font(self, path, body: bytes = b'', magic: bytes = OTF_MAGIC) -> Path:
        return self.add_file(path, magic + body)

    def read(self, path) -> bytes:
        return self.files[Path(path)]

    def list_dir(self, path):
        path = Path(path)
        with self._lock:
            if path in self.unlistable:
                raise PermissionError(f"Permission denied: {path}")
            if path not in self.dirs:
                raise FileNotFoundError(f"No such directory: {path}")
            children = [p for p in self.files if p.parent == path]
            children += [d for d in self.dirs if d.parent == path and d != path]
        return children

    def is_file(self, path):
        return Path(path) in self.files

    def is_dir(self, path):
        return Path(path) in self.dirs

    def exists(self, path):
        return self.is_file(path) or self.is_dir(path)

    def size(self, path):
        path = Path(path)
        if path not in self.files:
            raise FileNotFoundError(f"No such file: {path}")
        return len(self.files[path])

    def open_read(self, path):
        path = Path(path)
        with self._lock:
            self.opened.append(path)
        if path in self.fail_open:
            raise PermissionError(f"Permission denied: {path}")
        if path not in self.files:
            raise FileNotFoundError(f"No such file: {path}")
        return io.BytesIO(self.files[path])

    def copy(self, source, target):
        source = Path(source)
        target = Path(target)
        if source in self.fail_copy or target in self.fail_copy:
            raise PermissionError(f"Permission denied: {target}")
        if source not in self.files:
            raise FileNotFoundError(f"No such file: {source}")
        if target.parent not in self.dirs:
            raise FileNotFoundError(f"No such directory: {target.parent}")
        with self._lock:
            self.files[target] = self.files[source]
        return len(self.files[target])

    def delete(self, path):
        path = Path(path)
        if path in self.fail_delete:
            raise PermissionError(f"Permission denied: {path}")
        with self._lock:
            if path not in self.files:
                raise FileNotFoundError(f"No such file: {path}")
            del self.files[path]

    def make_dirs(self, path):
        path = Path(path)
        if path in self.fail_mkdir:
            raise PermissionError(f"Permission denied: {path}")
        if path in self.files:
            raise FileExistsError(f"File exists: {path}")
        with self._lock:
            for directory in [path, *path.parents]:
                self.dirs.add(directory)


@pytest.fixture(scope="session", autouse=True)
def qt_core_app():
    """The worker pool is a QObject; keep one core application alive."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def memory_fs():
    return MemoryFileSystem()


@pytest.fixture
def write_font():
    """Write a font file on disk: write_font(path, body=b'', magic=OTF_MAGIC)."""
    def _write(path: Path, body: bytes = b'', magic: bytes = OTF_MAGIC) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(magic + body)
        return path
    return _write
