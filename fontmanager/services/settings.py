"""
Persistent settings for the sync command.

Settings live in one JSON file. Unknown keys are ignored and missing keys
take their defaults, so files written by older or newer versions still load.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from fontmanager.core.models import DEFAULT_FONT_FORMATS, FontFormat
from fontmanager.services.file_system import DEFAULT_BUFFER_SIZE
from fontmanager.services.hashing import HashAlgorithm


def default_fonts_root() -> Path:
    """Per-user font folder of the current platform."""
    home = Path.home()

    if os.name == 'nt':
        local_app_data = os.environ.get('LOCALAPPDATA', str(home / 'AppData' / 'Local'))
        return Path(local_app_data) / 'Microsoft' / 'Windows' / 'Fonts'
    elif sys.platform == 'darwin':
        return home / 'Library' / 'Fonts'
    else:
        data_home = os.environ.get('XDG_DATA_HOME', str(home / '.local' / 'share'))
        return Path(data_home) / 'fonts'


def default_settings_path() -> Path:
    """settings.json under APPDATA on Windows, XDG_CONFIG_HOME elsewhere."""
    if os.name == 'nt':
        base = os.environ.get('APPDATA', str(Path.home()))
        return Path(base) / 'FontManager' / 'settings.json'

    base = os.environ.get('XDG_CONFIG_HOME', str(Path.home() / '.config'))
    return Path(base) / 'fontmanager' / 'settings.json'


@dataclass
class SyncSettings:
    """How folders are mirrored."""
    fonts_root: str = field(default_factory=lambda: str(default_fonts_root()))
    namespace: str = "Sync"

    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    chunk_size: int = DEFAULT_BUFFER_SIZE

    # Formats mirrored on top of OTF and TTF, e.g. ["woff2"]
    extra_formats: list[str] = field(default_factory=list)

    max_workers: Optional[int] = None
    preview_only: bool = False
    require_source: bool = True

    def accepted_formats(self) -> frozenset[FontFormat]:
        formats = set(DEFAULT_FONT_FORMATS)
        for name in self.extra_formats:
            try:
                formats.add(FontFormat.from_string(name))
            except ValueError:
                logging.warning(f"SyncSettings - Ignoring unknown font format: {name}")
        return frozenset(formats)


@dataclass
class PreviewSettings:
    """Sample text used when listing fonts."""
    preview_text: str = "Typography"
    preview_size: int = 24


@dataclass
class ApplicationSettings:
    sync: SyncSettings = field(default_factory=SyncSettings)
    preview: PreviewSettings = field(default_factory=PreviewSettings)

    watched_folders: list[str] = field(default_factory=list)
    recent_syncs: list[tuple[str, str]] = field(default_factory=list)
    recent_syncs_limit: int = 10


def _load_section(cls: type, data: Any) -> Any:
    """Build a settings dataclass from the keys of `data` it knows about."""
    if not isinstance(data, dict):
        return cls()

    known = {f.name for f in fields(cls)}
    ignored = sorted(set(data) - known)
    if ignored:
        logging.debug(f"SettingsManager - Ignoring unknown {cls.__name__} keys: {ignored}")

    return cls(**{key: value for key, value in data.items() if key in known})


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [_to_json(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _to_json(value) for key, value in obj.items()}
    return obj


class SettingsManager:
    """
    Loads and saves ApplicationSettings.

    Settings are read lazily on first access to `settings`. Every
    successful save notifies the registered observers.
    """

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = Path(settings_path) if settings_path else default_settings_path()
        self._settings: Optional[ApplicationSettings] = None
        self._observers: list[Callable[[ApplicationSettings], None]] = []

    @property
    def settings(self) -> ApplicationSettings:
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ApplicationSettings:
        """Read the settings file. A missing or broken file gives defaults."""
        try:
            raw = self.settings_path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return ApplicationSettings()
        except OSError as e:
            logging.warning(f"SettingsManager - Could not read {self.settings_path}: {e}")
            return ApplicationSettings()

        try:
            return self._from_dict(json.loads(raw))
        except (ValueError, TypeError) as e:
            logging.warning(f"SettingsManager - Invalid settings in {self.settings_path}, using defaults: {e}")
            return ApplicationSettings()

    def save(self, settings: Optional[ApplicationSettings] = None) -> bool:
        """Write settings atomically. False if nothing to save or the write failed."""
        settings = settings or self._settings
        if settings is None:
            return False

        tmp_path = self.settings_path.with_name(self.settings_path.name + '.tmp')
        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._to_dict(settings), indent=2), encoding='utf-8')
            os.replace(tmp_path, self.settings_path)
        except OSError as e:
            logging.error(f"SettingsManager - Could not save {self.settings_path}: {e}")
            return False

        self._settings = settings
        self._notify_observers()
        return True

    def reset(self) -> ApplicationSettings:
        self._settings = ApplicationSettings()
        self.save()
        return self._settings

    def add_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        self._observers.append(callback)

    def remove_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_observers(self) -> None:
        for callback in list(self._observers):
            try:
                callback(self._settings)
            except Exception:
                logging.exception("SettingsManager - Settings observer failed")

    def add_watched_folder(self, path: str) -> bool:
        """Watch a folder. False if it was already watched."""
        watched = self.settings.watched_folders
        if path in watched:
            return False

        watched.append(path)
        self.save()
        return True

    def remove_watched_folder(self, path: str) -> bool:
        """Stop watching a folder. False if it was not watched."""
        watched = self.settings.watched_folders
        if path not in watched:
            return False

        watched.remove(path)
        self.save()
        return True

    def add_recent_sync(self, source: str, destination: str) -> None:
        """Put a (source, destination) pair at the front of the recent list."""
        settings = self.settings
        entry = (source, destination)

        recent = [entry] + [tuple(item) for item in settings.recent_syncs if tuple(item) != entry]
        settings.recent_syncs = recent[:settings.recent_syncs_limit]
        self.save()

    def _to_dict(self, settings: ApplicationSettings) -> dict:
        return _to_json(asdict(settings))

    def _from_dict(self, data: dict) -> ApplicationSettings:
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")

        sync = _load_section(SyncSettings, data.get('sync'))
        if not isinstance(sync.hash_algorithm, HashAlgorithm):
            sync.hash_algorithm = HashAlgorithm.from_string(sync.hash_algorithm)
        if not _is_positive_int(sync.chunk_size):
            logging.warning(f"SettingsManager - Invalid chunk_size {sync.chunk_size!r}, using default")
            sync.chunk_size = DEFAULT_BUFFER_SIZE
        if sync.max_workers is not None and not _is_positive_int(sync.max_workers):
            logging.warning(f"SettingsManager - Invalid max_workers {sync.max_workers!r}, using default")
            sync.max_workers = None

        settings = _load_section(ApplicationSettings, {
            key: value for key, value in data.items() if key not in ('sync', 'preview')
        })
        settings.sync = sync
        settings.preview = _load_section(PreviewSettings, data.get('preview'))
        settings.recent_syncs = [tuple(item) for item in settings.recent_syncs]
        return settings
