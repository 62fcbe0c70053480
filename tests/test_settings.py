import json

import pytest

from fontmanager.core.models import FontFormat
from fontmanager.services.hashing import HashAlgorithm
from fontmanager.services.settings import ApplicationSettings, SettingsManager, SyncSettings


@pytest.fixture
def manager(tmp_path):
    return SettingsManager(tmp_path / "config" / "settings.json")


class TestSettingsManager:

    def test_missing_file_gives_defaults(self, manager):
        settings = manager.settings

        assert settings.sync.namespace == "Sync"
        assert settings.sync.hash_algorithm is HashAlgorithm.SHA256
        assert settings.sync.require_source is True
        assert settings.watched_folders == []

    def test_save_and_load(self, manager):
        settings = ApplicationSettings()
        settings.sync.fonts_root = "/home/me/.fonts"
        settings.sync.hash_algorithm = HashAlgorithm.XXH3_128
        settings.sync.extra_formats = ["WOFF2"]
        settings.watched_folders = ["/home/me/Fonts/Inter"]

        assert manager.save(settings)
        loaded = SettingsManager(manager.settings_path).load()

        assert loaded.sync.fonts_root == "/home/me/.fonts"
        assert loaded.sync.hash_algorithm is HashAlgorithm.XXH3_128
        assert loaded.sync.extra_formats == ["WOFF2"]
        assert loaded.watched_folders == ["/home/me/Fonts/Inter"]

    def test_algorithm_is_stored_by_value(self, manager):
        manager.save(ApplicationSettings())
        data = json.loads(manager.settings_path.read_text(encoding="utf-8"))
        assert data["sync"]["hash_algorithm"] == "sha256"
        assert not manager.settings_path.with_name("settings.json.tmp").exists()

    def test_unknown_keys_are_ignored(self, manager):
        manager.settings_path.parent.mkdir(parents=True)
        manager.settings_path.write_text(json.dumps({
            "sync": {"namespace": "Mirrors", "hash_algorithm": "XXH3_128", "theme": "dark"},
            "window_geometry": [0, 0, 800, 600],
        }), encoding="utf-8")

        loaded = manager.load()

        assert loaded.sync.namespace == "Mirrors"
        assert loaded.sync.hash_algorithm is HashAlgorithm.XXH3_128
        assert loaded.sync.chunk_size == SyncSettings().chunk_size

    def test_invalid_sizes_fall_back_to_defaults(self, manager, caplog):
        manager.settings_path.parent.mkdir(parents=True)
        manager.settings_path.write_text(json.dumps({
            "sync": {"chunk_size": 0, "max_workers": "many"},
        }), encoding="utf-8")

        loaded = manager.load()

        assert loaded.sync.chunk_size == SyncSettings().chunk_size
        assert loaded.sync.max_workers is None
        assert "chunk_size" in caplog.text

    @pytest.mark.parametrize("chunk_size", ["64k", True, -1])
    def test_chunk_size_must_be_a_positive_int(self, manager, chunk_size):
        manager.settings_path.parent.mkdir(parents=True)
        manager.settings_path.write_text(json.dumps({
            "sync": {"chunk_size": chunk_size, "max_workers": 4},
        }), encoding="utf-8")

        loaded = manager.load()

        assert loaded.sync.chunk_size == SyncSettings().chunk_size
        assert loaded.sync.max_workers == 4

    def test_corrupt_file_gives_defaults(self, manager):
        manager.settings_path.parent.mkdir(parents=True)
        manager.settings_path.write_text("{ not json", encoding="utf-8")

        assert manager.load() == ApplicationSettings()

    def test_watched_folders(self, manager):
        assert manager.add_watched_folder("/fonts/a")
        assert not manager.add_watched_folder("/fonts/a")
        assert manager.remove_watched_folder("/fonts/a")
        assert not manager.remove_watched_folder("/fonts/a")

    def test_recent_syncs_are_capped_and_deduplicated(self, manager):
        manager.settings.recent_syncs_limit = 3
        for i in range(5):
            manager.add_recent_sync(f"/src/{i}", "/dst")
        manager.add_recent_sync("/src/3", "/dst")

        reloaded = SettingsManager(manager.settings_path).load()
        assert reloaded.recent_syncs == [("/src/3", "/dst"), ("/src/4", "/dst"), ("/src/2", "/dst")]

    def test_observers_are_notified(self, manager):
        seen = []
        manager.add_observer(seen.append)
        manager.reset()

        assert len(seen) == 1
        assert manager.settings_path.exists()


class TestSyncSettings:

    def test_default_formats(self):
        assert SyncSettings().accepted_formats() == {FontFormat.OPENTYPE, FontFormat.TRUETYPE}

    def test_extra_formats_skip_unknown_names(self):
        settings = SyncSettings(extra_formats=["woff", "bitmap"])
        assert settings.accepted_formats() == {
            FontFormat.OPENTYPE, FontFormat.TRUETYPE, FontFormat.WOFF
        }
