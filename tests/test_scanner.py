import sys
from pathlib import Path

import pytest

from conftest import TTF_MAGIC
from fontmanager.core.folder.scanner import DirectoryScanner


@pytest.fixture
def font_dir(tmp_path, write_font):
    root = tmp_path / "fonts"
    write_font(root / "b.ttf", magic=TTF_MAGIC)
    write_font(root / "a.otf")
    write_font(root / ".hidden.otf")
    (root / "notes.txt").write_text("not a font")
    (root / "Variable").mkdir()
    (root / "Static").mkdir()
    (root / ".cache").mkdir()
    write_font(root / "Variable" / "nested.otf")
    return root


class TestDirectoryScanner:

    def test_lists_visible_fonts_sorted(self, font_dir):
        files = DirectoryScanner().list_font_files(font_dir)

        assert [f.name for f in files] == ["a.otf", "b.ttf"]
        assert files[0].path == font_dir / "a.otf"

    def test_font_files_are_not_recursive(self, font_dir):
        names = [f.name for f in DirectoryScanner().list_font_files(font_dir)]
        assert "nested.otf" not in names

    def test_lists_visible_subdirectories(self, font_dir):
        subdirs = DirectoryScanner().list_subdirectories(font_dir)
        assert subdirs == [font_dir / "Static", font_dir / "Variable"]

    def test_include_hidden(self, font_dir):
        scanner = DirectoryScanner(include_hidden=True)

        assert ".hidden.otf" in [f.name for f in scanner.list_font_files(font_dir)]
        assert font_dir / ".cache" in scanner.list_subdirectories(font_dir)

    def test_missing_directory_is_empty(self, tmp_path):
        scanner = DirectoryScanner()
        assert scanner.list_font_files(tmp_path / "missing") == []
        assert scanner.list_subdirectories(tmp_path / "missing") == []

    def test_unlistable_directory_is_empty(self, memory_fs):
        memory_fs.add_font("/fonts/a.otf")
        memory_fs.unlistable.add(Path("/fonts"))

        scanner = DirectoryScanner(file_system=memory_fs)
        assert scanner.list_font_files("/fonts") == []

    def test_directory_with_font_name_is_not_a_file(self, memory_fs):
        memory_fs.make_dirs(Path("/fonts/folder.otf"))
        memory_fs.add_font("/fonts/real.otf")

        scanner = DirectoryScanner(file_system=memory_fs)
        assert [f.name for f in scanner.list_font_files("/fonts")] == ["real.otf"]
        assert scanner.list_subdirectories("/fonts") == [Path("/fonts/folder.otf")]

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlinked_subdirectory_needs_follow_symlinks(self, font_dir):
        (font_dir / "Loop").symlink_to(font_dir, target_is_directory=True)

        assert font_dir / "Loop" not in DirectoryScanner().list_subdirectories(font_dir)
        assert font_dir / "Loop" in DirectoryScanner(follow_symlinks=True).list_subdirectories(font_dir)
