"""Unit tests for product directory scanning and output numbering"""

from pathlib import Path

from core.assets import (
    FirstSelector,
    RandomSelector,
    list_files,
    list_scene_dirs,
    next_output_number,
    next_output_path,
    output_filename,
    pick_file,
)


class TestSceneDirs:
    """Tests for scene folder discovery"""

    def test_only_single_uppercase_letters(self, tmp_path):
        for name in ["B", "A", "C", "a", "AB", "成品", "temp_1_x"]:
            (tmp_path / name).mkdir()
        (tmp_path / "D").write_text("not a folder")

        assert [p.name for p in list_scene_dirs(tmp_path)] == ["A", "B", "C"]

    def test_empty(self, tmp_path):
        assert list_scene_dirs(tmp_path) == []


class TestFiles:
    """Tests for asset listing and picking"""

    def test_extension_case_insensitive(self, tmp_path):
        for name in ["b.MP3", "a.mp3", "c.mp4", "notes.txt"]:
            (tmp_path / name).write_bytes(b"x")

        assert [p.name for p in list_files(tmp_path, ".mp3")] == ["a.mp3", "b.MP3"]

    def test_directories_ignored(self, tmp_path):
        (tmp_path / "folder.mp4").mkdir()
        assert list_files(tmp_path, ".mp4") == []

    def test_pick_none_when_missing(self, tmp_path):
        assert pick_file(tmp_path, ".png", FirstSelector()) is None

    def test_pick_first(self, tmp_path):
        for name in ["b.mp4", "a.mp4"]:
            (tmp_path / name).write_bytes(b"x")
        assert pick_file(tmp_path, ".mp4", FirstSelector()).name == "a.mp4"

    def test_random_selector_seeded(self, tmp_path):
        candidates = [tmp_path / f"{i}.mp4" for i in range(10)]

        first = [RandomSelector(seed=7).choose(candidates) for _ in range(3)]
        again = [RandomSelector(seed=7).choose(candidates) for _ in range(3)]
        assert first == again

    def test_random_selector_stays_in_candidates(self, tmp_path):
        candidates = [tmp_path / "a.mp4", tmp_path / "b.mp4"]
        selector = RandomSelector()
        assert all(selector.choose(candidates) in candidates for _ in range(20))


class TestOutputNumbering:
    """Tests for NNN--<product>.mp4 numbering"""

    def test_missing_dir_starts_at_one(self, tmp_path):
        assert next_output_number(tmp_path / "成品") == 1

    def test_empty_dir_starts_at_one(self, tmp_path):
        assert next_output_number(tmp_path) == 1

    def test_next_after_highest(self, tmp_path):
        for name in ["001--teapot.mp4", "003--teapot.mp4"]:
            (tmp_path / name).write_bytes(b"x")
        assert next_output_number(tmp_path) == 4

    def test_unnumbered_entries_ignored(self, tmp_path):
        for name in ["notes.txt", "final--teapot.mp4", "002--teapot.mp4"]:
            (tmp_path / name).write_bytes(b"x")
        assert next_output_number(tmp_path) == 3

    def test_prefix_without_separator(self, tmp_path):
        (tmp_path / "12 old cut.mp4").write_bytes(b"x")
        assert next_output_number(tmp_path) == 13

    def test_wide_numbers(self, tmp_path):
        (tmp_path / "1000--teapot.mp4").write_bytes(b"x")
        assert output_filename(next_output_number(tmp_path), "teapot") == "1001--teapot.mp4"

    def test_output_filename_padding(self):
        assert output_filename(4, "teapot") == "004--teapot.mp4"

    def test_next_output_path(self, tmp_path):
        (tmp_path / "007--teapot.mp4").write_bytes(b"x")
        assert next_output_path(tmp_path, "teapot") == Path(tmp_path) / "008--teapot.mp4"
