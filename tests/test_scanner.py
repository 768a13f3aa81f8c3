"""
Scanner Tests - Verify directory walking behavior.

Tests:
- One record per admitted file with name, parent path and size
- Filter rules applied at every depth
- Unlistable directories and vanished files
- Deep trees without recursion limits
- Progress callback
"""

import logging
import os
import stat
import sys
import zlib
from types import SimpleNamespace

import pytest

import dirlist.scanner as scanner_module
from dirlist.filters import FilterPolicy
from dirlist.hasher import Hasher
from dirlist.models import FileRecord
from dirlist.scanner import Walker, is_hidden


class ListRecorder:
    """Collects records in memory."""

    def __init__(self):
        self.records = []

    def record(self, file_record: FileRecord) -> None:
        self.records.append(file_record)


def make_walker(policy=None, **kwargs):
    recorder = ListRecorder()
    walker = Walker(policy or FilterPolicy(), Hasher(), recorder, **kwargs)
    return walker, recorder


class TestWalker:
    """Tests for the Walker class."""

    def test_example_tree(self, example_tree, data_root):
        """Only a.txt is recorded from the example tree."""
        walker, recorder = make_walker()
        stats = walker.walk(str(data_root))

        assert recorder.records == [
            FileRecord(
                fingerprint=zlib.crc32(b"hello"),
                name="a.txt",
                parent_path=str(data_root / "A"),
                size_bytes=5,
            )
        ]
        assert stats.files_recorded == 1

    def test_skips_filtered_entries(self, sample_tree, data_root):
        """Hidden, denied-directory, denied-extension and license files are skipped."""
        walker, recorder = make_walker()
        walker.walk(str(data_root))

        paths = {os.path.join(r.parent_path, r.name) for r in recorder.records}
        assert paths == {str(sample_tree["top"]), str(sample_tree["nested"])}

    def test_records_nested_parent_path(self, sample_tree, data_root):
        """Parent path is the directory the file was found in."""
        walker, recorder = make_walker()
        walker.walk(str(data_root))

        deep = next(r for r in recorder.records if r.name == "deep.csv")
        assert deep.parent_path == str(data_root / "one" / "two" / "three")
        assert deep.size_bytes == sample_tree["nested"].stat().st_size

    def test_relative_root_is_made_absolute(self, example_tree, data_root, monkeypatch):
        """Relative roots are recorded with absolute parent paths."""
        monkeypatch.chdir(data_root.parent)
        walker, recorder = make_walker()
        walker.walk(data_root.name)

        assert recorder.records[0].parent_path == str(data_root / "A")

    def test_directories_never_recorded(self, data_root):
        """Empty directories produce no records."""
        (data_root / "empty" / "also_empty").mkdir(parents=True)
        walker, recorder = make_walker()
        stats = walker.walk(str(data_root))

        assert recorder.records == []
        assert stats.dirs_visited == 3

    def test_permissive_policy_records_everything_visible(self, sample_tree, data_root):
        """Without deny lists only the hidden file is skipped."""
        walker, recorder = make_walker(FilterPolicy.permissive())
        walker.walk(str(data_root))

        names = {r.name for r in recorder.records}
        assert names == {
            "notes.txt", "deep.csv", "image.png", "settings.ini",
            "package.JSON", "LICENSE.txt",
        }

    def test_mirror_receives_records(self, example_tree, data_root):
        """Each record is also written to the mirror."""
        mirrored = ListRecorder()
        walker, recorder = make_walker()
        walker.mirror = type("Mirror", (), {"write": lambda self, r: mirrored.record(r)})()
        walker.walk(str(data_root))

        assert mirrored.records == recorder.records


class TestWalkerErrors:
    """Tests for directory- and file-level failures."""

    def test_nonexistent_root(self, temp_dir):
        """A missing root is treated as empty."""
        walker, recorder = make_walker()
        stats = walker.walk(str(temp_dir / "does_not_exist"))

        assert recorder.records == []
        assert stats.unreadable_dirs == 1

    def test_file_as_root_is_logged(self, temp_dir, caplog):
        """A root that is a regular file is treated as empty with a warning."""
        f = temp_dir / "not_a_dir.txt"
        f.write_text("x")

        with caplog.at_level(logging.WARNING, logger="dirlist.errors"):
            walker, recorder = make_walker()
            stats = walker.walk(str(f))

        assert recorder.records == []
        assert stats.unreadable_dirs == 1
        assert any(
            r.levelno == logging.WARNING and "not_a_dir.txt" in r.getMessage()
            for r in caplog.records
        )

    def test_unlistable_directory_is_empty(self, sample_tree, data_root, monkeypatch):
        """A directory that cannot be listed is skipped, siblings still walked."""
        blocked = str(data_root / "one")
        real_scandir = os.scandir

        def fake_scandir(path):
            if os.fspath(path) == blocked:
                raise PermissionError(13, "Permission denied", path)
            return real_scandir(path)

        monkeypatch.setattr(scanner_module.os, "scandir", fake_scandir)

        walker, recorder = make_walker()
        stats = walker.walk(str(data_root))

        names = {r.name for r in recorder.records}
        assert names == {"notes.txt"}
        assert stats.unreadable_dirs == 1

    def test_unreadable_file_gets_sentinel(self, data_root, monkeypatch):
        """A file that cannot be read is recorded with fingerprint 0 and its size."""
        (data_root / "locked.txt").write_bytes(b"locked content")
        hasher = Hasher()
        monkeypatch.setattr(
            hasher, "fingerprint",
            lambda path: Hasher.fingerprint(hasher, path + ".missing"),
        )

        recorder = ListRecorder()
        Walker(FilterPolicy(), hasher, recorder).walk(str(data_root))

        assert recorder.records == [
            FileRecord(0, "locked.txt", str(data_root), len(b"locked content"))
        ]
        assert hasher.failures == 1

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_symlinks_not_followed(self, data_root, temp_dir):
        """Symlinks to files and directories are neither walked nor recorded."""
        outside = temp_dir / "outside"
        outside.mkdir()
        (outside / "target.txt").write_text("target")
        try:
            os.symlink(outside, data_root / "dir_link", target_is_directory=True)
            os.symlink(outside / "target.txt", data_root / "file_link.txt")
        except OSError:
            pytest.skip("cannot create symlinks")
        # A cycle back to the root
        os.symlink(data_root, data_root / "loop", target_is_directory=True)

        walker, recorder = make_walker()
        stats = walker.walk(str(data_root))

        assert recorder.records == []
        assert stats.entries_rejected == 3

    def test_recorder_errors_propagate(self, example_tree, data_root):
        """Errors raised while recording are not swallowed."""
        class FailingRecorder:
            def record(self, file_record):
                raise RuntimeError("store is gone")

        walker = Walker(FilterPolicy(), Hasher(), FailingRecorder())
        with pytest.raises(RuntimeError, match="store is gone"):
            walker.walk(str(data_root))


class TestWalkerTraversal:
    """Tests for traversal mechanics."""

    def test_deep_tree(self, data_root):
        """Trees deeper than the recursion limit are walked."""
        depth = sys.getrecursionlimit() + 50
        # Built and removed level by level; makedirs and rmtree recurse
        created = []
        path = data_root
        try:
            try:
                for _ in range(depth):
                    path = path / "d"
                    path.mkdir()
                    created.append(path)
                path.joinpath("leaf.txt").write_text("leaf")
            except OSError:
                pytest.skip("filesystem path length limit")

            walker, recorder = make_walker()
            walker.walk(str(data_root))

            assert [r.name for r in recorder.records] == ["leaf.txt"]
            assert recorder.records[0].parent_path == str(path)
        finally:
            if path.joinpath("leaf.txt").exists():
                path.joinpath("leaf.txt").unlink()
            for directory in reversed(created):
                directory.rmdir()

    def test_progress_callback(self, data_root):
        """The progress callback fires every progress_interval visits."""
        for i in range(25):
            (data_root / f"file_{i}.txt").write_text(str(i))
        seen = []

        walker, recorder = make_walker(on_progress=seen.append, progress_interval=10)
        stats = walker.walk(str(data_root))

        assert seen == [10, 20]
        assert stats.entries_visited == 25
        assert len(recorder.records) == 25

    def test_stats_accumulate_across_roots(self, data_root, temp_dir):
        """Passing the same stats to several walks accumulates counts."""
        other = temp_dir / "other"
        other.mkdir()
        (data_root / "a.txt").write_text("a")
        (other / "b.txt").write_text("b")

        walker, recorder = make_walker()
        stats = walker.walk(str(data_root))
        walker.walk(str(other), stats)

        assert stats.files_recorded == 2
        assert stats.dirs_visited == 2


class TestIsHidden:
    """Tests for hidden detection."""

    def test_dot_prefix(self, temp_dir):
        f = temp_dir / ".hidden"
        f.write_text("x")
        assert is_hidden(f.name, os.lstat(f))

    def test_plain_name(self, temp_dir):
        f = temp_dir / "visible"
        f.write_text("x")
        assert not is_hidden(f.name, os.lstat(f))

    def test_windows_hidden_attribute(self):
        """FILE_ATTRIBUTE_HIDDEN hides a name without a dot."""
        st = SimpleNamespace(st_file_attributes=stat.FILE_ATTRIBUTE_HIDDEN)
        assert is_hidden("visible", st)

    def test_bsd_hidden_flag(self):
        """UF_HIDDEN hides a name without a dot."""
        st = SimpleNamespace(st_flags=stat.UF_HIDDEN)
        assert is_hidden("visible", st)

    def test_unrelated_flags(self):
        """Other attribute bits do not hide an entry."""
        st = SimpleNamespace(
            st_file_attributes=stat.FILE_ATTRIBUTE_READONLY,
            st_flags=stat.UF_IMMUTABLE,
        )
        assert not is_hidden("visible", st)
