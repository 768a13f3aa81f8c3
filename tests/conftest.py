"""
Test Configuration - Shared fixtures for dirlist tests.

Uses pytest fixtures to create isolated trees and stores.
"""

import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from dirlist.config import DirListConfig, set_config
from dirlist.filters import FilterPolicy


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="dirlist_test_")
    # Resolve to handle macOS /var -> /private/var symlink
    resolved = Path(tmp).resolve()
    yield resolved
    shutil.rmtree(str(resolved), ignore_errors=True)


@pytest.fixture
def data_root(temp_dir: Path) -> Path:
    root = temp_dir / "data"
    root.mkdir()
    return root


@pytest.fixture
def test_config(temp_dir: Path, data_root: Path) -> Generator[DirListConfig, None, None]:
    """Create an isolated test configuration."""
    config = DirListConfig(
        roots=[str(data_root)],
        db_path=temp_dir / "store" / "test.db",
        filter_policy=FilterPolicy(),
        db_batch_size=2,
        db_timeout=0.1,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def example_tree(data_root: Path) -> dict[str, Path]:
    """
    data/A/a.txt   "hello"   recorded
    data/.git/HEAD           hidden directory
    data/b.dll               denied extension
    """
    files = {}

    a_dir = data_root / "A"
    a_dir.mkdir()
    a_txt = a_dir / "a.txt"
    a_txt.write_bytes(b"hello")
    files["a"] = a_txt

    git = data_root / ".git"
    git.mkdir()
    head = git / "HEAD"
    head.write_text("ref: refs/heads/main\n")
    files["git_head"] = head

    dll = data_root / "b.dll"
    dll.write_bytes(b"MZ\x90\x00")
    files["dll"] = dll

    return files


@pytest.fixture
def sample_tree(data_root: Path) -> dict[str, Path]:
    """A tree exercising every filter rule."""
    files = {}

    files["top"] = data_root / "notes.txt"
    files["top"].write_text("top level notes")

    nested = data_root / "one" / "two" / "three"
    nested.mkdir(parents=True)
    files["nested"] = nested / "deep.csv"
    files["nested"].write_text("a,b\n1,2\n")

    files["hidden_file"] = data_root / ".env"
    files["hidden_file"].write_text("SECRET=1")

    saved_page = data_root / "article_files"
    saved_page.mkdir()
    files["saved_page"] = saved_page / "image.png"
    files["saved_page"].write_bytes(b"\x89PNG")

    appdata = data_root / "user" / "AppData"
    appdata.mkdir(parents=True)
    files["appdata"] = appdata / "settings.ini"
    files["appdata"].write_text("[x]")

    files["json"] = data_root / "package.JSON"
    files["json"].write_text("{}")

    files["license"] = data_root / "LICENSE.txt"
    files["license"].write_text("MIT")

    return files


@pytest.fixture
def duplicate_files(data_root: Path) -> tuple[Path, Path]:
    """Create two files with identical content in different directories."""
    content = b"This content is duplicated in two files.\n"

    file1 = data_root / "original.txt"
    file1.write_bytes(content)

    copies = data_root / "copies"
    copies.mkdir()
    file2 = copies / "copy.txt"
    file2.write_bytes(content)

    return file1, file2


@pytest.fixture
def store_rows(test_config: DirListConfig):
    """Return a function reading all (crc, name, path, size) rows as a set."""
    def _read(db_path: Path | None = None) -> set:
        conn = sqlite3.connect(str(db_path or test_config.db_path))
        try:
            return set(conn.execute("SELECT crc, name, path, size FROM files"))
        finally:
            conn.close()
    return _read
