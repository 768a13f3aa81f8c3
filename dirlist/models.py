"""
Data Models - Type definitions for the listing pipeline.

These dataclasses represent the data flowing from the walker into the
store, plus the statistics reported at the end of a run.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class ResetPolicy(Enum):
    """What to do with previously recorded rows when a run starts."""
    KEEP = "keep"     # Append to prior contents (incremental runs)
    CLEAR = "clear"   # Delete prior contents before the run

    @classmethod
    def parse(cls, value: "str | ResetPolicy") -> "ResetPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid reset policy {value!r}, expected 'keep' or 'clear'"
            ) from None


class RunState(Enum):
    """Lifecycle of the store during one run."""
    UNOPENED = "unopened"
    SCHEMA_ENSURED = "schema_ensured"
    RESET = "reset"
    TRANSACTION_OPEN = "transaction_open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class FileRecord:
    """
    One accepted regular file.

    fingerprint is the CRC-32 of the content, or 0 when the content could
    not be read. size_bytes comes from lstat and may differ from the number
    of bytes actually hashed if a read failed partway.
    """
    fingerprint: int
    name: str
    parent_path: str
    size_bytes: int

    def as_row(self) -> Tuple[int, str, str, int]:
        """Column order of the files table: crc, name, path, size."""
        return (self.fingerprint, self.name, self.parent_path, self.size_bytes)


@dataclass
class ScanStats:
    """Counters accumulated while walking one or more roots."""
    entries_visited: int = 0
    dirs_visited: int = 0
    files_recorded: int = 0
    entries_rejected: int = 0
    unreadable_dirs: int = 0
    unreadable_entries: int = 0

    def merge(self, other: "ScanStats") -> None:
        self.entries_visited += other.entries_visited
        self.dirs_visited += other.dirs_visited
        self.files_recorded += other.files_recorded
        self.entries_rejected += other.entries_rejected
        self.unreadable_dirs += other.unreadable_dirs
        self.unreadable_entries += other.unreadable_entries


@dataclass
class RunStats:
    """Statistics from a committed run."""
    roots_processed: int = 0
    files_recorded: int = 0
    files_unreadable: int = 0      # Recorded with the sentinel fingerprint
    dirs_unreadable: int = 0
    entries_skipped: int = 0       # Rejected by the filter or not stat-able
    duration_seconds: float = 0.0

    def __str__(self) -> str:
        return (
            f"Recorded {self.files_recorded} files from "
            f"{self.roots_processed} roots "
            f"({self.files_unreadable} unreadable files, "
            f"{self.dirs_unreadable} unreadable directories, "
            f"{self.entries_skipped} skipped) "
            f"in {self.duration_seconds:.1f}s"
        )
