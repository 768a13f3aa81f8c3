"""
Scanner - Depth-first directory walker.

Walks a root with an explicit stack of pending directories, so tree depth is
limited only by memory. Each child is lstat()ed once; the result gives its
kind, its hidden flag and its size. Admitted files are fingerprinted and
handed to the recorder; admitted directories are pushed onto the stack.

Unlistable directories count as empty and unreadable entries are skipped.
Both are logged and the walk continues. Anything raised by the recorder is
not caught here.
"""

import logging
import os
import stat
from typing import Callable, List, Optional, Protocol

from .errors import handle_error
from .filters import FilterPolicy
from .hasher import Hasher
from .models import FileRecord, ScanStats


logger = logging.getLogger(__name__)


class RecordSink(Protocol):
    def record(self, file_record: FileRecord) -> None: ...


class MirrorSink(Protocol):
    def write(self, record: FileRecord) -> None: ...


def is_hidden(name: str, st: os.stat_result) -> bool:
    """
    Hidden by convention (dot-prefixed name) or by filesystem attribute
    (Windows FILE_ATTRIBUTE_HIDDEN, BSD/macOS UF_HIDDEN).
    """
    if name.startswith("."):
        return True
    attributes = getattr(st, "st_file_attributes", 0)
    if attributes & stat.FILE_ATTRIBUTE_HIDDEN:
        return True
    flags = getattr(st, "st_flags", 0)
    return bool(flags & stat.UF_HIDDEN)


class Walker:
    """
    Walks directory trees and records every admitted regular file.

    The same Walker (and therefore the same recorder transaction) is used for
    every root of a run.
    """

    def __init__(
        self,
        policy: FilterPolicy,
        hasher: Hasher,
        recorder: RecordSink,
        mirror: Optional[MirrorSink] = None,
        on_progress: Optional[Callable[[int], None]] = None,
        progress_interval: int = 50,
    ):
        self.policy = policy
        self.hasher = hasher
        self.recorder = recorder
        self.mirror = mirror
        self.on_progress = on_progress
        self.progress_interval = max(1, progress_interval)

    def walk(self, root: str, stats: Optional[ScanStats] = None) -> ScanStats:
        """
        Walk ``root`` and record admitted files.

        Args:
            root: Directory to walk. Made absolute; symlinks are not resolved.
            stats: Counters to accumulate into (a new ScanStats if omitted)

        Returns:
            The accumulated ScanStats
        """
        stats = stats if stats is not None else ScanStats()
        pending: List[str] = [os.path.abspath(root)]

        while pending:
            directory = pending.pop()
            stats.dirs_visited += 1

            subdirs = self._visit_directory(directory, stats)

            # Reversed so the first listed subdirectory is walked first
            pending.extend(reversed(subdirs))

        return stats

    def _visit_directory(self, directory: str, stats: ScanStats) -> List[str]:
        """Record the admitted files of one directory, return admitted subdirs."""
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            handle_error(e, directory, "list_directory")
            stats.unreadable_dirs += 1
            return []

        subdirs: List[str] = []

        for index in range(len(entries)):
            entry = entries[index]
            self._tick(stats)

            try:
                st = entry.stat(follow_symlinks=False)
            except OSError as e:
                handle_error(e, entry.path, "stat")
                stats.unreadable_entries += 1
                continue

            entry_is_dir = stat.S_ISDIR(st.st_mode)
            entry_is_file = stat.S_ISREG(st.st_mode)

            if not self.policy.admit(
                entry.path,
                is_dir=entry_is_dir,
                is_hidden=is_hidden(entry.name, st),
                is_file=entry_is_file,
            ):
                stats.entries_rejected += 1
                continue

            if entry_is_dir:
                subdirs.append(entry.path)
            else:
                self._record_file(entry.name, directory, entry.path, st.st_size)
                stats.files_recorded += 1

        return subdirs

    def _record_file(self, name: str, directory: str, path: str, size: int) -> None:
        record = FileRecord(
            fingerprint=self.hasher.fingerprint(path),
            name=name,
            parent_path=directory,
            size_bytes=size,
        )
        self.recorder.record(record)
        if self.mirror is not None:
            self.mirror.write(record)

    def _tick(self, stats: ScanStats) -> None:
        stats.entries_visited += 1
        if self.on_progress and stats.entries_visited % self.progress_interval == 0:
            self.on_progress(stats.entries_visited)
