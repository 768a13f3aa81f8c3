"""
Text Mirror - Optional plain-text echo of recorded files.

One line per record: crc, "name", "path", size. The file is written as
records are produced and is not part of the run transaction.
"""

import logging
from pathlib import Path
from typing import Optional, TextIO

from .models import FileRecord


logger = logging.getLogger(__name__)


def format_record(record: FileRecord) -> str:
    return (
        f'{record.fingerprint}, "{record.name}", '
        f'"{record.parent_path}", {record.size_bytes}'
    )


class TextMirror:
    """Writes FileRecords to a text file, one line each."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._file: Optional[TextIO] = None

    def open(self) -> "TextMirror":
        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # surrogateescape keeps undecodable file names writable
            self._file = open(
                self.path, "w", encoding="utf-8", errors="surrogateescape"
            )
            logger.debug(f"Mirroring records to {self.path}")
        return self

    def write(self, record: FileRecord) -> None:
        if self._file is None:
            self.open()
        self._file.write(format_record(record) + "\n")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
