"""
Recorder - SQLite store for file records.

Owns the connection and the single transaction that spans a whole run:

    ensure_schema() -> reset_if_requested() -> begin_run()
        -> record()* -> commit_run() | rollback_run()

Rows are buffered and written with executemany inside the run transaction,
so nothing from a run is visible until commit_run(). A rollback leaves the
table exactly as it was when begin_run() was called.
"""

import logging
import os
import sqlite3
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import (
    PersistenceWriteError,
    StoreError,
    StoreLockError,
    StoreOpenError,
    StoreStateError,
)
from .models import FileRecord, ResetPolicy, RunState


logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = (
    "CREATE TABLE IF NOT EXISTS files "
    "(crc INTEGER, name TEXT, path TEXT, size INTEGER)"
)
INSERT_SQL = "INSERT INTO files (crc, name, path, size) VALUES (?, ?, ?, ?)"


def _is_lock_error(error: sqlite3.Error) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message


def _to_text(value: str) -> str:
    """Make undecodable (surrogate-escaped) file names storable as TEXT."""
    try:
        value.encode("utf-8")
        return value
    except UnicodeEncodeError:
        return os.fsencode(value).decode("utf-8", "backslashreplace")


class Recorder:
    """
    Persistent store of FileRecords.

    The connection runs in autocommit mode (isolation_level=None) and all
    transactions are issued explicitly.
    """

    def __init__(
        self,
        db_path: Path,
        timeout: float = 5.0,
        batch_size: int = 500,
    ):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.batch_size = max(1, batch_size)
        self.state = RunState.UNOPENED
        self.rows_written = 0
        self._conn: Optional[sqlite3.Connection] = None
        self._buffer: List[Tuple[int, str, str, int]] = []

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            try:
                # Creates the database file if it doesn't exist
                self._conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=self.timeout,
                    isolation_level=None,
                )
            except sqlite3.Error as e:
                raise self._store_error(e) from e
            logger.debug(f"Opened store {self.db_path}")
        return self._conn

    def _store_error(self, error: sqlite3.Error) -> StoreError:
        """Map a setup-time sqlite3 error to StoreLockError or StoreOpenError."""
        if _is_lock_error(error):
            return StoreLockError(str(self.db_path), str(error))
        return StoreOpenError(f"Cannot use store {self.db_path}: {error}")

    def _require(self, *states: RunState) -> None:
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise StoreStateError(
                f"Store is {self.state.value}, expected one of: {expected}"
            )

    def ensure_schema(self) -> None:
        """Create the files table if it doesn't exist."""
        self._require(RunState.UNOPENED)
        conn = self._get_connection()
        try:
            conn.execute(CREATE_TABLE_SQL)
        except sqlite3.Error as e:
            raise self._store_error(e) from e
        self.state = RunState.SCHEMA_ENSURED

    def reset_if_requested(self, policy: ResetPolicy) -> None:
        """Delete all prior rows if policy is CLEAR, otherwise keep them."""
        self._require(RunState.SCHEMA_ENSURED)
        if ResetPolicy.parse(policy) is ResetPolicy.KEEP:
            logger.info(f"Adding to previous store: {self.count()} rows")
            return

        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            cursor = conn.execute("DELETE FROM files")
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise self._store_error(e) from e
        logger.info(f"Cleared previous store: {cursor.rowcount} rows deleted")
        self.state = RunState.RESET

    def probe_lock(self) -> None:
        """
        Take and immediately release the write lock.

        Raises StoreLockError if another writer holds the store.
        """
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            raise self._store_error(e) from e

    def begin_run(self) -> None:
        """Check for a competing writer, then open the run transaction."""
        self._require(RunState.SCHEMA_ENSURED, RunState.RESET)
        self.probe_lock()
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise self._store_error(e) from e
        self.rows_written = 0
        self.state = RunState.TRANSACTION_OPEN
        logger.debug("Run transaction open")

    def record(self, file_record: FileRecord) -> None:
        """Buffer one row; flushes every batch_size rows."""
        self._require(RunState.TRANSACTION_OPEN)
        fingerprint, name, path, size = file_record.as_row()
        self._buffer.append((fingerprint, _to_text(name), _to_text(path), size))
        if len(self._buffer) >= self.batch_size:
            self._flush()

    def _flush(self) -> None:
        if not self._buffer:
            return
        conn = self._get_connection()
        try:
            conn.executemany(INSERT_SQL, self._buffer)
        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Insert of {len(self._buffer)} rows failed: {e}")
            raise PersistenceWriteError(f"Insert into {self.db_path} failed: {e}") from e
        self.rows_written += len(self._buffer)
        self._buffer.clear()

    def commit_run(self) -> int:
        """
        Flush buffered rows and commit the run.

        Returns:
            Number of rows written in this run
        """
        self._require(RunState.TRANSACTION_OPEN)
        self._flush()
        try:
            self._get_connection().execute("COMMIT")
        except sqlite3.Error as e:
            raise PersistenceWriteError(f"Commit to {self.db_path} failed: {e}") from e
        self.state = RunState.COMMITTED
        logger.info(f"Committed {self.rows_written} rows to {self.db_path}")
        return self.rows_written

    def rollback_run(self) -> None:
        """
        Discard everything recorded in this run.

        Safe to call in any state; only an open run transaction is rolled back.
        """
        self._buffer.clear()
        if self.state is not RunState.TRANSACTION_OPEN:
            return
        conn = self._get_connection()
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        self.state = RunState.ROLLED_BACK
        logger.warning(f"Rolled back run: {self.rows_written} flushed rows discarded")

    def count(self) -> int:
        """Number of rows visible on this connection."""
        cursor = self._get_connection().execute("SELECT COUNT(*) FROM files")
        return cursor.fetchone()[0]

    def close(self):
        """Close database connection."""
        if self._conn:
            try:
                if self.state is RunState.TRANSACTION_OPEN:
                    self.rollback_run()
            finally:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "Recorder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
