"""
Error Handling - Centralized error policies and custom exceptions.

File-level and directory-level failures are absorbed here: they are logged
according to a policy and the walk continues. Store-level failures are
raised as StoreError subclasses and always abort the run.
"""

import logging
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger(__name__)


@dataclass
class ErrorPolicy:
    """How a specific error type is logged."""
    log_level: int
    message_template: str = "{file}: {error}"


# Error type to policy mapping. Order matters: subclasses before OSError.
ERROR_POLICIES: dict[type, ErrorPolicy] = {
    PermissionError: ErrorPolicy(
        log_level=logging.WARNING,
        message_template="Permission denied: {file}"
    ),
    FileNotFoundError: ErrorPolicy(
        log_level=logging.INFO,
        message_template="Not found (possibly deleted): {file}"
    ),
    IsADirectoryError: ErrorPolicy(
        log_level=logging.DEBUG,
        message_template="Expected file, got directory: {file}"
    ),
    # A root that is a file, or a directory replaced mid-walk
    NotADirectoryError: ErrorPolicy(
        log_level=logging.WARNING,
        message_template="Expected directory, got file: {file}"
    ),
    OSError: ErrorPolicy(
        log_level=logging.WARNING,
        message_template="OS error: {file} - {error}"
    ),
}

# Anything that is not an OS error is a bug
UNEXPECTED_ERROR_POLICY = ErrorPolicy(
    log_level=logging.ERROR,
    message_template="Unexpected error: {file} - {error}"
)


class DirListError(Exception):
    """Base exception for dirlist errors."""
    pass


class StoreError(DirListError):
    """Error in the persistent store. Always fatal to the run."""
    pass


class StoreOpenError(StoreError):
    """The store could not be opened or is not a usable SQLite database."""
    pass


class StoreLockError(StoreError):
    """The store is held by another writer."""
    def __init__(self, db_path: str, reason: str = ""):
        self.db_path = db_path
        message = f"Store is locked by another process: {db_path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class PersistenceWriteError(StoreError):
    """An insert into the store failed."""
    pass


class StoreStateError(StoreError):
    """A store operation was called in the wrong run state."""
    pass


def handle_error(
    error: Exception,
    file_path: Optional[str] = None,
    context: str = ""
) -> None:
    """
    Log a file- or directory-level error according to the defined policies.

    The caller always continues: an unlistable directory is treated as
    empty, an unreadable file gets the sentinel fingerprint.

    Args:
        error: The exception that occurred
        file_path: Path of the file or directory being processed
        context: Additional context for logging
    """
    policy = UNEXPECTED_ERROR_POLICY
    for error_type, p in ERROR_POLICIES.items():
        if isinstance(error, error_type):
            policy = p
            break

    file_str = str(file_path) if file_path else "<unknown>"
    message = policy.message_template.format(file=file_str, error=str(error))
    if context:
        message = f"[{context}] {message}"

    logger.log(policy.log_level, message)
