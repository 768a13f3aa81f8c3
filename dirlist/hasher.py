"""
Hasher - Streaming CRC-32 content fingerprints.

Files are read in fixed-size chunks and folded through zlib.crc32, so memory
use does not depend on file size. A file that cannot be opened or fully read
gets the sentinel fingerprint 0 instead of an error. The sentinel can collide
with a file whose real CRC-32 is 0; that ambiguity is accepted.
"""

import logging
import zlib

from .errors import handle_error


logger = logging.getLogger(__name__)

UNREADABLE_FINGERPRINT = 0
DEFAULT_CHUNK_SIZE = 65536


def compute_crc32(path: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """CRC-32 of a file's bytes as an unsigned 32-bit int. Raises OSError."""
    crc = 0
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            crc = zlib.crc32(chunk, crc)
    return crc & 0xFFFFFFFF


class Hasher:
    """
    Content fingerprinting for the walker.

    Never raises for unreadable files; counts them in ``failures`` so the
    run summary can report how many sentinel fingerprints were written.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size
        self.failures = 0

    def fingerprint(self, path: str) -> int:
        """Return the CRC-32 of ``path``, or 0 if it cannot be read."""
        try:
            return compute_crc32(path, self.chunk_size)
        except OSError as e:
            handle_error(e, path, "fingerprint")
            self.failures += 1
            return UNREADABLE_FINGERPRINT
