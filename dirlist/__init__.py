"""
dirlist - Record file fingerprints for later duplicate detection.

Modules:
    - config: Centralized configuration
    - filters: Admit/reject policy for directories and files
    - hasher: Streaming CRC-32 fingerprints
    - scanner: Explicit-stack directory walker
    - recorder: SQLite store with a run-wide transaction
    - mirror: Optional plain-text echo of records
    - orchestrator: Main entry point

Flow:
    Walk → Filter → Fingerprint (CRC-32) → Record → Commit (or Rollback)

Usage:
    from dirlist import Orchestrator

    stats = Orchestrator().run(["/data"])

Duplicates are then a query over the store, e.g.
    SELECT crc, name, path, size FROM files
    WHERE crc IN (SELECT crc FROM files GROUP BY crc HAVING COUNT(*) > 1)
"""

from .orchestrator import Orchestrator, run_once

__all__ = ["Orchestrator", "run_once"]
