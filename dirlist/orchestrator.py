"""
Orchestrator - Main entry point for a listing run.

One run covers every configured root inside one store transaction:

    ensure schema → reset policy → begin run → walk each root → commit

Any exception escaping a walk (or the commit) rolls the whole run back and
stops before the remaining roots. Per-file and per-directory problems never
get that far; the walker and hasher absorb them.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional

from .config import get_config, DirListConfig
from .errors import DirListError, StoreLockError, StoreOpenError
from .hasher import Hasher
from .mirror import TextMirror
from .models import ResetPolicy, RunStats, ScanStats
from .recorder import Recorder
from .scanner import Walker


logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Sequences roots through a Walker that shares one Recorder.

    A new Recorder (connection) is created per run and closed when the run
    ends, committed or not.
    """

    def __init__(
        self,
        config: Optional[DirListConfig] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ):
        self.config = config or get_config()
        self.on_progress = on_progress

    def run(
        self,
        roots: Optional[List[str]] = None,
        reset_policy: Optional[ResetPolicy] = None,
    ) -> RunStats:
        """
        Walk all roots and commit their records as one transaction.

        Args:
            roots: Directories to walk, in order (default: config.roots)
            reset_policy: KEEP or CLEAR (default: config.reset_policy)

        Returns:
            Statistics about the committed run

        Raises:
            StoreLockError: The store is held by another writer; nothing was walked
            StoreOpenError: The store cannot be opened or is not a database
            StoreError: A write failed; the run was rolled back
        """
        roots = list(roots) if roots is not None else list(self.config.roots)
        policy = ResetPolicy.parse(
            reset_policy if reset_policy is not None else self.config.reset_policy
        )
        start_time = time.monotonic()

        recorder = Recorder(
            self.config.db_path,
            timeout=self.config.db_timeout,
            batch_size=self.config.db_batch_size,
        )
        hasher = Hasher(self.config.chunk_size)
        mirror = TextMirror(self.config.mirror_path) if self.config.mirror_path else None

        try:
            recorder.ensure_schema()
            recorder.reset_if_requested(policy)
            recorder.begin_run()
            logger.info(f"Store initialized: {self.config.db_path}")

            if mirror is not None:
                mirror.open()

            walker = Walker(
                self.config.filter_policy,
                hasher,
                recorder,
                mirror=mirror,
                on_progress=self.on_progress,
                progress_interval=self.config.progress_interval,
            )

            scan_stats = ScanStats()
            try:
                for root in roots:
                    logger.info(f"Start finding files in {root}")
                    root_stats = walker.walk(root)
                    scan_stats.merge(root_stats)
                    logger.info(
                        f"Finished {root}: {root_stats.files_recorded} files, "
                        f"{root_stats.dirs_visited} directories"
                    )
                recorder.commit_run()
            except BaseException:
                logger.error("Run failed, rolling back all roots")
                recorder.rollback_run()
                raise
        finally:
            if mirror is not None:
                mirror.close()
            recorder.close()

        stats = RunStats(
            roots_processed=len(roots),
            files_recorded=scan_stats.files_recorded,
            files_unreadable=hasher.failures,
            dirs_unreadable=scan_stats.unreadable_dirs,
            entries_skipped=scan_stats.entries_rejected + scan_stats.unreadable_entries,
            duration_seconds=time.monotonic() - start_time,
        )
        logger.info(f"Run complete: {stats}")
        return stats


def run_once(
    roots: Optional[List[str]] = None,
    reset_policy: Optional[ResetPolicy] = None,
    config: Optional[DirListConfig] = None,
) -> RunStats:
    """
    Convenience function to run the pipeline once.

    Usage:
        stats = run_once(["/data"], ResetPolicy.CLEAR)
        print(stats)
    """
    return Orchestrator(config).run(roots, reset_policy)


def _print_progress(count: int) -> None:
    print(f"{count}\r", end="", file=sys.stderr, flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="List files under root directories with CRC-32 fingerprints into SQLite"
    )
    parser.add_argument("roots", nargs="*", help="Directories to list (default: DIRLIST_ROOTS)")
    parser.add_argument("--db", help="SQLite database path")
    parser.add_argument("--clear", action="store_true", help="Delete previous rows before the run")
    parser.add_argument("--mirror", help="Also write records to this text file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s"
    )

    config = DirListConfig.from_env()
    if args.roots:
        config.roots = args.roots
    if args.db:
        config.db_path = Path(args.db)
    if args.clear:
        config.reset_policy = ResetPolicy.CLEAR
    if args.mirror:
        config.mirror_path = Path(args.mirror)
    config.__post_init__()

    if not config.roots:
        parser.error("no root directories given (pass ROOT arguments or set DIRLIST_ROOTS)")

    orchestrator = Orchestrator(config, on_progress=_print_progress)

    try:
        stats = orchestrator.run()
    except (StoreLockError, StoreOpenError) as e:
        logger.error(f"{e}")
        return 1
    except DirListError as e:
        logger.error(f"Run rolled back: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nStopped, run rolled back.", file=sys.stderr)
        return 1
    finally:
        print("\nDone.", file=sys.stderr)

    print(f"\n{stats}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
