"""
Configuration - Centralized settings for a listing run.

Uses environment variables with sensible defaults. Root paths are made
absolute (without resolving symlinks) so that recorded parent paths match
what was traversed.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .filters import FilterPolicy
from .models import ResetPolicy


@dataclass
class DirListConfig:
    """
    Configuration for the listing pipeline.

    The store defaults to dirlist.db in the working directory and prior
    rows are kept, so repeated runs over different roots accumulate.
    """

    # --- Paths ---
    roots: List[str] = field(default_factory=list)
    db_path: Path = field(default_factory=lambda: Path("dirlist.db"))
    mirror_path: Optional[Path] = None      # Plain-text echo, off by default

    # --- Run policy ---
    reset_policy: ResetPolicy = ResetPolicy.KEEP
    filter_policy: FilterPolicy = field(default_factory=FilterPolicy)

    # --- Tuning ---
    chunk_size: int = 65536         # Hasher read size
    db_batch_size: int = 500        # Rows buffered per executemany
    db_timeout: float = 5.0         # Seconds to wait on a busy store
    progress_interval: int = 50     # Visits between progress callbacks

    def __post_init__(self):
        """Normalize paths and make sure the store's directory exists."""
        self.roots = [os.path.abspath(os.path.expanduser(str(r))) for r in self.roots]
        self.db_path = Path(self.db_path).expanduser().resolve()
        if self.mirror_path is not None:
            self.mirror_path = Path(self.mirror_path).expanduser().resolve()
        self.reset_policy = ResetPolicy.parse(self.reset_policy)

        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.db_batch_size <= 0:
            raise ValueError(f"db_batch_size must be positive, got {self.db_batch_size}")

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "DirListConfig":
        """
        Create config from environment variables.

        Supported env vars:
            DIRLIST_ROOTS: Comma-separated list of paths
            DIRLIST_DB_PATH: Path to SQLite database
            DIRLIST_RESET: "keep" or "clear"
            DIRLIST_MIRROR_PATH: Path to the plain-text mirror
            DIRLIST_SKIP_EXTENSIONS: Comma-separated extension deny list
            DIRLIST_BATCH_SIZE: Rows buffered per insert batch
            DIRLIST_TIMEOUT: Seconds to wait on a busy store
        """
        config = cls()

        if roots := os.environ.get("DIRLIST_ROOTS"):
            config.roots = [p.strip() for p in roots.split(",") if p.strip()]

        if db_path := os.environ.get("DIRLIST_DB_PATH"):
            config.db_path = Path(db_path)

        if reset := os.environ.get("DIRLIST_RESET"):
            config.reset_policy = ResetPolicy.parse(reset)

        if mirror := os.environ.get("DIRLIST_MIRROR_PATH"):
            config.mirror_path = Path(mirror)

        if extensions := os.environ.get("DIRLIST_SKIP_EXTENSIONS"):
            config.filter_policy = config.filter_policy.with_extensions(
                e for e in extensions.split(",") if e.strip()
            )

        if batch := os.environ.get("DIRLIST_BATCH_SIZE"):
            config.db_batch_size = int(batch)

        if timeout := os.environ.get("DIRLIST_TIMEOUT"):
            config.db_timeout = float(timeout)

        config.__post_init__()
        return config


# Singleton default config
_default_config: DirListConfig | None = None


def get_config() -> DirListConfig:
    """Get the default configuration (singleton)."""
    global _default_config
    if _default_config is None:
        _default_config = DirListConfig.from_env()
    return _default_config


def set_config(config: DirListConfig | None) -> None:
    """Override the default configuration (for testing)."""
    global _default_config
    _default_config = config
