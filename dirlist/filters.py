"""
Path Filter - Admit/reject policy for directories and files.

The policy is a plain value: a dataclass of deny lists plus a pure
``admit`` method. It never touches the filesystem; the walker passes in
what it already learned from lstat().
"""

import os
from dataclasses import dataclass, field
from typing import Iterable, Optional, Set


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def _last_segment(path: str) -> str:
    return path.rstrip("/\\").replace("\\", "/").rsplit("/", 1)[-1]


@dataclass
class FilterPolicy:
    """
    Deny lists deciding which entries are walked and recorded.

    Directory rules are matched against the absolute path string:
        dir_suffixes:   path ends with the value (saved web page "_files")
        dir_names:      last path segment equals the value ("AppData")
        dir_substrings: path contains the value (dot-prefixed segments)
        dir_prefixes:   path starts with the value (system/vendor roots)

    File rules are matched against the lowercased base name:
        skip_extensions:      extension is in the set
        forbidden_name_parts: name contains the value ("licen")
    """

    dir_suffixes: Set[str] = field(default_factory=lambda: {
        "_files",
    })

    dir_names: Set[str] = field(default_factory=lambda: {
        "AppData",
    })

    dir_substrings: Set[str] = field(default_factory=lambda: {
        os.sep + ".",
    })

    dir_prefixes: Set[str] = field(default_factory=lambda: {
        "C:\\Windows",
        "C:\\Program Files",
        "C:\\Users\\Public\\wpilib\\",
        "C:\\opencv\\",
    })

    skip_extensions: Set[str] = field(default_factory=lambda: {
        # Build and runtime artifacts
        ".bin", ".dll", ".sys", ".class", ".pdb",
        # Sources and config that churn with every checkout
        ".js", ".json", ".md", ".gradle", ".mk", ".prefs",
        # Lock files
        ".lock",
    })

    forbidden_name_parts: Set[str] = field(default_factory=lambda: {
        "licen",
    })

    def __post_init__(self):
        self.dir_suffixes = set(self.dir_suffixes)
        self.dir_names = set(self.dir_names)
        self.dir_substrings = {s for s in self.dir_substrings if s}
        self.dir_prefixes = {p for p in self.dir_prefixes if p}
        self.skip_extensions = {
            e for e in (_normalize_extension(x) for x in self.skip_extensions) if e
        }
        self.forbidden_name_parts = {
            p.lower() for p in self.forbidden_name_parts if p
        }

    def admit(
        self,
        path: str,
        is_dir: bool,
        is_hidden: bool,
        is_file: Optional[bool] = None,
    ) -> bool:
        """
        Decide whether an entry is walked (directory) or recorded (file).

        ``is_file`` defaults to ``not is_dir``; pass ``is_file=False`` for
        entries that are neither (symlinks, devices, sockets).
        """
        if is_hidden:
            return False

        if is_dir:
            return not self._deny_dir(path)

        if is_file is None:
            is_file = True
        if not is_file:
            return False

        return not self._deny_file(_last_segment(path))

    def _deny_dir(self, path: str) -> bool:
        if any(path.endswith(suffix) for suffix in self.dir_suffixes):
            return True
        if _last_segment(path) in self.dir_names:
            return True
        if any(part in path for part in self.dir_substrings):
            return True
        return any(path.startswith(prefix) for prefix in self.dir_prefixes)

    def _deny_file(self, name: str) -> bool:
        lower = name.lower()
        if os.path.splitext(lower)[1] in self.skip_extensions:
            return True
        return any(part in lower for part in self.forbidden_name_parts)

    @classmethod
    def permissive(cls) -> "FilterPolicy":
        """A policy that only rejects hidden entries and non-regular files."""
        return cls(
            dir_suffixes=set(),
            dir_names=set(),
            dir_substrings=set(),
            dir_prefixes=set(),
            skip_extensions=set(),
            forbidden_name_parts=set(),
        )

    def with_extensions(self, extensions: Iterable[str]) -> "FilterPolicy":
        """Copy of this policy with a different extension deny list."""
        return FilterPolicy(
            dir_suffixes=set(self.dir_suffixes),
            dir_names=set(self.dir_names),
            dir_substrings=set(self.dir_substrings),
            dir_prefixes=set(self.dir_prefixes),
            skip_extensions=set(extensions),
            forbidden_name_parts=set(self.forbidden_name_parts),
        )
