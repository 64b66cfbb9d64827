# scanner.py
# Repository file listing for documentation context.
#
# Ignore patterns are shell globs. A pattern matches an entry when it
# matches either the entry's name or its path relative to the root, so
# "target" prunes every target/ directory and "docs/api" only that one.
# Ignored directories are never descended into.

import fnmatch
import os
from pathlib import Path

from plan_agent.errors import RepositoryError


class RepositoryScanner:
    """
    Lists the files under a repository root.

    Example:
        files = RepositoryScanner(".", [".git", "*.lock"]).scan()
    """

    def __init__(self, root: str | Path, ignore_patterns: list[str] | None = None) -> None:
        self._root = Path(root)
        self._ignore_patterns = list(ignore_patterns or [])

    @property
    def root(self) -> Path:
        return self._root

    def is_ignored(self, relative: str) -> bool:
        name = relative.rsplit("/", 1)[-1]
        return any(
            fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(relative, pattern)
            for pattern in self._ignore_patterns
        )

    def scan(self) -> list[Path]:
        """Return every non-ignored file, relative to the root, sorted."""
        if not self._root.is_dir():
            raise RepositoryError(f"Repository path is not a directory: {self._root}")

        def _walk_error(exc: OSError) -> None:
            raise RepositoryError(f"Failed to scan {exc.filename}: {exc.strerror}") from exc

        files: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self._root, onerror=_walk_error):
            base = Path(dirpath).relative_to(self._root)
            dirnames[:] = sorted(
                d for d in dirnames if not self.is_ignored((base / d).as_posix())
            )
            for filename in filenames:
                relative = base / filename
                if not self.is_ignored(relative.as_posix()):
                    files.append(relative)
        return sorted(files)

    def summary(self, files: list[Path], limit: int = 200) -> str:
        """Plain-text file listing used as repository context in prompts."""
        lines = [f"Repository at {self._root} ({len(files)} files):"]
        lines.extend(f"- {path.as_posix()}" for path in files[:limit])
        if len(files) > limit:
            lines.append(f"- ... {len(files) - limit} more")
        return "\n".join(lines)
