"""
Candidate file discovery.

This module is responsible for:
- listing files staged for commit
- walking the repository tree
- narrowing candidates to a secret directory and file extensions

This module does NOT:
- read file content
- evaluate rules
- load settings
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from .utils import is_within, normalize_path

logger = logging.getLogger(__name__)

SKIPPED_DIRS = frozenset({".git"})


def staged_files(root: str | Path = ".") -> List[str]:
    """
    Return paths added, copied, modified or renamed in the index.

    Deleted paths are left out: there is nothing left to inspect.

    Raises:
        RuntimeError: if git is unavailable or the command fails
    """

    try:
        proc = subprocess.run(
            ["git", "diff", "--cached", "--name-only", "--diff-filter=ACMR", "-z"],
            cwd=str(root),
            capture_output=True,
            check=True,
        )
    except FileNotFoundError:
        raise RuntimeError("git executable not found")
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", errors="replace").strip() if e.stderr else ""
        raise RuntimeError(f"Could not list staged files: {stderr or e}")

    output = proc.stdout.decode("utf-8", errors="replace")
    return [name for name in output.split("\0") if name]


class FileScanner:
    def __init__(
        self,
        root: str | Path,
        secret_dir: Optional[str] = None,
        extensions: Sequence[str] = (),
    ):
        self.root = Path(root)
        self.secret_dir = secret_dir
        self.extensions = tuple(ext.lower() for ext in extensions)

    def accepts(self, path: str) -> bool:
        """Return True if a normalized path passes the candidate filters."""
        if self.secret_dir and not is_within(path, self.secret_dir):
            return False
        if self.extensions and not path.lower().endswith(self.extensions):
            return False
        return True

    def filter(self, paths: Iterable[str | Path]) -> Iterator[str]:
        """
        Normalize paths and yield those that pass the filters, once each.
        """

        seen = set()
        for raw in paths:
            path = normalize_path(raw)
            if path in seen:
                continue
            seen.add(path)

            if not self.accepts(path):
                logger.debug("Not a candidate: %s", path)
                continue

            yield path

    def scan(self) -> Iterator[str]:
        """
        Walk the tree and yield candidate paths relative to root.
        """

        for path in sorted(self.root.rglob("*")):
            rel_path = path.relative_to(self.root)
            if SKIPPED_DIRS.intersection(rel_path.parts):
                continue
            if not path.is_file():
                continue

            yield from self.filter([rel_path])

    def staged(self) -> Iterator[str]:
        """Yield candidate paths from the git index."""
        yield from self.filter(staged_files(self.root))
