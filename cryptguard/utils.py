"""
Shared utility helpers.

This module contains small, reusable helpers that do not belong
to rule evaluation, content classification, or reporting.
"""

from __future__ import annotations

from pathlib import Path, PurePath


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def normalize_path(path: str | PurePath) -> str:
    """Return a forward-slash path without a leading './'."""
    text = path.as_posix() if isinstance(path, PurePath) else str(path).replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    return text


def is_within(path: str, directory: str) -> bool:
    """Return True if a normalized path sits beneath a directory."""
    prefix = normalize_path(directory).rstrip("/")
    return not prefix or path.startswith(prefix + "/")


# ---------------------------------------------------------------------------
# Byte helpers
# ---------------------------------------------------------------------------

# Printable ASCII plus the C-locale whitespace class
_PRINTABLE = frozenset(range(0x20, 0x7F)) | frozenset(b"\t\n\v\f\r")


def printable_ratio(sample: bytes) -> int:
    """
    Return the integer percentage of printable-or-whitespace bytes.

    An empty sample has no ratio; callers must check for it first.
    """

    if not sample:
        raise ValueError("cannot compute printable ratio of an empty sample")

    printable = sum(1 for byte in sample if byte in _PRINTABLE)
    return printable * 100 // len(sample)


def decode_text(data: bytes) -> str:
    """Best-effort text view of arbitrary bytes."""
    return data.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def read_candidate(path: Path) -> bytes:
    """
    Read a candidate file.

    Raises:
        FileNotFoundError: if the path is missing or not a regular file
        OSError: if the file cannot be read
    """

    if not path.is_file():
        raise FileNotFoundError(f"not a regular file: {path}")
    return path.read_bytes()
