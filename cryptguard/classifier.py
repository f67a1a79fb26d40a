"""
Content classification: is this file's content encrypted?

This module runs an ordered heuristic cascade over raw file bytes.
The first method that reports ciphertext wins; later methods are not
evaluated. It knows nothing about policy, paths, or presentation.

Cascade:
1. content-type sniff (type descriptor keywords)
2. encryption marker scan
3. printable-ratio probe over the first bytes of the file

Compressed but unencrypted content classifies as encrypted.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .config import (
    DEFAULT_PRINTABLE_THRESHOLD,
    DEFAULT_PROBE_LIMIT,
    DEFAULT_TYPE_KEYWORDS,
    SNIFFER_AUTO,
    SNIFFER_BUILTIN,
    SNIFFER_FILE,
    SNIFFER_NONE,
    UNKNOWN_TYPE,
)
from .markers import DEFAULT_MARKERS, Marker, scan_markers
from .utils import printable_ratio

logger = logging.getLogger(__name__)

METHOD_TYPE = "type"
METHOD_MARKER = "marker"
METHOD_RATIO = "ratio"

Sniffer = Callable[[bytes], str]


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


@dataclass
class ClassificationEvidence:
    reported_type: str = UNKNOWN_TYPE
    marker_hits: List[str] = field(default_factory=list)
    printable_ratio: Optional[int] = None
    method: Optional[str] = None

    @property
    def marker(self) -> Optional[str]:
        return self.marker_hits[0] if self.marker_hits else None

    def describe(self) -> str:
        """One-line explanation of the decision."""
        if self.method == METHOD_TYPE:
            return f"detected by file type: {self.reported_type}"
        if self.method == METHOD_MARKER:
            return f"{self.marker} marker detected"
        if self.method == METHOD_RATIO:
            return f"low printable character ratio ({self.printable_ratio}%)"
        if self.printable_ratio is None:
            return "no encryption evidence (empty content)"
        return f"no encryption evidence (printable ratio {self.printable_ratio}%)"

    def to_dict(self) -> dict:
        return {
            "reported_type": self.reported_type,
            "marker_hits": list(self.marker_hits),
            "printable_ratio": self.printable_ratio,
            "method": self.method,
        }


# ---------------------------------------------------------------------------
# Sniffers
# ---------------------------------------------------------------------------


def file_command_sniffer(data: bytes) -> str:
    """
    Describe content with the system `file` utility.

    Raises:
        OSError: if `file` cannot be executed
        subprocess.CalledProcessError: if `file` exits nonzero
    """

    proc = subprocess.run(
        ["file", "-b", "-"],
        input=data,
        capture_output=True,
        check=True,
        timeout=30,
    )
    return proc.stdout.decode("utf-8", errors="replace").strip()


# (signature, descriptor) pairs, checked at offset 0
_MAGIC_TABLE: Tuple[Tuple[bytes, str], ...] = (
    (b"\x00GITCRYPT\x00", "git-crypt encrypted data"),
    (b"\x1f\x8b", "gzip compressed data"),
    (b"BZh", "bzip2 compressed data"),
    (b"\xfd7zXZ\x00", "XZ compressed data"),
    (b"\x28\xb5\x2f\xfd", "Zstandard compressed data"),
    (b"7z\xbc\xaf\x27\x1c", "7-zip archive data"),
    (b"PK\x03\x04", "Zip archive data"),
    (b"age-encryption.org/v1", "age encrypted file"),
    (b"-----BEGIN AGE ENCRYPTED FILE-----", "age encrypted file, ASCII armored"),
    (b"-----BEGIN PGP MESSAGE-----", "PGP message"),
    (b"\x8c\x0d", "GPG symmetrically encrypted data"),
    (b"\x85\x01", "PGP RSA encrypted session key"),
)

# Bytes that never appear in text files
_CONTROL_BYTES = frozenset(range(0x00, 0x20)) - frozenset(b"\t\n\v\f\r\x1b") | {0x7F}


def builtin_sniffer(data: bytes) -> str:
    """
    Describe content from a small magic-byte table.

    Mirrors the descriptors `file` would print for the formats that
    matter here; anything else is reported as some kind of text
    or as "data".
    """

    if not data:
        return "empty"

    for signature, descriptor in _MAGIC_TABLE:
        if data.startswith(signature):
            return descriptor

    if any(byte in _CONTROL_BYTES for byte in data):
        return "data"

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return "ISO-8859 text"

    return "ASCII text" if text.isascii() else "UTF-8 Unicode text"


def resolve_sniffer(name: str) -> Optional[Sniffer]:
    """
    Map a sniffer name to a callable.

    "auto" prefers the `file` utility and falls back to the builtin table
    when it is not installed. "none" disables the type sniff.
    """

    if name == SNIFFER_NONE:
        return None
    if name == SNIFFER_BUILTIN:
        return builtin_sniffer
    if name == SNIFFER_FILE:
        return file_command_sniffer
    if name == SNIFFER_AUTO:
        if shutil.which("file"):
            return file_command_sniffer
        logger.debug("`file` not found on PATH, using builtin sniffer")
        return builtin_sniffer
    raise ValueError(f"Unknown sniffer: {name}")


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class ContentClassifier:
    def __init__(
        self,
        sniffer: Optional[Sniffer] = builtin_sniffer,
        markers: Sequence[Marker] = DEFAULT_MARKERS,
        type_keywords: Sequence[str] = DEFAULT_TYPE_KEYWORDS,
        probe_limit: int = DEFAULT_PROBE_LIMIT,
        printable_threshold: int = DEFAULT_PRINTABLE_THRESHOLD,
    ):
        self.sniffer = sniffer
        self.markers = tuple(markers)
        self.type_keywords = tuple(k.lower() for k in type_keywords)
        self.probe_limit = probe_limit
        self.printable_threshold = printable_threshold

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(
        self,
        data: bytes,
        probe_limit: Optional[int] = None,
    ) -> Tuple[bool, ClassificationEvidence]:
        """
        Decide whether content is encrypted.

        Args:
            data: full file content
            probe_limit: bytes sampled by the printable-ratio probe

        Returns:
            (is_encrypted, evidence)
        """

        evidence = ClassificationEvidence()
        limit = self.probe_limit if probe_limit is None else probe_limit

        evidence.reported_type = self._sniff(data)
        if self._type_says_encrypted(evidence.reported_type):
            evidence.method = METHOD_TYPE
            return True, evidence

        evidence.marker_hits = [m.name for m in scan_markers(data, self.markers)]
        if evidence.marker_hits:
            evidence.method = METHOD_MARKER
            return True, evidence

        sample = data[:limit]
        if not sample:
            return False, evidence

        evidence.printable_ratio = printable_ratio(sample)
        if evidence.printable_ratio < self.printable_threshold:
            evidence.method = METHOD_RATIO
            return True, evidence

        return False, evidence

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _sniff(self, data: bytes) -> str:
        if self.sniffer is None:
            return UNKNOWN_TYPE

        try:
            reported = self.sniffer(data)
        except (OSError, subprocess.SubprocessError, ValueError) as e:
            logger.warning("Content sniff failed, continuing without it: %s", e)
            return UNKNOWN_TYPE

        return reported or UNKNOWN_TYPE

    def _type_says_encrypted(self, reported_type: str) -> bool:
        lowered = reported_type.lower()
        return any(keyword in lowered for keyword in self.type_keywords)


def classify(
    data: bytes,
    probe_limit: int = DEFAULT_PROBE_LIMIT,
    sniffer: Optional[Sniffer] = builtin_sniffer,
) -> Tuple[bool, ClassificationEvidence]:
    """Classify content with the default marker set."""
    return ContentClassifier(sniffer=sniffer).classify(data, probe_limit)
