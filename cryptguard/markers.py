"""
Encryption marker definitions.

A marker is a recognizable signature left behind by a specific
encryption scheme's serialized output. The marker set is plain data:
new schemes are added by extending the list (or the settings file),
never by touching the classifier cascade.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from .utils import decode_text

KIND_LINE_PREFIX = "line_prefix"
KIND_SUBSTRING = "substring"
KIND_MAGIC = "magic"

MARKER_KINDS = (KIND_LINE_PREFIX, KIND_SUBSTRING, KIND_MAGIC)


@dataclass(frozen=True)
class Marker:
    """
    A single encryption signature.

    Kinds:
        line_prefix: some line of the text starts with one of the patterns
        substring:   one of the patterns appears anywhere in the text
        magic:       the raw bytes start with one of the patterns
    """

    name: str
    kind: str
    patterns: Tuple[str, ...]
    description: str = ""
    _regex: Optional[Pattern[str]] = field(init=False, repr=False, compare=False, default=None)
    _magic: Tuple[bytes, ...] = field(init=False, repr=False, compare=False, default=())

    def __post_init__(self) -> None:
        if self.kind not in MARKER_KINDS:
            raise ValueError(f"Unknown marker kind for '{self.name}': {self.kind}")
        if not self.patterns:
            raise ValueError(f"Marker '{self.name}' has no patterns")

        if self.kind == KIND_LINE_PREFIX:
            regex = "|".join("^" + re.escape(p) for p in self.patterns)
            object.__setattr__(self, "_regex", re.compile(regex, re.MULTILINE))
        elif self.kind == KIND_MAGIC:
            try:
                magic = tuple(p.encode("latin-1") for p in self.patterns)
            except UnicodeEncodeError:
                raise ValueError(f"Magic marker '{self.name}' must use byte values 0x00-0xFF")
            object.__setattr__(self, "_magic", magic)

    def found_in(self, data: bytes, text: str) -> bool:
        if self.kind == KIND_MAGIC:
            return any(data.startswith(p) for p in self._magic)
        if self.kind == KIND_LINE_PREFIX:
            return self._regex.search(text) is not None
        return any(p in text for p in self.patterns)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Marker":
        """
        Build a marker from a settings-file mapping.

        Raises:
            RuntimeError: if required keys are missing or malformed
        """

        try:
            name = data["name"]
            kind = data.get("kind", KIND_SUBSTRING)
            patterns = data["patterns"] if "patterns" in data else [data["pattern"]]
        except (KeyError, TypeError):
            raise RuntimeError(
                f"Marker entries need 'name' and 'pattern' or 'patterns': {data!r}"
            )

        if isinstance(patterns, str):
            patterns = [patterns]

        try:
            return cls(
                name=str(name),
                kind=str(kind),
                patterns=tuple(str(p) for p in patterns),
                description=str(data.get("description", "")),
            )
        except ValueError as e:
            raise RuntimeError(str(e))


DEFAULT_MARKERS: Tuple[Marker, ...] = (
    Marker("ansible-vault", KIND_LINE_PREFIX, ("$ANSIBLE_VAULT",),
           "Ansible Vault encryption"),
    Marker("ansible-vault-alt", KIND_LINE_PREFIX, ("ansible-vault",),
           "Ansible Vault encryption (alternative format)"),
    Marker("sops", KIND_SUBSTRING, ("sops:",), "SOPS encryption"),
    Marker("age", KIND_SUBSTRING, ("age:",), "age encryption"),
    Marker("pgp", KIND_SUBSTRING, ("pgp:",), "PGP encryption"),
    Marker("encrypted-message", KIND_SUBSTRING,
           ("BEGIN PGP MESSAGE", "BEGIN ENCRYPTED MESSAGE"),
           "PGP/encrypted message format"),
    Marker("pgp-armor", KIND_SUBSTRING, ("-----BEGIN PGP MESSAGE-----",),
           "PGP message block"),
    Marker("enc-value", KIND_SUBSTRING, ("ENC[",), "ENC[] encrypted value"),
    Marker("git-crypt", KIND_MAGIC, ("\x00GITCRYPT",), "git-crypt encryption"),
)


def scan_markers(data: bytes, markers: Sequence[Marker] = DEFAULT_MARKERS) -> List[Marker]:
    """Return every marker present in the content, in marker-list order."""
    text = decode_text(data)
    return [marker for marker in markers if marker.found_in(data, text)]
