"""
Settings loading, validation, and normalization.

This module answers one question:
    "How does this repository want the guard to behave?"

Responsibilities:
- Load the optional settings YAML file
- Validate structure and version
- Normalize defaults
- Build the policy matcher and content classifier it describes

This module does NOT:
- Match files
- Classify content
- Walk the filesystem
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .classifier import ContentClassifier, resolve_sniffer
from .config import (
    DEFAULT_PRINTABLE_THRESHOLD,
    DEFAULT_PROBE_LIMIT,
    DEFAULT_RELEVANT_ATTRIBUTES,
    DEFAULT_RULES_FILE,
    DEFAULT_SECRET_DIR,
    DEFAULT_TYPE_KEYWORDS,
    MODE_ATTRIBUTES,
    MODE_DIRECTORY,
    SNIFFER_AUTO,
    SUPPORTED_MODES,
    SUPPORTED_SETTINGS_VERSION,
    SUPPORTED_SNIFFERS,
)
from .markers import DEFAULT_MARKERS, Marker
from .rules import PolicyMatcher


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass
class Settings:
    rules_file: str = DEFAULT_RULES_FILE
    mode: str = MODE_ATTRIBUTES
    secret_dir: Optional[str] = None
    extensions: List[str] = field(default_factory=list)
    probe_limit: int = DEFAULT_PROBE_LIMIT
    printable_threshold: int = DEFAULT_PRINTABLE_THRESHOLD
    sniffer: str = SNIFFER_AUTO
    type_keywords: Tuple[str, ...] = DEFAULT_TYPE_KEYWORDS
    relevant_attributes: Tuple[str, ...] = DEFAULT_RELEVANT_ATTRIBUTES
    markers: Tuple[Marker, ...] = DEFAULT_MARKERS
    source: Optional[Path] = None

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path, required: bool = False) -> "Settings":
        """
        Load and validate a settings file.

        A missing file yields the defaults unless `required` is set.

        Raises:
            RuntimeError: if the file is required but missing, or invalid

        Returns:
            Settings
        """

        path = Path(path)
        if not path.exists():
            if required:
                raise RuntimeError(f"Settings file not found: {path}")
            return cls()

        try:
            with path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(f"Invalid YAML in settings file {path}: {e}")

        if not isinstance(raw, dict):
            raise RuntimeError(f"Settings file {path} must contain a mapping")

        settings = cls._from_dict(raw)
        settings.source = path
        return settings

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Settings":
        version = data.get("version", SUPPORTED_SETTINGS_VERSION)
        if version != SUPPORTED_SETTINGS_VERSION:
            raise RuntimeError(f"Unsupported settings version: {version}")

        mode = data.get("mode", MODE_ATTRIBUTES)
        if mode not in SUPPORTED_MODES:
            raise RuntimeError(
                f"Unsupported mode '{mode}'; expected one of: {', '.join(SUPPORTED_MODES)}"
            )

        sniffer = data.get("sniffer", SNIFFER_AUTO)
        if sniffer not in SUPPORTED_SNIFFERS:
            raise RuntimeError(
                f"Unsupported sniffer '{sniffer}'; expected one of: {', '.join(SUPPORTED_SNIFFERS)}"
            )

        secret_dir = data.get("secret_dir")

        return cls(
            rules_file=str(data.get("rules_file", DEFAULT_RULES_FILE)),
            mode=mode,
            secret_dir=str(secret_dir) if secret_dir else None,
            extensions=cls.parse_extensions(data.get("extensions", [])),
            probe_limit=cls._positive_int(data, "probe_limit", DEFAULT_PROBE_LIMIT),
            printable_threshold=cls._parse_threshold(data),
            sniffer=sniffer,
            type_keywords=cls._string_list(data, "type_keywords", DEFAULT_TYPE_KEYWORDS),
            relevant_attributes=cls._string_list(
                data, "relevant_attributes", DEFAULT_RELEVANT_ATTRIBUTES
            ),
            markers=cls._parse_markers(data),
        )

    @staticmethod
    def parse_extensions(raw: Any) -> List[str]:
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            raise RuntimeError("'extensions' must be a list")

        extensions: List[str] = []
        for ext in raw:
            ext = str(ext).strip().lower()
            if ext and not ext.startswith("."):
                ext = "." + ext
            if ext:
                extensions.append(ext)
        return extensions

    @staticmethod
    def _positive_int(data: Dict[str, Any], key: str, default: int) -> int:
        value = data.get(key, default)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise RuntimeError(f"'{key}' must be a positive integer")
        return value

    @staticmethod
    def _parse_threshold(data: Dict[str, Any]) -> int:
        value = data.get("printable_threshold", DEFAULT_PRINTABLE_THRESHOLD)
        if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 100:
            raise RuntimeError("'printable_threshold' must be an integer between 0 and 100")
        return value

    @staticmethod
    def _string_list(data: Dict[str, Any], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
        value = data.get(key)
        if value is None:
            return default
        if not isinstance(value, list) or not value:
            raise RuntimeError(f"'{key}' must be a non-empty list")
        return tuple(str(v) for v in value)

    @staticmethod
    def _parse_markers(data: Dict[str, Any]) -> Tuple[Marker, ...]:
        if "markers" in data:
            raw = data["markers"]
            if not isinstance(raw, list):
                raise RuntimeError("'markers' must be a list")
            markers = [Marker.from_dict(m) for m in raw]
        else:
            markers = list(DEFAULT_MARKERS)

        extra = data.get("extra_markers", [])
        if not isinstance(extra, list):
            raise RuntimeError("'extra_markers' must be a list")
        markers.extend(Marker.from_dict(m) for m in extra)

        disabled = set(data.get("disabled_markers", []) or [])
        unknown = disabled - {m.name for m in markers}
        if unknown:
            raise RuntimeError(f"Unknown marker(s) in 'disabled_markers': {', '.join(sorted(unknown))}")

        return tuple(m for m in markers if m.name not in disabled)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    def with_overrides(self, **overrides: Any) -> "Settings":
        """
        Return a copy with non-None overrides applied.
        """

        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @property
    def effective_secret_dir(self) -> Optional[str]:
        """The secret directory in force; directory mode falls back to the default."""
        if self.mode == MODE_DIRECTORY:
            return self.secret_dir or DEFAULT_SECRET_DIR
        return self.secret_dir

    def build_matcher(self, root: str | Path = ".") -> PolicyMatcher:
        """Create the policy matcher for this configuration."""
        if self.mode == MODE_DIRECTORY:
            return PolicyMatcher.for_directory(self.effective_secret_dir)
        return PolicyMatcher.from_file(Path(root) / self.rules_file, self.relevant_attributes)

    def build_classifier(self) -> ContentClassifier:
        """Create the content classifier for this configuration."""
        return ContentClassifier(
            sniffer=resolve_sniffer(self.sniffer),
            markers=self.markers,
            type_keywords=self.type_keywords,
            probe_limit=self.probe_limit,
            printable_threshold=self.printable_threshold,
        )
