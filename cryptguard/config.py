"""
Global configuration and environment handling.

This module is responsible for:
- Defining global constants and defaults
- Reading environment overrides
- Providing normalized, ready-to-use configuration values

Nothing in this file should depend on:
- the filesystem
- the settings file structure
- rule evaluation
- CLI arguments

If something here changes, the *entire tool* behavior changes.
"""

from __future__ import annotations

import os
from typing import Final, Optional, Tuple

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

SUPPORTED_SETTINGS_VERSION: Final[int] = 1
TOOL_VERSION: Final[str] = "0.1.0"

# ---------------------------------------------------------------------------
# Default behavior
# ---------------------------------------------------------------------------

DEFAULT_RULES_FILE: Final[str] = ".gitattributes"
DEFAULT_SETTINGS_FILE: Final[str] = ".cryptguard.yml"

MODE_ATTRIBUTES: Final[str] = "attributes"
MODE_DIRECTORY: Final[str] = "directory"
SUPPORTED_MODES: Final[Tuple[str, ...]] = (MODE_ATTRIBUTES, MODE_DIRECTORY)

DEFAULT_SECRET_DIR: Final[str] = "secret"

# Printable-ratio probe
DEFAULT_PROBE_LIMIT: Final[int] = 1000
DEFAULT_PRINTABLE_THRESHOLD: Final[int] = 80

SNIFFER_AUTO: Final[str] = "auto"
SNIFFER_FILE: Final[str] = "file"
SNIFFER_BUILTIN: Final[str] = "builtin"
SNIFFER_NONE: Final[str] = "none"
SUPPORTED_SNIFFERS: Final[Tuple[str, ...]] = (
    SNIFFER_AUTO,
    SNIFFER_FILE,
    SNIFFER_BUILTIN,
    SNIFFER_NONE,
)

UNKNOWN_TYPE: Final[str] = "unknown"

# A sniffed type descriptor containing any of these counts as ciphertext
DEFAULT_TYPE_KEYWORDS: Final[Tuple[str, ...]] = (
    "data",
    "encrypted",
    "binary",
    "gzip",
    "compressed",
)

# A rule directive containing any of these makes the rule encryption-relevant
DEFAULT_RELEVANT_ATTRIBUTES: Final[Tuple[str, ...]] = (
    "filter=",
    "git-crypt",
    "sops",
    "ansible-vault",
    "encrypt",
)

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_SETTINGS_PATH: Final[str] = "CRYPTGUARD_CONFIG"
ENV_SNIFFER: Final[str] = "CRYPTGUARD_SNIFFER"

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_settings_path() -> str:
    """
    Return the settings file location.

    The environment wins over the conventional repository-root filename
    so CI jobs can point at a shared settings file.
    """

    return os.getenv(ENV_SETTINGS_PATH) or DEFAULT_SETTINGS_FILE


def get_sniffer_override() -> Optional[str]:
    """
    Return the sniffer forced through the environment, if any.

    Raises:
        RuntimeError: if the value names an unknown sniffer
    """

    raw = os.getenv(ENV_SNIFFER)
    if not raw:
        return None

    value = raw.strip().lower()
    if value not in SUPPORTED_SNIFFERS:
        raise RuntimeError(
            f"Invalid {ENV_SNIFFER}={raw!r}; expected one of: "
            f"{', '.join(SUPPORTED_SNIFFERS)}"
        )
    return value
