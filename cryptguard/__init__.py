"""
cryptguard

A pre-commit check that refuses to let files marked for encryption
in .gitattributes reach version control as plaintext.
"""

__version__ = "0.1.0"

from .classifier import ClassificationEvidence, ContentClassifier, classify
from .guard import FileResult, Report, Verdict, check_file, check_files
from .markers import DEFAULT_MARKERS, Marker
from .rules import MatchResult, PolicyMatcher, Rule, is_governed
from .settings import Settings

__all__ = [
    "ClassificationEvidence",
    "ContentClassifier",
    "classify",
    "FileResult",
    "Report",
    "Verdict",
    "check_file",
    "check_files",
    "DEFAULT_MARKERS",
    "Marker",
    "MatchResult",
    "PolicyMatcher",
    "Rule",
    "is_governed",
    "Settings",
]
