"""
Verdict aggregation.

For each candidate path the policy matcher decides governance, and for
governed files the content classifier decides encryption. The batch
fails if any governed file is plaintext.

Presentation belongs to the CLI; this module only builds results.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .classifier import ClassificationEvidence, ContentClassifier
from .rules import PolicyMatcher, Rule
from .utils import normalize_path, read_candidate

logger = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_FAIL = 1


class Verdict(str, enum.Enum):
    GOVERNED_AND_ENCRYPTED = "governed_and_encrypted"
    GOVERNED_AND_PLAINTEXT = "governed_and_plaintext"
    UNGOVERNED = "ungoverned"


@dataclass
class FileResult:
    path: str
    verdict: Optional[Verdict]
    rule: Optional[Rule] = None
    evidence: Optional[ClassificationEvidence] = None
    skip_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.verdict is None

    @property
    def message(self) -> str:
        if self.skipped:
            return f"skipped: {self.skip_reason}"
        if self.verdict is Verdict.UNGOVERNED:
            return "not marked for encryption"
        state = "ENCRYPTED" if self.verdict is Verdict.GOVERNED_AND_ENCRYPTED else "NOT ENCRYPTED"
        return f"{state} ({self.evidence.describe()})"

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "verdict": self.verdict.value if self.verdict else None,
            "rule": str(self.rule) if self.rule else None,
            "evidence": self.evidence.to_dict() if self.evidence else None,
            "skip_reason": self.skip_reason,
        }


@dataclass
class Report:
    results: List[FileResult] = field(default_factory=list)

    def _with(self, verdict: Verdict) -> List[FileResult]:
        return [r for r in self.results if r.verdict is verdict]

    @property
    def encrypted(self) -> List[FileResult]:
        return self._with(Verdict.GOVERNED_AND_ENCRYPTED)

    @property
    def violations(self) -> List[FileResult]:
        return self._with(Verdict.GOVERNED_AND_PLAINTEXT)

    @property
    def skipped(self) -> List[FileResult]:
        return [r for r in self.results if r.skipped]

    @property
    def governed_count(self) -> int:
        return len(self.encrypted) + len(self.violations)

    @property
    def violating_paths(self) -> List[str]:
        return [r.path for r in self.violations]

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def exit_code(self) -> int:
        return EXIT_PASS if self.passed else EXIT_FAIL

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "governed": self.governed_count,
            "encrypted": len(self.encrypted),
            "violations": self.violating_paths,
            "skipped": [r.path for r in self.skipped],
            "files": [r.to_dict() for r in self.results],
        }


def check_file(
    path: str | Path,
    matcher: PolicyMatcher,
    classifier: ContentClassifier,
    root: str | Path = ".",
) -> FileResult:
    """
    Produce the verdict for a single candidate path.

    Read failures on governed files become skipped results.
    """

    rel_path = normalize_path(path)
    match = matcher.match(rel_path)
    if not match.governed:
        return FileResult(rel_path, Verdict.UNGOVERNED)

    try:
        data = read_candidate(Path(root) / rel_path)
    except OSError as e:
        logger.debug("Skipping unreadable file %s: %s", rel_path, e)
        return FileResult(rel_path, None, rule=match.rule, skip_reason=str(e))

    is_encrypted, evidence = classifier.classify(data)
    verdict = Verdict.GOVERNED_AND_ENCRYPTED if is_encrypted else Verdict.GOVERNED_AND_PLAINTEXT
    logger.debug("%s: %s via %s", rel_path, verdict.value, evidence.method)

    return FileResult(rel_path, verdict, rule=match.rule, evidence=evidence)


def check_files(
    paths: Iterable[str | Path],
    matcher: PolicyMatcher,
    classifier: ContentClassifier,
    root: str | Path = ".",
) -> Report:
    """Classify every candidate and aggregate the verdicts."""
    report = Report()
    for path in paths:
        report.results.append(check_file(path, matcher, classifier, root))
    return report
