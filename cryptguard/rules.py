"""
Rule parsing and evaluation logic.

Given a file path and a rules file, this module decides:
- whether the file is governed by an encryption requirement
- which rule applies

Rules DO NOT inspect file content. They only return decisions.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_RELEVANT_ATTRIBUTES
from .utils import normalize_path

logger = logging.getLogger(__name__)

_RULE_LINE = re.compile(r"^(\S+)\s+(.+)$")
_COMMENT_LINE = re.compile(r"^\s*#")

RECURSIVE_SUFFIX = "/**"


@dataclass(frozen=True)
class Rule:
    pattern: str
    directive: str
    line_number: Optional[int] = None

    def matches(self, path: str) -> bool:
        # Shell-glob semantics: "**" is only special as a trailing "/**"
        if fnmatch.fnmatchcase(path, self.pattern.replace("**", "*")):
            return True

        if self.pattern.endswith(RECURSIVE_SUFFIX):
            prefix = self.pattern[: -len(RECURSIVE_SUFFIX)]
            return path.startswith(prefix + "/")

        return False

    def __str__(self) -> str:
        return f"{self.pattern} {self.directive}"


@dataclass(frozen=True)
class MatchResult:
    governed: bool
    rule: Optional[Rule] = None


def parse_rules(lines: Iterable[str]) -> List[Rule]:
    """
    Parse attribute-file lines into an ordered list of rules.

    Blank lines and comments are ignored. Lines without a pattern and at
    least one directive token are skipped.
    """

    rules: List[Rule] = []

    for number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or _COMMENT_LINE.match(line):
            continue

        match = _RULE_LINE.match(line)
        if match is None:
            logger.debug("Skipping malformed rule at line %d: %r", number, raw)
            continue

        rules.append(Rule(match.group(1), match.group(2).strip(), number))

    return rules


def is_relevant(rule: Rule, attributes: Sequence[str] = DEFAULT_RELEVANT_ATTRIBUTES) -> bool:
    """Return True if the rule's directive asks for encryption."""
    return any(attr in rule.directive for attr in attributes)


class PolicyMatcher:
    """
    First-match-wins matcher over the encryption-relevant rules of a file.

    Rules are kept in file order and never reprioritized, so overlapping
    patterns resolve exactly as they are written.
    """

    def __init__(self, rules: List[Rule], rules_file_found: bool = True):
        self.rules = rules
        self.rules_file_found = rules_file_found

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        attributes: Sequence[str] = DEFAULT_RELEVANT_ATTRIBUTES,
    ) -> "PolicyMatcher":
        """
        Load a rules file. A missing file governs nothing.
        """

        path = Path(path)
        if not path.is_file():
            logger.debug("Rules file not found: %s", path)
            return cls([], rules_file_found=False)

        with path.open("r", encoding="utf-8", errors="replace") as fh:
            parsed = parse_rules(fh)

        relevant = [rule for rule in parsed if is_relevant(rule, attributes)]
        logger.debug(
            "Loaded %d rule(s) from %s, %d encryption-relevant",
            len(parsed), path, len(relevant),
        )
        return cls(relevant)

    @classmethod
    def for_directory(cls, directory: str) -> "PolicyMatcher":
        """Govern every file beneath a single directory."""
        prefix = normalize_path(directory).rstrip("/")
        return cls([Rule(prefix + RECURSIVE_SUFFIX, "directory-policy")])

    def match(self, path: str | Path) -> MatchResult:
        path_str = normalize_path(path)

        for rule in self.rules:
            if rule.matches(path_str):
                return MatchResult(governed=True, rule=rule)

        return MatchResult(governed=False)


def is_governed(path: str | Path, rules_file: str | Path) -> Tuple[bool, Optional[Rule]]:
    """
    Decide whether a single path is governed by a rules file.

    Prefer building one PolicyMatcher per batch; this re-reads the file.
    """

    result = PolicyMatcher.from_file(rules_file).match(path)
    return result.governed, result.rule
