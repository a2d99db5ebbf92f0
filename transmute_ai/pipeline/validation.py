"""Local quality checks over generated artifacts.

The VALIDATE stage runs :class:`QualityValidator` against the artifact bundle.
A report passes when no error-severity check fails; warnings lower the score
and add recommendations but never fail a job.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import PurePosixPath
from typing import Callable, Iterable, List, Sequence

from ..schemas.domain import ArtifactBundle, ArtifactFile, ValidationCheck, ValidationReport

logger = logging.getLogger(__name__)

# Files whose bracket structure is checked.
SOURCE_SUFFIXES = frozenset({".js", ".ts", ".py", ".java", ".cds", ".json", ".go", ".kt", ".cs"})

_PAIRS = {")": "(", "]": "[", "}": "{"}
_QUOTES = {'"', "'", "`"}


def _balanced(text: str) -> bool:
    """Bracket balance, ignoring brackets inside string literals."""
    stack: List[str] = []
    quote = ""
    escaped = False
    for ch in text:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = ""
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch in "([{":
            stack.append(ch)
        elif ch in _PAIRS:
            if not stack or stack.pop() != _PAIRS[ch]:
                return False
    return not stack and not quote


def _suffix(path: str) -> str:
    return PurePosixPath(path).suffix.lower()


def _has_path(files: Iterable[ArtifactFile], required: str) -> bool:
    return any(f.path == required or f.path.endswith("/" + required) for f in files)


class QualityValidator:
    def __init__(
        self,
        *,
        required_files: Sequence[str] = ("README.md",),
        forbidden_patterns: Sequence[str] = (),
    ) -> None:
        self._required = tuple(required_files)
        self._forbidden = tuple(p for p in forbidden_patterns if p)
        self._checks: List[Callable[[ArtifactBundle], ValidationCheck]] = [
            self._check_present,
            self._check_unique_paths,
            self._check_non_empty,
            self._check_required_files,
            self._check_json,
            self._check_delimiters,
            self._check_documentation,
            self._check_forbidden_patterns,
        ]

    def validate(self, bundle: ArtifactBundle) -> ValidationReport:
        checks = [check(bundle) for check in self._checks]
        passed_count = sum(1 for c in checks if c.passed)
        passed = all(c.passed for c in checks if c.severity == "error")
        score = round(passed_count / len(checks) * 100)
        recommendations = [c.message for c in checks if not c.passed]
        logger.info("QualityValidator: passed=%s score=%s (%s/%s checks)", passed, score, passed_count, len(checks))
        return ValidationReport(passed=passed, score=score, checks=checks, recommendations=recommendations)

    def _check_present(self, bundle: ArtifactBundle) -> ValidationCheck:
        ok = bool(bundle.files)
        return ValidationCheck(name="artifacts_present", passed=ok, message="" if ok else "No artifacts were generated")

    def _check_unique_paths(self, bundle: ArtifactBundle) -> ValidationCheck:
        dupes = sorted(p for p, n in Counter(bundle.paths()).items() if n > 1)
        return ValidationCheck(
            name="unique_paths",
            passed=not dupes,
            message=f"Duplicate artifact paths: {', '.join(dupes)}" if dupes else "",
        )

    def _check_non_empty(self, bundle: ArtifactBundle) -> ValidationCheck:
        empty = [f.path for f in bundle.files if not f.content.strip()]
        return ValidationCheck(
            name="non_empty_files",
            passed=not empty,
            message=f"Empty artifacts: {', '.join(empty)}" if empty else "",
        )

    def _check_required_files(self, bundle: ArtifactBundle) -> ValidationCheck:
        missing = [r for r in self._required if not _has_path(bundle.files, r)]
        return ValidationCheck(
            name="required_files",
            passed=not missing,
            message=f"Missing required files: {', '.join(missing)}" if missing else "",
        )

    def _check_json(self, bundle: ArtifactBundle) -> ValidationCheck:
        broken: List[str] = []
        for f in bundle.files:
            if _suffix(f.path) != ".json":
                continue
            try:
                json.loads(f.content)
            except ValueError:
                broken.append(f.path)
        return ValidationCheck(
            name="json_manifests",
            passed=not broken,
            message=f"Invalid JSON in: {', '.join(broken)}" if broken else "",
        )

    def _check_delimiters(self, bundle: ArtifactBundle) -> ValidationCheck:
        broken = [f.path for f in bundle.files if _suffix(f.path) in SOURCE_SUFFIXES and not _balanced(f.content)]
        return ValidationCheck(
            name="balanced_delimiters",
            passed=not broken,
            message=f"Unbalanced brackets or quotes in: {', '.join(broken)}" if broken else "",
        )

    def _check_documentation(self, bundle: ArtifactBundle) -> ValidationCheck:
        docs = [f for f in bundle.files if _suffix(f.path) == ".md" and len(f.content.strip()) >= 40]
        return ValidationCheck(
            name="documentation",
            passed=bool(docs),
            severity="warning",
            message="" if docs else "Add a README describing the generated project",
        )

    def _check_forbidden_patterns(self, bundle: ArtifactBundle) -> ValidationCheck:
        hits = sorted({f.path for f in bundle.files for p in self._forbidden if p in f.content})
        return ValidationCheck(
            name="forbidden_patterns",
            passed=not hits,
            severity="warning",
            message=f"Forbidden patterns found in: {', '.join(hits)}" if hits else "",
        )
