"""
Building blocks for migration passes.

Most passes are tables of Rewrites and Detections run line by line by a
LinePass. Rewrites on one line compose: each sees the text produced by
the previous one. Detections run after the rewrites, against the
rewritten line.

Passes never mutate the tuple they receive. Comment lines are left to
the common pass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Sequence

from querylens.migration.models import MigrationIssue, MigrationSeverity, PassResult
from querylens.sqltext import is_comment_line, iter_code_chars

Replacement = str | Callable[[re.Match[str]], str]


def ci(pattern: str) -> re.Pattern[str]:
    """Compile a case-insensitive pattern."""
    return re.compile(pattern, re.IGNORECASE)


@dataclass(frozen=True)
class Rewrite:
    """A regex substitution that records an issue whenever it matches."""

    pattern: re.Pattern[str]
    replacement: Replacement
    message: str
    suggestion: str
    deduction: int = 0
    severity: MigrationSeverity = MigrationSeverity.INFO


@dataclass(frozen=True)
class Detection:
    """A pattern that is reported but not rewritten."""

    pattern: re.Pattern[str]
    message: str
    suggestion: str
    deduction: int = 0
    severity: MigrationSeverity = MigrationSeverity.WARNING
    unless: re.Pattern[str] | None = None

    def matches(self, line: str) -> bool:
        if not self.pattern.search(line):
            return False
        return self.unless is None or not self.unless.search(line)


def conversions(
    table: Sequence[tuple[str, Replacement, str]],
    message: str,
    deduction: int,
    severity: MigrationSeverity = MigrationSeverity.INFO,
) -> tuple[Rewrite, ...]:
    """
    Build Rewrites sharing a message from ``(pattern, replacement, description)``
    rows. Each suggestion reads ``Converted <description>``.
    """
    return tuple(
        Rewrite(
            pattern=ci(pattern),
            replacement=replacement,
            message=message,
            suggestion=f"Converted {description}",
            deduction=deduction,
            severity=severity,
        )
        for pattern, replacement, description in table
    )


class LinePass:
    """
    A pass made of per-line rewrites followed by per-line detections.

    Attributes:
        name: Identifier used in logs when the pass fails
        rewrites: Applied in order; each sees the previous one's output
        detections: Checked against the rewritten line
    """

    def __init__(
        self,
        name: str,
        rewrites: Sequence[Rewrite] = (),
        detections: Sequence[Detection] = (),
    ) -> None:
        self.name = name
        self.rewrites = tuple(rewrites)
        self.detections = tuple(detections)

    def __call__(self, lines: tuple[str, ...], issues: list[MigrationIssue]) -> PassResult:
        out = list(lines)
        deduction = 0

        for index, line in enumerate(lines):
            if is_comment_line(line):
                continue

            current = line
            for rewrite in self.rewrites:
                if not rewrite.pattern.search(current):
                    continue
                current = rewrite.pattern.sub(rewrite.replacement, current)
                issues.append(MigrationIssue(
                    line=index + 1,
                    message=rewrite.message,
                    suggestion=rewrite.suggestion,
                    severity=rewrite.severity,
                ))
                deduction += rewrite.deduction

            for detection in self.detections:
                if detection.matches(current):
                    issues.append(MigrationIssue(
                        line=index + 1,
                        message=detection.message,
                        suggestion=detection.suggestion,
                        severity=detection.severity,
                    ))
                    deduction += detection.deduction

            out[index] = current

        return PassResult(lines=tuple(out), deduction=deduction)

    def __repr__(self) -> str:
        return f"LinePass({self.name!r})"


# ── DDL clause helpers ───────────────────────────────────────────────────


def line_depths(lines: Sequence[str]) -> list[int]:
    """Parenthesis depth at the start of each line. A ``;`` resets it."""
    depths: list[int] = []
    depth = 0
    for line in lines:
        depths.append(depth)
        for _, ch in iter_code_chars(line):
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth = max(0, depth - 1)
            elif ch == ";":
                depth = 0
    return depths


def find_top_level(line: str, start_depth: int, pattern: re.Pattern[str]) -> re.Match[str] | None:
    """First match of ``pattern`` on ``line`` outside any parentheses."""
    for match in pattern.finditer(line):
        depth = start_depth
        for i, ch in iter_code_chars(line):
            if i >= match.start():
                break
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth = max(0, depth - 1)
        if depth == 0:
            return match
    return None


def _find_semicolon(line: str, start: int = 0) -> int | None:
    for i, ch in iter_code_chars(line):
        if i >= start and ch == ";":
            return i
    return None


def relocate_clause(lines: list[str], index: int, match: re.Match[str], clause: str) -> bool:
    """
    Move a clause to the end of its statement.

    The matched text is removed from ``lines[index]`` and ``clause`` is
    inserted before the first ``;`` at or after the match. When no ``;``
    follows, ``lines`` is left untouched.

    Returns:
        True if the clause was moved.
    """
    removed = lines[index][:match.start()] + lines[index][match.end():]
    candidates = [removed] + lines[index + 1:]

    for offset, text in enumerate(candidates):
        position = _find_semicolon(text, match.start() if offset == 0 else 0)
        if position is None:
            continue
        updated = text[:position].rstrip() + f" {clause}" + text[position:]
        lines[index] = removed
        lines[index + offset] = updated
        return True

    return False
