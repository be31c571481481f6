"""
The common migration pass.

Runs last for every non-identity pair, including pairs with no
directional passes. Handles what does not depend on the direction:
comment retargeting, neutral function spellings, SELECT * and
source-only features, and data-type mappings.
"""

from __future__ import annotations

import re

from querylens.migration.models import MigrationIssue, MigrationSeverity, PassResult
from querylens.platforms import (
    NEUTRAL_FUNCTIONS,
    NON_STANDARD_FEATURES,
    TYPE_MAPPINGS,
    Platform,
)
from querylens.sqltext import is_comment_line

_SELECT_STAR = re.compile(r"SELECT\s+\*", re.IGNORECASE)
_LIMIT = re.compile(r"\bLIMIT\b", re.IGNORECASE)

SELECT_STAR_DEDUCTION = 5
NON_STANDARD_DEDUCTION = 5
UNMAPPED_TYPE_DEDUCTION = 8


class CommonPass:
    """
    Direction-independent checks for one source/target pair.

    Example:
        common = CommonPass(Platform.BIGQUERY, Platform.SNOWFLAKE)
        result = common(lines, issues)
    """

    name = "common"

    def __init__(self, source: Platform, target: Platform) -> None:
        self.source = source
        self.target = target
        self._comment_marker = re.compile(re.escape(f"{source.value} specific"), re.IGNORECASE)

    def __call__(self, lines: tuple[str, ...], issues: list[MigrationIssue]) -> PassResult:
        out = list(lines)
        deduction = 0

        for index, line in enumerate(lines):
            number = index + 1

            if is_comment_line(line):
                out[index] = self._comment_marker.sub(
                    f"{self.target.value} specific (migrated)", line, count=1
                )
                continue

            current = line
            for pattern, replacement in NEUTRAL_FUNCTIONS:
                current = pattern.sub(replacement, current)

            if _SELECT_STAR.search(current):
                issues.append(MigrationIssue(
                    line=number,
                    message="Using SELECT * is not recommended for cross-platform compatibility",
                    suggestion="Explicitly list the columns you need to ensure consistent behavior across platforms",
                    severity=MigrationSeverity.WARNING,
                ))
                deduction += SELECT_STAR_DEDUCTION

            for pattern in NON_STANDARD_FEATURES[self.source]:
                if pattern.search(current):
                    issues.append(MigrationIssue(
                        line=number,
                        message=f"Non-standard SQL function or feature specific to {self.source.value}",
                        suggestion=f"This feature may need manual adjustment for {self.target.value}",
                        severity=MigrationSeverity.WARNING,
                    ))
                    deduction += NON_STANDARD_DEDUCTION

            if self.target == Platform.SNOWFLAKE and _LIMIT.search(current):
                issues.append(MigrationIssue(
                    line=number,
                    message="LIMIT clause usage",
                    suggestion="LIMIT is supported in Snowflake, but some legacy code might use TOP syntax",
                    severity=MigrationSeverity.INFO,
                ))

            for mapping in TYPE_MAPPINGS:
                if mapping.source != self.source or self.target not in mapping.targets:
                    continue
                if not mapping.pattern.search(current):
                    continue
                if mapping.replacement is not None:
                    current = mapping.pattern.sub(mapping.replacement, current)
                    issues.append(MigrationIssue(
                        line=number,
                        message=f"Data type incompatibility: {mapping.label}",
                        suggestion=f"Converted to {mapping.replacement} for {self.target.value}",
                        severity=MigrationSeverity.INFO,
                    ))
                else:
                    issues.append(MigrationIssue(
                        line=number,
                        message=f"Data type incompatibility: {mapping.label}",
                        suggestion=(
                            f"This data type doesn't have a direct equivalent in {self.target.value}. "
                            "Manual adjustment needed."
                        ),
                        severity=MigrationSeverity.WARNING,
                    ))
                    deduction += UNMAPPED_TYPE_DEDUCTION

            out[index] = current

        return PassResult(lines=tuple(out), deduction=deduction)

    def __repr__(self) -> str:
        return f"CommonPass({self.source.value!r}, {self.target.value!r})"
