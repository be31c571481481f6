"""
Data models for cross-dialect migration.

MigrationResult is what callers receive. PassResult is the internal value
each pass hands back to the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from querylens.platforms import Platform


class MigrationSeverity(str, Enum):
    """How much attention a migration issue needs."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class MigrationIssue(BaseModel):
    """
    One note produced while rewriting a query.

    ``line`` is 1-based and refers to the line in the converted query,
    which has the same line count as the original.
    """

    model_config = ConfigDict(frozen=True)

    line: int | None = Field(default=None, ge=1, description="1-based line number")
    message: str = Field(..., description="What was found or changed")
    suggestion: str = Field(..., description="What the user should do or check")
    severity: MigrationSeverity = Field(default=MigrationSeverity.INFO)


class MigrationResult(BaseModel):
    """
    Result of migrating one query between dialects.

    Invariant: ``compatibility_score`` starts at 100, only decreases, and is
    clamped to [0, 100]. Same-dialect migration is the identity.
    """

    model_config = ConfigDict(frozen=True)

    original_query: str
    converted_query: str
    source_platform: Platform
    target_platform: Platform
    issues: tuple[MigrationIssue, ...] = ()
    compatibility_score: int = Field(default=100, ge=0, le=100)

    @classmethod
    def identity(cls, sql: str, platform: Platform) -> "MigrationResult":
        return cls(
            original_query=sql,
            converted_query=sql,
            source_platform=platform,
            target_platform=platform,
        )

    @property
    def changed(self) -> bool:
        return self.converted_query != self.original_query

    def issues_by_severity(self, severity: MigrationSeverity) -> list[MigrationIssue]:
        return [i for i in self.issues if i.severity == severity]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass(frozen=True)
class PassResult:
    """Lines produced by a pass and the score it deducts."""

    lines: tuple[str, ...]
    deduction: int = 0


Pass = Callable[[tuple[str, ...], list[MigrationIssue]], PassResult]
