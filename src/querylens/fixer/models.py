"""
Data models for the syntax fixer and the enhancer.

Both engines report what they found as FixIssue values. ``auto_fixed``
separates the problems that were rewritten in the returned text from the
ones that were only detected.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from querylens.platforms import Platform


class FixSeverity(str, Enum):
    """Severity of a fixer or enhancer finding."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class FixIssue(BaseModel):
    """
    A single problem found in the query text.

    ``line`` and ``position`` are 1-based and refer to the text the issue
    was found in, which for auto-fixed issues is the text before the fix.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    suggestion: str
    severity: FixSeverity = FixSeverity.WARNING
    line: int | None = Field(default=None, ge=1)
    position: int | None = Field(default=None, ge=1)
    auto_fixed: bool = False


class FixResult(BaseModel):
    """
    Result of the syntax fixer.

    ``fixed`` is true iff the text changed or at least one issue was found.
    """

    model_config = ConfigDict(frozen=True)

    original_query: str
    fixed_query: str
    platform: Platform
    issues: tuple[FixIssue, ...] = ()
    fixed: bool = False

    @property
    def auto_fixed_issues(self) -> list[FixIssue]:
        return [i for i in self.issues if i.auto_fixed]

    @property
    def changed(self) -> bool:
        return self.fixed_query != self.original_query

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class EnhanceResult(BaseModel):
    """Result of validating and reformatting a query."""

    model_config = ConfigDict(frozen=True)

    original_query: str
    formatted_query: str
    platform: Platform
    issues: tuple[FixIssue, ...] = ()
    fixed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
