"""
Data models for the analyzer module.

These models represent the output of the rule engine - the issues detected
in a SQL query and the scores derived from them. They're designed to be:
- Immutable (frozen=True): Issues don't change after creation
- Serializable: Easy JSON output for --json flag
- Hashable: Can be used in sets for deduplication
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field

from querylens.platforms import Platform


class Severity(str, Enum):
    """
    Severity levels for issues.

    Each level carries a fixed penalty subtracted from its category score.

    HIGH: 15 points
    MEDIUM: 10 points
    LOW: 5 points
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def weight(self) -> int:
        return _SEVERITY_WEIGHTS[self]

    def __lt__(self, other: object) -> bool:
        """Enable sorting by severity (LOW < MEDIUM < HIGH)."""
        if not isinstance(other, Severity):
            return NotImplemented
        return self.weight < other.weight

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.weight <= other.weight

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.weight > other.weight

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.weight >= other.weight


_SEVERITY_WEIGHTS = {Severity.LOW: 5, Severity.MEDIUM: 10, Severity.HIGH: 15}


class Category(str, Enum):
    """The four fixed issue categories, in reporting order."""

    BEST_PRACTICES = "Best Practices"
    PERFORMANCE = "Performance"
    MODULARIZATION = "Modularization"
    COST = "Cost"

    @classmethod
    def from_string(cls, value: "str | Category") -> "Category":
        """Parse by value ("Best Practices") or name ("best_practices")."""
        if isinstance(value, Category):
            return value
        normalized = value.strip().lower().replace("_", " ")
        for category in cls:
            if category.value.lower() == normalized:
                return category
        raise ValueError(f"Unknown category: {value}")


class Issue(BaseModel):
    """
    A single issue detected in a query.

    Attributes:
        id: Rule identifier (e.g., "BP001", "CUSTOM-3").
        category: Which score this issue counts against.
        severity: Penalty level.
        name: Short rule name.
        message: One-line summary shown to the user.
        description: Why this is a problem.
        recommendation: What to do about it.
        line: 1-based line of the first matching text, if located.
        column: 1-based column of the first matching text, if located.
        estimated_impact: Performance issues only.
        estimated_savings: Cost issues only.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Rule identifier")
    category: Category = Field(..., description="Issue category")
    severity: Severity = Field(..., description="Severity level of the issue")
    name: str = Field(..., description="Short rule name")
    message: str = Field(..., description="One-line summary")
    description: str = Field(default="", description="Why this is a problem")
    recommendation: str = Field(default="", description="Suggested fix")
    line: int | None = Field(default=None, ge=1, description="1-based line number")
    column: int | None = Field(default=None, ge=1, description="1-based column")
    estimated_impact: str | None = Field(
        default=None,
        description="Expected performance improvement (Performance only)",
    )
    estimated_savings: str | None = Field(
        default=None,
        description="Expected cost reduction (Cost only)",
    )


def category_score(issues: Iterable[Issue]) -> int:
    """100 minus the summed severity weights, floored at zero."""
    return max(0, 100 - sum(issue.severity.weight for issue in issues))


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class AnalysisSummary(BaseModel):
    """Overall and per-category scores, each in [0, 100]."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(default=0, ge=0, le=100)
    best_practices_score: int = Field(default=0, ge=0, le=100)
    performance_score: int = Field(default=0, ge=0, le=100)
    modularization_score: int = Field(default=0, ge=0, le=100)
    cost_score: int = Field(default=0, ge=0, le=100)


class AnalysisResult(BaseModel):
    """
    Result of analyzing one query.

    Issues are grouped by category. ``valid`` is False only for empty input,
    in which case every score is zero and there are no issues.
    """

    model_config = ConfigDict(frozen=True)

    valid: bool
    platform: Platform
    best_practices: tuple[Issue, ...] = ()
    performance: tuple[Issue, ...] = ()
    modularization: tuple[Issue, ...] = ()
    cost: tuple[Issue, ...] = ()
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)

    @classmethod
    def invalid(cls, platform: Platform) -> "AnalysisResult":
        """Sentinel result for empty or whitespace-only input."""
        return cls(valid=False, platform=platform)

    @property
    def issues(self) -> tuple[Issue, ...]:
        """All issues in category order."""
        return self.best_practices + self.performance + self.modularization + self.cost

    def issues_for(self, category: Category) -> tuple[Issue, ...]:
        return {
            Category.BEST_PRACTICES: self.best_practices,
            Category.PERFORMANCE: self.performance,
            Category.MODULARIZATION: self.modularization,
            Category.COST: self.cost,
        }[category]

    def has_issue(self, issue_id: str) -> bool:
        return any(issue.id == issue_id for issue in self.issues)

    def issues_by_severity(self, severity: Severity) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity == severity]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
