"""
Base class for analyzer rules.

All built-in rules inherit from Rule and implement matches(). A rule is a
fixed predicate over the query text plus the metadata needed to turn a
match into an Issue.

When a caller-supplied catalog enables a built-in rule id, the rule's
predicate still decides whether it matches, but the catalog's name,
description and severity replace the built-in ones.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict

from querylens import sqltext
from querylens.analyzer.models import Category, Issue, Severity

if TYPE_CHECKING:
    from querylens.analyzer.catalog import RuleDefinition
    from querylens.platforms import Platform


class RuleConfig(BaseModel):
    """
    Base configuration for all rules.

    Rules with thresholds define their own schema by subclassing this.

    Example:
        class LongQueryConfig(RuleConfig):
            length_threshold: int = 300
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True


@dataclass(frozen=True)
class RuleContext:
    """
    The query as seen by a rule.

    ``lowered`` is precomputed once per analysis so rules match
    case-insensitively while ``sql`` keeps the caller's text for
    line and column reporting.
    """

    sql: str
    lowered: str
    platform: "Platform"

    @classmethod
    def build(cls, sql: str, platform: "Platform") -> "RuleContext":
        return cls(sql=sql, lowered=sql.lower(), platform=platform)


class Rule(ABC):
    """
    Abstract base class for analyzer rules.

    Rules should be:
    - Deterministic: Same input always produces same output
    - Cheap: A handful of substring or regex checks
    - Focused: One rule, one concern

    Attributes:
        rule_id: Catalog identifier (e.g., "BP001")
        version: Semver string, bump when detection logic changes
        category: Which score the rule's issues count against
        severity: Default severity
        name: Short rule name
        message: One-line summary used in the issue
        description: Why the pattern is a problem
        recommendation: How to fix it
        platforms: Platforms the rule applies to (None means all)
        locate_fragment: Text whose first occurrence gives the issue line
        estimated_impact: Attached to Performance issues
        estimated_savings: Attached to Cost issues
        catalog_name, catalog_description, catalog_severity: Entry used by
            the default catalog when it differs from the built-in one
    """

    rule_id: ClassVar[str]
    version: ClassVar[str] = "1.0.0"
    category: ClassVar[Category]
    severity: ClassVar[Severity]
    name: ClassVar[str]
    message: ClassVar[str] = ""
    description: ClassVar[str] = ""
    recommendation: ClassVar[str] = ""
    platforms: ClassVar[frozenset["Platform"] | None] = None
    locate_fragment: ClassVar[str | None] = None
    estimated_impact: ClassVar[str | None] = None
    estimated_savings: ClassVar[str | None] = None
    catalog_name: ClassVar[str | None] = None
    catalog_description: ClassVar[str | None] = None
    catalog_severity: ClassVar[Severity | None] = None

    config_schema: ClassVar[type[RuleConfig]] = RuleConfig

    def __init__(self, config: RuleConfig | dict[str, Any] | None = None) -> None:
        if config is None:
            self.config = self.config_schema()
        elif isinstance(config, dict):
            self.config = self.config_schema(**config)
        else:
            self.config = config

    @classmethod
    def applies_to(cls, platform: "Platform") -> bool:
        return cls.platforms is None or platform in cls.platforms

    @classmethod
    def applies_in_catalog(cls, platform: "Platform") -> bool:
        """Whether a catalog entry with this rule's id runs on ``platform``."""
        return cls.applies_to(platform)

    @abstractmethod
    def matches(self, ctx: RuleContext) -> bool:
        """Return True when the query exhibits the pattern."""
        pass

    def matches_in_catalog(self, ctx: RuleContext) -> bool:
        """Predicate used when the rule runs from a catalog entry."""
        return self.matches(ctx)

    def evaluate(
        self,
        ctx: RuleContext,
        definition: "RuleDefinition | None" = None,
    ) -> Issue | None:
        """
        Run the predicate and build the Issue for a match.

        Args:
            ctx: The query under analysis
            definition: Catalog entry overriding name, description and severity

        Returns:
            The issue, or None if the rule did not match.
        """
        matched = self.matches(ctx) if definition is None else self.matches_in_catalog(ctx)
        if not matched:
            return None

        line = column = None
        if self.locate_fragment:
            position = sqltext.locate(ctx.sql, self.locate_fragment)
            if position is not None:
                line, column = position

        if definition is None:
            return Issue(
                id=self.rule_id,
                category=self.category,
                severity=self.severity,
                name=self.name,
                message=self.message or self.name,
                description=self.description,
                recommendation=self.recommendation,
                line=line,
                column=column,
                estimated_impact=self.estimated_impact,
                estimated_savings=self.estimated_savings,
            )

        return Issue(
            id=definition.id,
            category=self.category,
            severity=definition.severity,
            name=definition.name,
            message=definition.name,
            description=definition.description,
            recommendation=definition.description,
            line=line,
            column=column,
            estimated_impact=self.estimated_impact,
            estimated_savings=self.estimated_savings,
        )
