"""Modularization rules: CTE usage, SELECT nesting, reusable objects."""

from __future__ import annotations

from querylens import sqltext
from querylens.analyzer.models import Category, Severity
from querylens.analyzer.registry import register_rule
from querylens.analyzer.rules.base import Rule, RuleConfig, RuleContext
from querylens.platforms import Platform


class LongQueryConfig(RuleConfig):
    """Queries longer than this many characters should be split into CTEs."""

    length_threshold: int = 300


class NestedSelectConfig(RuleConfig):
    """More SELECT keywords than this counts as deep nesting."""

    select_threshold: int = 3


@register_rule
class LongQueryWithoutCte(Rule):
    """Detect long queries that never use WITH."""

    rule_id = "MOD001"
    category = Category.MODULARIZATION
    severity = Severity.MEDIUM
    name = "Complex query without CTEs"
    message = "Complex query without Common Table Expressions (CTEs)"
    description = "Large queries without CTEs can be hard to read and maintain"
    recommendation = (
        "Break down complex logic using WITH clauses for better readability and maintenance"
    )
    config_schema = LongQueryConfig

    def matches(self, ctx: RuleContext) -> bool:
        return len(ctx.sql) > self.config.length_threshold and "with " not in ctx.lowered


@register_rule
class NestedSelects(Rule):
    """Count every SELECT keyword; many of them means deep nesting."""

    rule_id = "MOD002"
    category = Category.MODULARIZATION
    severity = Severity.HIGH
    name = "Multiple nested SELECTs"
    message = "Multiple nested SELECT statements detected"
    description = "Deeply nested SELECT statements can be difficult to read and maintain"
    recommendation = "Refactor using CTEs or views to simplify query structure"
    config_schema = NestedSelectConfig

    def matches(self, ctx: RuleContext) -> bool:
        return sqltext.count_occurrences(ctx.lowered, "select") > self.config.select_threshold


@register_rule
class MissingObjectCreation(Rule):
    """Snowflake queries that never materialize reusable views or functions."""

    rule_id = "MOD003"
    category = Category.MODULARIZATION
    severity = Severity.LOW
    name = "Missing object creation"
    message = (
        "Consider using Snowflake's object creation capabilities for better modularization"
    )
    description = (
        "Snowflake offers powerful object creation features that improve modularization"
    )
    recommendation = "Create reusable views or user-defined functions for complex logic"
    platforms = frozenset({Platform.SNOWFLAKE})

    def matches(self, ctx: RuleContext) -> bool:
        return "create or replace" not in ctx.lowered
