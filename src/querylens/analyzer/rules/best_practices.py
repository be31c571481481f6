"""Best-practice rules: column selection, FROM presence and qualification, date truncation."""

from __future__ import annotations

import re

from querylens.analyzer.models import Category, Severity
from querylens.analyzer.registry import register_rule
from querylens.analyzer.rules.base import Rule, RuleContext
from querylens.platforms import Platform


@register_rule
class SelectStar(Rule):
    """
    Detect ``SELECT *``.

    Reading every column defeats column pruning on all three warehouses
    and makes the query fragile against schema changes.
    """

    rule_id = "BP001"
    category = Category.BEST_PRACTICES
    severity = Severity.MEDIUM
    name = "Using SELECT * is not recommended"
    message = "Using SELECT * is not recommended"
    description = "Explicitly specify only the columns you need"
    recommendation = "Explicitly specify only the columns you need"
    locate_fragment = "select *"

    def matches(self, ctx: RuleContext) -> bool:
        return "select *" in ctx.lowered


# A FROM whose table is not fully qualified (subqueries excluded)
_UNQUALIFIED_FROM = {
    Platform.BIGQUERY: re.compile(r"\bfrom\s+(?![`(])"),
    Platform.SNOWFLAKE: re.compile(r'\bfrom\s+(?!\(|[\w"]+\.[\w"]+\.)'),
}


@register_rule
class MissingFromClause(Rule):
    """
    Detect a SELECT with no FROM anywhere in the query.

    Catalog entries with this id check schema qualification instead: on
    BigQuery a table should be a backticked ``project.dataset.table`` and
    on Snowflake a ``database.schema.table`` name.
    """

    rule_id = "BP002"
    category = Category.BEST_PRACTICES
    severity = Severity.HIGH
    name = "Missing FROM clause in SELECT statement"
    message = "Missing FROM clause in SELECT statement"
    description = "Add a FROM clause to your SELECT statement"
    recommendation = "Add a FROM clause to your SELECT statement"
    platforms = frozenset({Platform.BIGQUERY})
    locate_fragment = "select"
    catalog_name = "Schema Qualification"
    catalog_description = (
        "Always qualify table names with project and dataset using backticks "
        "(`project.dataset.table`)"
    )
    catalog_severity = Severity.LOW

    def matches(self, ctx: RuleContext) -> bool:
        return "select" in ctx.lowered and "from" not in ctx.lowered

    @classmethod
    def applies_in_catalog(cls, platform: Platform) -> bool:
        return platform in _UNQUALIFIED_FROM

    def matches_in_catalog(self, ctx: RuleContext) -> bool:
        return _UNQUALIFIED_FROM[ctx.platform].search(ctx.lowered) is not None


@register_rule
class DateTruncUsage(Rule):
    """Snowflake has cheaper time-bucketing functions than DATE_TRUNC."""

    rule_id = "BP003"
    category = Category.BEST_PRACTICES
    severity = Severity.LOW
    name = "DATE_TRUNC function usage can be optimized"
    message = "DATE_TRUNC function usage can be optimized in Snowflake"
    description = "Consider using Snowflake's specific time functions for better performance"
    recommendation = "Consider using Snowflake's specific time functions for better performance"
    platforms = frozenset({Platform.SNOWFLAKE})
    locate_fragment = "date_trunc"

    def matches(self, ctx: RuleContext) -> bool:
        return "date_trunc" in ctx.lowered
