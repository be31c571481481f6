"""Performance rules: subqueries, unconditioned joins, late filtering."""

from __future__ import annotations

import re

from querylens.analyzer.models import Category, Severity
from querylens.analyzer.registry import register_rule
from querylens.analyzer.rules.base import Rule, RuleContext
from querylens.platforms import Platform

_JOIN = re.compile(r"\sjoin\s")
_ON = re.compile(r"\son\s")
_USING = re.compile(r"\susing[\s(]")


@register_rule
class SubqueryDetected(Rule):
    """Inline subqueries often plan worse than an equivalent CTE or JOIN."""

    rule_id = "PERF001"
    category = Category.PERFORMANCE
    severity = Severity.MEDIUM
    name = "Subquery detected"
    message = "Subquery detected which may impact performance"
    description = "Subqueries may impact performance in certain scenarios"
    recommendation = "Consider using CTEs or JOINs instead of subqueries where possible"
    locate_fragment = "(select"
    estimated_impact = "Could improve query time by 15-30%"

    def matches(self, ctx: RuleContext) -> bool:
        return "select" in ctx.lowered and "(select" in ctx.lowered


@register_rule
class JoinWithoutCondition(Rule):
    """
    Detect a JOIN with no ON or USING anywhere in the query.

    Without a condition the join degenerates into a Cartesian product.
    """

    rule_id = "PERF002"
    category = Category.PERFORMANCE
    severity = Severity.HIGH
    name = "JOIN without condition"
    message = "JOIN without condition found (potential Cartesian product)"
    description = "Joins without conditions can result in Cartesian products"
    recommendation = "Add a JOIN condition with ON or USING clause"
    locate_fragment = "join"
    estimated_impact = "Could prevent exponential performance degradation"

    def matches(self, ctx: RuleContext) -> bool:
        text = f" {ctx.lowered} "
        return (
            _JOIN.search(text) is not None
            and _ON.search(text) is None
            and _USING.search(text) is None
        )


@register_rule
class FilterAfterGroupBy(Rule):
    """On BigQuery, filtering after aggregation processes more bytes than needed."""

    rule_id = "PERF003"
    category = Category.PERFORMANCE
    severity = Severity.MEDIUM
    name = "Filtering after GROUP BY"
    message = "Consider filtering before GROUP BY for better BigQuery performance"
    description = "Filtering after GROUP BY processes more data than necessary"
    recommendation = "Add a WHERE clause before GROUP BY to reduce the amount of data processed"
    platforms = frozenset({Platform.BIGQUERY})
    locate_fragment = "group by"
    estimated_impact = "Could reduce processed bytes by 40-60%"

    def matches(self, ctx: RuleContext) -> bool:
        group_by = ctx.lowered.find("group by")
        if group_by < 0:
            return False
        where = ctx.lowered.find("where")
        return where < 0 or where > group_by
