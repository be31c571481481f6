"""Cost rules: full scans, unbounded sorts, partitioning, sampling."""

from __future__ import annotations

from querylens.analyzer.models import Category, Severity
from querylens.analyzer.registry import register_rule
from querylens.analyzer.rules.base import Rule, RuleContext
from querylens.platforms import Platform


@register_rule
class FullTableScan(Rule):
    """A FROM with no WHERE anywhere reads the whole table."""

    rule_id = "COST001"
    category = Category.COST
    severity = Severity.HIGH
    name = "Full table scan"
    message = "Full table scan without filtering criteria"
    description = "Scanning an entire table without filters can be costly"
    recommendation = "Add appropriate WHERE clauses to limit data processed"
    locate_fragment = "from"
    estimated_savings = "Could reduce costs by 40-80%"

    def matches(self, ctx: RuleContext) -> bool:
        return "where" not in ctx.lowered and "from" in ctx.lowered


@register_rule
class OrderByWithoutLimit(Rule):
    rule_id = "COST002"
    category = Category.COST
    severity = Severity.MEDIUM
    name = "ORDER BY without LIMIT"
    message = "ORDER BY without LIMIT can be expensive"
    description = "Sorting without limiting results processes unnecessary data"
    recommendation = "Add a LIMIT clause when using ORDER BY"
    locate_fragment = "order by"
    estimated_savings = "Could reduce computational costs by 10-20%"

    def matches(self, ctx: RuleContext) -> bool:
        return "order by" in ctx.lowered and "limit" not in ctx.lowered


@register_rule
class JoinWithoutPartitioning(Rule):
    """BigQuery joins that never touch a partition column scan every partition."""

    rule_id = "COST003"
    category = Category.COST
    severity = Severity.MEDIUM
    name = "Inefficient partitioning"
    message = "BigQuery query might not be using partitioning efficiently"
    description = "Not using partitioning in BigQuery can increase costs significantly"
    recommendation = "Use partitioned tables and partition pruning to reduce data scanned"
    platforms = frozenset({Platform.BIGQUERY})
    locate_fragment = "join"
    estimated_savings = "Could reduce BigQuery costs by 30-70%"

    def matches(self, ctx: RuleContext) -> bool:
        return (
            "join" in ctx.lowered
            and "partition by" not in ctx.lowered
            and "_partitiontime" not in ctx.lowered
        )


@register_rule
class MissingSample(Rule):
    rule_id = "COST004"
    category = Category.COST
    severity = Severity.LOW
    name = "Missing SAMPLE clause"
    message = "Consider using Snowflake's SAMPLE feature for exploratory queries"
    description = "Snowflake's SAMPLE feature can reduce costs for exploratory work"
    recommendation = "Use SAMPLE() clause for ad-hoc analysis to reduce compute costs"
    platforms = frozenset({Platform.SNOWFLAKE})
    estimated_savings = "Could reduce warehouse costs by 40-90% for exploratory work"

    def matches(self, ctx: RuleContext) -> bool:
        return "select" in ctx.lowered and "sample(" not in ctx.lowered
