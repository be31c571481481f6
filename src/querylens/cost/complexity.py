"""
Complexity classification and the query size factor.

All checks are substring or keyword counts over the lowercased query.
"""

from __future__ import annotations

import re

from querylens.cost.models import Complexity

HIGH_LENGTH_THRESHOLD = 1200
MEDIUM_LENGTH_THRESHOLD = 500

AGGREGATE_CALLS = ("count(", "sum(", "avg(", "min(", "max(")
COMPLEX_WINDOW_CALLS = (
    "rank()", "dense_rank()", "row_number()", "ntile(",
    "lead(", "lag(", "first_value(", "last_value(",
    "percent_rank()", "cume_dist()", "nth_value(",
)

_JOIN = re.compile(r"\bjoin\b")
_CASE = re.compile(r"\bcase\b")
_FROM_SOURCE = re.compile(r"\bfrom\s+[a-z0-9_.`\"\[\]]+")
_JOIN_SOURCE = re.compile(r"\bjoin\s+[a-z0-9_.`\"\[\]]+")
_SELECT_LIST = re.compile(r"\bselect\s+(.*?)\s+from\b", re.DOTALL)
_WHERE = re.compile(r"\bwhere\s+(.*?)(?=group by|order by|limit|$)", re.DOTALL)
_CONNECTIVE = re.compile(r"\b(?:and|or)\b")


def count_subqueries(sql: str) -> int:
    return sql.count("(select")


def has_subquery(sql: str) -> bool:
    return count_subqueries(sql) > 0


def has_multiple_subqueries(sql: str) -> bool:
    return count_subqueries(sql) > 1


def count_joins(sql: str) -> int:
    return len(_JOIN.findall(sql))


def has_window(sql: str) -> bool:
    return any(s in sql for s in ("over(", "over (", "partition by", "rank()", "row_number()"))


def has_complex_window(sql: str) -> bool:
    return any(call in sql for call in COMPLEX_WINDOW_CALLS)


def count_aggregates(sql: str) -> int:
    return sum(sql.count(call) for call in AGGREGATE_CALLS)


def has_aggregation(sql: str) -> bool:
    return count_aggregates(sql) > 0 or "group by" in sql


def count_case(sql: str) -> int:
    return len(_CASE.findall(sql))


def has_union(sql: str) -> bool:
    return "union all" in sql or "union " in sql


def classify(sql: str) -> Complexity:
    """
    Classify a query.

    High when any of: more than one ``(select``, 3+ joins, a ranking or
    offset window function, 4+ aggregate calls, or length over 1200.
    Medium when any of: a subquery, 2+ joins, any window, any aggregate,
    2+ CASE expressions, a UNION, or length over 500.
    """
    lowered = sql.lower()

    if (
        has_multiple_subqueries(lowered)
        or count_joins(lowered) >= 3
        or has_complex_window(lowered)
        or count_aggregates(lowered) >= 4
        or len(sql) > HIGH_LENGTH_THRESHOLD
    ):
        return Complexity.HIGH

    if (
        has_subquery(lowered)
        or count_joins(lowered) >= 2
        or has_window(lowered)
        or has_aggregation(lowered)
        or count_case(lowered) >= 2
        or has_union(lowered)
        or len(sql) > MEDIUM_LENGTH_THRESHOLD
    ):
        return Complexity.MEDIUM

    return Complexity.LOW


def base_size_factor(sql: str) -> float:
    """
    Size factor before jitter.

    ``(#FROM + #JOIN) * 2 + #select columns * 0.3 + #WHERE conditions * 0.5``
    """
    lowered = sql.lower()

    sources = len(_FROM_SOURCE.findall(lowered)) + len(_JOIN_SOURCE.findall(lowered))

    select_list = _SELECT_LIST.search(lowered)
    columns = len(select_list.group(1).split(",")) if select_list else 1

    where = _WHERE.search(lowered)
    conditions = len(_CONNECTIVE.findall(where.group(1))) + 1 if where else 0

    return sources * 2 + columns * 0.3 + conditions * 0.5
