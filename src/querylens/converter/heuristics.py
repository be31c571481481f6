"""
Query inspection for model conversion.

Everything here is a heuristic over the query text. Source tables come
from FROM and JOIN references (CTE names excluded), output columns from
the first top-level SELECT list, and the model name, materialization and
suggested tests from keywords and column names.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from querylens.converter.models import (
    ColumnTests,
    Materialization,
    ModelColumn,
    SourceTable,
)
from querylens.sqltext import mask_literals, split_top_level, unquote_identifier

_PART = r'(?:`[^`]+`|\[[^\]]+\]|[\w"]+)'
_TABLE_REF = re.compile(
    rf'\b(?:from|join)\s+({_PART}(?:\.{_PART})*)(?![\w.`"\]]|\s*\()',
    re.IGNORECASE,
)
_CTE_NAME = re.compile(r'(?:\bwith\s+(?:recursive\s+)?|,\s*)([\w"`]+)\s+as\s*\(', re.IGNORECASE)
_SELECT = re.compile(r"\bselect\b", re.IGNORECASE)
_FROM = re.compile(r"\bfrom\b", re.IGNORECASE)
_WHERE = re.compile(r"\bwhere\b", re.IGNORECASE)
_AFTER_WHERE = re.compile(
    r"\b(?:group\s+by|having|qualify|window|order\s+by|limit|union|intersect|except)\b",
    re.IGNORECASE,
)
_ALIAS = re.compile(r"\s+as\s+", re.IGNORECASE)
_DISTINCT = re.compile(r"^distinct\s+", re.IGNORECASE)
_DIGITS = re.compile(r"\d")
_UNSAFE_NAME = re.compile(r"[^a-z0-9_]+")
_WORD_BEFORE = re.compile(r"(\w+)\s*$")
# Functions whose arguments use FROM without naming a table
_FROM_FUNCTIONS = frozenset({"extract", "trim", "substring", "position", "overlay"})

SCHEMA_BY_PREFIX = {
    "stg_": "staging",
    "int_": "intermediate",
    "mart_": "mart",
    "agg_": "aggregations",
}
TAG_BY_PREFIX = {
    "stg_": "staging",
    "int_": "intermediate",
    "mart_": "mart",
    "agg_": "aggregation",
}
DEFAULT_SCHEMA = "analytics"


@dataclass(frozen=True)
class ModelPlan:
    """What the renderers need to know about a query."""

    sql: str
    name: str
    materialization: Materialization
    tables: tuple[SourceTable, ...]
    columns: tuple[ModelColumn, ...]
    tests: tuple[ColumnTests, ...]

    @property
    def lowered(self) -> str:
        return self.sql.lower()

    @property
    def has_join(self) -> bool:
        return "join" in self.lowered

    @property
    def has_group_by(self) -> bool:
        return "group by" in self.lowered

    def unique_key(self) -> str:
        """First output column that looks like an identifier, else ``id``."""
        return next((c.name for c in self.columns if "id" in c.name.lower()), "id")

    def incremental_field(self) -> str:
        """Column new rows are detected by, preferring audit timestamps."""
        names = [c.name for c in self.columns]
        lowered = [n.lower() for n in names]
        for preferred in ("updated_at", "created_at"):
            if preferred in lowered:
                return names[lowered.index(preferred)]
        for fragment in ("date", "timestamp"):
            for name, low in zip(names, lowered):
                if fragment in low:
                    return name
        return "id"


# ── Tables and columns ───────────────────────────────────────────────────


def cte_names(sql: str) -> set[str]:
    return {unquote_identifier(m.group(1)).lower() for m in _CTE_NAME.finditer(mask_literals(sql))}


def _enclosing_call(masked: str, pos: int) -> str:
    """Lowercased name of the function whose parentheses contain ``pos``."""
    depth = 0
    for index in range(pos - 1, -1, -1):
        ch = masked[index]
        if ch == ")":
            depth += 1
        elif ch == "(":
            if depth == 0:
                word = _WORD_BEFORE.search(masked, 0, index)
                return word.group(1).lower() if word else ""
            depth -= 1
    return ""


def extract_tables(sql: str) -> list[SourceTable]:
    """FROM and JOIN references in first-appearance order, without CTEs."""
    masked = mask_literals(sql)
    ctes = cte_names(sql)
    tables: list[SourceTable] = []
    seen: set[str] = set()
    for match in _TABLE_REF.finditer(masked):
        if _enclosing_call(masked, match.start()) in _FROM_FUNCTIONS:
            continue
        raw = match.group(1)
        name = re.sub(r'[`"\[\]]', "", raw)
        if name.lower() in ctes or name.lower() in seen:
            continue
        seen.add(name.lower())
        tables.append(SourceTable(raw=raw, name=name))
    return tables


def _depth_at(masked: str, pos: int) -> int:
    return masked.count("(", 0, pos) - masked.count(")", 0, pos)


def _top_level(pattern: re.Pattern[str], masked: str, start: int = 0) -> list[re.Match[str]]:
    return [m for m in pattern.finditer(masked, start) if _depth_at(masked, m.start()) == 0]


def select_list(sql: str) -> str | None:
    """Text between the first top-level SELECT and its FROM."""
    masked = mask_literals(sql)
    selects = _top_level(_SELECT, masked)
    if not selects:
        return None
    start = selects[0].end()
    froms = _top_level(_FROM, masked, start)
    if not froms:
        return None
    return sql[start:froms[0].start()].strip()


def infer_type(expression: str) -> str:
    lowered = expression.lower()
    if any(f in lowered for f in ("count(", "sum(", "avg(")) or _DIGITS.search(lowered):
        return "number"
    if "date" in lowered or "time" in lowered:
        return "timestamp"
    if any(word in lowered for word in ("true", "false", "boolean")):
        return "boolean"
    return "string"


def parse_column(definition: str) -> ModelColumn | None:
    """
    One SELECT-list item as a column.

    ``SUM(total) AS revenue`` becomes ``revenue`` with a guessed type and a
    description naming the expression. ``o.id`` becomes ``id``. Star
    selections have no single name and are skipped.
    """
    aliases = list(_ALIAS.finditer(definition))
    if aliases:
        last = aliases[-1]
        expression = definition[:last.start()].strip()
        return ModelColumn(
            name=unquote_identifier(definition[last.end():].strip()).strip("[]"),
            data_type=infer_type(expression),
            description=f"Derived from: {expression}",
        )

    name = definition.strip().split(".")[-1]
    name = unquote_identifier(name).strip("[]")
    if not name or name == "*":
        return None
    return ModelColumn(name=name)


def extract_columns(sql: str) -> list[ModelColumn]:
    items = select_list(sql)
    if not items:
        return []
    items = _DISTINCT.sub("", items)
    columns: list[ModelColumn] = []
    for item in split_top_level(items):
        column = parse_column(item)
        if column is not None:
            columns.append(column)
    return columns


# ── Naming and materialization ───────────────────────────────────────────


def _safe_name(name: str) -> str:
    return _UNSAFE_NAME.sub("_", name.lower()).strip("_") or "model"


def main_entity(tables: list[SourceTable]) -> str:
    return tables[0].short_name if tables else "model"


def suggest_model_name(sql: str, tables: list[SourceTable]) -> str:
    """
    Name the model after its shape and main table.

    Aggregations get ``agg_``, multi-table queries ``int_`` with every
    table name, window queries ``mart_`` and everything else ``stg_``.
    """
    lowered = sql.lower()
    items = (select_list(sql) or "").lower()

    if "group by" in lowered and any(f in items for f in ("count(", "sum(", "avg(")):
        return _safe_name("agg_" + main_entity(tables))
    if len(tables) > 1:
        return _safe_name("int_" + "_".join(t.short_name for t in tables))
    if "partition by" in lowered or "over(" in lowered or "over (" in lowered:
        return _safe_name("mart_" + main_entity(tables))
    return _safe_name("stg_" + main_entity(tables))


def suggest_materialization(sql: str) -> Materialization:
    lowered = sql.lower()
    if "group by" in lowered or "window" in lowered or "partition by" in lowered:
        return Materialization.TABLE
    if "join" in lowered and len(lowered) > 500:
        return Materialization.TABLE
    if "select" in lowered and "join" not in lowered:
        return Materialization.VIEW
    if "where" in lowered and ("date" in lowered or "time" in lowered):
        return Materialization.INCREMENTAL
    return Materialization.VIEW


def schema_for(model_name: str) -> str:
    for prefix, schema in SCHEMA_BY_PREFIX.items():
        if model_name.startswith(prefix):
            return schema
    return DEFAULT_SCHEMA


def suggest_tests(sql: str, columns: list[ModelColumn]) -> list[ColumnTests]:
    """
    Data tests worth adding per column, judged from the column name.

    Identifier-like names get ``not_null`` and ``unique``, status-like
    names ``accepted_values`` and ``*_id`` names ``relationships``.
    """
    lowered = sql.lower()
    suggestions: list[ColumnTests] = []
    for column in columns:
        name = column.name.lower()
        tests: list[str] = []
        if "id" in name or f"{name} is not null" in lowered:
            tests.append("not_null")
        if "id" in name and "foreign" not in name:
            tests.append("unique")
        if any(word in name for word in ("status", "type", "category")):
            tests.append("accepted_values")
        if "_id" in name and "main_id" not in name:
            tests.append("relationships")
        if tests:
            suggestions.append(ColumnTests(column=column.name, tests=tuple(tests)))
    return suggestions


def plan_model(sql: str) -> ModelPlan:
    tables = extract_tables(sql)
    columns = extract_columns(sql)
    return ModelPlan(
        sql=sql,
        name=suggest_model_name(sql, tables),
        materialization=suggest_materialization(sql),
        tables=tuple(tables),
        columns=tuple(columns),
        tests=tuple(suggest_tests(sql, columns)),
    )


# ── Rewriting ────────────────────────────────────────────────────────────


def strip_semicolon(sql: str) -> str:
    """Model bodies must not end with a statement terminator."""
    body = sql.rstrip()
    while body.endswith(";"):
        body = body[:-1].rstrip()
    return body


def replace_table_refs(
    sql: str,
    tables: tuple[SourceTable, ...],
    render: Callable[[SourceTable], str],
) -> str:
    """Swap each FROM/JOIN table reference for ``render(table)``."""
    for table in sorted(tables, key=lambda t: len(t.raw), reverse=True):
        pattern = re.compile(
            rf'(\b(?:from|join)\s+){re.escape(table.raw)}(?![\w.`"\]])',
            re.IGNORECASE,
        )
        sql = pattern.sub(lambda m, t=table: m.group(1) + render(t), sql)
    return sql


def insert_filter(sql: str, condition: str) -> str:
    """
    Add ``condition`` to the WHERE clause of the final top-level SELECT.

    A query without WHERE gets ``WHERE 1=1`` first so the condition can
    start with AND. The condition goes before any GROUP BY, ORDER BY,
    LIMIT or set operator that follows.
    """
    masked = mask_literals(sql)
    selects = _top_level(_SELECT, masked)
    start = selects[-1].end() if selects else 0

    wheres = _top_level(_WHERE, masked, start)
    search_from = wheres[0].end() if wheres else start
    tails = _top_level(_AFTER_WHERE, masked, search_from)
    insert_at = tails[0].start() if tails else len(sql)

    head = sql[:insert_at].rstrip()
    rest = sql[insert_at:].strip()
    block = condition if wheres else f"WHERE 1=1\n{condition}"
    return f"{head}\n{block}" + (f"\n{rest}" if rest else "")
