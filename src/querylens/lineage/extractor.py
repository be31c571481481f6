"""
Schema and lineage extraction.

Builds a SchemaGraph from query text alone, with no catalog access. The
pipeline runs in a fixed order because later steps look up nodes that
earlier steps create:

    1. CTEs become table nodes
    2. FROM / JOIN targets (and inline subqueries) become table nodes,
       keyed by alias when one is given
    3. Qualified column references attach to their tables in the order
       they first appear; CTE select lists contribute output columns
    4. JOIN ... ON equalities become Join relationships; when none are
       found, WHERE equalities become Reference relationships
    5. CTE and subquery bodies that mention another table become
       Reference / Subquery relationships
    6. Naming-convention heuristics (see heuristics.py)
    7. Reconciliation: mirrored column references, and same-name column
       edges for table references that carry no column detail

Extraction never raises. Any failure is logged and an empty graph is
returned.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from querylens.lineage.heuristics import apply_naming_heuristics
from querylens.lineage.models import (
    Relationship,
    RelationshipKind,
    SchemaGraph,
    TableNode,
)
from querylens.platforms import Platform
from querylens.sqltext import (
    IDENTIFIER,
    QUALIFIED_NAME,
    find_closing_paren,
    identifier_parts,
    iter_code_chars,
    mask_literals,
    split_top_level,
    strip_comments,
    word_pattern,
)

logger = logging.getLogger(__name__)

# Words that can follow a table name but are never its alias
RESERVED_WORDS = frozenset({
    "as", "on", "using", "where", "join", "inner", "left", "right", "full",
    "outer", "cross", "natural", "lateral", "group", "order", "limit",
    "having", "union", "intersect", "except", "qualify", "window", "select",
    "from", "with", "set", "values", "sample", "tablesample", "pivot",
    "unpivot", "and", "or", "when", "then", "else", "end", "partition",
    "cluster", "distribute", "sort", "for", "at", "before", "changes",
})

# Functions whose argument list contains a FROM keyword
_FROM_FUNCTIONS = ("extract", "substring", "trim", "position", "overlay")

_WITH = re.compile(r"\bwith\s+(?:recursive\s+)?")
_CTE_HEAD = re.compile(
    rf"\s*({IDENTIFIER})\s*(?:\([^()]*\)\s*)?as\s*(?:(?:not\s+)?materialized\s+)?\("
)
_CTE_SEPARATOR = re.compile(r"\s*,")
_RESERVED = "|".join(sorted(RESERVED_WORDS, key=len, reverse=True))
_SOURCE = re.compile(
    rf"\b(from|join)\s+({QUALIFIED_NAME})"
    rf"(?:\s+(?:as\s+)?(?!(?:{_RESERVED})\b)({IDENTIFIER}))?"
)
_SUBQUERY_SOURCE = re.compile(r"\b(from|join)\s*\(\s*(?=select\b|with\b)")
_ALIAS_AFTER = re.compile(rf"\s*(?:as\s+)?({IDENTIFIER})")
_QUALIFIED_REF = re.compile(rf"(?<![\w.`\"$])((?:{IDENTIFIER}\.)+)({IDENTIFIER}|\*)")
_EQUALITY = re.compile(
    rf"({IDENTIFIER}(?:\.{IDENTIFIER})+)\s*=\s*({IDENTIFIER}(?:\.{IDENTIFIER})+)"
)
_ON = re.compile(r"\s*on\b")
_WHERE = re.compile(r"\bwhere\b")
_SELECT = re.compile(r"\bselect\s+(?:distinct\s+|all\s+)?")
_FROM = re.compile(r"\bfrom\b")
_CLAUSE_END = re.compile(
    r"(?:where|group\s+by|order\s+by|limit|having|union|intersect|except"
    r"|qualify|window|join|inner|left|right|full|cross|natural)\b"
)
_AS_ALIAS = re.compile(rf"\s+as\s+({IDENTIFIER})$")
_PLAIN_COLUMN = re.compile(rf"(?:{IDENTIFIER}\.)*({IDENTIFIER})")


@dataclass
class _Cte:
    id: str
    body: str
    offset: int


@dataclass
class _Source:
    """A table introduced by FROM or JOIN, and where its clause ends."""

    id: str
    keyword: str
    end: int
    body: str | None = None  # inline subquery text
    alias_of: str | None = None  # CTE the alias points at


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _depth_at(text: str, index: int) -> int:
    depth = 0
    for i, ch in iter_code_chars(text):
        if i >= index:
            break
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
    return depth


def _find_top_level(text: str, pattern: re.Pattern[str], start: int = 0) -> re.Match[str] | None:
    """First match of ``pattern`` at parenthesis depth zero."""
    for match in pattern.finditer(text, start):
        if _depth_at(text, match.start()) == 0:
            return match
    return None


def _clause_end(text: str, start: int) -> int:
    """Offset where the clause beginning at ``start`` ends."""
    depth = 0
    for i, ch in iter_code_chars(text):
        if i < start:
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                return i
            depth -= 1
        elif depth == 0:
            if ch == ";":
                return i
            if (i == 0 or not _is_word_char(text[i - 1])) and _CLAUSE_END.match(text, i):
                return i
    return len(text)


def _inside_from_function(text: str, index: int) -> bool:
    """True when a FROM at ``index`` belongs to e.g. EXTRACT(YEAR FROM ts)."""
    opened = text.rfind("(", 0, index)
    if opened == -1 or text.rfind(")", 0, index) > opened:
        return False
    return text[:opened].rstrip().endswith(_FROM_FUNCTIONS)


def _join_name(qualified: str) -> str:
    return ".".join(identifier_parts(qualified))


class SchemaExtractor:
    """
    Heuristic table and column lineage extraction.

    Example:
        graph = SchemaExtractor().extract(sql, Platform.SNOWFLAKE)
        for rel in graph.relationships:
            print(rel.source, "->", rel.target, rel.kind.value)
    """

    def extract(self, sql: str, platform: Platform | str = Platform.BIGQUERY) -> SchemaGraph:
        """
        Extract the schema graph of ``sql``.

        Returns:
            SchemaGraph; empty for empty input or when extraction fails.
        """
        if not sql or not sql.strip():
            return SchemaGraph()

        try:
            platform = Platform.from_string(platform)
            graph = self._extract(sql)
        except Exception as e:
            logger.warning("Schema extraction failed, returning empty graph: %s", e)
            return SchemaGraph()

        logger.debug(
            "Extracted %d tables and %d relationships (%s)",
            len(graph.tables), len(graph.relationships), platform.value,
        )
        return graph

    def _extract(self, sql: str) -> SchemaGraph:
        text = mask_literals(strip_comments(sql).lower())
        graph = SchemaGraph()

        ctes = self._find_ctes(text)
        for cte in ctes:
            graph.add_table(TableNode(id=cte.id, display_name=cte.id, is_cte=True))

        cte_ids = {cte.id for cte in ctes}
        sources, name_spans = self._find_sources(text, cte_ids, graph)

        self._attach_columns(text, graph, ctes, name_spans)

        join_count = self._join_relationships(text, graph, sources)
        if join_count == 0:
            self._where_relationships(text, graph)

        self._body_relationships(graph, ctes, sources)
        apply_naming_heuristics(graph, {cte.id: cte.body for cte in ctes})
        self._reconcile(graph)
        return graph

    # ── Step 1: CTEs ─────────────────────────────────────────────────────

    def _find_ctes(self, text: str) -> list[_Cte]:
        ctes: list[_Cte] = []
        seen: set[str] = set()
        for with_match in _WITH.finditer(text):
            pos = with_match.end()
            while True:
                head = _CTE_HEAD.match(text, pos)
                if head is None:
                    break
                open_index = head.end() - 1
                close = find_closing_paren(text, open_index)
                if close is None:
                    break
                name = _join_name(head.group(1))
                if name not in seen:
                    seen.add(name)
                    ctes.append(_Cte(id=name, body=text[open_index + 1:close], offset=open_index + 1))
                separator = _CTE_SEPARATOR.match(text, close + 1)
                if separator is None:
                    break
                pos = separator.end()
        return ctes

    # ── Step 2: FROM / JOIN sources ──────────────────────────────────────

    def _find_sources(
        self,
        text: str,
        cte_ids: set[str],
        graph: SchemaGraph,
    ) -> tuple[list[_Source], list[tuple[int, int]]]:
        found: list[tuple[int, _Source]] = []
        name_spans: list[tuple[int, int]] = []

        for match in _SOURCE.finditer(text):
            if match.group(1) == "from" and _inside_from_function(text, match.start()):
                continue
            # FROM UNNEST(...), FROM TABLE(...): a function, not a table
            after = text[match.end(2):].lstrip()
            if after.startswith("("):
                continue

            name = _join_name(match.group(2))
            alias = match.group(3)
            end = match.end()
            if alias is None or alias in RESERVED_WORDS:
                alias_id = None
                end = match.end(2)
            else:
                alias_id = _join_name(alias)
            name_spans.append((match.start(2), match.end(2)))

            if name in cte_ids:
                if alias_id is None or alias_id == name:
                    found.append((match.start(), _Source(id=name, keyword=match.group(1), end=end)))
                    continue
                graph.add_table(TableNode(id=alias_id, display_name=f"{name} ({alias_id})"))
                found.append((match.start(), _Source(
                    id=alias_id, keyword=match.group(1), end=end, alias_of=name,
                )))
                continue

            node_id = alias_id or name
            display = name if node_id == name else f"{name} ({node_id})"
            graph.add_table(TableNode(id=node_id, display_name=display))
            found.append((match.start(), _Source(id=node_id, keyword=match.group(1), end=end)))

        for match in _SUBQUERY_SOURCE.finditer(text):
            open_index = text.index("(", match.start())
            close = find_closing_paren(text, open_index)
            if close is None:
                continue
            alias = _ALIAS_AFTER.match(text, close + 1)
            if alias is None or alias.group(1) in RESERVED_WORDS:
                continue
            alias_id = _join_name(alias.group(1))
            graph.add_table(TableNode(id=alias_id, display_name=f"{alias_id} (subquery)"))
            found.append((match.start(), _Source(
                id=alias_id, keyword=match.group(1), end=alias.end(),
                body=text[open_index + 1:close],
            )))

        found.sort(key=lambda item: item[0])
        return [source for _, source in found], name_spans

    # ── Step 3: columns ──────────────────────────────────────────────────

    def _resolve(self, graph: SchemaGraph, qualifier: list[str]) -> str | None:
        candidates = [".".join(qualifier), qualifier[-1]] if qualifier else []
        for candidate in candidates:
            if graph.table(candidate) is not None:
                return candidate
        return None

    def _attach_columns(
        self,
        text: str,
        graph: SchemaGraph,
        ctes: list[_Cte],
        name_spans: list[tuple[int, int]],
    ) -> None:
        found: list[tuple[int, str, str]] = []

        for match in _QUALIFIED_REF.finditer(text):
            if match.group(2) == "*":
                continue
            if any(start <= match.start() < end for start, end in name_spans):
                continue
            table_id = self._resolve(graph, identifier_parts(match.group(1)))
            if table_id is not None:
                found.append((match.start(), table_id, identifier_parts(match.group(2))[0]))

        for cte in ctes:
            for offset, column in self._output_columns(cte.body):
                found.append((cte.offset + offset, cte.id, column))

        found.sort(key=lambda item: item[0])
        for _, table_id, column in found:
            table = graph.table(table_id)
            if table is not None:
                table.add_column(column)

    def _output_columns(self, body: str) -> list[tuple[int, str]]:
        """Output column names of a CTE, with offsets into ``body``."""
        select = _find_top_level(body, _SELECT)
        if select is None:
            return []
        from_match = _find_top_level(body, _FROM, select.end())
        end = from_match.start() if from_match else len(body)

        columns: list[tuple[int, str]] = []
        cursor = select.end()
        for item in split_top_level(body[select.end():end]):
            position = body.find(item, cursor)
            cursor = position + len(item) if position != -1 else cursor
            if item == "*" or item.endswith(".*"):
                continue
            alias = _AS_ALIAS.search(item)
            if alias is not None:
                columns.append((position, identifier_parts(alias.group(1))[0]))
                continue
            plain = _PLAIN_COLUMN.fullmatch(item)
            if plain is not None:
                columns.append((position, identifier_parts(plain.group(1))[0]))
        return columns

    # ── Step 4: equality relationships ───────────────────────────────────

    def _equalities(self, graph: SchemaGraph, condition: str):
        for match in _EQUALITY.finditer(condition):
            left = identifier_parts(match.group(1))
            right = identifier_parts(match.group(2))
            left_table = self._resolve(graph, left[:-1])
            right_table = self._resolve(graph, right[:-1])
            if left_table is None or right_table is None or left_table == right_table:
                continue
            yield (left_table, left[-1]), (right_table, right[-1])

    def _join_relationships(self, text: str, graph: SchemaGraph, sources: list[_Source]) -> int:
        count = 0
        for source in sources:
            if source.keyword != "join":
                continue
            on = _ON.match(text, source.end)
            if on is None:
                continue
            condition = text[on.end():_clause_end(text, on.end())]
            for left, right in self._equalities(graph, condition):
                if right[0] == source.id:
                    left, right = right, left
                added = graph.add_relationship(Relationship(
                    source=left[0],
                    target=right[0],
                    kind=RelationshipKind.JOIN,
                    source_column=left[1],
                    target_column=right[1],
                ))
                count += added
        return count

    def _where_relationships(self, text: str, graph: SchemaGraph) -> None:
        for where in _WHERE.finditer(text):
            condition = text[where.end():_clause_end(text, where.end())]
            for left, right in self._equalities(graph, condition):
                graph.add_relationship(Relationship(
                    source=left[0],
                    target=right[0],
                    kind=RelationshipKind.REFERENCE,
                    source_column=left[1],
                    target_column=right[1],
                ))

    # ── Step 5: CTE and subquery bodies ──────────────────────────────────

    def _body_relationships(
        self,
        graph: SchemaGraph,
        ctes: list[_Cte],
        sources: list[_Source],
    ) -> None:
        for cte in ctes:
            for other in graph.table_ids:
                if other != cte.id and word_pattern(other).search(cte.body):
                    graph.add_relationship(
                        Relationship(source=cte.id, target=other, kind=RelationshipKind.REFERENCE)
                    )

        for source in sources:
            if source.alias_of is not None:
                graph.add_relationship(Relationship(
                    source=source.id, target=source.alias_of, kind=RelationshipKind.REFERENCE,
                ))
            if source.body is None:
                continue
            for other in graph.table_ids:
                if other != source.id and word_pattern(other).search(source.body):
                    graph.add_relationship(
                        Relationship(source=source.id, target=other, kind=RelationshipKind.SUBQUERY)
                    )

    # ── Step 7: reconciliation ───────────────────────────────────────────

    def _reconcile(self, graph: SchemaGraph) -> None:
        for rel in list(graph.relationships):
            if rel.has_columns:
                graph.link_columns(
                    graph.table(rel.source), rel.source_column,
                    graph.table(rel.target), rel.target_column,
                )

        for table in list(graph.tables):
            for target_id in list(table.references):
                target = graph.table(target_id)
                if target is None or target.id == table.id:
                    continue
                if any(r.has_columns for r in graph.relationships_between(table.id, target_id)):
                    continue
                for name in table.column_names:
                    if target.column(name) is not None:
                        graph.add_relationship(Relationship(
                            source=table.id,
                            target=target.id,
                            kind=RelationshipKind.REFERENCE,
                            source_column=name,
                            target_column=name,
                        ))


def extract_schema(sql: str, platform: Platform | str = Platform.BIGQUERY) -> SchemaGraph:
    """Extract a SchemaGraph with a default SchemaExtractor. Never raises."""
    return SchemaExtractor().extract(sql, platform)
