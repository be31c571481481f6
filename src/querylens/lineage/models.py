"""
Data models for table and column lineage.

A SchemaGraph is a plain edge list over TableNodes. No acyclicity is
assumed: a table may reference itself and CTEs may reference each other
in both directions.

Invariants (checked by SchemaGraph.check_consistency):
- Every Relationship with both columns set has a matching
  references / referenced_by pair on the two ColumnNodes.
- Every table-level reference has the reciprocal referenced_by entry
  on the target table, and vice versa.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class RelationshipKind(str, Enum):
    """How one table depends on another."""

    JOIN = "join"
    SUBQUERY = "subquery"
    REFERENCE = "reference"


@dataclass(frozen=True)
class ColumnReference:
    """Pointer to a column on another (or the same) table."""

    column_id: str
    table_id: str


@dataclass
class ColumnNode:
    """
    A column discovered on a table.

    Attributes:
        id: ``<table_id>.<name>``
        name: Column name as referenced in the query
        table_id: Owning table
        references: Columns this column is derived from or joined to
        referenced_by: Columns that reference this one
    """

    id: str
    name: str
    table_id: str
    references: list[ColumnReference] = field(default_factory=list)
    referenced_by: list[ColumnReference] = field(default_factory=list)

    def add_reference(self, ref: ColumnReference) -> None:
        if ref not in self.references:
            self.references.append(ref)

    def add_referenced_by(self, ref: ColumnReference) -> None:
        if ref not in self.referenced_by:
            self.referenced_by.append(ref)


@dataclass
class TableNode:
    """
    A base table, CTE or inline subquery.

    ``id`` is the alias when one is given, otherwise the table name.
    ``display_name`` is ``name (alias)`` for aliased tables.
    """

    id: str
    display_name: str
    columns: list[ColumnNode] = field(default_factory=list)
    references: list[str] = field(default_factory=list)
    referenced_by: list[str] = field(default_factory=list)
    is_cte: bool = False

    def column(self, name: str) -> ColumnNode | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def add_column(self, name: str) -> ColumnNode:
        """Return the existing column or append a new one."""
        existing = self.column(name)
        if existing is not None:
            return existing
        col = ColumnNode(id=f"{self.id}.{name}", name=name, table_id=self.id)
        self.columns.append(col)
        return col

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


@dataclass(frozen=True)
class Relationship:
    """Directed edge from ``source`` to ``target``."""

    source: str
    target: str
    kind: RelationshipKind
    source_column: str | None = None
    target_column: str | None = None

    @property
    def key(self) -> tuple[str, str, str | None, str | None]:
        """Identity used for duplicate suppression (kind is ignored)."""
        return (self.source, self.target, self.source_column, self.target_column)

    @property
    def has_columns(self) -> bool:
        return self.source_column is not None and self.target_column is not None


@dataclass
class SchemaGraph:
    """Tables plus the relationships between them."""

    tables: list[TableNode] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.tables and not self.relationships

    @property
    def table_ids(self) -> list[str]:
        return [t.id for t in self.tables]

    def table(self, table_id: str) -> TableNode | None:
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def add_table(self, table: TableNode) -> TableNode:
        existing = self.table(table.id)
        if existing is not None:
            return existing
        self.tables.append(table)
        return table

    def has_edge(self, source: str, target: str) -> bool:
        return any(r.source == source and r.target == target for r in self.relationships)

    def relationships_between(self, a: str, b: str) -> list[Relationship]:
        return [
            r for r in self.relationships
            if (r.source == a and r.target == b) or (r.source == b and r.target == a)
        ]

    def add_relationship(self, rel: Relationship) -> bool:
        """
        Append ``rel`` unless an edge with the same key exists.

        Also records the table-level reference on both endpoints and, when
        both columns are given, the mirrored column references.

        Returns:
            True if the relationship was added.
        """
        source = self.table(rel.source)
        target = self.table(rel.target)
        if source is None or target is None:
            return False
        if any(r.key == rel.key for r in self.relationships):
            return False

        self.relationships.append(rel)
        self.link_tables(source, target)
        if rel.has_columns:
            self.link_columns(source, rel.source_column, target, rel.target_column)
        return True

    @staticmethod
    def link_tables(source: TableNode, target: TableNode) -> None:
        if target.id not in source.references:
            source.references.append(target.id)
        if source.id not in target.referenced_by:
            target.referenced_by.append(source.id)

    @staticmethod
    def link_columns(
        source: TableNode,
        source_column: str,
        target: TableNode,
        target_column: str,
    ) -> None:
        src_col = source.add_column(source_column)
        tgt_col = target.add_column(target_column)
        src_col.add_reference(ColumnReference(column_id=tgt_col.id, table_id=target.id))
        tgt_col.add_referenced_by(ColumnReference(column_id=src_col.id, table_id=source.id))

    def check_consistency(self) -> list[str]:
        """
        Verify the graph invariants.

        Returns:
            Human-readable violations; empty when the graph is consistent.
        """
        problems: list[str] = []

        for rel in self.relationships:
            source = self.table(rel.source)
            target = self.table(rel.target)
            if source is None or target is None:
                problems.append(f"relationship {rel.source}->{rel.target} has a missing endpoint")
                continue
            if not rel.has_columns:
                continue
            src_col = source.column(rel.source_column)
            tgt_col = target.column(rel.target_column)
            if src_col is None or tgt_col is None:
                problems.append(
                    f"relationship {rel.source}.{rel.source_column}->"
                    f"{rel.target}.{rel.target_column} has a missing column"
                )
                continue
            if ColumnReference(tgt_col.id, target.id) not in src_col.references:
                problems.append(f"{src_col.id} does not reference {tgt_col.id}")
            if ColumnReference(src_col.id, source.id) not in tgt_col.referenced_by:
                problems.append(f"{tgt_col.id} is not referenced by {src_col.id}")

        for table in self.tables:
            for target_id in table.references:
                target = self.table(target_id)
                if target is None or table.id not in target.referenced_by:
                    problems.append(f"{table.id} references {target_id} without reciprocal entry")
            for source_id in table.referenced_by:
                source = self.table(source_id)
                if source is None or table.id not in source.references:
                    problems.append(f"{table.id} referenced by {source_id} without reciprocal entry")

        return problems

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for rel in data["relationships"]:
            rel["kind"] = rel["kind"].value
        return data
