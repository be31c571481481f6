"""Table and column lineage extracted from query text."""

from querylens.lineage.extractor import SchemaExtractor, extract_schema
from querylens.lineage.models import (
    ColumnNode,
    ColumnReference,
    Relationship,
    RelationshipKind,
    SchemaGraph,
    TableNode,
)

__all__ = [
    "SchemaExtractor",
    "extract_schema",
    "ColumnNode",
    "ColumnReference",
    "Relationship",
    "RelationshipKind",
    "SchemaGraph",
    "TableNode",
]
