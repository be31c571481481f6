"""
Naming-convention lineage.

Warehouse staging code often has no explicit join between related tables,
only a naming scheme: ``upd_orders`` feeds ``orders_group``, a staging
table ``sorders`` feeds ``upd_orders``. These heuristics add Reference
relationships for such pairs, and for CTEs whose definition reads
directly from another known table.

Every heuristic adds an edge only when no relationship from source to
target exists yet.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping

from querylens.lineage.models import Relationship, RelationshipKind, SchemaGraph
from querylens.sqltext import QUALIFIED_NAME, identifier_parts

logger = logging.getLogger(__name__)

UPDATE_PREFIX = "upd_"
GROUP_SUFFIX = "_group"
STAGING_PREFIX = "s"

# Known source/target pairs from the warehouse loyalty feed
SPECIAL_PAIRS: tuple[tuple[str, str], ...] = (
    ("upd_insert", "insert_group"),
    ("upd_update", "update_group"),
    ("scustomer_loyalty", "upd_insert"),
    ("scustomer_loyalty1", "upd_update"),
)

_SELECT_FROM = re.compile(rf"^\s*select\b(.*?)\bfrom\s+({QUALIFIED_NAME})", re.DOTALL)


def _link(graph: SchemaGraph, source: str, target: str) -> bool:
    if source == target or graph.has_edge(source, target):
        return False
    return graph.add_relationship(
        Relationship(source=source, target=target, kind=RelationshipKind.REFERENCE)
    )


def _special_pairs(graph: SchemaGraph) -> int:
    added = 0
    ids = set(graph.table_ids)
    for source, target in SPECIAL_PAIRS:
        if source not in ids or target not in ids:
            continue
        if graph.relationships_between(source, target):
            continue
        added += _link(graph, source, target)
    return added


def _update_to_group(graph: SchemaGraph) -> int:
    added = 0
    ids = set(graph.table_ids)
    for table_id in graph.table_ids:
        if not table_id.startswith(UPDATE_PREFIX):
            continue
        target = table_id[len(UPDATE_PREFIX):] + GROUP_SUFFIX
        if target in ids:
            added += _link(graph, table_id, target)
    return added


def _staging_to_update(graph: SchemaGraph) -> int:
    added = 0
    updates = [t for t in graph.table_ids if t.startswith(UPDATE_PREFIX)]
    for table_id in graph.table_ids:
        if not table_id.startswith(STAGING_PREFIX) or len(table_id) < 2:
            continue
        rest = table_id[len(STAGING_PREFIX):]
        for update_id in updates:
            suffix = update_id[len(UPDATE_PREFIX):]
            if suffix and suffix in rest:
                added += _link(graph, table_id, update_id)
    return added


def _cte_reads(graph: SchemaGraph, cte_bodies: Mapping[str, str]) -> int:
    added = 0
    for name, body in cte_bodies.items():
        match = _SELECT_FROM.search(body)
        if match is None:
            continue

        target = ".".join(identifier_parts(match.group(2)))
        if graph.table(target) is not None:
            added += _link(graph, name, target)

        select_list = match.group(1)
        for other in graph.table_ids:
            if other == name:
                continue
            if re.search(rf"(?<![\w.]){re.escape(other)}\.", select_list):
                added += _link(graph, name, other)
    return added


def apply_naming_heuristics(graph: SchemaGraph, cte_bodies: Mapping[str, str]) -> int:
    """
    Add convention-based Reference relationships to ``graph``.

    Args:
        graph: Graph to extend in place
        cte_bodies: Lowercased CTE definitions keyed by CTE id

    Returns:
        Number of relationships added.
    """
    added = (
        _special_pairs(graph)
        + _update_to_group(graph)
        + _staging_to_update(graph)
        + _cte_reads(graph, cte_bodies)
    )
    if added:
        logger.debug("Naming heuristics added %d relationships", added)
    return added
