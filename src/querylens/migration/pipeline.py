"""
Migration pipeline.

Each ordered (source, target) pair has a fixed tuple of passes. They run
in order, each receiving the previous pass's lines, and the common pass
runs last. The compatibility score starts at 100, accumulates every
deduction, and is clamped to [0, 100].

A pass that raises is logged; its lines and issues are discarded and the
pipeline continues from the previous lines. Rewrites made by earlier
passes are never rolled back.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from querylens.exceptions import MigrationError
from querylens.migration import bigquery, databricks, snowflake
from querylens.migration.common import CommonPass
from querylens.migration.models import MigrationIssue, MigrationResult, Pass
from querylens.platforms import Platform

logger = logging.getLogger(__name__)

PASSES: Mapping[tuple[Platform, Platform], tuple[Pass, ...]] = MappingProxyType({
    (Platform.BIGQUERY, Platform.SNOWFLAKE): bigquery.TO_SNOWFLAKE,
    (Platform.BIGQUERY, Platform.DATABRICKS): bigquery.TO_DATABRICKS,
    (Platform.SNOWFLAKE, Platform.BIGQUERY): snowflake.TO_BIGQUERY,
    (Platform.SNOWFLAKE, Platform.DATABRICKS): snowflake.TO_DATABRICKS,
    (Platform.DATABRICKS, Platform.BIGQUERY): databricks.TO_BIGQUERY,
    (Platform.DATABRICKS, Platform.SNOWFLAKE): databricks.TO_SNOWFLAKE,
})


def pass_name(step: Pass) -> str:
    return getattr(step, "name", None) or getattr(step, "__name__", repr(step))


class Migrator:
    """
    Runs the pass pipeline for a platform pair.

    Args:
        passes: Pass table keyed by (source, target); defaults to PASSES
    """

    def __init__(self, passes: Mapping[tuple[Platform, Platform], tuple[Pass, ...]] | None = None) -> None:
        self.passes = passes if passes is not None else PASSES

    def pipeline(self, source: Platform, target: Platform) -> tuple[Pass, ...]:
        """Directional passes for the pair followed by the common pass."""
        return self.passes.get((source, target), ()) + (CommonPass(source, target),)

    def migrate(
        self,
        sql: str,
        source: Platform | str,
        target: Platform | str,
    ) -> MigrationResult:
        source = Platform.from_string(source)
        target = Platform.from_string(target)

        if source == target:
            return MigrationResult.identity(sql, source)

        lines = tuple(sql.split("\n"))
        issues: list[MigrationIssue] = []
        score = 100

        for step in self.pipeline(source, target):
            collected: list[MigrationIssue] = []
            try:
                result = step(lines, collected)
            except Exception as e:
                error = MigrationError(
                    f"Migration pass '{pass_name(step)}' failed: {e}",
                    pass_name=pass_name(step),
                    source_platform=source.value,
                    target_platform=target.value,
                )
                logger.warning("%s", error.message)
                continue

            lines = result.lines
            issues.extend(collected)
            score -= max(0, result.deduction)

        logger.debug(
            "Migrated %s -> %s with %d issues", source.value, target.value, len(issues)
        )

        return MigrationResult(
            original_query=sql,
            converted_query="\n".join(lines),
            source_platform=source,
            target_platform=target,
            issues=tuple(issues),
            compatibility_score=max(0, min(100, score)),
        )


def migrate(sql: str, source: Platform | str, target: Platform | str) -> MigrationResult:
    """Migrate ``sql`` with the default pass table. See :class:`Migrator`."""
    return Migrator().migrate(sql, source, target)
