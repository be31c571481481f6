"""Cross-dialect migration between BigQuery, Snowflake and Databricks."""

from querylens.migration.common import CommonPass
from querylens.migration.models import (
    MigrationIssue,
    MigrationResult,
    MigrationSeverity,
    PassResult,
)
from querylens.migration.pipeline import PASSES, Migrator, migrate

__all__ = [
    "CommonPass",
    "MigrationIssue",
    "MigrationResult",
    "MigrationSeverity",
    "PassResult",
    "PASSES",
    "Migrator",
    "migrate",
]
