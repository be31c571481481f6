"""Passes migrating Databricks SQL to BigQuery and Snowflake."""

from __future__ import annotations

import re

from querylens.migration.models import MigrationSeverity, Pass
from querylens.migration.passes import Detection, LinePass, Rewrite, ci, conversions

_COMPLEX_DATE = ci(r"TO_UTC_TIMESTAMP|FROM_UTC_TIMESTAMP|NEXT_DAY|ADD_MONTHS")
_DELTA = ci(r"\bDELTA\b")
_VACUUM = ci(r"\bVACUUM\b")
_OPTIMIZE = ci(r"\bOPTIMIZE\b")
_THREE_PART = re.compile(r"(?<![`\"\w.])(\w+)\.(\w+)\.(\w+)(?![`\"\w.])")
_ZORDER = ci(r"\bZORDER\s+BY\s+\(([^)]+)\)")
_CATALOG_FUNCTION = ci(r"\bCURRENT_CATALOG\(\)|\bCURRENT_DATABASE\(\)")


# ── Date functions ───────────────────────────────────────────────────────

date_functions_to_bigquery = LinePass(
    "databricks_date_functions_to_bigquery",
    rewrites=conversions(
        [
            (r"\bDATE_ADD\(([^,]+),\s*(\d+)\)", r"DATE_ADD(\1, INTERVAL \2 DAY)", "DATE_ADD to BigQuery DATE_ADD"),
            (r"\bDATE_SUB\(([^,]+),\s*(\d+)\)", r"DATE_SUB(\1, INTERVAL \2 DAY)", "DATE_SUB to BigQuery DATE_SUB"),
            (r"\bDATE_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+HOURS\)", r"TIMESTAMP_ADD(\1, INTERVAL \2 HOUR)", "DATE_ADD with INTERVAL to TIMESTAMP_ADD"),
            (r"\bDATE_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+MINUTES\)", r"TIMESTAMP_ADD(\1, INTERVAL \2 MINUTE)", "DATE_ADD with INTERVAL to TIMESTAMP_ADD"),
            (r"\bDATE_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+SECONDS\)", r"TIMESTAMP_ADD(\1, INTERVAL \2 SECOND)", "DATE_ADD with INTERVAL to TIMESTAMP_ADD"),
            (r"\bDATEDIFF\(([^,]+),\s*([^)]+)\)", r"DATE_DIFF(\1, \2, DAY)", "DATEDIFF to DATE_DIFF"),
            (r"\bDATE_FORMAT\(([^,]+),\s*'([^']+)'\)", r"FORMAT_DATE('\2', \1)", "DATE_FORMAT to FORMAT_DATE"),
        ],
        message="Databricks date function needs conversion for BigQuery",
        deduction=1,
    ),
    detections=[
        Detection(
            _COMPLEX_DATE,
            "Complex Databricks date function may need manual adjustment",
            "Functions like TO_UTC_TIMESTAMP, FROM_UTC_TIMESTAMP, NEXT_DAY, or ADD_MONTHS have "
            "different equivalents in BigQuery.",
            deduction=5,
        ),
    ],
)

date_functions_to_snowflake = LinePass(
    "databricks_date_functions_to_snowflake",
    rewrites=conversions(
        [
            (r"\bDATE_ADD\(([^,]+),\s*(\d+)\)", r"DATEADD(DAY, \2, \1)", "DATE_ADD to DATEADD"),
            (r"\bDATE_SUB\(([^,]+),\s*(\d+)\)", r"DATEADD(DAY, -\2, \1)", "DATE_SUB to DATEADD with negative"),
            (r"\bDATE_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+HOURS\)", r"DATEADD(HOUR, \2, \1)", "DATE_ADD with INTERVAL to DATEADD"),
            (r"\bDATE_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+MINUTES\)", r"DATEADD(MINUTE, \2, \1)", "DATE_ADD with INTERVAL to DATEADD"),
            (r"\bDATE_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+SECONDS\)", r"DATEADD(SECOND, \2, \1)", "DATE_ADD with INTERVAL to DATEADD"),
            (r"\bDATEDIFF\(([^,]+),\s*([^)]+)\)", r"DATEDIFF(DAY, \2, \1)", "DATEDIFF to Snowflake DATEDIFF"),
            (r"\bDATE_FORMAT\(([^,]+),\s*'([^']+)'\)", r"TO_CHAR(\1, '\2')", "DATE_FORMAT to TO_CHAR"),
        ],
        message="Databricks date function needs conversion for Snowflake",
        deduction=1,
    ),
    detections=[
        Detection(
            _COMPLEX_DATE,
            "Complex Databricks date function may need manual adjustment",
            "Functions like TO_UTC_TIMESTAMP, FROM_UTC_TIMESTAMP, NEXT_DAY, or ADD_MONTHS have "
            "different equivalents in Snowflake.",
            deduction=5,
        ),
    ],
)


# ── Delta Lake ───────────────────────────────────────────────────────────


def _delta_pass(name: str, target: str, vacuum_suggestion: str) -> LinePass:
    return LinePass(
        name,
        detections=[
            Detection(
                _DELTA,
                "Databricks Delta Lake syntax detected",
                f"{target} doesn't support Delta Lake. Consider using {target}'s native table format.",
                deduction=8,
            ),
            Detection(
                _VACUUM,
                f"Databricks VACUUM command not supported in {target}",
                vacuum_suggestion,
                deduction=5,
            ),
            Detection(
                _OPTIMIZE,
                f"Databricks OPTIMIZE command not supported in {target}",
                f"{target} handles file compaction automatically. Remove OPTIMIZE commands.",
                deduction=5,
            ),
        ],
    )


delta_to_bigquery = _delta_pass(
    "databricks_delta_to_bigquery",
    "BigQuery",
    "BigQuery handles storage optimization automatically. Remove VACUUM commands.",
)

delta_to_snowflake = _delta_pass(
    "databricks_delta_to_snowflake",
    "Snowflake",
    "Snowflake handles storage optimization differently. Consider using TIME TRAVEL or "
    "zero-copy cloning instead.",
)


# ── Table names ──────────────────────────────────────────────────────────

table_names_to_bigquery = LinePass(
    "databricks_table_names_to_bigquery",
    rewrites=[
        Rewrite(
            _THREE_PART,
            r"`\1.\2.\3`",
            "Databricks table reference format converted for BigQuery",
            "Added backtick quotes around fully qualified table names",
            deduction=1,
        ),
    ],
)

table_names_to_snowflake = LinePass(
    "databricks_table_names_to_snowflake",
    rewrites=[
        Rewrite(
            _THREE_PART,
            r'"\1"."\2"."\3"',
            "Databricks table reference format converted for Snowflake",
            "Added double quotes around fully qualified table names",
            deduction=1,
        ),
    ],
)


# ── ZORDER BY ────────────────────────────────────────────────────────────


def _zorder_pass(name: str, target: str) -> LinePass:
    return LinePass(
        name,
        rewrites=[
            Rewrite(
                _ZORDER,
                r"CLUSTER BY (\1)",
                f"Databricks ZORDER BY converted to {target} CLUSTER BY",
                f"ZORDER BY in Databricks is similar to CLUSTER BY in {target}, but they have some "
                "differences in behavior",
                deduction=5,
                severity=MigrationSeverity.WARNING,
            ),
        ],
    )


zorder_to_bigquery = _zorder_pass("databricks_zorder_to_bigquery", "BigQuery")
zorder_to_snowflake = _zorder_pass("databricks_zorder_to_snowflake", "Snowflake")


# ── Catalog functions ────────────────────────────────────────────────────

catalog_to_bigquery = LinePass(
    "databricks_catalog_to_bigquery",
    detections=[
        Detection(
            _CATALOG_FUNCTION,
            "Databricks catalog function not directly supported in BigQuery",
            "BigQuery doesn't have direct equivalents for CURRENT_CATALOG() or CURRENT_DATABASE(). "
            "Consider hardcoding the project and dataset names.",
            deduction=5,
        ),
    ],
)

# Ordered so a rewritten name is never rewritten again on the same line
catalog_to_snowflake = LinePass(
    "databricks_catalog_to_snowflake",
    rewrites=conversions(
        [
            (r"\bCURRENT_SCHEMA\(\)", "CURRENT_SCHEMA()", "CURRENT_SCHEMA (no change)"),
            (r"\bCURRENT_DATABASE\(\)", "CURRENT_SCHEMA()", "CURRENT_DATABASE to CURRENT_SCHEMA"),
            (r"\bCURRENT_CATALOG\(\)", "CURRENT_DATABASE()", "CURRENT_CATALOG to CURRENT_DATABASE"),
        ],
        message="Databricks catalog function converted for Snowflake",
        deduction=1,
    ),
)


TO_BIGQUERY: tuple[Pass, ...] = (
    date_functions_to_bigquery,
    delta_to_bigquery,
    table_names_to_bigquery,
    zorder_to_bigquery,
    catalog_to_bigquery,
)

TO_SNOWFLAKE: tuple[Pass, ...] = (
    date_functions_to_snowflake,
    delta_to_snowflake,
    table_names_to_snowflake,
    zorder_to_snowflake,
    catalog_to_snowflake,
)
