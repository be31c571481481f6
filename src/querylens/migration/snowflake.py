"""Passes migrating Snowflake SQL to BigQuery and Databricks."""

from __future__ import annotations

import re

from querylens.migration.models import MigrationSeverity, Pass
from querylens.migration.passes import Detection, LinePass, Rewrite, ci, conversions

WARNING = MigrationSeverity.WARNING

_VARIANT = ci(r"\bVARIANT\b")
# col:attr outside literals, but not col::type casts
_COLON_ACCESS = re.compile(
    r"(?<![\w:])([A-Za-z_]\w*):(?!:)([A-Za-z_]\w*)(?=(?:[^']*'[^']*')*[^']*$)"
)
_GET_ATTR = ci(r"\bGET\(([^,]+),\s*'([^']+)'\)")
_COMPLEX_JSON = ci(r"PARSE_JSON|TRY_PARSE_JSON|FLATTEN|LATERAL")
_QUOTED_TABLE = re.compile(r'"([^"]+)"\."([^"]+)"\."([^"]+)"')
_THREE_PART = re.compile(r"(?<![`\"\w.])(\w+)\.(\w+)\.(\w+)(?![`\"\w.])")
_FLATTEN = ci(r"\bLATERAL\s+FLATTEN\s*\(\s*input\s*=>\s*([^)]+)\)(\s+AS\s+(\w+))?")
_SEMI_STRUCTURED = ci(r"OBJECT_CONSTRUCT|ARRAY_CONSTRUCT|ARRAY_SIZE|ARRAY_CONTAINS")
_MERGE = ci(r"^\s*MERGE\s+INTO\b")
_COMPLEX_DATE = ci(r"TO_DATE|TO_TIMESTAMP|CONVERT_TIMEZONE")


# ── Date functions ───────────────────────────────────────────────────────

date_functions_to_bigquery = LinePass(
    "snowflake_date_functions_to_bigquery",
    rewrites=conversions(
        [
            (r"\bDATEADD\(DAY,\s*(\d+),\s*([^)]+)\)", r"DATE_ADD(\2, INTERVAL \1 DAY)", "DATEADD to DATE_ADD"),
            (r"\bDATEADD\(DAY,\s*-(\d+),\s*([^)]+)\)", r"DATE_SUB(\2, INTERVAL \1 DAY)", "DATEADD with negative to DATE_SUB"),
            (r"\bDATEADD\(HOUR,\s*(\d+),\s*([^)]+)\)", r"TIMESTAMP_ADD(\2, INTERVAL \1 HOUR)", "DATEADD to TIMESTAMP_ADD"),
            (r"\bDATEADD\(MINUTE,\s*(\d+),\s*([^)]+)\)", r"TIMESTAMP_ADD(\2, INTERVAL \1 MINUTE)", "DATEADD to TIMESTAMP_ADD"),
            (r"\bDATEADD\(SECOND,\s*(\d+),\s*([^)]+)\)", r"TIMESTAMP_ADD(\2, INTERVAL \1 SECOND)", "DATEADD to TIMESTAMP_ADD"),
            (r"\bDATEDIFF\(DAY,\s*([^,]+),\s*([^)]+)\)", r"DATE_DIFF(\2, \1, DAY)", "DATEDIFF to DATE_DIFF"),
            (r"\bTO_CHAR\(([^,]+),\s*'([^']+)'\)", r"FORMAT_DATE('\2', \1)", "TO_CHAR to FORMAT_DATE"),
        ],
        message="Snowflake date function needs conversion for BigQuery",
        deduction=1,
    ),
    detections=[
        Detection(
            _COMPLEX_DATE,
            "Complex Snowflake date function may need manual adjustment",
            "Functions like TO_DATE, TO_TIMESTAMP, and CONVERT_TIMEZONE have different syntax in "
            "BigQuery. Use PARSE_DATE, PARSE_TIMESTAMP, or other BigQuery functions.",
            deduction=5,
        ),
    ],
)

date_functions_to_databricks = LinePass(
    "snowflake_date_functions_to_databricks",
    rewrites=conversions(
        [
            (r"\bDATEADD\(DAY,\s*(\d+),\s*([^)]+)\)", r"DATE_ADD(\2, \1)", "DATEADD to DATE_ADD"),
            (r"\bDATEADD\(DAY,\s*-(\d+),\s*([^)]+)\)", r"DATE_SUB(\2, \1)", "DATEADD with negative to DATE_SUB"),
            (r"\bDATEADD\(HOUR,\s*(\d+),\s*([^)]+)\)", r"DATE_ADD(\2, INTERVAL \1 HOURS)", "DATEADD to DATE_ADD with INTERVAL"),
            (r"\bDATEADD\(MINUTE,\s*(\d+),\s*([^)]+)\)", r"DATE_ADD(\2, INTERVAL \1 MINUTES)", "DATEADD to DATE_ADD with INTERVAL"),
            (r"\bDATEADD\(SECOND,\s*(\d+),\s*([^)]+)\)", r"DATE_ADD(\2, INTERVAL \1 SECONDS)", "DATEADD to DATE_ADD with INTERVAL"),
            (r"\bDATEDIFF\(DAY,\s*([^,]+),\s*([^)]+)\)", r"DATEDIFF(\2, \1)", "DATEDIFF parameter order"),
            (r"\bTO_CHAR\(([^,]+),\s*'([^']+)'\)", r"DATE_FORMAT(\1, '\2')", "TO_CHAR to DATE_FORMAT"),
        ],
        message="Snowflake date function needs conversion for Databricks",
        deduction=1,
    ),
    detections=[
        Detection(
            _COMPLEX_DATE,
            "Complex Snowflake date function may need manual adjustment",
            "Functions like TO_DATE, TO_TIMESTAMP, and CONVERT_TIMEZONE have different syntax in "
            "Databricks. Use TO_DATE, TO_TIMESTAMP, or other Databricks functions.",
            deduction=5,
        ),
    ],
)


# ── VARIANT and JSON access ──────────────────────────────────────────────

variant_to_bigquery = LinePass(
    "snowflake_variant_to_bigquery",
    rewrites=[
        Rewrite(
            _VARIANT,
            "JSON",
            "Snowflake VARIANT type converted to BigQuery JSON",
            "BigQuery uses JSON type instead of VARIANT",
            deduction=2,
        ),
        Rewrite(
            _COLON_ACCESS,
            r"JSON_EXTRACT(\1, '$.\2')",
            "Snowflake JSON access syntax converted for BigQuery",
            "Converted column:attribute to JSON_EXTRACT(column, '$.attribute')",
            deduction=3,
        ),
        Rewrite(
            _GET_ATTR,
            r"JSON_EXTRACT(\1, '$.\2')",
            "Snowflake GET function converted to BigQuery JSON_EXTRACT",
            "Converted GET(column, 'attribute') to JSON_EXTRACT(column, '$.attribute')",
            deduction=3,
        ),
    ],
    detections=[
        Detection(
            _COMPLEX_JSON,
            "Complex Snowflake JSON operation may need manual adjustment",
            "Functions like PARSE_JSON, TRY_PARSE_JSON, FLATTEN, or LATERAL have different "
            "equivalents in BigQuery. Consider using JSON_EXTRACT, UNNEST, or other BigQuery functions.",
            deduction=5,
        ),
    ],
)

variant_to_databricks = LinePass(
    "snowflake_variant_to_databricks",
    rewrites=[
        Rewrite(
            _VARIANT,
            "STRING",
            "Snowflake VARIANT type converted to Databricks STRING",
            "Databricks typically uses STRING for JSON data, but you may need to parse it with from_json()",
            deduction=5,
            severity=WARNING,
        ),
        Rewrite(
            _COLON_ACCESS,
            r"get_json_object(\1, '$.\2')",
            "Snowflake JSON access syntax converted for Databricks",
            "Converted column:attribute to get_json_object(column, '$.attribute')",
            deduction=3,
        ),
        Rewrite(
            _GET_ATTR,
            r"get_json_object(\1, '$.\2')",
            "Snowflake GET function converted to Databricks get_json_object",
            "Converted GET(column, 'attribute') to get_json_object(column, '$.attribute')",
            deduction=3,
        ),
    ],
    detections=[
        Detection(
            _COMPLEX_JSON,
            "Complex Snowflake JSON operation may need manual adjustment",
            "Functions like PARSE_JSON, TRY_PARSE_JSON, FLATTEN, or LATERAL have different "
            "equivalents in Databricks. Consider using from_json, to_json, explode, or other "
            "Databricks functions.",
            deduction=5,
        ),
    ],
)


# ── Table names ──────────────────────────────────────────────────────────

table_names_to_bigquery = LinePass(
    "snowflake_table_names_to_bigquery",
    rewrites=[
        Rewrite(
            _QUOTED_TABLE,
            r"`\1.\2.\3`",
            "Snowflake table reference format converted for BigQuery",
            "Converted double quotes to backtick quotes for database objects",
            deduction=1,
        ),
        Rewrite(
            _THREE_PART,
            r"`\1.\2.\3`",
            "Snowflake table reference format converted for BigQuery",
            "Added backtick quotes around fully qualified table names",
            deduction=1,
        ),
    ],
)

table_names_to_databricks = LinePass(
    "snowflake_table_names_to_databricks",
    rewrites=[
        Rewrite(
            _QUOTED_TABLE,
            r"\1.\2.\3",
            "Snowflake table reference format converted for Databricks",
            "Removed double quotes from database objects",
            deduction=1,
        ),
    ],
    detections=[
        Detection(
            _THREE_PART,
            "Table reference format may need adjustment for Databricks",
            "In Databricks with Unity Catalog, references use catalog.schema.table format. "
            "Ensure the catalog name is appropriate.",
            severity=MigrationSeverity.INFO,
        ),
    ],
)


# ── Semi-structured data ─────────────────────────────────────────────────


def _unnest(match: re.Match[str]) -> str:
    alias = match.group(3)
    return f"UNNEST({match.group(1)})" + (f" AS {alias}" if alias else "")


def _explode(match: re.Match[str]) -> str:
    alias = match.group(3)
    return f"LATERAL VIEW EXPLODE({match.group(1)}) {alias or 'exploded_table'} AS {alias or 'item'}"


semi_structured_to_bigquery = LinePass(
    "snowflake_semi_structured_to_bigquery",
    rewrites=[
        Rewrite(
            _FLATTEN,
            _unnest,
            "Snowflake FLATTEN converted to BigQuery UNNEST",
            "Check the conversion as complex FLATTEN scenarios may need manual adjustment",
            deduction=7,
            severity=WARNING,
        ),
    ],
    detections=[
        Detection(
            _SEMI_STRUCTURED,
            "Snowflake semi-structured data function may need manual adjustment",
            "Functions like OBJECT_CONSTRUCT, ARRAY_CONSTRUCT, ARRAY_SIZE, or ARRAY_CONTAINS have "
            "different equivalents in BigQuery. Consider using STRUCT, ARRAY, ARRAY_LENGTH, or other "
            "BigQuery functions.",
            deduction=5,
        ),
    ],
)

semi_structured_to_databricks = LinePass(
    "snowflake_semi_structured_to_databricks",
    rewrites=[
        Rewrite(
            _FLATTEN,
            _explode,
            "Snowflake FLATTEN converted to Databricks LATERAL VIEW EXPLODE",
            "Check the conversion as complex FLATTEN scenarios may need manual adjustment",
            deduction=7,
            severity=WARNING,
        ),
    ],
    detections=[
        Detection(
            _SEMI_STRUCTURED,
            "Snowflake semi-structured data function may need manual adjustment",
            "Functions like OBJECT_CONSTRUCT, ARRAY_CONSTRUCT, ARRAY_SIZE, or ARRAY_CONTAINS have "
            "different equivalents in Databricks. Consider using struct, array, size, array_contains, "
            "or other Databricks functions.",
            deduction=5,
        ),
    ],
)


# ── MERGE ────────────────────────────────────────────────────────────────

merge_to_bigquery = LinePass(
    "snowflake_merge_to_bigquery",
    detections=[
        Detection(
            _MERGE,
            "Snowflake MERGE statement may need adjustment for BigQuery",
            "BigQuery supports MERGE but with some syntax differences. Review the MERGE statement carefully.",
            deduction=5,
        ),
    ],
)

merge_to_databricks = LinePass(
    "snowflake_merge_to_databricks",
    detections=[
        Detection(
            _MERGE,
            "Snowflake MERGE statement may need adjustment for Databricks",
            "Databricks supports MERGE INTO but with some syntax differences. Review the MERGE "
            "statement carefully.",
            deduction=5,
        ),
    ],
)


TO_BIGQUERY: tuple[Pass, ...] = (
    date_functions_to_bigquery,
    variant_to_bigquery,
    table_names_to_bigquery,
    semi_structured_to_bigquery,
    merge_to_bigquery,
)

TO_DATABRICKS: tuple[Pass, ...] = (
    date_functions_to_databricks,
    variant_to_databricks,
    table_names_to_databricks,
    semi_structured_to_databricks,
    merge_to_databricks,
)
