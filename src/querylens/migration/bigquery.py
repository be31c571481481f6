"""Passes migrating BigQuery SQL to Snowflake and Databricks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from querylens.migration.models import MigrationIssue, MigrationSeverity, Pass, PassResult
from querylens.migration.passes import (
    Detection,
    LinePass,
    Rewrite,
    ci,
    conversions,
    find_top_level,
    line_depths,
    relocate_clause,
)
from querylens.sqltext import is_comment_line

WARNING = MigrationSeverity.WARNING

_CLAUSE_STOP = r"(?=\s*(?:\bCLUSTER(?:ED)?\s+BY\b|\bPARTITION(?:ED)?\s+BY\b|\bOPTIONS\b|\bAS\s+SELECT\b|[);]|$))"
_PARTITION_BY = ci(rf"\bPARTITION\s+BY\s+(?!\()((?:[^();]|\([^()]*\))+?){_CLAUSE_STOP}")
_CLUSTER_BY = ci(rf"\bCLUSTER\s+BY\s+(?!\()((?:[^();]|\([^()]*\))+?){_CLAUSE_STOP}")

_UNNEST = ci(r"\bUNNEST\(([^)]+)\)(\s+AS\s+(\w+))?")
_BACKTICK_TABLE = ci(r"`([^`.]+)\.([^`.]+)\.([^`]+)`")
_TWO_PART_SOURCE = ci(r"\b(?:FROM|JOIN)\s+`?\w+\.\w+`?(?![.\w])")


# ── Date functions ───────────────────────────────────────────────────────

_COMPLEX_DATE = ci(r"PARSE_DATE|PARSE_TIMESTAMP|FORMAT_TIMESTAMP")

date_functions_to_snowflake = LinePass(
    "bigquery_date_functions_to_snowflake",
    rewrites=conversions(
        [
            (r"\bDATE_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+DAY\)", r"DATEADD(DAY, \2, \1)", "DATE_ADD to DATEADD"),
            (r"\bDATE_SUB\(([^,]+),\s*INTERVAL\s+(\d+)\s+DAY\)", r"DATEADD(DAY, -\2, \1)", "DATE_SUB to DATEADD"),
            (r"\bTIMESTAMP_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+(\w+)\)", r"DATEADD(\3, \2, \1)", "TIMESTAMP_ADD to DATEADD"),
            (r"\bDATE_DIFF\(([^,]+),\s*([^,)]+),\s*(\w+)\)", r"DATEDIFF(\3, \2, \1)", "DATE_DIFF to DATEDIFF"),
            (r"\bFORMAT_DATE\(['\"]([^'\"]+)['\"]\s*,\s*([^)]+)\)", r"TO_CHAR(\2, '\1')", "FORMAT_DATE to TO_CHAR"),
            (r"\bEXTRACT\((\w+)\s+FROM\s+([^)]+)\)", r"EXTRACT(\1 FROM \2)", "EXTRACT format"),
        ],
        message="BigQuery date function needs conversion for Snowflake",
        deduction=1,
    ),
    detections=[
        Detection(
            _COMPLEX_DATE,
            "Complex BigQuery date function may need manual adjustment",
            "Functions like PARSE_DATE and FORMAT_TIMESTAMP have different syntax in Snowflake. "
            "Use TO_DATE, TO_TIMESTAMP, or TO_CHAR.",
            deduction=5,
        ),
    ],
)

date_functions_to_databricks = LinePass(
    "bigquery_date_functions_to_databricks",
    rewrites=conversions(
        [
            (r"\bDATE_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+DAY\)", r"DATE_ADD(\1, \2)", "DATE_ADD format"),
            (r"\bDATE_SUB\(([^,]+),\s*INTERVAL\s+(\d+)\s+DAY\)", r"DATE_SUB(\1, \2)", "DATE_SUB format"),
            (r"\bTIMESTAMP_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+HOUR\)", r"DATE_ADD(\1, INTERVAL \2 HOURS)", "TIMESTAMP_ADD to DATE_ADD"),
            (r"\bTIMESTAMP_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+MINUTE\)", r"DATE_ADD(\1, INTERVAL \2 MINUTES)", "TIMESTAMP_ADD to DATE_ADD"),
            (r"\bTIMESTAMP_ADD\(([^,]+),\s*INTERVAL\s+(\d+)\s+SECOND\)", r"DATE_ADD(\1, INTERVAL \2 SECONDS)", "TIMESTAMP_ADD to DATE_ADD"),
            (r"\bDATE_DIFF\(([^,]+),\s*([^,)]+),\s*DAY\)", r"DATEDIFF(DAY, \2, \1)", "DATE_DIFF to DATEDIFF"),
            (r"\bFORMAT_DATE\(['\"]([^'\"]+)['\"]\s*,\s*([^)]+)\)", r"DATE_FORMAT(\2, '\1')", "FORMAT_DATE to DATE_FORMAT"),
            (r"\bEXTRACT\((\w+)\s+FROM\s+([^)]+)\)", r"EXTRACT(\1 FROM \2)", "EXTRACT format"),
        ],
        message="BigQuery date function needs conversion for Databricks",
        deduction=1,
    ),
    detections=[
        Detection(
            _COMPLEX_DATE,
            "Complex BigQuery date function may need manual adjustment",
            "Functions like PARSE_DATE and FORMAT_TIMESTAMP have different syntax in Databricks. "
            "Use TO_DATE, TO_TIMESTAMP, or DATE_FORMAT.",
            deduction=5,
        ),
    ],
)


# ── Arrays ───────────────────────────────────────────────────────────────

_COMPLEX_ARRAY = ci(r"UNNEST|ARRAY_CONCAT|GENERATE_ARRAY")

arrays_to_snowflake = LinePass(
    "bigquery_arrays_to_snowflake",
    rewrites=conversions(
        [
            (r"\bARRAY_AGG\(([^)]+)\)", r"ARRAY_AGG(\1)", "ARRAY_AGG syntax"),
            (r"\bARRAY\[(.*?)\]", r"ARRAY_CONSTRUCT(\1)", "ARRAY[] to ARRAY_CONSTRUCT"),
            (r"\bARRAY_LENGTH\(([^)]+)\)", r"ARRAY_SIZE(\1)", "ARRAY_LENGTH to ARRAY_SIZE"),
        ],
        message="BigQuery array syntax needs conversion for Snowflake",
        deduction=2,
    ) + (
        Rewrite(
            ci(r"(\w+)\[(\d+)\]"),
            r"GET(\1, \2)",
            "Array indexing syntax differs in Snowflake",
            "Converted array[index] to GET(array, index)",
            deduction=2,
        ),
    ),
    detections=[
        Detection(
            _COMPLEX_ARRAY,
            "Complex BigQuery array operation may need manual adjustment",
            "Functions like UNNEST, ARRAY_CONCAT, or GENERATE_ARRAY have different equivalents in "
            "Snowflake. Consider using FLATTEN, ARRAY_CAT, or other Snowflake array functions.",
            deduction=5,
        ),
    ],
)

arrays_to_databricks = LinePass(
    "bigquery_arrays_to_databricks",
    rewrites=conversions(
        [
            (r"\bARRAY_AGG\(([^)]+)\)", r"COLLECT_LIST(\1)", "ARRAY_AGG to COLLECT_LIST"),
            (r"\bARRAY\[(.*?)\]", r"ARRAY(\1)", "ARRAY[] to ARRAY()"),
            (r"\bARRAY_LENGTH\(([^)]+)\)", r"SIZE(\1)", "ARRAY_LENGTH to SIZE"),
        ],
        message="BigQuery array syntax needs conversion for Databricks",
        deduction=2,
    ),
    detections=[
        Detection(
            _COMPLEX_ARRAY,
            "Complex BigQuery array operation may need manual adjustment",
            "Functions like UNNEST, ARRAY_CONCAT, or GENERATE_ARRAY have different equivalents in "
            "Databricks. Consider using EXPLODE, CONCAT, or other Databricks array functions.",
            deduction=5,
        ),
    ],
)


# ── Table names ──────────────────────────────────────────────────────────

table_names_to_snowflake = LinePass(
    "bigquery_table_names_to_snowflake",
    rewrites=[
        Rewrite(
            _BACKTICK_TABLE,
            r'"\1"."\2"."\3"',
            "BigQuery table reference format converted for Snowflake",
            "Converted backtick quotes to double quotes for database objects",
            deduction=1,
        ),
    ],
    detections=[
        Detection(
            _TWO_PART_SOURCE,
            "Possible incomplete table reference for Snowflake",
            "In Snowflake, fully qualified references use database.schema.table format. "
            "You may need to add the appropriate database name.",
            severity=MigrationSeverity.INFO,
        ),
    ],
)

table_names_to_databricks = LinePass(
    "bigquery_table_names_to_databricks",
    rewrites=[
        Rewrite(
            _BACKTICK_TABLE,
            r"\1.\2.\3",
            "BigQuery table reference format converted for Databricks",
            "Removed backtick quotes for database objects",
            deduction=1,
        ),
    ],
    detections=[
        Detection(
            _TWO_PART_SOURCE,
            "Table reference may need catalog prefix for Databricks",
            "In Databricks with Unity Catalog, fully qualified references use catalog.schema.table "
            "format. You may need to add the appropriate catalog name.",
            severity=MigrationSeverity.INFO,
        ),
    ],
)


# ── PARTITION BY / CLUSTER BY ────────────────────────────────────────────


@dataclass(frozen=True)
class ClauseMove:
    """A DDL clause relocated to the end of its CREATE TABLE statement."""

    pattern: re.Pattern[str]
    keyword: str
    moved: tuple[str, str]
    failed: tuple[str, str]


class DdlClausePass:
    """
    Relocate top-level PARTITION BY / CLUSTER BY clauses.

    Window-function ``PARTITION BY`` sits inside ``OVER (...)`` and is
    never touched. ``flags`` are reported (not moved) at top level.
    """

    def __init__(
        self,
        name: str,
        moves: Sequence[ClauseMove],
        flags: Sequence[Detection] = (),
    ) -> None:
        self.name = name
        self.moves = tuple(moves)
        self.flags = tuple(flags)

    def __call__(self, lines: tuple[str, ...], issues: list[MigrationIssue]) -> PassResult:
        out = list(lines)
        depths = line_depths(lines)
        deduction = 0

        for index in range(len(out)):
            if is_comment_line(out[index]):
                continue

            for flag in self.flags:
                if find_top_level(out[index], depths[index], flag.pattern):
                    issues.append(MigrationIssue(
                        line=index + 1,
                        message=flag.message,
                        suggestion=flag.suggestion,
                        severity=flag.severity,
                    ))
                    deduction += flag.deduction

            for move in self.moves:
                match = find_top_level(out[index], depths[index], move.pattern)
                if match is None:
                    continue
                clause = f"{move.keyword} ({match.group(1).strip()})"
                if relocate_clause(out, index, match, clause):
                    message, suggestion = move.moved
                    issues.append(MigrationIssue(line=index + 1, message=message, suggestion=suggestion))
                    deduction += 3
                else:
                    message, suggestion = move.failed
                    issues.append(MigrationIssue(
                        line=index + 1, message=message, suggestion=suggestion, severity=WARNING,
                    ))
                    deduction += 8

        return PassResult(lines=tuple(out), deduction=deduction)

    def __repr__(self) -> str:
        return f"DdlClausePass({self.name!r})"


partition_to_snowflake = DdlClausePass(
    "bigquery_partition_to_snowflake",
    moves=[
        ClauseMove(
            _CLUSTER_BY,
            "CLUSTER BY",
            moved=(
                "Converted BigQuery CLUSTER BY to Snowflake syntax",
                "Moved clustering definition to end of CREATE TABLE statement",
            ),
            failed=(
                "Could not fully convert BigQuery CLUSTER BY clause",
                'In Snowflake, add "CLUSTER BY (columns)" at the end of the CREATE TABLE statement',
            ),
        ),
    ],
    flags=[
        Detection(
            _PARTITION_BY,
            "BigQuery PARTITION BY clause needs different approach in Snowflake",
            "In Snowflake, partitioning is defined during table creation with clustering keys. "
            'Consider using "CREATE TABLE ... CLUSTER BY" instead.',
            deduction=10,
        ),
    ],
)

partition_to_databricks = DdlClausePass(
    "bigquery_partition_to_databricks",
    moves=[
        ClauseMove(
            _PARTITION_BY,
            "PARTITIONED BY",
            moved=(
                "Converted BigQuery PARTITION BY to Databricks syntax",
                "Moved partitioning definition to end of CREATE TABLE statement",
            ),
            failed=(
                "Could not fully convert BigQuery PARTITION BY clause",
                'In Databricks, add "PARTITIONED BY (columns)" at the end of the CREATE TABLE statement',
            ),
        ),
        ClauseMove(
            _CLUSTER_BY,
            "CLUSTERED BY",
            moved=(
                "Converted BigQuery CLUSTER BY to Databricks syntax",
                "Moved clustering definition to end of CREATE TABLE statement",
            ),
            failed=(
                "Could not fully convert BigQuery CLUSTER BY clause",
                'In Databricks, add "CLUSTERED BY (columns)" at the end of the CREATE TABLE statement',
            ),
        ),
    ],
)


# ── INTERVAL ─────────────────────────────────────────────────────────────

_INTERVAL = ci(r"\bINTERVAL\s+(\d+)\s+(\w+)")

interval_to_snowflake = LinePass(
    "bigquery_interval_to_snowflake",
    detections=[
        Detection(
            _INTERVAL,
            "BigQuery INTERVAL syntax needs conversion for Snowflake",
            "Use Snowflake's DATEADD function instead of INTERVAL syntax",
            deduction=8,
        ),
    ],
)

interval_to_databricks = LinePass(
    "bigquery_interval_to_databricks",
    rewrites=[
        Rewrite(
            _INTERVAL,
            r"INTERVAL \1 \2",
            "BigQuery INTERVAL syntax adjusted for Databricks",
            "Databricks supports INTERVAL syntax with a similar format",
            deduction=1,
        ),
    ],
)


# ── UNNEST ───────────────────────────────────────────────────────────────


def _flatten(match: re.Match[str]) -> str:
    alias = match.group(3)
    return f"LATERAL FLATTEN(input => {match.group(1)})" + (f" AS {alias}" if alias else "")


def _explode(match: re.Match[str]) -> str:
    alias = match.group(3)
    return f"LATERAL VIEW EXPLODE({match.group(1)}) {alias or 'exploded_table'} AS {alias or 'item'}"


unnest_to_snowflake = LinePass(
    "bigquery_unnest_to_snowflake",
    rewrites=[
        Rewrite(
            _UNNEST,
            _flatten,
            "BigQuery UNNEST converted to Snowflake FLATTEN",
            "Check the conversion as complex UNNEST scenarios may need manual adjustment",
            deduction=7,
            severity=WARNING,
        ),
    ],
)

unnest_to_databricks = LinePass(
    "bigquery_unnest_to_databricks",
    rewrites=[
        Rewrite(
            _UNNEST,
            _explode,
            "BigQuery UNNEST converted to Databricks LATERAL VIEW EXPLODE",
            "Check the conversion as complex UNNEST scenarios may need manual adjustment",
            deduction=7,
            severity=WARNING,
        ),
    ],
)


TO_SNOWFLAKE: tuple[Pass, ...] = (
    date_functions_to_snowflake,
    arrays_to_snowflake,
    table_names_to_snowflake,
    partition_to_snowflake,
    interval_to_snowflake,
    unnest_to_snowflake,
)

TO_DATABRICKS: tuple[Pass, ...] = (
    date_functions_to_databricks,
    arrays_to_databricks,
    table_names_to_databricks,
    partition_to_databricks,
    interval_to_databricks,
    unnest_to_databricks,
)
