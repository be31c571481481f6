"""
Supported warehouse dialects and their static lookup tables.

Every per-platform table in this module is built once at import time and
wrapped in a read-only mapping. Engines look values up by Platform and
never modify them.

Usage:
    from querylens.platforms import Platform, NON_STANDARD_FEATURES

    platform = Platform.from_string("snowflake")
    for pattern in NON_STANDARD_FEATURES[platform]:
        ...
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Platform(str, Enum):
    """Closed set of SQL dialects understood by every engine."""

    BIGQUERY = "bigquery"
    SNOWFLAKE = "snowflake"
    DATABRICKS = "databricks"

    @classmethod
    def from_string(cls, value: "str | Platform") -> "Platform":
        """
        Parse a platform from its value, name, or A/B/C alias.

        Raises:
            ValueError: If the value names no known platform.
        """
        if isinstance(value, Platform):
            return value
        key = value.strip().lower()
        if key in _ALIASES:
            return _ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown platform '{value}'. Expected one of: {valid}") from None

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]


_ALIASES: Mapping[str, Platform] = MappingProxyType({
    "a": Platform.BIGQUERY,
    "b": Platform.SNOWFLAKE,
    "c": Platform.DATABRICKS,
    "bq": Platform.BIGQUERY,
    "sf": Platform.SNOWFLAKE,
    "dbx": Platform.DATABRICKS,
})

DISPLAY_NAMES: Mapping[Platform, str] = MappingProxyType({
    Platform.BIGQUERY: "BigQuery",
    Platform.SNOWFLAKE: "Snowflake",
    Platform.DATABRICKS: "Databricks",
})

@dataclass(frozen=True)
class TypeMapping:
    """
    A data type that differs between two dialects.

    When ``replacement`` is None the type has no direct equivalent on the
    target and can only be flagged.
    """

    pattern: re.Pattern[str]
    label: str
    source: Platform
    targets: frozenset[Platform]
    replacement: str | None = None


# Functions or features that only exist in the source dialect. Flagged by
# the common migration pass when migrating away from that dialect.
NON_STANDARD_FEATURES: Mapping[Platform, tuple[re.Pattern[str], ...]] = MappingProxyType({
    Platform.BIGQUERY: (
        re.compile(r"\bREGEXP_CONTAINS\b", re.IGNORECASE),
        re.compile(r"\bARRAY_AGG\b", re.IGNORECASE),
        re.compile(r"\bGENERATE_UUID\b", re.IGNORECASE),
    ),
    Platform.SNOWFLAKE: (
        re.compile(r"\bLATERAL\s+FLATTEN\b", re.IGNORECASE),
        re.compile(r"\bIFF\b", re.IGNORECASE),
        re.compile(r"\bTRY_PARSE_JSON\b", re.IGNORECASE),
    ),
    Platform.DATABRICKS: (
        re.compile(r"\bZORDER\s+BY\b", re.IGNORECASE),
        re.compile(r"\bOPTIMIZE\b", re.IGNORECASE),
        re.compile(r"\bDELTA\b", re.IGNORECASE),
    ),
})

TYPE_MAPPINGS: tuple[TypeMapping, ...] = (
    TypeMapping(
        pattern=re.compile(r"\bBYTES\b", re.IGNORECASE),
        label="BYTES",
        source=Platform.BIGQUERY,
        targets=frozenset({Platform.SNOWFLAKE, Platform.DATABRICKS}),
        replacement="BINARY",
    ),
    TypeMapping(
        pattern=re.compile(r"\bSTRUCT\b", re.IGNORECASE),
        label="STRUCT",
        source=Platform.BIGQUERY,
        targets=frozenset({Platform.SNOWFLAKE}),
        replacement="OBJECT",
    ),
    TypeMapping(
        pattern=re.compile(r"\bVARIANT\b", re.IGNORECASE),
        label="VARIANT",
        source=Platform.SNOWFLAKE,
        targets=frozenset({Platform.BIGQUERY}),
        replacement="JSON",
    ),
    TypeMapping(
        pattern=re.compile(r"\bGEOGRAPHY\b", re.IGNORECASE),
        label="GEOGRAPHY",
        source=Platform.BIGQUERY,
        targets=frozenset({Platform.DATABRICKS}),
    ),
)

# Pattern, replacement. Applied to every non-comment line regardless of
# direction so that neutral functions come out in a canonical spelling.
NEUTRAL_FUNCTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"CURRENT_DATE\(\)", re.IGNORECASE), "CURRENT_DATE()"),
    (re.compile(r"CURRENT_TIMESTAMP\(\)", re.IGNORECASE), "CURRENT_TIMESTAMP()"),
    (re.compile(r"\bCONCAT\(([^)]+)\)", re.IGNORECASE), r"CONCAT(\1)"),
    (re.compile(r"\bSUBSTR\(([^,]+),\s*([^,)]+)\)", re.IGNORECASE), r"SUBSTRING(\1, \2)"),
    (re.compile(r"\bUPPER\(([^)]+)\)", re.IGNORECASE), r"UPPER(\1)"),
    (re.compile(r"\bLOWER\(([^)]+)\)", re.IGNORECASE), r"LOWER(\1)"),
    (re.compile(r"\bROUND\(([^,)]+)\)", re.IGNORECASE), r"ROUND(\1)"),
    (re.compile(r"\bROUND\(([^,]+),\s*([^,)]+)\)", re.IGNORECASE), r"ROUND(\1, \2)"),
    (re.compile(r"\bCOALESCE\(([^)]+)\)", re.IGNORECASE), r"COALESCE(\1)"),
    (re.compile(r"\bNULLIF\(([^,]+),\s*([^,)]+)\)", re.IGNORECASE), r"NULLIF(\1, \2)"),
)
