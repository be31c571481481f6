"""
Pattern batteries for the syntax fixer.

A FixPattern either rewrites what it matches (``fix``) or only reports it
(``check_only``). Rewrites are applied until the text stops changing, so
running the fixer on its own output finds nothing left to rewrite.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Union

from querylens.fixer.models import FixIssue, FixSeverity
from querylens.platforms import Platform
from querylens.sqltext import line_of_offset

Replacement = Union[str, Callable[[re.Match[str]], str]]

MAX_REWRITE_ROUNDS = 10
DEFAULT_SUGGESTION = "Fix syntax error"

# Functions that legitimately take no arguments
NILADIC_FUNCTIONS = (
    "current_date", "current_timestamp", "current_time", "current_user",
    "current_schema", "current_database", "current_catalog", "current_role",
    "current_warehouse", "session_user", "now", "rand", "random", "pi",
    "row_number", "rank", "dense_rank", "percent_rank", "cume_dist",
    "uuid", "uuid_string", "generate_uuid", "over",
)


def ci(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def position_of(text: str, offset: int) -> tuple[int, int]:
    """1-based (line, column) of a character offset."""
    return line_of_offset(text, offset), offset - text.rfind("\n", 0, offset)


@dataclass(frozen=True)
class FixPattern:
    """
    One fixer rule.

    Exactly one of ``fix`` and ``check_only`` must be given. Auto-fixed
    findings are reported as errors, detected ones as warnings.
    """

    pattern: re.Pattern[str]
    message: str
    suggestion: str = DEFAULT_SUGGESTION
    fix: Replacement | None = None
    check_only: bool = False

    def __post_init__(self) -> None:
        if (self.fix is None) == (not self.check_only):
            raise ValueError(f"Pattern {self.pattern.pattern!r} needs either fix or check_only")

    def _replace(self, match: re.Match[str]) -> str:
        if callable(self.fix):
            return self.fix(match)
        return match.expand(self.fix)

    def _issue(self, text: str, match: re.Match[str]) -> FixIssue:
        line, column = position_of(text, match.start())
        return FixIssue(
            message=self.message,
            suggestion=self.suggestion,
            severity=FixSeverity.WARNING if self.check_only else FixSeverity.ERROR,
            line=line,
            position=column,
            auto_fixed=not self.check_only,
        )

    def apply(self, text: str) -> tuple[str, list[FixIssue]]:
        """Return the (possibly rewritten) text and the findings."""
        if self.check_only:
            return text, [self._issue(text, m) for m in self.pattern.finditer(text)]

        issues: list[FixIssue] = []
        for _ in range(MAX_REWRITE_ROUNDS):
            changed = [m for m in self.pattern.finditer(text) if self._replace(m) != m.group(0)]
            if not changed:
                break
            issues.extend(self._issue(text, m) for m in changed)
            text = self.pattern.sub(self._replace, text)
        return text, issues


def _empty_in(match: re.Match[str]) -> str:
    return f"{match.group(1)} (NULL)"


def _leading_comma(match: re.Match[str]) -> str:
    # A comma moved behind a line comment would be commented out
    line_start = match.string.rfind("\n", 0, match.start()) + 1
    if "--" in match.string[line_start:match.start()]:
        return match.group(0)
    return f",\n{match.group(1)}"


COMMON_PATTERNS: tuple[FixPattern, ...] = (
    # Keyword misspellings
    FixPattern(ci(r"\bselect\s+(.+?)\s+form\b"), 'Keyword "form" should be "FROM"', fix=r"SELECT \1 FROM"),
    FixPattern(ci(r"\bwhere\s+(.+?)\s+nad\b"), 'Keyword "nad" should be "AND"', fix=r"WHERE \1 AND"),
    FixPattern(ci(r"\bwhere\s+(.+?)\s+ro\b"), 'Keyword "ro" should be "OR"', fix=r"WHERE \1 OR"),
    FixPattern(ci(r"\bgorup\s+by\b"), 'Keyword "gorup by" should be "GROUP BY"', fix="GROUP BY"),
    FixPattern(ci(r"\bgroup\s+bye\b"), 'Keyword "group bye" should be "GROUP BY"', fix="GROUP BY"),
    FixPattern(ci(r"\border\s+bye\b"), 'Keyword "order bye" should be "ORDER BY"', fix="ORDER BY"),
    FixPattern(ci(r"\bjion\b"), 'Keyword "jion" should be "JOIN"', fix="JOIN"),
    FixPattern(ci(r"\bliek\b"), 'Keyword "liek" should be "LIKE"', fix="LIKE"),
    FixPattern(ci(r"\blimti\b"), 'Keyword "limti" should be "LIMIT"', fix="LIMIT"),
    FixPattern(ci(r"\bdistcint\b"), 'Keyword "distcint" should be "DISTINCT"', fix="DISTINCT"),

    # Statement and list structure
    FixPattern(
        ci(r";[ \t]*select\b"),
        "Multiple statements should be on separate lines",
        fix=";\nSELECT",
    ),
    FixPattern(ci(r",\s*\)"), "Trailing comma in list", fix=")"),
    FixPattern(ci(r"\(\s*,"), "Leading comma in list", fix="("),
    FixPattern(
        ci(r"(?<=[^\s,(])[ \t]*\n([ \t]*),[ \t]*(?=\w)"),
        "Comma should be at the end of the previous line, not the beginning of the next line",
        "Place commas at the end of lines, not at the beginning",
        fix=_leading_comma,
    ),

    # NULL handling
    FixPattern(
        ci(r"\bWHERE\s+NULL\b"),
        "Incorrect NULL comparison",
        "Use IS NULL instead of WHERE NULL",
        fix="WHERE IS NULL",
    ),
    FixPattern(
        ci(r"(\bWHERE\b[^;]*?)\s*(?<![!<>])=\s*NULL\b"),
        "Incorrect NULL comparison with equals",
        "Use IS NULL instead of = NULL",
        fix=r"\1 IS NULL",
    ),
    FixPattern(
        ci(r"(\bWHERE\b[^;]*?)\s*!=\s*NULL\b"),
        "Incorrect NULL comparison with not equals",
        "Use IS NOT NULL instead of != NULL",
        fix=r"\1 IS NOT NULL",
    ),
    FixPattern(
        ci(r"(\bWHERE\b[^;]*?)\s*<>\s*NULL\b"),
        "Incorrect NULL comparison with not equals",
        "Use IS NOT NULL instead of <> NULL",
        fix=r"\1 IS NOT NULL",
    ),
    FixPattern(
        ci(r"\b(IN)\s*\(\s*\)"),
        "Empty IN clause",
        "IN clause must contain at least one value",
        fix=_empty_in,
    ),

    # Literals
    FixPattern(
        ci(r"'([^']*)'\s*\|\|\s*'([^']*)'"),
        "Inefficient string concatenation",
        "Consider combining string literals",
        fix=r"'\1\2'",
    ),

    # Detected only
    FixPattern(
        ci(r"\bSELECT\s+\*"),
        "Using SELECT * is generally not recommended for production code",
        "Explicitly specify needed columns instead of using *",
        check_only=True,
    ),
    FixPattern(
        ci(r"\bLIMIT\s+([^0-9\s])"),
        "LIMIT clause expects a numeric value",
        "Add a numeric value after LIMIT",
        check_only=True,
    ),
    FixPattern(
        ci(r"\bGROUP\s+BY\s+[0-9]+"),
        "Using positional references in GROUP BY",
        "Use column names instead of positions for better readability and maintenance",
        check_only=True,
    ),
    FixPattern(
        ci(r"\bORDER\s+BY\s+[0-9]+"),
        "Using positional references in ORDER BY",
        "Use column names instead of positions for better readability and maintenance",
        check_only=True,
    ),
    FixPattern(
        ci(rf"\b(?!(?:{'|'.join(NILADIC_FUNCTIONS)})\()(\w+)\(\s*\)"),
        "Empty function call",
        "Function calls should include appropriate arguments",
        check_only=True,
    ),
    FixPattern(
        ci(r"\(\s*SELECT\b(?![^()]*\bFROM\b)"),
        "Subquery missing FROM clause",
        "Every SELECT statement should have a FROM clause",
        check_only=True,
    ),
)


PLATFORM_PATTERNS: Mapping[Platform, tuple[FixPattern, ...]] = MappingProxyType({
    Platform.BIGQUERY: (
        FixPattern(
            ci(r"\bDATE_DIFF\s*\(\s*([^,]+)\s*,\s*([^,]+)\s*,\s*([^)]+)\s*\)"),
            "In BigQuery, DATE_DIFF parameters are (end_date, start_date, part)",
            "Ensure parameters are in the right order for BigQuery",
            check_only=True,
        ),
        FixPattern(
            ci(r"\bFROM\s+(?![`\"])(\w+)\.(\w+)\.(\w+)(?![\w.`])"),
            "BigQuery table references should use backticks",
            "Use `project.dataset.table` format with backticks",
            fix=r"FROM `\1.\2.\3`",
        ),
        FixPattern(
            ci(r"\bCAST\s*\(\s*(.+?)\s+AS\s+VARCHAR\s*\)"),
            "BigQuery uses STRING instead of VARCHAR",
            "Use STRING instead of VARCHAR in BigQuery",
            fix=r"CAST(\1 AS STRING)",
        ),
        FixPattern(
            ci(r"\bSUBSTRING\s*\(\s*(.+?)\s*,\s*(.+?)\s*,\s*(.+?)\s*\)"),
            "Check SUBSTRING syntax for BigQuery",
            "In BigQuery, SUBSTRING takes form of SUBSTRING(string, starting_position, length)",
            check_only=True,
        ),
        FixPattern(
            ci(r"\bCURRENT_DATE\s*\(\s*\)"),
            "In BigQuery, CURRENT_DATE is used without parentheses",
            "Use CURRENT_DATE without parentheses in BigQuery",
            fix="CURRENT_DATE",
        ),
        FixPattern(
            ci(r"\bGETDATE\s*\(\s*\)"),
            "BigQuery does not support GETDATE()",
            "Use CURRENT_TIMESTAMP() instead of GETDATE() in BigQuery",
            fix="CURRENT_TIMESTAMP()",
        ),
    ),
    Platform.SNOWFLAKE: (
        FixPattern(
            ci(r"\bvarchar\b"),
            "In Snowflake, use VARCHAR instead of varchar",
            "Use VARCHAR (uppercase) in Snowflake",
            fix="VARCHAR",
        ),
        FixPattern(
            ci(r"\btable\s+(\w+)\s+as\b"),
            "In Snowflake, capitalize SQL keywords",
            "Capitalize SQL keywords in Snowflake",
            fix=r"TABLE \1 AS",
        ),
        FixPattern(
            ci(r"\bDATE_TRUNC\s*\(\s*([^,]+)\s*,\s*([^)]+)\s*\)"),
            "Check DATE_TRUNC syntax for Snowflake",
            "In Snowflake, DATE_TRUNC takes form of DATE_TRUNC(date_part, date)",
            check_only=True,
        ),
        FixPattern(
            ci(r"\bTO_TIMESTAMP\s*\(\s*([^,()]+?)\s*\)"),
            "TO_TIMESTAMP may need format parameter in Snowflake",
            "Consider using TO_TIMESTAMP(string, format) in Snowflake",
            check_only=True,
        ),
        FixPattern(
            ci(r"\bSTRING\b"),
            "Snowflake uses VARCHAR instead of STRING",
            "Use VARCHAR instead of STRING in Snowflake",
            fix="VARCHAR",
        ),
        FixPattern(
            ci(r"\bCURRENT_DATE\b(?!\s*\()"),
            "In Snowflake, CURRENT_DATE requires parentheses",
            "Use CURRENT_DATE() instead of CURRENT_DATE in Snowflake",
            fix="CURRENT_DATE()",
        ),
    ),
    Platform.DATABRICKS: (
        FixPattern(
            ci(r"\bTEMP\s+VIEW\b"),
            "In Databricks, use TEMPORARY instead of TEMP",
            "Use TEMPORARY instead of TEMP in Databricks",
            fix="TEMPORARY VIEW",
        ),
        FixPattern(
            ci(r"\bCURRENT_DATE\s*\(\s*\)"),
            "In Databricks, CURRENT_DATE is a function without parentheses",
            "Use CURRENT_DATE without parentheses",
            fix="CURRENT_DATE",
        ),
        FixPattern(
            ci(r"\bDATEDIFF\s*\(\s*([^,]+)\s*,\s*([^,]+)\s*,\s*([^)]+)\s*\)"),
            "Check DATEDIFF syntax for Databricks",
            "In Databricks, DATEDIFF takes form of DATEDIFF(unit, start_date, end_date)",
            check_only=True,
        ),
        FixPattern(
            ci(r"\bVARCHAR\s*\(\s*\d+\s*\)"),
            "Databricks uses STRING instead of VARCHAR(n)",
            "Use STRING instead of VARCHAR(n) in Databricks",
            fix="STRING",
        ),
        FixPattern(
            ci(r"\bGETDATE\s*\(\s*\)"),
            "Databricks does not support GETDATE()",
            "Use CURRENT_TIMESTAMP() instead of GETDATE() in Databricks",
            fix="CURRENT_TIMESTAMP()",
        ),
    ),
})


# Upper-cased by the Snowflake fixer, longest first so "left join" wins
# over "join"
SNOWFLAKE_KEYWORDS: tuple[str, ...] = (
    "group by", "order by", "left join", "right join", "inner join", "outer join",
    "intersect", "select", "except", "having", "offset", "where", "union",
    "limit", "from", "join", "with", "and", "or",
)
