"""
The enhancer: light validation followed by reformatting.

Formatting is delegated to sqlparse (reindented, keywords upper-cased).
When ``fix_syntax`` is set the query goes through the syntax fixer first
and its findings are reported alongside the validation issues.
"""

from __future__ import annotations

import logging
import re

import sqlparse

from querylens.config import Config, get_config
from querylens.exceptions import FormatterError
from querylens.fixer.fixer import SyntaxFixer
from querylens.fixer.models import EnhanceResult, FixIssue, FixSeverity
from querylens.platforms import Platform
from querylens.sqltext import paren_balance

logger = logging.getLogger(__name__)

SLOW_FUNCTIONS = ("regex_match", "json_extract", "like '%")

_SELECT_PAIR = re.compile(r"select.*?select", re.IGNORECASE)


def _first_line(lines: list[str], *fragments: str) -> int | None:
    for index, line in enumerate(lines):
        if any(f in line for f in fragments):
            return index + 1
    return None


def validate(sql: str) -> list[FixIssue]:
    """Checks run before formatting. Nothing here modifies the query."""
    issues: list[FixIssue] = []
    lowered = sql.lower()
    lines = lowered.split("\n")

    if paren_balance(sql) != (0, 0):
        issues.append(FixIssue(
            message="Unbalanced parentheses detected",
            suggestion="Ensure all opening parentheses have matching closing parentheses",
            severity=FixSeverity.ERROR,
        ))

    if sql.strip() and not sql.strip().endswith(";"):
        issues.append(FixIssue(
            message="Query may be missing a semicolon at the end",
            suggestion="Add a semicolon at the end of your SQL statement",
            severity=FixSeverity.WARNING,
        ))

    if "select *" in lowered and "limit" not in lowered:
        issues.append(FixIssue(
            message="SELECT * without LIMIT clause detected",
            suggestion="Consider adding a LIMIT clause or selecting specific columns",
            severity=FixSeverity.WARNING,
            line=_first_line(lines, "select *"),
        ))

    if " join " in lowered and " on " not in lowered and " using " not in lowered:
        issues.append(FixIssue(
            message="JOIN without conditions found",
            suggestion="Add an ON or USING clause to prevent Cartesian product",
            severity=FixSeverity.ERROR,
            line=_first_line(lines, " join "),
        ))

    where_pos = lowered.find("where")
    group_by_pos = lowered.find("group by")
    if where_pos > 0 and group_by_pos > 0 and where_pos > group_by_pos:
        issues.append(FixIssue(
            message="WHERE clause after GROUP BY",
            suggestion="Move WHERE clause before GROUP BY for better performance",
            severity=FixSeverity.WARNING,
            line=_first_line(lines, "where"),
        ))

    # Each pair of SELECTs on one line counts once
    if sum(len(_SELECT_PAIR.findall(line)) for line in lines) > 2:
        issues.append(FixIssue(
            message="Multiple nested subqueries detected",
            suggestion="Consider using CTEs (WITH clause) for better readability",
            severity=FixSeverity.INFO,
        ))

    for func in SLOW_FUNCTIONS:
        if func in lowered:
            issues.append(FixIssue(
                message=f'Potentially slow function "{func}" detected',
                suggestion="Consider alternatives or ensure proper indexing",
                severity=FixSeverity.INFO,
                line=_first_line(lines, func),
            ))

    return issues


def format_sql(sql: str, config: Config | None = None) -> str:
    """
    Reindent ``sql`` and upper-case its keywords.

    Raises:
        FormatterError: If sqlparse fails on the input.
    """
    config = config if config is not None else get_config()
    try:
        return sqlparse.format(
            sql,
            reindent=True,
            keyword_case="upper",
            indent_width=config.format_indent_width,
        )
    except Exception as e:
        raise FormatterError(f"{type(e).__name__}: {e}") from e


class Enhancer:
    """
    Validates and reformats queries.

    Args:
        config: Formatter settings (defaults to get_config())
        fixer: Syntax fixer used when ``fix_syntax`` is requested
    """

    def __init__(self, config: Config | None = None, fixer: SyntaxFixer | None = None) -> None:
        self.config = config if config is not None else get_config()
        self.fixer = fixer if fixer is not None else SyntaxFixer()

    def enhance(self, sql: str, platform: Platform | str, fix_syntax: bool = True) -> EnhanceResult:
        platform = Platform.from_string(platform)

        if not sql or not sql.strip():
            return EnhanceResult(original_query=sql, formatted_query=sql, platform=platform)

        issues = validate(sql)
        source = sql
        if fix_syntax:
            fixed = self.fixer.fix(sql, platform)
            source = fixed.fixed_query
            issues.extend(fixed.auto_fixed_issues)

        try:
            formatted = format_sql(source, self.config)
        except FormatterError as e:
            logger.warning("Formatting %s query failed: %s", platform.value, e.message)
            return EnhanceResult(
                original_query=sql,
                formatted_query=sql,
                platform=platform,
                issues=(FixIssue(
                    message=f"SQL parsing error: {e.message}",
                    suggestion="Check your SQL syntax",
                    severity=FixSeverity.ERROR,
                ),),
            )

        logger.debug("Formatted %s query", platform.value)

        return EnhanceResult(
            original_query=sql,
            formatted_query=formatted,
            platform=platform,
            issues=tuple(issues),
            fixed=formatted != sql or bool(issues),
        )


def enhance(sql: str, platform: Platform | str, fix_syntax: bool = True) -> EnhanceResult:
    """Validate and reformat ``sql``. See :class:`Enhancer`."""
    return Enhancer().enhance(sql, platform, fix_syntax)
