"""
The syntax fixer.

Runs the common pattern battery and then the platform battery over the
query text, followed by structural checks and the closers: unbalanced
quotes and parentheses are closed at the end and a missing trailing
semicolon is appended. Snowflake output finally gets its keywords
upper-cased.

Every rewrite is idempotent, so fixing already-fixed text reports no
auto-fixed issues.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping

from querylens.fixer.models import FixIssue, FixResult, FixSeverity
from querylens.fixer.patterns import (
    COMMON_PATTERNS,
    PLATFORM_PATTERNS,
    SNOWFLAKE_KEYWORDS,
    FixPattern,
    position_of,
)
from querylens.platforms import Platform
from querylens.sqltext import (
    BLOCK_COMMENT,
    LINE_COMMENT,
    mask_literals,
    open_context,
    paren_balance,
    split_top_level,
    strip_comments,
    unclosed_quote,
)

logger = logging.getLogger(__name__)

_SELECT = re.compile(r"\bselect\b")
_FROM = re.compile(r"\bfrom\b")
_JOIN = re.compile(r"(?<!cross )(?<!natural )\bjoin\b")
_JOIN_CONDITION = re.compile(r"\b(?:on|using)\b")
# What may precede a SELECT that continues the same statement
_CONTINUES_STATEMENT = re.compile(
    r"(?:\)|\b(?:union|all|distinct|intersect|except|minus|as)"
    r"|\b(?:into|table|overwrite)\s+\S+)\s*$"
)
_NON_CODE = re.compile(r"('(?:[^']|'')*'|\"[^\"]*\"|--[^\n]*|/\*.*?\*/)", re.DOTALL)
_KEYWORD_PATTERNS = tuple(
    re.compile(r"\b" + r"\s+".join(kw.split()) + r"\b", re.IGNORECASE)
    for kw in SNOWFLAKE_KEYWORDS
)
_QUOTE_NAMES = {"'": "single", '"': "double", "`": "backtick"}


def _warning(message: str, suggestion: str) -> FixIssue:
    return FixIssue(message=message, suggestion=suggestion, severity=FixSeverity.WARNING)


def _depths(code: str) -> list[int]:
    depths = []
    depth = 0
    for ch in code:
        if ch == ")":
            depth = max(0, depth - 1)
        depths.append(depth)
        if ch == "(":
            depth += 1
    return depths


def _unseparated_statements(code: str) -> bool:
    """Whether a top-level SELECT starts a statement with no ``;`` before it."""
    for segment in split_top_level(code, ";"):
        depths = _depths(segment)
        starts = [m.start() for m in _SELECT.finditer(segment) if depths[m.start()] == 0]
        for start in starts[1:]:
            if not _CONTINUES_STATEMENT.search(segment[:start]):
                return True
    return False


def check_structure(text: str) -> list[FixIssue]:
    """
    Statement-level checks that look at the query as a whole.

    These only detect; nothing is rewritten.
    """
    code = mask_literals(strip_comments(text)).lower()
    issues: list[FixIssue] = []

    if _SELECT.search(code) and not _FROM.search(code):
        issues.append(_warning(
            "SELECT statement missing FROM clause",
            "Add FROM clause to specify the data source",
        ))

    joins = [m.end() for m in _JOIN.finditer(code)]
    for index, end in enumerate(joins):
        stop = joins[index + 1] if index + 1 < len(joins) else len(code)
        if not _JOIN_CONDITION.search(code, end, stop):
            issues.append(_warning(
                "JOIN without ON or USING clause",
                "Add ON or USING clause to specify join condition",
            ))
            break

    group_by = code.find("group by")
    order_by = code.find("order by")
    if group_by >= 0 and 0 <= order_by < group_by:
        issues.append(_warning(
            "ORDER BY should come after GROUP BY",
            "Move ORDER BY clause after GROUP BY clause",
        ))

    if _unseparated_statements(code):
        issues.append(_warning(
            "Multiple statements should be separated by semicolons",
            "Add semicolons between SQL statements",
        ))

    return issues


def append_code(text: str, suffix: str) -> str:
    """
    Append ``suffix`` after the last code character.

    Trailing whitespace is kept after the suffix. When the text ends inside
    a ``--`` comment the suffix goes on a new line.
    """
    body = text.rstrip()
    trailing = text[len(body):]
    if open_context(body) == LINE_COMMENT:
        return f"{body}\n{suffix}{trailing}"
    return f"{body}{suffix}{trailing}"


def uppercase_keywords(text: str) -> str:
    """Upper-case SNOWFLAKE_KEYWORDS outside literals, quoted names and comments."""
    parts = _NON_CODE.split(text)
    for index in range(0, len(parts), 2):
        segment = parts[index]
        for pattern in _KEYWORD_PATTERNS:
            segment = pattern.sub(lambda m: m.group(0).upper(), segment)
        parts[index] = segment
    return "".join(parts)


class SyntaxFixer:
    """
    Pattern-based syntax fixer.

    Example:
        fixer = SyntaxFixer()
        result = fixer.fix("select id form users", Platform.SNOWFLAKE)
        print(result.fixed_query)   # SELECT id FROM users;

    Args:
        common: Patterns run for every platform
        platform_patterns: Extra patterns per platform, run after ``common``
    """

    def __init__(
        self,
        common: tuple[FixPattern, ...] = COMMON_PATTERNS,
        platform_patterns: Mapping[Platform, tuple[FixPattern, ...]] = PLATFORM_PATTERNS,
    ) -> None:
        self.common = common
        self.platform_patterns = platform_patterns

    def patterns_for(self, platform: Platform) -> tuple[FixPattern, ...]:
        return self.common + self.platform_patterns.get(platform, ())

    def fix(self, sql: str, platform: Platform | str) -> FixResult:
        platform = Platform.from_string(platform)

        if not sql or not sql.strip():
            return FixResult(original_query=sql, fixed_query=sql, platform=platform)

        text = sql
        issues: list[FixIssue] = []

        for pattern in self.patterns_for(platform):
            try:
                text, found = pattern.apply(text)
            except Exception as e:
                logger.warning("Fix pattern %r failed: %s", pattern.message, e)
                continue
            issues.extend(found)

        try:
            issues.extend(check_structure(text))
        except Exception as e:
            logger.warning("Structure checks failed: %s", e)

        text = self._close(text, issues)

        if platform == Platform.SNOWFLAKE:
            text = uppercase_keywords(text)

        logger.debug("Fixer found %d issues for %s", len(issues), platform.value)

        return FixResult(
            original_query=sql,
            fixed_query=text,
            platform=platform,
            issues=tuple(issues),
            fixed=text != sql or bool(issues),
        )

    def _close(self, text: str, issues: list[FixIssue]) -> str:
        """Close an open comment or quote, then parentheses, then the statement."""
        if open_context(text) == BLOCK_COMMENT:
            issues.append(FixIssue(
                message="Unclosed block comment",
                suggestion="Add missing */",
                severity=FixSeverity.ERROR,
                auto_fixed=True,
            ))
            text = text.rstrip() + " */" + text[len(text.rstrip()):]

        quote = unclosed_quote(text)
        if quote is not None:
            name = _QUOTE_NAMES[quote]
            line, position = position_of(text, len(text))
            issues.append(FixIssue(
                message=f"Unclosed {name} quote",
                suggestion=f"Add missing {name} quote",
                severity=FixSeverity.ERROR,
                line=line,
                position=position,
                auto_fixed=True,
            ))
            text = append_code(text, quote)

        missing_close, extra_close = paren_balance(text)
        if missing_close:
            issues.append(FixIssue(
                message=f"Missing {missing_close} closing parenthesis",
                suggestion="Add missing closing parenthesis",
                severity=FixSeverity.ERROR,
                auto_fixed=True,
            ))
            text = append_code(text, ")" * missing_close)
        if extra_close:
            # No reliable place to insert an opener
            issues.append(FixIssue(
                message=f"Missing {extra_close} opening parenthesis",
                suggestion="Remove extra closing parenthesis or add opening ones",
                severity=FixSeverity.ERROR,
            ))

        code = strip_comments(text).strip()
        if code and not code.endswith(";"):
            line, position = position_of(text, len(text.rstrip()))
            issues.append(FixIssue(
                message="Query should end with a semicolon",
                suggestion="Add a semicolon at the end of the query",
                severity=FixSeverity.INFO,
                line=line,
                position=position,
                auto_fixed=True,
            ))
            text = append_code(text, ";")

        return text


def fix(sql: str, platform: Platform | str) -> FixResult:
    """Fix ``sql`` with the default pattern batteries. See :class:`SyntaxFixer`."""
    return SyntaxFixer().fix(sql, platform)
