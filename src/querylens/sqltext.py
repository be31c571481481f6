"""
Text and pattern helpers shared by every engine.

None of these helpers parse SQL grammar. They scan characters, track
parenthesis depth and quotes, and locate substrings so that engines can
report line and column positions against the caller's original text.
Statement splitting and comment stripping are delegated to sqlparse.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Generator, Iterator

import sqlparse

QUOTES = ("'", '"', "`")
LINE_COMMENT = "--"
BLOCK_COMMENT = "/*"


def count_occurrences(haystack: str, needle: str) -> int:
    """
    Count occurrences of ``needle`` in ``haystack``, advancing one character
    after each hit so overlapping matches are counted.
    """
    if not needle:
        return 0
    count = 0
    pos = haystack.find(needle)
    while pos != -1:
        count += 1
        pos = haystack.find(needle, pos + 1)
    return count


@lru_cache(maxsize=256)
def word_pattern(word: str) -> re.Pattern[str]:
    """Compiled case-insensitive whole-word pattern."""
    return re.compile(rf"(?<!\w){re.escape(word)}(?!\w)", re.IGNORECASE)


def is_comment_line(line: str) -> bool:
    """True for lines whose first non-blank characters start a ``--`` comment."""
    return line.lstrip().startswith("--")


def locate(sql: str, fragment: str) -> tuple[int, int] | None:
    """
    Find the first line containing ``fragment`` (case-insensitive).

    Returns:
        ``(line, column)``, both 1-based, or None if the fragment is absent.
    """
    needle = fragment.lower()
    for index, line in enumerate(sql.split("\n")):
        column = line.lower().find(needle)
        if column != -1:
            return index + 1, column + 1
    return None


def line_of_offset(sql: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return sql.count("\n", 0, max(0, offset)) + 1


def _walk(sql: str) -> Generator[tuple[int, str], None, str | None]:
    """
    Yield code characters and return what the text ends inside of.

    The return value is the open quote character, ``--``, ``/*``, or None
    when the text ends in code.
    """
    i = 0
    n = len(sql)
    quote: str | None = None
    while i < n:
        ch = sql[i]
        if quote is not None:
            if ch == quote:
                # Doubled quote is an escaped quote inside the literal
                if i + 1 < n and sql[i + 1] == quote:
                    i += 2
                    continue
                quote = None
            i += 1
            continue
        if ch in QUOTES:
            quote = ch
            i += 1
            continue
        if sql.startswith(LINE_COMMENT, i):
            newline = sql.find("\n", i)
            if newline == -1:
                return LINE_COMMENT
            i = newline
            continue
        if sql.startswith(BLOCK_COMMENT, i):
            end = sql.find("*/", i + 2)
            if end == -1:
                return BLOCK_COMMENT
            i = end + 2
            continue
        yield i, ch
        i += 1
    return quote


def iter_code_chars(sql: str) -> Iterator[tuple[int, str]]:
    """
    Yield ``(index, char)`` for characters outside string literals,
    quoted identifiers and comments.
    """
    yield from _walk(sql)


def open_context(sql: str) -> str | None:
    """
    What the end of ``sql`` is still inside of.

    ``"SELECT 'abc"`` ends inside ``'`` and ``"SELECT 1 -- note"`` inside
    ``--``. Quotes inside comments and comment markers inside literals do
    not count.
    """
    walker = _walk(sql)
    try:
        while True:
            next(walker)
    except StopIteration as done:
        return done.value


def unclosed_quote(sql: str) -> str | None:
    """The quote character left open at the end of ``sql``, if any."""
    context = open_context(sql)
    return context if context in QUOTES else None


def find_closing_paren(sql: str, open_index: int) -> int | None:
    """
    Index of the parenthesis closing the one at ``open_index``.

    Quotes and comments are skipped. Returns None when unbalanced.
    """
    depth = 0
    for index, ch in iter_code_chars(sql):
        if index < open_index:
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return index
    return None


def paren_balance(sql: str) -> tuple[int, int]:
    """
    Count unmatched parentheses outside literals and comments.

    Returns:
        ``(missing_close, extra_close)``: openers never closed and closers
        with no opener.
    """
    depth = 0
    extra_close = 0
    for _, ch in iter_code_chars(sql):
        if ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                extra_close += 1
            else:
                depth -= 1
    return depth, extra_close


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """
    Split on ``separator`` only at parenthesis depth zero and outside quotes.

    ``a, COALESCE(b, c), 'x,y'`` splits into three parts. Parts are stripped
    and empty parts are dropped.
    """
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for ch in text:
        if quote is not None:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"', "`"):
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth = max(0, depth - 1)
        elif ch == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def strip_comments(sql: str) -> str:
    """Remove ``--`` and ``/* */`` comments (via sqlparse)."""
    return sqlparse.format(sql, strip_comments=True)


def split_statements(sql: str) -> list[str]:
    """Split a script into statements (via sqlparse), dropping empties."""
    return [s for s in (stmt.strip() for stmt in sqlparse.split(sql)) if s]


# ── Identifiers ──────────────────────────────────────────────────────────
# Patterns below expect lowercased text.

IDENTIFIER = r'(?:`[^`]+`|"[^"]+"|[a-z_][a-z0-9_$]*)'
QUALIFIED_NAME = rf"{IDENTIFIER}(?:\.{IDENTIFIER})*"

_IDENTIFIER_RE = re.compile(IDENTIFIER)
_LITERAL_RE = re.compile(r"'(?:[^']|'')*'")


def unquote_identifier(name: str) -> str:
    """Drop backticks and double quotes around (or inside) a name."""
    return name.replace("`", "").replace('"', "")


def identifier_parts(qualified: str) -> list[str]:
    """
    Split a dotted name into unquoted parts.

    A backtick-quoted ``project.dataset.table`` stays one part.
    """
    return [unquote_identifier(p) for p in _IDENTIFIER_RE.findall(qualified)]


def mask_literals(sql: str) -> str:
    """Blank out the contents of single-quoted literals, keeping offsets."""
    return _LITERAL_RE.sub(lambda m: "'" + " " * (len(m.group()) - 2) + "'", sql)
