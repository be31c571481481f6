"""
Heuristic matching for custom catalog rules.

Custom rules have no predicate, only a free-text description. The analyzer
asks a HeuristicRuleMatcher whether such a rule applies to a query. The
default KeywordRuleMatcher is intentionally coarse: it pulls a few long
words out of the description and reports a match when any of them occurs
verbatim in the query. False positives and negatives are expected.

A different matcher (for example one backed by a small predicate
language) can be passed to Analyzer without touching scoring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from querylens.analyzer.catalog import RuleDefinition

_STRIP_CHARS = ".,;:!?()[]{}\"'`"


@runtime_checkable
class HeuristicRuleMatcher(Protocol):
    """Decides whether a custom rule applies to a query."""

    def matches(self, rule: "RuleDefinition", lowered_sql: str) -> bool:
        """
        Args:
            rule: The custom rule definition
            lowered_sql: The query, already lowercased

        Returns:
            True if the rule should be reported for this query.
        """
        ...


class KeywordRuleMatcher:
    """
    Match on the longest words of the rule description.

    Attributes:
        max_keywords: How many words to keep (longest first)
        min_length: Words must be strictly longer than this
    """

    def __init__(self, max_keywords: int = 3, min_length: int = 3) -> None:
        self.max_keywords = max_keywords
        self.min_length = min_length

    def keywords(self, description: str) -> list[str]:
        """
        Extract the keywords for a description.

        Words are lowercased and stripped of surrounding punctuation. Ties
        in length keep the order in which the words first appear.
        """
        seen: set[str] = set()
        words: list[str] = []
        for raw in description.lower().split():
            word = raw.strip(_STRIP_CHARS)
            if len(word) > self.min_length and word not in seen:
                seen.add(word)
                words.append(word)
        words.sort(key=len, reverse=True)
        return words[: self.max_keywords]

    def matches(self, rule: "RuleDefinition", lowered_sql: str) -> bool:
        if not rule.description:
            return False
        return any(keyword in lowered_sql for keyword in self.keywords(rule.description))
