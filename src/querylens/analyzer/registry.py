"""
Registry of the built-in rules.

Rule modules add their classes with ``@register_rule`` at import time.
The analyzer asks the registry for the rules of one platform, and the
default catalog is generated from the same lookup. Tests can hand the
analyzer a private ``RuleRegistry`` to run a chosen set of rules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from querylens.analyzer.rules.base import Rule
    from querylens.platforms import Platform

T = TypeVar("T", bound="Rule")


class RuleRegistry:
    """
    Built-in rule classes keyed by rule id, in registration order.

    Example:
        registry = RuleRegistry()
        registry.register(SelectStar)
        analyzer = Analyzer(registry=registry)
    """

    def __init__(self) -> None:
        self._rules: dict[str, type[Rule]] = {}

    def register(self, rule_cls: type[T]) -> type[T]:
        """
        Add a rule class.

        Raises:
            ValueError: If another class already uses the rule id
        """
        rule_id = rule_cls.rule_id

        existing = self._rules.get(rule_id)
        if existing is not None:
            raise ValueError(
                f"Rule '{rule_id}' already registered by {existing.__module__}.{existing.__name__}"
            )

        self._rules[rule_id] = rule_cls
        return rule_cls

    def get(self, rule_id: str) -> type[Rule] | None:
        return self._rules.get(rule_id)

    def for_platform(self, platform: "Platform") -> list[type[Rule]]:
        """Rule classes that apply to ``platform``."""
        return [r for r in self._rules.values() if r.applies_to(platform)]


_global_registry = RuleRegistry()


def get_registry() -> RuleRegistry:
    return _global_registry


def register_rule(rule_cls: type[T]) -> type[T]:
    """Class decorator adding a built-in rule to the global registry."""
    return _global_registry.register(rule_cls)
