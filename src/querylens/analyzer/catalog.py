"""
Rule catalogs: versioned, platform-scoped sets of rule definitions.

A catalog groups RuleDefinitions under the four fixed categories. It is
what a caller hands to the analyzer to replace the built-in rule set, and
what the CLI exports and re-imports as JSON or YAML.

A catalog changes only through enable(), disable(), set_severity(),
add_custom_rule() and remove_rule(). The analyzer never modifies one.

Usage:
    from querylens.analyzer.catalog import default_catalog, save_catalog

    catalog = default_catalog(Platform.SNOWFLAKE)
    catalog.disable("COST004")
    catalog.add_custom_rule(
        Category.PERFORMANCE,
        name="Avoid regex filters",
        description="Regular expression predicates are expensive on large tables",
        severity=Severity.MEDIUM,
    )
    save_catalog(catalog, Path("rules.yaml"))
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterator

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from querylens.analyzer.models import Category, Severity
from querylens.analyzer.registry import RuleRegistry, get_registry
from querylens.exceptions import CatalogError
from querylens.platforms import Platform

logger = logging.getLogger(__name__)

CATALOG_VERSION = "1.0"
CUSTOM_PREFIX = "CUSTOM-"

_CUSTOM_ID = re.compile(rf"^{CUSTOM_PREFIX}(\d+)$")


class RuleDefinition(BaseModel):
    """
    One rule as configured in a catalog.

    ``custom`` rules have no built-in predicate and are matched
    heuristically from their description.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Rule identifier")
    name: str = Field(..., min_length=1, description="Short rule name")
    description: str = Field(default="", description="Free-text description")
    severity: Severity = Field(default=Severity.MEDIUM)
    enabled: bool = Field(default=True)
    custom: bool = Field(default=False)


class RuleCategory(BaseModel):
    """An ordered list of rule definitions under one category."""

    model_config = ConfigDict(frozen=True)

    name: Category
    rules: tuple[RuleDefinition, ...] = ()


class RuleCatalog(BaseModel):
    """
    A platform-scoped rule catalog.

    Categories are kept in the fixed reporting order; a catalog built from
    partial data still has all four, possibly empty.
    """

    platform: Platform
    version: str = CATALOG_VERSION
    categories: list[RuleCategory] = Field(default_factory=list)

    def model_post_init(self, __context: Any) -> None:
        present = {c.name: c for c in self.categories}
        self.categories = [present.get(cat, RuleCategory(name=cat)) for cat in Category]

    # ── Lookup ───────────────────────────────────────────────────────────

    def category(self, category: Category | str) -> RuleCategory:
        wanted = Category.from_string(category)
        for entry in self.categories:
            if entry.name == wanted:
                return entry
        raise CatalogError(f"Unknown category: {category}")

    def rules(self) -> Iterator[tuple[Category, RuleDefinition]]:
        """Every definition with its category, in catalog order."""
        for entry in self.categories:
            for rule in entry.rules:
                yield entry.name, rule

    def enabled_rules(self, category: Category) -> list[RuleDefinition]:
        return [rule for rule in self.category(category).rules if rule.enabled]

    def get(self, rule_id: str) -> RuleDefinition | None:
        for _, rule in self.rules():
            if rule.id == rule_id:
                return rule
        return None

    def rule_ids(self) -> list[str]:
        return [rule.id for _, rule in self.rules()]

    def __contains__(self, rule_id: object) -> bool:
        return isinstance(rule_id, str) and self.get(rule_id) is not None

    def __len__(self) -> int:
        return sum(len(c.rules) for c in self.categories)

    # ── Mutation ─────────────────────────────────────────────────────────

    def _replace(self, rule_id: str, **changes: Any) -> RuleDefinition:
        for index, entry in enumerate(self.categories):
            for position, rule in enumerate(entry.rules):
                if rule.id == rule_id:
                    updated = rule.model_copy(update=changes)
                    rules = entry.rules[:position] + (updated,) + entry.rules[position + 1:]
                    self.categories[index] = entry.model_copy(update={"rules": rules})
                    return updated
        raise CatalogError(f"Rule '{rule_id}' not found in catalog", source=rule_id)

    def enable(self, rule_id: str) -> RuleDefinition:
        return self._replace(rule_id, enabled=True)

    def disable(self, rule_id: str) -> RuleDefinition:
        return self._replace(rule_id, enabled=False)

    def set_severity(self, rule_id: str, severity: Severity | str) -> RuleDefinition:
        return self._replace(rule_id, severity=Severity(severity))

    def next_custom_id(self) -> str:
        highest = 0
        for rule_id in self.rule_ids():
            match = _CUSTOM_ID.match(rule_id)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{CUSTOM_PREFIX}{highest + 1}"

    def add_custom_rule(
        self,
        category: Category | str,
        name: str,
        description: str = "",
        severity: Severity | str = Severity.MEDIUM,
    ) -> RuleDefinition:
        """
        Append a user-defined rule to a category.

        Returns:
            The new definition, with an id of the form ``CUSTOM-<n>``.
        """
        if not name.strip():
            raise CatalogError("Custom rule name cannot be empty")

        entry = self.category(category)
        rule = RuleDefinition(
            id=self.next_custom_id(),
            name=name.strip(),
            description=description.strip() or "Custom rule",
            severity=Severity(severity),
            enabled=True,
            custom=True,
        )
        index = self.categories.index(entry)
        self.categories[index] = entry.model_copy(update={"rules": entry.rules + (rule,)})
        logger.debug("Added custom rule %s to %s", rule.id, entry.name.value)
        return rule

    def remove_rule(self, rule_id: str) -> None:
        """Remove a custom rule. Built-in definitions can only be disabled."""
        rule = self.get(rule_id)
        if rule is None:
            raise CatalogError(f"Rule '{rule_id}' not found in catalog", source=rule_id)
        if not rule.custom:
            raise CatalogError(
                f"Rule '{rule_id}' is built-in; disable it instead", source=rule_id
            )
        for index, entry in enumerate(self.categories):
            kept = tuple(r for r in entry.rules if r.id != rule_id)
            if len(kept) != len(entry.rules):
                self.categories[index] = entry.model_copy(update={"rules": kept})

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def default_catalog(
    platform: Platform | str,
    registry: RuleRegistry | None = None,
) -> RuleCatalog:
    """
    Build a fresh catalog holding the built-in rules for ``platform``.

    Each call returns a new object, so callers may edit it freely.
    """
    platform = Platform.from_string(platform)
    registry = registry if registry is not None else get_registry()

    grouped: dict[Category, list[RuleDefinition]] = {cat: [] for cat in Category}
    for rule_cls in registry.for_platform(platform):
        grouped[rule_cls.category].append(
            RuleDefinition(
                id=rule_cls.rule_id,
                name=rule_cls.catalog_name or rule_cls.name,
                description=rule_cls.catalog_description or rule_cls.description,
                severity=rule_cls.catalog_severity or rule_cls.severity,
                enabled=True,
                custom=False,
            )
        )

    return RuleCatalog(
        platform=platform,
        categories=[RuleCategory(name=cat, rules=tuple(rules)) for cat, rules in grouped.items()],
    )


def catalog_from_dict(data: dict[str, Any]) -> RuleCatalog:
    """
    Build a catalog from plain data.

    Accepts ``categories`` or, for catalogs exported by older tools,
    ``rules`` as the list of ``{name, rules}`` category entries.

    Raises:
        CatalogError: If the data does not describe a valid catalog.
    """
    if not isinstance(data, dict):
        raise CatalogError("Catalog must be a mapping")

    payload = dict(data)
    if "categories" not in payload and isinstance(payload.get("rules"), list):
        payload["categories"] = payload.pop("rules")

    try:
        return RuleCatalog.model_validate(payload)
    except ValidationError as e:
        raise CatalogError(f"Invalid rule catalog: {e}") from e


def load_catalog(path: Path) -> RuleCatalog:
    """
    Load a catalog from a JSON or YAML file.

    Raises:
        CatalogError: If the file is missing, unreadable or invalid.
    """
    if not path.exists():
        raise CatalogError(f"Catalog file not found: {path}", source=str(path))

    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise CatalogError(f"Could not read catalog {path}: {e}", source=str(path)) from e

    catalog = catalog_from_dict(data)
    logger.debug("Loaded catalog for %s with %d rules from %s", catalog.platform.value, len(catalog), path)
    return catalog


def save_catalog(catalog: RuleCatalog, path: Path) -> None:
    """Write a catalog as YAML (.yaml/.yml) or JSON (anything else)."""
    data = catalog.to_dict()
    try:
        with open(path, "w") as f:
            if path.suffix in (".yaml", ".yml"):
                yaml.safe_dump(data, f, sort_keys=False)
            else:
                json.dump(data, f, indent=2)
    except OSError as e:
        raise CatalogError(f"Could not write catalog {path}: {e}", source=str(path)) from e
