"""Tests for rule catalogs: defaults, editing, and JSON/YAML persistence."""

from __future__ import annotations

import json

import pytest
import yaml

from querylens.analyzer import Category, Severity, default_catalog, load_catalog, save_catalog
from querylens.analyzer.catalog import RuleCatalog, catalog_from_dict
from querylens.exceptions import CatalogError
from querylens.platforms import Platform


@pytest.fixture
def snowflake_catalog() -> RuleCatalog:
    return default_catalog(Platform.SNOWFLAKE)


class TestDefaultCatalog:
    """Test the catalogs built from the registry."""

    def test_bigquery_rule_ids(self):
        catalog = default_catalog(Platform.BIGQUERY)

        assert catalog.rule_ids() == [
            "BP001", "BP002",
            "PERF001", "PERF002", "PERF003",
            "MOD001", "MOD002",
            "COST001", "COST002", "COST003",
        ]

    def test_snowflake_rule_ids(self, snowflake_catalog):
        assert snowflake_catalog.rule_ids() == [
            "BP001", "BP003",
            "PERF001", "PERF002",
            "MOD001", "MOD002", "MOD003",
            "COST001", "COST002", "COST004",
        ]

    def test_every_category_present(self):
        catalog = default_catalog(Platform.DATABRICKS)

        assert [c.name for c in catalog.categories] == list(Category)

    def test_fresh_object_each_call(self):
        first = default_catalog(Platform.BIGQUERY)
        first.disable("BP001")

        assert default_catalog(Platform.BIGQUERY).get("BP001").enabled

    def test_aliases(self):
        assert default_catalog("b").platform == Platform.SNOWFLAKE


class TestCatalogEditing:
    """Test enable/disable, severities and custom rules."""

    def test_disable_and_enable(self, snowflake_catalog):
        snowflake_catalog.disable("COST004")
        assert not snowflake_catalog.get("COST004").enabled
        assert "COST004" not in [r.id for r in snowflake_catalog.enabled_rules(Category.COST)]

        snowflake_catalog.enable("COST004")
        assert snowflake_catalog.get("COST004").enabled

    def test_unknown_rule_raises(self, snowflake_catalog):
        with pytest.raises(CatalogError):
            snowflake_catalog.disable("NOPE")

    def test_custom_ids_increment(self, snowflake_catalog):
        first = snowflake_catalog.add_custom_rule(Category.COST, "First", "one")
        second = snowflake_catalog.add_custom_rule("performance", "Second", "two")

        assert first.id == "CUSTOM-1"
        assert second.id == "CUSTOM-2"
        assert first.custom and second.custom
        assert len(snowflake_catalog) == 12

    def test_custom_rule_needs_name(self, snowflake_catalog):
        with pytest.raises(CatalogError):
            snowflake_catalog.add_custom_rule(Category.COST, "   ")

    def test_custom_rule_default_description(self, snowflake_catalog):
        rule = snowflake_catalog.add_custom_rule(Category.COST, "Only name")

        assert rule.description == "Custom rule"

    def test_remove_custom_rule(self, snowflake_catalog):
        rule = snowflake_catalog.add_custom_rule(Category.COST, "Temp", "temporary")

        snowflake_catalog.remove_rule(rule.id)

        assert rule.id not in snowflake_catalog

    def test_builtin_rules_cannot_be_removed(self, snowflake_catalog):
        with pytest.raises(CatalogError):
            snowflake_catalog.remove_rule("BP001")

    def test_set_severity_from_string(self, snowflake_catalog):
        snowflake_catalog.set_severity("MOD003", "high")

        assert snowflake_catalog.get("MOD003").severity == Severity.HIGH


class TestCatalogPersistence:
    """Test loading and saving catalog files."""

    @pytest.mark.parametrize("suffix", [".json", ".yaml"])
    def test_save_and_load(self, tmp_path, snowflake_catalog, suffix):
        snowflake_catalog.disable("COST004")
        snowflake_catalog.add_custom_rule(Category.COST, "Avoid huge scans", "scans")
        path = tmp_path / f"rules{suffix}"

        save_catalog(snowflake_catalog, path)
        loaded = load_catalog(path)

        assert loaded.platform == Platform.SNOWFLAKE
        assert loaded.rule_ids() == snowflake_catalog.rule_ids()
        assert not loaded.get("COST004").enabled
        assert loaded.get("CUSTOM-1").custom

    def test_yaml_is_plain_data(self, tmp_path, snowflake_catalog):
        path = tmp_path / "rules.yml"

        save_catalog(snowflake_catalog, path)

        data = yaml.safe_load(path.read_text())
        assert data["platform"] == "snowflake"
        assert data["categories"][0]["name"] == "Best Practices"

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="not found"):
            load_catalog(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{not json")

        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_invalid_catalog(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"platform": "oracle"}))

        with pytest.raises(CatalogError, match="Invalid rule catalog"):
            load_catalog(path)

    def test_legacy_rules_key(self):
        catalog = catalog_from_dict({
            "platform": "databricks",
            "rules": [
                {
                    "name": "Cost",
                    "rules": [{"id": "COST001", "name": "Full table scan", "severity": "high"}],
                },
            ],
        })

        assert catalog.rule_ids() == ["COST001"]
        assert catalog.category(Category.BEST_PRACTICES).rules == ()

    def test_non_mapping(self):
        with pytest.raises(CatalogError):
            catalog_from_dict(["not", "a", "mapping"])
