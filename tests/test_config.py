"""Tests for configuration loading from the environment and files."""

from __future__ import annotations

import json

import pytest

from querylens.analyzer import analyze
from querylens.config import (
    CategoryWeights,
    Config,
    get_config,
    load_config_from_env,
    load_config_from_file,
    reset_config,
)
from querylens.cost import estimate_cost
from querylens.platforms import Platform


class TestEnvironment:
    """Test QUERYLENS_* environment variables."""

    def test_defaults(self):
        config = load_config_from_env()

        assert config.default_platform == Platform.BIGQUERY
        assert config.cost_jitter == 0.2
        assert config.cost_seed is None
        assert config.format_indent_width == 2
        assert config.category_weights.performance == 0.30

    def test_platform_and_seed(self, monkeypatch):
        monkeypatch.setenv("QUERYLENS_DEFAULT_PLATFORM", "sf")
        monkeypatch.setenv("QUERYLENS_COST_SEED", "42")

        config = load_config_from_env()

        assert config.default_platform == Platform.SNOWFLAKE
        assert config.cost_seed == 42

    def test_unknown_platform_is_ignored(self, monkeypatch):
        monkeypatch.setenv("QUERYLENS_DEFAULT_PLATFORM", "oracle")

        assert load_config_from_env().default_platform == Platform.BIGQUERY

    def test_category_weights(self, monkeypatch):
        monkeypatch.setenv("QUERYLENS_CATEGORY_WEIGHTS", "bp=0.4,perf=0.2,mod=0.2,cost=0.2")

        weights = load_config_from_env().category_weights

        assert weights.best_practices == 0.4
        assert weights.performance == 0.2

    def test_rule_settings(self, monkeypatch):
        monkeypatch.setenv("QUERYLENS_RULE_COST004_ENABLED", "false")
        monkeypatch.setenv("QUERYLENS_RULE_MOD001_LENGTH_THRESHOLD", "500")

        config = load_config_from_env()

        assert not config.is_rule_enabled("COST004")
        assert config.is_rule_enabled("BP001")
        assert config.get_rule_threshold("MOD001", "length_threshold") == 500

    def test_bad_integer_falls_back(self, monkeypatch):
        monkeypatch.setenv("QUERYLENS_SELECT_THRESHOLD", "lots")

        assert load_config_from_env().default_select_threshold == 3

    def test_out_of_range_value_keeps_default(self, monkeypatch, caplog):
        monkeypatch.setenv("QUERYLENS_COST_JITTER", "1.5")
        monkeypatch.setenv("QUERYLENS_FORMAT_INDENT_WIDTH", "0")
        monkeypatch.setenv("QUERYLENS_COST_SEED", "7")

        config = load_config_from_env()

        assert config.cost_jitter == 0.2
        assert config.format_indent_width == 2
        assert config.cost_seed == 7
        assert "QUERYLENS_COST_JITTER" in caplog.text

    def test_negative_weight_keeps_default_weights(self, monkeypatch):
        monkeypatch.setenv("QUERYLENS_CATEGORY_WEIGHTS", "bp=-1,perf=0.5")

        assert load_config_from_env().category_weights == CategoryWeights()

    def test_bad_environment_does_not_break_analysis(self, monkeypatch):
        monkeypatch.setenv("QUERYLENS_COST_JITTER", "1.5")

        result = analyze("SELECT * FROM t", Platform.BIGQUERY)
        estimate = estimate_cost("SELECT a FROM t", Platform.BIGQUERY)

        assert result.valid
        assert estimate.estimated_cost >= 0


class TestConfigFile:
    """Test file-based configuration."""

    def test_json_file(self, tmp_path):
        path = tmp_path / "querylens.json"
        path.write_text(json.dumps({"default_platform": "databricks", "cost_seed": 7}))

        config = load_config_from_file(path)

        assert config.default_platform == Platform.DATABRICKS
        assert config.cost_seed == 7

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "querylens.yaml"
        path.write_text("default_platform: C\nformat_indent_width: 4\n")

        config = load_config_from_file(path)

        assert config.default_platform == Platform.DATABRICKS
        assert config.format_indent_width == 4

    def test_missing_file_uses_environment(self, tmp_path):
        config = load_config_from_file(tmp_path / "missing.yaml")

        assert config == load_config_from_env()

    def test_config_file_env(self, tmp_path, monkeypatch):
        path = tmp_path / "querylens.json"
        path.write_text(json.dumps({"default_platform": "snowflake"}))
        monkeypatch.setenv("QUERYLENS_CONFIG_FILE", str(path))
        reset_config()

        assert get_config().default_platform == Platform.SNOWFLAKE


class TestConfigModel:
    """Test Config itself."""

    def test_cached(self):
        assert get_config() is get_config()

    def test_frozen(self):
        with pytest.raises(Exception):
            Config().cost_seed = 3  # type: ignore[misc]

    def test_jitter_bounds(self):
        with pytest.raises(ValueError):
            Config(cost_jitter=1.5)
