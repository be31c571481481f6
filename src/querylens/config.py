"""
Configuration system for QueryLens.

Environment variables are the primary source, with an optional JSON or
YAML file for local development. Covers:
- Category weights for the overall quality score
- Per-rule enablement and thresholds for the built-in rules
- Cost estimator variance (jitter range and optional seed)
- Formatter settings

Usage:
    from querylens.config import get_config

    config = get_config()

    # Per-rule threshold with fallback to the default_* field
    limit = config.get_rule_threshold("MOD001", "length_threshold")

    # Check if a built-in rule is enabled
    if config.is_rule_enabled("COST004"):
        ...
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from querylens.platforms import Platform

logger = logging.getLogger(__name__)

ENV_PREFIX = "QUERYLENS_"


class CategoryWeights(BaseModel):
    """Weights combining the four category scores into the overall score."""

    model_config = ConfigDict(frozen=True)

    best_practices: float = Field(default=0.25, ge=0.0)
    performance: float = Field(default=0.30, ge=0.0)
    modularization: float = Field(default=0.20, ge=0.0)
    cost: float = Field(default=0.25, ge=0.0)

    def normalized(self) -> "CategoryWeights":
        """Return weights scaled to sum to 1.0 (unchanged if already so)."""
        total = self.best_practices + self.performance + self.modularization + self.cost
        if total <= 0 or abs(total - 1.0) < 1e-9:
            return self
        return CategoryWeights(
            best_practices=self.best_practices / total,
            performance=self.performance / total,
            modularization=self.modularization / total,
            cost=self.cost / total,
        )


class RuleConfig(BaseModel):
    """Configuration for a single built-in rule."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Whether the rule is enabled")
    thresholds: dict[str, int | float] = Field(
        default_factory=dict,
        description="Rule-specific thresholds",
    )


class Config(BaseModel):
    """
    QueryLens configuration.

    Loaded from environment variables and an optional config file.
    """

    model_config = ConfigDict(frozen=True)

    default_platform: Platform = Field(
        default=Platform.BIGQUERY,
        description="Platform used by the CLI when none is given",
    )

    category_weights: CategoryWeights = Field(
        default_factory=CategoryWeights,
        description="Weights of the category scores in the overall score",
    )

    # Default thresholds (can be overridden per-rule)
    default_length_threshold: int = Field(
        default=300,
        description="Query length above which a query without CTEs is flagged",
    )
    default_select_threshold: int = Field(
        default=3,
        description="Number of SELECT keywords above which nesting is flagged",
    )

    rules: dict[str, RuleConfig] = Field(
        default_factory=dict,
        description="Per-rule configurations",
    )

    # Cost estimation
    cost_jitter: float = Field(
        default=0.2,
        ge=0.0,
        lt=1.0,
        description="Half-width of the random size-factor range (0.2 means ±20%)",
    )
    cost_seed: int | None = Field(
        default=None,
        description="Seed for the cost variance source; None draws fresh randomness",
    )

    # Formatting
    format_indent_width: int = Field(
        default=2,
        ge=1,
        description="Indent width passed to the SQL formatter",
    )

    @field_validator("default_platform", mode="before")
    @classmethod
    def _coerce_platform(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Platform.from_string(value)
        return value

    def get_rule_threshold(
        self,
        rule_id: str,
        threshold_name: str,
        default: int | float | None = None,
    ) -> int | float | None:
        """
        Get a threshold value for a rule.

        Lookup order:
        1. Rule-specific threshold in config
        2. Default threshold if name matches a default_* field
        3. Provided default value
        """
        if rule_id in self.rules:
            rule_config = self.rules[rule_id]
            if threshold_name in rule_config.thresholds:
                return rule_config.thresholds[threshold_name]

        default_field = f"default_{threshold_name}"
        if hasattr(self, default_field):
            return getattr(self, default_field)

        return default

    def is_rule_enabled(self, rule_id: str) -> bool:
        """Check if a built-in rule is enabled."""
        if rule_id in self.rules:
            return self.rules[rule_id].enabled
        return True


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_int(value: str | None, default: int | None) -> int | None:
    """Parse integer from environment variable."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Could not parse integer from %r, using %s", value, default)
        return default


def _parse_env_float(value: str | None, default: float) -> float:
    """Parse float from environment variable."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Could not parse float from %r, using %s", value, default)
        return default


_ENV_NAMES = {
    "category_weights": f"{ENV_PREFIX}CATEGORY_WEIGHTS",
    "default_length_threshold": f"{ENV_PREFIX}LENGTH_THRESHOLD",
    "default_select_threshold": f"{ENV_PREFIX}SELECT_THRESHOLD",
    "cost_jitter": f"{ENV_PREFIX}COST_JITTER",
    "cost_seed": f"{ENV_PREFIX}COST_SEED",
    "format_indent_width": f"{ENV_PREFIX}FORMAT_INDENT_WIDTH",
}

_WEIGHT_KEYS = {
    "bp": "best_practices",
    "best_practices": "best_practices",
    "perf": "performance",
    "performance": "performance",
    "mod": "modularization",
    "modularization": "modularization",
    "cost": "cost",
}


def _parse_env_weights(value: str | None) -> CategoryWeights:
    """
    Parse category weights like ``bp=0.25,perf=0.3,mod=0.2,cost=0.25``.

    Unknown keys and unparseable values are logged and ignored.
    """
    if not value:
        return CategoryWeights()

    weights: dict[str, float] = {}
    for item in value.split(","):
        if "=" not in item:
            continue
        key, raw = (part.strip() for part in item.split("=", 1))
        field_name = _WEIGHT_KEYS.get(key.lower())
        if field_name is None:
            logger.warning("Unknown category weight key: %s", key)
            continue
        try:
            weights[field_name] = float(raw)
        except ValueError:
            logger.warning("Could not parse category weight %s=%s", key, raw)
    try:
        return CategoryWeights(**weights)
    except ValidationError as e:
        logger.warning("Ignoring invalid category weights %r: %s", value, e.errors()[0]["msg"])
        return CategoryWeights()


def _drop_invalid(config_kwargs: dict[str, Any]) -> dict[str, Any]:
    """
    Keep only the settings that validate on their own.

    A value outside its field's range is logged and the field keeps its
    default, so one bad variable never stops the config from loading.
    """
    valid: dict[str, Any] = {}
    for name, value in config_kwargs.items():
        try:
            Config(**{name: value})
        except ValidationError as e:
            logger.warning(
                "Ignoring invalid %s: %r (%s)",
                _ENV_NAMES.get(name, name), value, e.errors()[0]["msg"],
            )
            continue
        valid[name] = value
    return valid


def load_config_from_env() -> Config:
    """
    Load configuration from environment variables.

    Environment variable naming convention:
    - QUERYLENS_<SETTING> for global settings
    - QUERYLENS_RULE_<RULE_ID>_<SETTING> for rule-specific settings

    Examples:
    - QUERYLENS_DEFAULT_PLATFORM=snowflake
    - QUERYLENS_CATEGORY_WEIGHTS=bp=0.25,perf=0.3,mod=0.2,cost=0.25
    - QUERYLENS_COST_JITTER=0.1
    - QUERYLENS_COST_SEED=42
    - QUERYLENS_RULE_COST004_ENABLED=false
    - QUERYLENS_RULE_MOD001_LENGTH_THRESHOLD=500
    """
    config_kwargs: dict[str, Any] = {
        "category_weights": _parse_env_weights(
            os.environ.get(_ENV_NAMES["category_weights"])
        ),
        "default_length_threshold": _parse_env_int(
            os.environ.get(_ENV_NAMES["default_length_threshold"]), 300
        ),
        "default_select_threshold": _parse_env_int(
            os.environ.get(_ENV_NAMES["default_select_threshold"]), 3
        ),
        "cost_jitter": _parse_env_float(
            os.environ.get(_ENV_NAMES["cost_jitter"]), 0.2
        ),
        "cost_seed": _parse_env_int(
            os.environ.get(_ENV_NAMES["cost_seed"]), None
        ),
        "format_indent_width": _parse_env_int(
            os.environ.get(_ENV_NAMES["format_indent_width"]), 2
        ),
    }

    platform_str = os.environ.get(f"{ENV_PREFIX}DEFAULT_PLATFORM")
    if platform_str:
        try:
            config_kwargs["default_platform"] = Platform.from_string(platform_str)
        except ValueError as e:
            logger.warning("%s", e)

    # Rule ids never contain underscores, so the first segment is the id
    rules: dict[str, RuleConfig] = {}
    rule_prefix = f"{ENV_PREFIX}RULE_"

    for key, value in os.environ.items():
        if not key.startswith(rule_prefix):
            continue
        parts = key[len(rule_prefix):].split("_", 1)
        if len(parts) != 2:
            continue
        rule_id, setting = parts[0].upper(), parts[1].lower()
        current = rules.get(rule_id, RuleConfig())

        if setting == "enabled":
            rules[rule_id] = current.model_copy(
                update={"enabled": _parse_env_bool(value, True)}
            )
            continue

        thresholds = dict(current.thresholds)
        try:
            thresholds[setting] = float(value) if "." in value else int(value)
        except ValueError:
            logger.warning("Could not parse threshold %s=%s", key, value)
            continue
        rules[rule_id] = current.model_copy(update={"thresholds": thresholds})

    config_kwargs["rules"] = rules

    return Config(**_drop_invalid(config_kwargs))


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Falls back to environment variables if the file is missing or invalid.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        return Config(**(data or {}))
    except Exception as e:
        logger.error("Failed to load config from %s: %s", path, e)
        return load_config_from_env()


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. QUERYLENS_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
