"""
Tests for cost estimation.

These tests verify:
- Complexity classification and its ordering
- Variance sources stay inside the jitter range
- Per-platform recommendations
- Empty queries cost nothing
"""

from __future__ import annotations

import pytest

from querylens.config import Config
from querylens.cost import (
    Complexity,
    CostEstimate,
    CostEstimator,
    FixedVariance,
    RandomVariance,
    base_size_factor,
    classify,
    estimate_cost,
)
from querylens.cost.estimator import format_duration, format_megabytes
from querylens.platforms import Platform


@pytest.fixture
def estimator() -> CostEstimator:
    """Estimator with the jitter pinned to 1.0."""
    return CostEstimator(variance=FixedVariance(1.0))


# =============================================================================
# Complexity
# =============================================================================


class TestComplexity:
    """classify() thresholds."""

    def test_simple_select_is_low(self):
        assert classify("SELECT a FROM t") == Complexity.LOW

    def test_aggregate_is_medium(self):
        assert classify("SELECT COUNT(*) FROM t") == Complexity.MEDIUM

    def test_union_is_medium(self):
        assert classify("SELECT a FROM t UNION ALL SELECT a FROM u") == Complexity.MEDIUM

    def test_long_query_is_medium(self):
        assert classify("SELECT " + "a" * 600 + " FROM t") == Complexity.MEDIUM

    def test_ranking_window_is_high(self):
        assert classify("SELECT RANK() OVER (ORDER BY a) FROM t") == Complexity.HIGH

    def test_three_joins_is_high(self):
        sql = "SELECT a FROM t JOIN u ON t.id = u.id JOIN v ON u.id = v.id JOIN w ON v.id = w.id"

        assert classify(sql) == Complexity.HIGH

    def test_nested_subqueries_are_high(self):
        assert classify("SELECT a FROM (SELECT a FROM (SELECT a FROM t) x) y") == Complexity.HIGH

    def test_ordering(self):
        assert Complexity.LOW < Complexity.MEDIUM < Complexity.HIGH
        assert Complexity.HIGH >= Complexity.HIGH
        assert max([Complexity.MEDIUM, Complexity.HIGH, Complexity.LOW]) == Complexity.HIGH

    def test_size_factor(self):
        # one source, two columns, two WHERE conditions
        assert base_size_factor("SELECT a, b FROM t WHERE a = 1 AND b = 2") == pytest.approx(3.6)


# =============================================================================
# Variance
# =============================================================================


class TestVariance:
    """Jitter sources."""

    def test_fixed_is_clamped(self):
        assert FixedVariance(5.0).factor(0.2) == pytest.approx(1.2)
        assert FixedVariance(0.0).factor(0.2) == pytest.approx(0.8)
        assert FixedVariance(1.05).factor(0.2) == pytest.approx(1.05)

    def test_random_is_reproducible(self):
        first = [RandomVariance(7).factor(0.2) for _ in range(3)]
        second = [RandomVariance(7).factor(0.2) for _ in range(3)]

        assert first == second

    def test_random_stays_in_range(self):
        source = RandomVariance(11)

        for _ in range(200):
            assert 0.8 <= source.factor(0.2) <= 1.2

    def test_seed_from_config(self):
        config = Config(cost_seed=42)

        first = CostEstimator(config=config).estimate("SELECT a FROM t", Platform.BIGQUERY)
        second = CostEstimator(config=config).estimate("SELECT a FROM t", Platform.BIGQUERY)

        assert first == second


# =============================================================================
# Estimates
# =============================================================================


class TestEstimates:
    """Platform cost models."""

    def test_empty_query(self, estimator):
        result = estimator.estimate("   ", "bigquery")

        assert result == CostEstimate.empty(Platform.BIGQUERY)
        assert result.estimated_cost == 0.0
        assert result.data_scanned == "0 MB"
        assert result.recommendations == ()

    def test_bigquery_select_star(self, estimator):
        result = estimator.estimate("SELECT * FROM huge_table", Platform.BIGQUERY)

        assert result.complexity >= Complexity.LOW
        assert result.data_scanned == "3.33 GB"
        assert result.execution_time == "2s"
        assert "Select only needed columns instead of SELECT * to reduce data processed" in result.recommendations
        assert "Add WHERE filters to reduce the amount of data scanned" in result.recommendations

    def test_bigquery_partitioned_filter(self, estimator):
        sql = "SELECT a FROM t WHERE _PARTITIONTIME > '2024-01-01'"

        result = estimator.estimate(sql, Platform.BIGQUERY)

        assert result.recommendations == ()

    def test_snowflake_simple_query(self, estimator):
        result = estimator.estimate("SELECT id FROM t WHERE id = 1", Platform.SNOWFLAKE)

        assert result.complexity == Complexity.LOW
        assert result.data_scanned == "840 MB"
        assert result.recommendations == ("Consider using a smaller warehouse size for this query",)

    def test_snowflake_high_complexity(self, estimator):
        result = estimator.estimate("SELECT RANK() OVER (ORDER BY a) FROM t", Platform.SNOWFLAKE)

        assert "Consider using a larger warehouse size for this query" in result.recommendations
        assert "Use SAMPLE clause for exploratory queries to significantly reduce costs" in result.recommendations

    def test_databricks_simple_query(self, estimator):
        result = estimator.estimate("SELECT id FROM t WHERE id = 1", Platform.DATABRICKS)

        assert result.data_scanned == "630 MB"
        assert result.recommendations == (
            "Use Delta tables for better performance, reliability, and cost efficiency",
        )

    def test_databricks_high_complexity(self, estimator):
        result = estimator.estimate("SELECT RANK() OVER (ORDER BY a) FROM t", Platform.DATABRICKS)

        assert "Consider using Photon execution engine for compute-intensive workloads" in result.recommendations

    @pytest.mark.parametrize("platform", list(Platform))
    def test_costs_are_non_negative(self, estimator, platform):
        result = estimator.estimate("SELECT * FROM a JOIN b ON a.id = b.id", platform)

        assert result.platform == platform
        assert result.estimated_cost >= 0
        assert result.processing_units >= 0

    def test_select_star_costs_more(self, estimator):
        narrow = estimator.estimate("SELECT id FROM t", Platform.BIGQUERY)
        wide = estimator.estimate("SELECT * FROM t", Platform.BIGQUERY)

        assert wide.estimated_cost >= narrow.estimated_cost

    def test_module_function(self):
        result = estimate_cost("SELECT a FROM t", "sf", variance=FixedVariance())

        assert result.platform == Platform.SNOWFLAKE


class TestFormatting:
    """Human-readable sizes and durations."""

    def test_duration(self):
        assert format_duration(125) == "2m 5s"
        assert format_duration(42.9) == "42s"

    def test_megabytes(self):
        assert format_megabytes(1500) == "1.50 GB"
        assert format_megabytes(12.4) == "12 MB"
