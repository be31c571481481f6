"""
Tests for the AnalysisService orchestration layer.

These tests verify:
- Single-query reports carry their labels
- Batch severity counts, averages and fail_on semantics
- The service delegates to every engine with one shared Config
"""

from __future__ import annotations

import pytest

from querylens.analyzer.models import Severity
from querylens.config import Config
from querylens.cost import Complexity, FixedVariance
from querylens.engine import AnalysisService, BatchReport
from querylens.platforms import Platform

WIDE = "SELECT * FROM huge_table"  # BP001 (medium), COST001 (high): 94
SORTED = "SELECT id FROM t WHERE id = 1 ORDER BY id"  # COST002 (medium): 98
CLEAN = "SELECT id FROM t WHERE id = 1"  # 100


@pytest.fixture
def service() -> AnalysisService:
    return AnalysisService(config=Config(), variance=FixedVariance(1.0))


# =============================================================================
# Single queries
# =============================================================================


class TestAnalyze:
    """AnalysisService.analyze()."""

    def test_report(self, service):
        report = service.analyze(WIDE, "bigquery", query_id="wide", file_path="models/wide.sql")

        assert report.score == 94
        assert report.count(Severity.HIGH) == 1
        assert report.count(Severity.MEDIUM) == 1
        assert report.count(Severity.LOW) == 0

    def test_to_dict(self, service):
        data = service.analyze(WIDE, Platform.BIGQUERY, query_id="wide").to_dict()

        assert data["query_id"] == "wide"
        assert data["file_path"] is None
        assert data["platform"] == "bigquery"
        assert data["summary"]["score"] == 94


# =============================================================================
# Batches
# =============================================================================


class TestBatch:
    """AnalysisService.analyze_batch() and BatchReport."""

    def test_counts_and_average(self, service):
        batch = service.analyze_batch(
            [("wide", WIDE), ("sorted", SORTED), ("clean", CLEAN)],
            "bigquery",
        )

        assert batch.total_queries == 3
        assert [r.query_id for r in batch.reports] == ["wide", "sorted", "clean"]
        assert batch.high_count == 1
        assert batch.medium_count == 2
        assert batch.low_count == 0
        assert batch.average_score == pytest.approx(97.3)

    @pytest.mark.parametrize(
        ("fail_on", "expected"),
        [("high", False), ("medium", True), ("low", True), ("none", False)],
    )
    def test_fail_on_medium_issue(self, service, fail_on, expected):
        batch = service.analyze_batch([("sorted", SORTED), ("clean", CLEAN)], "bigquery", fail_on=fail_on)

        assert batch.has_failures is expected

    def test_high_issue_fails_default(self, service):
        assert service.analyze_batch([("wide", WIDE)], "bigquery").has_failures

    def test_clean_batch_passes_strictest(self, service):
        assert not service.analyze_batch([("clean", CLEAN)], "bigquery", fail_on="low").has_failures

    def test_invalid_queries_excluded_from_average(self, service):
        batch = service.analyze_batch([("empty", "  "), ("clean", CLEAN)], "bigquery")

        assert batch.invalid_count == 1
        assert batch.average_score == 100.0

    def test_empty_batch(self):
        batch = BatchReport()

        assert batch.average_score == 0.0
        assert not batch.has_failures

    def test_rejects_unknown_fail_on(self, service):
        with pytest.raises(ValueError, match="fail_on"):
            service.analyze_batch([("clean", CLEAN)], "bigquery", fail_on="critical")

    def test_summary_dict(self, service):
        summary = service.analyze_batch([("wide", WIDE)], "bq", fail_on="none").to_summary_dict()

        assert summary == {
            "total_queries": 1,
            "invalid_count": 0,
            "high_count": 1,
            "medium_count": 1,
            "low_count": 0,
            "average_score": 94.0,
            "fail_on": "none",
            "has_failures": False,
        }


# =============================================================================
# Delegation
# =============================================================================


class TestDelegation:
    """The remaining engines are reachable through the service."""

    def test_extract_schema(self, service):
        graph = service.extract_schema("SELECT o.id FROM orders o", "bigquery")

        assert graph.table_ids == ["o"]

    def test_migrate(self, service):
        result = service.migrate("SELECT id FROM t", "bigquery", "bigquery")

        assert result.converted_query == "SELECT id FROM t"
        assert result.compatibility_score == 100

    def test_fix(self, service):
        assert service.fix("select id form users", "bigquery").fixed_query == "SELECT id FROM users;"

    def test_enhance(self, service):
        assert "FROM users" in service.enhance("select id from users", "bigquery").formatted_query

    def test_estimate_cost(self, service):
        estimate = service.estimate_cost(CLEAN, "snowflake")

        assert estimate.complexity == Complexity.LOW
        assert estimate.data_scanned == "840 MB"

    def test_convert(self, service):
        result = service.convert("SELECT id FROM users", "dbt", "snowflake")

        assert result.success
        assert result.model_name == "stg_users"

    def test_engines_share_config(self):
        config = Config(format_indent_width=4)
        service = AnalysisService(config=config)

        assert service.analyzer.config is config
        assert service.enhancer.config is config
        assert service.estimator.config is config
