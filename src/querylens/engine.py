"""
AnalysisService - orchestration layer for QueryLens.

The engines are independent pure functions. This module is the single
place that wires them together for callers that want more than one result
per query (the CLI, batch jobs).

Usage:
    from querylens.engine import AnalysisService

    service = AnalysisService()

    # Single query
    report = service.analyze("SELECT * FROM orders", "bigquery", query_id="orders")

    # Batch: analyze several queries and decide pass/fail
    batch = service.analyze_batch(
        [("q1", sql1), ("q2", sql2)],
        platform="snowflake",
        fail_on="medium",
    )
    if batch.has_failures:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from querylens.analyzer.analyzer import Analyzer
from querylens.analyzer.catalog import RuleCatalog
from querylens.analyzer.models import AnalysisResult, Severity
from querylens.config import Config, get_config
from querylens.converter.converter import ModelConverter
from querylens.converter.models import ConversionResult, ModelType
from querylens.cost.estimator import CostEstimator
from querylens.cost.models import CostEstimate
from querylens.cost.variance import VarianceSource
from querylens.fixer.enhancer import Enhancer
from querylens.fixer.fixer import SyntaxFixer
from querylens.fixer.models import EnhanceResult, FixResult
from querylens.lineage.extractor import SchemaExtractor
from querylens.lineage.models import SchemaGraph
from querylens.migration.models import MigrationResult
from querylens.migration.pipeline import Migrator
from querylens.platforms import Platform

logger = logging.getLogger(__name__)

FAIL_ON_CHOICES = ("high", "medium", "low", "none")


@dataclass(frozen=True)
class AnalysisReport:
    """Analysis of one query, labelled for batch output."""

    result: AnalysisResult
    query_id: str | None = None
    file_path: str | None = None

    @property
    def score(self) -> int:
        return self.result.summary.score

    def count(self, severity: Severity) -> int:
        return len(self.result.issues_by_severity(severity))

    def to_dict(self) -> dict[str, Any]:
        return {
            "query_id": self.query_id,
            "file_path": self.file_path,
            **self.result.to_dict(),
        }


@dataclass(frozen=True)
class BatchReport:
    """
    Report for a batch of analyses (CI use case).

    ``fail_on`` is the lowest issue severity that fails the batch, or
    "none" to never fail.
    """

    reports: tuple[AnalysisReport, ...] = ()
    fail_on: str = "high"

    @property
    def total_queries(self) -> int:
        return len(self.reports)

    @property
    def high_count(self) -> int:
        return sum(r.count(Severity.HIGH) for r in self.reports)

    @property
    def medium_count(self) -> int:
        return sum(r.count(Severity.MEDIUM) for r in self.reports)

    @property
    def low_count(self) -> int:
        return sum(r.count(Severity.LOW) for r in self.reports)

    @property
    def invalid_count(self) -> int:
        return sum(1 for r in self.reports if not r.result.valid)

    @property
    def average_score(self) -> float:
        valid = [r.score for r in self.reports if r.result.valid]
        if not valid:
            return 0.0
        return round(sum(valid) / len(valid), 1)

    @property
    def has_failures(self) -> bool:
        """Check if any report has an issue at or above the fail_on severity."""
        if self.fail_on == "none":
            return False
        if self.fail_on == "high":
            return self.high_count > 0
        if self.fail_on == "medium":
            return self.high_count > 0 or self.medium_count > 0
        if self.fail_on == "low":
            return self.high_count > 0 or self.medium_count > 0 or self.low_count > 0
        return False

    def to_summary_dict(self) -> dict[str, Any]:
        """Export summary as dictionary for JSON output."""
        return {
            "total_queries": self.total_queries,
            "invalid_count": self.invalid_count,
            "high_count": self.high_count,
            "medium_count": self.medium_count,
            "low_count": self.low_count,
            "average_score": self.average_score,
            "fail_on": self.fail_on,
            "has_failures": self.has_failures,
        }


class AnalysisService:
    """
    Orchestration service for QueryLens.

    Holds one instance of each engine built from the same Config so that
    thresholds, weights and cost settings agree across results.
    """

    def __init__(
        self,
        config: Config | None = None,
        variance: VarianceSource | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            config: Configuration instance (if None, uses get_config())
            variance: Jitter source for cost estimates
        """
        self.config = config if config is not None else get_config()
        self.analyzer = Analyzer(config=self.config)
        self.extractor = SchemaExtractor()
        self.migrator = Migrator()
        self.fixer = SyntaxFixer()
        self.enhancer = Enhancer(config=self.config, fixer=self.fixer)
        self.estimator = CostEstimator(config=self.config, variance=variance)
        self.converter = ModelConverter()

    def analyze(
        self,
        sql: str,
        platform: Platform | str,
        catalog: RuleCatalog | None = None,
        query_id: str | None = None,
        file_path: str | None = None,
    ) -> AnalysisReport:
        result = self.analyzer.analyze(sql, platform, catalog)
        return AnalysisReport(result=result, query_id=query_id, file_path=file_path)

    def analyze_batch(
        self,
        queries: Iterable[tuple[str, str]],
        platform: Platform | str,
        catalog: RuleCatalog | None = None,
        fail_on: str = "high",
    ) -> BatchReport:
        """
        Analyze ``(query_id, sql)`` pairs in order.

        Args:
            queries: Pairs of identifier and SQL text
            platform: Dialect for every query in the batch
            catalog: Optional rule catalog applied to every query
            fail_on: Lowest severity that fails the batch (or "none")

        Returns:
            BatchReport with one AnalysisReport per query
        """
        if fail_on not in FAIL_ON_CHOICES:
            raise ValueError(f"fail_on must be one of {', '.join(FAIL_ON_CHOICES)}, got {fail_on!r}")

        platform = Platform.from_string(platform)
        reports = tuple(
            self.analyze(sql, platform, catalog, query_id=query_id)
            for query_id, sql in queries
        )
        logger.debug("Analyzed batch of %d %s queries", len(reports), platform.value)
        return BatchReport(reports=reports, fail_on=fail_on)

    def extract_schema(self, sql: str, platform: Platform | str) -> SchemaGraph:
        return self.extractor.extract(sql, platform)

    def migrate(self, sql: str, source: Platform | str, target: Platform | str) -> MigrationResult:
        return self.migrator.migrate(sql, source, target)

    def fix(self, sql: str, platform: Platform | str) -> FixResult:
        return self.fixer.fix(sql, platform)

    def enhance(self, sql: str, platform: Platform | str, fix_syntax: bool = True) -> EnhanceResult:
        return self.enhancer.enhance(sql, platform, fix_syntax)

    def estimate_cost(self, sql: str, platform: Platform | str) -> CostEstimate:
        return self.estimator.estimate(sql, platform)

    def convert(
        self,
        sql: str,
        model_type: ModelType | str,
        platform: Platform | str,
    ) -> ConversionResult:
        return self.converter.convert(sql, model_type, platform)
