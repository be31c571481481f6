"""
Heuristic cost estimation.

A query is profiled once (complexity, jittered size factor, base
processing units and execution seconds) and the profile is priced by the
platform's cost model:

    BigQuery    GB scanned at $5 per TB
    Snowflake   2 credits/hour (Medium warehouse) at $2.50 per credit
    Databricks  DBUs (units x multiplier x cluster size) at $0.55/DBU-hour

Each model scales its estimate up or down for patterns it can see in the
text and recommends the cheaper pattern when it is absent.
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import ClassVar, Mapping

from querylens.config import Config, get_config
from querylens.cost.complexity import base_size_factor, classify, count_joins, has_multiple_subqueries
from querylens.cost.models import Complexity, CostEstimate
from querylens.cost.variance import RandomVariance, VarianceSource
from querylens.platforms import Platform

logger = logging.getLogger(__name__)

# (base units, units per size, base seconds, seconds per size)
BASE_RATES: Mapping[Complexity, tuple[float, float, float, float]] = MappingProxyType({
    Complexity.HIGH: (4.0, 0.8, 45.0, 2.5),
    Complexity.MEDIUM: (1.0, 0.4, 8.0, 1.2),
    Complexity.LOW: (0.2, 0.1, 1.0, 0.5),
})

_SAMPLE = re.compile(r"\bsample\s*\(")


def format_duration(seconds: float) -> str:
    """``"2m 5s"`` from a minute up, ``"42s"`` below."""
    if seconds >= 60:
        return f"{int(seconds // 60)}m {int(seconds % 60)}s"
    return f"{int(seconds)}s"


def format_megabytes(megabytes: float) -> str:
    if megabytes >= 1000:
        return f"{megabytes / 1000:.2f} GB"
    return f"{math.floor(megabytes + 0.5)} MB"


@dataclass(frozen=True)
class QueryProfile:
    """Platform-independent measurements of one query."""

    sql: str
    lowered: str
    complexity: Complexity
    size: float
    processing_units: float
    execution_seconds: float

    @property
    def execution_hours(self) -> float:
        return self.execution_seconds / 3600

    def mentions(self, fragment: str) -> bool:
        return fragment in self.lowered

    @property
    def select_star(self) -> bool:
        return self.mentions("select *")

    @property
    def has_where(self) -> bool:
        return self.mentions("where")


class CostModel(ABC):
    """Prices a QueryProfile for one platform."""

    platform: ClassVar[Platform]

    @abstractmethod
    def estimate(self, profile: QueryProfile) -> CostEstimate:
        pass

    def _result(
        self,
        profile: QueryProfile,
        processing_units: float,
        estimated_cost: float,
        data_scanned: str,
        recommendations: list[str],
    ) -> CostEstimate:
        return CostEstimate(
            platform=self.platform,
            processing_units=max(0.0, processing_units),
            estimated_cost=max(0.0, estimated_cost),
            data_scanned=data_scanned,
            complexity=profile.complexity,
            execution_time=format_duration(profile.execution_seconds),
            execution_seconds=profile.execution_seconds,
            recommendations=tuple(recommendations),
        )


class BigQueryCostModel(CostModel):
    """On-demand pricing by bytes scanned."""

    platform = Platform.BIGQUERY
    price_per_tb = 5.0

    # (base GB, GB per size)
    scan_rates: ClassVar[Mapping[Complexity, tuple[float, float]]] = MappingProxyType({
        Complexity.HIGH: (5.0, 3.2),
        Complexity.MEDIUM: (0.5, 1.5),
        Complexity.LOW: (0.05, 0.3),
    })

    def estimate(self, profile: QueryProfile) -> CostEstimate:
        base, per_size = self.scan_rates[profile.complexity]
        gigabytes = base + profile.size * per_size

        partitioned = profile.mentions("partition by") or profile.mentions("_partitiontime")
        clustered = profile.mentions("cluster by")

        if profile.select_star:
            gigabytes *= 1.8
        if not profile.has_where:
            gigabytes *= 2.5
        if partitioned:
            gigabytes *= 0.4
        if clustered:
            gigabytes *= 0.7

        if gigabytes >= 1:
            data_scanned = f"{gigabytes:.2f} GB"
        else:
            data_scanned = f"{math.floor(gigabytes * 1000 + 0.5)} MB"

        recommendations = []
        if profile.select_star:
            recommendations.append("Select only needed columns instead of SELECT * to reduce data processed")
        if not profile.has_where:
            recommendations.append("Add WHERE filters to reduce the amount of data scanned")
        if not partitioned:
            recommendations.append("Use partitioned tables to reduce data scanned by up to 80%")
        if profile.complexity == Complexity.HIGH and not clustered:
            recommendations.append(
                "Consider using clustered tables for better filter performance and reduced costs"
            )
        if has_multiple_subqueries(profile.lowered):
            recommendations.append("Replace nested subqueries with CTEs for better query optimization")
        if profile.mentions("order by") and not profile.mentions("limit"):
            recommendations.append("Add LIMIT clause when using ORDER BY to reduce processing")

        return self._result(
            profile,
            processing_units=round(profile.processing_units, 3),
            estimated_cost=round(gigabytes / 1000 * self.price_per_tb, 4),
            data_scanned=data_scanned,
            recommendations=recommendations,
        )


class SnowflakeCostModel(CostModel):
    """Credit pricing on a Medium warehouse."""

    platform = Platform.SNOWFLAKE
    credits_per_hour = 2.0
    price_per_credit = 2.5

    scan_scale: ClassVar[Mapping[Complexity, float]] = MappingProxyType({
        Complexity.HIGH: 4.0,
        Complexity.MEDIUM: 2.0,
        Complexity.LOW: 1.0,
    })

    def estimate(self, profile: QueryProfile) -> CostEstimate:
        sampled = bool(_SAMPLE.search(profile.lowered))
        clustered = profile.mentions("cluster by")

        multiplier = 1.0
        if profile.select_star:
            multiplier *= 1.45
        if not profile.has_where:
            multiplier *= 1.8
        if sampled:
            multiplier *= 0.4
        if count_joins(profile.lowered) >= 3:
            multiplier *= 1.6
        if clustered:
            multiplier *= 0.75

        credits = self.credits_per_hour * profile.execution_hours * multiplier
        megabytes = profile.size * 300 * self.scan_scale[profile.complexity]

        recommendations = []
        if profile.select_star:
            recommendations.append("Select only needed columns to reduce credit usage")
        if not profile.has_where:
            recommendations.append("Add WHERE clauses to filter data and reduce processing time")
        if profile.complexity == Complexity.HIGH and not sampled:
            recommendations.append("Use SAMPLE clause for exploratory queries to significantly reduce costs")
        if profile.complexity == Complexity.HIGH and not clustered:
            recommendations.append("Use clustering on tables to improve filter and join performance")
        if has_multiple_subqueries(profile.lowered):
            recommendations.append("Replace nested subqueries with CTEs for better query performance")
        size = "a larger" if profile.complexity == Complexity.HIGH else "a smaller"
        recommendations.append(f"Consider using {size} warehouse size for this query")

        return self._result(
            profile,
            processing_units=round(credits, 3),
            estimated_cost=round(credits * self.price_per_credit, 3),
            data_scanned=format_megabytes(megabytes),
            recommendations=recommendations,
        )


class DatabricksCostModel(CostModel):
    """All-purpose compute priced per DBU-hour."""

    platform = Platform.DATABRICKS
    price_per_dbu_hour = 0.55

    cluster_sizes: ClassVar[Mapping[Complexity, int]] = MappingProxyType({
        Complexity.HIGH: 4,
        Complexity.MEDIUM: 2,
        Complexity.LOW: 1,
    })
    scan_scale: ClassVar[Mapping[Complexity, float]] = MappingProxyType({
        Complexity.HIGH: 3.5,
        Complexity.MEDIUM: 1.8,
        Complexity.LOW: 0.9,
    })

    def estimate(self, profile: QueryProfile) -> CostEstimate:
        zordered = profile.mentions("zorder by")
        delta = profile.mentions("delta")
        cached = profile.mentions("cache")

        multiplier = 1.0
        if profile.select_star:
            multiplier *= 1.3
        if not profile.has_where:
            multiplier *= 1.7
        if zordered:
            multiplier *= 0.7
        if profile.mentions("optimize"):
            multiplier *= 0.75
        if delta:
            multiplier *= 0.8
        if cached:
            multiplier *= 0.6

        dbus = profile.processing_units * multiplier * self.cluster_sizes[profile.complexity]
        cost = dbus * self.price_per_dbu_hour * profile.execution_hours

        megabytes = profile.size * 250 * self.scan_scale[profile.complexity]
        if delta:
            megabytes *= 0.6

        high = profile.complexity == Complexity.HIGH
        recommendations = []
        if profile.select_star:
            recommendations.append("Select only needed columns to reduce DBU usage and processing time")
        if not profile.has_where:
            recommendations.append("Add filters to reduce the amount of data processed")
        if not delta:
            recommendations.append("Use Delta tables for better performance, reliability, and cost efficiency")
        if high and not zordered:
            recommendations.append("Use ZORDER BY on frequently filtered columns for better data organization")
        if high and not cached:
            recommendations.append("Use CACHE TABLE for frequently accessed data to improve performance")
        if high:
            recommendations.append("Consider using Photon execution engine for compute-intensive workloads")

        return self._result(
            profile,
            processing_units=round(dbus, 3),
            estimated_cost=round(cost, 3),
            data_scanned=format_megabytes(megabytes),
            recommendations=recommendations,
        )


COST_MODELS: Mapping[Platform, CostModel] = MappingProxyType({
    Platform.BIGQUERY: BigQueryCostModel(),
    Platform.SNOWFLAKE: SnowflakeCostModel(),
    Platform.DATABRICKS: DatabricksCostModel(),
})


class CostEstimator:
    """
    Profiles queries and prices them per platform.

    Example:
        estimator = CostEstimator(variance=FixedVariance(1.0))
        estimate = estimator.estimate("SELECT * FROM events", Platform.BIGQUERY)
        print(estimate.estimated_cost, estimate.recommendations)

    Args:
        config: Jitter range and seed (defaults to get_config())
        variance: Jitter source; defaults to RandomVariance(config.cost_seed)
        models: Cost model per platform
    """

    def __init__(
        self,
        config: Config | None = None,
        variance: VarianceSource | None = None,
        models: Mapping[Platform, CostModel] = COST_MODELS,
    ) -> None:
        self.config = config if config is not None else get_config()
        self.variance = variance if variance is not None else RandomVariance(self.config.cost_seed)
        self.models = models

    def profile(self, sql: str) -> QueryProfile:
        complexity = classify(sql)
        size = base_size_factor(sql) * self.variance.factor(self.config.cost_jitter)
        base_units, units_per_size, base_seconds, seconds_per_size = BASE_RATES[complexity]
        return QueryProfile(
            sql=sql,
            lowered=sql.lower(),
            complexity=complexity,
            size=size,
            processing_units=base_units + size * units_per_size,
            execution_seconds=base_seconds + size * seconds_per_size,
        )

    def estimate(self, sql: str, platform: Platform | str) -> CostEstimate:
        platform = Platform.from_string(platform)

        if not sql or not sql.strip():
            return CostEstimate.empty(platform)

        profile = self.profile(sql)
        logger.debug(
            "Profiled %s query: complexity=%s size=%.2f",
            platform.value, profile.complexity.value, profile.size,
        )
        return self.models[platform].estimate(profile)


def estimate_cost(
    sql: str,
    platform: Platform | str,
    variance: VarianceSource | None = None,
) -> CostEstimate:
    """Estimate the cost of ``sql``. See :class:`CostEstimator`."""
    return CostEstimator(variance=variance).estimate(sql, platform)
