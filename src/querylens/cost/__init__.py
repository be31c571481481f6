"""Heuristic per-platform query cost estimation."""

from querylens.cost.complexity import base_size_factor, classify
from querylens.cost.estimator import (
    COST_MODELS,
    BigQueryCostModel,
    CostEstimator,
    CostModel,
    DatabricksCostModel,
    QueryProfile,
    SnowflakeCostModel,
    estimate_cost,
)
from querylens.cost.models import Complexity, CostEstimate
from querylens.cost.variance import FixedVariance, RandomVariance, VarianceSource

__all__ = [
    "COST_MODELS",
    "BigQueryCostModel",
    "Complexity",
    "CostEstimate",
    "CostEstimator",
    "CostModel",
    "DatabricksCostModel",
    "FixedVariance",
    "QueryProfile",
    "RandomVariance",
    "SnowflakeCostModel",
    "VarianceSource",
    "base_size_factor",
    "classify",
    "estimate_cost",
]
