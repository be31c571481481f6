"""Data models for cost estimation."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from querylens.platforms import Platform


class Complexity(str, Enum):
    """
    Ordinal query complexity.

    LOW < MEDIUM < HIGH
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _COMPLEXITY_RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Complexity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Complexity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Complexity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Complexity):
            return NotImplemented
        return self.rank >= other.rank


_COMPLEXITY_RANKS = {Complexity.LOW: 0, Complexity.MEDIUM: 1, Complexity.HIGH: 2}


class CostEstimate(BaseModel):
    """
    Heuristic cost of running a query on one platform.

    ``processing_units`` is platform-specific: abstract units for BigQuery,
    credits for Snowflake and DBUs for Databricks. ``estimated_cost`` is in
    US dollars.
    """

    model_config = ConfigDict(frozen=True)

    platform: Platform
    processing_units: float = Field(default=0.0, ge=0.0)
    estimated_cost: float = Field(default=0.0, ge=0.0)
    data_scanned: str = "0 MB"
    complexity: Complexity = Complexity.LOW
    execution_time: str = "0s"
    execution_seconds: float = Field(default=0.0, ge=0.0)
    recommendations: tuple[str, ...] = ()

    @classmethod
    def empty(cls, platform: Platform) -> "CostEstimate":
        """Estimate for an empty query: nothing scanned, nothing charged."""
        return cls(platform=platform)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
