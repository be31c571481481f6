"""
Variance sources for the cost estimator.

The size factor is multiplied by a jitter drawn from ``[1 - r, 1 + r]``.
Where that number comes from is pluggable so tests and reproducible runs
can pin it.
"""

from __future__ import annotations

import random
from typing import Protocol, runtime_checkable


@runtime_checkable
class VarianceSource(Protocol):
    """Produces the jitter multiplier for one estimate."""

    def factor(self, spread: float) -> float:
        """Return a multiplier in ``[1 - spread, 1 + spread]``."""
        ...


class RandomVariance:
    """
    Uniform jitter from a private random generator.

    Args:
        seed: Seed for reproducible sequences; None draws fresh randomness
    """

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def factor(self, spread: float) -> float:
        return 1.0 + self._rng.uniform(-spread, spread)

    def __repr__(self) -> str:
        return f"RandomVariance(seed={self.seed!r})"


class FixedVariance:
    """Always the same multiplier, clamped into the allowed range."""

    def __init__(self, value: float = 1.0) -> None:
        self.value = value

    def factor(self, spread: float) -> float:
        return min(1.0 + spread, max(1.0 - spread, self.value))

    def __repr__(self) -> str:
        return f"FixedVariance({self.value!r})"
