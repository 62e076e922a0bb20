"""
Base classes for curve interpolation methods.
"""
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np


class Interpolator(ABC):
    """Interpolates curve ordinates (zero rates, spreads, hazard rates, prices).

    Every method is linear in the ordinates, so an interpolated value is a
    weighted sum ``weights(t) @ values``. The weights double as the
    derivative of the interpolated value with respect to each ordinate.
    """

    def __init__(self, pillars: Sequence[float], values: Sequence[float]):
        """
        Initialize interpolator.

        Args:
            pillars: Time to maturity points (in years)
            values: Ordinates at the pillars
        """
        if len(pillars) != len(values):
            raise ValueError("Pillars and values must have same length")
        if len(pillars) < 1:
            raise ValueError("Need at least 1 point for interpolation")

        order = np.argsort(np.asarray(pillars, dtype=float), kind="stable")
        self.pillars = np.asarray(pillars, dtype=float)[order]
        self.values = np.asarray(values, dtype=float)[order]

        if len(np.unique(self.pillars)) != len(self.pillars):
            raise ValueError("Duplicate pillar times not allowed")

    @abstractmethod
    def weights(self, t: float) -> np.ndarray:
        """Weights of each ordinate in the interpolated value at time t."""
        pass

    def interpolate(self, t: float) -> float:
        """Interpolate value at time t."""
        return float(self.weights(t) @ self.values)

    def _one_hot(self, index: int) -> np.ndarray:
        w = np.zeros(len(self.pillars))
        w[index] = 1.0
        return w

    def _bracket(self, t: float) -> int:
        """Index i such that pillars[i] <= t < pillars[i + 1]."""
        return int(np.searchsorted(self.pillars, t, side="right") - 1)
