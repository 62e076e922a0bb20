"""
Linear interpolation methods for curve ordinates.
"""
import numpy as np

from .base import Interpolator


class LinearInterpolator(Interpolator):
    """Linear interpolation on the ordinates with flat extrapolation."""

    def weights(self, t: float) -> np.ndarray:
        n = len(self.pillars)
        if n == 1 or t <= self.pillars[0]:
            return self._one_hot(0)
        if t >= self.pillars[-1]:
            return self._one_hot(n - 1)

        i = self._bracket(t)
        t1, t2 = self.pillars[i], self.pillars[i + 1]
        weight = (t - t1) / (t2 - t1)

        w = np.zeros(n)
        w[i] = 1.0 - weight
        w[i + 1] = weight
        return w


class PiecewiseConstantInterpolator(Interpolator):
    """Piecewise constant (step function) interpolation.

    Holds the left pillar's value until the next pillar.
    """

    def weights(self, t: float) -> np.ndarray:
        if t <= self.pillars[0]:
            return self._one_hot(0)
        if t >= self.pillars[-1]:
            return self._one_hot(len(self.pillars) - 1)
        return self._one_hot(self._bracket(t))
