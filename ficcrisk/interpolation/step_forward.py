"""
Flat forward interpolation on rate-like ordinates.
"""
import numpy as np

from .base import Interpolator


class FlatForwardInterpolator(Interpolator):
    """Flat forward interpolation

    Treats ordinates as continuously compounded zero rates and interpolates
    ``r(t) * t`` linearly, so forward rates are piecewise constant between
    pillars and discount factors are piecewise exponential. Extrapolation
    holds the first zero rate before the first pillar and the last forward
    rate beyond the last pillar.
    """

    def weights(self, t: float) -> np.ndarray:
        n = len(self.pillars)
        if n == 1 or t <= self.pillars[0]:
            return self._one_hot(0)

        if t >= self.pillars[-1]:
            # Extend with the last forward rate
            t1, t2 = self.pillars[-2], self.pillars[-1]
            i = n - 2
        else:
            i = self._bracket(t)
            t1, t2 = self.pillars[i], self.pillars[i + 1]

        weight = (t - t1) / (t2 - t1)
        w = np.zeros(n)
        w[i] = (1.0 - weight) * t1 / t
        w[i + 1] = weight * t2 / t
        return w
