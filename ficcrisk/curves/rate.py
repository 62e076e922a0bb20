"""
Interest rate curves whose ordinates are continuously compounded zero rates.
"""
import math
from datetime import date, datetime
from typing import Union

from ficcrisk.schema.enums import CurveCategory

from .base import Curve


class RateCurve(Curve):
    """Discount, projection or basis curve on zero-rate ordinates."""

    category = CurveCategory.DISCOUNT

    def zero(self, t: Union[datetime, date, float]) -> float:
        """Get continuously compounded zero rate at time t."""
        return self.value(t)

    def df(self, t: Union[datetime, date, float]) -> float:
        """Get discount factor at time t."""
        time_frac = self.time(t)
        if time_frac <= 0:
            return 1.0
        return math.exp(-self.zero(time_frac) * time_frac)
