"""
FX, forward price and volatility term structures.
"""
from datetime import date, datetime
from typing import Optional, Union

from ficcrisk.conventions.tenors import is_spot_tenor
from ficcrisk.schema.enums import CurveCategory

from .base import Curve
from .tenor import CurveTenor


class FxCurve(Curve):
    """FX forward curve; ordinates are outright forward rates.

    The spot rate is carried by a tenor named ``SpotFx`` (or ``Spot``).
    """

    category = CurveCategory.FX

    @property
    def spot_tenor(self) -> Optional[CurveTenor]:
        for tenor in self.tenors:
            if is_spot_tenor(tenor.name):
                return tenor
        return None

    @property
    def spot_rate(self) -> float:
        spot = self.spot_tenor
        if spot is None:
            raise ValueError(f"FX curve {self.name} has no spot tenor")
        return spot.quote


class ForwardPriceCurve(Curve):
    """Stock, commodity or inflation forward prices by maturity."""

    category = CurveCategory.STOCK


class VolatilitySurface(Curve):
    """Volatility term structure bumped directly through its quotes.

    Surfaces carry no calibrator; they are tracked in the dependency graph
    only so that their tenors can be bumped.
    """

    category = CurveCategory.VOLATILITY

    def __init__(self, name: str, reference_date: date, tenors,
                 interpolation_method: str = "LINEAR"):
        super().__init__(name, reference_date, tenors, None, interpolation_method)

    def volatility(self, t: Union[datetime, date, float]) -> float:
        return self.value(t)
