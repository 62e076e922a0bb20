"""
Credit curves: survival curves on hazard-rate ordinates and recovery rates.
"""
import math
from datetime import date, datetime
from typing import Iterable, Optional, Union

from ficcrisk.schema.enums import CurveCategory, QuoteType

from .base import Curve
from .state import CurveState
from .tenor import CurveTenor


class RecoveryCurve(Curve):
    """Recovery rate held as a single quote in [0, 1]."""

    category = CurveCategory.RECOVERY

    def __init__(self, name: str, reference_date: date, recovery_rate: float,
                 maturity: Optional[date] = None):
        if not 0.0 <= recovery_rate <= 1.0:
            raise ValueError(f"Recovery rate must lie in [0, 1]: {recovery_rate}")
        tenor = CurveTenor(
            name="Recovery",
            quote=recovery_rate,
            maturity=maturity or reference_date,
            quote_type=QuoteType.RECOVERY,
        )
        super().__init__(name, reference_date, [tenor])

    @property
    def recovery_rate(self) -> float:
        return self.tenors[0].quote

    @recovery_rate.setter
    def recovery_rate(self, value: float) -> None:
        self.tenors[0].quote = min(max(float(value), 0.0), 1.0)
        self.invalidate()


class SurvivalCurve(Curve):
    """Survival curve with average hazard rates as ordinates.

    ``S(t) = exp(-h(t) * t)``, where ``h`` is interpolated flat-forward so
    that forward hazard rates are piecewise constant.
    """

    category = CurveCategory.SURVIVAL

    def __init__(
        self,
        name: str,
        reference_date: date,
        tenors: Iterable[CurveTenor],
        calibrator=None,
        interpolation_method: str = "FLAT_FORWARD",
        recovery: Optional[RecoveryCurve] = None,
        default_date: Optional[date] = None,
    ):
        self.recovery = recovery
        self.default_date = default_date
        self.will_default = False
        super().__init__(name, reference_date, tenors, calibrator, interpolation_method)

    @property
    def defaulted(self) -> bool:
        return self.default_date is not None

    @property
    def recovery_rate(self) -> float:
        return self.recovery.recovery_rate if self.recovery is not None else 0.4

    def hazard(self, t: Union[datetime, date, float]) -> float:
        return self.value(t)

    def survival_probability(self, t: Union[datetime, date, float]) -> float:
        """Probability of no default up to t (zero once defaulted before t)."""
        time_frac = self.time(t)
        if self.default_date is not None and self.time(self.default_date) <= time_frac:
            return 0.0
        if time_frac <= 0:
            return 1.0
        return math.exp(-self.hazard(time_frac) * time_frac)

    def default_probability(self, t: Union[datetime, date, float]) -> float:
        return 1.0 - self.survival_probability(t)

    def _extra_state(self) -> tuple:
        return (("default_date", self.default_date), ("will_default", self.will_default))

    def _restore_extra_state(self, state: CurveState) -> None:
        self.default_date = state.extra("default_date")
        self.will_default = state.extra("will_default", False)
