"""
Base curve class shared by every quote-bearing market object.
"""

import copy
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Union

import numpy as np

from ficcrisk.conventions.daycount import (
    DayCountConvention,
    get_day_count_convention,
)
from ficcrisk.interpolation import Interpolator, create_interpolator
from ficcrisk.schema.enums import CurveCategory

from .state import CurveState
from .tenor import CurveTenor

if TYPE_CHECKING:
    from .calibration import Calibrator

logger = logging.getLogger(__name__)


class Curve:
    """A named, ordered set of tenors plus the ordinates fitted to them.

    The ordinates live on the tenor maturities and are interpolated with
    ``interpolation_method``. A curve with a calibrator gets its ordinates
    from ``calibrator.refit``; a curve without one uses its quotes as
    ordinates directly, so a quote change is visible immediately.
    """

    category: CurveCategory = CurveCategory.DISCOUNT

    def __init__(
        self,
        name: str,
        reference_date: date,
        tenors: Iterable[CurveTenor],
        calibrator: Optional["Calibrator"] = None,
        interpolation_method: str = "LINEAR",
        category: Optional[CurveCategory] = None,
        time_day_count: Union[str, DayCountConvention] = "ACT/365F",
    ):
        """
        Initialize curve and fit it when a calibrator is given.

        Args:
            name: Curve name, used in selection labels and reports
            reference_date: Curve valuation date
            tenors: Quote points; sorted by maturity on construction
            calibrator: Refits ordinates from quotes (optional)
            interpolation_method: Interpolation method for the ordinates
            category: Overrides the class-level category
            time_day_count: Day count converting dates to curve times

        Raises:
            ValueError: If there are no tenors or tenor names repeat
        """
        self.name = name
        self.reference_date = reference_date
        if category is not None:
            self.category = category
        if isinstance(time_day_count, DayCountConvention):
            self._time_day_count = time_day_count
        else:
            self._time_day_count = get_day_count_convention(time_day_count)

        self.tenors: List[CurveTenor] = sorted(tenors, key=lambda t: t.maturity)
        if not self.tenors:
            raise ValueError(f"Curve {name} needs at least one tenor")
        names = [t.name for t in self.tenors]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate tenor names on curve {name}: {names}")

        self.interpolation_method = interpolation_method
        self.calibrator = calibrator
        self._ordinates = self.quotes()
        self._interpolator: Optional[Interpolator] = None

        if calibrator is not None:
            self.refit()

    # ------------------------------------------------------------------
    # Tenors and quotes
    # ------------------------------------------------------------------
    @property
    def tenor_names(self) -> List[str]:
        return [t.name for t in self.tenors]

    def tenor(self, name: str) -> Optional[CurveTenor]:
        """Find a tenor by name, or None."""
        for tenor in self.tenors:
            if tenor.name == name:
                return tenor
        return None

    def tenor_index(self, tenor: CurveTenor) -> int:
        """Position of a tenor object on this curve."""
        for i, t in enumerate(self.tenors):
            if t is tenor:
                return i
        raise ValueError(f"Tenor {tenor.name} does not belong to curve {self.name}")

    def owns(self, tenor: CurveTenor) -> bool:
        return any(t is tenor for t in self.tenors)

    def quotes(self) -> np.ndarray:
        return np.array([t.quote for t in self.tenors], dtype=float)

    def set_quote(self, name: str, value: float) -> None:
        tenor = self.tenor(name)
        if tenor is None:
            raise ValueError(f"Tenor {name} not found on curve {self.name}")
        tenor.quote = float(value)
        self.invalidate()

    def set_quotes(self, values: Sequence[float]) -> None:
        if len(values) != len(self.tenors):
            raise ValueError(
                f"Expected {len(self.tenors)} quotes for curve {self.name}, got {len(values)}"
            )
        for tenor, value in zip(self.tenors, values):
            tenor.quote = float(value)
        self.invalidate()

    # ------------------------------------------------------------------
    # Ordinates and interpolation
    # ------------------------------------------------------------------
    @property
    def times(self) -> np.ndarray:
        return np.array([self.time(t.maturity) for t in self.tenors], dtype=float)

    @property
    def ordinates(self) -> np.ndarray:
        if self.calibrator is None:
            return self.quotes()
        return self._ordinates.copy()

    def set_ordinates(self, values: Sequence[float]) -> None:
        values = np.asarray(values, dtype=float)
        if values.shape != (len(self.tenors),):
            raise ValueError(
                f"Expected {len(self.tenors)} ordinates for curve {self.name}, got {values.shape}"
            )
        self._ordinates = values.copy()
        self.invalidate()

    def invalidate(self) -> None:
        """Drop the cached interpolator after quotes or ordinates change."""
        self._interpolator = None

    def time(self, dt: Union[datetime, date, float]) -> float:
        """Convert a date to the curve's year fraction basis."""
        if isinstance(dt, (int, float)):
            return float(dt)
        if isinstance(dt, datetime):
            dt = dt.date()
        return self._time_day_count.year_fraction(self.reference_date, dt)

    @property
    def interpolator(self) -> Interpolator:
        if self._interpolator is None:
            self._interpolator = create_interpolator(
                self.interpolation_method, self.times, self.ordinates
            )
        return self._interpolator

    def value(self, t: Union[datetime, date, float]) -> float:
        """Interpolated ordinate at a date or time."""
        return self.interpolator.interpolate(self.time(t))

    def ordinate_weights(self, t: Union[datetime, date, float]) -> np.ndarray:
        """Derivative of ``value(t)`` with respect to each ordinate."""
        return self.interpolator.weights(self.time(t))

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------
    @property
    def is_calibrated(self) -> bool:
        return self.calibrator is not None

    def prerequisite_curves(self) -> List["Curve"]:
        """Curves this curve is derived from."""
        if self.calibrator is None:
            return []
        return [c for c in self.calibrator.prerequisites(self) if c is not None]

    def refit(self) -> None:
        """Refit ordinates from the current quotes."""
        if self.calibrator is None:
            self.invalidate()
            return
        self.calibrator.refit(self)
        logger.debug("Refit curve %s", self.name)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def _extra_state(self) -> tuple:
        return ()

    def _restore_extra_state(self, state: CurveState) -> None:
        pass

    def snapshot(self) -> CurveState:
        """Capture quotes, fitted ordinates and curve-specific state."""
        return CurveState(
            curve_name=self.name,
            quotes=tuple(float(t.quote) for t in self.tenors),
            ordinates=tuple(float(v) for v in self._ordinates),
            extras=self._extra_state(),
        )

    def restore(self, state: CurveState) -> None:
        """Put back a snapshot taken with :meth:`snapshot`."""
        if len(state.quotes) != len(self.tenors):
            raise ValueError(
                f"Snapshot of {state.curve_name} does not fit curve {self.name}"
            )
        for tenor, quote in zip(self.tenors, state.quotes):
            tenor.quote = quote
        self._ordinates = np.array(state.ordinates, dtype=float)
        self._restore_extra_state(state)
        self.invalidate()

    def clone(self) -> "Curve":
        """Independent copy sharing prerequisite curves with the original."""
        other = copy.copy(self)
        other.tenors = [t.copy() for t in self.tenors]
        other._ordinates = self._ordinates.copy()
        other._interpolator = None
        return other

    def copy_from(self, other: "Curve") -> None:
        """Overwrite this curve's state with another curve's state."""
        self.restore(other.snapshot())

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.name}, {len(self.tenors)} tenors)"

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(name='{self.name}', "
                f"reference_date={self.reference_date}, "
                f"tenors={self.tenor_names}, "
                f"interpolation_method='{self.interpolation_method}')")
