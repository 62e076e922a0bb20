"""Calibrators that refit curve ordinates from tenor quotes."""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ficcrisk.conventions.tenors import is_spot_tenor
from ficcrisk.errors import CalibrationError
from ficcrisk.interpolation import create_interpolator
from ficcrisk.schema.enums import QuoteType

from .base import Curve

logger = logging.getLogger(__name__)


@dataclass
class CalibratorSettings:
    """Configuration for curve fitting."""

    fit_method: str = "BOOTSTRAP"
    tolerance: float = 1e-12
    max_iterations: int = 50
    jacobian_step: float = 1e-6
    verbose: bool = False


class Calibrator(ABC):
    """
    Abstract base class for curve calibrators.

    Provides the pieces the sensitivity engine relies on:
    - refit of a curve's ordinates from its current quotes
    - the prerequisite curves a fit reads from
    - derivatives of ordinates with respect to quotes
    - hedge pricers for individual tenors
    """

    def __init__(self, settings: Optional[CalibratorSettings] = None):
        self.settings = settings or CalibratorSettings()

    @abstractmethod
    def refit(self, curve: Curve) -> None:
        """
        Refit the curve's ordinates from its quotes.

        Args:
            curve: Curve to fit in place

        Raises:
            CalibrationError: If the fit fails
        """
        pass

    def prerequisites(self, curve: Curve) -> List[Curve]:
        """Curves the fit of ``curve`` depends on."""
        return []

    def ordinate_jacobian(self, curve: Curve) -> np.ndarray:
        """
        Derivatives of the curve ordinates with respect to its quotes.

        Central differences through :meth:`refit`; the curve is restored
        afterwards.

        Args:
            curve: Curve fitted by this calibrator

        Returns:
            Matrix ``J[k, i] = d ordinate_k / d quote_i``
        """
        step = self.settings.jacobian_step
        state = curve.snapshot()
        base = curve.quotes()
        n = len(base)
        jacobian = np.zeros((n, n))
        try:
            for i in range(n):
                bumped = base.copy()
                bumped[i] += step
                curve.set_quotes(bumped)
                self.refit(curve)
                up = curve.ordinates

                bumped[i] = base[i] - step
                curve.set_quotes(bumped)
                self.refit(curve)
                down = curve.ordinates

                jacobian[:, i] = (up - down) / (2.0 * step)
        finally:
            curve.restore(state)
        return jacobian

    def ordinate_hessian(self, curve: Curve) -> Optional[np.ndarray]:
        """Second derivatives ``H[k, i, j]`` of ordinates, when available."""
        return None

    def hedge_pricer(self, curve: Curve, tenor):
        """Pricer of the instrument behind a tenor, or None if not hedgeable."""
        return None

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.settings.fit_method})"


class ZeroRateCalibrator(Calibrator):
    """Quotes are continuously compounded zero rates; ordinates copy them."""

    def refit(self, curve: Curve) -> None:
        curve.set_ordinates(curve.quotes())

    def ordinate_jacobian(self, curve: Curve) -> np.ndarray:
        return np.eye(len(curve.tenors))

    def hedge_pricer(self, curve: Curve, tenor):
        from ficcrisk.pricing.swap import SwapPricer

        return SwapPricer.for_tenor(curve, tenor)


class ParRateCalibrator(Calibrator):
    """Bootstrap zero rates from annual-pay par swap rates.

    Tenors up to one year are treated as simple-rate deposits. Longer
    tenors pay annually with a short front stub; payment dates between
    pillars are interpolated with the curve's own method.
    """

    def refit(self, curve: Curve) -> None:
        times = curve.times
        quotes = curve.quotes()
        zeros = np.zeros(len(times))

        for i, (maturity, rate) in enumerate(zip(times, quotes)):
            if maturity <= 0:
                raise CalibrationError(curve.name, f"tenor {curve.tenors[i].name} matures on or before the reference date")
            if maturity <= 1.0 + 1e-9:
                growth = 1.0 + rate * maturity
                if growth <= 0:
                    raise CalibrationError(curve.name, f"deposit rate {rate} at {curve.tenors[i].name} implies a non-positive discount factor")
                zeros[i] = math.log(growth) / maturity
                continue
            zeros[i] = self._solve_pillar(curve, times[: i + 1], zeros[:i], rate)

        curve.set_ordinates(zeros)

    def _solve_pillar(self, curve: Curve, pillars: np.ndarray, solved: np.ndarray,
                      rate: float) -> float:
        maturity = pillars[-1]
        payments = []
        t = maturity
        while t > 1e-9:
            payments.append(t)
            t -= 1.0
        payments.reverse()
        accruals = np.diff([0.0] + payments)

        def residual(z: float) -> float:
            interp = create_interpolator(
                curve.interpolation_method, pillars, np.append(solved, z)
            )
            dfs = np.array([math.exp(-interp.interpolate(p) * p) for p in payments])
            return rate * float(accruals @ dfs) + dfs[-1] - 1.0

        z = rate
        h = 1e-7
        for _ in range(self.settings.max_iterations):
            f = residual(z)
            if abs(f) < self.settings.tolerance:
                return z
            slope = (residual(z + h) - residual(z - h)) / (2.0 * h)
            if slope == 0:
                break
            z -= f / slope
        if abs(residual(z)) < 1e-10:
            return z
        raise CalibrationError(
            curve.name,
            f"par rate {rate} at t={maturity:.4f} did not converge",
        )

    def hedge_pricer(self, curve: Curve, tenor):
        from ficcrisk.pricing.swap import SwapPricer

        return SwapPricer.for_tenor(curve, tenor)


class SpreadCalibrator(Calibrator):
    """Basis curve: ordinates are the base curve's zero rates plus quoted spreads."""

    def __init__(self, base_curve: Curve, settings: Optional[CalibratorSettings] = None):
        super().__init__(settings)
        self.base_curve = base_curve

    def prerequisites(self, curve: Curve) -> List[Curve]:
        return [self.base_curve]

    def refit(self, curve: Curve) -> None:
        base = np.array([self.base_curve.value(t) for t in curve.times])
        curve.set_ordinates(base + curve.quotes())

    def ordinate_jacobian(self, curve: Curve) -> np.ndarray:
        return np.eye(len(curve.tenors))

    def hedge_pricer(self, curve: Curve, tenor):
        from ficcrisk.pricing.swap import SwapPricer

        return SwapPricer.for_tenor(curve, tenor)


class SurvivalCalibrator(Calibrator):
    """Hazard rates from CDS spreads via the credit triangle ``h = s / (1 - R)``."""

    def __init__(self, discount_curve: Optional[Curve] = None,
                 settings: Optional[CalibratorSettings] = None):
        super().__init__(settings)
        self.discount_curve = discount_curve

    def prerequisites(self, curve: Curve) -> List[Curve]:
        return [self.discount_curve, getattr(curve, "recovery", None)]

    def _loss_given_default(self, curve: Curve) -> float:
        lgd = 1.0 - getattr(curve, "recovery_rate", 0.4)
        if lgd <= 0:
            raise CalibrationError(curve.name, "recovery rate of 100% leaves no loss to calibrate")
        return lgd

    def refit(self, curve: Curve) -> None:
        if getattr(curve, "defaulted", False):
            logger.debug("Survival curve %s has defaulted; keeping fitted hazards", curve.name)
            return
        curve.set_ordinates(curve.quotes() / self._loss_given_default(curve))

    def ordinate_jacobian(self, curve: Curve) -> np.ndarray:
        return np.eye(len(curve.tenors)) / self._loss_given_default(curve)

    def hedge_pricer(self, curve: Curve, tenor):
        if self.discount_curve is None:
            return None
        from ficcrisk.pricing.cds import CdsPricer

        return CdsPricer.for_tenor(curve, self.discount_curve, tenor)


class FxForwardCalibrator(Calibrator):
    """Outright FX forwards from the spot rate and quoted forward points."""

    def __init__(self, domestic_curve: Optional[Curve] = None,
                 foreign_curve: Optional[Curve] = None,
                 settings: Optional[CalibratorSettings] = None):
        super().__init__(settings)
        self.domestic_curve = domestic_curve
        self.foreign_curve = foreign_curve

    def prerequisites(self, curve: Curve) -> List[Curve]:
        return [self.domestic_curve, self.foreign_curve]

    def refit(self, curve: Curve) -> None:
        spot = None
        for tenor in curve.tenors:
            if is_spot_tenor(tenor.name):
                spot = tenor.quote
        outrights = []
        for tenor in curve.tenors:
            if tenor.quote_type == QuoteType.FX_FORWARD_POINTS:
                if spot is None:
                    raise CalibrationError(curve.name, "forward points need a spot tenor")
                outrights.append(spot + tenor.quote / 10000.0)
            else:
                outrights.append(tenor.quote)
        curve.set_ordinates(outrights)


class ForwardPriceCalibrator(Calibrator):
    """Forward price curves quoted directly in price terms."""

    def __init__(self, discount_curve: Optional[Curve] = None,
                 settings: Optional[CalibratorSettings] = None):
        super().__init__(settings)
        self.discount_curve = discount_curve

    def prerequisites(self, curve: Curve) -> List[Curve]:
        return [self.discount_curve]

    def refit(self, curve: Curve) -> None:
        curve.set_ordinates(curve.quotes())

    def ordinate_jacobian(self, curve: Curve) -> np.ndarray:
        return np.eye(len(curve.tenors))
