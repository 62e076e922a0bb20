"""
Discounting interest rate swap pricer used for rate tenors and hedges.
"""

import logging
from datetime import date
from typing import List, Optional

import numpy as np

from ficcrisk.schema.enums import CurveCategory

from .base import MarketDependencies, OrdinateDerivatives, Pricer
from .measures import register_measure
from .schedule import payment_dates

logger = logging.getLogger(__name__)


class SwapPricer(Pricer):
    """Fixed-versus-floating swap on a discount curve.

    Without a projection curve the floating leg is valued off the discount
    curve (``1 - DF(T)``); with one, forwards come from the projection
    curve's discount factors.
    """

    def __init__(
        self,
        discount_curve,
        maturity: date,
        fixed_rate: float,
        notional: float = 1_000_000.0,
        pay_fixed: bool = False,
        projection_curve=None,
        frequency_months: int = 12,
        description: str = "",
    ):
        super().__init__(description or f"Swap {maturity.isoformat()}",
                         as_of=discount_curve.reference_date)
        self.discount_curve = discount_curve
        self.projection_curve = projection_curve
        self._maturity = maturity
        self.fixed_rate = fixed_rate
        self.notional = notional
        self.pay_fixed = pay_fixed
        self.frequency_months = frequency_months

    @classmethod
    def for_tenor(cls, curve, tenor) -> Optional["SwapPricer"]:
        """At-market swap matching a curve tenor's instrument."""
        product = tenor.product
        maturity = product.maturity if product is not None else tenor.maturity
        if maturity <= curve.reference_date:
            return None
        pricer = cls(
            curve,
            maturity=maturity,
            fixed_rate=0.0,
            notional=product.notional if product is not None else 1.0,
            frequency_months=product.frequency_months if product is not None else 12,
            description=tenor.name,
        )
        if product is not None and product.coupon is not None:
            pricer.fixed_rate = product.coupon
        else:
            pricer.fixed_rate = pricer.par_rate()
        return pricer

    @property
    def maturity(self) -> date:
        return self._maturity

    @property
    def _sign(self) -> float:
        return -1.0 if self.pay_fixed else 1.0

    def _schedule(self):
        as_of = self.as_of or self.discount_curve.reference_date
        dates = payment_dates(as_of, self._maturity, self.frequency_months)
        times = np.array([self.discount_curve.time(d) for d in dates])
        accruals = np.diff(np.concatenate(([self.discount_curve.time(as_of)], times)))
        return times, accruals

    def annuity(self) -> float:
        times, accruals = self._schedule()
        dfs = np.array([self.discount_curve.df(t) for t in times])
        return float(accruals @ dfs)

    def floating_leg(self) -> float:
        times, _ = self._schedule()
        if len(times) == 0:
            return 0.0
        if self.projection_curve is None or self.projection_curve is self.discount_curve:
            start = self.discount_curve.time(self.as_of or self.discount_curve.reference_date)
            return self.discount_curve.df(start) - self.discount_curve.df(times[-1])
        value = 0.0
        previous = self.discount_curve.time(self.as_of or self.discount_curve.reference_date)
        for t in times:
            growth = self.projection_curve.df(previous) / self.projection_curve.df(t)
            value += (growth - 1.0) * self.discount_curve.df(t)
            previous = t
        return value

    def par_rate(self) -> float:
        annuity = self.annuity()
        if annuity == 0:
            return 0.0
        return self.floating_leg() / annuity

    def pv(self) -> float:
        return self.notional * self._sign * (self.fixed_rate * self.annuity() - self.floating_leg())

    def market_objects(self) -> MarketDependencies:
        curves = {CurveCategory.DISCOUNT: [self.discount_curve]}
        if self.projection_curve is not None and self.projection_curve is not self.discount_curve:
            curves[CurveCategory.PROJECTION] = [self.projection_curve]
        return MarketDependencies(curves=curves)

    def ordinate_derivatives(self, measure: str) -> List[OrdinateDerivatives]:
        """Exact Pv derivatives with respect to the discount curve's zero rates."""
        if measure.lower() != "pv":
            raise NotImplementedError(f"No ordinate derivatives for measure {measure}")
        if self.projection_curve is not None and self.projection_curve is not self.discount_curve:
            raise NotImplementedError("Ordinate derivatives need a single-curve swap")

        curve = self.discount_curve
        times, accruals = self._schedule()
        n = len(curve.tenors)
        gradient = np.zeros(n)
        hessian = np.zeros((n, n))
        scale = self.notional * self._sign
        terms = [
            (t, scale * (self.fixed_rate * alpha + (1.0 if i == len(times) - 1 else 0.0)))
            for i, (t, alpha) in enumerate(zip(times, accruals))
        ]
        start = curve.time(self.as_of or curve.reference_date)
        if len(times) and start > 0:
            terms.append((start, -scale))

        for t, coeff in terms:
            if t <= 0:
                continue
            w = curve.ordinate_weights(t)
            df = curve.df(t)
            gradient -= coeff * t * df * w
            hessian += coeff * t * t * df * np.outer(w, w)
        return [OrdinateDerivatives(curve, gradient, hessian)]


register_measure(SwapPricer, "ParRate", lambda p: p.par_rate(), additive=False)
register_measure(SwapPricer, "Annuity", lambda p: p.annuity())
