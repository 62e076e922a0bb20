"""
Credit default swap pricer used for credit tenors and hedges.
"""

from datetime import date
from typing import Optional

from ficcrisk.schema.enums import CurveCategory

from .base import MarketDependencies, Pricer
from .measures import register_measure
from .schedule import payment_dates


class CdsPricer(Pricer):
    """Running-spread CDS on a survival curve and a discount curve."""

    def __init__(
        self,
        survival_curve,
        discount_curve,
        maturity: date,
        spread: float,
        notional: float = 1_000_000.0,
        buy_protection: bool = True,
        frequency_months: int = 3,
        description: str = "",
    ):
        super().__init__(description or f"CDS {survival_curve.name} {maturity.isoformat()}",
                         as_of=discount_curve.reference_date)
        self.survival_curve = survival_curve
        self.discount_curve = discount_curve
        self._maturity = maturity
        self.spread = spread
        self.notional = notional
        self.buy_protection = buy_protection
        self.frequency_months = frequency_months

    @classmethod
    def for_tenor(cls, survival_curve, discount_curve, tenor) -> Optional["CdsPricer"]:
        product = tenor.product
        maturity = product.maturity if product is not None else tenor.maturity
        if maturity <= survival_curve.reference_date:
            return None
        spread = product.coupon if product is not None and product.coupon is not None else tenor.quote
        return cls(
            survival_curve,
            discount_curve,
            maturity=maturity,
            spread=spread,
            notional=product.notional if product is not None else 1.0,
            description=tenor.name,
        )

    @property
    def maturity(self) -> date:
        return self._maturity

    def _legs(self):
        as_of = self.as_of or self.discount_curve.reference_date
        previous_t = self.discount_curve.time(as_of)
        previous_s = 1.0
        protection = 0.0
        annuity = 0.0
        for d in payment_dates(as_of, self._maturity, self.frequency_months):
            t = self.discount_curve.time(d)
            df = self.discount_curve.df(t)
            survival = self.survival_curve.survival_probability(d)
            protection += df * (previous_s - survival)
            annuity += (t - previous_t) * df * survival
            previous_t, previous_s = t, survival
        lgd = 1.0 - self.survival_curve.recovery_rate
        return lgd * protection, annuity

    def par_spread(self) -> float:
        protection, annuity = self._legs()
        return protection / annuity if annuity > 0 else 0.0

    def pv(self) -> float:
        sign = 1.0 if self.buy_protection else -1.0
        if self.survival_curve.defaulted:
            return sign * self.notional * (1.0 - self.survival_curve.recovery_rate)
        protection, annuity = self._legs()
        return sign * self.notional * (protection - self.spread * annuity)

    def market_objects(self) -> MarketDependencies:
        return MarketDependencies(curves={
            CurveCategory.DISCOUNT: [self.discount_curve],
            CurveCategory.SURVIVAL: [self.survival_curve],
            CurveCategory.RECOVERY: [getattr(self.survival_curve, "recovery", None)],
        })


register_measure(CdsPricer, "ParSpread", lambda p: p.par_spread(), additive=False)
