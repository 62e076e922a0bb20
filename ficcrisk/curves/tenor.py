"""
Curve tenors: the named quote points a curve is calibrated to.
"""

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Tuple

from ficcrisk.schema.enums import QuoteType


@dataclass(frozen=True)
class HedgeProduct:
    """Instrument a tenor quote comes from, used to build hedge pricers."""

    kind: str
    maturity: date
    notional: float = 1.0
    coupon: Optional[float] = None
    frequency_months: int = 12


@dataclass
class CurveTenor:
    """A named quote point on a curve."""

    name: str
    quote: float
    maturity: date
    quote_type: QuoteType = QuoteType.ZERO_RATE
    product: Optional[HedgeProduct] = None
    weight: float = 1.0

    @property
    def identity(self) -> Tuple[str, date]:
        """Key under which tenors on different curves count as the same point."""
        return (self.name, self.maturity)

    def copy(self) -> "CurveTenor":
        return replace(self)

    def __str__(self) -> str:
        return f"{self.name}@{self.quote:.6g}"
