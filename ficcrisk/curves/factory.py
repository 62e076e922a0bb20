"""
Convenience builders for curves from tenor quotes.
"""
from datetime import date
from typing import Mapping, Optional, Sequence, Type

from ficcrisk.conventions.calendars import Calendar
from ficcrisk.conventions.tenors import compute_maturity
from ficcrisk.schema.enums import CurveCategory, QuoteType

from .base import Curve
from .calibration import Calibrator, ZeroRateCalibrator
from .rate import RateCurve
from .tenor import CurveTenor, HedgeProduct

_PRODUCT_KINDS = {
    QuoteType.ZERO_RATE: "SWAP",
    QuoteType.PAR_RATE: "SWAP",
    QuoteType.BASIS_SPREAD: "BASIS_SWAP",
    QuoteType.YIELD_SPREAD: "BASIS_SWAP",
    QuoteType.CREDIT_SPREAD: "CDS",
    QuoteType.FX_RATE: "FX_FORWARD",
    QuoteType.FX_FORWARD_POINTS: "FX_FORWARD",
    QuoteType.FORWARD_PRICE: "FORWARD",
    QuoteType.INFLATION_RATE: "INFLATION_SWAP",
    QuoteType.VOLATILITY: "OPTION",
}


def create_tenors(
    reference_date: date,
    quotes: Mapping[str, float],
    quote_type: QuoteType = QuoteType.ZERO_RATE,
    calendar: Optional[Calendar] = None,
    spot_lag: int = 2,
) -> list:
    """
    Build tenors from a mapping of tenor label to quote.

    Args:
        reference_date: Quote date
        quotes: Tenor label -> quote, e.g. {"1Y": 0.01, "5Y": 0.02}
        quote_type: Quoting convention shared by all tenors
        calendar: Business calendar for maturities (TARGET by default)
        spot_lag: Business days from quote date to spot

    Returns:
        List of CurveTenor with hedge products attached
    """
    kind = _PRODUCT_KINDS.get(quote_type)
    tenors = []
    for label, quote in quotes.items():
        maturity = compute_maturity(reference_date, label, calendar, spot_lag)
        product = HedgeProduct(kind=kind, maturity=maturity) if kind else None
        tenors.append(
            CurveTenor(
                name=label,
                quote=float(quote),
                maturity=maturity,
                quote_type=quote_type,
                product=product,
            )
        )
    return tenors


def create_curve_from_quotes(
    reference_date: date,
    quotes: Mapping[str, float],
    name: str,
    calibrator: Optional[Calibrator] = None,
    quote_type: QuoteType = QuoteType.ZERO_RATE,
    curve_cls: Type[Curve] = RateCurve,
    category: Optional[CurveCategory] = None,
    interpolation_method: str = "LINEAR",
    calendar: Optional[Calendar] = None,
) -> Curve:
    """
    Create and fit a curve from tenor quotes.

    Args:
        reference_date: Curve reference date
        quotes: Tenor label -> quote
        name: Curve name
        calibrator: Calibrator (zero-rate calibrator if None)
        quote_type: Quoting convention of the tenors
        curve_cls: Curve class to instantiate
        category: Category override (e.g. PROJECTION or BASIS)
        interpolation_method: Ordinate interpolation method
        calendar: Business calendar for maturities

    Returns:
        Fitted curve
    """
    tenors = create_tenors(reference_date, quotes, quote_type, calendar)
    return curve_cls(
        name=name,
        reference_date=reference_date,
        tenors=tenors,
        calibrator=calibrator or ZeroRateCalibrator(),
        interpolation_method=interpolation_method,
        category=category,
    )


def create_flat_curve(
    reference_date: date,
    flat_rate: float,
    tenors: Sequence[str] = ("1Y", "2Y", "5Y", "10Y", "30Y"),
    name: str = "FLAT",
    calibrator: Optional[Calibrator] = None,
) -> RateCurve:
    """
    Create a flat zero-rate curve for testing purposes.

    Args:
        reference_date: Curve reference date
        flat_rate: Flat zero rate (decimal)
        tenors: Tenor labels
        name: Curve name
        calibrator: Calibrator (zero-rate calibrator if None)

    Returns:
        Flat rate curve
    """
    return create_curve_from_quotes(
        reference_date,
        {label: flat_rate for label in tenors},
        name=name,
        calibrator=calibrator,
    )
