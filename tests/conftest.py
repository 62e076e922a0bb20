"""Shared fixtures: reference curves and pricers."""
from datetime import date

import pytest

from ficcrisk.curves import (
    RateCurve,
    RecoveryCurve,
    SpreadCalibrator,
    SurvivalCalibrator,
    SurvivalCurve,
    ZeroRateCalibrator,
    create_curve_from_quotes,
    create_flat_curve,
    create_tenors,
)
from ficcrisk.errors import CalibrationError
from ficcrisk.pricing import CdsPricer, MarketDependencies, Pricer, SwapPricer
from ficcrisk.schema.enums import CurveCategory, QuoteType

REFERENCE_DATE = date(2024, 1, 2)


class ZeroRatePricer(Pricer):
    """Pv linear in one curve's zero rate at a fixed time."""

    def __init__(self, curve, t: float, notional: float = 1_000_000.0, description: str = ""):
        super().__init__(description or f"Zero {t}", as_of=curve.reference_date)
        self.curve = curve
        self.t = t
        self.notional = notional

    def pv(self) -> float:
        return self.notional * self.curve.zero(self.t)

    def market_objects(self) -> MarketDependencies:
        return MarketDependencies(curves={CurveCategory.DISCOUNT: [self.curve]})


class CappedCalibrator(ZeroRateCalibrator):
    """Zero-rate calibrator that refuses quotes above a cap."""

    def __init__(self, cap):
        super().__init__()
        self.cap = cap

    def refit(self, curve):
        if curve.quotes().max() > self.cap:
            raise CalibrationError(curve.name, f"quote above {self.cap}")
        super().refit(curve)


@pytest.fixture
def reference_date():
    return REFERENCE_DATE


@pytest.fixture
def flat_curve():
    """Flat 3% zero curve on 1Y, 2Y, 5Y, 10Y and 30Y."""
    return create_flat_curve(REFERENCE_DATE, 0.03, name="EUR")


@pytest.fixture
def two_point_curve():
    """Discount curve with 1Y at 1% and 5Y at 2%."""
    return create_curve_from_quotes(REFERENCE_DATE, {"1Y": 0.01, "5Y": 0.02}, name="DISC")


@pytest.fixture
def basis_curves():
    """Base curve A and basis curve B = A + 10bp on the same three tenors."""
    base = create_curve_from_quotes(
        REFERENCE_DATE, {"1Y": 0.02, "2Y": 0.022, "5Y": 0.025}, name="A"
    )
    basis = create_curve_from_quotes(
        REFERENCE_DATE,
        {"1Y": 0.001, "2Y": 0.001, "5Y": 0.001},
        name="B",
        calibrator=SpreadCalibrator(base),
        quote_type=QuoteType.BASIS_SPREAD,
        curve_cls=RateCurve,
        category=CurveCategory.PROJECTION,
    )
    return base, basis


@pytest.fixture
def swap_5y(flat_curve):
    """At-market 5Y receiver swap on the flat curve, 1mm notional."""
    swap = SwapPricer.for_tenor(flat_curve, flat_curve.tenor("5Y"))
    swap.notional = 1_000_000.0
    swap.description = "Swap5Y"
    return swap


@pytest.fixture
def basis_swap(basis_curves):
    """5Y swap discounted on A with floating leg projected from B."""
    base, basis = basis_curves
    return SwapPricer(
        base,
        maturity=base.tenor("5Y").maturity,
        fixed_rate=0.025,
        projection_curve=basis,
        description="BasisSwap",
    )


@pytest.fixture
def survival_curve(flat_curve):
    """Credit curve CORP at 100bp/200bp with 40% recovery, discounted on the flat curve."""
    tenors = create_tenors(REFERENCE_DATE, {"1Y": 0.01, "5Y": 0.02}, QuoteType.CREDIT_SPREAD)
    return SurvivalCurve(
        "CORP",
        REFERENCE_DATE,
        tenors,
        calibrator=SurvivalCalibrator(flat_curve),
        recovery=RecoveryCurve("CORP.Recovery", REFERENCE_DATE, 0.4),
    )


@pytest.fixture
def cds(survival_curve, flat_curve):
    """5Y protection bought on CORP at 200bp, 1mm notional."""
    return CdsPricer(
        survival_curve,
        flat_curve,
        maturity=survival_curve.tenor("5Y").maturity,
        spread=0.02,
        description="CDS",
    )
