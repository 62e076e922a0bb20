"""
Curves package - quote-bearing market objects and their calibrators.

Main APIs:
---------
Model:
    - Curve: named tenors, fitted ordinates, snapshot/restore
    - CurveTenor / HedgeProduct: quote points and their instruments
    - RateCurve, SurvivalCurve, RecoveryCurve, FxCurve,
      ForwardPriceCurve, VolatilitySurface, Correlation

Calibration:
    - Calibrator: refit, prerequisites, ordinate Jacobian, hedge pricers
    - ZeroRateCalibrator, ParRateCalibrator, SpreadCalibrator,
      SurvivalCalibrator, FxForwardCalibrator, ForwardPriceCalibrator
"""

from .base import Curve
from .calibration import (
    Calibrator,
    CalibratorSettings,
    ForwardPriceCalibrator,
    FxForwardCalibrator,
    ParRateCalibrator,
    SpreadCalibrator,
    SurvivalCalibrator,
    ZeroRateCalibrator,
)
from .correlation import Correlation
from .credit import RecoveryCurve, SurvivalCurve
from .factory import create_curve_from_quotes, create_flat_curve, create_tenors
from .market import ForwardPriceCurve, FxCurve, VolatilitySurface
from .rate import RateCurve
from .state import CurveState
from .tenor import CurveTenor, HedgeProduct

__all__ = [
    # Model
    "Curve",
    "CurveState",
    "CurveTenor",
    "HedgeProduct",
    "RateCurve",
    "SurvivalCurve",
    "RecoveryCurve",
    "FxCurve",
    "ForwardPriceCurve",
    "VolatilitySurface",
    "Correlation",
    # Calibration
    "Calibrator",
    "CalibratorSettings",
    "ZeroRateCalibrator",
    "ParRateCalibrator",
    "SpreadCalibrator",
    "SurvivalCalibrator",
    "FxForwardCalibrator",
    "ForwardPriceCalibrator",
    # Builders
    "create_curve_from_quotes",
    "create_flat_curve",
    "create_tenors",
]
