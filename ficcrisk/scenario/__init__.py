"""
Scenario analysis: shifts applied together, revalued and restored.
"""

from .composer import ScenarioComposer, run_scenario
from .credit import correlation_sensitivity, default_sensitivity
from .shifts import (
    CorrelationShift,
    CreditShift,
    CurveShift,
    DateRollShift,
    DefaultShift,
    FxShift,
    PricerTermShift,
    ScenarioShift,
    ScenarioValueShift,
    StockShift,
    VolatilityShift,
    shift_value,
)
from .theta import theta

__all__ = [
    "ScenarioComposer",
    "run_scenario",
    "ScenarioShift",
    "ScenarioValueShift",
    "shift_value",
    "CurveShift",
    "CreditShift",
    "FxShift",
    "StockShift",
    "VolatilityShift",
    "CorrelationShift",
    "DefaultShift",
    "PricerTermShift",
    "DateRollShift",
    "correlation_sensitivity",
    "default_sensitivity",
    "theta",
]
