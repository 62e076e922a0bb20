"""
Pricing interface: pricers, measures and evaluators.
"""

from .base import (
    MarketDependencies,
    OrdinateDerivatives,
    Pricer,
    SupportsCorrelationRemap,
    SupportsDefaultChanged,
    SupportsOrdinateDerivatives,
    SupportsSharedModel,
)
from .cds import CdsPricer
from .evaluator import AggregateEvaluator, PricerEvaluator, create_evaluators
from .measures import DEFAULT_MEASURE, MEASURES, MeasureRegistry, MeasureSpec, register_measure
from .swap import SwapPricer

__all__ = [
    # Interface
    "Pricer",
    "MarketDependencies",
    "OrdinateDerivatives",
    "SupportsCorrelationRemap",
    "SupportsDefaultChanged",
    "SupportsOrdinateDerivatives",
    "SupportsSharedModel",
    # Measures
    "DEFAULT_MEASURE",
    "MEASURES",
    "MeasureRegistry",
    "MeasureSpec",
    "register_measure",
    # Evaluators
    "PricerEvaluator",
    "AggregateEvaluator",
    "create_evaluators",
    # Reference pricers
    "SwapPricer",
    "CdsPricer",
]
