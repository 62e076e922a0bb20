"""
Schema definitions for the sensitivity engine.
"""

from .enums import (
    BumpFlags,
    BumpTarget,
    BumpType,
    CurveCategory,
    QuoteType,
    ScenarioShiftType,
    SensitivityMethod,
)

__all__ = [
    "BumpFlags",
    "BumpTarget",
    "BumpType",
    "CurveCategory",
    "QuoteType",
    "ScenarioShiftType",
    "SensitivityMethod",
]
