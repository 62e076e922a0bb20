"""ficcrisk public API: bump-and-reprice sensitivities and scenarios."""

from .config import ScenarioConfig, SensitivityConfig
from .errors import (
    BumpStateError,
    CalibrationError,
    ConfigurationError,
    CyclicDependencyError,
    SensitivityError,
    UnknownMeasureError,
)
from .pricing import PricerEvaluator, create_evaluators
from .scenario import (
    ScenarioComposer,
    correlation_sensitivity,
    default_sensitivity,
    run_scenario,
    theta,
)
from .schema import (
    BumpFlags,
    BumpTarget,
    BumpType,
    CurveCategory,
    QuoteType,
    ScenarioShiftType,
    SensitivityMethod,
)
from .sensitivity import (
    BumpTransaction,
    ResultTable,
    SemiAnalyticCalculator,
    SensitivityCalculator,
    recovery_sensitivity,
)

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "SensitivityConfig",
    "ScenarioConfig",
    # Enums
    "BumpFlags",
    "BumpTarget",
    "BumpType",
    "CurveCategory",
    "QuoteType",
    "ScenarioShiftType",
    "SensitivityMethod",
    # Engine
    "BumpTransaction",
    "PricerEvaluator",
    "ResultTable",
    "ScenarioComposer",
    "SemiAnalyticCalculator",
    "SensitivityCalculator",
    "create_evaluators",
    "run_scenario",
    "theta",
    "default_sensitivity",
    "recovery_sensitivity",
    "correlation_sensitivity",
    # Errors
    "SensitivityError",
    "ConfigurationError",
    "CyclicDependencyError",
    "UnknownMeasureError",
    "CalibrationError",
    "BumpStateError",
]
