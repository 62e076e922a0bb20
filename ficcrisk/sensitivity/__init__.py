"""
Bump-and-reprice sensitivity engine.

Main components:
- DependencyGraph: curves in calibration order
- TenorSelection: tenors bumped together (Uniform, Parallel, ByTenor)
- BumpTransaction: quote bumps with refit and guaranteed restore
- SensitivityCalculator: finite-difference deltas, gammas and hedges
- SemiAnalyticCalculator: chain-rule deltas and gammas
- recovery_sensitivity: recovery bumps with survival curve refits
- ResultTable: sensitivity rows and their DataFrame view
"""

from .analytic import SemiAnalyticCalculator, quote_derivatives, unpack_lower_triangular
from .bump import BumpResult, BumpTransaction, bump_quote, quote_change
from .calculator import (
    SensitivityCalculator,
    affected_evaluators,
    evaluate_all,
    hedge_evaluator,
    prewarm_shared_models,
    resolve_hedge,
)
from .graph import DependencyGraph, build_curve_graph
from .recovery import recovery01, recovery_config, recovery_sensitivity
from .results import ResultRow, ResultTable, ScenarioResult, ScenarioRow
from .selection import (
    TenorFilter,
    TenorSelection,
    build_selections,
    is_selected,
    select_by_tenor,
    select_parallel,
    select_uniform,
)

__all__ = [
    # Graph
    "DependencyGraph",
    "build_curve_graph",
    # Selections
    "TenorFilter",
    "TenorSelection",
    "build_selections",
    "is_selected",
    "select_by_tenor",
    "select_parallel",
    "select_uniform",
    # Bumps
    "BumpResult",
    "BumpTransaction",
    "bump_quote",
    "quote_change",
    # Calculators
    "SensitivityCalculator",
    "SemiAnalyticCalculator",
    "affected_evaluators",
    "evaluate_all",
    "hedge_evaluator",
    "prewarm_shared_models",
    "resolve_hedge",
    "quote_derivatives",
    "unpack_lower_triangular",
    # Recovery
    "recovery_config",
    "recovery_sensitivity",
    "recovery01",
    # Results
    "ResultRow",
    "ResultTable",
    "ScenarioResult",
    "ScenarioRow",
]
