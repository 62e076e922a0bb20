"""
Recovery rate sensitivities.

Recovery curves are bumped like any other quote. With a refit, the survival
curves calibrated against a bumped recovery are refit to the same spreads.
"""

import logging
from typing import Optional, Sequence, Union

from ficcrisk.config import SensitivityConfig
from ficcrisk.schema.enums import BumpFlags, BumpTarget, BumpType

from .calculator import SensitivityCalculator
from .results import ResultTable

logger = logging.getLogger(__name__)


def recovery_config(
    up_bump: float = 1.0,
    down_bump: float = 0.0,
    bump_type: BumpType = BumpType.PARALLEL,
    recalibrate: bool = True,
    scale_delta: bool = True,
    calc_gamma: bool = False,
    measure: str = "Pv",
    max_workers: int = 1,
    curve_names: Optional[Sequence[str]] = None,
) -> SensitivityConfig:
    """Sensitivity configuration bumping recovery quotes only."""
    return SensitivityConfig(
        bump_type=bump_type,
        target=BumpTarget.RECOVERY_RATES,
        flags=BumpFlags.REFIT_CURVE if recalibrate else BumpFlags.NONE,
        up_bump=up_bump,
        down_bump=down_bump,
        scale_delta=scale_delta,
        calc_gamma=calc_gamma,
        measure=measure,
        max_workers=max_workers,
        curve_names=frozenset(curve_names) if curve_names is not None else None,
    )


def recovery_sensitivity(
    pricers: Sequence,
    up_bump: float = 1.0,
    down_bump: float = 0.0,
    bump_type: BumpType = BumpType.PARALLEL,
    recalibrate: bool = True,
    scale_delta: bool = True,
    calc_gamma: bool = False,
    measures: Union[str, Sequence[str], None] = None,
    max_workers: int = 1,
    curve_names: Optional[Sequence[str]] = None,
) -> ResultTable:
    """
    Sensitivity of pricers to their recovery rates.

    Args:
        pricers: Pricers or evaluators
        up_bump: Up bump in bp of recovery (100bp moves the rate by 0.01)
        down_bump: Down bump in bp, 0 for a one-sided difference
        bump_type: UNIFORM, PARALLEL (one row per recovery curve) or BY_TENOR
        recalibrate: Refit the survival curves built on a bumped recovery
        scale_delta: Divide by the realized bump, giving a per-bp figure
        calc_gamma: Also compute second-order differences
        measures: Measure name(s); "Pv" when None
        max_workers: Threads used to evaluate pricers
        curve_names: Restrict the bump to these recovery curves

    Returns:
        ResultTable with one row per (recovery selection, pricer)

    Raises:
        ConfigurationError: If a bump size is invalid
        CalibrationError: If a survival curve cannot be refit
    """
    config = recovery_config(
        up_bump=up_bump,
        down_bump=down_bump,
        bump_type=bump_type,
        recalibrate=recalibrate,
        scale_delta=scale_delta,
        calc_gamma=calc_gamma,
        max_workers=max_workers,
        curve_names=curve_names,
    )
    logger.info("Computing recovery sensitivities (recalibrate=%s)", recalibrate)
    return SensitivityCalculator(config).calculate(pricers, measures)


def recovery01(
    pricer,
    measure: str = "Pv",
    up_bump: float = 1.0,
    down_bump: float = 0.0,
    recalibrate: bool = True,
) -> float:
    """Change in ``measure`` per bp of every recovery rate the pricer reads."""
    table = recovery_sensitivity(
        [pricer],
        up_bump=up_bump,
        down_bump=down_bump,
        bump_type=BumpType.UNIFORM,
        recalibrate=recalibrate,
        measures=measure,
    )
    return table.total_delta()
