"""
Credit sensitivities built on scenarios: value on default and correlation.
"""

import logging
from typing import List, Optional, Sequence, Union

from ficcrisk.config import ScenarioConfig
from ficcrisk.errors import ConfigurationError
from ficcrisk.pricing.evaluator import create_evaluators
from ficcrisk.schema.enums import CurveCategory, ScenarioShiftType
from ficcrisk.sensitivity.results import ResultRow, ResultTable

from .composer import ScenarioComposer
from .shifts import CorrelationShift, DefaultShift

logger = logging.getLogger(__name__)

DEFAULT_TENOR = "Default"


def _survival_curves_of(evaluators) -> List:
    curves = []
    seen = set()
    for evaluator in evaluators:
        for curve in evaluator.all_curves():
            if getattr(curve, "category", None) == CurveCategory.SURVIVAL and id(curve) not in seen:
                seen.add(id(curve))
                curves.append(curve)
    return curves


def default_sensitivity(
    pricers: Sequence,
    survival_curves: Optional[Sequence] = None,
    recoveries: Sequence[float] = (),
    measures: Union[str, Sequence[str], None] = None,
    config: Optional[ScenarioConfig] = None,
) -> ResultTable:
    """
    Value on default of each credit name, one name at a time.

    Every survival curve is defaulted on its own and the pricers that read
    it are revalued; the delta is the change in value. Names that have
    already defaulted report a delta of zero.

    Args:
        pricers: Pricers or evaluators
        survival_curves: Names to default; every survival curve the pricers
            read when None
        recoveries: Recovery rate to use on default, one for all names or
            one per name; the current recovery when empty
        measures: Measure name(s); the configured measures when None
        config: Scenario configuration

    Returns:
        ResultTable with one row per (survival curve, dependent pricer)

    Raises:
        ConfigurationError: If recoveries do not match the curves
    """
    config = config or ScenarioConfig()
    config.validate()
    evaluators = create_evaluators(pricers, measures or config.measures, config.allow_missing)
    if survival_curves is None:
        survival_curves = _survival_curves_of(evaluators)
    curves = list(survival_curves)
    recoveries = list(recoveries)
    if recoveries and len(recoveries) not in (1, len(curves)):
        raise ConfigurationError(
            f"Got {len(recoveries)} recoveries for {len(curves)} survival curves"
        )

    composer = ScenarioComposer(config)
    table = ResultTable()
    for i, curve in enumerate(curves):
        reported = [e for e in evaluators if e.depends_on(curve)]
        if not reported:
            continue
        category = curve.category.value
        if curve.defaulted:
            logger.warning("Survival curve %s has already defaulted; default delta is 0",
                           curve.name)
            for evaluator in reported:
                table.add(
                    ResultRow(category, curve.name, DEFAULT_TENOR, evaluator.description, 0.0)
                )
            continue

        recovery = []
        if recoveries:
            recovery = [recoveries[0] if len(recoveries) == 1 else recoveries[i]]
        shift = DefaultShift([curve], recovery, ScenarioShiftType.SPECIFIED)
        logger.debug("Defaulting %s for %d pricers", curve.name, len(reported))
        result = composer.run(reported, [shift], [e.measure for e in reported])
        for row in result:
            table.add(ResultRow(category, curve.name, DEFAULT_TENOR, row.pricer, row.delta))
    return table


# ------------------------------------------------------------------
# Correlation
# ------------------------------------------------------------------
CORRELATION_CATEGORY = "CORRELATION"


def _correlations_of(evaluator) -> List:
    members = getattr(evaluator, "evaluators", [evaluator])
    return [c for e in members for c in e.correlations]


def correlation_sensitivity(
    pricers: Sequence,
    correlations: Optional[Sequence] = None,
    bump: float = 0.01,
    relative: bool = False,
    scale_delta: bool = True,
    measures: Union[str, Sequence[str], None] = None,
    config: Optional[ScenarioConfig] = None,
) -> ResultTable:
    """
    Sensitivity to each correlation object, bumped one at a time.

    Args:
        pricers: Pricers or evaluators
        correlations: Correlations to bump; every one the pricers read when None
        bump: Absolute change, or a fraction when ``relative``
        relative: Bump by a fraction of each correlation
        scale_delta: Divide by the average realized change after clipping
        measures: Measure name(s); the configured measures when None
        config: Scenario configuration

    Returns:
        ResultTable with one row per (correlation, dependent pricer)
    """
    config = config or ScenarioConfig()
    config.validate()
    evaluators = create_evaluators(pricers, measures or config.measures, config.allow_missing)
    if correlations is None:
        correlations = []
        for evaluator in evaluators:
            for correlation in _correlations_of(evaluator):
                if not any(c is correlation for c in correlations):
                    correlations.append(correlation)

    shift_type = ScenarioShiftType.RELATIVE if relative else ScenarioShiftType.ABSOLUTE
    composer = ScenarioComposer(config)
    table = ResultTable()
    for correlation in correlations:
        reported = [
            e for e in evaluators if any(c is correlation for c in _correlations_of(e))
        ]
        if not reported:
            continue
        realized = correlation.clone().bump(bump, relative)
        shift = CorrelationShift([correlation], [bump], shift_type)
        result = composer.run(reported, [shift], [e.measure for e in reported])
        for row in result:
            if not scale_delta:
                delta = row.delta
            elif abs(realized) <= config.tolerance:
                delta = 0.0
            else:
                delta = row.delta / realized
            table.add(ResultRow(CORRELATION_CATEGORY, correlation.name, "all", row.pricer, delta))
    return table
