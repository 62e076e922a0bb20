"""
Scenario composer: applies a list of shifts, revalues and restores.
"""

import logging
from typing import Optional, Sequence, Union

from ficcrisk.config import ScenarioConfig
from ficcrisk.pricing.evaluator import create_evaluators
from ficcrisk.sensitivity.calculator import evaluate_all
from ficcrisk.sensitivity.results import ScenarioResult, ScenarioRow

from .shifts import ScenarioShift

logger = logging.getLogger(__name__)


class ScenarioComposer:
    """
    Runs scenarios made of several shifts.

    The protocol is fixed:
      1. validate every shift
      2. compute base values
      3. save state, then shift, then refit, each over all shifts in order
      4. reset pricers and evaluate
      5. restore every shift in reverse order and reset pricers again,
         also when a step above raised
    """

    def __init__(self, config: Optional[ScenarioConfig] = None):
        self.config = config or ScenarioConfig()

    def run(
        self,
        pricers: Sequence,
        shifts: Sequence[ScenarioShift],
        measures: Union[str, Sequence[str], None] = None,
    ) -> ScenarioResult:
        """
        Value pricers before and after a set of shifts.

        Args:
            pricers: Pricers or evaluators
            shifts: Shifts applied together
            measures: Measure name(s); the configured measures when None

        Returns:
            ScenarioResult with one row per evaluator

        Raises:
            ConfigurationError: If a shift or the configuration is invalid
        """
        config = self.config
        config.validate()
        evaluators = create_evaluators(
            pricers, measures or config.measures, config.allow_missing
        )
        shifts = list(shifts)
        for shift in shifts:
            shift.validate()

        base = evaluate_all(evaluators, config.max_workers, "scenario base")

        default_changed = any(s.changes_default for s in shifts)
        remap = any(s.changes_correlation for s in shifts)
        logger.info("Running scenario with %d shifts over %d pricers", len(shifts), len(evaluators))

        try:
            for shift in shifts:
                shift.save_state(evaluators)
            for shift in shifts:
                shift.perform_shift(evaluators)
            for shift in shifts:
                shift.perform_refit(evaluators)
            scenario = evaluate_all(
                evaluators,
                config.max_workers,
                "scenario",
                {"default_changed": default_changed, "remap_correlations": remap},
            )
        finally:
            for shift in reversed(shifts):
                shift.restore_state(evaluators)
            for evaluator in evaluators:
                evaluator.reset(default_changed=default_changed, remap_correlations=remap)

        result = ScenarioResult()
        for evaluator, base_value, value in zip(evaluators, base, scenario):
            result.add(ScenarioRow(evaluator.description, evaluator.measure, base_value, value))
        return result


def run_scenario(
    pricers: Sequence,
    shifts: Sequence[ScenarioShift],
    measures: Union[str, Sequence[str], None] = None,
    config: Optional[ScenarioConfig] = None,
) -> ScenarioResult:
    """Run a scenario with a one-off composer."""
    return ScenarioComposer(config).run(pricers, shifts, measures)
