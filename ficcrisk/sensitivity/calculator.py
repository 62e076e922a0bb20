"""
Bump-and-reprice sensitivity calculator.

For every tenor selection the calculator bumps quotes up (and optionally
down), refits dependent curves, re-evaluates the pricers that depend on the
bumped curves and turns the value changes into deltas, gammas and hedge
ratios.
"""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ficcrisk.config import HEDGE_ALL, HEDGE_MATCHING, HEDGE_MATURITY, SensitivityConfig
from ficcrisk.pricing.evaluator import AggregateEvaluator, PricerEvaluator, create_evaluators
from ficcrisk.schema.enums import BumpFlags, BumpTarget, BumpType, SensitivityMethod

from .bump import BumpTransaction
from .graph import DependencyGraph, build_curve_graph
from .results import ResultRow, ResultTable
from .selection import TenorFilter, TenorSelection, build_selections

logger = logging.getLogger(__name__)

ALL = "all"


# ------------------------------------------------------------------
# Shared helpers
# ------------------------------------------------------------------
def selection_category(selection: TenorSelection) -> str:
    """Curve category when the selection sits on a single curve, else ``all``."""
    if len(selection.curve_names) == 1:
        category = getattr(selection.curves[0], "category", None)
        if category is not None:
            return category.value
    return ALL


def selection_element(selection: TenorSelection) -> str:
    names = selection.curve_names
    return "\n".join(names) if names else ALL


def affected_evaluators(selection: TenorSelection, evaluators: Sequence, flags: BumpFlags) -> list:
    """Evaluators reported for a selection.

    Uniform bumps report every pricer unless BUMP_IN_PLACE is set; other
    bump types only report pricers that read one of the bumped curves.
    """
    if selection.kind == BumpType.UNIFORM and not flags & BumpFlags.BUMP_IN_PLACE:
        return list(evaluators)
    curves = list(selection.curves)
    return [e for e in evaluators if e.depends_on_any(curves)]


def prewarm_shared_models(evaluators: Sequence) -> None:
    """Build sub-models shared by several evaluators once, before going parallel."""
    keys = [e.shared_model_key() for e in evaluators]
    shared = {k for k, n in Counter(k for k in keys if k is not None).items() if n > 1}
    done = set()
    for evaluator, key in zip(evaluators, keys):
        if key in shared and key not in done:
            logger.debug("Preparing shared model %s", key)
            evaluator.prepare_shared_model()
            done.add(key)


def evaluate_all(evaluators: Sequence, max_workers: int = 1, context: str = "",
                 reset_flags: Optional[dict] = None) -> List[float]:
    """
    Reset, pre-warm and evaluate evaluators.

    Resets and shared-model preparation run sequentially; only the
    ``evaluate`` calls are spread over a thread pool.

    Args:
        evaluators: Evaluators to run
        max_workers: Thread pool size; 1 evaluates in the calling thread
        context: Label used when logging a failure
        reset_flags: Keyword arguments passed to ``reset``

    Returns:
        Values in evaluator order
    """
    for evaluator in evaluators:
        evaluator.reset(**(reset_flags or {}))
    prewarm_shared_models(evaluators)

    def run(evaluator) -> float:
        try:
            return evaluator.evaluate()
        except Exception:
            logger.error("Evaluation of %s failed (%s)", evaluator.description, context or "base")
            raise

    if max_workers <= 1 or len(evaluators) <= 1:
        return [run(e) for e in evaluators]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(run, evaluators))


def pricer_maturity(evaluators: Sequence) -> Optional[date]:
    maturities = [
        getattr(e.pricer, "maturity", None)
        for e in evaluators
        if isinstance(e, PricerEvaluator)
    ]
    maturities = [m for m in maturities if m is not None]
    return max(maturities) if maturities else None


# ------------------------------------------------------------------
# Hedges
# ------------------------------------------------------------------
def hedge_evaluator(curve, tenor) -> Optional[PricerEvaluator]:
    """Pv evaluator of the instrument behind a tenor, if its calibrator has one."""
    calibrator = getattr(curve, "calibrator", None)
    if calibrator is None:
        return None
    pricer = calibrator.hedge_pricer(curve, tenor)
    if pricer is None:
        return None
    return PricerEvaluator(pricer, "Pv")


def _owner_of(selection: TenorSelection, tenor):
    for curve in selection.curves:
        if curve.owns(tenor):
            return curve
    return selection.owner


def _maturity_tenor(curve, maturity: Optional[date]):
    if maturity is None:
        return curve.tenors[-1]
    for tenor in curve.tenors:
        if tenor.maturity >= maturity:
            return tenor
    return curve.tenors[-1]


def resolve_hedge(
    selection: TenorSelection,
    hedge_tenor: str,
    flags: BumpFlags = BumpFlags.NONE,
    maturity: Optional[date] = None,
) -> Tuple[str, Optional[object]]:
    """
    Pick the hedge instrument for a selection.

    Rules:
      - ``""``/``"all"``: every tenor of the selection, summed
      - ``"matching"``: the selection's own tenor for ByTenor, the last
        tenor of the curve for Parallel, none for Uniform
      - ``"maturity"``: the selection's own tenor for ByTenor, otherwise
        the first tenor of the owning curve maturing on or after the
        pricer maturity (the last tenor when unknown)
      - a tenor name: that tenor on the first selection curve carrying it;
        when absent, the ``"matching"`` rule unless
        NO_HEDGE_ON_TENOR_MISMATCH is set

    Args:
        selection: Bumped selection
        hedge_tenor: Hedge tenor setting
        flags: Run flags
        maturity: Longest maturity of the reported pricers

    Returns:
        (hedge label, evaluator or None when there is nothing to hedge with)
    """
    key = (hedge_tenor or "").strip()
    if not selection.tenors or selection.owner is None:
        return key or ALL, None

    if key.lower() in ("", HEDGE_ALL):
        hedges = [hedge_evaluator(_owner_of(selection, t), t) for t in selection.tenors]
        hedges = [h for h in hedges if h is not None]
        if not hedges:
            return ALL, None
        if len(hedges) == 1:
            return ALL, hedges[0]
        return ALL, AggregateEvaluator(hedges, f"{selection.name} hedge")

    owner = selection.owner
    if key.lower() not in (HEDGE_MATCHING, HEDGE_MATURITY):
        for curve in selection.curves:
            tenor = curve.tenor(key)
            if tenor is not None:
                return tenor.name, hedge_evaluator(curve, tenor)
        if flags & BumpFlags.NO_HEDGE_ON_TENOR_MISMATCH:
            logger.debug("No tenor %s on %s; hedge suppressed", key, selection.name)
            return key, None
        key = HEDGE_MATCHING

    if selection.kind == BumpType.BY_TENOR:
        tenor = next((t for t in selection.tenors if owner.owns(t)), selection.tenors[0])
        return tenor.name, hedge_evaluator(_owner_of(selection, tenor), tenor)
    if key.lower() == HEDGE_MATURITY:
        tenor = _maturity_tenor(owner, maturity)
        return tenor.name, hedge_evaluator(owner, tenor)
    if selection.kind == BumpType.PARALLEL:
        tenor = owner.tenors[-1]
        return tenor.name, hedge_evaluator(owner, tenor)
    return key, None


# ------------------------------------------------------------------
# Calculator
# ------------------------------------------------------------------
class SensitivityCalculator:
    """
    Finite-difference sensitivities of pricers to curve quotes.

    Usage::

        config = SensitivityConfig(bump_type=BumpType.BY_TENOR, calc_gamma=True)
        table = SensitivityCalculator(config).calculate([swap])
        frame = table.to_frame()
    """

    def __init__(self, config: Optional[SensitivityConfig] = None):
        self.config = config or SensitivityConfig()

    @property
    def _reset_flags(self) -> dict:
        return {"remap_correlations": bool(self.config.flags & BumpFlags.REMAP_CORRELATIONS)}

    def calculate(
        self,
        pricers: Sequence,
        measures: Union[str, Sequence[str], None] = None,
    ) -> ResultTable:
        """
        Compute sensitivities of pricers to the configured curve quotes.

        Args:
            pricers: Pricers or evaluators
            measures: Measure name(s); the configured measure when None

        Returns:
            ResultTable with one row per (selection, reported pricer)

        Raises:
            ConfigurationError: If the configuration is invalid
            CyclicDependencyError: If the curves form a cycle
            CalibrationError: If a refit fails during a bump
        """
        config = self.config
        config.validate()
        evaluators = create_evaluators(
            pricers, measures or config.measure, config.allow_missing
        )

        if config.method == SensitivityMethod.SEMI_ANALYTIC:
            from .analytic import SemiAnalyticCalculator

            return SemiAnalyticCalculator(config).calculate(evaluators)

        graph = build_curve_graph(evaluators, config.target, config.flags)
        tenor_filter = TenorFilter(config.target, config.curve_names, config.tenor_names)
        selections = build_selections(config.bump_type, graph, tenor_filter)
        hedges: Dict[str, Tuple[str, Optional[object]]] = {}
        if config.calc_hedge:
            graph, selections, hedges = self._prepare_hedges(
                graph, selections, evaluators, tenor_filter
            )

        logger.info(
            "Computing %s sensitivities for %d pricers over %d selections",
            config.bump_type.value,
            len(evaluators),
            len(selections),
        )

        table = ResultTable(calc_gamma=config.calc_gamma, calc_hedge=config.calc_hedge)
        base = self._base_values(evaluators, hedges)
        for selection in selections:
            table.extend(self._selection_rows(graph, selection, evaluators, base, hedges))

        logger.info("Sensitivity run produced %d rows", len(table))
        return table

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------
    def _resolve_hedges(self, selections, evaluators) -> Dict[str, Tuple[str, Optional[object]]]:
        hedges = {}
        for selection in selections:
            reported = affected_evaluators(selection, evaluators, self.config.flags)
            hedges[selection.name] = resolve_hedge(
                selection,
                self.config.hedge_tenor,
                self.config.flags,
                pricer_maturity(reported),
            )
        return hedges

    def _prepare_hedges(self, graph: DependencyGraph, selections, evaluators, tenor_filter):
        hedges = self._resolve_hedges(selections, evaluators)
        hedge_evaluators = [h for _, h in hedges.values() if h is not None]
        target = self.config.target
        if self.config.flags & BumpFlags.RECALIBRATE_SURVIVAL:
            target |= BumpTarget.CREDIT_QUOTES
        missing = [
            c for h in hedge_evaluators for c in h.curves_for_target(target) if c not in graph
        ]
        if not missing:
            return graph, selections, hedges

        logger.debug("Adding hedge curves %s to the dependency graph", [c.name for c in missing])
        graph = build_curve_graph(
            list(evaluators) + hedge_evaluators, self.config.target, self.config.flags
        )
        rebuilt = build_selections(self.config.bump_type, graph, tenor_filter)
        known = {s.name for s in selections}
        fresh = [s for s in rebuilt if s.name not in known]
        hedges.update(self._resolve_hedges(fresh, evaluators))
        return graph, rebuilt, hedges

    def _base_values(self, evaluators, hedges) -> Dict[int, float]:
        targets = list(evaluators) + [h for _, h in hedges.values() if h is not None]
        values = evaluate_all(targets, self.config.max_workers, "base", self._reset_flags)
        return {id(e): v for e, v in zip(targets, values)}

    # ------------------------------------------------------------------
    # Bump loop
    # ------------------------------------------------------------------
    def _bumped_values(self, graph, selection, size, flags, targets, base_values):
        if size <= self.config.tolerance or not targets:
            return list(base_values), 0.0
        try:
            with BumpTransaction(graph, self.config.flags) as txn:
                result = txn.apply(selection, size, flags)
                if result.is_empty:
                    return list(base_values), 0.0
                values = evaluate_all(
                    targets, self.config.max_workers, selection.name, self._reset_flags
                )
        finally:
            for target in targets:
                target.reset(**self._reset_flags)
        return values, result.size

    def _selection_rows(self, graph, selection, evaluators, base, hedges) -> List[ResultRow]:
        config = self.config
        reported = affected_evaluators(selection, evaluators, config.flags)
        if not reported:
            return []
        hedge_label, hedge = hedges.get(selection.name, (None, None))
        targets = reported + ([hedge] if hedge is not None else [])
        base_values = [base[id(t)] for t in targets]

        up_values, up_size = self._bumped_values(
            graph, selection, config.up_bump, BumpFlags.NONE, targets, base_values
        )
        down_values, down_size = self._bumped_values(
            graph, selection, config.down_bump, BumpFlags.BUMP_DOWN, targets, base_values
        )
        total = up_size + down_size
        logger.debug(
            "Selection %s: up %.6g bp, down %.6g bp, %d pricers",
            selection.name, up_size, down_size, len(reported),
        )

        hedge_delta = None
        if config.calc_hedge:
            hedge_delta = 0.0
            if hedge is not None:
                hedge_delta = self._first_order(up_values[-1], down_values[-1], total)

        rows = []
        for i, evaluator in enumerate(reported):
            delta = self._first_order(up_values[i], down_values[i], total)
            row = ResultRow(
                category=selection_category(selection),
                element=selection_element(selection),
                curve_tenor=selection.label,
                pricer=evaluator.description,
                delta=delta,
            )
            if config.calc_gamma:
                row.gamma = self._second_order(up_values[i], base_values[i], down_values[i], total)
            if config.calc_hedge:
                row.hedge_tenor = hedge_label
                row.hedge_delta = config.hedge_delta_scale * hedge_delta
                row.hedge_notional = self._hedge_notional(delta, hedge_delta, selection.name)
            rows.append(row)
        return rows

    # ------------------------------------------------------------------
    # Differences
    # ------------------------------------------------------------------
    def _first_order(self, up: float, down: float, total: float) -> float:
        if not self.config.scale_delta:
            return up - down
        if abs(total) <= self.config.tolerance:
            return 0.0
        return (up - down) / total

    def _second_order(self, up: float, base: float, down: float, total: float) -> float:
        if not self.config.scale_delta:
            return up - 2.0 * base + down
        if abs(total) <= self.config.tolerance:
            return 0.0
        return (up - 2.0 * base + down) / (total / 2.0)

    def _hedge_notional(self, delta: float, hedge_delta: float, selection_name: str) -> float:
        if abs(hedge_delta) > self.config.tolerance:
            return delta / hedge_delta
        if delta != 0.0:
            logger.warning("Zero hedge delta for %s; hedge notional set to 0", selection_name)
        return 0.0
