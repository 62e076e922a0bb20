"""
Semi-analytic sensitivities.

Pricers that know the derivatives of a measure with respect to curve
ordinates get their quote sensitivities through the chain rule instead of
bumping and refitting:

    g_q = J^T g_o
    H_q = J^T H_o J + sum_k g_o[k] * d2 o_k / dq2

where ``J[k, i] = d o_k / d q_i`` comes from the curve's calibrator.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ficcrisk.config import SensitivityConfig
from ficcrisk.errors import ConfigurationError
from ficcrisk.pricing.base import SupportsOrdinateDerivatives
from ficcrisk.pricing.evaluator import AggregateEvaluator
from ficcrisk.schema.enums import BumpType

from .calculator import (
    affected_evaluators,
    prewarm_shared_models,
    pricer_maturity,
    resolve_hedge,
    selection_category,
    selection_element,
)
from .graph import build_curve_graph
from .results import ResultRow, ResultTable
from .selection import TenorFilter, TenorSelection, build_selections

logger = logging.getLogger(__name__)

BP = 1e-4
HEDGE_FLOOR = 1e-8

QuoteDerivatives = Dict[int, Tuple[object, np.ndarray, np.ndarray]]


def unpack_lower_triangular(packed: np.ndarray, n: int) -> np.ndarray:
    """
    Expand a packed lower-triangular Hessian into a full symmetric matrix.

    Element ``(l, k)`` with ``k <= l`` is stored at ``l (l + 1) / 2 + k``.
    """
    packed = np.asarray(packed, dtype=float)
    if packed.shape != (n * (n + 1) // 2,):
        raise ValueError(f"Packed Hessian of length {packed.shape} does not fit {n} ordinates")
    full = np.zeros((n, n))
    for l in range(n):
        for k in range(l + 1):
            full[l, k] = full[k, l] = packed[l * (l + 1) // 2 + k]
    return full


def _full_hessian(hessian: Optional[np.ndarray], n: int) -> np.ndarray:
    if hessian is None:
        return np.zeros((n, n))
    hessian = np.asarray(hessian, dtype=float)
    if hessian.ndim == 1:
        return unpack_lower_triangular(hessian, n)
    return hessian


def quote_derivatives(
    gradient: np.ndarray,
    hessian: Optional[np.ndarray],
    jacobian: np.ndarray,
    ordinate_hessian: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert ordinate derivatives into quote derivatives.

    Args:
        gradient: ``d V / d o``, length n
        hessian: ``d2 V / d o2``, full (n, n) or packed lower-triangular
        jacobian: ``J[k, i] = d o_k / d q_i``, shape (n, m)
        ordinate_hessian: ``d2 o_k / d q_i d q_j``, shape (n, m, m)

    Returns:
        (gradient, Hessian) with respect to the m quotes
    """
    gradient = np.asarray(gradient, dtype=float)
    jacobian = np.asarray(jacobian, dtype=float)
    n = len(gradient)

    quote_gradient = jacobian.T @ gradient
    quote_hessian = jacobian.T @ _full_hessian(hessian, n) @ jacobian
    if ordinate_hessian is not None:
        quote_hessian = quote_hessian + np.tensordot(gradient, ordinate_hessian, axes=1)
    quote_hessian = 0.5 * (quote_hessian + quote_hessian.T)
    return quote_gradient, quote_hessian


class SemiAnalyticCalculator:
    """
    Chain-rule sensitivities for Parallel and ByTenor selections.

    Only the quotes of the curve a pricer reports derivatives for are
    considered; curves feeding it through calibration are not chained.
    """

    def __init__(self, config: Optional[SensitivityConfig] = None):
        self.config = config or SensitivityConfig()
        self._jacobians: Dict[int, Tuple[np.ndarray, Optional[np.ndarray]]] = {}

    def calculate(self, evaluators: Sequence) -> ResultTable:
        """
        Compute sensitivities from pricer ordinate derivatives.

        Args:
            evaluators: Pricer evaluators

        Returns:
            ResultTable laid out like the finite-difference one

        Raises:
            ConfigurationError: For Uniform bumps
        """
        config = self.config
        if config.bump_type not in (BumpType.PARALLEL, BumpType.BY_TENOR):
            raise ConfigurationError(
                f"Bump type {config.bump_type.value} not supported for semi-analytic sensitivities"
            )

        graph = build_curve_graph(evaluators, config.target, config.flags)
        tenor_filter = TenorFilter(config.target, config.curve_names, config.tenor_names)
        selections = build_selections(config.bump_type, graph, tenor_filter)

        self._jacobians = {}
        derivatives = self._evaluate_derivatives(evaluators)
        logger.info(
            "Computing semi-analytic %s sensitivities for %d pricers over %d selections",
            config.bump_type.value,
            len(derivatives),
            len(selections),
        )

        table = ResultTable(calc_gamma=config.calc_gamma, calc_hedge=config.calc_hedge)
        for selection in selections:
            table.extend(self._selection_rows(selection, evaluators, derivatives))
        return table

    # ------------------------------------------------------------------
    # Derivatives
    # ------------------------------------------------------------------
    def _raw_derivatives(self, evaluator) -> Optional[list]:
        pricer = getattr(evaluator, "pricer", None)
        if not isinstance(pricer, SupportsOrdinateDerivatives):
            logger.error("Pricer %s cannot provide ordinate derivatives", evaluator.description)
            return None
        try:
            return list(pricer.ordinate_derivatives(evaluator.measure))
        except NotImplementedError as exc:
            logger.error("Pricer %s cannot provide ordinate derivatives: %s",
                         evaluator.description, exc)
            return None

    def _curve_jacobian(self, curve) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """Ordinate Jacobian and Hessian of a curve, computed once per run.

        Calibrator Jacobians may refit the curve, so this runs only in the
        calling thread.
        """
        key = id(curve)
        if key not in self._jacobians:
            calibrator = getattr(curve, "calibrator", None)
            if calibrator is None:
                self._jacobians[key] = (np.eye(len(curve.tenors)), None)
            else:
                self._jacobians[key] = (
                    calibrator.ordinate_jacobian(curve),
                    calibrator.ordinate_hessian(curve),
                )
        return self._jacobians[key]

    def _chain(self, raw: list) -> QuoteDerivatives:
        result: QuoteDerivatives = {}
        for item in raw:
            curve = item.curve
            jacobian, ordinate_hessian = self._curve_jacobian(curve)
            gradient, hessian = quote_derivatives(
                item.gradient, item.hessian, jacobian, ordinate_hessian
            )
            if id(curve) in result:
                _, g0, h0 = result[id(curve)]
                gradient, hessian = g0 + gradient, h0 + hessian
            result[id(curve)] = (curve, gradient, hessian)
        return result

    def _derivatives_of(self, evaluator) -> Optional[QuoteDerivatives]:
        raw = self._raw_derivatives(evaluator)
        return None if raw is None else self._chain(raw)

    def _evaluate_derivatives(self, evaluators: Sequence) -> Dict[int, QuoteDerivatives]:
        for evaluator in evaluators:
            evaluator.reset()
        prewarm_shared_models(evaluators)

        if self.config.max_workers <= 1 or len(evaluators) <= 1:
            raws = [self._raw_derivatives(e) for e in evaluators]
        else:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                raws = list(pool.map(self._raw_derivatives, evaluators))
        return {id(e): self._chain(raw) for e, raw in zip(evaluators, raws) if raw is not None}

    def _hedge_derivatives(self, hedge) -> Optional[QuoteDerivatives]:
        if hedge is None:
            return None
        parts = hedge.evaluators if isinstance(hedge, AggregateEvaluator) else [hedge]
        combined: QuoteDerivatives = {}
        for part in parts:
            part.reset()
            derivs = self._derivatives_of(part)
            if derivs is None:
                continue
            for key, (curve, g, h) in derivs.items():
                if key in combined:
                    _, g0, h0 = combined[key]
                    g, h = g0 + g, h0 + h
                combined[key] = (curve, g, h)
        return combined

    # ------------------------------------------------------------------
    # Bump vectors
    # ------------------------------------------------------------------
    def _bump_vector(self, curve, selection: TenorSelection, size: float) -> np.ndarray:
        bp = np.zeros(len(curve.tenors))
        for tenor in selection.tenors:
            if curve.owns(tenor):
                i = curve.tenor_index(tenor)
                bp[i] = size * abs(tenor.quote) if self.config.relative else size * BP
        return bp

    def _sensitivity(self, derivs: QuoteDerivatives, selection: TenorSelection) -> Tuple[float, float]:
        """(delta, gamma) of one pricer to one selection."""
        config = self.config
        delta = 0.0
        gamma = 0.0
        up_sizes: List[float] = []
        down_sizes: List[float] = []
        for curve in selection.curves:
            if id(curve) not in derivs:
                continue
            _, gradient, hessian = derivs[id(curve)]
            bp_up = self._bump_vector(curve, selection, config.up_bump)
            bp_down = self._bump_vector(curve, selection, config.down_bump)
            up_sizes.extend(bp_up[bp_up != 0] / BP)
            down_sizes.extend(bp_down[bp_down != 0] / BP)

            delta += float(gradient @ (bp_up + bp_down))
            if selection.kind == BumpType.BY_TENOR:
                gamma += float(np.diag(hessian) @ (bp_up ** 2))
            else:
                gamma += float(bp_up @ hessian @ bp_up)

        if not config.scale_delta:
            return delta, gamma
        up_size = float(np.mean(up_sizes)) if up_sizes else 0.0
        down_size = float(np.mean(down_sizes)) if down_sizes else 0.0
        total = up_size + down_size
        scaled_delta = delta / total if abs(total) > config.tolerance else 0.0
        scaled_gamma = gamma / up_size if abs(up_size) > config.tolerance else 0.0
        return scaled_delta, scaled_gamma

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------
    def _selection_rows(self, selection, evaluators, derivatives) -> List[ResultRow]:
        config = self.config
        curve_ids = {id(c) for c in selection.curves}
        reported = [
            e for e in affected_evaluators(selection, evaluators, config.flags)
            if id(e) in derivatives and curve_ids & set(derivatives[id(e)])
        ]
        if not reported:
            return []

        hedge_label = None
        hedge_delta = 0.0
        if config.calc_hedge:
            hedge_label, hedge = resolve_hedge(
                selection, config.hedge_tenor, config.flags, pricer_maturity(reported)
            )
            hedge_derivs = self._hedge_derivatives(hedge)
            if hedge_derivs:
                hedge_delta, _ = self._sensitivity(hedge_derivs, selection)
            if abs(hedge_delta) < HEDGE_FLOOR:
                hedge_delta = 0.0

        rows = []
        for evaluator in reported:
            delta, gamma = self._sensitivity(derivatives[id(evaluator)], selection)
            row = ResultRow(
                category=selection_category(selection),
                element=selection_element(selection),
                curve_tenor=selection.label,
                pricer=evaluator.description,
                delta=delta,
            )
            if config.calc_gamma:
                row.gamma = gamma
            if config.calc_hedge:
                row.hedge_tenor = hedge_label
                row.hedge_delta = config.hedge_delta_scale * hedge_delta
                row.hedge_notional = delta / hedge_delta if hedge_delta != 0.0 else 0.0
            rows.append(row)
        return rows
