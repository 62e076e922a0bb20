"""
Pricer evaluators: a pricer bound to one measure, resolved once.
"""

import logging
from typing import Hashable, Iterable, List, Optional, Sequence, Union

from ficcrisk.errors import ConfigurationError, UnknownMeasureError
from ficcrisk.schema.enums import BumpTarget, CurveCategory

from .base import (
    MarketDependencies,
    SupportsCorrelationRemap,
    SupportsDefaultChanged,
    SupportsSharedModel,
)
from .measures import DEFAULT_MEASURE, MEASURES, MeasureRegistry

logger = logging.getLogger(__name__)

_RATE_CATEGORIES = (
    CurveCategory.DISCOUNT,
    CurveCategory.PROJECTION,
    CurveCategory.BASIS,
)

_TARGET_CATEGORIES = (
    (BumpTarget.INTEREST_RATES | BumpTarget.INTEREST_RATE_BASIS, _RATE_CATEGORIES),
    (BumpTarget.INTEREST_RATES | BumpTarget.INTEREST_RATE_BASIS | BumpTarget.FX_RATES,
     (CurveCategory.FX,)),
    (BumpTarget.CREDIT_QUOTES, (CurveCategory.SURVIVAL,)),
    (BumpTarget.INFLATION_RATES, (CurveCategory.INFLATION,)),
    (BumpTarget.COMMODITY_PRICE, (CurveCategory.COMMODITY,)),
    (BumpTarget.STOCK_PRICE, (CurveCategory.STOCK,)),
    (BumpTarget.VOLATILITIES, (CurveCategory.VOLATILITY,)),
    (BumpTarget.RECOVERY_RATES, (CurveCategory.SURVIVAL, CurveCategory.RECOVERY)),
)


def _prerequisite_closure(curves: Iterable) -> dict:
    closure = {}
    stack = list(curves)
    while stack:
        curve = stack.pop()
        if curve is None or id(curve) in closure:
            continue
        closure[id(curve)] = curve
        stack.extend(curve.prerequisite_curves())
    return closure


class PricerEvaluator:
    """A pricer paired with a measure.

    The measure function is looked up in the registry when the evaluator is
    built. With ``allow_missing`` a measure the pricer does not provide
    evaluates to 0.0 instead of failing.
    """

    def __init__(
        self,
        pricer,
        measure: str = DEFAULT_MEASURE,
        allow_missing: bool = False,
        registry: Optional[MeasureRegistry] = None,
    ):
        """
        Initialize evaluator.

        Args:
            pricer: Pricer to evaluate
            measure: Measure name
            allow_missing: Evaluate a missing measure as zero
            registry: Measure registry (default registry if None)

        Raises:
            UnknownMeasureError: If the measure is missing and not allowed
        """
        self.pricer = pricer
        self.measure = measure
        self.allow_missing = allow_missing
        self._registry = registry or MEASURES
        self._spec = self._registry.resolve(type(pricer), measure)
        if self._spec is None:
            if not allow_missing:
                raise UnknownMeasureError(measure, self.description)
            logger.warning(
                "Measure %s not available for %s; evaluating as zero",
                measure,
                self.description,
            )

    @property
    def description(self) -> str:
        return getattr(self.pricer, "description", None) or str(self.pricer)

    @property
    def is_missing(self) -> bool:
        return self._spec is None

    @property
    def is_additive(self) -> bool:
        return self._spec is None or self._spec.additive

    def evaluate(self) -> float:
        """Evaluate the measure on the pricer's current market state."""
        if self._spec is None:
            return 0.0
        return float(self._spec.func(self.pricer))

    def reset(self, default_changed: bool = False, remap_correlations: bool = False) -> None:
        """Invalidate the pricer's cached state.

        Args:
            default_changed: Tell pricers that handle defaults specially that
                a default status changed
            remap_correlations: Ask pricers with base correlations to remap
                strikes against the current curves
        """
        if isinstance(self.pricer, SupportsDefaultChanged):
            self.pricer.mark_default_changed(default_changed)
        self.pricer.reset()
        if remap_correlations and isinstance(self.pricer, SupportsCorrelationRemap):
            self.pricer.remap_correlations()

    def substitute(self, pricer) -> "PricerEvaluator":
        """Same measure on another pricer of the same type."""
        if type(pricer) is not type(self.pricer):
            raise ConfigurationError(
                f"Cannot substitute {type(pricer).__name__} for "
                f"{type(self.pricer).__name__} in evaluator of {self.measure}"
            )
        other = PricerEvaluator.__new__(PricerEvaluator)
        other.pricer = pricer
        other.measure = self.measure
        other.allow_missing = self.allow_missing
        other._registry = self._registry
        other._spec = self._spec
        return other

    # ------------------------------------------------------------------
    # Market dependencies
    # ------------------------------------------------------------------
    def market_objects(self) -> MarketDependencies:
        return self.pricer.market_objects()

    def curves(self, category: CurveCategory) -> list:
        return self.market_objects().of(category)

    @property
    def discount_curves(self) -> list:
        return self.curves(CurveCategory.DISCOUNT)

    @property
    def survival_curves(self) -> list:
        return self.curves(CurveCategory.SURVIVAL)

    @property
    def recovery_curves(self) -> list:
        return self.curves(CurveCategory.RECOVERY)

    @property
    def fx_curves(self) -> list:
        return self.curves(CurveCategory.FX)

    @property
    def volatility_surfaces(self) -> list:
        return self.curves(CurveCategory.VOLATILITY)

    @property
    def correlations(self) -> list:
        return [c for c in self.market_objects().correlations if c is not None]

    def all_curves(self) -> list:
        return self.market_objects().all_curves()

    def curves_for_target(self, target: BumpTarget) -> list:
        """Curves read directly by the pricer whose quotes a target can bump.

        Defaulted survival curves are left out; for recovery targets their
        recovery curves are still offered.
        """
        market = self.market_objects()
        result = []
        seen = set()
        for bits, categories in _TARGET_CATEGORIES:
            if not target & bits:
                continue
            for category in categories:
                for curve in market.of(category):
                    if id(curve) in seen:
                        continue
                    if category == CurveCategory.SURVIVAL and getattr(curve, "defaulted", False):
                        logger.debug("Skipping defaulted curve %s", curve.name)
                        recovery = getattr(curve, "recovery", None)
                        if bits & BumpTarget.RECOVERY_RATES and recovery is not None \
                                and id(recovery) not in seen:
                            seen.add(id(recovery))
                            result.append(recovery)
                        continue
                    seen.add(id(curve))
                    result.append(curve)
        return result

    def depends_on(self, curve) -> bool:
        """Whether the pricer reads ``curve`` directly or through prerequisites."""
        return id(curve) in _prerequisite_closure(self.all_curves())

    def depends_on_any(self, curves: Iterable) -> bool:
        closure = _prerequisite_closure(self.all_curves())
        return any(id(c) in closure for c in curves)

    # ------------------------------------------------------------------
    # Shared sub-models
    # ------------------------------------------------------------------
    def shared_model_key(self) -> Optional[Hashable]:
        if isinstance(self.pricer, SupportsSharedModel):
            return self.pricer.shared_model_key()
        return None

    def prepare_shared_model(self) -> None:
        if isinstance(self.pricer, SupportsSharedModel):
            self.pricer.prepare_shared_model()

    def __repr__(self) -> str:
        return f"PricerEvaluator({self.description}, {self.measure})"


class AggregateEvaluator:
    """Sum of several evaluators, e.g. the hedge pricers of many tenors."""

    def __init__(self, evaluators: Sequence[PricerEvaluator], description: str = ""):
        if not evaluators:
            raise ConfigurationError("AggregateEvaluator needs at least one evaluator")
        self.evaluators = list(evaluators)
        self._description = description or "+".join(e.description for e in self.evaluators)

    @property
    def description(self) -> str:
        return self._description

    @property
    def measure(self) -> str:
        return self.evaluators[0].measure

    def evaluate(self) -> float:
        return sum(e.evaluate() for e in self.evaluators)

    def reset(self, default_changed: bool = False, remap_correlations: bool = False) -> None:
        for e in self.evaluators:
            e.reset(default_changed, remap_correlations)

    def all_curves(self) -> list:
        seen = set()
        result = []
        for e in self.evaluators:
            for curve in e.all_curves():
                if id(curve) not in seen:
                    seen.add(id(curve))
                    result.append(curve)
        return result

    def curves_for_target(self, target: BumpTarget) -> list:
        seen = set()
        result = []
        for e in self.evaluators:
            for curve in e.curves_for_target(target):
                if id(curve) not in seen:
                    seen.add(id(curve))
                    result.append(curve)
        return result

    def depends_on(self, curve) -> bool:
        return any(e.depends_on(curve) for e in self.evaluators)

    def depends_on_any(self, curves: Iterable) -> bool:
        curves = list(curves)
        return any(e.depends_on_any(curves) for e in self.evaluators)

    def shared_model_key(self) -> Optional[Hashable]:
        return None

    def prepare_shared_model(self) -> None:
        for e in self.evaluators:
            e.prepare_shared_model()

    def __repr__(self) -> str:
        return f"AggregateEvaluator({self.description})"


def create_evaluators(
    pricers: Sequence,
    measures: Union[str, Sequence[str], None] = None,
    allow_missing: bool = False,
    registry: Optional[MeasureRegistry] = None,
) -> List[PricerEvaluator]:
    """
    Build one evaluator per pricer.

    Args:
        pricers: Pricers (existing evaluators are passed through)
        measures: One measure for all pricers or one per pricer
        allow_missing: Evaluate missing measures as zero
        registry: Measure registry

    Returns:
        List of evaluators

    Raises:
        ConfigurationError: If per-pricer measures do not match the pricers
    """
    if measures is None:
        measures = DEFAULT_MEASURE
    if isinstance(measures, str):
        measures = [measures] * len(pricers)
    if len(measures) != len(pricers):
        raise ConfigurationError(
            f"Got {len(measures)} measures for {len(pricers)} pricers"
        )

    evaluators = []
    for pricer, measure in zip(pricers, measures):
        if isinstance(pricer, (PricerEvaluator, AggregateEvaluator)):
            evaluators.append(pricer)
        else:
            evaluators.append(PricerEvaluator(pricer, measure, allow_missing, registry))
    return evaluators
