"""
Tenor selections: groups of tenors bumped together as one unit.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from ficcrisk.conventions.tenors import is_spot_tenor
from ficcrisk.errors import ConfigurationError
from ficcrisk.schema.enums import BumpTarget, BumpType, CurveCategory, QuoteType

from .graph import DependencyGraph

logger = logging.getLogger(__name__)

RATE_QUOTES = frozenset({
    QuoteType.ZERO_RATE,
    QuoteType.PAR_RATE,
    QuoteType.YIELD,
    QuoteType.FLAT_PRICE,
    QuoteType.FULL_PRICE,
})
BASIS_QUOTES = frozenset({QuoteType.YIELD_SPREAD, QuoteType.BASIS_SPREAD})
FX_QUOTES = frozenset({QuoteType.FX_RATE, QuoteType.FX_FORWARD_POINTS, QuoteType.XCCY_BASIS})
CREDIT_QUOTES = frozenset({QuoteType.CREDIT_SPREAD, QuoteType.UPFRONT})
RECOVERY_QUOTES = frozenset({QuoteType.RECOVERY})

_FORWARD_PRICE_TARGETS = (
    BumpTarget.INFLATION_RATES | BumpTarget.COMMODITY_PRICE | BumpTarget.STOCK_PRICE
)

_UNIFORM_NAMES = {
    BumpTarget.INTEREST_RATES: "All Rate Tenors",
    BumpTarget.INTEREST_RATE_BASIS: "All Basis Spread Tenors",
    BumpTarget.FX_RATES: "All FX Rate Tenors",
    BumpTarget.CREDIT_QUOTES: "All Credit Tenors",
    BumpTarget.INFLATION_RATES: "All Forward Price Tenors",
    BumpTarget.COMMODITY_PRICE: "All Forward Price Tenors",
    BumpTarget.STOCK_PRICE: "All Forward Price Tenors",
    BumpTarget.VOLATILITIES: "All Volatility Tenors",
    BumpTarget.RECOVERY_RATES: "All Recovery Tenors",
}


# ------------------------------------------------------------------
# Tenor classification
# ------------------------------------------------------------------
def is_rate_tenor(tenor) -> bool:
    return tenor.quote_type in RATE_QUOTES


def is_basis_tenor(tenor) -> bool:
    return tenor.quote_type in BASIS_QUOTES


def is_fx_tenor(tenor) -> bool:
    return tenor.quote_type in FX_QUOTES


def is_credit_tenor(tenor) -> bool:
    return tenor.quote_type in CREDIT_QUOTES


def is_recovery_tenor(tenor) -> bool:
    return tenor.quote_type in RECOVERY_QUOTES


def is_forward_price_tenor(tenor, include_spot: bool = False) -> bool:
    if tenor.quote_type == QuoteType.SPOT_PRICE:
        return include_spot
    if tenor.quote_type == QuoteType.FORWARD_PRICE and is_spot_tenor(tenor.name):
        return include_spot
    return tenor.quote_type in (QuoteType.FORWARD_PRICE, QuoteType.INFLATION_RATE)


def is_volatility_tenor(tenor) -> bool:
    return tenor.quote_type == QuoteType.VOLATILITY


def is_selected(tenor, target: BumpTarget) -> bool:
    """Whether a tenor's quote type falls under a bump target."""
    include_spot = bool(target & BumpTarget.INCLUDE_SPOT)
    return bool(
        (target & BumpTarget.INTEREST_RATES and is_rate_tenor(tenor))
        or (target & BumpTarget.INTEREST_RATE_BASIS and is_basis_tenor(tenor))
        or (target & BumpTarget.FX_RATES and is_fx_tenor(tenor))
        or (target & BumpTarget.CREDIT_QUOTES and is_credit_tenor(tenor))
        or (target & _FORWARD_PRICE_TARGETS and is_forward_price_tenor(tenor, include_spot))
        or (target & BumpTarget.VOLATILITIES and is_volatility_tenor(tenor))
        or (target & BumpTarget.RECOVERY_RATES and is_recovery_tenor(tenor))
    )


def curve_matches_target(curve, target: BumpTarget) -> bool:
    """Forward-price targets only bump curves of the matching kind."""
    if not target & _FORWARD_PRICE_TARGETS:
        return True
    if target & ~_FORWARD_PRICE_TARGETS & ~BumpTarget.INCLUDE_SPOT:
        return True
    category = curve.category
    return bool(
        (target & BumpTarget.COMMODITY_PRICE and category == CurveCategory.COMMODITY)
        or (target & BumpTarget.STOCK_PRICE and category == CurveCategory.STOCK)
        or (target & BumpTarget.INFLATION_RATES
            and category in (CurveCategory.INFLATION, CurveCategory.DISCOUNT))
    )


@dataclass(frozen=True)
class TenorFilter:
    """Predicate ``(curve, tenor) -> bool`` deciding which tenors are bumped."""

    target: BumpTarget
    curve_names: Optional[FrozenSet[str]] = None
    tenor_names: Optional[FrozenSet[str]] = None

    def __call__(self, curve, tenor) -> bool:
        if self.curve_names and curve.name not in self.curve_names:
            return False
        if self.tenor_names and tenor.name not in self.tenor_names:
            return False
        return curve_matches_target(curve, self.target) and is_selected(tenor, self.target)


# ------------------------------------------------------------------
# Selections
# ------------------------------------------------------------------
@dataclass(frozen=True, eq=False)
class TenorSelection:
    """A named group of tenors moved by a single bump.

    ``curves`` are the curves the tenors sit on, the owning (most
    dependent) curve first.
    """

    name: str
    tenors: Tuple = ()
    curves: Tuple = ()
    kind: BumpType = BumpType.BY_TENOR
    label: str = "all"
    hedge_tenor: Optional[str] = None

    @property
    def tenor_names(self) -> List[str]:
        return [t.name for t in self.tenors]

    @property
    def owner(self):
        return self.curves[0] if self.curves else None

    @property
    def curve_names(self) -> List[str]:
        names: List[str] = []
        for curve in self.curves:
            if curve.name not in names:
                names.append(curve.name)
        return names

    def contains_curve(self, curve) -> bool:
        return any(c is curve for c in self.curves)

    def contains_tenor(self, tenor) -> bool:
        return any(t is tenor for t in self.tenors)

    def __len__(self) -> int:
        return len(self.tenors)

    def __repr__(self) -> str:
        return f"TenorSelection({self.name!r}, tenors={self.tenor_names}, curves={self.curve_names})"


@dataclass
class _TenorGroup:
    owner: object
    tenor: object
    tenors: list = field(default_factory=list)
    curves: list = field(default_factory=list)


def uniform_selection_name(target: BumpTarget) -> str:
    bits = target & ~BumpTarget.INCLUDE_SPOT
    return _UNIFORM_NAMES.get(bits, "Uniform")


def select_uniform(graph: DependencyGraph, tenor_filter: Callable) -> List[TenorSelection]:
    """One selection holding every passing tenor on every curve."""
    tenors = []
    curves = []
    seen = set()
    for curve in graph.reverse_ordered():
        picked = False
        for tenor in curve.tenors:
            if id(tenor) in seen or not tenor_filter(curve, tenor):
                continue
            seen.add(id(tenor))
            tenors.append(tenor)
            picked = True
        if picked:
            curves.append(curve)

    if not tenors:
        return []
    name = uniform_selection_name(getattr(tenor_filter, "target", BumpTarget.NONE))
    return [TenorSelection(name, tuple(tenors), tuple(curves), BumpType.UNIFORM, "all")]


def select_parallel(graph: DependencyGraph, tenor_filter: Callable) -> List[TenorSelection]:
    """One selection per curve; FX curves split into spot and forwards."""
    selections = []
    for curve in graph.ordered:
        tenors = [t for t in curve.tenors if tenor_filter(curve, t)]
        if not tenors:
            continue

        spot = [t for t in tenors if is_spot_tenor(t.name)]
        if curve.category == CurveCategory.FX and spot and len(spot) < len(tenors):
            forwards = [t for t in tenors if not is_spot_tenor(t.name)]
            selections.append(TenorSelection(
                f"{curve.name}.SpotFx", tuple(spot), (curve,), BumpType.PARALLEL, "SpotFx"))
            selections.append(TenorSelection(
                f"{curve.name}.FxForwards", tuple(forwards), (curve,), BumpType.PARALLEL, "FxForwards"))
            continue

        selections.append(
            TenorSelection(f"{curve.name}.all", tuple(tenors), (curve,), BumpType.PARALLEL, "all")
        )
    return selections


def select_by_tenor(graph: DependencyGraph, tenor_filter: Callable) -> List[TenorSelection]:
    """
    One selection per distinct tenor identity.

    Tenors with the same name and maturity on several curves form one
    selection. The curves are scanned most dependent first, so the owner
    is the most dependent curve carrying the tenor.
    """
    groups: Dict[tuple, _TenorGroup] = {}
    for curve in graph.reverse_ordered():
        for tenor in curve.tenors:
            if not tenor_filter(curve, tenor):
                continue
            group = groups.get(tenor.identity)
            if group is None:
                group = _TenorGroup(owner=curve, tenor=tenor)
                groups[tenor.identity] = group
            group.tenors.append(tenor)
            if not any(c is curve for c in group.curves):
                group.curves.append(curve)

    return [
        TenorSelection(
            g.tenor.name, tuple(g.tenors), tuple(g.curves), BumpType.BY_TENOR, g.tenor.name
        )
        for g in groups.values()
    ]


def build_selections(
    bump_type: BumpType,
    graph: DependencyGraph,
    tenor_filter: Callable,
) -> List[TenorSelection]:
    """
    Partition the graph's tenors according to the bump type.

    Args:
        bump_type: Uniform, Parallel or ByTenor
        graph: Curve dependency graph
        tenor_filter: Predicate ``(curve, tenor) -> bool``

    Returns:
        Selections in processing order

    Raises:
        ConfigurationError: If the bump type is not supported
    """
    if bump_type == BumpType.UNIFORM:
        selections = select_uniform(graph, tenor_filter)
    elif bump_type == BumpType.PARALLEL:
        selections = select_parallel(graph, tenor_filter)
    elif bump_type == BumpType.BY_TENOR:
        selections = select_by_tenor(graph, tenor_filter)
    else:
        raise ConfigurationError(f"Bump type {bump_type} not supported yet")

    logger.debug("Built %d %s selections", len(selections), bump_type.value)
    return selections
