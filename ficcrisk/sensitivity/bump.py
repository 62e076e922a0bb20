"""
Transactional curve bumps.

A bump moves the quotes of one tenor selection, refits the curves that
depend on them and is always undone by restoring snapshots taken before
the first quote was touched.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ficcrisk.curves.state import CurveState
from ficcrisk.errors import BumpStateError, CalibrationError
from ficcrisk.schema.enums import BumpFlags, QuoteType

from .graph import DependencyGraph
from .selection import TenorSelection

logger = logging.getLogger(__name__)

BP = 1e-4

_CREDIT_QUOTES = (QuoteType.CREDIT_SPREAD, QuoteType.UPFRONT)


# ------------------------------------------------------------------
# Quote bump rules
# ------------------------------------------------------------------
def _quote_change(quote: float, size: float, flags: BumpFlags) -> float:
    """Signed change of a rate-like quote."""
    up = not flags & BumpFlags.BUMP_DOWN
    if flags & BumpFlags.BUMP_RELATIVE:
        factor = size if up else size / (1.0 - size)
        amount = factor * abs(quote)
    else:
        amount = size * BP
    if not up:
        amount = -amount

    if quote > 0 and quote + amount < 0 and not flags & BumpFlags.ALLOW_DOWN_CROSSING_ZERO:
        amount = -quote / 2.0
    elif quote < 0 and quote + amount > 0 and flags & BumpFlags.FORBID_UP_CROSSING_ZERO:
        amount = -quote / 2.0
    return amount


def _credit_change(spread: float, size: float, flags: BumpFlags) -> float:
    """Signed change of a credit spread; spreads never cross zero."""
    up = not flags & BumpFlags.BUMP_DOWN
    if flags & BumpFlags.BUMP_RELATIVE:
        if up:
            return size * abs(spread)
        if spread > 0:
            return -size / (1.0 - size) * spread
        return -size / (1.0 + size) * (-spread)

    amount = size * BP if up else -size * BP
    if (spread > 0 and spread + amount < 0) or (spread < 0 and spread + amount > 0):
        amount = -spread / 2.0
    return amount


def _recovery_change(recovery: float, size: float, flags: BumpFlags) -> float:
    """Signed change of a recovery rate, keeping it inside [0, 1]."""
    up = not flags & BumpFlags.BUMP_DOWN
    if flags & BumpFlags.BUMP_RELATIVE:
        amount = max(size if up else -size, -1.0) * recovery
    else:
        amount = size * BP if up else -size * BP
    bumped = min(max(recovery + amount, 0.0), 1.0)
    return bumped - recovery


def quote_change(tenor, size: float, flags: BumpFlags) -> float:
    """
    Signed change a bump of ``size`` makes to a tenor's quote.

    Args:
        tenor: Curve tenor
        size: Bump size, bp when absolute, a fraction when relative
        flags: Bump flags (direction, relative, zero-crossing rules)

    Returns:
        Change in quote units
    """
    if tenor.quote_type == QuoteType.RECOVERY:
        return _recovery_change(tenor.quote, size, flags)
    if tenor.quote_type in _CREDIT_QUOTES:
        return _credit_change(tenor.quote, size, flags)
    return _quote_change(tenor.quote, size, flags)


def bump_quote(tenor, size: float, flags: BumpFlags) -> float:
    """Bump a tenor's quote in place and return the realized size in bp."""
    change = quote_change(tenor, size, flags)
    tenor.quote = tenor.quote + change
    realized = change if not flags & BumpFlags.BUMP_DOWN else -change
    return realized / BP


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------
@dataclass
class BumpResult:
    """Realized bump of one selection.

    ``curve_bumps`` holds the average realized bump per curve in bp;
    NaN marks a curve whose refit failed.
    """

    selection_name: str
    down: bool = False
    curve_bumps: Dict[str, float] = field(default_factory=dict)
    tenor_bumps: List[float] = field(default_factory=list)

    @property
    def size(self) -> float:
        """Average realized bump over the bumped tenors, in bp."""
        if not self.tenor_bumps:
            return 0.0
        if any(math.isnan(v) for v in self.curve_bumps.values()):
            return math.nan
        return sum(self.tenor_bumps) / len(self.tenor_bumps)

    @property
    def is_empty(self) -> bool:
        return not self.tenor_bumps

    def mark_failed(self, curve_name: str) -> None:
        self.curve_bumps[curve_name] = math.nan


# ------------------------------------------------------------------
# Transaction
# ------------------------------------------------------------------
class BumpTransaction:
    """
    Applies one bump at a time and guarantees its restore.

    Usage::

        with BumpTransaction(graph, BumpFlags.REFIT_CURVE) as txn:
            result = txn.apply(selection, 1.0)
            value = evaluator.evaluate()
        # curves are back to their pre-bump state here

    Curves held by an open transaction cannot be bumped by another one
    until it is restored.
    """

    _registry_lock = threading.Lock()
    _open_curves: Set[int] = set()

    def __init__(self, graph: DependencyGraph, flags: BumpFlags = BumpFlags.REFIT_CURVE):
        self.graph = graph
        self.flags = flags
        self._snapshots: List[Tuple[object, CurveState]] = []
        self._claimed: Set[int] = set()

    def __enter__(self) -> "BumpTransaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.restore()
        return False

    @property
    def is_open(self) -> bool:
        return bool(self._snapshots)

    def _touched_curves(self, selection: TenorSelection) -> list:
        touched = [c for c in self.graph if any(c.owns(t) for t in selection.tenors)]
        for curve in selection.curves:
            if curve not in self.graph and not any(c is curve for c in touched):
                touched.append(curve)
        return touched

    def _claim(self, curves) -> None:
        keys = {id(c) for c in curves}
        with BumpTransaction._registry_lock:
            busy = keys & BumpTransaction._open_curves
            if busy:
                names = [c.name for c in curves if id(c) in busy]
                raise BumpStateError(f"Curves already held by an open bump: {names}")
            BumpTransaction._open_curves |= keys
        self._claimed = keys

    def _release(self) -> None:
        with BumpTransaction._registry_lock:
            BumpTransaction._open_curves -= self._claimed
        self._claimed = set()

    def apply(
        self,
        selection: TenorSelection,
        size: float,
        flags: Optional[BumpFlags] = None,
    ) -> BumpResult:
        """
        Bump a selection's quotes and refit the affected curves.

        Args:
            selection: Tenors to bump
            size: Bump size, bp when absolute, a fraction when relative
            flags: Extra flags for this bump (e.g. BUMP_DOWN)

        Returns:
            BumpResult with the realized bump sizes

        Raises:
            BumpStateError: If this transaction or another open one holds
                the curves
            CalibrationError: If a refit fails; curves are restored first
        """
        if self._snapshots:
            raise BumpStateError(
                f"Bump of {selection.name} applied before the previous bump was restored"
            )
        flags = self.flags | (flags if flags is not None else BumpFlags.NONE)
        down = bool(flags & BumpFlags.BUMP_DOWN)

        touched = self._touched_curves(selection)
        if flags & BumpFlags.REFIT_CURVE:
            affected = self.graph.dependents([c for c in touched if c in self.graph])
            affected += [c for c in touched if c not in self.graph]
        else:
            affected = touched

        self._claim(affected)
        self._snapshots = [(curve, curve.snapshot()) for curve in affected]
        result = BumpResult(selection.name, down=down)

        try:
            for curve in touched:
                realized = [
                    bump_quote(tenor, size, flags)
                    for tenor in selection.tenors
                    if curve.owns(tenor)
                ]
                curve.invalidate()
                if realized:
                    result.tenor_bumps.extend(realized)
                    result.curve_bumps[curve.name] = sum(realized) / len(realized)
            self._refit(affected, selection, result, flags)
        except BaseException:
            self.restore()
            raise

        logger.debug(
            "Bumped %s %s by %.6g bp (%d curves refit)",
            selection.name,
            "down" if down else "up",
            result.size,
            len(affected),
        )
        return result

    def _refit(self, affected, selection, result: BumpResult, flags: BumpFlags) -> None:
        if not flags & BumpFlags.REFIT_CURVE:
            for curve in affected:
                curve.invalidate()
            return
        for curve in affected:
            if not curve.is_calibrated:
                curve.invalidate()
                continue
            try:
                curve.refit()
            except CalibrationError as exc:
                result.mark_failed(curve.name)
                error = CalibrationError(curve.name, str(exc), selection.name)
                error.bump_result = result
                raise error from exc

    def restore(self) -> None:
        """Put back every snapshot, last taken first. Safe to call twice."""
        if not self._snapshots and not self._claimed:
            return
        snapshots, self._snapshots = self._snapshots, []
        try:
            for curve, state in reversed(snapshots):
                curve.restore(state)
        finally:
            self._release()
