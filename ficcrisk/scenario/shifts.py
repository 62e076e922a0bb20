"""
Scenario shifts.

Every shift follows the same protocol, driven by the scenario composer:
``validate`` before anything runs, ``save_state`` before any shift,
``perform_shift`` then ``perform_refit``, and ``restore_state`` afterwards.
``restore_state`` is always called, also when ``save_state`` never ran.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Optional, Sequence, Union

from ficcrisk.conventions.tenors import parse_tenor, roll_date
from ficcrisk.curves.base import Curve
from ficcrisk.errors import ConfigurationError
from ficcrisk.schema.enums import BumpFlags, CurveCategory, ScenarioShiftType
from ficcrisk.sensitivity.bump import bump_quote
from ficcrisk.sensitivity.graph import DependencyGraph

logger = logging.getLogger(__name__)


def shift_value(original: float, shift_type: ScenarioShiftType, size: float) -> float:
    """
    Apply a scenario shift to a single value.

    Args:
        original: Value before the shift
        shift_type: NONE, RELATIVE, ABSOLUTE or SPECIFIED
        size: Shift size; a fraction for RELATIVE, the new value for SPECIFIED

    Returns:
        Shifted value
    """
    if shift_type == ScenarioShiftType.ABSOLUTE:
        return original + size
    if shift_type == ScenarioShiftType.RELATIVE:
        return original + original * size
    if shift_type == ScenarioShiftType.SPECIFIED:
        return size
    return original


@dataclass(frozen=True)
class ScenarioValueShift:
    """A shift of a numeric pricer term."""

    shift_type: ScenarioShiftType
    value: float

    def apply(self, original: float) -> float:
        return shift_value(original, self.shift_type, self.value)


def scenario_bump_flags(relative: bool) -> BumpFlags:
    """
    Bump flags for scenario shifts.

    Shifts are applied as signed up-bumps, so a relative shift of -0.1 moves
    a quote by -10% of its value. Scenarios may move quotes through zero.
    """
    flags = BumpFlags.ALLOW_DOWN_CROSSING_ZERO
    if relative:
        flags |= BumpFlags.BUMP_RELATIVE
    return flags


def _broadcast(shifts: Sequence[float], count: int, what: str) -> None:
    if count and not shifts:
        raise ConfigurationError(f"Shifts must be specified if {what} are specified")
    if shifts and len(shifts) != 1 and len(shifts) != count:
        raise ConfigurationError(f"Must specify one shift or a shift for each of the {count} {what}")


def _shift_for(shifts: Sequence[float], i: int) -> float:
    return shifts[0] if len(shifts) == 1 else shifts[i]


def _latest_settle(evaluators) -> Optional[date]:
    dates = [getattr(e.pricer, "as_of", None) for e in evaluators]
    dates = [d for d in dates if d is not None]
    return max(dates) if dates else None


class ScenarioShift(ABC):
    """One change applied to the market or to pricers in a scenario."""

    @property
    def changes_default(self) -> bool:
        """Whether the shift changes the default status of a credit name."""
        return False

    @property
    def changes_correlation(self) -> bool:
        return False

    def validate(self) -> None:
        """
        Check the shift parameters.

        Raises:
            ConfigurationError: If the shift cannot be applied
        """
        pass

    @abstractmethod
    def save_state(self, evaluators: Sequence) -> None:
        pass

    @abstractmethod
    def perform_shift(self, evaluators: Sequence) -> None:
        pass

    def perform_refit(self, evaluators: Sequence) -> None:
        pass

    @abstractmethod
    def restore_state(self, evaluators: Sequence) -> None:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


# ------------------------------------------------------------------
# Curve shifts
# ------------------------------------------------------------------
class CurveShift(ScenarioShift):
    """Shift every tenor of each curve and refit.

    Absolute shifts are in basis points, relative shifts are fractions of
    each quote. With ``refit_dependents`` every curve of the evaluators
    built on a shifted curve is refit as well.
    """

    categories: Optional[tuple] = None

    def __init__(
        self,
        curves: Sequence[Curve],
        shifts: Sequence[float],
        shift_type: ScenarioShiftType = ScenarioShiftType.ABSOLUTE,
        refit_dependents: bool = True,
    ):
        self.curves = list(curves)
        self.shifts = list(shifts)
        self.shift_type = shift_type
        self.refit_dependents = refit_dependents
        self._affected: List[Curve] = []
        self._saved: list = []

    def validate(self) -> None:
        if self.shift_type == ScenarioShiftType.SPECIFIED:
            raise ConfigurationError("Specified shift value is not yet supported")
        _broadcast(self.shifts, len(self.curves), "curves")
        if self.categories is not None:
            wrong = [c.name for c in self.curves if c is not None and c.category not in self.categories]
            if wrong:
                raise ConfigurationError(
                    f"{self.__class__.__name__} cannot shift curves {wrong}"
                )

    def _affected_curves(self, evaluators) -> List[Curve]:
        shifted = [c for c in self.curves if c is not None]
        if not self.refit_dependents:
            return DependencyGraph.build(shifted, lambda c: c.prerequisite_curves()).ordered
        roots = shifted + [c for e in evaluators for c in e.all_curves()]
        graph = DependencyGraph.build(roots, lambda c: c.prerequisite_curves())
        return graph.dependents(shifted)

    def save_state(self, evaluators: Sequence) -> None:
        if not self.curves:
            return
        self._affected = self._affected_curves(evaluators)
        self._saved = [(curve, curve.snapshot()) for curve in self._affected]

    def perform_shift(self, evaluators: Sequence) -> None:
        flags = scenario_bump_flags(self.shift_type == ScenarioShiftType.RELATIVE)
        for i, curve in enumerate(self.curves):
            if curve is None:
                continue
            bump = _shift_for(self.shifts, i)
            if abs(bump) < 1e-15 or self.shift_type == ScenarioShiftType.NONE:
                continue
            logger.debug("Shifting curve %s by %s %s", curve.name, bump, self.shift_type.value)
            for tenor in curve.tenors:
                bump_quote(tenor, bump, flags)
            curve.invalidate()

    def perform_refit(self, evaluators: Sequence) -> None:
        for curve in self._affected:
            curve.refit()

    def restore_state(self, evaluators: Sequence) -> None:
        saved, self._saved = self._saved, []
        for curve, state in reversed(saved):
            curve.restore(state)
        self._affected = []

    def __repr__(self) -> str:
        names = [c.name for c in self.curves if c is not None]
        return f"{self.__class__.__name__}({names}, {self.shifts}, {self.shift_type.value})"


class CreditShift(CurveShift):
    """Shift survival curve quotes (CDS spreads)."""

    categories = (CurveCategory.SURVIVAL,)


class FxShift(CurveShift):
    """Shift FX curve quotes."""

    categories = (CurveCategory.FX,)


class StockShift(CurveShift):
    """Shift stock and commodity forward price curves."""

    categories = (CurveCategory.STOCK, CurveCategory.COMMODITY)


class VolatilityShift(CurveShift):
    """Shift volatility surface quotes."""

    categories = (CurveCategory.VOLATILITY,)

    def __init__(
        self,
        surfaces: Sequence[Curve],
        shifts: Sequence[float],
        shift_type: ScenarioShiftType = ScenarioShiftType.ABSOLUTE,
    ):
        super().__init__(surfaces, shifts, shift_type, refit_dependents=False)


# ------------------------------------------------------------------
# Correlations and defaults
# ------------------------------------------------------------------
class CorrelationShift(ScenarioShift):
    """Bump correlation objects; strikes are unlocked so pricers remap them."""

    def __init__(
        self,
        correlations: Sequence,
        shifts: Sequence[float],
        shift_type: ScenarioShiftType = ScenarioShiftType.ABSOLUTE,
    ):
        self.correlations = list(correlations)
        self.shifts = list(shifts)
        self.shift_type = shift_type
        self._saved: Optional[list] = None

    @property
    def changes_correlation(self) -> bool:
        return bool(self.correlations)

    def validate(self) -> None:
        if self.shift_type == ScenarioShiftType.SPECIFIED:
            raise ConfigurationError("Specified correlation shift is not yet supported")
        _broadcast(self.shifts, len(self.correlations), "correlations")

    def save_state(self, evaluators: Sequence) -> None:
        if not self.correlations:
            return
        self._saved = [c.clone() for c in self.correlations]

    def perform_shift(self, evaluators: Sequence) -> None:
        relative = self.shift_type == ScenarioShiftType.RELATIVE
        for i, correlation in enumerate(self.correlations):
            bump = _shift_for(self.shifts, i)
            if bump == 0.0 or self.shift_type == ScenarioShiftType.NONE:
                continue
            correlation.strikes_locked = False
            realized = correlation.bump(bump, relative)
            logger.debug("Shifted correlation %s by %.6g", correlation.name, realized)

    def restore_state(self, evaluators: Sequence) -> None:
        if self._saved is None:
            return
        for correlation, saved in zip(self.correlations, self._saved):
            correlation.copy_from(saved)
        self._saved = None


class DefaultShift(ScenarioShift):
    """Default credit names at the latest pricer settle date.

    Recoveries may be moved at the same time, by an absolute amount or to a
    specified level. Names that already defaulted are left alone.
    """

    def __init__(
        self,
        survival_curves: Sequence,
        recovery_shifts: Sequence[float] = (),
        shift_type: ScenarioShiftType = ScenarioShiftType.ABSOLUTE,
    ):
        self.curves = list(survival_curves)
        self.recovery_shifts = list(recovery_shifts)
        self.shift_type = shift_type
        self._saved: Optional[list] = None

    @property
    def changes_default(self) -> bool:
        return True

    def validate(self) -> None:
        if self.shift_type == ScenarioShiftType.RELATIVE:
            raise ConfigurationError("Relative recovery shift is not yet supported")
        if self.recovery_shifts and len(self.recovery_shifts) not in (1, len(self.curves)):
            raise ConfigurationError(
                "If recoveries are specified, there must be one or one for each curve"
            )
        for curve in self.curves:
            if curve is not None and curve.calibrator is None:
                raise ConfigurationError(f"The curve '{curve.name}' is not a calibrated curve")

    def save_state(self, evaluators: Sequence) -> None:
        if not self.curves:
            return
        saved = []
        for curve in self.curves:
            if curve is None:
                continue
            saved.append((curve, curve.snapshot()))
            if curve.recovery is not None:
                saved.append((curve.recovery, curve.recovery.snapshot()))
        self._saved = saved

    def perform_shift(self, evaluators: Sequence) -> None:
        settle = _latest_settle(evaluators)
        for i, curve in enumerate(self.curves):
            if curve is None or curve.defaulted:
                continue
            default_date = settle or curve.reference_date
            logger.debug("Marking survival curve %s as defaulted on %s", curve.name, default_date)
            curve.default_date = default_date
            curve.will_default = True
            curve.invalidate()
            if not self.recovery_shifts or curve.recovery is None:
                continue
            shift = _shift_for(self.recovery_shifts, i)
            recovery = curve.recovery
            recovery.recovery_rate = shift_value(recovery.recovery_rate, self.shift_type, shift)
            logger.debug("Shifted recovery of %s to %.4f", curve.name, recovery.recovery_rate)

    def restore_state(self, evaluators: Sequence) -> None:
        if self._saved is None:
            return
        for obj, state in reversed(self._saved):
            obj.restore(state)
        self._saved = None


# ------------------------------------------------------------------
# Pricer terms
# ------------------------------------------------------------------
def _resolve_owner(pricer, path: str):
    """Object holding the last attribute of a dotted path, or None."""
    parts = path.split(".")
    owner = pricer
    for part in parts[:-1]:
        owner = getattr(owner, part, None)
        if owner is None:
            return None, parts[-1]
    if not hasattr(owner, parts[-1]):
        return None, parts[-1]
    return owner, parts[-1]


class PricerTermShift(ScenarioShift):
    """Set pricer attributes for the scenario.

    Values may be plain replacements, :class:`ScenarioValueShift` objects
    for numeric terms, day counts (int) or tenors (str) from the pricer
    as-of date for date terms, or a level for curve terms.
    """

    def __init__(self, names: Union[str, Sequence[str]], values: Sequence[Any]):
        if isinstance(names, str):
            names = [names]
        names = list(names)
        if len(names) == 1 and ";" in names[0]:
            names = [n.strip() for n in names[0].split(";")]
        values = list(values)
        if len(names) > 1 and len(values) == 1:
            values = values * len(names)
        self.names = names
        self.values = values
        self._saved: Optional[list] = None

    def validate(self) -> None:
        if self.names and len(self.names) != len(self.values):
            raise ConfigurationError(
                f"Number of term names ({len(self.names)}) does not match "
                f"number of term values ({len(self.values)})"
            )

    def save_state(self, evaluators: Sequence) -> None:
        saved = []
        for evaluator in evaluators:
            entries = []
            for name in self.names:
                owner, attr = _resolve_owner(evaluator.pricer, name) if name else (None, name)
                if owner is None:
                    entries.append(None)
                    continue
                value = getattr(owner, attr)
                if isinstance(value, Curve):
                    entries.append((owner, attr, value, value.snapshot()))
                else:
                    entries.append((owner, attr, value, None))
            saved.append(entries)
        self._saved = saved

    def _new_value(self, pricer, name: str, old, value):
        if isinstance(value, ScenarioValueShift):
            if not isinstance(old, (int, float)):
                raise ConfigurationError(f"Term {name} is not numeric and cannot be shifted")
            return value.apply(float(old))
        if isinstance(old, (date, datetime)) and isinstance(value, (int, float, str)):
            as_of = pricer.as_of or old
            shift = int(value) if isinstance(value, (int, float)) else value
            return roll_date(as_of, shift)
        return value

    def perform_shift(self, evaluators: Sequence) -> None:
        for evaluator in evaluators:
            pricer = evaluator.pricer
            for name, value in zip(self.names, self.values):
                if not name:
                    continue
                owner, attr = _resolve_owner(pricer, name)
                if owner is None:
                    continue
                old = getattr(owner, attr)
                if isinstance(old, Curve) and isinstance(value, (int, float)):
                    logger.debug("Setting %s %s to flat level %s", pricer, name, value)
                    old.set_quotes([float(value)] * len(old.tenors))
                    old.refit()
                    continue
                new = self._new_value(pricer, name, old, value)
                logger.debug("Setting %s %s to %s", pricer, name, new)
                try:
                    setattr(owner, attr, new)
                except AttributeError as exc:
                    raise ConfigurationError(f"Unable to set {name} to value {value}") from exc
            pricer.reset()

    def restore_state(self, evaluators: Sequence) -> None:
        if self._saved is None or len(self._saved) != len(evaluators):
            return
        for entries in self._saved:
            for entry in reversed(entries):
                if entry is None:
                    continue
                owner, attr, value, state = entry
                if state is not None:
                    value.restore(state)
                elif getattr(owner, attr) is not value:
                    setattr(owner, attr, value)
        self._saved = None


class DateRollShift(ScenarioShift):
    """Roll every pricer's as-of date by a number of days or a tenor."""

    def __init__(self, shift: Union[int, str]):
        self.shift = shift
        self._saved: Optional[list] = None

    def validate(self) -> None:
        if not isinstance(self.shift, (int, str)) or isinstance(self.shift, bool):
            raise ConfigurationError(f"Date roll must be days or a tenor, got {self.shift!r}")
        if isinstance(self.shift, str):
            try:
                parse_tenor(self.shift)
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from exc

    def save_state(self, evaluators: Sequence) -> None:
        self._saved = [(e.pricer, e.pricer.as_of) for e in evaluators]

    def perform_shift(self, evaluators: Sequence) -> None:
        for evaluator in evaluators:
            pricer = evaluator.pricer
            if pricer.as_of is None:
                continue
            pricer.as_of = roll_date(pricer.as_of, self.shift)
            logger.debug("Rolled %s to %s", pricer, pricer.as_of)

    def restore_state(self, evaluators: Sequence) -> None:
        if self._saved is None:
            return
        for pricer, as_of in reversed(self._saved):
            pricer.as_of = as_of
        self._saved = None
