"""Configuration for sensitivity and scenario runs."""

from dataclasses import dataclass, fields
from typing import Any, FrozenSet, Mapping, Optional, Sequence, Union

from ficcrisk.errors import ConfigurationError
from ficcrisk.schema.enums import (
    BumpFlags,
    BumpTarget,
    BumpType,
    SensitivityMethod,
)

HEDGE_ALL = "all"
HEDGE_MATCHING = "matching"
HEDGE_MATURITY = "maturity"


def _parse_flags(enum_cls, value):
    """Accept a flag value, a name, or a sequence of names ("A|B" also works)."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, int):
        return enum_cls(value)
    if isinstance(value, str):
        value = [v for v in value.replace(",", "|").split("|") if v.strip()]
    result = enum_cls(0)
    for name in value:
        if isinstance(name, enum_cls):
            result |= name
            continue
        key = name.strip().upper()
        try:
            result |= enum_cls[key]
        except KeyError as exc:
            raise ConfigurationError(f"Unknown {enum_cls.__name__} value: {name}") from exc
    return result


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls[str(value).strip().upper()]
    except KeyError as exc:
        raise ConfigurationError(
            f"Unknown {enum_cls.__name__} value: {value}. "
            f"Available: {[m.name for m in enum_cls]}"
        ) from exc


@dataclass
class SensitivityConfig:
    """Configuration for a bump-and-reprice sensitivity run.

    Bump sizes are in basis points for absolute bumps and fractions of the
    quote (0.01 = 1%) for relative bumps.
    """

    bump_type: BumpType = BumpType.PARALLEL
    target: BumpTarget = BumpTarget.INTEREST_RATES
    flags: BumpFlags = BumpFlags.REFIT_CURVE
    up_bump: float = 1.0
    down_bump: float = 0.0
    scale_delta: bool = True
    calc_gamma: bool = False
    calc_hedge: bool = False
    hedge_tenor: str = HEDGE_MATCHING
    curve_names: Optional[FrozenSet[str]] = None
    tenor_names: Optional[FrozenSet[str]] = None
    measure: str = "Pv"
    allow_missing: bool = False
    method: SensitivityMethod = SensitivityMethod.FINITE_DIFFERENCE
    max_workers: int = 1
    tolerance: float = 1e-12
    hedge_delta_scale: float = 1e6

    def __post_init__(self):
        if self.curve_names is not None:
            self.curve_names = frozenset(self.curve_names)
        if self.tenor_names is not None:
            self.tenor_names = frozenset(self.tenor_names)

    @property
    def relative(self) -> bool:
        return bool(self.flags & BumpFlags.BUMP_RELATIVE)

    def validate(self) -> None:
        """
        Check the configuration before any curve is touched.

        Raises:
            ConfigurationError: If a parameter is out of range
        """
        if not self.target & (
            BumpTarget.ALL_CURVE_QUOTES | BumpTarget.VOLATILITIES | BumpTarget.RECOVERY_RATES
        ):
            raise ConfigurationError(f"Unable to handle target tenor types {self.target!r}")
        if self.up_bump < 0 or self.down_bump < 0:
            raise ConfigurationError(
                f"Bump sizes must be non-negative (up={self.up_bump}, down={self.down_bump})"
            )
        if self.relative and max(self.up_bump, self.down_bump) >= 1.0:
            raise ConfigurationError("Relative bumps must be fractions below 1")
        if self.flags & BumpFlags.BUMP_DOWN:
            raise ConfigurationError("BUMP_DOWN is set per bump, not in the run flags")
        if (self.method == SensitivityMethod.SEMI_ANALYTIC
                and self.target & BumpTarget.RECOVERY_RATES):
            raise ConfigurationError("Recovery rates are only bumped by finite differences")
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.tolerance < 0:
            raise ConfigurationError(f"tolerance must be non-negative, got {self.tolerance}")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "SensitivityConfig":
        """Build a config from plain values, accepting enum names as strings."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs = dict(values)
        if "bump_type" in kwargs:
            kwargs["bump_type"] = _parse_enum(BumpType, kwargs["bump_type"])
        if "method" in kwargs:
            kwargs["method"] = _parse_enum(SensitivityMethod, kwargs["method"])
        if "target" in kwargs:
            kwargs["target"] = _parse_flags(BumpTarget, kwargs["target"])
        if "flags" in kwargs:
            kwargs["flags"] = _parse_flags(BumpFlags, kwargs["flags"])
        config = cls(**kwargs)
        config.validate()
        return config


@dataclass
class ScenarioConfig:
    """Configuration for a scenario run."""

    measures: Union[str, Sequence[str]] = "Pv"
    allow_missing: bool = True
    max_workers: int = 1
    tolerance: float = 1e-12

    def validate(self) -> None:
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")
