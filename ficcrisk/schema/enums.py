"""
Core enumeration types for the sensitivity engine.
"""

from enum import Enum, IntFlag


class QuoteType(Enum):
    """Quoting convention of a curve tenor."""

    ZERO_RATE = "ZERO_RATE"
    PAR_RATE = "PAR_RATE"
    YIELD = "YIELD"
    FLAT_PRICE = "FLAT_PRICE"
    FULL_PRICE = "FULL_PRICE"
    YIELD_SPREAD = "YIELD_SPREAD"
    BASIS_SPREAD = "BASIS_SPREAD"
    FX_RATE = "FX_RATE"
    FX_FORWARD_POINTS = "FX_FORWARD_POINTS"
    XCCY_BASIS = "XCCY_BASIS"
    CREDIT_SPREAD = "CREDIT_SPREAD"
    UPFRONT = "UPFRONT"
    RECOVERY = "RECOVERY"
    INFLATION_RATE = "INFLATION_RATE"
    FORWARD_PRICE = "FORWARD_PRICE"
    SPOT_PRICE = "SPOT_PRICE"
    VOLATILITY = "VOLATILITY"


class CurveCategory(Enum):
    """Role a market object plays for a pricer."""

    DISCOUNT = "DISCOUNT"
    PROJECTION = "PROJECTION"
    BASIS = "BASIS"
    SURVIVAL = "SURVIVAL"
    RECOVERY = "RECOVERY"
    FX = "FX"
    STOCK = "STOCK"
    COMMODITY = "COMMODITY"
    INFLATION = "INFLATION"
    VOLATILITY = "VOLATILITY"


class BumpType(Enum):
    """How tenors are grouped into bump units."""

    UNIFORM = "UNIFORM"
    PARALLEL = "PARALLEL"
    BY_TENOR = "BY_TENOR"


class BumpTarget(IntFlag):
    """Which quotes a sensitivity run bumps."""

    NONE = 0
    INTEREST_RATES = 0x0001
    INTEREST_RATE_BASIS = 0x0002
    FX_RATES = 0x0004
    CREDIT_QUOTES = 0x0008
    INFLATION_RATES = 0x0010
    COMMODITY_PRICE = 0x0020
    STOCK_PRICE = 0x0040
    VOLATILITIES = 0x0080
    INCLUDE_SPOT = 0x0100
    RECOVERY_RATES = 0x0200

    ALL_CURVE_QUOTES = (
        INTEREST_RATES | INTEREST_RATE_BASIS | FX_RATES | CREDIT_QUOTES
        | INFLATION_RATES | COMMODITY_PRICE | STOCK_PRICE
    )


class BumpFlags(IntFlag):
    """Modifiers of a single bump."""

    NONE = 0
    BUMP_RELATIVE = 0x0001
    BUMP_DOWN = 0x0002
    BUMP_IN_PLACE = 0x0004
    RECALIBRATE_SURVIVAL = 0x0008
    REMAP_CORRELATIONS = 0x0010
    NO_HEDGE_ON_TENOR_MISMATCH = 0x0020
    REFIT_CURVE = 0x0040
    ALLOW_DOWN_CROSSING_ZERO = 0x0080
    FORBID_UP_CROSSING_ZERO = 0x0100


class SensitivityMethod(Enum):
    """How sensitivities are computed."""

    FINITE_DIFFERENCE = "FINITE_DIFFERENCE"
    SEMI_ANALYTIC = "SEMI_ANALYTIC"


class ScenarioShiftType(Enum):
    """How a scenario shift value combines with the original value."""

    NONE = "NONE"
    RELATIVE = "RELATIVE"
    ABSOLUTE = "ABSOLUTE"
    SPECIFIED = "SPECIFIED"
