"""
Factory functions and utilities for creating interpolators.
"""
import math
from typing import Sequence

from .base import Interpolator
from .linear import LinearInterpolator, PiecewiseConstantInterpolator
from .step_forward import FlatForwardInterpolator

INTERPOLATION_METHODS = ("LINEAR", "FLAT_FORWARD", "PIECEWISE_CONSTANT")


def create_interpolator(method: str,
                        pillars: Sequence[float],
                        values: Sequence[float]) -> Interpolator:
    """
    Create an interpolator based on method name.

    Args:
        method: Interpolation method name
        pillars: Time points
        values: Ordinates to interpolate

    Returns:
        Configured interpolator
    """
    method_upper = method.upper()

    if method_upper == "LINEAR":
        return LinearInterpolator(pillars, values)
    elif method_upper in ["FLAT_FORWARD", "STEP_FORWARD"]:
        return FlatForwardInterpolator(pillars, values)
    elif method_upper == "PIECEWISE_CONSTANT":
        return PiecewiseConstantInterpolator(pillars, values)
    else:
        raise ValueError(f"Unknown interpolation method: {method}. "
                         f"Available: {', '.join(INTERPOLATION_METHODS)}")


def discount_factor_to_zero_rate(df: float, time: float) -> float:
    """Convert discount factor to continuously compounded zero rate."""
    if df <= 0:
        raise ValueError("Discount factor must be positive")
    if time <= 0:
        raise ValueError("Time must be positive")

    return -math.log(df) / time


def zero_rate_to_discount_factor(rate: float, time: float) -> float:
    """Convert zero rate to discount factor."""
    return math.exp(-rate * time)
