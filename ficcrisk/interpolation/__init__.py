"""
Interpolation methods for curve ordinates.
"""

from .base import Interpolator
from .factory import (
    INTERPOLATION_METHODS,
    create_interpolator,
    discount_factor_to_zero_rate,
    zero_rate_to_discount_factor,
)
from .linear import LinearInterpolator, PiecewiseConstantInterpolator
from .step_forward import FlatForwardInterpolator

__all__ = [
    'Interpolator',
    'LinearInterpolator',
    'PiecewiseConstantInterpolator',
    'FlatForwardInterpolator',
    'INTERPOLATION_METHODS',
    'create_interpolator',
    'discount_factor_to_zero_rate',
    'zero_rate_to_discount_factor',
]
