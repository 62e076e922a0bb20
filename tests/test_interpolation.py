"""Tests for ordinate interpolators and their weights."""
import math

import numpy as np
import pytest

from ficcrisk.interpolation import (
    FlatForwardInterpolator,
    LinearInterpolator,
    PiecewiseConstantInterpolator,
    create_interpolator,
    discount_factor_to_zero_rate,
    zero_rate_to_discount_factor,
)


class TestLinearInterpolator:
    """Linear interpolation with flat extrapolation."""

    def test_midpoint(self):
        interp = LinearInterpolator([1.0, 3.0], [0.01, 0.03])
        assert interp.interpolate(2.0) == pytest.approx(0.02)

    def test_flat_extrapolation(self):
        interp = LinearInterpolator([1.0, 3.0], [0.01, 0.03])
        assert interp.interpolate(0.5) == pytest.approx(0.01)
        assert interp.interpolate(10.0) == pytest.approx(0.03)

    def test_weights_sum_to_one(self):
        interp = LinearInterpolator([1.0, 2.0, 5.0], [0.01, 0.02, 0.03])
        for t in (0.1, 1.5, 3.7, 8.0):
            assert interp.weights(t).sum() == pytest.approx(1.0)

    def test_weights_are_value_derivatives(self):
        values = np.array([0.01, 0.02, 0.03])
        interp = LinearInterpolator([1.0, 2.0, 5.0], values)
        t = 3.0
        bumped = values.copy()
        bumped[2] += 1e-6
        moved = LinearInterpolator([1.0, 2.0, 5.0], bumped).interpolate(t)
        slope = (moved - interp.interpolate(t)) / 1e-6
        assert slope == pytest.approx(interp.weights(t)[2], rel=1e-6)

    def test_unsorted_pillars_are_sorted(self):
        interp = LinearInterpolator([3.0, 1.0], [0.03, 0.01])
        assert list(interp.pillars) == [1.0, 3.0]
        assert interp.interpolate(2.0) == pytest.approx(0.02)

    def test_duplicate_pillars_rejected(self):
        with pytest.raises(ValueError):
            LinearInterpolator([1.0, 1.0], [0.01, 0.02])

    def test_length_mismatch_rejected(self):
        with pytest.raises(ValueError):
            LinearInterpolator([1.0, 2.0], [0.01])


class TestFlatForwardInterpolator:
    """Flat forward interpolation on zero rates."""

    def test_reproduces_pillars(self):
        interp = FlatForwardInterpolator([1.0, 2.0], [0.01, 0.02])
        assert interp.interpolate(1.0) == pytest.approx(0.01)
        assert interp.interpolate(2.0) == pytest.approx(0.02)

    def test_constant_forward_between_pillars(self):
        interp = FlatForwardInterpolator([1.0, 2.0], [0.01, 0.02])
        forward = (0.02 * 2.0 - 0.01 * 1.0) / 1.0
        t = 1.5
        assert interp.interpolate(t) * t == pytest.approx(0.01 + forward * 0.5)

    def test_extrapolates_last_forward(self):
        interp = FlatForwardInterpolator([1.0, 2.0], [0.01, 0.02])
        assert interp.interpolate(3.0) * 3.0 == pytest.approx(0.04 + 0.03)


class TestFactory:
    """Interpolator factory and rate conversions."""

    @pytest.mark.parametrize(
        "method, cls",
        [
            ("linear", LinearInterpolator),
            ("FLAT_FORWARD", FlatForwardInterpolator),
            ("step_forward", FlatForwardInterpolator),
            ("PIECEWISE_CONSTANT", PiecewiseConstantInterpolator),
        ],
    )
    def test_create_interpolator(self, method, cls):
        assert isinstance(create_interpolator(method, [1.0, 2.0], [0.01, 0.02]), cls)

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown interpolation method"):
            create_interpolator("CUBIC_SPLINE", [1.0, 2.0], [0.01, 0.02])

    def test_rate_conversions(self):
        df = zero_rate_to_discount_factor(0.03, 2.0)
        assert df == pytest.approx(math.exp(-0.06))
        assert discount_factor_to_zero_rate(df, 2.0) == pytest.approx(0.03)

    def test_piecewise_constant_holds_left_value(self):
        interp = PiecewiseConstantInterpolator([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
        assert interp.interpolate(1.9) == 1.0
        assert interp.interpolate(2.5) == 2.0
