"""Tests for quote bump rules and bump transactions."""
import math
from datetime import date

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ficcrisk.curves import (
    CurveTenor,
    RateCurve,
    SpreadCalibrator,
    create_curve_from_quotes,
)
from ficcrisk.errors import BumpStateError, CalibrationError
from ficcrisk.pricing import PricerEvaluator
from ficcrisk.schema.enums import BumpFlags, BumpTarget, CurveCategory, QuoteType
from ficcrisk.sensitivity import (
    BumpResult,
    BumpTransaction,
    TenorFilter,
    build_curve_graph,
    bump_quote,
    quote_change,
    select_parallel,
    select_uniform,
)
from ficcrisk.sensitivity.graph import DependencyGraph

from .conftest import REFERENCE_DATE, CappedCalibrator, ZeroRatePricer

RATES_AND_BASIS = BumpTarget.INTEREST_RATES | BumpTarget.INTEREST_RATE_BASIS


def tenor(quote, quote_type=QuoteType.ZERO_RATE):
    return CurveTenor("1Y", quote, date(2025, 1, 6), quote_type)


def curve_graph(*curves):
    return DependencyGraph.build(curves, lambda c: c.prerequisite_curves())


class TestQuoteChange:
    """Bump sizes per quote type and flag."""

    def test_absolute_up(self):
        assert quote_change(tenor(0.02), 1.0, BumpFlags.NONE) == pytest.approx(1e-4)

    def test_absolute_down_halves_when_crossing_zero(self):
        change = quote_change(tenor(0.00005), 1.0, BumpFlags.BUMP_DOWN)
        assert change == pytest.approx(-0.000025)

    def test_down_crossing_allowed(self):
        flags = BumpFlags.BUMP_DOWN | BumpFlags.ALLOW_DOWN_CROSSING_ZERO
        assert quote_change(tenor(0.00005), 1.0, flags) == pytest.approx(-1e-4)

    def test_up_crossing_forbidden(self):
        change = quote_change(tenor(-0.00005), 1.0, BumpFlags.FORBID_UP_CROSSING_ZERO)
        assert change == pytest.approx(0.000025)

    def test_up_crossing_allowed_by_default(self):
        assert quote_change(tenor(-0.00005), 1.0, BumpFlags.NONE) == pytest.approx(1e-4)

    def test_relative_up(self):
        change = quote_change(tenor(-0.02), 0.1, BumpFlags.BUMP_RELATIVE)
        assert change == pytest.approx(0.002)

    def test_relative_down(self):
        flags = BumpFlags.BUMP_RELATIVE | BumpFlags.BUMP_DOWN
        change = quote_change(tenor(0.02), 0.1, flags)
        assert change == pytest.approx(-(0.1 / 0.9) * 0.02)

    def test_credit_spread_never_crosses_zero(self):
        flags = BumpFlags.BUMP_DOWN | BumpFlags.ALLOW_DOWN_CROSSING_ZERO
        change = quote_change(tenor(0.00005, QuoteType.CREDIT_SPREAD), 1.0, flags)
        assert change == pytest.approx(-0.000025)

    def test_recovery_clipped_to_unit_interval(self):
        high = tenor(0.99995, QuoteType.RECOVERY)
        assert quote_change(high, 1.0, BumpFlags.NONE) == pytest.approx(0.00005)
        low = tenor(0.00005, QuoteType.RECOVERY)
        assert quote_change(low, 1.0, BumpFlags.BUMP_DOWN) == pytest.approx(-0.00005)

    def test_bump_quote_reports_magnitude(self):
        t = tenor(0.01)
        realized = bump_quote(t, 1.0, BumpFlags.BUMP_DOWN)
        assert t.quote == pytest.approx(0.0099)
        assert realized == pytest.approx(1.0)

    def test_bump_quote_reports_halved_size(self):
        realized = bump_quote(tenor(0.00005), 1.0, BumpFlags.BUMP_DOWN)
        assert realized == pytest.approx(0.25)


class TestBumpResult:
    """Realized bump bookkeeping."""

    def test_size_is_mean_of_tenor_bumps(self):
        result = BumpResult("sel", tenor_bumps=[1.0, 0.5], curve_bumps={"A": 0.75})
        assert result.size == pytest.approx(0.75)

    def test_failed_curve_gives_nan(self):
        result = BumpResult("sel", tenor_bumps=[1.0], curve_bumps={"A": 1.0})
        result.mark_failed("B")
        assert math.isnan(result.size)

    def test_empty(self):
        assert BumpResult("sel").is_empty
        assert BumpResult("sel").size == 0.0


class TestBumpTransaction:
    """Bump, refit and restore."""

    def test_dependent_curve_refit(self, basis_curves, basis_swap):
        base, basis = basis_curves
        graph = build_curve_graph([PricerEvaluator(basis_swap)], RATES_AND_BASIS)
        selection = select_parallel(graph, TenorFilter(BumpTarget.INTEREST_RATES))[0]

        with BumpTransaction(graph) as txn:
            result = txn.apply(selection, 1.0)
            np.testing.assert_allclose(base.ordinates, [0.0201, 0.0221, 0.0251])
            np.testing.assert_allclose(basis.ordinates, base.ordinates + 0.001)
            assert result.size == pytest.approx(1.0)
            assert result.curve_bumps == {"A": pytest.approx(1.0)}

        np.testing.assert_allclose(base.ordinates, [0.02, 0.022, 0.025])
        np.testing.assert_allclose(basis.ordinates, [0.021, 0.023, 0.026])

    def test_uniform_moves_every_quote(self, basis_curves, basis_swap):
        base, basis = basis_curves
        graph = build_curve_graph([PricerEvaluator(basis_swap)], RATES_AND_BASIS)
        selection = select_uniform(graph, TenorFilter(RATES_AND_BASIS))[0]

        with BumpTransaction(graph) as txn:
            txn.apply(selection, 1.0)
            np.testing.assert_allclose(base.quotes(), [0.0201, 0.0221, 0.0251])
            np.testing.assert_allclose(basis.quotes(), [0.0011, 0.0011, 0.0011])
            np.testing.assert_allclose(basis.ordinates, base.ordinates + 0.0011)

    def test_without_refit_dependents_untouched(self, basis_curves, basis_swap):
        base, basis = basis_curves
        graph = build_curve_graph([PricerEvaluator(basis_swap)], RATES_AND_BASIS)
        selection = select_parallel(graph, TenorFilter(BumpTarget.INTEREST_RATES))[0]
        before = basis.ordinates

        with BumpTransaction(graph, BumpFlags.NONE) as txn:
            txn.apply(selection, 1.0)
            np.testing.assert_allclose(base.quotes(), [0.0201, 0.0221, 0.0251])
            np.testing.assert_allclose(basis.ordinates, before)

    def test_restore_is_idempotent(self, two_point_curve):
        graph = curve_graph(two_point_curve)
        selection = select_uniform(graph, TenorFilter(BumpTarget.INTEREST_RATES))[0]
        before = two_point_curve.snapshot()

        txn = BumpTransaction(graph)
        txn.apply(selection, 5.0)
        assert txn.is_open
        txn.restore()
        txn.restore()
        assert not txn.is_open
        assert two_point_curve.snapshot() == before

    def test_second_apply_before_restore(self, two_point_curve):
        graph = curve_graph(two_point_curve)
        selection = select_uniform(graph, TenorFilter(BumpTarget.INTEREST_RATES))[0]
        with BumpTransaction(graph) as txn:
            txn.apply(selection, 1.0)
            with pytest.raises(BumpStateError):
                txn.apply(selection, 1.0)

    def test_overlapping_transactions_rejected(self, two_point_curve):
        graph = curve_graph(two_point_curve)
        selection = select_uniform(graph, TenorFilter(BumpTarget.INTEREST_RATES))[0]
        with BumpTransaction(graph) as first:
            first.apply(selection, 1.0)
            with pytest.raises(BumpStateError):
                BumpTransaction(graph).apply(selection, 1.0)
            np.testing.assert_allclose(two_point_curve.quotes(), [0.0101, 0.0201])

        with BumpTransaction(graph) as second:
            second.apply(selection, 1.0)

    def test_refit_failure_restores_and_reports(self):
        curve = create_curve_from_quotes(
            REFERENCE_DATE, {"1Y": 0.02, "5Y": 0.03}, name="CAP",
            calibrator=CappedCalibrator(0.05),
        )
        graph = curve_graph(curve)
        selection = select_uniform(graph, TenorFilter(BumpTarget.INTEREST_RATES))[0]
        before = curve.snapshot()

        with pytest.raises(CalibrationError) as info:
            with BumpTransaction(graph) as txn:
                txn.apply(selection, 400.0)

        assert info.value.selection_name == selection.name
        assert info.value.curve_name == "CAP"
        assert math.isnan(info.value.bump_result.size)
        assert curve.snapshot() == before

        with BumpTransaction(graph) as txn:
            txn.apply(selection, 1.0)

    def test_curve_outside_graph_is_bumped(self, flat_curve):
        other = create_curve_from_quotes(REFERENCE_DATE, {"1Y": 0.01}, name="OTHER")
        graph = curve_graph(flat_curve)
        selection = select_uniform(curve_graph(other), TenorFilter(BumpTarget.INTEREST_RATES))[0]
        with BumpTransaction(graph) as txn:
            txn.apply(selection, 1.0)
            assert other.tenor("1Y").quote == pytest.approx(0.0101)
        assert other.tenor("1Y").quote == 0.01


class TestRestoreProperty:
    """Curves come back bit-identical whatever happens inside the bump."""

    @settings(max_examples=40, deadline=None)
    @given(
        quotes=st.lists(st.floats(-0.02, 0.1), min_size=3, max_size=3),
        spread=st.floats(-0.01, 0.01),
        size=st.floats(0.0, 50.0),
        down=st.booleans(),
        parallel=st.booleans(),
    )
    def test_restore_after_error(self, quotes, spread, size, down, parallel):
        base = create_curve_from_quotes(
            REFERENCE_DATE, dict(zip(("1Y", "2Y", "5Y"), quotes)), name="A"
        )
        basis = create_curve_from_quotes(
            REFERENCE_DATE,
            {"1Y": spread, "5Y": spread},
            name="B",
            calibrator=SpreadCalibrator(base),
            quote_type=QuoteType.BASIS_SPREAD,
            curve_cls=RateCurve,
            category=CurveCategory.PROJECTION,
        )
        graph = build_curve_graph([PricerEvaluator(ZeroRatePricer(basis, 3.0))], RATES_AND_BASIS)
        tenor_filter = TenorFilter(RATES_AND_BASIS)
        selections = select_parallel(graph, tenor_filter) if parallel else select_uniform(graph, tenor_filter)
        before = [c.snapshot() for c in (base, basis)]
        flags = BumpFlags.BUMP_DOWN if down else BumpFlags.NONE

        for selection in selections:
            with pytest.raises(RuntimeError, match="pricer failed"):
                with BumpTransaction(graph) as txn:
                    txn.apply(selection, size, flags)
                    raise RuntimeError("pricer failed")
            assert [c.snapshot() for c in (base, basis)] == before
