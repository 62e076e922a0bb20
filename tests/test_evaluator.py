"""Tests for measures, evaluators and the reference pricers."""
import pytest

from ficcrisk.errors import ConfigurationError, UnknownMeasureError
from ficcrisk.pricing import (
    AggregateEvaluator,
    MeasureRegistry,
    PricerEvaluator,
    SwapPricer,
    create_evaluators,
)
from ficcrisk.schema.enums import BumpTarget, CurveCategory

from .conftest import ZeroRatePricer


class TestMeasureRegistry:
    """Measure lookup along the pricer type's MRO."""

    def test_base_class_measure_serves_subclass(self, swap_5y):
        evaluator = PricerEvaluator(swap_5y, "pv")
        assert evaluator.evaluate() == pytest.approx(swap_5y.pv())

    def test_subclass_measure(self, swap_5y):
        evaluator = PricerEvaluator(swap_5y, "ParRate")
        assert evaluator.evaluate() == pytest.approx(0.0304545, rel=1e-2)
        assert not evaluator.is_additive

    def test_private_registry(self, flat_curve):
        registry = MeasureRegistry()

        @registry.register(ZeroRatePricer, "Rate")
        def rate(pricer):
            return pricer.curve.zero(pricer.t)

        evaluator = PricerEvaluator(ZeroRatePricer(flat_curve, 2.0), "RATE", registry=registry)
        assert evaluator.evaluate() == pytest.approx(0.03)
        assert registry.measures_for(ZeroRatePricer) == ["Rate"]

    def test_unknown_measure(self, swap_5y):
        with pytest.raises(UnknownMeasureError, match="Swap5Y"):
            PricerEvaluator(swap_5y, "Theta")

    def test_missing_measure_allowed(self, swap_5y):
        evaluator = PricerEvaluator(swap_5y, "Theta", allow_missing=True)
        assert evaluator.is_missing
        assert evaluator.evaluate() == 0.0


class TestPricerEvaluator:
    """Dependencies, resets and substitution."""

    def test_depends_on_prerequisites(self, basis_curves, flat_curve):
        base, basis = basis_curves
        evaluator = PricerEvaluator(ZeroRatePricer(basis, 2.0))
        assert evaluator.depends_on(basis)
        assert evaluator.depends_on(base)
        assert not evaluator.depends_on(flat_curve)
        assert evaluator.depends_on_any([flat_curve, base])

    def test_curves_for_target(self, basis_swap, basis_curves):
        base, basis = basis_curves
        evaluator = PricerEvaluator(basis_swap)
        assert evaluator.curves_for_target(BumpTarget.INTEREST_RATES) == [base, basis]
        assert evaluator.curves_for_target(BumpTarget.CREDIT_QUOTES) == []
        assert evaluator.curves(CurveCategory.PROJECTION) == [basis]

    def test_reset_calls_pricer_hooks(self, flat_curve):
        class HookedPricer(ZeroRatePricer):
            def __init__(self, curve):
                super().__init__(curve, 1.0)
                self.calls = []

            def reset(self):
                self.calls.append("reset")

            def mark_default_changed(self, changed):
                self.calls.append(("default", changed))

            def remap_correlations(self):
                self.calls.append("remap")

        pricer = HookedPricer(flat_curve)
        PricerEvaluator(pricer).reset(default_changed=True, remap_correlations=True)
        assert pricer.calls == [("default", True), "reset", "remap"]

    def test_substitute_requires_same_type(self, swap_5y, flat_curve):
        evaluator = PricerEvaluator(swap_5y, "Annuity")
        other = SwapPricer.for_tenor(flat_curve, flat_curve.tenor("2Y"))
        assert evaluator.substitute(other).evaluate() == pytest.approx(other.annuity())
        with pytest.raises(ConfigurationError):
            evaluator.substitute(ZeroRatePricer(flat_curve, 1.0))


class TestCreateEvaluators:
    """Evaluator construction from pricers and measures."""

    def test_single_measure_broadcast(self, swap_5y, flat_curve):
        evaluators = create_evaluators([swap_5y, ZeroRatePricer(flat_curve, 1.0)], "Pv")
        assert [e.measure for e in evaluators] == ["Pv", "Pv"]

    def test_measure_per_pricer(self, swap_5y):
        evaluators = create_evaluators([swap_5y, swap_5y], ["Pv", "ParRate"])
        assert [e.measure for e in evaluators] == ["Pv", "ParRate"]

    def test_length_mismatch(self, swap_5y):
        with pytest.raises(ConfigurationError, match="2 measures for 1 pricers"):
            create_evaluators([swap_5y], ["Pv", "ParRate"])

    def test_evaluators_pass_through(self, swap_5y):
        evaluator = PricerEvaluator(swap_5y)
        assert create_evaluators([evaluator])[0] is evaluator

    def test_aggregate_sums(self, flat_curve):
        parts = [PricerEvaluator(ZeroRatePricer(flat_curve, t, notional=1.0)) for t in (1.0, 2.0)]
        aggregate = AggregateEvaluator(parts)
        assert aggregate.evaluate() == pytest.approx(0.06)
        assert aggregate.depends_on(flat_curve)

    def test_empty_aggregate(self):
        with pytest.raises(ConfigurationError):
            AggregateEvaluator([])


class TestSwapPricer:
    """The reference swap prices at par on its own curve."""

    def test_at_market_swap_is_zero(self, swap_5y):
        assert swap_5y.pv() == pytest.approx(0.0, abs=1e-6)

    def test_receiver_gains_when_rates_fall(self, swap_5y, flat_curve):
        flat_curve.set_quotes([0.02] * len(flat_curve.tenors))
        flat_curve.refit()
        assert swap_5y.pv() > 0

    def test_projection_curve_adds_spread(self, basis_swap, basis_curves):
        base, basis = basis_curves
        single = SwapPricer(base, basis_swap.maturity, 0.025)
        assert basis_swap.floating_leg() > single.floating_leg()
