"""Tests for chain-rule (semi-analytic) sensitivities."""
import logging

import numpy as np
import pytest

from ficcrisk import SensitivityCalculator, SensitivityConfig
from ficcrisk.curves import ParRateCalibrator, create_curve_from_quotes
from ficcrisk.errors import ConfigurationError
from ficcrisk.pricing import SwapPricer, create_evaluators
from ficcrisk.schema.enums import BumpType, QuoteType, SensitivityMethod
from ficcrisk.sensitivity import SemiAnalyticCalculator, quote_derivatives, unpack_lower_triangular

from .conftest import REFERENCE_DATE, ZeroRatePricer


def run(pricers, **kwargs):
    finite = SensitivityCalculator(SensitivityConfig(**kwargs)).calculate(pricers)
    analytic = SensitivityCalculator(
        SensitivityConfig(method=SensitivityMethod.SEMI_ANALYTIC, **kwargs)
    ).calculate(pricers)
    return finite, analytic


class TestChainRule:
    """Ordinate derivatives mapped to quote derivatives."""

    GRADIENT = np.array([1.0, 2.0])
    JACOBIAN = np.array([[1.0, 0.0], [0.5, 2.0]])
    ORDINATE_HESSIAN = np.array([[[1.0, 0.0], [0.0, 0.0]], [[0.0, 1.0], [1.0, 0.0]]])

    def test_full_hessian(self):
        gradient, hessian = quote_derivatives(
            self.GRADIENT, np.diag([2.0, 4.0]), self.JACOBIAN, self.ORDINATE_HESSIAN
        )
        np.testing.assert_allclose(gradient, [2.0, 4.0])
        np.testing.assert_allclose(hessian, [[4.0, 6.0], [6.0, 16.0]])

    def test_packed_hessian(self):
        _, hessian = quote_derivatives(
            self.GRADIENT, np.array([2.0, 0.0, 4.0]), self.JACOBIAN, self.ORDINATE_HESSIAN
        )
        np.testing.assert_allclose(hessian, [[4.0, 6.0], [6.0, 16.0]])

    def test_missing_hessian_is_zero(self):
        gradient, hessian = quote_derivatives(self.GRADIENT, None, np.eye(2))
        np.testing.assert_allclose(gradient, self.GRADIENT)
        np.testing.assert_allclose(hessian, np.zeros((2, 2)))

    def test_unpack_lower_triangular(self):
        np.testing.assert_allclose(unpack_lower_triangular([1.0, 2.0, 3.0], 2), [[1.0, 2.0], [2.0, 3.0]])

    def test_unpack_wrong_length(self):
        with pytest.raises(ValueError):
            unpack_lower_triangular([1.0, 2.0], 2)


class TestAgainstFiniteDifferences:
    """Semi-analytic results agree with bump-and-reprice."""

    def test_by_tenor(self, swap_5y):
        finite, analytic = run(
            [swap_5y], bump_type=BumpType.BY_TENOR, up_bump=1.0, down_bump=1.0, calc_gamma=True
        )
        assert [r.curve_tenor for r in analytic] == [r.curve_tenor for r in finite]
        for fd, sa in zip(finite, analytic):
            assert sa.delta == pytest.approx(fd.delta, rel=1e-4, abs=1e-6)
            assert sa.gamma == pytest.approx(fd.gamma, rel=1e-3, abs=1e-6)
            assert sa.element == fd.element
            assert sa.category == fd.category

    def test_parallel(self, swap_5y):
        finite, analytic = run([swap_5y], up_bump=1.0, down_bump=1.0, calc_gamma=True)
        assert len(analytic) == 1
        assert analytic[0].delta == pytest.approx(finite[0].delta, rel=1e-4)
        assert analytic[0].gamma == pytest.approx(finite[0].gamma, rel=1e-3)

    def test_unscaled(self, swap_5y):
        finite, analytic = run(
            [swap_5y], bump_type=BumpType.BY_TENOR, up_bump=1.0, down_bump=1.0, scale_delta=False
        )
        for fd, sa in zip(finite, analytic):
            assert sa.delta == pytest.approx(fd.delta, rel=1e-4, abs=1e-6)

    def test_hedge_notional(self, swap_5y):
        config = SensitivityConfig(
            bump_type=BumpType.BY_TENOR,
            method=SensitivityMethod.SEMI_ANALYTIC,
            calc_hedge=True,
        )
        rows = {r.curve_tenor: r for r in SensitivityCalculator(config).calculate([swap_5y])}
        assert rows["5Y"].hedge_tenor == "5Y"
        assert rows["5Y"].hedge_notional == pytest.approx(1_000_000.0, rel=1e-6)
        assert rows["30Y"].hedge_notional == 0.0


class TestUnsupported:
    """Cases the chain rule does not handle."""

    def test_uniform_rejected(self, swap_5y):
        config = SensitivityConfig(bump_type=BumpType.UNIFORM, method=SensitivityMethod.SEMI_ANALYTIC)
        with pytest.raises(ConfigurationError, match="semi-analytic"):
            SensitivityCalculator(config).calculate([swap_5y])

    def test_pricer_without_derivatives(self, flat_curve, caplog):
        config = SensitivityConfig(bump_type=BumpType.BY_TENOR)
        evaluators = create_evaluators([ZeroRatePricer(flat_curve, 2.0, description="EurZero")])
        with caplog.at_level(logging.ERROR, logger="ficcrisk.sensitivity.analytic"):
            table = SemiAnalyticCalculator(config).calculate(evaluators)
        assert len(table) == 0
        assert "EurZero cannot provide ordinate derivatives" in caplog.text

    def test_not_implemented_measure(self, basis_swap, caplog):
        config = SensitivityConfig(bump_type=BumpType.BY_TENOR, method=SensitivityMethod.SEMI_ANALYTIC)
        with caplog.at_level(logging.ERROR, logger="ficcrisk.sensitivity.analytic"):
            table = SensitivityCalculator(config).calculate([basis_swap])
        assert len(table) == 0
        assert "single-curve swap" in caplog.text

    def test_mixed_pricers(self, swap_5y, flat_curve):
        config = SensitivityConfig(bump_type=BumpType.BY_TENOR, method=SensitivityMethod.SEMI_ANALYTIC)
        zero = ZeroRatePricer(flat_curve, 2.0, description="EurZero")
        table = SensitivityCalculator(config).calculate([swap_5y, zero])
        assert {r.pricer for r in table} == {"Swap5Y"}


class TestThreadedDerivatives:
    """Calibrator Jacobians are taken once, outside the worker threads."""

    @pytest.fixture
    def par_curve(self):
        return create_curve_from_quotes(
            REFERENCE_DATE,
            {"1Y": 0.02, "2Y": 0.022, "3Y": 0.024, "5Y": 0.027, "7Y": 0.029, "10Y": 0.031},
            name="PAR",
            calibrator=ParRateCalibrator(),
            quote_type=QuoteType.PAR_RATE,
        )

    def swaps(self, curve):
        swaps = []
        for tenor in curve.tenors:
            for k, bump in enumerate((-0.005, 0.0, 0.005)):
                swap = SwapPricer.for_tenor(curve, tenor)
                swap.fixed_rate += bump
                swap.notional = 1_000_000.0
                swap.description = f"{tenor.name}-{k}"
                swaps.append(swap)
        return swaps

    def test_curve_untouched_and_results_match(self, par_curve):
        swaps = self.swaps(par_curve)
        before = par_curve.snapshot()
        config = dict(bump_type=BumpType.BY_TENOR, method=SensitivityMethod.SEMI_ANALYTIC,
                      calc_gamma=True)

        sequential = SensitivityCalculator(SensitivityConfig(**config)).calculate(swaps)
        assert par_curve.snapshot() == before
        threaded = SensitivityCalculator(SensitivityConfig(max_workers=8, **config)).calculate(swaps)

        assert par_curve.snapshot() == before
        assert len(threaded) == len(sequential) > 0
        for one, many in zip(sequential, threaded):
            assert (many.pricer, many.curve_tenor) == (one.pricer, one.curve_tenor)
            assert many.delta == pytest.approx(one.delta, rel=1e-12, abs=1e-12)
            assert many.gamma == pytest.approx(one.gamma, rel=1e-12, abs=1e-12)

    def test_jacobian_computed_once_per_curve(self, par_curve, monkeypatch):
        calls = []
        original = ParRateCalibrator.ordinate_jacobian

        def counting(calibrator, curve):
            calls.append(curve.name)
            return original(calibrator, curve)

        monkeypatch.setattr(ParRateCalibrator, "ordinate_jacobian", counting)
        config = SensitivityConfig(
            bump_type=BumpType.BY_TENOR, method=SensitivityMethod.SEMI_ANALYTIC, max_workers=4
        )
        SensitivityCalculator(config).calculate(self.swaps(par_curve))
        assert calls == ["PAR"]
