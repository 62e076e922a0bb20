"""Tests for run configuration and result tables."""
import math

import pytest

from ficcrisk import ScenarioConfig, SensitivityConfig
from ficcrisk.errors import ConfigurationError
from ficcrisk.schema.enums import BumpFlags, BumpTarget, BumpType, SensitivityMethod
from ficcrisk.sensitivity import ResultRow, ResultTable, ScenarioResult, ScenarioRow


class TestSensitivityConfig:
    """Defaults, parsing and validation."""

    def test_defaults(self):
        config = SensitivityConfig()
        config.validate()
        assert config.bump_type == BumpType.PARALLEL
        assert config.flags == BumpFlags.REFIT_CURVE
        assert not config.relative

    def test_from_dict_parses_names(self):
        config = SensitivityConfig.from_dict({
            "bump_type": "by_tenor",
            "target": "INTEREST_RATES|INTEREST_RATE_BASIS",
            "flags": ["REFIT_CURVE", "BUMP_RELATIVE"],
            "method": "semi_analytic",
            "up_bump": 0.01,
            "curve_names": ["EUR"],
        })
        assert config.bump_type == BumpType.BY_TENOR
        assert config.target == BumpTarget.INTEREST_RATES | BumpTarget.INTEREST_RATE_BASIS
        assert config.relative
        assert config.method == SensitivityMethod.SEMI_ANALYTIC
        assert config.curve_names == frozenset({"EUR"})

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="bump_size"):
            SensitivityConfig.from_dict({"bump_size": 1.0})

    def test_unknown_enum_name(self):
        with pytest.raises(ConfigurationError, match="SIDEWAYS"):
            SensitivityConfig.from_dict({"bump_type": "SIDEWAYS"})

    def test_unknown_flag_name(self):
        with pytest.raises(ConfigurationError, match="BUMP_SIDEWAYS"):
            SensitivityConfig.from_dict({"flags": "REFIT_CURVE|BUMP_SIDEWAYS"})

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"target": BumpTarget.NONE}, "target"),
            ({"target": BumpTarget.INCLUDE_SPOT}, "target"),
            ({"up_bump": -1.0}, "non-negative"),
            ({"flags": BumpFlags.BUMP_RELATIVE, "up_bump": 1.0}, "fractions below 1"),
            ({"flags": BumpFlags.BUMP_DOWN}, "BUMP_DOWN"),
            ({"max_workers": 0}, "max_workers"),
            ({"tolerance": -1e-9}, "tolerance"),
        ],
    )
    def test_validation(self, kwargs, message):
        with pytest.raises(ConfigurationError, match=message):
            SensitivityConfig(**kwargs).validate()

    def test_scenario_config(self):
        with pytest.raises(ConfigurationError):
            ScenarioConfig(max_workers=0).validate()


class TestResultTable:
    """Columns follow what was computed."""

    def rows(self):
        return [
            ResultRow("DISCOUNT", "EUR", "1Y", "Swap", 10.0, 0.1, "1Y", -100.0, -0.1),
            ResultRow("DISCOUNT", "EUR", "5Y", "Swap", -30.0, 0.2, "5Y", -400.0, 0.075),
            ResultRow("DISCOUNT", "EUR", "5Y", "Bond", 5.0, 0.0, "5Y", -400.0, -0.0125),
        ]

    def test_base_columns(self):
        frame = ResultTable(self.rows()).to_frame()
        assert list(frame.columns) == ["Category", "Element", "Curve Tenor", "Pricer", "Delta"]

    def test_all_columns(self):
        frame = ResultTable(self.rows(), calc_gamma=True, calc_hedge=True).to_frame()
        assert list(frame.columns) == [
            "Category", "Element", "Curve Tenor", "Pricer", "Delta",
            "Gamma", "Hedge Tenor", "Hedge Delta", "Hedge Notional",
        ]
        assert frame["Hedge Notional"].iloc[1] == pytest.approx(0.075)

    def test_hedge_without_gamma(self):
        table = ResultTable(self.rows(), calc_hedge=True)
        assert "Gamma" not in table.columns
        assert "Hedge Delta" in table.columns

    def test_totals(self):
        table = ResultTable(self.rows())
        assert table.total_delta() == pytest.approx(-15.0)
        assert table.total_delta("Swap") == pytest.approx(-20.0)
        assert len(table.rows_for("Bond")) == 1

    def test_empty_table_frame(self):
        frame = ResultTable(calc_gamma=True).to_frame()
        assert frame.empty
        assert "Gamma" in frame.columns


class TestScenarioResult:
    def test_delta_and_frame(self):
        result = ScenarioResult([ScenarioRow("Swap", "Pv", 1.0, 3.5), ScenarioRow("Bond", "Pv", 2.0, 1.0)])
        assert result[0].delta == 2.5
        assert result.total_delta() == pytest.approx(1.5)
        frame = result.to_frame()
        assert list(frame["Delta"]) == [2.5, -1.0]

    def test_nan_propagates(self):
        row = ScenarioRow("Swap", "Pv", 1.0, math.nan)
        assert math.isnan(row.delta)
