"""
Tests for the lattice convergence tools.
"""

import logging

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from lattice_pricing import (
    EuropeanOption,
    InvalidStepCountError,
    MarketData,
    convergence_study,
    lattice_convergence,
    plot_convergence,
    richardson_extrapolation,
)
from lattice_pricing.convergence import estimate_convergence_order, extrapolate_richardson

BS_CALL_ATM = 10.450583572185565


class TestConvergenceStudy:
    """Test the generic refinement study."""

    def test_first_order_synthetic(self):
        df = convergence_study(lambda n: 1.0 + 1.0 / n, [10, 20, 40, 80], reference_value=1.0)

        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ["steps", "price", "error", "relative_error", "convergence_rate"]
        np.testing.assert_allclose(df["error"], [0.1, 0.05, 0.025, 0.0125])
        np.testing.assert_allclose(df["relative_error"], [10.0, 5.0, 2.5, 1.25])
        assert np.isnan(df["convergence_rate"].iloc[0])
        np.testing.assert_allclose(df["convergence_rate"].iloc[1:], 1.0)

    def test_finest_result_is_default_reference(self):
        df = convergence_study(lambda n: 2.0 + 1.0 / n, [10, 100])
        assert df["error"].iloc[-1] == 0.0
        assert df["error"].iloc[0] == pytest.approx(0.09)

    def test_failed_refinements_are_skipped(self, caplog):
        def flaky(n):
            if n == 20:
                raise InvalidStepCountError("rejected")
            return 1.0 / n

        with caplog.at_level(logging.WARNING, logger="lattice_pricing.convergence"):
            df = convergence_study(flaky, [10, 20, 40], reference_value=0.0)

        assert list(df["steps"]) == [10, 40]
        assert "steps=20" in caplog.text

    def test_too_few_successes(self):
        def failing(n):
            raise InvalidStepCountError("rejected")

        with pytest.raises(RuntimeError, match="sufficient lattice refinements"):
            convergence_study(failing, [10, 20])

    def test_too_few_values(self):
        with pytest.raises(ValueError, match="at least 2"):
            convergence_study(lambda n: 1.0, [10])


class TestLatticeConvergence:
    """Test the wrapper around lattice valuation."""

    def test_european_call(self):
        mkt = MarketData(price=10.0, spot=100.0, rate=0.05, volatility=0.2)
        df = lattice_convergence(
            EuropeanOption(100.0, True, 1.0), mkt, [50, 200, 800], reference_value=BS_CALL_ATM
        )

        assert list(df["steps"]) == [50, 200, 800]
        assert df["error"].is_monotonic_decreasing
        assert df["error"].iloc[0] < 0.1

    def test_invalid_steps_are_skipped(self):
        mkt = MarketData(price=10.0, spot=100.0, rate=0.05, volatility=0.2)
        df = lattice_convergence(EuropeanOption(100.0, True, 1.0), mkt, [0, 50, 100])
        assert list(df["steps"]) == [50, 100]


class TestRichardson:
    """Test Richardson extrapolation."""

    def test_first_order(self):
        assert extrapolate_richardson(8.0, 9.0) == pytest.approx(10.0)

    def test_exact_for_pure_power_law(self):
        coarse = 3.0 + 5.0 / 100
        fine = 3.0 + 5.0 / 200
        assert extrapolate_richardson(coarse, fine, convergence_order=1.0) == pytest.approx(3.0)

    def test_second_order(self):
        coarse = 1.0 + 1.0 / 10**2
        fine = 1.0 + 1.0 / 20**2
        assert extrapolate_richardson(coarse, fine, convergence_order=2.0) == pytest.approx(1.0)

    def test_invalid_ratio(self):
        with pytest.raises(ValueError):
            extrapolate_richardson(1.0, 1.1, refinement_ratio=1.0)

    def test_invalid_order(self):
        with pytest.raises(ValueError, match="convergence_order must be positive"):
            extrapolate_richardson(1.0, 1.1, convergence_order=0.0)

    def test_study_column_removes_first_order_error(self):
        df = convergence_study(lambda n: 1.0 + 1.0 / n, [10, 20, 40, 80], reference_value=1.0)
        table = richardson_extrapolation(df)

        assert "extrapolated" not in df.columns
        assert np.isnan(table["extrapolated"].iloc[0])
        np.testing.assert_allclose(table["extrapolated"].iloc[1:], 1.0)

    def test_study_column_uses_actual_step_ratio(self):
        df = convergence_study(lambda n: 2.0 + 3.0 / n, [10, 30, 40], reference_value=2.0)
        table = richardson_extrapolation(df)
        np.testing.assert_allclose(table["extrapolated"].iloc[1:], 2.0)

    def test_lattice_extrapolation_beats_finest_lattice(self):
        mkt = MarketData(price=10.0, spot=100.0, rate=0.05, volatility=0.2)
        df = lattice_convergence(
            EuropeanOption(100.0, True, 1.0), mkt, [200, 400, 800], reference_value=BS_CALL_ATM
        )
        table = richardson_extrapolation(df)

        finest_error = table["error"].iloc[-1]
        assert abs(table["extrapolated"].iloc[-1] - BS_CALL_ATM) < finest_error


class TestConvergenceOrder:
    """Test the log-log power-law fit."""

    def test_first_order(self):
        steps = np.array([50, 200, 800])
        assert estimate_convergence_order(1.0 / steps, steps) == pytest.approx(1.0)

    def test_second_order(self):
        steps = np.array([10, 20, 40, 80])
        assert estimate_convergence_order(3.0 / steps**2, steps) == pytest.approx(2.0)

    def test_zero_errors_are_ignored(self):
        errors = np.array([0.1, 0.0, 0.025])
        steps = np.array([10, 20, 40])
        assert estimate_convergence_order(errors, steps) == pytest.approx(1.0)

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="same length"):
            estimate_convergence_order(np.array([0.1, 0.05]), np.array([10]))

    def test_not_enough_points(self):
        with pytest.raises(ValueError):
            estimate_convergence_order(np.array([0.1, 0.0]), np.array([10, 20]))


class TestPlotConvergence:
    """Test the plotting helper."""

    @pytest.fixture(autouse=True)
    def agg_backend(self):
        matplotlib.use("Agg")
        yield
        plt.close("all")

    @pytest.fixture
    def study(self):
        return convergence_study(lambda n: 1.0 + 1.0 / n, [10, 20, 40], reference_value=1.0)

    def test_returns_figure_and_axes(self, study):
        fig, axes = plot_convergence(study)

        assert len(axes) == 2
        assert axes[1].get_xscale() == "log"
        # Error data plus the fitted power law.
        assert len(axes[1].get_lines()) == 2
        assert axes[1].get_lines()[1].get_label() == "n^-1.00"

    def test_linear_scale(self, study):
        fig, axes = plot_convergence(study, log_scale=False)
        assert axes[1].get_xscale() == "linear"

    def test_reference_line(self, study):
        fig, axes = plot_convergence(study, reference_value=1.0)

        labels = [line.get_label() for line in axes[0].get_lines()]
        assert labels == ["lattice", "reference"]
