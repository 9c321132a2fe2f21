"""
Tests for option contracts: payoffs, exercise rules and validation.
"""

import dataclasses

import numpy as np
import numpy.testing as npt
import pytest

from lattice_pricing import (
    AmericanOption,
    BermudanOption,
    Derivative,
    EuropeanOption,
    ExerciseStyle,
    InvalidInstrumentError,
    make_option,
)


class TestPayoffs:
    """Test terminal payoffs and intrinsic values."""

    def test_call_terminal_payoff(self):
        opt = EuropeanOption(strike=100.0, is_call=True, maturity=1.0)
        prices = np.array([80.0, 100.0, 125.0])
        npt.assert_array_equal(opt.terminal_payoff(prices), [0.0, 0.0, 25.0])

    def test_put_terminal_payoff(self):
        opt = EuropeanOption(strike=100.0, is_call=False, maturity=1.0)
        prices = np.array([80.0, 100.0, 125.0])
        npt.assert_array_equal(opt.terminal_payoff(prices), [20.0, 0.0, 0.0])

    def test_scalar_input(self):
        opt = AmericanOption(strike=50.0, is_call=False, maturity=1.0)
        assert float(opt.terminal_payoff(42.0)) == 8.0
        assert float(opt.intrinsic_value(42.0)) == 8.0

    def test_intrinsic_matches_terminal_payoff(self):
        opt = BermudanOption(100.0, True, 1.0, 0.2, 0.8)
        prices = np.linspace(50.0, 150.0, 11)
        npt.assert_array_equal(opt.intrinsic_value(prices), opt.terminal_payoff(prices))


class TestExerciseTest:
    """Test the early-exercise rule of each style."""

    prices = np.array([70.0, 100.0, 130.0])
    continuation = np.array([5.0, 5.0, 5.0])

    def test_european_never_exercises(self):
        opt = EuropeanOption(100.0, False, 1.0)
        result = opt.exercise_test(self.prices, self.continuation, 0.5)
        npt.assert_array_equal(result, self.continuation)

    def test_american_takes_maximum(self):
        opt = AmericanOption(100.0, False, 1.0)
        result = opt.exercise_test(self.prices, self.continuation, 0.5)
        npt.assert_array_equal(result, [30.0, 5.0, 5.0])

    def test_american_call(self):
        opt = AmericanOption(100.0, True, 1.0)
        result = opt.exercise_test(self.prices, self.continuation, 0.0)
        npt.assert_array_equal(result, [5.0, 5.0, 30.0])

    @pytest.mark.parametrize("current_time", [0.25, 0.5, 0.75])
    def test_bermudan_inside_window_matches_american(self, current_time):
        berm = BermudanOption(100.0, False, 1.0, window_begin=0.25, window_end=0.75)
        amer = AmericanOption(100.0, False, 1.0)
        npt.assert_array_equal(
            berm.exercise_test(self.prices, self.continuation, current_time),
            amer.exercise_test(self.prices, self.continuation, current_time),
        )

    @pytest.mark.parametrize("current_time", [0.0, 0.24, 0.76, 0.99])
    def test_bermudan_outside_window_holds(self, current_time):
        berm = BermudanOption(100.0, False, 1.0, window_begin=0.25, window_end=0.75)
        npt.assert_array_equal(
            berm.exercise_test(self.prices, self.continuation, current_time),
            self.continuation,
        )

    def test_exercise_test_does_not_mutate_inputs(self):
        opt = AmericanOption(100.0, False, 1.0)
        continuation = self.continuation.copy()
        opt.exercise_test(self.prices, continuation, 0.5)
        npt.assert_array_equal(continuation, self.continuation)


class TestValidation:
    """Test construction-time validation."""

    def test_negative_strike(self):
        with pytest.raises(InvalidInstrumentError, match="strike must be positive"):
            EuropeanOption(-100.0, True, 1.0)

    def test_zero_maturity(self):
        with pytest.raises(InvalidInstrumentError, match="maturity must be positive"):
            AmericanOption(100.0, True, 0.0)

    def test_inverted_bermudan_window(self):
        with pytest.raises(InvalidInstrumentError, match="window_begin must be less than window_end"):
            BermudanOption(strike=100.0, is_call=True, maturity=1.0, window_begin=0.8, window_end=0.5)

    def test_bermudan_window_beyond_maturity(self):
        with pytest.raises(InvalidInstrumentError, match="window_end must not exceed maturity"):
            BermudanOption(100.0, True, 1.0, window_begin=0.5, window_end=1.5)

    def test_bermudan_negative_window_begin(self):
        with pytest.raises(InvalidInstrumentError, match="window_begin must be non-negative"):
            BermudanOption(100.0, True, 1.0, window_begin=-0.1, window_end=0.5)

    def test_bermudan_inherits_base_validation(self):
        with pytest.raises(InvalidInstrumentError, match="strike must be positive"):
            BermudanOption(0.0, True, 1.0, window_begin=0.1, window_end=0.5)

    def test_window_may_span_full_life(self):
        opt = BermudanOption(100.0, True, 1.0, window_begin=0.0, window_end=1.0)
        assert opt.window.contains(0.0)
        assert opt.window.contains(1.0)

    def test_base_class_is_abstract(self):
        with pytest.raises(TypeError):
            Derivative(100.0, True, 1.0)

    def test_contracts_are_immutable(self):
        opt = EuropeanOption(100.0, True, 1.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            opt.strike = 90.0


class TestMakeOption:
    """Test the exercise-style factory."""

    @pytest.mark.parametrize(
        "style,cls",
        [
            ("european", EuropeanOption),
            ("american", AmericanOption),
            (ExerciseStyle.BERMUDAN, BermudanOption),
        ],
    )
    def test_builds_requested_style(self, style, cls):
        opt = make_option(style, 100.0, False, 1.0, window=(0.3, 0.8))
        assert isinstance(opt, cls)
        assert opt.exercise_style == ExerciseStyle(style)

    def test_bermudan_requires_window(self):
        with pytest.raises(InvalidInstrumentError, match="window is required"):
            make_option("bermudan", 100.0, True, 1.0)

    def test_unknown_style(self):
        with pytest.raises(ValueError):
            make_option("asian", 100.0, True, 1.0)
