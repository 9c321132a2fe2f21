"""
Option contracts priced on the binomial lattice.

Each contract describes only its payoff and its early-exercise rule. Market
inputs are always passed in by the engine, so one instance can be priced
against any number of market snapshots.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import InvalidInstrumentError


class ExerciseStyle(str, Enum):
    """Exercise rights supported by the engine."""

    EUROPEAN = "european"
    AMERICAN = "american"
    BERMUDAN = "bermudan"


def _payoff(stock_price: ArrayLike, strike: float, is_call: bool) -> NDArray[np.float64]:
    prices = np.asarray(stock_price, dtype=np.float64)
    if is_call:
        return np.maximum(prices - strike, 0.0)
    return np.maximum(strike - prices, 0.0)


def american_exercise(
    derivative: Derivative,
    stock_price: ArrayLike,
    continuation_value: ArrayLike,
) -> NDArray[np.float64]:
    """
    Node value when the holder may exercise immediately.

    Parameters
    ----------
    derivative : Derivative
        Contract supplying strike and call/put direction.
    stock_price : ArrayLike
        Underlying price(s) at the node(s).
    continuation_value : ArrayLike
        Discounted value of holding, one entry per node.

    Returns
    -------
    numpy.ndarray
        ``max(continuation_value, intrinsic_value(stock_price))``.
    """
    continuation = np.asarray(continuation_value, dtype=np.float64)
    return np.maximum(continuation, derivative.intrinsic_value(stock_price))


@dataclass(frozen=True)
class ExerciseWindow:
    """Closed time interval ``[begin, end]`` during which exercise is allowed."""

    begin: float
    end: float

    def contains(self, current_time: float) -> bool:
        return self.begin <= current_time <= self.end


@dataclass(frozen=True)
class Derivative(ABC):
    """
    Abstract single-asset option.

    Parameters
    ----------
    strike : float
        Strike price. Must be strictly positive.
    is_call : bool
        ``True`` for a call, ``False`` for a put.
    maturity : float
        Expiry time in years. Must be strictly positive.
    """

    strike: float
    is_call: bool
    maturity: float

    def __post_init__(self) -> None:
        """Validate inputs after initialization."""
        if not self.strike > 0:
            raise InvalidInstrumentError(f"strike must be positive, got {self.strike}")

        if not self.maturity > 0:
            raise InvalidInstrumentError(f"maturity must be positive, got {self.maturity}")

    @property
    @abstractmethod
    def exercise_style(self) -> ExerciseStyle:
        raise NotImplementedError

    def intrinsic_value(self, stock_price: ArrayLike) -> NDArray[np.float64]:
        """Value of exercising immediately at ``stock_price``."""
        return _payoff(stock_price, self.strike, self.is_call)

    def terminal_payoff(self, stock_price: ArrayLike) -> NDArray[np.float64]:
        """
        Payoff at expiry.

        Parameters
        ----------
        stock_price : ArrayLike
            Scalar or array of underlying prices at maturity.

        Returns
        -------
        numpy.ndarray
            ``max(0, S - K)`` for a call, ``max(0, K - S)`` for a put.
        """
        return _payoff(stock_price, self.strike, self.is_call)

    @abstractmethod
    def exercise_test(
        self,
        stock_price: ArrayLike,
        continuation_value: ArrayLike,
        current_time: float,
    ) -> NDArray[np.float64]:
        """
        Final node value given the discounted continuation value.

        Parameters
        ----------
        stock_price : ArrayLike
            Underlying price(s) at the node(s) of one lattice step.
        continuation_value : ArrayLike
            Discounted expected value of holding, aligned with ``stock_price``.
        current_time : float
            Lattice time of the step in years.

        Returns
        -------
        numpy.ndarray
            Option value at each node.
        """
        raise NotImplementedError


@dataclass(frozen=True)
class EuropeanOption(Derivative):
    """Option exercisable at maturity only."""

    @property
    def exercise_style(self) -> ExerciseStyle:
        return ExerciseStyle.EUROPEAN

    def exercise_test(
        self,
        stock_price: ArrayLike,
        continuation_value: ArrayLike,
        current_time: float,
    ) -> NDArray[np.float64]:
        return np.asarray(continuation_value, dtype=np.float64)


@dataclass(frozen=True)
class AmericanOption(Derivative):
    """Option exercisable at any lattice node."""

    @property
    def exercise_style(self) -> ExerciseStyle:
        return ExerciseStyle.AMERICAN

    def exercise_test(
        self,
        stock_price: ArrayLike,
        continuation_value: ArrayLike,
        current_time: float,
    ) -> NDArray[np.float64]:
        return american_exercise(self, stock_price, continuation_value)


@dataclass(frozen=True)
class BermudanOption(Derivative):
    """
    American-style option whose exercise right is restricted to a time window.

    Parameters
    ----------
    strike : float
        Strike price. Must be strictly positive.
    is_call : bool
        ``True`` for a call, ``False`` for a put.
    maturity : float
        Expiry time in years. Must be strictly positive.
    window_begin : float
        Start of the exercise window. Must be non-negative.
    window_end : float
        End of the exercise window. Must exceed ``window_begin`` and not
        exceed ``maturity``.

    Examples
    --------
    >>> opt = BermudanOption(100.0, False, 1.0, window_begin=0.25, window_end=0.75)
    >>> opt.window.contains(0.5), opt.window.contains(0.9)
    (True, False)
    """

    window_begin: float
    window_end: float

    def __post_init__(self) -> None:
        """Validate inputs after initialization."""
        super().__post_init__()

        if self.window_begin >= self.window_end:
            raise InvalidInstrumentError(
                f"window_begin must be less than window_end, "
                f"got {self.window_begin} >= {self.window_end}"
            )

        if self.window_end > self.maturity:
            raise InvalidInstrumentError(
                f"window_end must not exceed maturity, got {self.window_end} > {self.maturity}"
            )

        if self.window_begin < 0:
            raise InvalidInstrumentError(
                f"window_begin must be non-negative, got {self.window_begin}"
            )

    @property
    def exercise_style(self) -> ExerciseStyle:
        return ExerciseStyle.BERMUDAN

    @property
    def window(self) -> ExerciseWindow:
        return ExerciseWindow(self.window_begin, self.window_end)

    def exercise_test(
        self,
        stock_price: ArrayLike,
        continuation_value: ArrayLike,
        current_time: float,
    ) -> NDArray[np.float64]:
        if self.window.contains(current_time):
            return american_exercise(self, stock_price, continuation_value)
        return np.asarray(continuation_value, dtype=np.float64)


def make_option(
    style: ExerciseStyle | str,
    strike: float,
    is_call: bool,
    maturity: float,
    window: tuple[float, float] | None = None,
) -> Derivative:
    """
    Build an option of the requested exercise style.

    Parameters
    ----------
    style : ExerciseStyle or {"european", "american", "bermudan"}
        Exercise rights of the contract.
    strike : float
        Strike price.
    is_call : bool
        ``True`` for a call, ``False`` for a put.
    maturity : float
        Expiry time in years.
    window : tuple of float, optional
        ``(window_begin, window_end)``; required for Bermudan options.

    Returns
    -------
    Derivative
        The constructed contract.

    Raises
    ------
    ValueError
        If ``style`` is unknown.
    InvalidInstrumentError
        If the contract terms are invalid or a Bermudan window is missing.
    """
    style = ExerciseStyle(style)

    if style is ExerciseStyle.EUROPEAN:
        return EuropeanOption(strike, is_call, maturity)
    if style is ExerciseStyle.AMERICAN:
        return AmericanOption(strike, is_call, maturity)

    if window is None:
        raise InvalidInstrumentError("window is required for a Bermudan option")
    return BermudanOption(strike, is_call, maturity, window[0], window[1])
