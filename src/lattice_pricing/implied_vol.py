"""
Implied volatility by repeated lattice valuation.

The solver searches for the volatility at which the binomial price of a
contract matches the observed price stored in its :class:`MarketData`.
Running out of iterations is not an error: the last estimate is returned and
``iteration_count == max_iterations`` signals that the search did not
converge.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal

import numpy as np
from scipy.optimize import brentq

from .binomial import check_inputs, value
from .derivatives import Derivative
from .errors import InvalidMarketDataError
from .market_data import MarketData
from .results import Output

logger = logging.getLogger(__name__)

SolveMethod = Literal["fixed-gain", "newton", "brent"]


@dataclass(frozen=True)
class SolverSettings:
    """
    Tunables of the implied-volatility search.

    Parameters
    ----------
    initial_guess : float, default=0.3
        Starting volatility, and the restart point after a rejected trial.
    gain : float, default=0.1
        Volatility correction per unit of price error for the fixed-gain step.
    lower_bound, upper_bound : float, default=(0.001, 2.0)
        Range every updated volatility is clipped to.
    bump : float, default=1e-4
        Volatility bump of the finite-difference vega used by ``"newton"``.
    min_vega : float, default=1e-8
        Below this estimated vega, ``"newton"`` takes a fixed-gain step.
    """

    initial_guess: float = 0.3
    gain: float = 0.1
    lower_bound: float = 0.001
    upper_bound: float = 2.0
    bump: float = 1e-4
    min_vega: float = 1e-8

    def __post_init__(self) -> None:
        """Validate inputs after initialization."""
        if not 0 < self.lower_bound < self.upper_bound:
            raise ValueError(
                f"bounds must satisfy 0 < lower_bound < upper_bound, "
                f"got ({self.lower_bound}, {self.upper_bound})"
            )
        if not self.lower_bound <= self.initial_guess <= self.upper_bound:
            raise ValueError(f"initial_guess must lie within the bounds, got {self.initial_guess}")
        if self.gain <= 0:
            raise ValueError(f"gain must be positive, got {self.gain}")
        if self.bump <= 0:
            raise ValueError(f"bump must be positive, got {self.bump}")

    def clip(self, volatility: float) -> float:
        return float(np.clip(volatility, self.lower_bound, self.upper_bound))


def _lattice_price(derivative: Derivative, market: MarketData, volatility: float, steps: int) -> float:
    return value(derivative, market.with_volatility(volatility), steps).fair_value


def _finite_difference_vega(
    derivative: Derivative,
    market: MarketData,
    volatility: float,
    steps: int,
    bump: float,
) -> float:
    lower = volatility - bump if volatility > bump else volatility
    upper = volatility + bump
    price_up = _lattice_price(derivative, market, upper, steps)
    price_down = _lattice_price(derivative, market, lower, steps)
    return (price_up - price_down) / (upper - lower)


def _result(
    derivative: Derivative,
    fair_value: float,
    volatility: float,
    iterations: int,
) -> Output:
    return Output(
        fair_value=fair_value,
        fugit=derivative.maturity,
        implied_volatility=volatility,
        iteration_count=iterations,
    )


def _solve_iterative(
    derivative: Derivative,
    market: MarketData,
    steps: int,
    max_iterations: int,
    tolerance: float,
    method: SolveMethod,
    settings: SolverSettings,
) -> Output:
    vol = settings.initial_guess

    for iteration in range(max_iterations):
        try:
            trial = market.with_volatility(vol)
        except InvalidMarketDataError as exc:
            logger.debug("trial rejected (%s); restarting from %s", exc, settings.initial_guess)
            vol = settings.initial_guess
            continue

        fair_value = value(derivative, trial, steps).fair_value
        diff = fair_value - market.price
        logger.debug("iteration %d: vol=%.6f price=%.6f diff=%.3e", iteration + 1, vol, fair_value, diff)

        if abs(diff) < tolerance:
            return _result(derivative, fair_value, vol, iteration + 1)

        correction = diff * settings.gain
        if method == "newton":
            vega = _finite_difference_vega(derivative, market, vol, steps, settings.bump)
            if math.isfinite(vega) and vega > settings.min_vega:
                correction = diff / vega

        vol = settings.clip(vol - correction)

    if not math.isfinite(vol):
        vol = settings.initial_guess

    logger.warning(
        "implied volatility did not converge within %d iterations; returning %.6f",
        max_iterations,
        vol,
    )
    fair_value = _lattice_price(derivative, market, vol, steps)
    return _result(derivative, fair_value, vol, max_iterations)


def _solve_brent(
    derivative: Derivative,
    market: MarketData,
    steps: int,
    max_iterations: int,
    tolerance: float,
    settings: SolverSettings,
) -> Output:
    def objective(sigma: float) -> float:
        return _lattice_price(derivative, market, sigma, steps) - market.price

    # Below |rate| * sqrt(dt) the risk-neutral probability leaves [0, 1] and
    # lattice prices stop being monotone in volatility.
    dt = (derivative.maturity - market.valuation_time) / steps
    lower = max(settings.lower_bound, (1.0 + 1e-6) * abs(market.rate) * math.sqrt(dt))
    upper = settings.upper_bound
    if lower >= upper:
        lower = settings.lower_bound
    f_lower, f_upper = objective(lower), objective(upper)

    if np.sign(f_lower) * np.sign(f_upper) > 0 or not np.isfinite([f_lower, f_upper]).all():
        best = lower if abs(f_lower) <= abs(f_upper) else upper
        logger.warning(
            "target price %.6f is not bracketed by volatilities [%s, %s]; returning %s",
            market.price,
            lower,
            upper,
            best,
        )
        return _result(derivative, market.price + objective(best), best, max_iterations)

    root, info = brentq(
        objective,
        lower,
        upper,
        maxiter=max_iterations,
        full_output=True,
        disp=False,
    )
    diff = objective(root)

    if not info.converged or abs(diff) >= tolerance:
        logger.warning(
            "brent search stopped after %d iterations with price error %.3e",
            info.iterations,
            diff,
        )
        return _result(derivative, market.price + diff, settings.clip(root), max_iterations)

    return _result(derivative, market.price + diff, float(root), max(info.iterations, 1))


def solve(
    derivative: Derivative,
    market: MarketData,
    steps: int = 50,
    max_iterations: int = 100,
    tolerance: float = 1e-4,
    method: SolveMethod = "newton",
    settings: SolverSettings | None = None,
) -> Output:
    """
    Find the volatility at which the lattice price matches ``market.price``.

    Parameters
    ----------
    derivative : Derivative
        Contract whose price is inverted.
    market : MarketData
        Market snapshot; ``market.price`` is the target and
        ``market.volatility`` is ignored.
    steps : int, default=50
        Lattice steps per valuation.
    max_iterations : int, default=100
        Maximum number of search iterations.
    tolerance : float, default=1e-4
        Absolute price error accepted as convergence.
    method : {"newton", "fixed-gain", "brent"}, default="newton"
        ``"fixed-gain"`` corrects the volatility by ``gain`` times the price
        error. ``"newton"`` divides the price error by a finite-difference
        vega, falling back to the fixed-gain step where vega vanishes.
        ``"brent"`` runs :func:`scipy.optimize.brentq` over the volatility
        bounds.
    settings : SolverSettings, optional
        Initial guess, gain, bounds and vega bump. Defaults to
        ``SolverSettings()``.

    Returns
    -------
    Output
        ``implied_volatility`` and ``iteration_count`` of the search, with
        ``fair_value`` the lattice price at that volatility. When the search
        does not converge, ``iteration_count == max_iterations`` and the
        volatility is the last estimate within the bounds. An estimate stuck
        at ``lower_bound`` may sit on a degenerate lattice (risk-neutral
        probability outside ``[0, 1]``, reported by
        :class:`DegenerateLatticeWarning`), in which case ``fair_value`` is
        not a meaningful price and only ``iteration_count`` should be read.

    Raises
    ------
    InvalidStepCountError
        If ``steps < 1``.
    InvalidInstrumentError
        If the derivative expires at or before the valuation time.
    ValueError
        If ``max_iterations < 1``, ``tolerance <= 0`` or ``method`` is unknown.

    Examples
    --------
    >>> mkt = MarketData(price=10.45, spot=100.0, rate=0.05, volatility=0.2)
    >>> out = solve(EuropeanOption(100.0, True, 1.0), mkt, steps=200)
    >>> round(out.implied_volatility, 2)
    0.2
    """
    check_inputs(derivative, market, steps)

    if max_iterations < 1:
        raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
    if not tolerance > 0:
        raise ValueError(f"tolerance must be positive, got {tolerance}")
    if method not in ("fixed-gain", "newton", "brent"):
        raise ValueError(f"method must be 'fixed-gain', 'newton' or 'brent', got '{method}'")

    settings = settings or SolverSettings()

    if method == "brent":
        return _solve_brent(derivative, market, steps, max_iterations, tolerance, settings)
    return _solve_iterative(derivative, market, steps, max_iterations, tolerance, method, settings)
