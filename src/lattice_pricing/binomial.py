"""
Cox-Ross-Rubinstein binomial lattice valuation.

The lattice is stored as two dense ``(steps + 1, steps + 1)`` arrays indexed by
``[step, state]``, where ``state`` counts the up-moves taken to reach a node.
Entries above the diagonal (``state > step``) are unused and left at zero.
"""

from __future__ import annotations

import logging
import math
import warnings
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .derivatives import Derivative
from .errors import DegenerateLatticeWarning, InvalidInstrumentError, InvalidStepCountError
from .market_data import MarketData
from .results import Output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LatticeParameters:
    """
    Per-step quantities of a CRR lattice.

    Attributes
    ----------
    dt : float
        Length of one time step in years.
    up : float
        Up-move factor ``exp(volatility * sqrt(dt))``.
    down : float
        Down-move factor ``1 / up``.
    probability : float
        Risk-neutral up-move probability. Not clamped to ``[0, 1]``.
    discount : float
        One-step discount factor ``exp(-rate * dt)``.
    """

    dt: float
    up: float
    down: float
    probability: float
    discount: float

    @property
    def is_degenerate(self) -> bool:
        return not 0.0 <= self.probability <= 1.0


@dataclass(frozen=True)
class Lattice:
    """Filled stock-price and option-value grids of one valuation."""

    parameters: LatticeParameters
    stock_price: NDArray[np.float64]
    option_value: NDArray[np.float64]

    @property
    def steps(self) -> int:
        return self.stock_price.shape[0] - 1

    @property
    def fair_value(self) -> float:
        return float(self.option_value[0, 0])


def check_inputs(derivative: Derivative, market: MarketData, steps: int) -> None:
    if steps < 1:
        raise InvalidStepCountError(f"steps must be at least 1, got {steps}")
    if derivative.maturity <= market.valuation_time:
        raise InvalidInstrumentError(
            f"maturity must exceed valuation_time, "
            f"got maturity={derivative.maturity} and valuation_time={market.valuation_time}"
        )


def crr_parameters(maturity: float, market: MarketData, steps: int) -> LatticeParameters:
    """
    Derive the Cox-Ross-Rubinstein step parameters.

    Parameters
    ----------
    maturity : float
        Option expiry in years.
    market : MarketData
        Market snapshot supplying rate, volatility and valuation time.
    steps : int
        Number of time steps between valuation time and maturity.

    Returns
    -------
    LatticeParameters
        Step length, move factors, risk-neutral probability and discount.

    Warns
    -----
    DegenerateLatticeWarning
        If the risk-neutral probability lies outside ``[0, 1]``. The
        parameters are still returned unchanged.
    """
    dt = (maturity - market.valuation_time) / steps
    up = math.exp(market.volatility * math.sqrt(dt))
    down = 1.0 / up
    probability = (math.exp(market.rate * dt) - down) / (up - down)
    params = LatticeParameters(
        dt=dt,
        up=up,
        down=down,
        probability=probability,
        discount=math.exp(-market.rate * dt),
    )

    if params.is_degenerate:
        warnings.warn(
            f"risk-neutral probability {probability:.6f} is outside [0, 1] "
            f"(rate={market.rate}, volatility={market.volatility}, dt={dt:.6g}); "
            "consider more steps",
            DegenerateLatticeWarning,
            stacklevel=2,
        )

    return params


def stock_price_grid(spot: float, up: float, down: float, steps: int) -> NDArray[np.float64]:
    """
    Underlying prices at every lattice node.

    Parameters
    ----------
    spot : float
        Underlying price at the root node.
    up, down : float
        Up- and down-move factors.
    steps : int
        Number of time steps.

    Returns
    -------
    numpy.ndarray
        Array of shape ``(steps + 1, steps + 1)`` with
        ``grid[step, state] = spot * up**state * down**(step - state)`` for
        ``state <= step`` and zero elsewhere.

    Examples
    --------
    >>> stock_price_grid(100.0, 2.0, 0.5, 2)
    array([[100.,   0.,   0.],
           [ 50., 200.,   0.],
           [ 25., 100., 400.]])
    """
    step = np.arange(steps + 1, dtype=np.float64).reshape(-1, 1)
    state = np.arange(steps + 1, dtype=np.float64).reshape(1, -1)
    reachable = state <= step

    # Sum the log moves before exponentiating; up**state and down**(step - state)
    # overflow and underflow separately on long lattices.
    log_move = np.where(reachable, state * math.log(up) + (step - state) * math.log(down), 0.0)
    with np.errstate(over="ignore"):
        prices = spot * np.exp(log_move)
    return np.where(reachable, prices, 0.0)


def build_lattice(derivative: Derivative, market: MarketData, steps: int) -> Lattice:
    """
    Build and fill the lattice for one valuation.

    Terminal nodes take the derivative's payoff; earlier nodes are filled by
    backward induction, discounting the risk-neutral expectation of the two
    successor nodes and passing it through the derivative's exercise test.

    Parameters
    ----------
    derivative : Derivative
        Contract to value.
    market : MarketData
        Market snapshot.
    steps : int
        Number of time steps. Must be at least 1.

    Returns
    -------
    Lattice
        The filled stock-price and option-value grids.

    Raises
    ------
    InvalidStepCountError
        If ``steps < 1``.
    InvalidInstrumentError
        If the derivative expires at or before the valuation time.
    """
    check_inputs(derivative, market, steps)

    params = crr_parameters(derivative.maturity, market, steps)
    stock_price = stock_price_grid(market.spot, params.up, params.down, steps)
    option_value = np.zeros_like(stock_price)

    option_value[steps, :] = derivative.terminal_payoff(stock_price[steps, :])

    p = params.probability
    for step in range(steps - 1, -1, -1):
        up_branch = option_value[step + 1, 1 : step + 2]
        down_branch = option_value[step + 1, : step + 1]
        continuation = params.discount * (p * up_branch + (1.0 - p) * down_branch)
        option_value[step, : step + 1] = derivative.exercise_test(
            stock_price[step, : step + 1],
            continuation,
            step * params.dt,
        )

    return Lattice(parameters=params, stock_price=stock_price, option_value=option_value)


def value(derivative: Derivative, market: MarketData, steps: int) -> Output:
    """
    Value an option on a CRR binomial lattice.

    Parameters
    ----------
    derivative : Derivative
        Contract to value.
    market : MarketData
        Market snapshot. Its ``price`` field is not used here.
    steps : int
        Number of time steps. Must be at least 1.

    Returns
    -------
    Output
        ``fair_value`` at the root node and ``fugit`` set to the maturity.

    Raises
    ------
    InvalidStepCountError
        If ``steps < 1``.
    InvalidInstrumentError
        If the derivative expires at or before the valuation time.

    Examples
    --------
    >>> mkt = MarketData(price=10.0, spot=100.0, rate=0.05, volatility=0.2)
    >>> out = value(EuropeanOption(100.0, True, 1.0), mkt, steps=50)
    >>> out.fugit
    1.0
    """
    lattice = build_lattice(derivative, market, steps)
    logger.debug(
        "valued %s %s strike=%s steps=%d: %.6f",
        derivative.exercise_style.value,
        "call" if derivative.is_call else "put",
        derivative.strike,
        steps,
        lattice.fair_value,
    )
    return Output(fair_value=lattice.fair_value, fugit=derivative.maturity)


def value_many(
    jobs: Iterable[tuple[Derivative, MarketData]],
    steps: int,
    max_workers: int | None = None,
) -> list[Output]:
    """
    Value independent ``(derivative, market)`` pairs concurrently.

    Each valuation allocates its own lattice, so the jobs share nothing but
    their immutable inputs.

    Parameters
    ----------
    jobs : iterable of (Derivative, MarketData)
        Contracts and snapshots to value.
    steps : int
        Number of time steps used for every job.
    max_workers : int, optional
        Thread-pool size; defaults to the executor's own choice.

    Returns
    -------
    list of Output
        Results in the order of ``jobs``.
    """
    if steps < 1:
        raise InvalidStepCountError(f"steps must be at least 1, got {steps}")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(value, derivative, market, steps) for derivative, market in jobs]
        return [future.result() for future in futures]
