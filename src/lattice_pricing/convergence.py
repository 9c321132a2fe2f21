"""
Convergence analysis tools for the binomial lattice.

Provides utilities to study how lattice prices settle as the number of time
steps grows and to visualise the error decay.
"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from .binomial import value
from .derivatives import Derivative
from .errors import LatticePricingError
from .market_data import MarketData

logger = logging.getLogger(__name__)


def convergence_study(
    pricing_function: Callable[[int], float],
    steps_range: list[int] | NDArray[np.int_],
    reference_value: float | None = None,
) -> pd.DataFrame:
    """
    Perform a convergence study over lattice refinements.

    Evaluates the pricing function for each step count and computes errors
    relative to a reference value. Estimates convergence rates from
    successive refinements.

    Parameters
    ----------
    pricing_function : callable
        Function with signature ``(steps: int) -> float`` returning the
        option price for the given number of time steps.
    steps_range : list or ndarray
        Sequence of step counts to test. Should be increasing.
    reference_value : float, optional
        True or highly accurate reference price. If None, uses the finest
        lattice result as reference.

    Returns
    -------
    pandas.DataFrame
        DataFrame with columns:
        - steps: Number of lattice time steps
        - price: Computed option price
        - error: Absolute error vs reference
        - relative_error: Relative error as percentage
        - convergence_rate: Estimated order of convergence (where applicable)

    Examples
    --------
    >>> mkt = MarketData(price=10.0, spot=100.0, rate=0.05, volatility=0.2)
    >>> opt = EuropeanOption(100.0, True, 1.0)
    >>> results = convergence_study(
    ...     lambda n: value(opt, mkt, n).fair_value, [50, 100, 200, 400], reference_value=10.4506
    ... )
    >>> results[["steps", "price", "error"]]
    """
    steps_arr = np.asarray(steps_range, dtype=int)

    if len(steps_arr) < 2:
        raise ValueError("steps_range must contain at least 2 values")

    results = {
        "steps": [],
        "price": [],
    }

    for n_steps in steps_arr:
        try:
            price = pricing_function(int(n_steps))
        except LatticePricingError as exc:
            logger.warning("failed to compute price for steps=%d: %s", n_steps, exc)
            continue
        results["steps"].append(int(n_steps))
        results["price"].append(float(price))

    if len(results["price"]) < 2:
        raise RuntimeError("Failed to compute prices for sufficient lattice refinements")

    df = pd.DataFrame(results)

    # Use finest lattice as reference if not provided
    if reference_value is None:
        reference_value = df["price"].iloc[-1]

    df["error"] = np.abs(df["price"] - reference_value)
    df["relative_error"] = 100 * df["error"] / np.abs(reference_value)

    # error ~ n^-p, so p = log(error ratio) / log(step ratio)
    convergence_rates = [np.nan]
    for i in range(1, len(df)):
        previous_error = df["error"].iloc[i - 1]
        current_error = df["error"].iloc[i]
        steps_ratio = df["steps"].iloc[i] / df["steps"].iloc[i - 1]

        if previous_error > 0 and current_error > 0 and steps_ratio > 1:
            convergence_rates.append(np.log(previous_error / current_error) / np.log(steps_ratio))
        else:
            convergence_rates.append(np.nan)

    df["convergence_rate"] = convergence_rates

    return df


def lattice_convergence(
    derivative: Derivative,
    market: MarketData,
    steps_range: list[int] | NDArray[np.int_],
    reference_value: float | None = None,
) -> pd.DataFrame:
    """
    Run :func:`convergence_study` on the binomial valuation of one contract.

    Parameters
    ----------
    derivative : Derivative
        Contract to value.
    market : MarketData
        Market snapshot.
    steps_range : list or ndarray
        Increasing sequence of step counts.
    reference_value : float, optional
        Reference price; defaults to the finest lattice result.

    Returns
    -------
    pandas.DataFrame
        See :func:`convergence_study`.
    """
    return convergence_study(
        lambda n_steps: value(derivative, market, n_steps).fair_value,
        steps_range,
        reference_value=reference_value,
    )


def plot_convergence(
    df: pd.DataFrame,
    log_scale: bool = True,
    reference_value: float | None = None,
    title: str = "Lattice Convergence",
) -> tuple:
    """
    Plot lattice prices and their errors against the number of steps.

    The left panel shows the price per refinement, with ``reference_value``
    drawn as a horizontal line when given. The right panel shows the error;
    on log-log axes it is overlaid with the power law fitted by
    :func:`estimate_convergence_order`.

    Parameters
    ----------
    df : pandas.DataFrame
        Results from :func:`convergence_study`.
    log_scale : bool, default=True
        Draw the error panel on log-log axes.
    reference_value : float, optional
        Limit price to mark on the price panel.
    title : str, default="Lattice Convergence"
        Prefix of both panel titles.

    Returns
    -------
    tuple
        ``(fig, axes)`` matplotlib figure and the two axes.

    Notes
    -----
    Requires matplotlib, installed with the ``plot`` extra.
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError(
            "matplotlib is required for plotting. Install with: pip install lattice-pricing[plot]"
        )

    steps = df["steps"].to_numpy(dtype=np.float64)
    errors = df["error"].to_numpy(dtype=np.float64)

    fig, (price_ax, error_ax) = plt.subplots(1, 2, figsize=(12, 5))

    price_ax.plot(steps, df["price"], "o-", label="lattice")
    if reference_value is not None:
        price_ax.axhline(reference_value, color="black", linestyle=":", label="reference")
    price_ax.set_xlabel("Steps")
    price_ax.set_ylabel("Option Price")
    price_ax.set_title(f"{title}: price")
    price_ax.legend()
    price_ax.grid(True, alpha=0.3)

    if log_scale:
        positive = errors > 0
        error_ax.loglog(steps[positive], errors[positive], "s-", color="red", label="error")
        if positive.sum() >= 2:
            order = estimate_convergence_order(errors[positive], steps[positive])
            # Fit passes through the geometric mean of the observations.
            level = np.exp(np.mean(np.log(errors[positive]) + order * np.log(steps[positive])))
            error_ax.loglog(
                steps[positive],
                level * steps[positive] ** -order,
                "--",
                alpha=0.6,
                label=f"n^-{order:.2f}",
            )
        error_ax.legend()
    else:
        error_ax.plot(steps, errors, "s-", color="red")

    error_ax.set_xlabel("Steps")
    error_ax.set_ylabel("Absolute Error")
    error_ax.set_title(f"{title}: error")
    error_ax.grid(True, alpha=0.3)

    fig.tight_layout()
    return fig, (price_ax, error_ax)


def extrapolate_richardson(
    coarse_price: float,
    fine_price: float,
    convergence_order: float = 1.0,
    refinement_ratio: float = 2.0,
) -> float:
    """
    Estimate the infinite-step price from two lattice refinements.

    With ``error ~ C * n**-p``, prices on ``n`` and ``r * n`` steps cancel the
    leading error term::

        P = (r**p * P_fine - P_coarse) / (r**p - 1)

    Parameters
    ----------
    coarse_price : float
        Price on ``n`` steps.
    fine_price : float
        Price on ``refinement_ratio * n`` steps.
    convergence_order : float, default=1.0
        Order ``p``; CRR prices converge at first order.
    refinement_ratio : float, default=2.0
        Ratio of fine to coarse step counts. Must exceed 1.

    Returns
    -------
    float
        Extrapolated price.

    Examples
    --------
    >>> extrapolate_richardson(coarse_price=8.0, fine_price=9.0)
    10.0
    """
    if not refinement_ratio > 1.0:
        raise ValueError(f"refinement_ratio must exceed 1, got {refinement_ratio}")
    if not convergence_order > 0:
        raise ValueError(f"convergence_order must be positive, got {convergence_order}")

    weight = refinement_ratio**convergence_order
    return float((weight * fine_price - coarse_price) / (weight - 1.0))


def richardson_extrapolation(df: pd.DataFrame, convergence_order: float = 1.0) -> pd.DataFrame:
    """
    Add an ``extrapolated`` column to a convergence study.

    Each row is combined with the previous refinement through
    :func:`extrapolate_richardson`, using the actual ratio of their step
    counts. The first row has no predecessor and gets NaN.

    Parameters
    ----------
    df : pandas.DataFrame
        Results from :func:`convergence_study`.
    convergence_order : float, default=1.0
        Order passed to :func:`extrapolate_richardson`.

    Returns
    -------
    pandas.DataFrame
        Copy of ``df`` with the extra column.
    """
    extrapolated = [np.nan]
    for previous, current in zip(df.iloc[:-1].itertuples(), df.iloc[1:].itertuples()):
        extrapolated.append(
            extrapolate_richardson(
                previous.price,
                current.price,
                convergence_order=convergence_order,
                refinement_ratio=current.steps / previous.steps,
            )
        )

    result = df.copy()
    result["extrapolated"] = extrapolated
    return result


def estimate_convergence_order(
    errors: NDArray[np.float64],
    steps: NDArray[np.float64],
) -> float:
    """
    Estimate convergence order from error measurements.

    Fits a power law error ~ n^-p to the data using least squares on log-log
    scale.

    Parameters
    ----------
    errors : ndarray
        Absolute errors for different step counts.
    steps : ndarray
        Corresponding numbers of lattice steps.

    Returns
    -------
    float
        Estimated convergence order p.

    Examples
    --------
    >>> errors = np.array([0.04, 0.01, 0.0025])
    >>> steps = np.array([50, 200, 800])
    >>> round(estimate_convergence_order(errors, steps), 6)
    1.0
    """
    errors = np.asarray(errors, dtype=np.float64)
    steps = np.asarray(steps, dtype=np.float64)

    if len(errors) != len(steps):
        raise ValueError("errors and steps must have same length")

    if len(errors) < 2:
        raise ValueError("Need at least 2 data points to estimate convergence order")

    valid_mask = (errors > 0) & (steps > 0)
    if valid_mask.sum() < 2:
        raise ValueError("Need at least 2 positive error and step values")

    log_errors = np.log(errors[valid_mask])
    log_steps = np.log(steps[valid_mask])

    coeffs = np.polyfit(log_steps, log_errors, deg=1)
    return float(-coeffs[0])
