"""
Options-chain report built from lattice valuations.

For a ladder of strikes around the spot, every exercise style is priced as a
call and as a put. Bid/ask, volume and open interest are synthetic
placeholders derived from the fair value and a random generator; the engine
itself knows nothing about market microstructure.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from .binomial import value_many
from .derivatives import ExerciseStyle, make_option
from .market_data import MarketData

logger = logging.getLogger(__name__)

CONTRACT_LABELS: dict[ExerciseStyle, str] = {
    ExerciseStyle.EUROPEAN: "EUR",
    ExerciseStyle.AMERICAN: "AMR",
    ExerciseStyle.BERMUDAN: "BER",
}

CHAIN_COLUMNS = [
    "strike",
    "side",
    "contract",
    "bid",
    "ask",
    "last",
    "volume",
    "open_interest",
    "implied_vol",
    "delta",
]


def generate_strikes(spot: float, count: int = 11, interval: float = 0.025) -> NDArray[np.float64]:
    """
    Strike ladder centred on the spot price.

    Parameters
    ----------
    spot : float
        Current underlying price. Must be strictly positive.
    count : int, default=11
        Number of strikes. An odd count puts the spot itself in the middle.
    interval : float, default=0.025
        Strike spacing as a fraction of ``spot``.

    Returns
    -------
    numpy.ndarray
        Increasing strikes ``spot + (i - count // 2) * spot * interval``.

    Examples
    --------
    >>> generate_strikes(100.0, count=5, interval=0.05)
    array([ 90.,  95., 100., 105., 110.])
    """
    if spot <= 0:
        raise ValueError(f"spot must be positive, got {spot}")
    if count < 1:
        raise ValueError(f"count must be positive, got {count}")
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")

    offsets = np.arange(count, dtype=np.float64) - count // 2
    return spot + offsets * spot * interval


def approximate_delta(option_price: float, strike: float, spot: float) -> float:
    """Crude moneyness-signed delta proxy used for display only."""
    sign = 1.0 if spot > strike else -1.0
    return float(np.clip(option_price / strike * sign, -1.0, 1.0))


def options_chain(
    market: MarketData,
    maturity: float,
    steps: int = 50,
    strikes: NDArray[np.float64] | None = None,
    window: tuple[float, float] | None = None,
    spread: float = 0.05,
    seed: int | None = None,
    max_workers: int | None = None,
) -> pd.DataFrame:
    """
    Price a chain of European, American and Bermudan calls and puts.

    Parameters
    ----------
    market : MarketData
        Market snapshot shared by every contract.
    maturity : float
        Expiry of every contract in years.
    steps : int, default=50
        Lattice steps per valuation.
    strikes : ndarray, optional
        Strikes to price. Defaults to ``generate_strikes(market.spot)``.
    window : tuple of float, optional
        Bermudan exercise window. Defaults to
        ``(0.3 * maturity, 0.8 * maturity)``.
    spread : float, default=0.05
        Quoted bid/ask spread as a fraction of the fair value.
    seed : int, optional
        Seed of the generator drawing synthetic volume and open interest.
    max_workers : int, optional
        Thread-pool size for the valuations.

    Returns
    -------
    pandas.DataFrame
        One row per strike and contract with columns ``strike``, ``side``,
        ``contract``, ``bid``, ``ask``, ``last``, ``volume``,
        ``open_interest``, ``implied_vol`` and ``delta``. Calls come first,
        each strike listing the European, American and Bermudan contracts.
    """
    if spread < 0:
        raise ValueError(f"spread cannot be negative, got {spread}")

    if strikes is None:
        strikes = generate_strikes(market.spot)
    if window is None:
        window = (maturity * 0.3, maturity * 0.8)

    contracts = []
    for is_call in (True, False):
        for strike in strikes:
            for style in ExerciseStyle:
                option = make_option(style, float(strike), is_call, maturity, window=window)
                contracts.append(option)

    outputs = value_many(
        ((option, market) for option in contracts),
        steps,
        max_workers=max_workers,
    )

    rng = np.random.default_rng(seed)
    volumes = rng.integers(0, 1000, size=len(contracts))
    open_interest = rng.integers(0, 5000, size=len(contracts))

    rows = []
    for i, (option, output) in enumerate(zip(contracts, outputs)):
        last = output.fair_value
        half_spread = last * spread / 2
        suffix = "C" if option.is_call else "P"
        rows.append(
            {
                "strike": option.strike,
                "side": "CALL" if option.is_call else "PUT",
                "contract": f"{CONTRACT_LABELS[option.exercise_style]}-{suffix}",
                "bid": last - half_spread,
                "ask": last + half_spread,
                "last": last,
                "volume": int(volumes[i]),
                "open_interest": int(open_interest[i]),
                "implied_vol": output.implied_volatility,
                "delta": approximate_delta(last, option.strike, market.spot),
            }
        )

    logger.info("priced %d contracts across %d strikes", len(rows), len(strikes))
    return pd.DataFrame(rows, columns=CHAIN_COLUMNS)


def _format_section(df: pd.DataFrame, heading: str) -> list[str]:
    lines = [
        f"=== {heading} ===",
        "Strike | Type | Bid | Ask | Last | Volume | OI | IV% | Delta",
        "-" * 58,
    ]
    for row in df.itertuples(index=False):
        lines.append(
            f"{row.strike:6.2f} | {row.contract:>5} | {row.bid:5.2f} | {row.ask:5.2f} | "
            f"{row.last:5.2f} | {row.volume:6d} | {row.open_interest:4d} | "
            f"{row.implied_vol * 100:4.1f} | {row.delta:5.2f}"
        )
    return lines


def format_chain(
    df: pd.DataFrame,
    ticker: str,
    spot: float,
    rate: float,
    maturity: float,
    iv_rank: float = 0.0,
    dividend_yield: float = 0.0,
    generated_at: datetime | None = None,
) -> str:
    """
    Render an options chain as a plain-text report.

    Parameters
    ----------
    df : pandas.DataFrame
        Output of :func:`options_chain`.
    ticker : str
        Underlying symbol shown in the header.
    spot : float
        Underlying price shown in the header.
    rate : float
        Risk-free rate shown in the header.
    maturity : float
        Expiry in years; shown as days to expiration.
    iv_rank : float, default=0.0
        IV rank in percent, display only.
    dividend_yield : float, default=0.0
        Dividend yield as a fraction, display only.
    generated_at : datetime, optional
        Report timestamp. Defaults to now.

    Returns
    -------
    str
        The report text.
    """
    generated_at = generated_at or datetime.now()

    lines = [
        f"Options Chain Generated: {generated_at:%Y-%m-%d %H:%M:%S}",
        "",
        f"=== Options Chain for {ticker} ===",
        f"Current Price: ${spot:.2f} | IV Rank: {iv_rank:.1f}% | "
        f"Dividend Yield: {dividend_yield * 100:.2f}%",
        f"Days to Expiration: {maturity * 365:.0f} | Risk-free Rate: {rate * 100:.1f}%",
        "",
    ]
    lines += _format_section(df[df["side"] == "CALL"], "CALLS")
    lines.append("")
    lines += _format_section(df[df["side"] == "PUT"], "PUTS")
    return "\n".join(lines) + "\n"


def write_chain_report(text: str, path: str | Path = "options_data.txt") -> Path:
    """Write a rendered report to ``path`` and return the path written."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    logger.info("wrote options chain report to %s", target)
    return target
