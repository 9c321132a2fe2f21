"""
Market snapshot consumed by the lattice pricing engine.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .errors import InvalidMarketDataError


@dataclass(frozen=True)
class MarketData:
    """
    Immutable snapshot of the market inputs needed to price one option.

    Parameters
    ----------
    price : float
        Observed market price of the option. Must be strictly positive.
    spot : float
        Current price of the underlying asset. Must be strictly positive.
    rate : float
        Continuously compounded risk-free rate. Any sign is accepted.
    volatility : float
        Annualized volatility. Must be strictly positive.
    valuation_time : float, default=0.0
        Time (in years) at which the option is valued. Cannot be negative.

    Raises
    ------
    InvalidMarketDataError
        If any bound is violated. Inputs are never clamped.

    Examples
    --------
    >>> mkt = MarketData(price=10.0, spot=100.0, rate=0.05, volatility=0.2)
    >>> mkt.with_volatility(0.3).volatility
    0.3
    """

    price: float
    spot: float
    rate: float
    volatility: float
    valuation_time: float = 0.0

    def __post_init__(self) -> None:
        """Validate inputs after initialization."""
        if not self.price > 0:
            raise InvalidMarketDataError(f"price must be positive, got {self.price}")

        if not self.spot > 0:
            raise InvalidMarketDataError(f"spot must be positive, got {self.spot}")

        if not self.volatility > 0:
            raise InvalidMarketDataError(f"volatility must be positive, got {self.volatility}")

        if not self.valuation_time >= 0:
            raise InvalidMarketDataError(
                f"valuation_time cannot be negative, got {self.valuation_time}"
            )

    def with_volatility(self, volatility: float) -> MarketData:
        """
        Return a copy of the snapshot with ``volatility`` substituted.

        Parameters
        ----------
        volatility : float
            Replacement volatility. Validated like any other field.

        Returns
        -------
        MarketData
            New snapshot; every other field is copied unchanged.
        """
        return replace(self, volatility=volatility)
