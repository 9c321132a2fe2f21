"""
Result record returned by lattice valuations and implied-volatility searches.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Output:
    """
    Result of a lattice valuation or an implied-volatility search.

    Parameters
    ----------
    fair_value : float
        Model value of the option at the valuation time.
    fugit : float
        Expected exercise time. Reported as the maturity, an upper bound,
        rather than a probability-weighted estimate.
    implied_volatility : float, default=0.0
        Volatility found by the solver; ``0.0`` for plain valuations.
    iteration_count : int, default=0
        Solver iterations used; ``0`` for plain valuations.
    """

    fair_value: float
    fugit: float
    implied_volatility: float = 0.0
    iteration_count: int = 0

    def to_dict(self) -> dict[str, float | int]:
        return asdict(self)

    def __str__(self) -> str:
        return (
            f"Fair Value: {self.fair_value:.4f}, Fugit: {self.fugit:.4f}, "
            f"Implied Vol: {self.implied_volatility:.4f}, Iterations: {self.iteration_count}"
        )
