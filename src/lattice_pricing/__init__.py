"""
Public API for the lattice_pricing package.
"""

import logging

from .binomial import (
    Lattice,
    LatticeParameters,
    build_lattice,
    crr_parameters,
    stock_price_grid,
    value,
    value_many,
)
from .derivatives import (
    AmericanOption,
    BermudanOption,
    Derivative,
    EuropeanOption,
    ExerciseStyle,
    ExerciseWindow,
    make_option,
)
from .errors import (
    DegenerateLatticeWarning,
    InvalidInstrumentError,
    InvalidMarketDataError,
    InvalidStepCountError,
    LatticePricingError,
)
from .implied_vol import SolverSettings, solve
from .market_data import MarketData
from .results import Output
from .convergence import (
    convergence_study,
    lattice_convergence,
    plot_convergence,
    richardson_extrapolation,
)
from .chain import format_chain, generate_strikes, options_chain, write_chain_report

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Inputs and results
    "MarketData",
    "Output",
    # Contracts
    "Derivative",
    "EuropeanOption",
    "AmericanOption",
    "BermudanOption",
    "ExerciseStyle",
    "ExerciseWindow",
    "make_option",
    # Lattice valuation
    "Lattice",
    "LatticeParameters",
    "build_lattice",
    "crr_parameters",
    "stock_price_grid",
    "value",
    "value_many",
    # Implied volatility
    "SolverSettings",
    "solve",
    # Errors
    "LatticePricingError",
    "InvalidMarketDataError",
    "InvalidInstrumentError",
    "InvalidStepCountError",
    "DegenerateLatticeWarning",
    # Convergence
    "convergence_study",
    "lattice_convergence",
    "plot_convergence",
    "richardson_extrapolation",
    # Options chain
    "generate_strikes",
    "options_chain",
    "format_chain",
    "write_chain_report",
]
