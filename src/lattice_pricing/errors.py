"""
Exception and warning types raised by the lattice pricing engine.
"""

from __future__ import annotations


class LatticePricingError(ValueError):
    """Base class for invalid inputs to the pricing engine."""


class InvalidMarketDataError(LatticePricingError):
    """Raised when a market snapshot violates its bounds."""


class InvalidInstrumentError(LatticePricingError):
    """Raised when an option's terms are inconsistent."""


class InvalidStepCountError(LatticePricingError):
    """Raised when a lattice is requested with fewer than one time step."""


class DegenerateLatticeWarning(RuntimeWarning):
    """Risk-neutral probability fell outside ``[0, 1]``."""
