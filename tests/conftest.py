import pytest

from lattice_pricing import MarketData


@pytest.fixture
def market() -> MarketData:
    """At-the-money snapshot used throughout: S=100, r=5%, sigma=20%."""
    return MarketData(price=10.0, spot=100.0, rate=0.05, volatility=0.2, valuation_time=0.0)
