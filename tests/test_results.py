"""
Tests for the valuation result type.
"""

from lattice_pricing import Output


class TestOutput:
    def test_defaults(self):
        out = Output(fair_value=10.45, fugit=1.0)
        assert out.implied_volatility == 0.0
        assert out.iteration_count == 0

    def test_str(self):
        out = Output(fair_value=10.4506, fugit=1.0, implied_volatility=0.2, iteration_count=4)
        assert str(out) == "Fair Value: 10.4506, Fugit: 1.0000, Implied Vol: 0.2000, Iterations: 4"

    def test_to_dict(self):
        out = Output(fair_value=5.5, fugit=0.5, implied_volatility=0.25, iteration_count=3)
        assert out.to_dict() == {
            "fair_value": 5.5,
            "fugit": 0.5,
            "implied_volatility": 0.25,
            "iteration_count": 3,
        }

    def test_to_dict_keeps_iteration_count_integral(self):
        record = Output(fair_value=1.0, fugit=1.0, iteration_count=7).to_dict()
        assert isinstance(record["iteration_count"], int)
        assert isinstance(record["fair_value"], float)
