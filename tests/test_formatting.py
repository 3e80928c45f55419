"""
Tests for odds / line / EV display helpers.
Run with: pytest tests/test_formatting.py -v
"""

import pytest

from edge_engine.utils.formatting import (
    MISSING,
    format_ev,
    format_line,
    format_odds,
    format_probability,
)


class TestFormatOdds:
    def test_american(self):
        assert format_odds(150) == "+150"
        assert format_odds(-110) == "-110"

    def test_decimal(self):
        assert format_odds(150, "decimal") == "2.50"
        assert format_odds(-110, "decimal") == "1.91"

    def test_fractional(self):
        assert format_odds(150, "fractional") == "3/2"
        assert format_odds(-110, "fractional") == "10/11"

    def test_missing(self):
        assert format_odds(None) == MISSING
        assert format_odds(0, "decimal") == MISSING

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            format_odds(150, "hongkong")


class TestFormatLine:
    def test_signed(self):
        assert format_line(3.5) == "+3.5"
        assert format_line(-3.5) == "-3.5"
        assert format_line(0.0) == "0"

    def test_totals_unsigned(self):
        assert format_line(221.5, signed=False) == "221.5"

    def test_moneyline(self):
        assert format_line(None) == ""


class TestFormatEv:
    def test_defined(self):
        assert format_ev(4.0) == "+4.00%"
        assert format_ev(-3.361) == "-3.36%"
        assert format_ev(0.0) == "+0.00%"

    def test_undefined_is_not_zero(self):
        assert format_ev(None) == MISSING

    def test_probability(self):
        assert format_probability(0.42) == "42.0%"
        assert format_probability(None) == MISSING
