"""
Tests for odds conversion, pair normalisation and median helpers.
Run with: pytest tests/test_odds_math.py -v
"""

import pytest

from edge_engine.core.odds_math import (
    InvalidOdds,
    american_to_decimal,
    american_to_fractional,
    american_to_probability,
    decimal_to_american,
    decimal_to_probability,
    fractional_to_decimal,
    median,
    normalize_pair,
    probability_to_american,
    probability_to_decimal,
    remove_vig_shin,
    round_american,
    weighted_median,
)


class TestAmericanConversions:
    """American odds to probability / decimal"""

    def test_favourite_probability(self):
        assert american_to_probability(-110) == pytest.approx(110 / 210)

    def test_underdog_probability(self):
        assert american_to_probability(150) == pytest.approx(0.4)

    def test_even_money_both_signs(self):
        assert american_to_probability(100) == pytest.approx(0.5)
        assert american_to_probability(-100) == pytest.approx(0.5)

    def test_decimal_values(self):
        assert american_to_decimal(150) == pytest.approx(2.5)
        assert american_to_decimal(-200) == pytest.approx(1.5)
        assert american_to_decimal(-110) == pytest.approx(1.909090, abs=1e-6)

    def test_probability_always_inside_unit_interval(self):
        for odds in (-100000, -5000, -101, -100, 100, 101, 5000, 100000):
            p = american_to_probability(odds)
            assert 0.0 < p < 1.0

    def test_zero_is_invalid(self):
        with pytest.raises(InvalidOdds):
            american_to_probability(0)
        with pytest.raises(InvalidOdds):
            american_to_decimal(0)

    def test_non_numeric_is_invalid(self):
        with pytest.raises(InvalidOdds):
            american_to_decimal("abc")

    def test_non_finite_is_invalid(self):
        with pytest.raises(InvalidOdds):
            american_to_probability(float("nan"))

    def test_invalid_odds_is_a_value_error(self):
        with pytest.raises(ValueError):
            american_to_decimal(0)


class TestDecimalToAmerican:
    """Decimal odds back to American"""

    def test_underdog(self):
        assert decimal_to_american(2.5) == pytest.approx(150)

    def test_favourite(self):
        assert decimal_to_american(1.5) == pytest.approx(-200)

    def test_even_money_is_positive(self):
        assert decimal_to_american(2.0) == pytest.approx(100)

    def test_decimal_at_or_below_one_is_invalid(self):
        with pytest.raises(InvalidOdds):
            decimal_to_american(1.0)
        with pytest.raises(InvalidOdds):
            decimal_to_american(0.5)

    def test_round_trip_within_one_unit(self):
        for odds in list(range(-1000, -99, 7)) + list(range(100, 1001, 7)):
            back = round_american(decimal_to_american(american_to_decimal(odds)))
            assert abs(back - odds) <= 1 or (abs(odds) == 100 and back == 100)

    def test_even_money_round_trips_to_plus_100(self):
        assert decimal_to_american(american_to_decimal(-100)) == pytest.approx(100.0)
        assert decimal_to_american(american_to_decimal(100)) == pytest.approx(100.0)

    def test_round_american_collapses_minus_100(self):
        assert round_american(-100.0) == 100
        assert round_american(-109.6) == -110


class TestProbabilityConversions:
    """Probability to decimal / American"""

    def test_fair_decimal(self):
        assert probability_to_decimal(0.4) == pytest.approx(2.5)

    def test_decimal_to_probability(self):
        assert decimal_to_probability(2.5) == pytest.approx(0.4)

    def test_fair_american(self):
        assert probability_to_american(0.4) == 150
        assert probability_to_american(2 / 3) == -200

    @pytest.mark.parametrize("prob", [0.0, 1.0, -0.1, 1.5])
    def test_out_of_range_probability(self, prob):
        with pytest.raises(InvalidOdds):
            probability_to_decimal(prob)


class TestFractional:
    """Fractional odds"""

    def test_reduced_fractions(self):
        assert american_to_fractional(150) == "3/2"
        assert american_to_fractional(-200) == "1/2"
        assert american_to_fractional(-110) == "10/11"
        assert american_to_fractional(100) == "1/1"

    def test_fractional_to_decimal(self):
        assert fractional_to_decimal("3/2") == pytest.approx(2.5)
        assert fractional_to_decimal("10/11") == pytest.approx(american_to_decimal(-110))

    @pytest.mark.parametrize("text", ["", "3", "a/b", "0/1", "1/0", "3/2/1"])
    def test_malformed_fraction(self, text):
        with pytest.raises(InvalidOdds):
            fractional_to_decimal(text)


class TestPairNormalisation:
    """Removing the margin from one book's two-sided quote"""

    def test_proportional_sums_to_one(self):
        for a, b in [(-110, -110), (-150, 130), (-250, 200), (300, -400)]:
            pa, pb = normalize_pair(a, b)
            assert pa + pb == pytest.approx(1.0, abs=1e-9)

    def test_symmetric_pair_is_even(self):
        pa, pb = normalize_pair(-110, -110)
        assert pa == pytest.approx(0.5)
        assert pb == pytest.approx(0.5)

    def test_proportional_preserves_ratio(self):
        raw_a = american_to_probability(-150)
        raw_b = american_to_probability(130)
        pa, pb = normalize_pair(-150, 130)
        assert pa / pb == pytest.approx(raw_a / raw_b)

    def test_shin_sums_to_one(self):
        for a, b in [(-150, 130), (-400, 300), (250, -320)]:
            pa, pb = remove_vig_shin(a, b)
            assert pa + pb == pytest.approx(1.0, abs=1e-9)

    def test_shin_shades_favourite_up(self):
        # Shin moves more of the margin onto the longshot
        prop_a, _ = normalize_pair(-400, 300)
        shin_a, _ = remove_vig_shin(-400, 300)
        assert shin_a > prop_a

    def test_shin_even_market_matches_proportional(self):
        assert remove_vig_shin(-110, -110) == pytest.approx(normalize_pair(-110, -110))

    def test_zero_price_in_pair_raises(self):
        with pytest.raises(InvalidOdds):
            normalize_pair(0, -110)


class TestMedian:
    """Median and weighted median"""

    def test_empty_is_none(self):
        assert median([]) is None
        assert weighted_median([], []) is None

    def test_odd_and_even(self):
        assert median([0.3, 0.1, 0.2]) == pytest.approx(0.2)
        assert median([0.4, 0.1, 0.2, 0.3]) == pytest.approx(0.25)

    def test_order_independent(self):
        values = [0.51, 0.49, 0.99, 0.52, 0.50]
        assert median(values) == median(sorted(values)) == median(values[::-1])

    def test_outlier_resistance(self):
        values = [0.49, 0.50, 0.51, 0.52, 0.99]
        mean = sum(values) / len(values)
        assert median(values) == pytest.approx(0.51)
        assert abs(median(values) - mean) > 0.05

    def test_equal_weights_match_median(self):
        values = [0.4, 0.1, 0.3, 0.2]
        assert weighted_median(values, [1, 1, 1, 1]) == pytest.approx(median(values))
        values = [0.5, 0.1, 0.3]
        assert weighted_median(values, [2, 2, 2]) == pytest.approx(median(values))

    def test_heavy_weight_pulls_median(self):
        values = [0.40, 0.50, 0.60]
        assert weighted_median(values, [1, 1, 5]) == pytest.approx(0.60)

    def test_mismatched_weights_fall_back(self):
        assert weighted_median([0.1, 0.2, 0.3], [1.0]) == pytest.approx(0.2)
