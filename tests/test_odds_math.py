"""
Tests for tipslines/core/odds_math.py

Run with: pytest tests/test_odds_math.py -v
"""

import math

import pytest

from tipslines.core.odds_math import (
    expected_values,
    favorite_index,
    implied_probabilities,
    is_distribution,
    match_odds,
    normalize,
    probability_triple,
    shortest_odds_index,
    validate_odds,
)


class TestProbabilityTriple:
    """Implied probabilities from decimal odds."""

    def test_reference_triple(self):
        """(2.0, 3.0, 4.0) normalises to 6/13, 4/13, 3/13."""
        p = probability_triple(2.0, 3.0, 4.0)
        assert p[0] == pytest.approx(6 / 13)
        assert p[1] == pytest.approx(4 / 13)
        assert p[2] == pytest.approx(3 / 13)

    def test_sums_to_one(self):
        """Every triple is a distribution regardless of margin."""
        assert is_distribution(probability_triple(1.3, 5.5, 11.0))
        assert is_distribution(probability_triple(2.9, 3.1, 2.6))

    def test_equal_odds_are_uniform(self):
        """Equal odds give equal probabilities."""
        p = probability_triple(3.0, 3.0, 3.0)
        assert p == pytest.approx((1 / 3, 1 / 3, 1 / 3))

    def test_slate(self):
        """A flat slate yields one triple per match, in order."""
        probs = implied_probabilities([2.0, 3.0, 4.0, 4.0, 3.0, 2.0])
        assert len(probs) == 2
        assert probs[0][0] == pytest.approx(probs[1][2])

    def test_match_odds(self):
        """match_odds slices one match out of the flat slate."""
        assert match_odds([2.0, 3.0, 4.0, 1.5, 4.2, 6.0], 1) == (1.5, 4.2, 6.0)


class TestValidateOdds:
    """Load-boundary odds checks."""

    def test_valid_slate(self):
        """A well-formed slate passes silently."""
        validate_odds([2.0, 3.0, 4.0] * 9)

    @pytest.mark.parametrize("odds", [[], [2.0, 3.0], [2.0, 3.0, 4.0, 1.5]])
    def test_bad_length(self, odds):
        """Length must be a positive multiple of three."""
        with pytest.raises(ValueError):
            validate_odds(odds)

    @pytest.mark.parametrize("bad", [0.0, -1.5, math.inf, math.nan, "2.0", True])
    def test_bad_value(self, bad):
        """Zero, negative, non-finite and non-numeric odds are rejected."""
        with pytest.raises(ValueError):
            validate_odds([2.0, bad, 4.0])


class TestNormalize:
    """Rescaling adjusted triples."""

    def test_rescales(self):
        """Values are divided by their sum."""
        assert normalize((2.0, 1.0, 1.0)) == pytest.approx((0.5, 0.25, 0.25))

    def test_zero_sum_raises(self):
        """A collapsed triple has no distribution."""
        with pytest.raises(ValueError):
            normalize((0.0, 0.0, 0.0))

    def test_infinite_sum_raises(self):
        """Non-finite sums are rejected."""
        with pytest.raises(ValueError):
            normalize((math.inf, 1.0, 1.0))


class TestFavourites:
    """Argmax helpers and expected value."""

    def test_first_max_wins_ties(self):
        """Ties resolve home, then draw, then away."""
        assert favorite_index((0.4, 0.4, 0.2)) == 0
        assert favorite_index((0.2, 0.4, 0.4)) == 1
        assert favorite_index((0.1, 0.2, 0.7)) == 2

    def test_shortest_odds(self):
        """Lowest odd is the bookmaker's favourite."""
        assert shortest_odds_index((3.1, 3.4, 2.2)) == 2
        assert shortest_odds_index((2.0, 2.0, 5.0)) == 0

    def test_expected_values(self):
        """EV is probability times odd per outcome."""
        ev = expected_values((0.5, 0.3, 0.2), (2.2, 3.0, 4.0))
        assert ev == pytest.approx((1.1, 0.9, 0.8))
