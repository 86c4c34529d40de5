"""
Tests for tipslines/services/team_form.py

Run with: pytest tests/test_team_form.py -v
"""

import pytest

from tipslines.core.entities import TeamHistory, TeamMatch
from tipslines.core.strategy_interface import NO_FORM, NO_PROPENSITY, NULL_SIGNALS
from tipslines.services.team_form import (
    TeamHistoryIndex,
    analyze_form,
    decayed_result_score,
    form_score,
    momentum,
    normalize_team_name,
    result_rate,
    streak,
    venue_win_rate,
)


def _matches(results, home_pattern=None, start_day=28):
    """Most-recent-first matches on consecutive days of January 2024."""
    out = []
    for i, r in enumerate(results):
        is_home = home_pattern[i] if home_pattern else i % 2 == 0
        out.append(TeamMatch(
            date=f"2024-01-{start_day - i:02d}",
            opponent=f"Opp {i}",
            is_home=is_home,
            result=r,
        ))
    return tuple(out)


class TestNormalizeTeamName:
    """History key normalisation."""

    def test_basic(self):
        """Lowercase and hyphenated."""
        assert normalize_team_name("Manchester United") == "manchester-united"

    def test_strips_fc_and_punctuation(self):
        """Apostrophes, dots and a trailing FC are removed."""
        assert normalize_team_name("Nott'm Forest FC") == "nottm-forest"
        assert normalize_team_name("St. Pauli") == "st-pauli"
        assert normalize_team_name("Brentford  F.C.") == "brentford"


class TestFormFigures:
    """Form score, momentum and streaks."""

    def test_form_score_extremes(self):
        """All wins is 100, all losses 0, no matches 50."""
        assert form_score(_matches("WWWW")) == pytest.approx(100.0)
        assert form_score(_matches("LLLL")) == pytest.approx(0.0)
        assert form_score(()) == pytest.approx(50.0)

    def test_form_score_recency_weighted(self):
        """A recent win outweighs an older one."""
        assert form_score(_matches("WL")) == pytest.approx(3 / (3 * 1.85) * 100)
        assert form_score(_matches("WL")) > form_score(_matches("LW"))

    def test_momentum(self):
        """Last three minus the three before, over nine."""
        assert momentum(_matches("WWWLLL")) == pytest.approx(1.0)
        assert momentum(_matches("LLLWWW")) == pytest.approx(-1.0)
        assert momentum(_matches("WDLWDL")) == pytest.approx(0.0)
        assert momentum(_matches("WWWLL")) == 0.0

    def test_streak(self):
        """Run of identical results from the latest match."""
        assert streak(_matches("WWWDL")) == ("W", 3)
        assert streak(_matches("LW")) == ("L", 1)
        assert streak(()) == (None, 0)

    def test_venue_rates_need_three_matches(self):
        """Venue rates fall back to 0.33 under three venue matches."""
        form = analyze_form(_matches("WWWW", home_pattern=[True, True, False, False]), True)
        assert form.venue_win_rate == pytest.approx(0.33)
        assert not form.has_data

    def test_venue_rates(self):
        """Venue rates count only matches at that venue."""
        pattern = [True, True, True, False, False]
        form = analyze_form(_matches("WDLLL", home_pattern=pattern), True)
        assert form.venue_win_rate == pytest.approx(1 / 3)
        assert form.venue_draw_rate == pytest.approx(1 / 3)
        assert form.has_data

    def test_decayed_result_score(self):
        """Wins count 1, draws 0.33, weighted by 0.75 per match back."""
        assert decayed_result_score(_matches("WL")) == 0.5
        weights = (1.0, 0.75, 0.75 ** 2)
        expected = (1.0 * weights[0] + 0.33 * weights[2]) / sum(weights)
        assert decayed_result_score(_matches("WLD")) == pytest.approx(expected)

    def test_result_rates_fall_back_to_default(self):
        """Rates need enough matches, otherwise the default is returned."""
        matches = _matches("WDDLW")
        assert result_rate(matches, "D", min_matches=5, default=0.28) == pytest.approx(0.4)
        assert result_rate(matches[:4], "D", min_matches=5, default=0.28) == 0.28
        # home matches are WDW
        assert venue_win_rate(matches, True, default=0.46) == pytest.approx(2 / 3)
        assert venue_win_rate(matches, False, default=0.28) == 0.28


class TestTeamHistoryIndex:
    """The TeamSignals provider."""

    def _index(self):
        return TeamHistoryIndex([
            TeamHistory("Arsenal", _matches("WWWDLWDDLW")),
            TeamHistory("Manchester City", _matches("DDDDDDDDDDDD")),
        ])

    def test_exact_resolution(self):
        """Names resolve through the normalised key."""
        index = self._index()
        assert index.resolve("Arsenal FC") == "arsenal"
        assert "Manchester City" in index
        assert len(index) == 2

    def test_fuzzy_resolution_warns(self, caplog):
        """Near-miss names resolve by fuzzy match and log a warning."""
        index = self._index()
        with caplog.at_level("WARNING"):
            assert index.resolve("Manchester Cty") == "manchester-city"
        assert "Fuzzy matched" in caplog.text

    def test_unknown_team(self):
        """Unknown teams get the no-data defaults."""
        index = self._index()
        assert index.resolve("Real Madrid") is None
        assert index.form("Real Madrid", True, "2024-02-01") is NO_FORM
        assert index.draw_propensity("Real Madrid", "2024-02-01") is NO_PROPENSITY

    def test_form_uses_only_earlier_matches(self):
        """Nothing on or after the round date is seen."""
        index = self._index()
        early = index.form("Arsenal", True, "2024-01-20")
        assert not early.has_data
        late = index.form("Arsenal", True, "2024-02-01")
        assert late.has_data
        assert late.streak_type == "W"
        assert late.streak_length == 3

    def test_form_is_memoised(self):
        """Repeated questions return the cached object."""
        index = self._index()
        assert index.form("Arsenal", True, "2024-02-01") is index.form("Arsenal", True, "2024-02-01")

    def test_draw_propensity(self):
        """Draw rate over the window, reliable only with enough matches."""
        index = self._index()
        city = index.draw_propensity("Manchester City", "2024-02-01", window=20, min_matches=10)
        assert city.is_reliable
        assert city.draw_rate == pytest.approx(1.0)
        assert city.match_count == 12

        arsenal = index.draw_propensity("Arsenal", "2024-02-01", window=20, min_matches=11)
        assert not arsenal.is_reliable
        assert arsenal.draw_rate == 0.0
        assert arsenal.match_count == 10

    def test_recent_matches(self):
        """Raw matches strictly before the date, most recent first."""
        index = self._index()
        recent = index.recent_matches("Arsenal", "2024-01-26", 3)
        assert [m.result for m in recent] == ["D", "L", "W"]
        assert recent[0].date == "2024-01-25"
        assert index.recent_matches("Real Madrid", "2024-02-01", 10) == ()
        assert NULL_SIGNALS.recent_matches("Arsenal", "2024-02-01", 10) == ()
