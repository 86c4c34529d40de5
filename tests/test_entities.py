"""
Tests for tipslines/core/entities.py

Run with: pytest tests/test_entities.py -v
"""

import pytest

from tipslines.core.entities import (
    Round,
    RoundDataError,
    TeamHistory,
    extract_date,
    rounds_from_records,
)


def _record(**extra):
    rec = {"odds": [2.0, 3.0, 4.0] * 9}
    rec.update(extra)
    return rec


class TestExtractDate:
    """Round date from a record identifier."""

    def test_date_in_name(self):
        """A YYYY-MM-DD substring wins."""
        assert extract_date("stryktipset-2024-03-16.json") == "2024-03-16"

    def test_fallback(self):
        """Without a date the identifier minus .json is used."""
        assert extract_date("week12.json") == "week12"
        assert extract_date("week12") == "week12"


class TestRoundFromRecord:
    """Round parsing at the load boundary."""

    def test_basic(self):
        """Odds, string result and probabilities are populated."""
        r = Round.from_record("2024-03-16.json", _record(result="0" * 9))
        assert r.date == "2024-03-16"
        assert r.match_count == 9
        assert r.is_settled
        assert r.result == ("0",) * 9
        assert r.probabilities[0] == pytest.approx((6 / 13, 4 / 13, 3 / 13))

    def test_list_result(self):
        """Results may be a list of codes."""
        r = Round.from_record("2024-03-16", _record(result=[0, 1, 2] * 3))
        assert r.result == ("0", "1", "2") * 3

    def test_unsettled(self):
        """Rounds without a result are valid but unsettled."""
        r = Round.from_record("2024-03-16", _record())
        assert not r.is_settled

    def test_team_shapes(self):
        """Teams accept '1'/'2' maps, home/away maps and pairs."""
        teams = [{"1": "A", "2": "B"}, {"home": "C", "away": "D"}] + [["E", "F"]] * 7
        r = Round.from_record("2024-03-16", _record(teams=teams))
        assert r.team_pair(0) == ("A", "B")
        assert r.team_pair(1) == ("C", "D")
        assert r.team_pair(8) == ("E", "F")

    def test_no_teams(self):
        """team_pair is None when the round has no team names."""
        assert Round.from_record("2024-03-16", _record()).team_pair(0) is None

    @pytest.mark.parametrize("record", [
        {"odds": [2.0, 3.0]},
        {"odds": [2.0, 0.0, 4.0]},
        {"odds": "2.0,3.0,4.0"},
        {},
        {"odds": [2.0, 3.0, 4.0], "result": "01"},
        {"odds": [2.0, 3.0, 4.0], "teams": [{"1": "A"}]},
        {"odds": [2.0, 3.0, 4.0], "result": 7},
    ])
    def test_malformed(self, record):
        """Any malformed field aborts the load."""
        with pytest.raises(RoundDataError):
            Round.from_record("2024-03-16", record)

    def test_error_is_value_error(self):
        """RoundDataError is a ValueError."""
        assert issubclass(RoundDataError, ValueError)


class TestRoundsFromRecords:
    """Whole-dataset parsing."""

    def test_sorted_by_date(self):
        """Rounds come back in date order."""
        rounds = rounds_from_records({
            "2024-03-23.json": _record(),
            "2024-03-16.json": _record(),
        })
        assert [r.date for r in rounds] == ["2024-03-16", "2024-03-23"]

    def test_duplicate_dates(self):
        """Two records resolving to one date are rejected."""
        with pytest.raises(RoundDataError):
            rounds_from_records({
                "a-2024-03-16.json": _record(),
                "b-2024-03-16.json": _record(),
            })


class TestTeamHistory:
    """Team history parsing and lookups."""

    RECORD = {
        "teamName": "Arsenal",
        "matches": [
            {"date": "2024-03-02", "opponent": "X", "isHome": True, "result": "W"},
            {"date": "2024-03-09", "opponent": "Y", "isHome": False, "result": "D",
             "goalsFor": 1, "goalsAgainst": 1},
            {"date": "2024-02-24", "opponent": "Z", "isHome": True, "result": "L"},
        ],
    }

    def test_sorted_most_recent_first(self):
        """Matches are reordered newest first."""
        h = TeamHistory.from_record(self.RECORD)
        assert [m.date for m in h.matches] == ["2024-03-09", "2024-03-02", "2024-02-24"]
        assert h.matches[0].points == 1

    def test_matches_before_is_strict(self):
        """Matches on the round date are excluded."""
        h = TeamHistory.from_record(self.RECORD)
        assert [m.date for m in h.matches_before("2024-03-09", 10)] == ["2024-03-02", "2024-02-24"]
        assert len(h.matches_before("2024-12-31", 2)) == 2

    def test_bad_result(self):
        """Results must be W, L or D."""
        with pytest.raises(RoundDataError):
            TeamHistory.from_record({
                "teamName": "A",
                "matches": [{"date": "2024-01-01", "result": "X"}],
            })

    def test_missing_name(self):
        """A team record needs a name."""
        with pytest.raises(RoundDataError):
            TeamHistory.from_record({"matches": []})
