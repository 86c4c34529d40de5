"""
Team-history signals: recent form and draw propensity per team and date.

TeamHistoryIndex is the concrete TeamSignals provider used by the
team-aware transforms. Team names on the round slate are matched to
history records in two steps:
  1. Exact match on the normalised key (lowercase, hyphenated, no "FC")
  2. Fuzzy match via rapidfuzz against all known keys (score >= cutoff)

Every figure is computed from matches strictly before the round date, so
a backtest never sees the result it is scoring. Results are memoised per
(team, venue, date, window) because the optimizer asks the same question
once per trial.
"""

import logging
import re
from typing import Iterable, Optional

import numpy as np
from rapidfuzz import fuzz, process

from tipslines.core.entities import TeamHistory, TeamMatch
from tipslines.core.strategy_interface import (
    NO_FORM,
    NO_PROPENSITY,
    DrawPropensity,
    TeamForm,
    TeamSignals,
)

logger = logging.getLogger(__name__)

# Recency decay per match for the form score (most recent has weight 1)
FORM_DECAY = 0.85
# Venue rates need this many home (or away) matches in the window
MIN_VENUE_MATCHES = 3
# Form figures are trusted from this many recent matches
MIN_FORM_MATCHES = 5
# Momentum compares the last 3 matches with the 3 before
MOMENTUM_SPAN = 3
# Default rapidfuzz cutoff (0-100)
FUZZY_CUTOFF = 88
# Result values for the decayed result score; a draw counts a third of a win
RESULT_VALUE = {"W": 1.0, "D": 0.33, "L": 0.0}

_WHITESPACE = re.compile(r"\s+")
_TRAILING_FC = re.compile(r"fc$", re.IGNORECASE)
_TRAILING_HYPHENS = re.compile(r"-+$")


def normalize_team_name(name: str) -> str:
    """
    Canonical history key for a team name.

    >>> normalize_team_name("Nott'm Forest FC")
    'nottm-forest'
    """
    key = name.lower().replace("'", "")
    key = _WHITESPACE.sub("-", key)
    key = key.replace(".", "")
    key = _TRAILING_FC.sub("", key)
    key = _TRAILING_HYPHENS.sub("", key)
    return key.strip()


def form_score(matches: Iterable[TeamMatch]) -> float:
    """Recency-weighted share of available points, 0-100 (50 with no matches)."""
    points = np.array([m.points for m in matches], dtype=float)
    if points.size == 0:
        return 50.0
    weights = np.power(FORM_DECAY, np.arange(points.size))
    return float(np.dot(points, weights) / (3.0 * weights.sum()) * 100.0)


def momentum(matches: tuple[TeamMatch, ...]) -> float:
    """(points of last 3 - points of the 3 before) / 9; 0 under 6 matches."""
    if len(matches) < 2 * MOMENTUM_SPAN:
        return 0.0
    recent = sum(m.points for m in matches[:MOMENTUM_SPAN])
    older = sum(m.points for m in matches[MOMENTUM_SPAN:2 * MOMENTUM_SPAN])
    return (recent - older) / 9.0


def streak(matches: tuple[TeamMatch, ...]) -> tuple[Optional[str], int]:
    """Type and length of the run of identical results ending at the latest match."""
    if not matches:
        return None, 0
    first = matches[0].result
    length = 0
    for m in matches:
        if m.result != first:
            break
        length += 1
    return first, length


def decayed_result_score(
    matches: tuple[TeamMatch, ...], decay: float = 0.75, min_matches: int = 3
) -> float:
    """Recency-weighted result value in [0, 1] (0.5 under ``min_matches``)."""
    if len(matches) < min_matches:
        return 0.5
    values = np.array([RESULT_VALUE.get(m.result, 0.0) for m in matches])
    weights = np.power(decay, np.arange(values.size))
    return float(np.dot(values, weights) / weights.sum())


def result_rate(
    matches: tuple[TeamMatch, ...], result: str, min_matches: int, default: float
) -> float:
    """Share of ``matches`` ending in ``result``; ``default`` under ``min_matches``."""
    if len(matches) < min_matches:
        return default
    return sum(1 for m in matches if m.result == result) / len(matches)


def venue_win_rate(
    matches: tuple[TeamMatch, ...], is_home: bool, default: float,
    min_matches: int = MIN_VENUE_MATCHES,
) -> float:
    venue = tuple(m for m in matches if m.is_home == is_home)
    return result_rate(venue, "W", min_matches, default)


def analyze_form(matches: tuple[TeamMatch, ...], is_home: bool) -> TeamForm:
    """Build a TeamForm from a most-recent-first window of matches."""
    venue = [m for m in matches if m.is_home == is_home]
    win_rate, draw_rate = NO_FORM.venue_win_rate, NO_FORM.venue_draw_rate
    if len(venue) >= MIN_VENUE_MATCHES:
        win_rate = sum(1 for m in venue if m.result == "W") / len(venue)
        draw_rate = sum(1 for m in venue if m.result == "D") / len(venue)

    streak_type, streak_length = streak(matches)
    return TeamForm(
        form_score=form_score(matches),
        venue_win_rate=win_rate,
        venue_draw_rate=draw_rate,
        momentum=momentum(matches),
        streak_type=streak_type,
        streak_length=streak_length,
        has_data=len(matches) >= MIN_FORM_MATCHES,
    )


def analyze_draw_propensity(matches: tuple[TeamMatch, ...], min_matches: int) -> DrawPropensity:
    count = len(matches)
    if count < min_matches:
        return DrawPropensity(draw_rate=0.0, is_reliable=False, match_count=count)
    draws = sum(1 for m in matches if m.result == "D")
    return DrawPropensity(draw_rate=draws / count, is_reliable=True, match_count=count)


class TeamHistoryIndex(TeamSignals):
    """TeamSignals backed by in-memory team histories."""

    def __init__(self, histories: Iterable[TeamHistory], fuzzy_cutoff: int = FUZZY_CUTOFF):
        self._histories: dict[str, TeamHistory] = {}
        for history in histories:
            self._histories[normalize_team_name(history.team_name)] = history
        self._keys = list(self._histories)
        self._fuzzy_cutoff = fuzzy_cutoff
        self._resolved: dict[str, Optional[str]] = {}
        self._form_cache: dict[tuple, TeamForm] = {}
        self._draw_cache: dict[tuple, DrawPropensity] = {}

    def __len__(self) -> int:
        return len(self._histories)

    def __contains__(self, team: str) -> bool:
        return self.resolve(team) is not None

    def resolve(self, team: str) -> Optional[str]:
        """History key for a slate team name, or None if nothing matches."""
        if team in self._resolved:
            return self._resolved[team]

        key = normalize_team_name(team)
        resolved: Optional[str] = None
        if key in self._histories:
            resolved = key
        elif self._keys:
            result = process.extractOne(
                key, self._keys, scorer=fuzz.ratio, score_cutoff=self._fuzzy_cutoff
            )
            if result:
                # result is a tuple: (matched_key, score, index)
                logger.warning(
                    "Fuzzy matched team '%s' to history '%s' (score %.0f)",
                    team, result[0], result[1],
                )
                resolved = result[0]
            else:
                logger.debug("No team history for '%s'", team)

        self._resolved[team] = resolved
        return resolved

    def history(self, team: str) -> Optional[TeamHistory]:
        key = self.resolve(team)
        return self._histories[key] if key is not None else None

    def form(self, team: str, is_home: bool, date: str, window: int = 12) -> TeamForm:
        key = self.resolve(team)
        if key is None:
            return NO_FORM
        cache_key = (key, is_home, date, window)
        cached = self._form_cache.get(cache_key)
        if cached is None:
            recent = self._histories[key].matches_before(date, window)
            cached = analyze_form(recent, is_home)
            self._form_cache[cache_key] = cached
        return cached

    def draw_propensity(
        self, team: str, date: str, window: int = 20, min_matches: int = 10
    ) -> DrawPropensity:
        key = self.resolve(team)
        if key is None:
            return NO_PROPENSITY
        cache_key = (key, date, window, min_matches)
        cached = self._draw_cache.get(cache_key)
        if cached is None:
            recent = self._histories[key].matches_before(date, window)
            cached = analyze_draw_propensity(recent, min_matches)
            self._draw_cache[cache_key] = cached
        return cached

    def recent_matches(self, team: str, date: str, window: int) -> tuple[TeamMatch, ...]:
        key = self.resolve(team)
        if key is None:
            return ()
        return self._histories[key].matches_before(date, window)
