"""Round and team-history entities, plus record parsing at the load boundary.

Loading the historical dataset is an all-or-nothing precondition: any
malformed record raises :class:`RoundDataError` and aborts the run.  Once
constructed, every entity here is frozen and shared read-only by all
backtest trials.

Record shapes
-------------
Round record (one per betting date)::

    {
        "odds":   [h0, d0, a0, h1, d1, a1, ...],      # 3 per match
        "result": "0120..." or ["0", "1", "2", ...],   # optional
        "teams":  [{"1": "Arsenal", "2": "Chelsea"}, ...]  # optional
    }

Team-history record (one per team, matches most-recent-first)::

    {
        "teamName": "Arsenal",
        "matches": [
            {"date": "2024-03-09", "opponent": "Brentford", "isHome": true,
             "result": "W", "goalsFor": 2, "goalsAgainst": 1},
            ...
        ]
    }
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from tipslines.core.odds_math import Triple, implied_probabilities, validate_odds

_DATE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})")

_TEAM_RESULTS = frozenset({"W", "L", "D"})


class RoundDataError(ValueError):
    """Raised when a round or team-history record cannot be loaded."""


def extract_date(identifier: str) -> str:
    """Extract a ``YYYY-MM-DD`` date from a record identifier.

    Falls back to the identifier itself (minus a ``.json`` suffix) when no
    date pattern is present.
    """
    match = _DATE_PATTERN.search(identifier)
    if match:
        return match.group(1)
    return identifier[:-5] if identifier.endswith(".json") else identifier


# ---------------------------------------------------------------------------
# Rounds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Round:
    """One historical betting date.

    ``probabilities`` is derived from ``odds`` at construction and is never
    set independently.
    """

    date: str
    odds: tuple[float, ...]
    result: Optional[tuple[str, ...]] = None
    teams: Optional[tuple[tuple[str, str], ...]] = None
    probabilities: tuple[Triple, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            validate_odds(self.odds)
        except ValueError as exc:
            raise RoundDataError(f"Round {self.date}: {exc}") from exc

        n = len(self.odds) // 3
        if self.result is not None and len(self.result) != n:
            raise RoundDataError(
                f"Round {self.date}: {len(self.result)} results for {n} matches."
            )
        if self.teams is not None and len(self.teams) != n:
            raise RoundDataError(
                f"Round {self.date}: {len(self.teams)} team pairs for {n} matches."
            )
        object.__setattr__(self, "probabilities", tuple(implied_probabilities(self.odds)))

    @property
    def match_count(self) -> int:
        return len(self.odds) // 3

    @property
    def is_settled(self) -> bool:
        return self.result is not None

    def team_pair(self, match_index: int) -> Optional[tuple[str, str]]:
        if self.teams is None:
            return None
        return self.teams[match_index]

    @classmethod
    def from_record(cls, identifier: str, record: Mapping[str, Any]) -> Round:
        """Build a round from a raw record.

        Args:
            identifier: Source identifier (e.g. file name); the round date is
                extracted from it via :func:`extract_date`.
            record: Mapping with ``odds`` and optional ``result`` / ``teams``.

        Raises:
            RoundDataError: On any missing or malformed field.
        """
        if not isinstance(record, Mapping):
            raise RoundDataError(f"{identifier}: record is not a mapping.")
        odds = record.get("odds")
        if not isinstance(odds, Sequence) or isinstance(odds, str):
            raise RoundDataError(f"{identifier}: 'odds' must be a list of numbers.")

        result = record.get("result")
        if result is not None:
            if isinstance(result, str):
                result = tuple(result)
            elif isinstance(result, Sequence):
                result = tuple(str(code) for code in result)
            else:
                raise RoundDataError(f"{identifier}: 'result' must be a string or list.")

        teams = record.get("teams")
        if teams is not None:
            teams = tuple(_parse_team_pair(identifier, pair) for pair in teams)

        return cls(
            date=extract_date(identifier),
            odds=tuple(odds),
            result=result,
            teams=teams,
        )


def _parse_team_pair(identifier: str, pair: Any) -> tuple[str, str]:
    if isinstance(pair, Mapping):
        home = pair.get("1", pair.get("home"))
        away = pair.get("2", pair.get("away"))
    elif isinstance(pair, Sequence) and not isinstance(pair, str) and len(pair) == 2:
        home, away = pair
    else:
        home = away = None
    if not isinstance(home, str) or not isinstance(away, str):
        raise RoundDataError(f"{identifier}: malformed team pair {pair!r}.")
    return (home, away)


def rounds_from_records(records: Mapping[str, Mapping[str, Any]]) -> list[Round]:
    """Parse a mapping of ``identifier → record`` into date-sorted rounds.

    Raises:
        RoundDataError: If any record is malformed, or two records resolve to
            the same date.
    """
    rounds = [Round.from_record(identifier, rec) for identifier, rec in records.items()]
    rounds.sort(key=lambda r: r.date)
    seen: set[str] = set()
    for r in rounds:
        if r.date in seen:
            raise RoundDataError(f"Duplicate round date {r.date}.")
        seen.add(r.date)
    return rounds


# ---------------------------------------------------------------------------
# Team history
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TeamMatch:
    """One past match from a single team's perspective."""

    date: str
    opponent: str
    is_home: bool
    result: str
    goals_for: int = 0
    goals_against: int = 0

    @property
    def points(self) -> int:
        return 3 if self.result == "W" else 1 if self.result == "D" else 0


@dataclass(frozen=True)
class TeamHistory:
    """A team's matches, ordered most-recent-first."""

    team_name: str
    matches: tuple[TeamMatch, ...] = ()

    def matches_before(self, date: str, count: int) -> tuple[TeamMatch, ...]:
        """Up to ``count`` most recent matches strictly before ``date``."""
        found = []
        for m in self.matches:
            if m.date < date:
                found.append(m)
                if len(found) >= count:
                    break
        return tuple(found)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> TeamHistory:
        """Build a team history from a raw record.

        Raises:
            RoundDataError: On a missing name or a malformed match entry.
        """
        name = record.get("teamName") or record.get("team_name")
        if not isinstance(name, str) or not name:
            raise RoundDataError(f"Team record without a name: {record!r:.80}")

        matches = []
        for raw in record.get("matches") or ():
            try:
                match = TeamMatch(
                    date=str(raw["date"]),
                    opponent=str(raw.get("opponent", "")),
                    is_home=bool(raw.get("isHome", raw.get("is_home"))),
                    result=str(raw["result"]),
                    goals_for=int(raw.get("goalsFor", raw.get("goals_for", 0))),
                    goals_against=int(raw.get("goalsAgainst", raw.get("goals_against", 0))),
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise RoundDataError(f"Team {name}: malformed match {raw!r}") from exc
            if match.result not in _TEAM_RESULTS:
                raise RoundDataError(
                    f"Team {name}: result {match.result!r} is not one of W/L/D."
                )
            matches.append(match)

        matches.sort(key=lambda m: m.date, reverse=True)
        return cls(team_name=name, matches=tuple(matches))
