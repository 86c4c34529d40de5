"""Dependency-injection interfaces for swappable probability transforms.

This module defines the contract that **every** strategy transform must
satisfy.  The bet generator and the evaluator never know which transform
produced the probabilities they consume; the backtest engine accepts a
``ProbabilityTransform`` at construction time.  This enables:

* **Grid search**: the optimizer varies a transform's parameters without
  touching generation or scoring code.
* **Composition**: transforms can be chained (see
  ``tipslines.services.transforms.CompositeTransform``).
* **Unit testing**: tests call :meth:`ProbabilityTransform.adjust` on a
  single hand-built :class:`MatchContext`.

Design choices
--------------
* :class:`ProbabilityTransform` is an ABC so the engine can reject
  non-transforms with ``isinstance`` and transform authors inherit
  :meth:`make_params` / :meth:`adjust_round`.
* External team-form data reaches a transform only through the
  :class:`TeamSignals` interface.  A provider with no data for a team
  returns the *no-data* defaults of :class:`TeamForm` /
  :class:`DrawPropensity`; transforms treat that as "no adjustment",
  never as an error.
* Transforms return probabilities only.  Odds adjusted inside a transform
  exist to derive probabilities; payouts are always computed from the
  round's published odds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from tipslines.core.odds_math import Triple, match_odds

if TYPE_CHECKING:
    from tipslines.core.entities import Round, TeamMatch


# ---------------------------------------------------------------------------
# External team signals
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TeamForm:
    """Recent form of one team as of a date, at one venue.

    Attributes:
        form_score: Recency-weighted points share in ``[0, 100]``; 50 when
            unknown.
        venue_win_rate: Win rate at the requested venue (home or away).
        venue_draw_rate: Draw rate at the requested venue.
        momentum: Points of the last 3 matches minus the 3 before, divided
            by 9.  In ``[-1, 1]``; 0 when fewer than 6 matches.
        streak_type: ``"W"``, ``"D"``, ``"L"`` or ``None``.
        streak_length: Length of the current streak.
        has_data: True when enough matches exist to trust the figures.
    """

    form_score: float = 50.0
    venue_win_rate: float = 0.33
    venue_draw_rate: float = 0.33
    momentum: float = 0.0
    streak_type: Optional[str] = None
    streak_length: int = 0
    has_data: bool = False


@dataclass(frozen=True, slots=True)
class DrawPropensity:
    """A team's historical draw rate as of a date."""

    draw_rate: float = 0.0
    is_reliable: bool = False
    match_count: int = 0


NO_FORM = TeamForm()
NO_PROPENSITY = DrawPropensity()


class TeamSignals(ABC):
    """Read-only provider of per-team historical signals."""

    @abstractmethod
    def form(self, team: str, is_home: bool, date: str, window: int = 12) -> TeamForm:
        """Form of ``team`` from matches strictly before ``date``."""

    @abstractmethod
    def draw_propensity(
        self, team: str, date: str, window: int = 20, min_matches: int = 10
    ) -> DrawPropensity:
        """Draw rate of ``team`` over its last ``window`` matches before ``date``."""

    def recent_matches(self, team: str, date: str, window: int) -> tuple[TeamMatch, ...]:
        """Up to ``window`` matches of ``team`` strictly before ``date``, most recent first.

        Providers without per-match records return an empty tuple.
        """
        return ()


class _NullSignals(TeamSignals):
    """Signal provider with no data for any team."""

    def form(self, team: str, is_home: bool, date: str, window: int = 12) -> TeamForm:
        return NO_FORM

    def draw_propensity(
        self, team: str, date: str, window: int = 20, min_matches: int = 10
    ) -> DrawPropensity:
        return NO_PROPENSITY


#: Shared provider used when no team history is loaded.
NULL_SIGNALS: TeamSignals = _NullSignals()


# ---------------------------------------------------------------------------
# Match context
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MatchContext:
    """Everything a transform may look at for one match.

    Attributes:
        probabilities: Base (implied or previously adjusted) probabilities.
        odds: Published ``(home, draw, away)`` decimal odds.
        date: Round date; external signals are read strictly before it.
        home_team: Home team name, or ``None`` when the round has no teams.
        away_team: Away team name, or ``None``.
        signals: External team-signal provider.
    """

    probabilities: Triple
    odds: Triple
    date: str = ""
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    signals: TeamSignals = NULL_SIGNALS

    @property
    def has_teams(self) -> bool:
        return self.home_team is not None and self.away_team is not None

    def with_probabilities(self, probabilities: Triple) -> MatchContext:
        return replace(self, probabilities=probabilities)


# ---------------------------------------------------------------------------
# Abstract transform
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoParams:
    """Parameter record for transforms without tunable parameters."""


class ProbabilityTransform(ABC):
    """Contract for a strategy transform.

    Subclasses set :attr:`name` and :attr:`params_type` and implement
    :meth:`adjust`.  ``adjust`` must be pure: the same context and
    parameters always give the same triple, and the result is a
    normalised distribution.

    Example implementation::

        class HomeOnlyTransform(ProbabilityTransform):
            name = "home_only"
            params_type = HomeOnlyParams

            def adjust(self, context, params):
                p = context.probabilities
                return normalize((p[0] * params.boost, p[1], p[2]))
    """

    #: Registry key.  Must be overridden by subclasses.
    name: ClassVar[str] = "base"

    #: Frozen dataclass holding this transform's parameters.
    params_type: ClassVar[type] = NoParams

    @abstractmethod
    def adjust(self, context: MatchContext, params: Any) -> Triple:
        """Return the adjusted, normalised probability triple for one match."""

    def default_params(self) -> Any:
        return self.params_type()

    def make_params(self, **overrides: Any) -> Any:
        """Build a parameter record from defaults plus ``overrides``.

        Raises:
            ValueError: If an override names a field the parameter record
                does not have.
        """
        known = {f.name for f in fields(self.params_type)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(
                f"Unknown parameter(s) {unknown} for transform {self.name!r}; "
                f"valid names: {sorted(known)}."
            )
        return replace(self.default_params(), **overrides)

    def adjust_round(
        self,
        round_: Round,
        params: Any,
        signals: TeamSignals = NULL_SIGNALS,
    ) -> list[Triple]:
        """Apply :meth:`adjust` to every match of ``round_``, in slate order."""
        adjusted = []
        for i, probs in enumerate(round_.probabilities):
            pair = round_.team_pair(i)
            context = MatchContext(
                probabilities=probs,
                odds=match_odds(round_.odds, i),
                date=round_.date,
                home_team=pair[0] if pair else None,
                away_team=pair[1] if pair else None,
                signals=signals,
            )
            adjusted.append(self.adjust(context, params))
        return adjusted

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class _ImpliedTransform(ProbabilityTransform):
    """Returns the base probabilities untouched.  The random baseline."""

    name = "implied"
    params_type = NoParams

    def adjust(self, context: MatchContext, params: Any) -> Triple:
        return context.probabilities


#: Singleton identity transform.
IMPLIED: ProbabilityTransform = _ImpliedTransform()
