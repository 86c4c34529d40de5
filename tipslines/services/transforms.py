"""
Strategy transforms: implied probabilities in, adjusted probabilities out.

Each transform is a ProbabilityTransform with a frozen parameter record.
Two families live here:

  Probability-space   linear, value_edge, team_blend, contrarian_value
  Odds-space          draw_bias, draw_propensity, outcome_bias, lock_favorite

Odds-space transforms rescale "working odds" and recompute probabilities
from them. Working odds are the published odds re-derived from the incoming
probabilities (same bookmaker margin), so they equal the published odds at
the start of a chain and still compose inside a CompositeTransform. Payouts
always use the published odds; nothing here changes them.

Transforms are looked up by name through TRANSFORMS / get_transform().
"""

import math
from dataclasses import dataclass
from typing import Any, Sequence

from tipslines.core.entities import TeamMatch
from tipslines.core.odds_math import (
    Triple,
    expected_values,
    favorite_index,
    normalize,
    shortest_odds_index,
)
from tipslines.core.strategy_interface import (
    IMPLIED,
    MatchContext,
    NoParams,
    ProbabilityTransform,
)
from tipslines.services.team_form import decayed_result_score, result_rate, venue_win_rate

# Odds given to the non-favourite outcomes by lock_favorite
LOCK_ODDS = 9999.0

OUTCOME_NAMES = {"home": 0, "draw": 1, "away": 2}


def _reweight(probs: Sequence[float], home: float, draw: float, away: float) -> list[float]:
    return [probs[0] * home, probs[1] * draw, probs[2] * away]


def working_odds(context: MatchContext) -> Triple:
    """Odds implied by the incoming probabilities, carrying the published margin."""
    margin = sum(1.0 / o for o in context.odds)
    a, b, c = (math.inf if p <= 0.0 else 1.0 / (p * margin) for p in context.probabilities)
    return (a, b, c)


def probabilities_from_odds(odds: Sequence[float]) -> Triple:
    return normalize(1.0 / o for o in odds)


# ---------------------------------------------------------------------------
# Linear reweighting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LinearParams:
    home_boost: float = 1.0
    draw_penalty: float = 1.0
    away_penalty: float = 1.0
    fav_weight: float = 0.0
    conf_boost: float = 0.0


class LinearTransform(ProbabilityTransform):
    """Fixed per-outcome scalars plus optional favourite / confidence amplification."""

    name = "linear"
    params_type = LinearParams

    def adjust(self, context: MatchContext, params: LinearParams) -> Triple:
        adj = _reweight(
            context.probabilities, params.home_boost, params.draw_penalty, params.away_penalty
        )
        if params.fav_weight > 0:
            adj[favorite_index(adj)] *= 1.0 + params.fav_weight
        if params.conf_boost > 0:
            fav = favorite_index(adj)
            share = adj[fav] / sum(adj)
            if share > 0.5:
                adj[fav] *= 1.0 + params.conf_boost * (share - 0.5)
        return normalize(adj)


# ---------------------------------------------------------------------------
# Value edge
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValueEdgeParams:
    strong_favorite_odds: float = 1.45
    trap_zone_min: float = 1.45
    trap_zone_max: float = 2.30
    trap_zone_value_threshold: float = 1.15
    home_boost_base: float = 2.0
    home_underdog_boost: float = 0.4
    draw_penalty: float = 0.30
    draw_high_odds_threshold: float = 4.0
    away_penalty: float = 0.75
    favorite_boost: float = 2.5
    strong_favorite_boost: float = 4.0
    trap_penalty: float = 0.8
    confidence_threshold: float = 0.55
    ev_threshold: float = 1.05
    ev_multiplier: float = 0.5


# Draw multiplier used instead of draw_penalty for long, positive-EV draws
_HIGH_VALUE_DRAW_PENALTY = 0.6


class ValueEdgeTransform(ProbabilityTransform):
    """
    Trust short favourites, distrust the 1.45-2.30 "trap zone", fade draws.

    The favourite is classified by its published odd:
      - strong (below strong_favorite_odds): boosted hard
      - trap zone: boosted only with enough EV, otherwise penalised
      - longer: boosted only if its adjusted share clears confidence_threshold
    Any outcome whose EV (probability x odd) clears ev_threshold gets a
    further proportional boost.
    """

    name = "value_edge"
    params_type = ValueEdgeParams

    def adjust(self, context: MatchContext, params: ValueEdgeParams) -> Triple:
        odds = context.odds
        ev = expected_values(context.probabilities, odds)
        adj = list(context.probabilities)

        adj[0] *= params.home_boost_base
        if odds[0] > min(odds[1], odds[2]):
            adj[0] *= 1.0 + params.home_underdog_boost

        if odds[1] >= params.draw_high_odds_threshold and ev[1] > 1.0:
            adj[1] *= _HIGH_VALUE_DRAW_PENALTY
        else:
            adj[1] *= params.draw_penalty

        adj[2] *= params.away_penalty

        fav = shortest_odds_index(odds)
        fav_odds = odds[fav]
        if fav_odds < params.strong_favorite_odds:
            adj[fav] *= params.strong_favorite_boost
        elif params.trap_zone_min <= fav_odds <= params.trap_zone_max:
            if ev[fav] >= params.trap_zone_value_threshold:
                adj[fav] *= params.favorite_boost
            else:
                adj[fav] *= params.trap_penalty
        else:
            top = favorite_index(adj)
            if adj[top] / sum(adj) > params.confidence_threshold:
                adj[top] *= params.favorite_boost

        for i in range(3):
            if ev[i] > params.ev_threshold:
                adj[i] *= 1.0 + (ev[i] - 1.0) * params.ev_multiplier

        return normalize(adj)


# ---------------------------------------------------------------------------
# Team-form blend
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TeamBlendParams:
    form_weight: float = 0.3
    venue_weight: float = 0.4
    momentum_weight: float = 0.1
    streak_bonus: float = 0.04
    home_boost: float = 1.3
    draw_penalty: float = 0.7
    away_penalty: float = 0.9
    blend_factor: float = 0.35
    match_window: int = 12


# Streaks shorter than this carry no bonus
MIN_STREAK = 2


class TeamBlendTransform(ProbabilityTransform):
    """
    Blend a form-based estimate with the incoming probabilities.

    The team estimate starts from a 0.35 / 0.30 home / away baseline shifted
    by the form-score difference, mixed with each team's venue win rate,
    nudged by momentum and W/L streaks, then clamped. Matches where neither
    team has enough history only get the static linear reweighting.
    """

    name = "team_blend"
    params_type = TeamBlendParams

    def adjust(self, context: MatchContext, params: TeamBlendParams) -> Triple:
        probs = context.probabilities
        if context.has_teams:
            home = context.signals.form(context.home_team, True, context.date, params.match_window)
            away = context.signals.form(context.away_team, False, context.date, params.match_window)
        else:
            home = away = None

        if home is None or not (home.has_data or away.has_data):
            return normalize(
                _reweight(probs, params.home_boost, params.draw_penalty, params.away_penalty)
            )

        form_diff = (home.form_score - away.form_score) / 100.0
        home_p = 0.35 + form_diff * params.form_weight
        away_p = 0.30 - form_diff * params.form_weight

        if home.has_data:
            home_p = home_p * (1 - params.venue_weight) + home.venue_win_rate * params.venue_weight
        if away.has_data:
            away_p = away_p * (1 - params.venue_weight) + away.venue_win_rate * params.venue_weight

        home_p += home.momentum * params.momentum_weight
        away_p += away.momentum * params.momentum_weight

        home_p += _streak_shift(home.streak_type, home.streak_length, params.streak_bonus)
        away_p += _streak_shift(away.streak_type, away.streak_length, params.streak_bonus)

        home_p = max(0.08, min(0.85, home_p))
        away_p = max(0.05, min(0.75, away_p))
        draw_p = max(0.1, 1.0 - home_p - away_p)

        bf = params.blend_factor
        blended = [
            home_p * bf + probs[0] * (1 - bf),
            draw_p * bf + probs[1] * (1 - bf),
            away_p * bf + probs[2] * (1 - bf),
        ]
        return normalize(
            _reweight(blended, params.home_boost, params.draw_penalty, params.away_penalty)
        )


def _streak_shift(streak_type: Any, length: int, bonus: float) -> float:
    if length < MIN_STREAK:
        return 0.0
    if streak_type == "W":
        return length * bonus
    if streak_type == "L":
        return -length * bonus
    return 0.0


# ---------------------------------------------------------------------------
# Contrarian value
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContrarianValueParams:
    min_edge_for_boost: float = 0.003
    edge_multiplier: float = 12.0
    home_base_boost: float = 1.7
    draw_base_penalty: float = 0.35
    away_base_penalty: float = 0.9
    draw_pattern_threshold: float = 0.03
    draw_pattern_multiplier: float = 7.0
    min_draw_odds_for_boost: float = 2.4
    min_away_odds_for_value: float = 1.4
    regression_factor: float = 0.35


# Longest history window any contrarian signal reads
LONG_WINDOW = 50
# League averages for teams with too little history
LEAGUE_HOME_WIN_RATE = 0.46
LEAGUE_AWAY_WIN_RATE = 0.28
LEAGUE_DRAW_RATE = 0.28
MAX_DRAW_PATTERN = 0.30
# Negative home edges only damp the home side
_NEGATIVE_EDGE_DAMPING = 0.5


def regressed_form(matches: tuple[TeamMatch, ...], regression_factor: float) -> float:
    """Form over the last 8 matches pulled toward the long-run win rate."""
    recent = decayed_result_score(matches[:8])
    long_run = result_rate(matches[:LONG_WINDOW], "W", min_matches=10, default=0.5)
    return recent * (1.0 - regression_factor) + long_run * regression_factor


def team_estimate(
    home: tuple[TeamMatch, ...], away: tuple[TeamMatch, ...], regression_factor: float
) -> Triple:
    """
    Our own (home, draw, away) estimate from the two teams' histories.

    Win chances mix regressed form (40%) with the venue win rate (60%). The
    draw chance is the mean draw rate, plus 0.08 when the two forms are
    within 0.15 of each other or 0.03 within 0.25.
    """
    home_form = regressed_form(home, regression_factor)
    away_form = regressed_form(away, regression_factor)
    est_home = home_form * 0.4 + venue_win_rate(home[:15], True, LEAGUE_HOME_WIN_RATE) * 0.6
    est_away = away_form * 0.4 + venue_win_rate(away[:15], False, LEAGUE_AWAY_WIN_RATE) * 0.6

    est_draw = (
        result_rate(home[:20], "D", 5, LEAGUE_DRAW_RATE)
        + result_rate(away[:20], "D", 5, LEAGUE_DRAW_RATE)
    ) / 2.0
    form_gap = abs(home_form - away_form)
    if form_gap < 0.15:
        est_draw += 0.08
    elif form_gap < 0.25:
        est_draw += 0.03
    return normalize((est_home, est_draw, est_away))


def draw_pattern_signal(
    home: tuple[TeamMatch, ...], away: tuple[TeamMatch, ...], draw_odd: float
) -> float:
    """Draw signal in [0, 0.30], summed over four draw patterns."""
    signal = 0.0
    home_rate = result_rate(home[:12], "D", 5, LEAGUE_DRAW_RATE)
    away_rate = result_rate(away[:12], "D", 5, LEAGUE_DRAW_RATE)
    if home_rate > 0.30 and away_rate > 0.30:
        signal += 0.12
    elif home_rate > 0.28 and away_rate > 0.28:
        signal += 0.06

    form_gap = abs(decayed_result_score(home[:6]) - decayed_result_score(away[:6]))
    if form_gap < 0.10:
        signal += 0.08
    elif form_gap < 0.18:
        signal += 0.04

    if draw_odd >= 3.6:
        signal += 0.06
    elif draw_odd >= 3.4:
        signal += 0.03

    home_draws = sum(1 for m in home[:4] if m.result == "D")
    away_draws = sum(1 for m in away[:4] if m.result == "D")
    if home_draws >= 2 and away_draws >= 2:
        signal += 0.10
    elif home_draws >= 1 and away_draws >= 1:
        signal += 0.04

    return min(signal, MAX_DRAW_PATTERN)


class ContrarianValueTransform(ProbabilityTransform):
    """
    Back outcomes where the teams' own record disagrees with the price.

    The incoming probabilities get a static home / draw / away reweighting.
    Each outcome whose team-based estimate beats its incoming probability
    by more than min_edge_for_boost is then boosted in proportion to the
    edge (draws and away wins only at long enough odds). A negative home
    edge damps the home side. A strong draw pattern boosts the draw again.
    Teams without history fall back to league averages; a match without
    team names is left unchanged.
    """

    name = "contrarian_value"
    params_type = ContrarianValueParams

    def adjust(self, context: MatchContext, params: ContrarianValueParams) -> Triple:
        if not context.has_teams:
            return context.probabilities

        signals = context.signals
        home = signals.recent_matches(context.home_team, context.date, LONG_WINDOW)
        away = signals.recent_matches(context.away_team, context.date, LONG_WINDOW)
        probs, odds = context.probabilities, context.odds

        estimate = team_estimate(home, away, params.regression_factor)
        home_edge, draw_edge, away_edge = (e - p for e, p in zip(estimate, probs))
        adj = _reweight(
            probs, params.home_base_boost, params.draw_base_penalty, params.away_base_penalty
        )

        threshold = params.min_edge_for_boost
        long_draw = odds[1] >= params.min_draw_odds_for_boost
        if home_edge > threshold:
            adj[0] *= 1.0 + home_edge * params.edge_multiplier
        elif home_edge < -threshold:
            adj[0] *= 1.0 + home_edge * _NEGATIVE_EDGE_DAMPING
        if draw_edge > threshold and long_draw:
            adj[1] *= 1.0 + draw_edge * params.edge_multiplier
        if away_edge > threshold and odds[2] >= params.min_away_odds_for_value:
            adj[2] *= 1.0 + away_edge * params.edge_multiplier

        pattern = draw_pattern_signal(home, away, odds[1])
        if pattern >= params.draw_pattern_threshold and long_draw:
            adj[1] *= 1.0 + pattern * params.draw_pattern_multiplier

        return normalize(adj)


# ---------------------------------------------------------------------------
# Odds-space transforms
# ---------------------------------------------------------------------------


# Slack for odds rebuilt from probabilities in floating point
_ODDS_EPSILON = 1e-9


@dataclass(frozen=True)
class DrawBiasParams:
    draw_bias: float = 0.15
    even_match_threshold: float = math.inf


class DrawBiasTransform(ProbabilityTransform):
    """
    Shorten the draw odd by draw_bias when the match is evenly priced.

    The spread is measured on working odds, which can sit an ulp away from
    the published prices, so the threshold comparison allows for that.
    """

    name = "draw_bias"
    params_type = DrawBiasParams

    def adjust(self, context: MatchContext, params: DrawBiasParams) -> Triple:
        home, draw, away = working_odds(context)
        spread = max(home, draw, away) - min(home, draw, away)
        if spread <= params.even_match_threshold + _ODDS_EPSILON:
            draw *= 1.0 - params.draw_bias
        return probabilities_from_odds((home, draw, away))


@dataclass(frozen=True)
class DrawPropensityParams:
    draw_bias_factor: float = 1.5
    min_matches_required: int = 10
    match_window: int = 20
    baseline_draw_rate: float = 0.25


class DrawPropensityTransform(ProbabilityTransform):
    """
    Move the draw odd by how far the two teams' draw rates sit from baseline.

    Only reliable teams (enough history) count. A draw-prone pair shortens
    the draw (multiplier floored at 0.5); a draw-shy pair lengthens it
    (capped at 1.5), but only when both teams are reliable. The probability
    mass moved onto or off the draw is taken from home and away in
    proportion to their own share.
    """

    name = "draw_propensity"
    params_type = DrawPropensityParams

    def adjust(self, context: MatchContext, params: DrawPropensityParams) -> Triple:
        if not context.has_teams:
            return context.probabilities

        signals = context.signals
        home_dp = signals.draw_propensity(
            context.home_team, context.date, params.match_window, params.min_matches_required
        )
        away_dp = signals.draw_propensity(
            context.away_team, context.date, params.match_window, params.min_matches_required
        )
        if not (home_dp.is_reliable or away_dp.is_reliable):
            return context.probabilities

        baseline = params.baseline_draw_rate
        home_rate = home_dp.draw_rate if home_dp.is_reliable else baseline
        away_rate = away_dp.draw_rate if away_dp.is_reliable else baseline
        deviation = (home_rate + away_rate) / 2.0 - baseline
        strength = deviation * params.draw_bias_factor

        multiplier = 1.0
        if deviation > 0:
            multiplier = max(0.5, 1.0 - strength)
        elif deviation < 0 and home_dp.is_reliable and away_dp.is_reliable:
            multiplier = min(1.5, 1.0 - strength)
        if multiplier == 1.0:
            return context.probabilities

        home_odd, draw_odd, away_odd = working_odds(context)
        new_draw_odd = draw_odd * multiplier
        shift = 1.0 / new_draw_odd - 1.0 / draw_odd

        home_ip, away_ip = 1.0 / home_odd, 1.0 / away_odd
        side_total = home_ip + away_ip
        new_home_ip = max(0.05, home_ip - shift * home_ip / side_total)
        new_away_ip = max(0.05, away_ip - shift * away_ip / side_total)

        return probabilities_from_odds((1.0 / new_home_ip, new_draw_odd, 1.0 / new_away_ip))


@dataclass(frozen=True)
class OutcomeBiasParams:
    outcome: str = "draw"
    bias: float = 0.1

    def __post_init__(self) -> None:
        if self.outcome not in OUTCOME_NAMES:
            raise ValueError(
                f"Unknown outcome {self.outcome!r}; expected one of {sorted(OUTCOME_NAMES)}."
            )


class OutcomeBiasTransform(ProbabilityTransform):
    """Shorten one outcome's odd by ``bias`` in every match."""

    name = "outcome_bias"
    params_type = OutcomeBiasParams

    def adjust(self, context: MatchContext, params: OutcomeBiasParams) -> Triple:
        odds = list(working_odds(context))
        odds[OUTCOME_NAMES[params.outcome]] *= 1.0 - params.bias
        return probabilities_from_odds(odds)


@dataclass(frozen=True)
class LockFavoriteParams:
    threshold: float = 1.25


class LockFavoriteTransform(ProbabilityTransform):
    """Price the other two outcomes out when one odd is below ``threshold``."""

    name = "lock_favorite"
    params_type = LockFavoriteParams

    def adjust(self, context: MatchContext, params: LockFavoriteParams) -> Triple:
        odds = working_odds(context)
        for i, odd in enumerate(odds):
            if odd < params.threshold:
                locked = [LOCK_ODDS] * 3
                locked[i] = odd
                return probabilities_from_odds(locked)
        return context.probabilities


# ---------------------------------------------------------------------------
# Composition and registry
# ---------------------------------------------------------------------------


class CompositeTransform(ProbabilityTransform):
    """
    Apply several transforms in sequence.

    Each step receives the previous step's output as its base
    probabilities. Params for a composite are a tuple holding one params
    record per step, in order.
    """

    name = "composite"
    params_type = NoParams

    def __init__(self, steps: Sequence[ProbabilityTransform]):
        if not steps:
            raise ValueError("CompositeTransform needs at least one step.")
        self.steps = tuple(steps)

    def default_params(self) -> tuple:
        return tuple(step.default_params() for step in self.steps)

    def make_params(self, **overrides: Any) -> tuple:
        """Overrides are keyed ``"<step name>.<field>"``, e.g. ``"linear.home_boost"``."""
        per_step: dict[str, dict[str, Any]] = {step.name: {} for step in self.steps}
        for key, value in overrides.items():
            step_name, _, field_name = key.partition(".")
            if step_name not in per_step or not field_name:
                raise ValueError(
                    f"Composite parameter {key!r} must be '<step>.<field>' with step "
                    f"one of {list(per_step)}."
                )
            per_step[step_name][field_name] = value
        return tuple(step.make_params(**per_step[step.name]) for step in self.steps)

    def adjust(self, context: MatchContext, params: Sequence[Any]) -> Triple:
        if len(params) != len(self.steps):
            raise ValueError(
                f"Composite of {len(self.steps)} steps got {len(params)} params records."
            )
        for step, step_params in zip(self.steps, params):
            context = context.with_probabilities(step.adjust(context, step_params))
        return context.probabilities

    def __repr__(self) -> str:
        return f"CompositeTransform(steps={[s.name for s in self.steps]!r})"


TRANSFORMS: dict[str, ProbabilityTransform] = {
    t.name: t
    for t in (
        IMPLIED,
        LinearTransform(),
        ValueEdgeTransform(),
        TeamBlendTransform(),
        ContrarianValueTransform(),
        DrawBiasTransform(),
        DrawPropensityTransform(),
        OutcomeBiasTransform(),
        LockFavoriteTransform(),
    )
}


def get_transform(name: str) -> ProbabilityTransform:
    """Registered transform by name; raises KeyError listing the valid names."""
    try:
        return TRANSFORMS[name]
    except KeyError:
        raise KeyError(
            f"Unknown transform {name!r}; expected one of {sorted(TRANSFORMS)}."
        ) from None
