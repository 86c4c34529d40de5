"""
Bet-set generator: turns nine adjusted probability triples into a set of
distinct 9-outcome bets for one round.

The first bet is always the favourite bet (argmax at every position). The
rest are inverse-CDF samples from a date-seeded stream, optionally with a
bounded number of forced upsets per bet. Duplicates are discarded. The
sampling budget is finite, so a round can come back with fewer bets than
requested; that is a normal outcome and is reported on the BetSet.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from tipslines.core.grid import AWAY, DRAW, HOME, OUTCOMES, GridSelection
from tipslines.core.grid_config import GridConfig
from tipslines.core.odds_math import favorite_index

logger = logging.getLogger(__name__)

_STANDARD = GridConfig.standard()


@dataclass(frozen=True, slots=True)
class Bet:
    """One prediction per grid position, in grid order."""

    predictions: tuple[str, ...]

    @property
    def key(self) -> str:
        return ",".join(self.predictions)


@dataclass(frozen=True)
class BetSet:
    """Distinct bets for one round, plus the grid they were generated for."""

    date: str
    selection: GridSelection
    bets: tuple[Bet, ...]
    target_count: int

    def __len__(self) -> int:
        return len(self.bets)

    @property
    def is_underfilled(self) -> bool:
        return len(self.bets) < self.target_count


@dataclass(frozen=True)
class UpsetPolicy:
    """
    Forced-upset sampling.

    Once more than ``min_bets_before`` bets are accepted, each candidate is
    upset-enabled with probability ``activation_chance``. In an enabled
    candidate each position is forced to a non-favourite outcome with
    probability ``chance``, at most ``max_per_bet`` times.
    """

    chance: float = 0.12
    max_per_bet: int = 2
    activation_chance: float = 0.3
    min_bets_before: int = 5


def favorite_bet(probabilities: Sequence[Sequence[float]]) -> Bet:
    """Argmax per position; ties go home, then draw, then away."""
    return Bet(tuple(OUTCOMES[favorite_index(p)] for p in probabilities))


def _pick(probs: Sequence[float], r: float) -> str:
    if r < probs[0]:
        return HOME
    if r < probs[0] + probs[1]:
        return DRAW
    return AWAY


def _pick_upset(probs: Sequence[float], r: float) -> str:
    fav = favorite_index(probs)
    others = [0.0 if i == fav else p for i, p in enumerate(probs)]
    total = sum(others)
    if total <= 0.0:
        # the favourite holds all the mass, so there is no upset to take
        return OUTCOMES[fav]
    return _pick([p / total for p in others], r)


def sample_bet(
    probabilities: Sequence[Sequence[float]],
    stream: Callable[[], float],
    upsets: Optional[UpsetPolicy] = None,
) -> Bet:
    """
    Draw one bet.

    Per position: when upsets are active and the cap is not reached, one
    draw decides whether to force an upset; then one draw picks the outcome,
    among non-favourites for an upset or from the full triple otherwise.
    """
    taken = 0
    predictions = []
    for probs in probabilities:
        if upsets is not None and taken < upsets.max_per_bet and stream() < upsets.chance:
            taken += 1
            predictions.append(_pick_upset(probs, stream()))
        else:
            predictions.append(_pick(probs, stream()))
    return Bet(tuple(predictions))


def generate_bet_set(
    probabilities: Sequence[Sequence[float]],
    selection: GridSelection,
    date: str,
    *,
    target_count: int = _STANDARD.default_bet_count,
    stream: Callable[[], float],
    attempt_multiplier: int = _STANDARD.attempt_multiplier,
    upsets: Optional[UpsetPolicy] = None,
) -> BetSet:
    """
    Generate up to ``target_count`` distinct bets for one round.

    Args:
        probabilities: Adjusted triples in grid order (one per position).
        selection: Grid selection the triples were laid out by.
        date: Round date, carried onto the BetSet.
        target_count: Number of distinct bets wanted.
        stream: Seeded uniform stream in ``[0, 1)``.
        attempt_multiplier: Sampling budget is ``target_count * attempt_multiplier``
            candidates after the favourite bet.
        upsets: Optional forced-upset policy.

    Returns:
        BetSet whose bets are distinct; may hold fewer than ``target_count``.
    """
    if len(probabilities) != len(selection):
        raise ValueError(
            f"{len(probabilities)} probability triples for a grid of {len(selection)}."
        )

    bets: list[Bet] = []
    seen: set[str] = set()
    if target_count > 0:
        fav = favorite_bet(probabilities)
        bets.append(fav)
        seen.add(fav.key)

    budget = target_count * attempt_multiplier
    attempts = 0
    while len(bets) < target_count and attempts < budget:
        attempts += 1
        active = None
        if upsets is not None and len(bets) > upsets.min_bets_before:
            if stream() < upsets.activation_chance:
                active = upsets
        bet = sample_bet(probabilities, stream, active)
        if bet.key not in seen:
            seen.add(bet.key)
            bets.append(bet)

    if len(bets) < target_count:
        logger.debug(
            "Round %s under-filled: %d/%d bets after %d attempts",
            date, len(bets), target_count, attempts,
        )

    return BetSet(date=date, selection=selection, bets=tuple(bets), target_count=target_count)
