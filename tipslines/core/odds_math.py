"""Fundamental odds mathematics: the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The pillars exposed are:

1. **Implied probability**: normalised reciprocals of a decimal-odds
   triple ``(home, draw, away)``.
2. **Normalisation**: rescaling an adjusted triple back to a probability
   distribution.
3. **Expected value**: ``probability × odds`` per outcome.

Design decisions
----------------
* Odds are decimal (European) odds because the pool operator publishes
  them that way.  A flat slate is stored as ``[h0, d0, a0, h1, d1, a1, ...]``.
* Implied probabilities use proportional normalisation.  Three-way markets
  have no closed-form Shin solution worth the cost inside a search that
  evaluates hundreds of thousands of rounds.
* Zero or non-finite odds are rejected by :func:`validate_odds` at the load
  boundary.  The arithmetic helpers below assume validated input.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final, Iterable, Sequence

Triple = tuple[float, float, float]

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Number of odds per match (home, draw, away).
OUTCOMES_PER_MATCH: Final[int] = 3

#: Tolerance used when checking that a triple sums to one.
PROBABILITY_SUM_TOL: Final[float] = 1e-9


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_odds(odds: Sequence[float]) -> None:
    """Check that a flat odds slate can be turned into probabilities.

    Args:
        odds: Flat sequence of decimal odds, three per match.

    Raises:
        ValueError: If the length is not a positive multiple of 3, or any
            value is non-numeric, non-finite, or ``<= 0``.
    """
    if len(odds) == 0 or len(odds) % OUTCOMES_PER_MATCH:
        raise ValueError(
            f"Odds slate length {len(odds)} is not a positive multiple of "
            f"{OUTCOMES_PER_MATCH}."
        )
    for i, value in enumerate(odds):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Odds value at index {i} is not a number: {value!r}.")
        if not math.isfinite(value) or value <= 0:
            raise ValueError(
                f"Odds value at index {i} must be finite and > 0, got {value!r}."
            )


# ---------------------------------------------------------------------------
# Probability conversion
# ---------------------------------------------------------------------------


def probability_triple(home: float, draw: float, away: float) -> Triple:
    """Implied probability triple for one match.

    Examples::

        probability_triple(2.0, 3.0, 4.0) → (0.4615, 0.3077, 0.2308)
    """
    raw = (1.0 / home, 1.0 / draw, 1.0 / away)
    total = raw[0] + raw[1] + raw[2]
    return (raw[0] / total, raw[1] / total, raw[2] / total)


def implied_probabilities(odds: Sequence[float]) -> list[Triple]:
    """Implied probability triples for a flat odds slate.

    Args:
        odds: Flat decimal odds, ``[home, draw, away]`` per match.

    Returns:
        One normalised triple per match, in slate order.
    """
    return [
        probability_triple(odds[i], odds[i + 1], odds[i + 2])
        for i in range(0, len(odds) - len(odds) % OUTCOMES_PER_MATCH, OUTCOMES_PER_MATCH)
    ]


def match_odds(odds: Sequence[float], match_index: int) -> Triple:
    """Return the ``(home, draw, away)`` odds of one match from a flat slate."""
    start = match_index * OUTCOMES_PER_MATCH
    return (odds[start], odds[start + 1], odds[start + 2])


def normalize(values: Iterable[float]) -> Triple:
    """Rescale a non-negative triple so it sums to one.

    Raises:
        ValueError: If the sum is not strictly positive and finite.  An
            adjusted triple that collapses to zero has no meaningful
            distribution to sample from.
    """
    a, b, c = values
    total = a + b + c
    if not math.isfinite(total) or total <= 0.0:
        raise ValueError(
            f"Cannot normalise probability triple {(a, b, c)!r}: sum is {total!r}."
        )
    return (a / total, b / total, c / total)


# ---------------------------------------------------------------------------
# Expected value and favourites
# ---------------------------------------------------------------------------


def expected_values(probabilities: Sequence[float], odds: Sequence[float]) -> Triple:
    """Expected return per unit staked for each outcome: ``p[i] × odds[i]``.

    A value above 1.0 marks a *value edge*: the outcome pays more than its
    estimated probability implies.
    """
    return (
        probabilities[0] * odds[0],
        probabilities[1] * odds[1],
        probabilities[2] * odds[2],
    )


def favorite_index(values: Sequence[float]) -> int:
    """Index of the largest value, ties resolved to the first (home, draw, away)."""
    best = 0
    for i in range(1, len(values)):
        if values[i] > values[best]:
            best = i
    return best


def shortest_odds_index(odds: Sequence[float]) -> int:
    """Index of the lowest odd, ties resolved to the first."""
    best = 0
    for i in range(1, len(odds)):
        if odds[i] < odds[best]:
            best = i
    return best


def is_distribution(values: Sequence[float], tol: float = PROBABILITY_SUM_TOL) -> bool:
    """True if every value is non-negative and the triple sums to one within ``tol``."""
    return all(v >= 0.0 for v in values) and abs(sum(values) - 1.0) <= tol
