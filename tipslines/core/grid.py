"""Grid and line combinatorics for the 3×3 board.

Board layout (grid positions)::

     col1  col2  col3
      0     1     2      row 0
      3     4     5      row 1
      6     7     8      row 2

A *line* is a path col1 → col2 → col3, one position per column, so there
are ``3 × 3 × 3 = 27`` lines.  A line wins when the predictions at its three
positions are all correct, paying the product of the three odds.

Which match occupies which position is decided per round by a
:class:`GridSelection`.  The selection used to build a bet set must also be
used to score it.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Final, Sequence

from tipslines.core.grid_config import POLICY_CONFIDENCE, POLICY_FIXED, SELECTION_POLICIES

# ---------------------------------------------------------------------------
# Outcome codes
# ---------------------------------------------------------------------------

HOME: Final[str] = "1"
DRAW: Final[str] = "X"
AWAY: Final[str] = "2"

#: Outcome codes in probability-triple order.  Index = position in a triple.
OUTCOMES: Final[tuple[str, str, str]] = (HOME, DRAW, AWAY)

OUTCOME_INDEX: Final[dict[str, int]] = {HOME: 0, DRAW: 1, AWAY: 2}


def result_to_outcome(code: str) -> str:
    """Map a settled result code to an outcome: ``"0"`` home, ``"1"`` draw, else away."""
    if code == "0":
        return HOME
    if code == "1":
        return DRAW
    return AWAY


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------

COLUMN_1: Final[tuple[int, int, int]] = (0, 3, 6)
COLUMN_2: Final[tuple[int, int, int]] = (1, 4, 7)
COLUMN_3: Final[tuple[int, int, int]] = (2, 5, 8)

SHAPE_STRAIGHT: Final[str] = "straight"
SHAPE_BENT: Final[str] = "bent"
SHAPE_ZIGZAG: Final[str] = "zigzag"


@dataclass(frozen=True, slots=True)
class Line:
    """One scoring line: a triple of grid positions, one per column."""

    positions: tuple[int, int, int]

    @property
    def shape(self) -> str:
        """``straight`` (one row), ``zigzag`` (three rows) or ``bent``."""
        rows = {p // 3 for p in self.positions}
        if len(rows) == 1:
            return SHAPE_STRAIGHT
        if len(rows) == 3:
            return SHAPE_ZIGZAG
        return SHAPE_BENT


STANDARD_LINES: Final[tuple[Line, ...]] = tuple(
    Line(positions=combo) for combo in itertools.product(COLUMN_1, COLUMN_2, COLUMN_3)
)


def build_lines() -> tuple[Line, ...]:
    """Return the 27 standard lines.  Built once at import time."""
    return STANDARD_LINES


# ---------------------------------------------------------------------------
# Grid selection
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GridSelection:
    """Which match index sits at each grid position, and why.

    Attributes:
        indices: Match index per grid position (``indices[pos]``).
        policy: The policy that produced this mapping.
    """

    indices: tuple[int, ...]
    policy: str

    def __len__(self) -> int:
        return len(self.indices)

    def match_at(self, position: int) -> int:
        return self.indices[position]


def select_grid(
    probabilities: Sequence[Sequence[float]],
    policy: str = POLICY_FIXED,
    size: int = 9,
) -> GridSelection:
    """Choose the ``size`` matches that occupy the grid.

    Args:
        probabilities: One probability triple per match of the round.
        policy: ``"fixed"`` keeps the first ``size`` matches in slate order.
            ``"confidence"`` takes the ``size`` matches with the highest
            max-probability; the sort is stable so ties keep slate order.
        size: Number of grid positions.

    Raises:
        ValueError: If the policy is unknown or the round has fewer than
            ``size`` matches.
    """
    if policy not in SELECTION_POLICIES:
        raise ValueError(
            f"Unknown selection policy {policy!r}; expected one of "
            f"{sorted(SELECTION_POLICIES)}."
        )
    if len(probabilities) < size:
        raise ValueError(
            f"Round has {len(probabilities)} matches, the grid needs {size}."
        )

    if policy == POLICY_CONFIDENCE:
        ranked = sorted(
            range(len(probabilities)),
            key=lambda i: max(probabilities[i]),
            reverse=True,
        )
        return GridSelection(indices=tuple(ranked[:size]), policy=policy)

    return GridSelection(indices=tuple(range(size)), policy=policy)
