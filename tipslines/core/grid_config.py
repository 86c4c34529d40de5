"""Grid-game configuration: every fixed constant of the pool game in one place.

This module is the **registry** for the constants that define the game and
the backtest defaults.  Nowhere else in the code base should the grid size,
the line count, the price of a bet, or the default bet count be hard-coded.

Architecture
------------
:class:`GridConfig` is a frozen dataclass carrying all constants.  The named
constructor :meth:`GridConfig.standard` returns the canonical 3×3 / 27-line
game.  The bet generator, the evaluator and the optimizer all receive the
same injected instance.

Typical usage::

    from tipslines.core.grid_config import GridConfig

    cfg = GridConfig.standard()

    # Override a single constant for a quick experiment:
    from dataclasses import replace
    fast_cfg = replace(cfg, default_bet_count=10)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Final

#: Grid selection policy identifiers.
POLICY_FIXED: Final[str] = "fixed"
POLICY_CONFIDENCE: Final[str] = "confidence"
SELECTION_POLICIES: Final[frozenset[str]] = frozenset({POLICY_FIXED, POLICY_CONFIDENCE})


@dataclass(frozen=True)
class GridConfig:
    """Immutable configuration bundle for one pool game.

    Attributes:
        grid_size: Number of grid positions (matches) per bet.  The 3×3
            board always holds 9.
        line_count: Number of scoring lines.  Column groups of 3 positions
            give ``3 × 3 × 3 = 27``.
        price_per_bet: Stake paid per bet, in currency units.  One unit per
            line, so it equals ``line_count``.
        default_bet_count: Target number of distinct bets generated per
            round.
        attempt_multiplier: Sampling budget per round, expressed as a
            multiple of the target bet count.  When the budget is exhausted
            the bet set is returned under-filled.
        seed_offset: Constant added to each round's date seed.  Two
            generators drawn from the same date with different offsets
            produce decorrelated streams.
        selection_policy: ``"fixed"`` (first 9 matches) or ``"confidence"``
            (9 highest max-probability matches).
    """

    grid_size: int = 9
    line_count: int = 27
    price_per_bet: float = 27.0
    default_bet_count: int = 50
    attempt_multiplier: int = 30
    seed_offset: int = 42
    selection_policy: str = POLICY_FIXED

    def __post_init__(self) -> None:
        if self.selection_policy not in SELECTION_POLICIES:
            raise ValueError(
                f"Unknown selection policy {self.selection_policy!r}; "
                f"expected one of {sorted(SELECTION_POLICIES)}."
            )
        if self.default_bet_count < 1:
            raise ValueError(
                f"default_bet_count must be ≥ 1, got {self.default_bet_count!r}."
            )
        if self.attempt_multiplier < 1:
            raise ValueError(
                f"attempt_multiplier must be ≥ 1, got {self.attempt_multiplier!r}."
            )

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def standard(cls) -> GridConfig:
        """Return the canonical 3×3 grid with 27 lines at 27 units per bet."""
        return cls()

    # ------------------------------------------------------------------ #
    #  Convenience accessors                                               #
    # ------------------------------------------------------------------ #

    @property
    def attempt_budget(self) -> int:
        """Maximum number of sampled candidates for the default bet count."""
        return self.default_bet_count * self.attempt_multiplier

    def with_policy(self, policy: str) -> GridConfig:
        """Return a copy of this config using another grid selection policy."""
        return replace(self, selection_policy=policy)

    def __repr__(self) -> str:
        return (
            f"GridConfig(bets={self.default_bet_count}, "
            f"attempts=x{self.attempt_multiplier}, "
            f"seed_offset={self.seed_offset}, "
            f"policy={self.selection_policy})"
        )
