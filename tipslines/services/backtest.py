"""
Backtest evaluator and engine.

evaluate_round() scores one bet set against a settled round: every bet is
checked on all 27 lines, and a line pays the product of the published odds
of its three predicted outcomes when all three are correct. aggregate()
folds per-round outcomes into totals and ROI.

BacktestEngine runs the whole pipeline for one transform and parameter
record: implied probabilities -> grid selection (on the implied
probabilities) -> transform -> seeded bet generation -> evaluation. The grid
is chosen before any transform runs, so every strategy bets on the same
matches of a round. A trial touches no shared mutable state, so the
same engine and round list can serve every optimizer trial.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from tipslines.core.entities import Round
from tipslines.core.grid import (
    OUTCOME_INDEX,
    GridSelection,
    Line,
    build_lines,
    result_to_outcome,
    select_grid,
)
from tipslines.core.grid_config import GridConfig
from tipslines.core.prng import SeededStream, date_seed
from tipslines.core.strategy_interface import (
    IMPLIED,
    NULL_SIGNALS,
    ProbabilityTransform,
    TeamSignals,
)
from tipslines.services.bet_generator import BetSet, UpsetPolicy, generate_bet_set

logger = logging.getLogger(__name__)

_STANDARD = GridConfig.standard()


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RoundOutcome:
    """Cost and winnings of one bet set on one round."""

    date: str
    cost: float
    winnings: float
    bet_count: int
    winning_lines: tuple[int, ...] = ()

    @property
    def profit(self) -> float:
        return self.winnings - self.cost

    @property
    def profitable(self) -> bool:
        return self.winnings > self.cost


@dataclass(frozen=True)
class BacktestResult:
    total_cost: float
    total_winnings: float
    profit: float
    roi: float
    round_count: int
    profitable_rounds: int
    outcomes: tuple[RoundOutcome, ...] = ()


def _safe_roi(profit: float, cost: float) -> float:
    return profit / cost * 100.0 if cost > 0 else 0.0


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def actual_outcomes(round_: Round, selection: GridSelection) -> tuple[str, ...]:
    """Settled outcome at each grid position."""
    if round_.result is None:
        raise ValueError(f"Round {round_.date} has no result to evaluate against.")
    return tuple(result_to_outcome(round_.result[i]) for i in selection.indices)


def _line_payout(round_: Round, selection: GridSelection, line: Line, picks: Sequence[str]) -> float:
    payout = 1.0
    for pos in line.positions:
        match = selection.match_at(pos)
        payout *= round_.odds[match * 3 + OUTCOME_INDEX[picks[pos]]]
    return payout


def evaluate_round(
    round_: Round,
    bet_set: BetSet,
    lines: Sequence[Line] = build_lines(),
    price_per_bet: float = _STANDARD.price_per_bet,
) -> RoundOutcome:
    """
    Score every bet of ``bet_set`` on every line.

    Positions map to matches through ``bet_set.selection``, so the actual
    outcome lookup uses the same grid the bets were generated for.

    Raises:
        ValueError: If the round is not settled.
    """
    selection = bet_set.selection
    actual = actual_outcomes(round_, selection)

    winnings = 0.0
    winning_lines = []
    for bet in bet_set.bets:
        hits = 0
        for line in lines:
            if all(bet.predictions[pos] == actual[pos] for pos in line.positions):
                hits += 1
                winnings += _line_payout(round_, selection, line, bet.predictions)
        winning_lines.append(hits)

    return RoundOutcome(
        date=round_.date,
        cost=len(bet_set.bets) * price_per_bet,
        winnings=winnings,
        bet_count=len(bet_set.bets),
        winning_lines=tuple(winning_lines),
    )


def max_possible_winnings(
    round_: Round,
    selection: GridSelection,
    lines: Sequence[Line] = build_lines(),
) -> float:
    """Winnings of the perfect bet: every line pays."""
    actual = actual_outcomes(round_, selection)
    return sum(_line_payout(round_, selection, line, actual) for line in lines)


def aggregate(outcomes: Iterable[RoundOutcome]) -> BacktestResult:
    outcomes = tuple(outcomes)
    total_cost = sum(o.cost for o in outcomes)
    total_winnings = sum(o.winnings for o in outcomes)
    profit = total_winnings - total_cost
    return BacktestResult(
        total_cost=total_cost,
        total_winnings=total_winnings,
        profit=profit,
        roi=_safe_roi(profit, total_cost),
        round_count=len(outcomes),
        profitable_rounds=sum(1 for o in outcomes if o.profitable),
        outcomes=outcomes,
    )


def evaluate_bet_sets(
    rounds_by_date: Mapping[str, Round],
    bet_sets: Iterable[BetSet],
    lines: Sequence[Line] = build_lines(),
    price_per_bet: float = _STANDARD.price_per_bet,
) -> BacktestResult:
    """Score bet sets against their rounds; bet sets for unknown dates are skipped."""
    outcomes = []
    for bet_set in bet_sets:
        round_ = rounds_by_date.get(bet_set.date)
        if round_ is None:
            logger.debug("No round for bet set dated %s, skipping", bet_set.date)
            continue
        outcomes.append(evaluate_round(round_, bet_set, lines, price_per_bet))
    return aggregate(outcomes)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class BacktestEngine:
    """
    One-transform backtest over a list of rounds.

    Args:
        config: Game constants and sampling knobs.
        signals: Team-history provider for team-aware transforms.
        upsets: Optional forced-upset policy for the generator.
    """

    def __init__(
        self,
        config: Optional[GridConfig] = None,
        signals: TeamSignals = NULL_SIGNALS,
        upsets: Optional[UpsetPolicy] = None,
    ):
        self.config = config or GridConfig.standard()
        self.signals = signals
        self.upsets = upsets
        self.lines = build_lines()
        if len(self.lines) != self.config.line_count:
            raise ValueError(
                f"GridConfig.line_count is {self.config.line_count} but the grid has "
                f"{len(self.lines)} lines."
            )

    def bet_set_for(
        self,
        round_: Round,
        transform: ProbabilityTransform = IMPLIED,
        params: Any = None,
    ) -> BetSet:
        """Select the grid, adjust, and generate this round's bet set."""
        cfg = self.config
        if params is None:
            params = transform.default_params()
        selection = select_grid(round_.probabilities, cfg.selection_policy, cfg.grid_size)
        adjusted = transform.adjust_round(round_, params, self.signals)
        return generate_bet_set(
            [adjusted[i] for i in selection.indices],
            selection,
            round_.date,
            target_count=cfg.default_bet_count,
            stream=SeededStream(date_seed(round_.date, cfg.seed_offset)),
            attempt_multiplier=cfg.attempt_multiplier,
            upsets=self.upsets,
        )

    def run(
        self,
        rounds: Iterable[Round],
        transform: ProbabilityTransform = IMPLIED,
        params: Any = None,
    ) -> BacktestResult:
        """Backtest ``transform`` with ``params`` over every settled round."""
        if params is None:
            params = transform.default_params()
        outcomes = []
        for round_ in rounds:
            if not round_.is_settled:
                logger.debug("Round %s has no result, skipping", round_.date)
                continue
            bet_set = self.bet_set_for(round_, transform, params)
            outcomes.append(
                evaluate_round(round_, bet_set, self.lines, self.config.price_per_bet)
            )
        return aggregate(outcomes)

    def __repr__(self) -> str:
        return f"BacktestEngine(config={self.config!r}, signals={type(self.signals).__name__})"
