"""
Exhaustive grid search over a transform's parameters.

Every combination in the ParameterSpace is backtested on the same rounds
with the same seeds, so ROI differences come only from the parameters.
Trials are ranked by ROI (ties keep enumeration order) and can be filtered
for diversity so a shortlist is not ten near-identical neighbours of the
winner.
"""

import itertools
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import pandas as pd

from tipslines.core.entities import Round
from tipslines.core.strategy_interface import ProbabilityTransform
from tipslines.services.backtest import BacktestEngine
from tipslines.services.settings import progress_interval

logger = logging.getLogger(__name__)


class ParameterSpace:
    """Cartesian product of named parameter axes, in declaration order."""

    def __init__(self, axes: Mapping[str, Sequence[Any]]):
        if not axes:
            raise ValueError("ParameterSpace needs at least one axis.")
        self.axes: Dict[str, tuple] = {}
        for name, values in axes.items():
            values = tuple(values)
            if not values:
                raise ValueError(f"Axis {name!r} has no values.")
            self.axes[name] = values
        self.size = math.prod(len(v) for v in self.axes.values())

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        names = list(self.axes)
        for combo in itertools.product(*self.axes.values()):
            yield dict(zip(names, combo))

    def __repr__(self) -> str:
        shape = " x ".join(f"{k}[{len(v)}]" for k, v in self.axes.items())
        return f"ParameterSpace({shape} = {self.size})"


@dataclass(frozen=True)
class Trial:
    index: int
    params: Dict[str, Any]
    roi: float
    profit: float
    profitable_rounds: int


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def param_distance(a: Trial, b: Trial, keys: Sequence[str]) -> float:
    """L1 distance between two trials over ``keys``; equal values (``inf`` included) add 0."""
    return sum(
        0.0 if a.params[k] == b.params[k] else abs(a.params[k] - b.params[k]) for k in keys
    )


@dataclass(frozen=True)
class OptimizationReport:
    """Ranked trials of one grid search (best first)."""

    transform: str
    trials: tuple[Trial, ...] = field(default_factory=tuple)

    @property
    def best(self) -> Optional[Trial]:
        return self.trials[0] if self.trials else None

    def top(self, k: int) -> List[Trial]:
        return list(self.trials[:k])

    def diverse(
        self,
        max_count: int = 5,
        min_distance: float = 0.5,
        keys: Optional[Sequence[str]] = None,
    ) -> List[Trial]:
        """
        Greedy diversity filter over the ranked trials.

        Keeps the best trial, then each next trial whose L1 parameter distance
        to every kept trial is strictly greater than ``min_distance``, until
        ``max_count`` are kept. ``keys`` defaults to the numeric parameters.
        """
        if not self.trials or max_count <= 0:
            return []
        if keys is None:
            keys = [k for k, v in self.trials[0].params.items() if _numeric(v)]

        chosen = [self.trials[0]]
        for trial in self.trials[1:]:
            if len(chosen) >= max_count:
                break
            if all(param_distance(trial, c, keys) > min_distance for c in chosen):
                chosen.append(trial)
        return chosen

    def to_frame(self) -> pd.DataFrame:
        """One row per trial in rank order: parameters, then roi / profit / profitable_rounds."""
        rows = [
            {
                "rank": rank,
                "trial": t.index,
                **t.params,
                "roi": t.roi,
                "profit": t.profit,
                "profitable_rounds": t.profitable_rounds,
            }
            for rank, t in enumerate(self.trials, start=1)
        ]
        return pd.DataFrame(rows)


class GridSearchOptimizer:
    """
    Backtest one transform at every point of a ParameterSpace.

    Args:
        engine: Shared backtest engine (config, team signals, upsets).
        transform: Transform whose parameters are searched.
        base_params: Fixed overrides applied under every trial's axis values.
    """

    def __init__(
        self,
        engine: BacktestEngine,
        transform: ProbabilityTransform,
        base_params: Optional[Mapping[str, Any]] = None,
    ):
        self.engine = engine
        self.transform = transform
        self.base_params = dict(base_params or {})

    def run(
        self,
        rounds: Sequence[Round],
        space: ParameterSpace,
        progress_every: Optional[int] = None,
    ) -> OptimizationReport:
        rounds = tuple(rounds)
        every = progress_every or progress_interval()
        logger.info(
            "Grid search for %s: %d combinations over %d rounds",
            self.transform.name, space.size, len(rounds),
        )

        trials = []
        best_roi = -math.inf
        for index, values in enumerate(space):
            merged = {**self.base_params, **values}
            params = self.transform.make_params(**merged)
            result = self.engine.run(rounds, self.transform, params)
            trials.append(Trial(
                index=index,
                params=merged,
                roi=result.roi,
                profit=result.profit,
                profitable_rounds=result.profitable_rounds,
            ))
            best_roi = max(best_roi, result.roi)
            if (index + 1) % every == 0:
                logger.info(
                    "Progress: %d/%d trials (best ROI so far %.2f%%)",
                    index + 1, space.size, best_roi,
                )

        # sorted() is stable, so equal ROIs stay in enumeration order
        ranked = tuple(sorted(trials, key=lambda t: t.roi, reverse=True))
        report = OptimizationReport(transform=self.transform.name, trials=ranked)
        if report.best is not None:
            logger.info(
                "Grid search for %s done: best ROI %.2f%% with %s",
                self.transform.name, report.best.roi, report.best.params,
            )
        return report
