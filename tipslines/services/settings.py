"""
Environment-driven run settings.

Every knob defaults to the canonical game in GridConfig.standard(); a .env
file or the process environment can override them for a run:

    TIPSLINES_BETS_PER_ROUND       target distinct bets per round (50)
    TIPSLINES_ATTEMPT_MULTIPLIER   sampling budget as a multiple of the target (30)
    TIPSLINES_SEED_OFFSET          constant added to every date seed (42)
    TIPSLINES_SELECTION_POLICY     "fixed" or "confidence"
    TIPSLINES_PROGRESS_EVERY       optimizer progress log interval, in trials (500)
"""

import logging
import os
from dataclasses import replace

from dotenv import load_dotenv

from tipslines.core.grid_config import GridConfig

load_dotenv()

logger = logging.getLogger(__name__)


def load_grid_config() -> GridConfig:
    """GridConfig.standard() with any TIPSLINES_* overrides applied."""
    base = GridConfig.standard()
    cfg = replace(
        base,
        default_bet_count=int(os.getenv("TIPSLINES_BETS_PER_ROUND", str(base.default_bet_count))),
        attempt_multiplier=int(os.getenv("TIPSLINES_ATTEMPT_MULTIPLIER", str(base.attempt_multiplier))),
        seed_offset=int(os.getenv("TIPSLINES_SEED_OFFSET", str(base.seed_offset))),
        selection_policy=os.getenv("TIPSLINES_SELECTION_POLICY", base.selection_policy),
    )
    if cfg != base:
        logger.info("Using grid config overrides from environment: %r", cfg)
    return cfg


def progress_interval() -> int:
    """Number of optimizer trials between progress log lines."""
    return max(1, int(os.getenv("TIPSLINES_PROGRESS_EVERY", "500")))
