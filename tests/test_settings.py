"""
Tests for tipslines/services/settings.py

Run with: pytest tests/test_settings.py -v
"""

import pytest

from tipslines.core.grid_config import POLICY_CONFIDENCE, GridConfig
from tipslines.services.settings import load_grid_config, progress_interval

_VARS = (
    "TIPSLINES_BETS_PER_ROUND",
    "TIPSLINES_ATTEMPT_MULTIPLIER",
    "TIPSLINES_SEED_OFFSET",
    "TIPSLINES_SELECTION_POLICY",
    "TIPSLINES_PROGRESS_EVERY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadGridConfig:
    """Environment overrides."""

    def test_defaults(self):
        """No overrides gives the standard game."""
        assert load_grid_config() == GridConfig.standard()

    def test_overrides(self, monkeypatch):
        """Each TIPSLINES_* variable replaces its field."""
        monkeypatch.setenv("TIPSLINES_BETS_PER_ROUND", "20")
        monkeypatch.setenv("TIPSLINES_SEED_OFFSET", "0")
        monkeypatch.setenv("TIPSLINES_SELECTION_POLICY", POLICY_CONFIDENCE)
        cfg = load_grid_config()
        assert cfg.default_bet_count == 20
        assert cfg.seed_offset == 0
        assert cfg.selection_policy == POLICY_CONFIDENCE
        assert cfg.price_per_bet == pytest.approx(27.0)

    def test_bad_policy(self, monkeypatch):
        """An unknown policy fails fast."""
        monkeypatch.setenv("TIPSLINES_SELECTION_POLICY", "lucky")
        with pytest.raises(ValueError):
            load_grid_config()


class TestProgressInterval:
    """Optimizer progress cadence."""

    def test_default(self):
        """Defaults to 500 trials."""
        assert progress_interval() == 500

    def test_floor(self, monkeypatch):
        """Never below one."""
        monkeypatch.setenv("TIPSLINES_PROGRESS_EVERY", "0")
        assert progress_interval() == 1
