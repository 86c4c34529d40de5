"""Core mathematics and configuration for the Tips-Lines backtesting engine.

This package contains pure, strategy-agnostic building blocks:

- ``grid_config``: immutable game constants (grid size, price, bet count)
- ``odds_math``: implied probabilities, normalisation, expected value
- ``grid``: outcome codes, the 27 lines, grid selection
- ``prng``: deterministic seeded stream
- ``entities``: rounds, team histories, record validation
- ``strategy_interface``: ABCs and DTOs for swappable probability transforms

Nothing in this package imports from ``tipslines.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
