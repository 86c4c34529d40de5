"""Deterministic pseudo-random stream for reproducible bet generation.

Strategies are compared on *identical* randomised draws, so the stream must
produce the same sequence for the same seed in every process and on every
platform.  A linear congruential generator over exact Python integers gives
that guarantee; :mod:`random` and NumPy generators are not used because
their algorithms and seeding are not part of a stable contract.

Recurrence::

    state = (state * 1103515245 + 12345) mod 2**31
    value = state / 2**31          # in [0, 1)

Seeds are derived from the round date so that every round gets its own
independent stream::

    stream = SeededStream(date_seed("2024-03-16", offset=42))
"""

from __future__ import annotations

from typing import Final

_MULTIPLIER: Final[int] = 1103515245
_INCREMENT: Final[int] = 12345
_MODULUS: Final[int] = 2**31


class SeededStream:
    """Stateful generator of uniform values in ``[0, 1)``.

    Calling the instance advances the state and returns the next value.
    Instances are cheap; create one per round and never share it between
    rounds.
    """

    __slots__ = ("seed", "_state")

    def __init__(self, seed: int):
        self.seed = int(seed)
        self._state = self.seed % _MODULUS

    def __call__(self) -> float:
        self._state = (self._state * _MULTIPLIER + _INCREMENT) % _MODULUS
        return self._state / _MODULUS

    def take(self, n: int) -> list[float]:
        """Return the next ``n`` values."""
        return [self() for _ in range(n)]

    def __repr__(self) -> str:
        return f"SeededStream(seed={self.seed})"


def date_seed(date: str, offset: int = 0) -> int:
    """Sum of the character codes of ``date`` plus ``offset``.

    Examples::

        date_seed("2024-03-16")      → 492
        date_seed("2024-03-16", 42)  → 534
    """
    return sum(ord(ch) for ch in date) + offset
