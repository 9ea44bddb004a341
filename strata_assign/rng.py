from __future__ import annotations

import warnings
from typing import Optional

import numpy as np


class NonReproducibleWarning(UserWarning):
    """Raised when random draws are made without a seed."""


class RandomSource:
    """Seedable source of uniform draws in [0, 1).

    The same seed followed by the same sequence of calls yields the same
    values on any machine (numpy's PCG64 bit generator). A source built
    without a seed still works, but its output cannot be reproduced.
    """

    def __init__(self, seed: Optional[int] = None):
        self._seed: Optional[int] = None
        self._generator = np.random.default_rng()
        self._warned = False
        if seed is not None:
            self.seed(seed)

    @property
    def seeded(self) -> bool:
        return self._seed is not None

    @property
    def seed_value(self) -> Optional[int]:
        return self._seed

    def seed(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise TypeError(f"Seed must be an integer, got {type(value).__name__}.")
        if value < 0:
            raise ValueError(f"Seed must be non-negative, got {value}.")
        self._seed = int(value)
        self._generator = np.random.default_rng(self._seed)

    def draw(self) -> float:
        self._warn_if_unseeded()
        return float(self._generator.random())

    def draws(self, n: int) -> np.ndarray:
        """Return the next ``n`` draws as a float array."""
        if n < 0:
            raise ValueError(f"Number of draws must be non-negative, got {n}.")
        self._warn_if_unseeded()
        return self._generator.random(n)

    def _warn_if_unseeded(self) -> None:
        if self._seed is None and not self._warned:
            warnings.warn(
                "Drawing random numbers without a seed: this assignment cannot be reproduced. "
                "Set a seed (e.g. one generated at random.org) before randomizing.",
                NonReproducibleWarning,
                stacklevel=3,
            )
            self._warned = True


_DEFAULT_SOURCE = RandomSource()


def default_source() -> RandomSource:
    """Process-wide source used by :func:`seed` and :func:`draw`."""
    return _DEFAULT_SOURCE


def seed(value: int) -> None:
    _DEFAULT_SOURCE.seed(value)


def draw() -> float:
    return _DEFAULT_SOURCE.draw()
