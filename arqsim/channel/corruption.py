"""
Random Corruption Source

Seeded, deterministic source of uniform draws used by the link model
to decide whether a transmitted frame is hit by bit errors.
"""

from typing import Optional

import numpy as np


class CorruptionSource:
    """
    Seeded uniform random source.

    Every draw comes from a private numpy Generator, so two sources built
    with the same seed yield the same sequence regardless of any other
    randomness in the process.

    Attributes:
        seed: Seed the generator was created with
        rng: numpy random Generator
        draws: Number of values drawn so far
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize the corruption source.

        Args:
            seed: Random seed for reproducibility
        """
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.draws = 0

    def draw(self) -> float:
        """Return a uniform value in [0, 1)."""
        self.draws += 1
        return float(self.rng.random())

    def reset(self, seed: Optional[int] = None):
        """
        Restart the sequence.

        Args:
            seed: New seed (keeps the current one if None)
        """
        if seed is not None:
            self.seed = seed
        self.rng = np.random.default_rng(self.seed)
        self.draws = 0
