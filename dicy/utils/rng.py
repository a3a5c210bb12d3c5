"""Seedable RNG wrapper for reproducible matches."""

import random


class GameRNG:
    """Wrapper around Python's random.Random for game randomness.

    All randomness in the engine (board generation, dice rolls, reinforcement
    placement, seat shuffling) goes through this class so that a match can be
    reproduced from its seed on the same interpreter.
    """

    def __init__(self, seed: int | None = None):
        """Initialize RNG with given seed.

        Args:
            seed: Integer seed, or None to seed from system entropy
        """
        self.seed = seed
        self.rng = random.Random(seed)

    def randint(self, a: int, b: int) -> int:
        """Return random integer in range [a, b], inclusive."""
        return self.rng.randint(a, b)

    def randrange(self, n: int) -> int:
        """Return random integer in range [0, n)."""
        return self.rng.randrange(n)

    def choice(self, seq):
        """Choose random element from non-empty sequence."""
        return self.rng.choice(seq)

    def shuffle(self, seq):
        """Shuffle sequence in place."""
        self.rng.shuffle(seq)

    def random(self) -> float:
        """Return random float in [0.0, 1.0)."""
        return self.rng.random()

    def uniform(self, a: float, b: float) -> float:
        """Return random float in [a, b]."""
        return self.rng.uniform(a, b)

    def get_state(self):
        """Get the current state of the RNG for serialization.

        Returns:
            RNG state tuple that can be used with set_state
        """
        return self.rng.getstate()

    def set_state(self, state):
        """Set the state of the RNG for deserialization.

        Args:
            state: RNG state tuple from get_state
        """
        self.rng.setstate(state)
