"""
Trial sequencing: direction order and attention-check positions.
"""

import logging
import math
import random
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class TrialSequencer:
    """
    Generates direction sequences and attention-check schedules.

    All randomness comes from one random.Random so a seed reproduces a
    whole session.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = random.Random(seed)

    def generate_sequence(self, total_trials: int, directions: Sequence[str],
                          randomize: bool = True,
                          counts: Optional[Dict[str, int]] = None) -> List[str]:
        """
        Build the direction for every trial.

        Args:
            total_trials: Number of trials (ignored when counts is given)
            directions: Direction vocabulary
            randomize: Shuffle balanced sequences / draw independently
            counts: Exact count per direction for balanced sessions

        Returns:
            List of directions, one per trial
        """
        if counts is not None:
            sequence = []
            for direction, count in counts.items():
                if count < 0:
                    raise ValueError(f"count for '{direction}' must be non-negative")
                sequence.extend([direction] * count)
            if randomize:
                self.rng.shuffle(sequence)
            logger.info(f"Balanced sequence: {counts} (randomized: {randomize}, seed: {self.seed})")
            return sequence

        if total_trials < 0:
            raise ValueError("total_trials must be non-negative")
        if not directions:
            raise ValueError("directions must not be empty")

        if randomize:
            return [self.sample_direction(directions) for _ in range(total_trials)]
        return [directions[i % len(directions)] for i in range(total_trials)]

    def sample_direction(self, directions: Sequence[str]) -> str:
        """One uniformly drawn direction."""
        return self.rng.choice(list(directions))

    def generate_attention_checks(self, total_trials: int, probability: float) -> List[int]:
        """
        Pick the trials followed by an attention check.

        Draws uniformly from [1, total_trials] until floor(total_trials *
        probability) distinct trial numbers are collected.

        Returns:
            Ascending list of trial numbers
        """
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability must be between 0 and 1")
        if total_trials < 0:
            raise ValueError("total_trials must be non-negative")

        count = math.floor(total_trials * probability)
        chosen = set()
        while len(chosen) < count:
            chosen.add(self.rng.randint(1, total_trials))

        schedule = sorted(chosen)
        logger.debug(f"Attention checks after trials {schedule}")
        return schedule
