"""Exact win probabilities for dice combat.

The attacker wins only when their sum is strictly greater than the
defender's, so the probability is the share of outcome pairs (a, d) with
a > d. Sum distributions are computed as integer outcome counts and
memoized, so lookups after the first are free.
"""

import logging
import time
from functools import lru_cache
from typing import List, Tuple

from ..utils.constants import MAX_DICE_PER_TERRITORY, MAX_DICE_SIDES

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def sum_distribution(dice: int, sides: int) -> Tuple[int, ...]:
    """Count the ways each total can be rolled with ``dice`` dice.

    Args:
        dice: Number of dice rolled (>= 0)
        sides: Faces per die (>= 1)

    Returns:
        Tuple where index is the sum and value is the number of outcomes
    """
    counts = [1]
    for _ in range(dice):
        next_counts = [0] * (len(counts) + sides)
        for total, ways in enumerate(counts):
            if ways:
                for face in range(1, sides + 1):
                    next_counts[total + face] += ways
        counts = next_counts
    return tuple(counts)


@lru_cache(maxsize=None)
def win_probability(attacker_dice: int, defender_dice: int, sides: int = 6) -> float:
    """Probability that the attacker's sum is strictly greater.

    Args:
        attacker_dice: Dice on the attacking tile
        defender_dice: Dice on the defending tile
        sides: Faces per die

    Returns:
        Probability in [0, 1]. An attacker with no dice never wins; a
        defender with no dice always loses.

    Raises:
        ValueError: If sides < 1
    """
    if sides < 1:
        raise ValueError(f"Invalid dice sides: {sides} (must be >= 1)")
    if attacker_dice < 1:
        return 0.0
    if defender_dice < 1:
        return 1.0

    attack = sum_distribution(attacker_dice, sides)
    defense = sum_distribution(defender_dice, sides)

    # Running count of defender outcomes strictly below each sum
    below = [0] * (len(attack) + 1)
    running = 0
    for total in range(len(attack)):
        below[total] = running
        if total < len(defense):
            running += defense[total]

    wins = sum(ways * below[total] for total, ways in enumerate(attack) if ways)
    return wins / (sides ** (attacker_dice + defender_dice))


def probability_table(sides: int = 6, max_dice: int = MAX_DICE_PER_TERRITORY) -> List[List[float]]:
    """Win probability grid indexed ``[attacker - 1][defender - 1]``."""
    return [
        [win_probability(a, d, sides) for d in range(1, max_dice + 1)]
        for a in range(1, max_dice + 1)
    ]


def precompute_tables(
    max_sides: int = MAX_DICE_SIDES, max_dice: int = MAX_DICE_PER_TERRITORY
) -> None:
    """Warm the memo for every supported die type and stack size.

    Called once at startup by long-running processes; the cache is only
    written here or on first lookup and is read-only afterwards.
    """
    start = time.perf_counter()
    for sides in range(1, max_sides + 1):
        probability_table(sides, max_dice)
    elapsed = (time.perf_counter() - start) * 1000
    logger.info(
        f"Probability tables computed (sides 1-{max_sides}, dice 1-{max_dice}) in {elapsed:.1f}ms"
    )
