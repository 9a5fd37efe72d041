import math
from typing import Optional, Tuple

from . import config

# Anchor ratings grow linearly with level: level 1 sits at 1100, each level
# adds 150 (level 7 lands on 2000).
BASE_ELO_LEVEL_ONE = 1100.0
BASE_ELO_STEP = 150.0

# Population percentile bands (min, max) per level, used for display only.
LEVEL_PERCENTILE_BANDS: Tuple[Tuple[int, int], ...] = (
    (0, 10),
    (10, 25),
    (25, 45),
    (45, 65),
    (65, 80),
    (80, 93),
    (93, 100),
)


def expected_score(rating: float, item_rating: float) -> float:
    """Probability that a learner at ``rating`` spells an item at ``item_rating``."""
    return 1.0 / (1.0 + math.pow(10.0, (item_rating - rating) / 400.0))


def level_to_base_elo(level: int) -> float:
    """Anchor rating for a level, used when a level is (re)assigned without history."""
    return BASE_ELO_LEVEL_ONE + BASE_ELO_STEP * (max(1, int(level)) - 1)


def update_rating(
    current: float,
    did_succeed: bool,
    level: int,
    k_factor: Optional[float] = None,
) -> float:
    """
    Elo-style update of a learner's rating after one attempt.

    The item's difficulty is the anchor rating of the word's level:

        expected = 1 / (1 + 10 ** ((item - current) / 400))
        next     = current + K * (actual - expected)

    with ``actual`` 1 for a correct spelling and 0 otherwise. Because
    ``expected`` is strictly between 0 and 1, a correct attempt never lowers
    the rating and a miss never raises it.

    Returns:
        The new rating.
    """
    k = config.K_FACTOR if k_factor is None else k_factor
    actual = 1.0 if did_succeed else 0.0
    expected = expected_score(current, level_to_base_elo(level))
    return current + k * (actual - expected)


def level_to_percentile_midpoint(level: int) -> int:
    """Approximate population percentile for a level, monotonic and within [0, 100]."""
    index = min(max(int(level), 1), len(LEVEL_PERCENTILE_BANDS)) - 1
    low, high = LEVEL_PERCENTILE_BANDS[index]
    return round((low + high) / 2)


def percentile_to_level(percentile: float, max_level: int) -> int:
    """Map a percentile (0-100) to the first band that contains it."""
    clamped = min(max(percentile, 0.0), 100.0)
    for index, (_low, high) in enumerate(LEVEL_PERCENTILE_BANDS):
        if clamped <= high:
            return clamp_level(index + 1, max_level)
    return clamp_level(len(LEVEL_PERCENTILE_BANDS), max_level)


def rating_to_percentile(rating: float) -> int:
    """Linear approximation of a rating's percentile between the first and last band anchors."""
    min_elo = level_to_base_elo(1)
    max_elo = level_to_base_elo(len(LEVEL_PERCENTILE_BANDS))
    clamped = min(max(rating, min_elo), max_elo)
    return round((clamped - min_elo) / (max_elo - min_elo) * 100)


def rating_to_level(rating: float, max_level: int) -> int:
    """Highest level whose anchor rating does not exceed ``rating``."""
    level = 1
    for candidate in range(1, max(max_level, 1) + 1):
        if level_to_base_elo(candidate) <= rating:
            level = candidate
    return level


def clamp_level(level: int, max_level: int) -> int:
    """Clamp a level into ``[1, max_level]``."""
    return max(1, min(int(level), max(int(max_level), 1)))
