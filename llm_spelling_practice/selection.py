import logging
import random
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from . import config, db, rating

logger = logging.getLogger(__name__)


def recent_word_ids(kid_id: int, window: Optional[int] = None) -> Tuple[Set[int], Set[int]]:
    """Word ids from the learner's last ``window`` attempts, and the subset missed there."""
    limit = config.RECENT_ATTEMPT_WINDOW if window is None else window
    if limit <= 0:
        return set(), set()
    recent = db.list_attempts(kid_id=kid_id, newest_first=True, limit=limit)
    seen = {a.word_id for a in recent}
    missed = {a.word_id for a in recent if not a.correct}
    return seen, missed


def _pick(pool: List[db.Word], count: int, rng: random.Random) -> List[db.Word]:
    if count <= 0 or not pool:
        return []
    return rng.sample(pool, min(count, len(pool)))


def select_level_words(
    kid_id: int,
    level: int,
    size: Optional[int] = None,
    exclude: Iterable[int] = (),
    rng: Optional[random.Random] = None,
) -> List[db.Word]:
    """
    Choose up to ``size`` distinct words at ``level`` for a mini-set.

    Words are taken in tiers until the set is full:

    1. words not seen in the recent-attempt window (recently missed words
       count as fresh, so they come back for another try),
    2. other recently seen words,
    3. words in ``exclude`` (already used this session).

    Repeats are only used when the level runs out of fresh words.
    """
    rng = rng or random.Random()
    size = config.MINI_SET_SIZE if size is None else size
    excluded = set(exclude)
    candidates = db.get_words_by_level(level)
    seen, missed = recent_word_ids(kid_id)

    fresh = [w for w in candidates if w.id not in excluded and (w.id not in seen or w.id in missed)]
    repeats = [w for w in candidates if w.id not in excluded and w.id in seen and w.id not in missed]
    used = [w for w in candidates if w.id in excluded]

    chosen: List[db.Word] = []
    for tier in (fresh, repeats, used):
        chosen.extend(_pick(tier, size - len(chosen), rng))
        if len(chosen) >= size:
            break
    logger.debug("Selected %d/%d words at level %d for learner %s (%d fresh)",
                 len(chosen), size, level, kid_id, min(len(fresh), size))
    return chosen


def select_list_words(
    kid_id: int,
    list_words: Sequence[db.Word],
    level: int,
    size: Optional[int] = None,
    exclude: Iterable[int] = (),
    rng: Optional[random.Random] = None,
) -> List[db.Word]:
    """Mini-set drawn from a custom list, topped up from the level bank when the list is short."""
    rng = rng or random.Random()
    size = config.MINI_SET_SIZE if size is None else size
    excluded = set(exclude)
    unused = [w for w in list_words if w.id not in excluded]
    chosen = _pick(unused, size, rng)
    if len(chosen) < size:
        chosen_ids = {w.id for w in chosen}
        top_up = select_level_words(kid_id, level, size, exclude=excluded | chosen_ids, rng=rng)
        # The bank's last tier may hand back list words already chosen
        chosen.extend([w for w in top_up if w.id not in chosen_ids][:size - len(chosen)])
    return chosen


def cycle_to_size(word_ids: Sequence[int], size: Optional[int] = None) -> List[int]:
    """Repeat ``word_ids`` in order until ``size`` entries: [a, b] -> [a, b, a, b, a]."""
    size = config.MINI_SET_SIZE if size is None else size
    if not word_ids:
        return []
    return [word_ids[i % len(word_ids)] for i in range(size)]


def diagnostic_levels(max_level: int, size: Optional[int] = None) -> List[int]:
    """Levels spread evenly from 1 to ``max_level``, ascending."""
    size = config.MINI_SET_SIZE if size is None else size
    if max_level < 1 or size < 1:
        return []
    if size == 1:
        return [1]
    return [round(1 + i * (max_level - 1) / (size - 1)) for i in range(size)]


def select_diagnostic_words(
    max_level: int,
    size: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[db.Word]:
    """One word per diagnostic level, easiest first. Levels without words are skipped."""
    rng = rng or random.Random()
    chosen: List[db.Word] = []
    for level in diagnostic_levels(max_level, size):
        pool = [w for w in db.get_words_by_level(level) if w.id not in {c.id for c in chosen}]
        if pool:
            chosen.append(rng.choice(pool))
    return chosen


def estimate_assessment_level(results: Iterable[Tuple[int, bool]], max_level: int) -> int:
    """
    Suggested starting level from diagnostic ``(level, correct)`` results.

    Walks the results from the easiest level up; the suggestion is the highest
    level spelled correctly before the second miss. A single slip does not
    stop the walk.
    """
    suggested = 1
    misses = 0
    for level, correct in sorted(results, key=lambda item: item[0]):
        if correct:
            suggested = max(suggested, level)
            continue
        misses += 1
        if misses >= 2:
            break
    return rating.clamp_level(suggested, max_level)
