"""Statistics recomputed from the append-only attempt history."""
from typing import Any, Dict, Iterable, List, Optional, Sequence


def _ordered(attempts: Iterable[Any]) -> List[Any]:
    return sorted(attempts, key=lambda a: (a.created_at, a.id or 0))


def compute_current_streak(attempts: Iterable[Any]) -> Dict[str, Any]:
    """Length of the latest run of same-outcome attempts, and whether that run is correct."""
    ordered = _ordered(attempts)
    if not ordered:
        return {"count": 0, "correct": True}

    latest = ordered[-1].correct
    count = 0
    for attempt in reversed(ordered):
        if attempt.correct != latest:
            break
        count += 1
    return {"count": count, "correct": bool(latest)}


def compute_unique_words(attempts: Iterable[Any]) -> int:
    return len({a.word_presented for a in attempts})


def build_word_mistake_stats(spellings: Iterable[Optional[str]]) -> List[Dict[str, Any]]:
    """Distinct wrong spellings with counts, most frequent first, then alphabetical."""
    counts: Dict[str, int] = {}
    for spelling in spellings:
        cleaned = (spelling or "").strip()
        if not cleaned:
            continue
        counts[cleaned] = counts.get(cleaned, 0) + 1
    return [
        {"spelling": spelling, "count": count}
        for spelling, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def find_rating_chain_breaks(attempts: Sequence[Any], tolerance: float = 1e-9) -> List[int]:
    """Indices ``i`` (in time order) where ``rating_before[i] != rating_after[i - 1]``.

    A break is expected only after an explicit level override.
    """
    ordered = _ordered(attempts)
    breaks = []
    for index in range(1, len(ordered)):
        if abs(ordered[index].rating_before - ordered[index - 1].rating_after) > tolerance:
            breaks.append(index)
    return breaks
