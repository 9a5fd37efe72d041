import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union


@dataclass(frozen=True)
class PatternTemplate:
    name: str
    explanation: str
    contrast: Union[str, List[str], None]
    question: str
    answer: str


@dataclass
class Lesson:
    pattern: str
    explanation: str
    contrast: List[str]
    question: str
    answer: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "explanation": self.explanation,
            "contrast": list(self.contrast),
            "question": self.question,
            "answer": self.answer,
        }


PATTERN_TEMPLATES: Dict[str, PatternTemplate] = {
    "silent-e": PatternTemplate(
        name="silent-e",
        explanation="The silent-e changes the vowel sound.",
        contrast="cap → cape, tap → tape",
        question='Which one says /ā/ like "tape"?',
        answer="tape",
    ),
    "tion-sion": PatternTemplate(
        name="tion-sion",
        explanation="The -tion and -sion endings sound similar but are spelled differently.",
        contrast="action → /ak-shun/, mission → /mish-un/",
        question="Which ending makes the /shun/ sound?",
        answer="tion",
    ),
    "double-consonant": PatternTemplate(
        name="double-consonant",
        explanation="Sometimes we double consonants to keep the vowel sound short.",
        contrast="hop → hopped, tap → tapped",
        question='Why do we double the "p" in "hopped"?',
        answer='To keep the "o" short',
    ),
    "ck-ending": PatternTemplate(
        name="ck-ending",
        explanation='After a short vowel, we use "ck" instead of just "k".',
        contrast="back, pack, duck",
        question='What comes after the short vowel in "back"?',
        answer="ck",
    ),
    "ee-ea": PatternTemplate(
        name="ee-ea",
        explanation='Both "ee" and "ea" can make the long /ē/ sound.',
        contrast="see → sea, meet → meat",
        question='Which spelling makes the /ē/ sound in "sea"?',
        answer="ea",
    ),
}

_CONSONANT_PAIR = re.compile(r"[bcdfghjklmnpqrstvwxyz]{2}")


def detect_pattern(word: str) -> Optional[str]:
    """Name of the first spelling pattern that ``word`` shows, or None."""
    lower = word.lower()

    if lower.endswith("e") and len(lower) > 3 and not lower.endswith("ee"):
        return "silent-e"
    if "tion" in lower or "sion" in lower:
        return "tion-sion"
    # Checked before ck/ee: many of those words also contain a consonant pair
    if _CONSONANT_PAIR.search(lower):
        return "double-consonant"
    if lower.endswith("ck"):
        return "ck-ending"
    if "ee" in lower or "ea" in lower:
        return "ee-ea"
    return None


def normalize_contrast(contrast: Union[str, List[str], None]) -> List[str]:
    if isinstance(contrast, list):
        return contrast
    if isinstance(contrast, str):
        return [contrast]
    return []


def dominant_pattern(missed_words: Iterable[str]) -> Optional[str]:
    """Most common pattern among missed words; ties go to the pattern seen first."""
    patterns = [p for p in (detect_pattern(w) for w in missed_words) if p]
    if not patterns:
        return None
    counts = Counter(patterns)
    best = max(counts.values())
    return next(p for p in patterns if counts[p] == best)


def generate_lesson(missed_words: List[str]) -> Optional[Lesson]:
    """Micro-lesson for the break screen, keyed to the dominant pattern of the missed words."""
    pattern = dominant_pattern(missed_words)
    if pattern is None:
        return None
    template = PATTERN_TEMPLATES.get(pattern)
    if template is None:
        return None
    return Lesson(
        pattern=template.name,
        explanation=template.explanation,
        contrast=normalize_contrast(template.contrast),
        question=template.question,
        answer=template.answer,
    )
