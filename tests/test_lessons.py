from llm_spelling_practice import lessons


def test_detect_pattern() -> None:
    assert lessons.detect_pattern("cake") == "silent-e"
    assert lessons.detect_pattern("station") == "tion-sion"
    assert lessons.detect_pattern("mission") == "tion-sion"
    assert lessons.detect_pattern("happy") == "double-consonant"
    assert lessons.detect_pattern("see") == "ee-ea"
    assert lessons.detect_pattern("tree") == "double-consonant"
    assert lessons.detect_pattern("sea") == "ee-ea"
    assert lessons.detect_pattern("cat") is None


def test_dominant_pattern_prefers_most_common() -> None:
    assert lessons.dominant_pattern(["cat", "station", "mission", "happy"]) == "tion-sion"


def test_dominant_pattern_tie_goes_to_first_seen() -> None:
    assert lessons.dominant_pattern(["happy", "station"]) == "double-consonant"
    assert lessons.dominant_pattern(["station", "happy"]) == "tion-sion"


def test_generate_lesson() -> None:
    lesson = lessons.generate_lesson(["station", "action"])
    assert lesson is not None
    assert lesson.pattern == "tion-sion"
    assert lesson.answer == "tion"
    assert lesson.to_dict()["contrast"] == ["action → /ak-shun/, mission → /mish-un/"]


def test_no_lesson_without_pattern() -> None:
    assert lessons.generate_lesson([]) is None
    assert lessons.generate_lesson(["cat", "dog"]) is None


def test_normalize_contrast() -> None:
    assert lessons.normalize_contrast(None) == []
    assert lessons.normalize_contrast("a") == ["a"]
    assert lessons.normalize_contrast(["a", "b"]) == ["a", "b"]
