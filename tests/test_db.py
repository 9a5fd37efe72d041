from pathlib import Path
from typing import Any, Dict

import pytest

from llm_spelling_practice import db, rating
from llm_spelling_practice.errors import NotFoundError, StateConflictError, ValidationError


def _make_session(kid: db.Kid, word: db.Word, session_id: str = "s1") -> db.PracticeSession:
    return db.create_practice_session(
        session_id=session_id,
        kid_id=kid.id,
        state="SPELLING",
        level=kid.level,
        word_ids=[word.id],
        current_prompt=None,
    )


def _attempt_fields(word: db.Word, rating_before: float, correct: bool = True,
                    prompt_id: str = "p1") -> Dict[str, Any]:
    return {
        "word_id": word.id,
        "word_presented": word.word,
        "user_spelling": word.word if correct else "xx",
        "correct": correct,
        "rating_before": rating_before,
        "rating_after": rating.update_rating(rating_before, correct, word.level),
        "response_ms": 900,
        "input_mode": "typed",
        "prompt_id": prompt_id,
    }


def test_init_db_creates_tables(temp_db: Any) -> None:
    assert db.is_db_initialized()


def test_add_word_normalizes_and_skips_duplicates(temp_db: Any) -> None:
    assert db.add_word("  Friend ", 3) is True
    assert db.add_word("friend", 3) is False
    assert db.count_words() == 1
    assert db.get_words_by_level(3)[0].word == "friend"


@pytest.mark.parametrize("word", ["", "two words", "abc1", "-start", "end'"])
def test_add_word_rejects_invalid_spelling(temp_db: Any, word: str) -> None:
    with pytest.raises(ValidationError):
        db.add_word(word, 1)


def test_add_word_accepts_hyphen_and_apostrophe(temp_db: Any) -> None:
    assert db.add_word("don't", 2)
    assert db.add_word("well-known", 4)
    assert db.get_max_level() == 4


def test_import_words_csv(temp_db: Any, tmp_path: Path) -> None:
    csv_path = tmp_path / "words.csv"
    csv_path.write_text(
        "word,level,definition,example_sentence\n"
        "cat,1,a small pet,The cat sat.\n"
        "dog,1,,\n"
        "cat,1,duplicate,\n"
        "b4d,2,invalid,\n"
        "frog,two,bad level,\n"
        "friend,3,a pal,My friend is here.\n",
        encoding="utf-8",
    )
    assert db.import_words_csv(str(csv_path)) == 3
    assert db.count_words() == 3
    assert db.get_max_level() == 3


def test_get_words_by_ids_preserves_order_and_repeats(word_bank: Dict[str, db.Word]) -> None:
    ids = [word_bank["frog"].id, word_bank["cat"].id, word_bank["frog"].id, 99999]
    assert [w.word for w in db.get_words_by_ids(ids)] == ["frog", "cat", "frog"]


def test_add_kid_defaults(temp_db: Any) -> None:
    kid = db.add_kid("parent", "Bo")
    stored = db.get_kid(kid.id)
    assert stored is not None
    assert stored.level == 3
    assert stored.rating == 1500.0
    assert stored.total_attempts == 0


def test_apply_level_override_clamps_and_resets_rating(kid: db.Kid) -> None:
    updated = db.apply_level_override(kid.id, 99)
    assert updated.level == 4
    assert updated.rating == rating.level_to_base_elo(4)
    assert db.apply_level_override(kid.id, 0).level == 1


def test_apply_level_override_unknown_kid(word_bank: Any) -> None:
    with pytest.raises(NotFoundError):
        db.apply_level_override(4242, 2)


def test_record_attempt_updates_learner_and_session(kid: db.Kid, word_bank: Dict[str, db.Word]) -> None:
    word = word_bank["frog"]
    _make_session(kid, word)
    attempt = db.record_attempt("s1", _attempt_fields(word, kid.rating), {"word_index": 1})

    stored_kid = db.get_kid(kid.id)
    assert stored_kid.rating == attempt.rating_after
    assert stored_kid.total_attempts == 1
    assert stored_kid.successful_attempts == 1
    practice = db.get_practice_session("s1")
    assert practice.attempts_total == 1
    assert practice.correct_total == 1
    assert practice.word_index == 1
    assert db.get_mastery_score(kid.id, word.id) == 1


def test_record_attempt_rejects_reused_prompt_id(kid: db.Kid, word_bank: Dict[str, db.Word]) -> None:
    word = word_bank["frog"]
    _make_session(kid, word)
    first = db.record_attempt("s1", _attempt_fields(word, kid.rating), {})

    with pytest.raises(StateConflictError):
        db.record_attempt("s1", _attempt_fields(word, first.rating_after), {})

    # Nothing from the rejected write is kept
    assert len(db.list_attempts(session_id="s1")) == 1
    assert db.get_kid(kid.id).total_attempts == 1
    assert db.get_practice_session("s1").attempts_total == 1


def test_record_attempt_rejects_stale_rating(kid: db.Kid, word_bank: Dict[str, db.Word]) -> None:
    word = word_bank["frog"]
    _make_session(kid, word)
    with pytest.raises(StateConflictError):
        db.record_attempt("s1", _attempt_fields(word, kid.rating + 5), {})
    assert db.list_attempts(kid_id=kid.id) == []


def test_mastery_is_bounded(kid: db.Kid, word_bank: Dict[str, db.Word]) -> None:
    word = word_bank["frog"]
    _make_session(kid, word)
    current = kid.rating
    for i in range(5):
        attempt = db.record_attempt("s1", _attempt_fields(word, current, prompt_id=f"up{i}"), {})
        current = attempt.rating_after
    assert db.get_mastery_score(kid.id, word.id) == 3
    for i in range(5):
        attempt = db.record_attempt("s1", _attempt_fields(word, current, correct=False,
                                                          prompt_id=f"down{i}"), {})
        current = attempt.rating_after
    assert db.get_mastery_score(kid.id, word.id) == 0


def test_list_attempts_requires_a_key(temp_db: Any) -> None:
    with pytest.raises(ValidationError):
        db.list_attempts()


def test_word_mistake_stats(kid: db.Kid, word_bank: Dict[str, db.Word]) -> None:
    word = word_bank["friend"]
    _make_session(kid, word)
    current = kid.rating
    for i, spelling in enumerate(["frend", "firend", "frend", "friend"]):
        fields = _attempt_fields(word, current, correct=spelling == "friend", prompt_id=f"p{i}")
        fields["user_spelling"] = spelling
        current = db.record_attempt("s1", fields, {}).rating_after
    assert db.get_word_mistake_stats(kid.id, word.id) == [
        {"spelling": "frend", "count": 2},
        {"spelling": "firend", "count": 1},
    ]


def test_custom_list_round_trip(word_bank: Dict[str, db.Word]) -> None:
    ids = [word_bank["station"].id, word_bank["cat"].id, word_bank["station"].id]
    list_id = db.create_custom_list("parent-1", "week 1", ids)
    assert [w.word for w in db.get_custom_list_words(list_id)] == ["station", "cat"]
    assert db.get_custom_list_words(9999) is None


def test_custom_list_rejects_unknown_words(word_bank: Dict[str, db.Word]) -> None:
    with pytest.raises(NotFoundError):
        db.create_custom_list("parent-1", "bad", [word_bank["cat"].id, 9999])
    with pytest.raises(ValidationError):
        db.create_custom_list("parent-1", "  ", [word_bank["cat"].id])


def test_public_session_only_when_finished(kid: db.Kid, word_bank: Dict[str, db.Word]) -> None:
    word = word_bank["frog"]
    _make_session(kid, word)
    db.record_attempt("s1", _attempt_fields(word, kid.rating), {})
    assert db.get_public_session("s1") is None

    db.finish_practice_session("s1", "COMPLETE", level_end=kid.level)
    shared = db.get_public_session("s1")
    assert shared["attemptsTotal"] == 1
    assert shared["correctTotal"] == 1
    assert shared["levelEnd"] == kid.level
    assert len(shared["history"]) == 1
    assert db.get_public_session("missing") is None


def test_kid_progress(kid: db.Kid, word_bank: Dict[str, db.Word]) -> None:
    word = word_bank["frog"]
    _make_session(kid, word)
    first = db.record_attempt("s1", _attempt_fields(word, kid.rating, prompt_id="a"), {})
    db.record_attempt("s1", _attempt_fields(word, first.rating_after, correct=False, prompt_id="b"), {})

    progress = db.get_kid_progress(kid.id)
    assert progress["total_attempts"] == 2
    assert progress["successful_attempts"] == 1
    assert progress["accuracy"] == pytest.approx(50.0)
    assert progress["streak"] == {"count": 1, "correct": False}
    assert progress["unique_words"] == 1
    assert progress["sessions_completed"] == 0
    assert progress["level_percentile"] == rating.level_to_percentile_midpoint(kid.level)
    assert progress["percentile_level"] == rating.percentile_to_level(progress["percentile"], 4)
    assert progress["rating_chain_breaks"] == 0

    with pytest.raises(NotFoundError):
        db.get_kid_progress(4242)


def test_set_kid_level_and_rating(kid: db.Kid) -> None:
    db.set_kid_level(kid.id, 4)
    db.set_kid_rating(kid.id, 1620.5, total_attempts=10, successful_attempts=7)
    stored = db.get_kid(kid.id)
    assert (stored.level, stored.rating) == (4, 1620.5)
    assert (stored.total_attempts, stored.successful_attempts) == (10, 7)
    with pytest.raises(NotFoundError):
        db.set_kid_level(4242, 1)


def test_session_scope_wraps_driver_errors(temp_db: Any) -> None:
    from sqlalchemy import text

    from llm_spelling_practice.errors import StoreError

    with pytest.raises(StoreError) as excinfo:
        with db.session_scope() as session:
            session.execute(text("SELECT * FROM no_such_table"))
    assert excinfo.value.retryable


def test_kid_progress_counts_rating_chain_breaks(kid: db.Kid, word_bank: Dict[str, db.Word]) -> None:
    word = word_bank["frog"]
    _make_session(kid, word)
    db.record_attempt("s1", _attempt_fields(word, kid.rating, prompt_id="a"), {})
    overridden = db.apply_level_override(kid.id, 4)
    db.record_attempt("s1", _attempt_fields(word, overridden.rating, prompt_id="b"), {})
    assert db.get_kid_progress(kid.id)["rating_chain_breaks"] == 1
