import random

import pytest

from llm_spelling_practice import diff


def test_exact_match_is_correct_with_empty_script() -> None:
    analysis = diff.analyze_spelling("friend", "  Friend ")
    assert analysis.correct
    assert analysis.ops == []
    assert analysis.summary.error_type == diff.ERROR_NONE
    assert analysis.summary.edit_count == 0


def test_separate_seperate_is_single_substitution() -> None:
    analysis = diff.analyze_spelling("separate", "seperate")
    edits = [op for op in analysis.ops if op.op != diff.OP_KEEP]
    assert len(edits) == 1
    assert edits[0].op == diff.OP_SUBSTITUTE
    assert edits[0].source_index == 3
    assert (edits[0].source, edits[0].target) == ("e", "a")
    assert analysis.summary.error_type == diff.ERROR_SUBSTITUTION


def test_friend_firend_is_transposition() -> None:
    analysis = diff.analyze_spelling("friend", "firend")
    edits = [op for op in analysis.ops if op.op != diff.OP_KEEP]
    assert len(edits) == 1
    assert edits[0].op == diff.OP_TRANSPOSE
    assert edits[0].source_index == 1
    assert edits[0].source == "ir"
    assert edits[0].target == "ri"
    assert analysis.summary.error_type == diff.ERROR_TRANSPOSITION
    assert analysis.summary.substitutions == 0


@pytest.mark.parametrize("word", ["friend", "because", "separate", "school", "it", "water"])
def test_last_two_letters_swapped_is_transposition(word: str) -> None:
    swapped = word[:-2] + word[-1] + word[-2]
    analysis = diff.analyze_spelling(word, swapped)
    assert analysis.summary.error_type == diff.ERROR_TRANSPOSITION
    assert analysis.summary.substitutions == 0


def test_missing_letter_is_omission() -> None:
    analysis = diff.analyze_spelling("little", "litle")
    assert analysis.summary.error_type == diff.ERROR_OMISSION
    assert analysis.summary.omissions == 1
    assert analysis.summary.edit_count == 1


def test_extra_letter_is_insertion() -> None:
    analysis = diff.analyze_spelling("happy", "happpy")
    assert analysis.summary.error_type == diff.ERROR_INSERTION
    assert analysis.summary.insertions == 1


def test_several_errors_are_multiple() -> None:
    analysis = diff.analyze_spelling("because", "becuz")
    assert analysis.summary.error_type == diff.ERROR_MULTIPLE
    assert analysis.summary.edit_count >= 2
    assert diff.apply_edit_script(analysis.submission, analysis.ops) == "because"


def test_same_letters_not_adjacent_swap_is_not_transposition() -> None:
    # s and t swapped across a gap
    analysis = diff.analyze_spelling("station", "ttasion")
    assert analysis.summary.error_type != diff.ERROR_TRANSPOSITION


def test_script_is_minimal() -> None:
    analysis = diff.analyze_spelling("kitten", "sitting")
    # classic Levenshtein distance is 3
    assert analysis.summary.edit_count == 3


def test_earliest_position_wins_ties() -> None:
    analysis = diff.analyze_spelling("ab", "b")
    edits = [op for op in analysis.ops if op.op != diff.OP_KEEP]
    assert edits[0].op == diff.OP_INSERT
    assert edits[0].target_index == 0


def test_edit_script_replays_to_target_for_random_words() -> None:
    rng = random.Random(2024)
    alphabet = "abcde"
    for _ in range(300):
        target = "".join(rng.choice(alphabet) for _ in range(rng.randint(1, 8)))
        submission = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 8)))
        analysis = diff.analyze_spelling(target, submission)
        assert diff.apply_edit_script(analysis.submission, analysis.ops) == target
        assert diff.summarize(analysis.ops) == analysis.summary


def test_apply_edit_script_rejects_mismatched_script() -> None:
    ops = diff.analyze_spelling("cat", "cot").ops
    with pytest.raises(ValueError):
        diff.apply_edit_script("dog", ops)


def test_describe_errors() -> None:
    assert diff.describe_errors(diff.analyze_spelling("friend", "firend").summary) == "swapped letters"
    assert diff.describe_errors(diff.DiffSummary(substitutions=1, omissions=1)) == \
        "wrong letter and missing letter"
    assert diff.describe_errors(diff.DiffSummary(substitutions=2, omissions=1, insertions=1)) == \
        "2 wrong letters, missing letter and extra letter"
    assert diff.describe_errors(diff.DiffSummary()) == ""


def test_to_dict_shape() -> None:
    payload = diff.analyze_spelling("separate", "seperate").to_dict()
    assert payload["summary"]["errorType"] == "substitution"
    assert payload["summary"]["description"] == "wrong letter"
    assert any(op["op"] == "substitute" for op in payload["ops"])
