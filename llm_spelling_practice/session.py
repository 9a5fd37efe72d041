"""
Practice session state machine.

A session moves START -> SPELLING <-> BREAK -> COMPLETE. Every operation
reloads the session from the store, checks the action against the transition
table, and writes its result back while holding the session lock. Nothing is
kept in memory between calls.
"""
import enum
import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from . import config, db, diff, lessons, prompt, rating, selection
from .errors import NotFoundError, StateConflictError, ValidationError
from .locks import session_lock

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    START = "START"
    SPELLING = "SPELLING"
    BREAK = "BREAK"
    COMPLETE = "COMPLETE"


class Action(str, enum.Enum):
    START = "START"
    SUBMIT = "SUBMIT"
    COMPLETE_MINISET = "COMPLETE_MINISET"
    FINISH = "FINISH"


class MiniSetAction(str, enum.Enum):
    CONTINUE = "CONTINUE"
    CHALLENGE_JUMP = "CHALLENGE_JUMP"
    PRACTICE_MISSED = "PRACTICE_MISSED"


class NextStep(str, enum.Enum):
    NEXT_WORD = "NEXT_WORD"
    BREAK = "BREAK"
    RETRY = "RETRY"


# action -> (states it may start from, states it may end in)
TRANSITIONS: Dict[Action, Tuple[FrozenSet[SessionState], FrozenSet[SessionState]]] = {
    Action.START: (frozenset({SessionState.START}), frozenset({SessionState.SPELLING})),
    Action.SUBMIT: (frozenset({SessionState.SPELLING}),
                    frozenset({SessionState.SPELLING, SessionState.BREAK})),
    Action.COMPLETE_MINISET: (frozenset({SessionState.BREAK}), frozenset({SessionState.SPELLING})),
    Action.FINISH: (frozenset({SessionState.SPELLING, SessionState.BREAK}),
                    frozenset({SessionState.COMPLETE})),
}


def require_state(current: str, action: Action) -> SessionState:
    """Reject ``action`` unless the session is in one of its source states."""
    state = SessionState(current)
    sources, _targets = TRANSITIONS[action]
    if state not in sources:
        raise StateConflictError(f"cannot {action.value} a session in state {state.value}")
    return state


def transition(current: str, action: Action, target: SessionState) -> SessionState:
    require_state(current, action)
    _sources, targets = TRANSITIONS[action]
    if target not in targets:
        raise StateConflictError(f"{action.value} cannot move a session to {target.value}")
    return target


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------

@dataclass
class StartResult:
    session_id: str
    current_word: Dict[str, Any]
    current_prompt: Dict[str, Any]
    word_index: int
    level: int
    assessment_suggested_level: Optional[int] = None
    assessment_max_level: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "sessionId": self.session_id,
            "currentWord": self.current_word,
            "currentPrompt": self.current_prompt,
            "wordIndex": self.word_index,
            "level": self.level,
        }
        if self.assessment_suggested_level is not None:
            data["assessmentSuggestedLevel"] = self.assessment_suggested_level
            data["assessmentMaxLevel"] = self.assessment_max_level
        return data


@dataclass
class BreakSummary:
    mini_set_index: int
    level: int
    words_correct: List[Dict[str, Any]] = field(default_factory=list)
    words_missed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def correct_count(self) -> int:
        return len(self.words_correct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "miniSetIndex": self.mini_set_index,
            "level": self.level,
            "correctCount": self.correct_count,
            "total": len(self.words_correct) + len(self.words_missed),
            "wordsCorrect": list(self.words_correct),
            "wordsMissed": list(self.words_missed),
        }


@dataclass
class SubmitResult:
    correct: bool
    correct_spelling: str
    error_details: Dict[str, Any]
    next_step: NextStep
    attempt_id: Optional[int] = None
    next_word: Optional[Dict[str, Any]] = None
    next_prompt: Optional[Dict[str, Any]] = None
    break_summary: Optional[BreakSummary] = None
    lesson: Optional[lessons.Lesson] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "correct": self.correct,
            "correctSpelling": self.correct_spelling,
            "errorDetails": self.error_details,
            "attemptId": self.attempt_id,
            "nextStep": self.next_step.value,
        }
        if self.next_word is not None:
            data["nextWord"] = self.next_word
            data["nextPrompt"] = self.next_prompt
        if self.break_summary is not None:
            data["breakSummary"] = self.break_summary.to_dict()
            data["lesson"] = self.lesson.to_dict() if self.lesson else None
        return data


@dataclass
class MiniSetResult:
    current_word: Dict[str, Any]
    current_prompt: Dict[str, Any]
    word_index: int
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentWord": self.current_word,
            "currentPrompt": self.current_prompt,
            "wordIndex": self.word_index,
            "level": self.level,
        }


@dataclass
class FinishResult:
    attempts_total: int
    correct_total: int
    mini_sets_completed: int
    level_end: Optional[int]
    assessment_suggested_level: Optional[int] = None
    assessment_max_level: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "attemptsTotal": self.attempts_total,
            "correctTotal": self.correct_total,
            "miniSetsCompleted": self.mini_sets_completed,
            "levelEnd": self.level_end,
        }
        if self.assessment_suggested_level is not None:
            data["assessmentSuggestedLevel"] = self.assessment_suggested_level
            data["assessmentMaxLevel"] = self.assessment_max_level
        return data


# ----------------------------------------------------------------------
# Validation helpers
# ----------------------------------------------------------------------

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_int(name: str, value: Any, minimum: int = 0) -> int:
    if not _is_int(value) or value < minimum:
        raise ValidationError(f"{name} must be an integer >= {minimum}")
    return value


def _require_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{name} must be true or false")
    return value


def _require_session_id(session_id: Any) -> str:
    if not isinstance(session_id, str) or not session_id.strip():
        raise ValidationError("sessionId is required")
    return session_id


def _load(session_id: str) -> db.PracticeSession:
    practice = db.get_practice_session(session_id)
    if practice is None:
        raise NotFoundError(f"session {session_id} not found")
    return practice


def _max_level() -> int:
    max_level = db.get_max_level()
    if max_level < 1:
        raise NotFoundError("word bank is empty")
    return max_level


def _used_word_ids(practice: db.PracticeSession) -> List[int]:
    used = db.get_session_word_ids(practice.id)
    return used + [i for i in practice.word_ids if i not in used]


# ----------------------------------------------------------------------
# START
# ----------------------------------------------------------------------

def start_session(
    kid_id: int,
    word_ids: Optional[List[int]] = None,
    list_id: Optional[int] = None,
    assessment: bool = False,
    mode: str = "audio",
    rng: Optional[random.Random] = None,
) -> StartResult:
    """Create a session, pick its first mini-set and issue the first prompt."""
    _require_int("learnerId", kid_id, minimum=1)
    _require_bool("assessment", assessment)
    if mode not in prompt.PROMPT_MODES:
        raise ValidationError(f"unknown prompt mode: {mode}")
    if word_ids is not None and list_id is not None:
        raise ValidationError("pass either wordIds or listId, not both")
    if word_ids is not None:
        if not isinstance(word_ids, list) or not word_ids or not all(_is_int(i) for i in word_ids):
            raise ValidationError("wordIds must be a non-empty list of integers")
    if list_id is not None:
        _require_int("listId", list_id, minimum=1)
    rng = rng or random.Random()
    size = config.MINI_SET_SIZE

    kid = db.get_kid(kid_id)
    if kid is None:
        raise NotFoundError(f"learner {kid_id} not found")
    max_level = _max_level()
    level = rating.clamp_level(kid.level, max_level)

    suggested_level: Optional[int] = None
    if assessment:
        words = selection.select_diagnostic_words(max_level, size, rng=rng)
        suggested_level = rating.rating_to_level(kid.rating, max_level)
    elif word_ids is not None:
        wanted = list(dict.fromkeys(word_ids))[:size]
        words = db.get_words_by_ids(wanted)
        if len(words) != len(wanted):
            raise NotFoundError("one or more words not found")
    elif list_id is not None:
        list_words = db.get_custom_list_words(list_id)
        if list_words is None:
            raise NotFoundError(f"list {list_id} not found")
        words = selection.select_list_words(kid_id, list_words, level, size, rng=rng)
    else:
        words = selection.select_level_words(kid_id, level, size, rng=rng)
    if not words:
        raise NotFoundError(f"no words available at level {level}")

    first_prompt = prompt.build_prompt(words[0].word, level, mode, rng=rng)
    state = transition(SessionState.START.value, Action.START, SessionState.SPELLING)
    session_id = uuid.uuid4().hex
    with session_lock(session_id):
        db.create_practice_session(
            session_id=session_id,
            kid_id=kid_id,
            state=state.value,
            level=level,
            word_ids=[w.id for w in words],
            current_prompt=first_prompt.to_dict(),
            prompt_mode=mode,
            list_id=list_id,
            assessment=assessment,
            assessment_max_level=max_level if assessment else None,
            assessment_suggested_level=suggested_level,
        )
    logger.info("Started session %s for learner %s at level %d (%d words%s)",
                session_id, kid_id, level, len(words), ", assessment" if assessment else "")
    return StartResult(
        session_id=session_id,
        current_word=words[0].to_dict(),
        current_prompt=first_prompt.to_dict(),
        word_index=0,
        level=level,
        assessment_suggested_level=suggested_level,
        assessment_max_level=max_level if assessment else None,
    )


# ----------------------------------------------------------------------
# SUBMIT
# ----------------------------------------------------------------------

def _group_results(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """One entry per word in first-seen order; a single miss marks the word missed."""
    by_word: Dict[int, Dict[str, Any]] = {}
    for result in results:
        entry = by_word.get(result["wordId"])
        if entry is None:
            by_word[result["wordId"]] = dict(result)
        elif entry["correct"] and not result["correct"]:
            entry["correct"] = False
            entry["userSpelling"] = result["userSpelling"]
    return list(by_word.values())


def build_break_summary(
    mini_set_index: int,
    level: int,
    results: List[Dict[str, Any]],
) -> BreakSummary:
    """
    Summarize a mini-set from its results in attempt order.

    A word repeated in the mini-set is listed once. It counts as missed if any
    of its attempts was wrong, and reports the first wrong spelling.
    """
    summary = BreakSummary(mini_set_index=mini_set_index, level=level)
    for result in _group_results(results):
        if result["correct"]:
            summary.words_correct.append({"wordId": result["wordId"], "word": result["word"]})
        else:
            summary.words_missed.append({
                "wordId": result["wordId"],
                "word": result["word"],
                "userSpelling": result["userSpelling"],
            })
    return summary


def submit_attempt(
    session_id: str,
    word_id: int,
    user_spelling: str,
    response_ms: int,
    replay_count: int = 0,
    edit_count: Optional[int] = None,
    input_mode: Optional[str] = None,
    prompt_id: Optional[str] = None,
    advance: bool = True,
    rng: Optional[random.Random] = None,
) -> SubmitResult:
    """
    Score one spelling for the session's current word.

    The attempt, the learner's rating update and the session's progress are
    stored together. With ``advance=False`` the answer is only checked: the
    result carries ``RETRY`` and nothing is written.
    """
    _require_session_id(session_id)
    _require_int("wordId", word_id, minimum=1)
    if not isinstance(user_spelling, str):
        raise ValidationError("userSpelling must be a string")
    if len(user_spelling) > config.MAX_SPELLING_LENGTH:
        raise ValidationError(f"userSpelling is longer than {config.MAX_SPELLING_LENGTH} characters")
    _require_int("responseMs", response_ms)
    _require_int("replayCount", replay_count)
    if edit_count is not None:
        _require_int("editCount", edit_count)
    if input_mode is not None and input_mode not in prompt.INPUT_MODES:
        raise ValidationError(f"unknown input mode: {input_mode}")
    _require_bool("advance", advance)
    rng = rng or random.Random()

    with session_lock(session_id):
        practice = _load(session_id)
        require_state(practice.state, Action.SUBMIT)
        expected_word_id = practice.word_ids[practice.word_index]
        if word_id != expected_word_id:
            raise StateConflictError(f"word {word_id} is not the current word")
        current_prompt = prompt.PromptData.from_dict(practice.current_prompt)
        if prompt_id is not None and prompt_id != current_prompt.prompt_id:
            raise StateConflictError("prompt has already been answered")

        word = db.get_word(word_id)
        if word is None:
            raise NotFoundError(f"word {word_id} not found")
        analysis = diff.analyze_spelling(word.word, user_spelling)
        feedback = dict(correct=analysis.correct, correct_spelling=word.word,
                        error_details=analysis.to_dict())
        if not advance:
            return SubmitResult(next_step=NextStep.RETRY, **feedback)

        kid = db.get_kid(practice.kid_id)
        if kid is None:
            raise NotFoundError(f"learner {practice.kid_id} not found")
        rating_after = rating.update_rating(kid.rating, analysis.correct, word.level)
        attempt_fields = {
            "word_id": word.id,
            "mini_set_index": practice.mini_set_index,
            "word_presented": word.word,
            "user_spelling": analysis.submission,
            "correct": analysis.correct,
            "rating_before": kid.rating,
            "rating_after": rating_after,
            "response_ms": response_ms,
            "replay_count": replay_count,
            "edit_count": edit_count,
            "input_mode": input_mode or current_prompt.input_mode,
            "prompt_mode": current_prompt.prompt_mode,
            "prompt_id": current_prompt.prompt_id,
        }

        next_index = practice.word_index + 1
        if next_index < len(practice.word_ids):
            next_word = db.get_word(practice.word_ids[next_index])
            if next_word is None:
                raise NotFoundError(f"word {practice.word_ids[next_index]} not found")
            next_prompt = prompt.build_prompt(next_word.word, practice.level_current,
                                              practice.prompt_mode, rng=rng)
            state = transition(practice.state, Action.SUBMIT, SessionState.SPELLING)
            attempt = db.record_attempt(session_id, attempt_fields, {
                "state": state.value,
                "word_index": next_index,
                "current_prompt": next_prompt.to_dict(),
            })
            return SubmitResult(
                next_step=NextStep.NEXT_WORD,
                attempt_id=attempt.id,
                next_word=next_word.to_dict(),
                next_prompt=next_prompt.to_dict(),
                **feedback,
            )

        earlier = db.list_attempts(session_id=session_id, mini_set_index=practice.mini_set_index)
        results = [
            {"wordId": a.word_id, "word": a.word_presented, "correct": a.correct,
             "userSpelling": a.user_spelling}
            for a in earlier
        ]
        results.append({"wordId": word.id, "word": word.word, "correct": analysis.correct,
                        "userSpelling": analysis.submission})
        summary = build_break_summary(practice.mini_set_index, practice.level_current, results)
        lesson = lessons.generate_lesson([w["word"] for w in summary.words_missed])

        state = transition(practice.state, Action.SUBMIT, SessionState.BREAK)
        attempt = db.record_attempt(
            session_id,
            attempt_fields,
            {
                "state": state.value,
                "word_index": next_index,
                "current_prompt": None,
                "mini_sets_completed": practice.mini_sets_completed + 1,
            },
            mini_set_summary={
                "index": practice.mini_set_index,
                "level_effective": practice.level_current,
                "correct_count": summary.correct_count,
                "words_json": results,
                "lesson_json": lesson.to_dict() if lesson else None,
            },
        )
    logger.info("Session %s mini-set %d done: %d/%d correct",
                session_id, practice.mini_set_index, summary.correct_count,
                summary.correct_count + len(summary.words_missed))
    return SubmitResult(
        next_step=NextStep.BREAK,
        attempt_id=attempt.id,
        break_summary=summary,
        lesson=lesson,
        **feedback,
    )


# ----------------------------------------------------------------------
# COMPLETE_MINISET
# ----------------------------------------------------------------------

def _missed_word_ids(session_id: str) -> List[int]:
    summaries = db.list_mini_set_summaries(session_id)
    if not summaries:
        return []
    return [r["wordId"] for r in _group_results(summaries[-1].words_json) if not r["correct"]]


def complete_mini_set(
    session_id: str,
    action: str,
    rng: Optional[random.Random] = None,
) -> MiniSetResult:
    """Leave the break through the learner's chosen branch and issue the next mini-set."""
    _require_session_id(session_id)
    try:
        branch = MiniSetAction(action)
    except ValueError:
        raise ValidationError(f"unknown mini-set action: {action}") from None
    rng = rng or random.Random()
    size = config.MINI_SET_SIZE

    with session_lock(session_id):
        practice = _load(session_id)
        require_state(practice.state, Action.COMPLETE_MINISET)
        max_level = _max_level()
        level = rating.clamp_level(practice.level_current, max_level)

        if branch is MiniSetAction.PRACTICE_MISSED:
            missed = _missed_word_ids(session_id)
            if not missed:
                raise ValidationError("no missed words to practice")
            words = db.get_words_by_ids(selection.cycle_to_size(missed, size))
        else:
            if branch is MiniSetAction.CHALLENGE_JUMP:
                level = rating.clamp_level(level + 1, max_level)
            used = _used_word_ids(practice)
            list_words = db.get_custom_list_words(practice.list_id) if practice.list_id else None
            if list_words and branch is MiniSetAction.CONTINUE:
                words = selection.select_list_words(practice.kid_id, list_words, level, size,
                                                    exclude=used, rng=rng)
            else:
                words = selection.select_level_words(practice.kid_id, level, size,
                                                     exclude=used, rng=rng)
        if not words:
            raise NotFoundError(f"no words available at level {level}")

        first_prompt = prompt.build_prompt(words[0].word, level, practice.prompt_mode, rng=rng)
        state = transition(practice.state, Action.COMPLETE_MINISET, SessionState.SPELLING)
        db.update_practice_session(
            session_id,
            {
                "state": state.value,
                "level_current": level,
                "word_ids": [w.id for w in words],
                "word_index": 0,
                "mini_set_index": practice.mini_set_index + 1,
                "current_prompt": first_prompt.to_dict(),
            },
            # Assessment sessions never move the stored level
            kid_level=None if practice.assessment else level,
        )
    logger.info("Session %s: %s into mini-set %d at level %d",
                session_id, branch.value, practice.mini_set_index + 1, level)
    return MiniSetResult(
        current_word=words[0].to_dict(),
        current_prompt=first_prompt.to_dict(),
        word_index=0,
        level=level,
    )


# ----------------------------------------------------------------------
# FINISH
# ----------------------------------------------------------------------

def _finish_result(practice: db.PracticeSession) -> FinishResult:
    return FinishResult(
        attempts_total=practice.attempts_total,
        correct_total=practice.correct_total,
        mini_sets_completed=practice.mini_sets_completed,
        level_end=practice.level_end,
        assessment_suggested_level=practice.assessment_suggested_level if practice.assessment else None,
        assessment_max_level=practice.assessment_max_level if practice.assessment else None,
    )


def finish_session(session_id: str) -> FinishResult:
    """Close the session. Finishing a completed session returns its stored totals."""
    _require_session_id(session_id)
    with session_lock(session_id):
        practice = _load(session_id)
        if practice.state == SessionState.COMPLETE.value:
            return _finish_result(practice)
        state = transition(practice.state, Action.FINISH, SessionState.COMPLETE)

        kid = db.get_kid(practice.kid_id)
        if kid is None:
            raise NotFoundError(f"learner {practice.kid_id} not found")
        suggested: Optional[int] = None
        if practice.assessment:
            attempts = db.list_attempts(session_id=session_id)
            levels = {w.id: w.level for w in db.get_words_by_ids(list({a.word_id for a in attempts}))}
            max_level = practice.assessment_max_level or _max_level()
            if attempts:
                suggested = selection.estimate_assessment_level(
                    [(levels.get(a.word_id, 1), a.correct) for a in attempts], max_level)
        finished = db.finish_practice_session(session_id, state.value, kid.level, suggested)
    logger.info("Finished session %s: %d/%d correct", session_id,
                finished.correct_total, finished.attempts_total)
    return _finish_result(finished)


# ----------------------------------------------------------------------
# Action boundary
# ----------------------------------------------------------------------

def _field(payload: Mapping[str, Any], name: str, required: bool = True, default: Any = None) -> Any:
    if name in payload and payload[name] is not None:
        return payload[name]
    if required:
        raise ValidationError(f"{name} is required")
    return default


def handle_action(action_type: str, payload: Mapping[str, Any],
                  rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Dispatch one camelCase action request and return its camelCase response."""
    if not isinstance(payload, Mapping):
        raise ValidationError("payload must be an object")
    try:
        action = Action(action_type)
    except ValueError:
        raise ValidationError(f"unknown action type: {action_type}") from None

    if action is Action.START:
        result: Any = start_session(
            kid_id=_field(payload, "learnerId"),
            word_ids=_field(payload, "wordIds", required=False),
            list_id=_field(payload, "listId", required=False),
            assessment=_field(payload, "assessment", required=False, default=False),
            mode=_field(payload, "mode", required=False, default="audio"),
            rng=rng,
        )
    elif action is Action.SUBMIT:
        result = submit_attempt(
            session_id=_field(payload, "sessionId"),
            word_id=_field(payload, "wordId"),
            user_spelling=_field(payload, "userSpelling"),
            response_ms=_field(payload, "responseMs"),
            replay_count=_field(payload, "replayCount", required=False, default=0),
            edit_count=_field(payload, "editCount", required=False),
            input_mode=_field(payload, "inputMode", required=False),
            prompt_id=_field(payload, "promptId", required=False),
            advance=_field(payload, "advance", required=False, default=True),
            rng=rng,
        )
    elif action is Action.COMPLETE_MINISET:
        result = complete_mini_set(
            session_id=_field(payload, "sessionId"),
            action=_field(payload, "action"),
            rng=rng,
        )
    else:
        result = finish_session(_field(payload, "sessionId"))
    return result.to_dict()
