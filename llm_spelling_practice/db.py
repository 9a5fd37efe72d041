from __future__ import annotations
import csv
import datetime
import logging
import re
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import (
    JSON, Boolean, DateTime, Float as SAFloat, Integer, String, Text, UniqueConstraint,
    create_engine, func, inspect,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from . import config, rating, stats
from .errors import NotFoundError, StateConflictError, StoreError, ValidationError

logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp; SQLite stores datetimes without an offset."""
    return datetime.datetime.now(datetime.UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


engine = create_engine(f"sqlite:///{config.DB_PATH}")
# Prevent attribute expiration on commit so returned objects remain accessible
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


class Word(Base):
    __tablename__ = "spelling_words"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    word: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    definition: Mapped[Optional[str]] = mapped_column(Text)
    example_sentence: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "word": self.word,
            "level": self.level,
            "definition": self.definition or "",
            "exampleSentence": self.example_sentence or "",
        }


class Kid(Base):
    __tablename__ = "kids"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=config.DEFAULT_LEVEL)
    rating: Mapped[float] = mapped_column(SAFloat, default=config.DEFAULT_RATING)
    total_attempts: Mapped[int] = mapped_column(Integer, default=0)
    successful_attempts: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class PracticeSession(Base):
    """One practice session. ``word_ids`` is the active mini-set."""
    __tablename__ = "practice_sessions"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    kid_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    state: Mapped[str] = mapped_column(String, nullable=False)
    level_start: Mapped[int] = mapped_column(Integer, nullable=False)
    level_current: Mapped[int] = mapped_column(Integer, nullable=False)
    level_end: Mapped[Optional[int]] = mapped_column(Integer)
    word_ids: Mapped[List[int]] = mapped_column(JSON, default=list)
    word_index: Mapped[int] = mapped_column(Integer, default=0)
    mini_set_index: Mapped[int] = mapped_column(Integer, default=0)
    mini_sets_completed: Mapped[int] = mapped_column(Integer, default=0)
    current_prompt: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    attempts_total: Mapped[int] = mapped_column(Integer, default=0)
    correct_total: Mapped[int] = mapped_column(Integer, default=0)
    prompt_mode: Mapped[str] = mapped_column(String, default="audio")
    list_id: Mapped[Optional[int]] = mapped_column(Integer)
    assessment: Mapped[bool] = mapped_column(Boolean, default=False)
    assessment_max_level: Mapped[Optional[int]] = mapped_column(Integer)
    assessment_suggested_level: Mapped[Optional[int]] = mapped_column(Integer)
    started_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)
    ended_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Attempt(Base):
    """Append-only record of one scored submission."""
    __tablename__ = "spelling_attempts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    kid_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    word_id: Mapped[int] = mapped_column(Integer, nullable=False)
    mini_set_index: Mapped[int] = mapped_column(Integer, default=0)
    word_presented: Mapped[str] = mapped_column(String, nullable=False)
    user_spelling: Mapped[str] = mapped_column(String, nullable=False)
    correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    rating_before: Mapped[float] = mapped_column(SAFloat, nullable=False)
    rating_after: Mapped[float] = mapped_column(SAFloat, nullable=False)
    response_ms: Mapped[int] = mapped_column(Integer, default=0)
    replay_count: Mapped[int] = mapped_column(Integer, default=0)
    edit_count: Mapped[Optional[int]] = mapped_column(Integer)
    input_mode: Mapped[str] = mapped_column(String, nullable=False)
    prompt_mode: Mapped[str] = mapped_column(String, default="audio")
    # Idempotency token: one scored attempt per issued prompt
    prompt_id: Mapped[Optional[str]] = mapped_column(String(32), unique=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "wordId": self.word_id,
            "wordPresented": self.word_presented,
            "userSpelling": self.user_spelling,
            "correct": self.correct,
            "ratingBefore": self.rating_before,
            "ratingAfter": self.rating_after,
            "responseMs": self.response_ms,
            "replayCount": self.replay_count,
            "editCount": self.edit_count,
            "inputMode": self.input_mode,
            "createdAt": self.created_at.isoformat(),
        }


class MiniSetSummary(Base):
    __tablename__ = "mini_set_summaries"
    __table_args__ = (UniqueConstraint("session_id", "index"),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    index: Mapped[int] = mapped_column(Integer, nullable=False)
    level_effective: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    words_json: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    lesson_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)


class SessionLock(Base):
    __tablename__ = "session_locks"
    session_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    lock_token: Mapped[str] = mapped_column(String(32), nullable=False)
    locked_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)


class Mastery(Base):
    __tablename__ = "spelling_mastery"
    __table_args__ = (UniqueConstraint("kid_id", "word_id"),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kid_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    word_id: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[int] = mapped_column(Integer, default=0)  # 0..3
    last_seen_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)


class CustomList(Base):
    __tablename__ = "custom_lists"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)


class CustomListWord(Base):
    __tablename__ = "custom_list_words"
    __table_args__ = (UniqueConstraint("list_id", "word_id"),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    list_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    word_id: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)


MASTERY_MAX = 3
WORD_PATTERN = re.compile(r"^[a-z]+(?:['-][a-z]+)*$")


def is_db_initialized() -> bool:
    """Check if the database is already initialized by checking if tables exist."""
    table_names = set(inspect(engine).get_table_names())
    return {"spelling_words", "kids", "practice_sessions", "spelling_attempts"}.issubset(table_names)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()


@contextmanager
def session_scope() -> Iterator[Session]:
    """One transaction: commit on success, roll back on any error.

    Driver and ORM failures surface as ``StoreError``.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Store failure: %s", exc)
        raise StoreError(f"store unavailable: {exc.__class__.__name__}") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ----------------------------------------------------------------------
# Word store
# ----------------------------------------------------------------------

def normalize_word(text: str) -> str:
    return text.strip().lower()


def add_word(word: str, level: int, definition: str = "", example_sentence: str = "") -> bool:
    """Add a word to the bank. Returns True if new, False if the spelling already exists."""
    spelling = normalize_word(word)
    if not WORD_PATTERN.match(spelling):
        raise ValidationError(f"not a valid spelling: {word!r}")
    if level < 1:
        raise ValidationError(f"level must be >= 1, got {level}")

    with session_scope() as session:
        if session.query(Word).filter_by(word=spelling).first():
            return False
        session.add(Word(word=spelling, level=level,
                         definition=definition or None,
                         example_sentence=example_sentence or None))
    return True


def import_words_csv(csv_path: str) -> int:
    """Import words from a CSV with ``word`` and ``level`` columns (``definition`` and
    ``example_sentence`` optional). Existing spellings and invalid rows are skipped.
    Returns the number of newly imported words."""
    imported = 0
    with open(csv_path, "r", encoding="utf-8-sig") as f:
        for row in csv.DictReader(f):
            try:
                level = int(row.get("level", ""))
                if add_word(row.get("word", ""), level,
                            row.get("definition", "") or "",
                            row.get("example_sentence", "") or ""):
                    imported += 1
            except (ValueError, ValidationError) as exc:
                logger.warning("Skipping word row %r: %s", row, exc)
    logger.info("Imported %d words from %s", imported, csv_path)
    return imported


def get_word(word_id: int) -> Optional[Word]:
    with session_scope() as session:
        return session.get(Word, word_id)


def get_words_by_ids(word_ids: Sequence[int]) -> List[Word]:
    """Words for the given ids, in the order given; unknown ids are left out."""
    if not word_ids:
        return []
    with session_scope() as session:
        rows = session.query(Word).filter(Word.id.in_(list(word_ids))).all()
    by_id = {w.id: w for w in rows}
    return [by_id[i] for i in word_ids if i in by_id]


def get_words_by_level(level: int) -> List[Word]:
    with session_scope() as session:
        return session.query(Word).filter(Word.level == level).order_by(Word.id).all()


def get_max_level() -> int:
    """Highest word level in the bank, 0 when the bank is empty."""
    with session_scope() as session:
        value = session.query(func.max(Word.level)).scalar()
    return int(value or 0)


def count_words() -> int:
    with session_scope() as session:
        return session.query(Word).count()


# ----------------------------------------------------------------------
# Learner store
# ----------------------------------------------------------------------

def add_kid(parent_id: str, display_name: str, level: Optional[int] = None,
            rating_value: Optional[float] = None) -> Kid:
    if not parent_id or not display_name:
        raise ValidationError("parent_id and display_name are required")
    start_level = config.DEFAULT_LEVEL if level is None else level
    if start_level < 1:
        raise ValidationError(f"level must be >= 1, got {start_level}")
    kid = Kid(
        parent_id=parent_id,
        display_name=display_name,
        level=start_level,
        rating=config.DEFAULT_RATING if rating_value is None else rating_value,
        total_attempts=0,
        successful_attempts=0,
    )
    with session_scope() as session:
        session.add(kid)
    return kid


def get_kid(kid_id: int) -> Optional[Kid]:
    with session_scope() as session:
        return session.get(Kid, kid_id)


def _require_kid(session: Session, kid_id: int) -> Kid:
    kid = session.get(Kid, kid_id)
    if kid is None:
        raise NotFoundError(f"learner {kid_id} not found")
    return kid


def set_kid_level(kid_id: int, level: int) -> None:
    with session_scope() as session:
        _require_kid(session, kid_id).level = level


def set_kid_rating(kid_id: int, rating_value: float, total_attempts: int, successful_attempts: int) -> None:
    with session_scope() as session:
        kid = _require_kid(session, kid_id)
        kid.rating = rating_value
        kid.total_attempts = total_attempts
        kid.successful_attempts = successful_attempts


def apply_level_override(kid_id: int, level: int) -> Kid:
    """Explicitly set a learner's level, clamped to the bank, and reset the rating
    to that level's anchor. This starts a new rating chain."""
    max_level = get_max_level()
    if max_level < 1:
        raise NotFoundError("word bank is empty")
    next_level = rating.clamp_level(level, max_level)
    with session_scope() as session:
        kid = _require_kid(session, kid_id)
        kid.level = next_level
        kid.rating = rating.level_to_base_elo(next_level)
    logger.info("Learner %s level set to %s", kid_id, next_level)
    return kid


# ----------------------------------------------------------------------
# Attempt store
# ----------------------------------------------------------------------

def _upsert_mastery(session: Session, kid_id: int, word_id: int, correct: bool) -> None:
    row = session.query(Mastery).filter_by(kid_id=kid_id, word_id=word_id).one_or_none()
    if row is None:
        session.add(Mastery(kid_id=kid_id, word_id=word_id, score=1 if correct else 0))
        return
    row.score = min(row.score + 1, MASTERY_MAX) if correct else max(row.score - 1, 0)
    row.last_seen_at = utcnow()


def record_attempt(
    session_id: str,
    attempt_fields: Dict[str, Any],
    session_patch: Dict[str, Any],
    mini_set_summary: Optional[Dict[str, Any]] = None,
) -> Attempt:
    """
    Persist one scored attempt and everything that depends on it in a single
    transaction: the attempt row, the learner's rating and counters, the
    mastery score, the session progress patch and, at the end of a mini-set,
    its summary.

    The learner row is updated only if its rating still equals the attempt's
    ``rating_before``, so a concurrent writer cannot fork the rating chain.
    """
    correct = bool(attempt_fields["correct"])
    with session_scope() as session:
        practice = session.get(PracticeSession, session_id)
        if practice is None:
            raise NotFoundError(f"session {session_id} not found")

        updated = (
            session.query(Kid)
            .filter(Kid.id == practice.kid_id, Kid.rating == attempt_fields["rating_before"])
            .update(
                {
                    Kid.rating: attempt_fields["rating_after"],
                    Kid.total_attempts: Kid.total_attempts + 1,
                    Kid.successful_attempts: Kid.successful_attempts + (1 if correct else 0),
                    Kid.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise StateConflictError("learner rating changed since it was read")

        attempt = Attempt(session_id=session_id, kid_id=practice.kid_id, **attempt_fields)
        session.add(attempt)
        try:
            session.flush()
        except IntegrityError as exc:
            raise StateConflictError("attempt for this prompt was already recorded") from exc
        _upsert_mastery(session, practice.kid_id, attempt.word_id, correct)

        for key, value in session_patch.items():
            setattr(practice, key, value)
        practice.attempts_total = practice.attempts_total + 1
        if correct:
            practice.correct_total = practice.correct_total + 1

        if mini_set_summary is not None:
            session.add(MiniSetSummary(session_id=session_id, **mini_set_summary))
    return attempt


def list_attempts(
    session_id: Optional[str] = None,
    kid_id: Optional[int] = None,
    mini_set_index: Optional[int] = None,
    word_id: Optional[int] = None,
    correct: Optional[bool] = None,
    since: Optional[datetime.datetime] = None,
    limit: Optional[int] = None,
    newest_first: bool = False,
) -> List[Attempt]:
    """Attempts for a session or a learner, ordered by creation time."""
    if session_id is None and kid_id is None:
        raise ValidationError("session_id or kid_id is required")
    with session_scope() as session:
        query = session.query(Attempt)
        if session_id is not None:
            query = query.filter(Attempt.session_id == session_id)
        if kid_id is not None:
            query = query.filter(Attempt.kid_id == kid_id)
        if mini_set_index is not None:
            query = query.filter(Attempt.mini_set_index == mini_set_index)
        if word_id is not None:
            query = query.filter(Attempt.word_id == word_id)
        if correct is not None:
            query = query.filter(Attempt.correct == correct)
        if since is not None:
            query = query.filter(Attempt.created_at >= since)
        if newest_first:
            query = query.order_by(Attempt.created_at.desc(), Attempt.id.desc())
        else:
            query = query.order_by(Attempt.created_at.asc(), Attempt.id.asc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()


def get_word_mistake_stats(kid_id: int, word_id: int,
                           since: Optional[datetime.datetime] = None) -> List[Dict[str, Any]]:
    misses = list_attempts(kid_id=kid_id, word_id=word_id, correct=False, since=since)
    return stats.build_word_mistake_stats(a.user_spelling for a in misses)


def get_mastery_score(kid_id: int, word_id: int) -> int:
    with session_scope() as session:
        row = session.query(Mastery).filter_by(kid_id=kid_id, word_id=word_id).one_or_none()
    return row.score if row else 0


# ----------------------------------------------------------------------
# Session store
# ----------------------------------------------------------------------

def create_practice_session(session_id: str, kid_id: int, state: str, level: int,
                            word_ids: List[int], current_prompt: Optional[Dict[str, Any]],
                            prompt_mode: str = "audio", list_id: Optional[int] = None,
                            assessment: bool = False,
                            assessment_max_level: Optional[int] = None,
                            assessment_suggested_level: Optional[int] = None) -> PracticeSession:
    practice = PracticeSession(
        id=session_id,
        kid_id=kid_id,
        state=state,
        level_start=level,
        level_current=level,
        word_ids=list(word_ids),
        word_index=0,
        mini_set_index=0,
        mini_sets_completed=0,
        current_prompt=current_prompt,
        attempts_total=0,
        correct_total=0,
        prompt_mode=prompt_mode,
        list_id=list_id,
        assessment=assessment,
        assessment_max_level=assessment_max_level,
        assessment_suggested_level=assessment_suggested_level,
    )
    with session_scope() as session:
        session.add(practice)
    return practice


def get_practice_session(session_id: str) -> Optional[PracticeSession]:
    with session_scope() as session:
        return session.get(PracticeSession, session_id)


def update_practice_session(session_id: str, patch: Dict[str, Any],
                            kid_level: Optional[int] = None) -> PracticeSession:
    """Apply ``patch`` to a session and, when given, set the learner's level in the same transaction."""
    with session_scope() as session:
        practice = session.get(PracticeSession, session_id)
        if practice is None:
            raise NotFoundError(f"session {session_id} not found")
        for key, value in patch.items():
            setattr(practice, key, value)
        if kid_level is not None:
            _require_kid(session, practice.kid_id).level = kid_level
    return practice


def finish_practice_session(session_id: str, state: str, level_end: int,
                            assessment_suggested_level: Optional[int] = None) -> PracticeSession:
    """Stamp the end of a session with totals counted from its attempt rows."""
    with session_scope() as session:
        practice = session.get(PracticeSession, session_id)
        if practice is None:
            raise NotFoundError(f"session {session_id} not found")
        total = session.query(Attempt).filter(Attempt.session_id == session_id).count()
        correct = (session.query(Attempt)
                   .filter(Attempt.session_id == session_id, Attempt.correct.is_(True))
                   .count())
        practice.attempts_total = total
        practice.correct_total = correct
        practice.level_end = level_end
        practice.ended_at = utcnow()
        practice.current_prompt = None
        practice.state = state
        if assessment_suggested_level is not None:
            practice.assessment_suggested_level = assessment_suggested_level
    return practice


def get_session_word_ids(session_id: str) -> List[int]:
    """Distinct word ids attempted in a session, in first-seen order."""
    seen: List[int] = []
    for attempt in list_attempts(session_id=session_id):
        if attempt.word_id not in seen:
            seen.append(attempt.word_id)
    return seen


def list_mini_set_summaries(session_id: str) -> List[MiniSetSummary]:
    with session_scope() as session:
        return (session.query(MiniSetSummary)
                .filter(MiniSetSummary.session_id == session_id)
                .order_by(MiniSetSummary.index.asc())
                .all())


def get_public_session(session_id: str) -> Optional[Dict[str, Any]]:
    """Read-only totals for sharing; only completed sessions are visible."""
    practice = get_practice_session(session_id)
    if practice is None or practice.ended_at is None:
        return None
    history = [
        {"correct": a.correct, "ratingBefore": a.rating_before, "ratingAfter": a.rating_after}
        for a in list_attempts(session_id=session_id)
    ]
    return {
        "sessionId": practice.id,
        "kidId": practice.kid_id,
        "attemptsTotal": practice.attempts_total,
        "correctTotal": practice.correct_total,
        "miniSetsCompleted": practice.mini_sets_completed,
        "levelEnd": practice.level_end,
        "endedAt": practice.ended_at.isoformat(),
        "history": history,
    }


# ----------------------------------------------------------------------
# Custom lists
# ----------------------------------------------------------------------

def create_custom_list(parent_id: str, name: str, word_ids: Sequence[int]) -> int:
    """Create a list of existing words. Returns the new list id."""
    if not name.strip():
        raise ValidationError("list name is required")
    unique_ids = list(dict.fromkeys(word_ids))
    found = get_words_by_ids(unique_ids)
    if len(found) != len(unique_ids):
        raise NotFoundError("one or more words not found")
    with session_scope() as session:
        custom = CustomList(parent_id=parent_id, name=name.strip())
        session.add(custom)
        session.flush()
        for position, word_id in enumerate(unique_ids):
            session.add(CustomListWord(list_id=custom.id, word_id=word_id, position=position))
        list_id = custom.id
    return list_id


def get_custom_list_words(list_id: int) -> Optional[List[Word]]:
    """Words on a custom list in list order, or None if the list does not exist."""
    with session_scope() as session:
        if session.get(CustomList, list_id) is None:
            return None
        word_ids = [row.word_id for row in (session.query(CustomListWord)
                                            .filter(CustomListWord.list_id == list_id)
                                            .order_by(CustomListWord.position.asc())
                                            .all())]
    return get_words_by_ids(word_ids)


# ----------------------------------------------------------------------
# Progress
# ----------------------------------------------------------------------

def get_kid_progress(kid_id: int) -> Dict[str, Any]:
    """Rating, level and history-derived stats for a learner."""
    kid = get_kid(kid_id)
    if kid is None:
        raise NotFoundError(f"learner {kid_id} not found")
    attempts = list_attempts(kid_id=kid_id)
    with session_scope() as session:
        sessions_completed = (session.query(PracticeSession)
                              .filter(PracticeSession.kid_id == kid_id,
                                      PracticeSession.ended_at.isnot(None))
                              .count())
    percentile = rating.rating_to_percentile(kid.rating)
    accuracy = (kid.successful_attempts / kid.total_attempts * 100) if kid.total_attempts else 0.0
    return {
        "kid_id": kid.id,
        "display_name": kid.display_name,
        "level": kid.level,
        "rating": kid.rating,
        "percentile": percentile,
        "percentile_level": rating.percentile_to_level(percentile, get_max_level()),
        "level_percentile": rating.level_to_percentile_midpoint(kid.level),
        "total_attempts": kid.total_attempts,
        "successful_attempts": kid.successful_attempts,
        "accuracy": accuracy,
        "streak": stats.compute_current_streak(attempts),
        "unique_words": stats.compute_unique_words(attempts),
        "sessions_completed": sessions_completed,
        # Non-zero after level overrides, which start a new rating chain
        "rating_chain_breaks": len(stats.find_rating_chain_breaks(attempts)),
    }


__all__ = [
    "Base", "Word", "Kid", "PracticeSession", "Attempt", "MiniSetSummary", "SessionLock",
    "Mastery", "CustomList", "CustomListWord",
    "init_db", "is_db_initialized", "get_session", "session_scope", "utcnow",
    "add_word", "import_words_csv", "get_word", "get_words_by_ids", "get_words_by_level",
    "get_max_level", "count_words",
    "add_kid", "get_kid", "set_kid_level", "set_kid_rating", "apply_level_override",
    "record_attempt", "list_attempts", "get_word_mistake_stats", "get_mastery_score",
    "create_practice_session", "get_practice_session", "update_practice_session",
    "finish_practice_session", "get_session_word_ids", "list_mini_set_summaries",
    "get_public_session", "create_custom_list", "get_custom_list_words", "get_kid_progress",
]
