"""
Per-session mutual exclusion backed by the ``session_locks`` table.

Acquisition is one atomic write: insert the lock row, or, when the session id
is already taken, update it only if the recorded expiry is in the past. There
is no waiting; a caller that does not get the lock must fail the request.
"""
import datetime
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import config, db
from .errors import LockNotAcquiredError, StoreError

logger = logging.getLogger(__name__)


@dataclass
class LockResult:
    acquired: bool
    token: Optional[str] = None
    expires_at: Optional[datetime.datetime] = None


def acquire(
    session_id: str,
    ttl_seconds: Optional[int] = None,
    now: Optional[datetime.datetime] = None,
) -> LockResult:
    """Try to take the lock for ``session_id``; never blocks or retries."""
    ttl = config.LOCK_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    now = now or db.utcnow()
    token = uuid.uuid4().hex
    expires_at = now + datetime.timedelta(seconds=ttl)

    session = db.get_session()
    try:
        try:
            session.add(db.SessionLock(
                session_id=session_id,
                lock_token=token,
                locked_at=now,
                expires_at=expires_at,
            ))
            session.commit()
            return LockResult(True, token, expires_at)
        except IntegrityError:
            session.rollback()

        # Row exists: take it over only if it has already expired
        stolen = (
            session.query(db.SessionLock)
            .filter(db.SessionLock.session_id == session_id, db.SessionLock.expires_at < now)
            .update(
                {
                    db.SessionLock.lock_token: token,
                    db.SessionLock.locked_at: now,
                    db.SessionLock.expires_at: expires_at,
                },
                synchronize_session=False,
            )
        )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StoreError(f"lock store unavailable: {exc.__class__.__name__}") from exc
    finally:
        session.close()

    if stolen == 1:
        logger.info("Reclaimed expired lock for session %s", session_id)
        return LockResult(True, token, expires_at)
    logger.debug("Lock for session %s is held", session_id)
    return LockResult(False)


def release(session_id: str, token: str) -> bool:
    """Delete the lock row if ``token`` still owns it. Returns True if a row was removed."""
    session = db.get_session()
    try:
        deleted = (
            session.query(db.SessionLock)
            .filter(db.SessionLock.session_id == session_id, db.SessionLock.lock_token == token)
            .delete(synchronize_session=False)
        )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StoreError(f"lock store unavailable: {exc.__class__.__name__}") from exc
    finally:
        session.close()
    if deleted == 0:
        logger.warning("Lock for session %s was not released: token no longer owns it", session_id)
    return deleted == 1


@contextmanager
def session_lock(session_id: str, ttl_seconds: Optional[int] = None) -> Iterator[LockResult]:
    """Hold the session lock for the duration of the block."""
    result = acquire(session_id, ttl_seconds)
    if not result.acquired:
        raise LockNotAcquiredError(f"session {session_id} is busy")
    try:
        yield result
    finally:
        try:
            release(session_id, result.token)
        except StoreError as exc:
            # The TTL frees the row; the operation's own outcome stands
            logger.error("Failed to release lock for session %s: %s", session_id, exc)
