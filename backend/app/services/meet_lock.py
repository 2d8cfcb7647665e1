"""
Meet Edit Lock: cooperative, short-lived advisory lock per meet.

States: Unlocked -> Locked(holder, expires_at) -> Unlocked.
A lock ends on explicit release or when it expires. Expiry is checked
lazily when someone tries to acquire; there is no background sweep.

Acquisition is a single conditional UPDATE, so two concurrent callers on an
unlocked meet cannot both win: exactly one row update succeeds.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import or_, update
from sqlmodel import Session

from app.models.meet import Meet
from app.models.user import User
from app.utils.errors import MeetLockedError
from app.utils.meet_guards import get_meet_or_404, require_mutable_meet
from app.utils.rbac import ActingUser

logger = logging.getLogger(__name__)

MEET_LOCK_TTL = timedelta(minutes=2)

_LOCK_ACTIVITY_LOG = os.getenv("LOCK_ACTIVITY_LOG", "false").lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class LockStatus:
    meet_id: int
    locked: bool
    locked_by_id: Optional[int] = None
    locked_by_username: Optional[str] = None
    lock_expires_at: Optional[datetime] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands timestamps back without an offset; they were written as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _username(session: Session, user_id: Optional[int]) -> Optional[str]:
    if user_id is None:
        return None
    user = session.get(User, user_id)
    return user.username if user else "another user"


def _clear_lock(meet: Meet) -> None:
    meet.locked_by_id = None
    meet.locked_at = None
    meet.lock_expires_at = None


def acquire_meet_lock(session: Session, meet_id: int, user_id: int, now: Optional[datetime] = None) -> LockStatus:
    """
    Acquire (or renew) the edit lock on a meet for `user_id`.

    Succeeds when the meet is unlocked, the lock has expired, or `user_id`
    already holds it; in every case the lock is re-stamped with a fresh TTL.

    Raises:
        NotFoundError: Meet does not exist
        StateViolationError: Meet was soft-deleted
        MeetLockedError: Another user holds an unexpired lock
    """
    now = _as_utc(now) or utcnow()
    require_mutable_meet(session, meet_id)
    expires_at = now + MEET_LOCK_TTL

    result = session.execute(
        update(Meet)
        .where(
            Meet.id == meet_id,
            Meet.deleted_at.is_(None),
            or_(
                Meet.locked_by_id.is_(None),
                Meet.lock_expires_at < now,
                Meet.locked_by_id == user_id,
            ),
        )
        .values(locked_by_id=user_id, locked_at=now, lock_expires_at=expires_at)
        .execution_options(synchronize_session=False)
    )
    session.commit()

    if result.rowcount == 0:
        meet = session.get(Meet, meet_id)
        session.refresh(meet)
        raise MeetLockedError(
            meet_id=meet_id,
            locked_by_username=_username(session, meet.locked_by_id),
            lock_expires_at=_as_utc(meet.lock_expires_at),
        )

    if _LOCK_ACTIVITY_LOG:
        logger.info("meet-lock-acquire meet=%d user=%d expires=%s", meet_id, user_id, expires_at.isoformat())

    return LockStatus(
        meet_id=meet_id,
        locked=True,
        locked_by_id=user_id,
        locked_by_username=_username(session, user_id),
        lock_expires_at=expires_at,
    )


def get_meet_lock_status(session: Session, meet_id: int, now: Optional[datetime] = None) -> LockStatus:
    """Current lock state. An expired lock is cleared on read."""
    now = _as_utc(now) or utcnow()
    meet = get_meet_or_404(session, meet_id)

    if meet.lock_expires_at is not None and _as_utc(meet.lock_expires_at) < now:
        _clear_lock(meet)
        session.add(meet)
        session.commit()

    if meet.locked_by_id is None:
        return LockStatus(meet_id=meet_id, locked=False)

    return LockStatus(
        meet_id=meet_id,
        locked=True,
        locked_by_id=meet.locked_by_id,
        locked_by_username=_username(session, meet.locked_by_id),
        lock_expires_at=_as_utc(meet.lock_expires_at),
    )


def release_meet_lock(session: Session, meet_id: int, user: ActingUser, now: Optional[datetime] = None) -> bool:
    """
    Release the lock on one meet.

    Coaches can only release their own lock; admins can release anyone's.
    Returns True when a lock was cleared, False when the meet was already
    unlocked.

    Raises:
        MeetLockedError: Someone else holds an unexpired lock
    """
    now = _as_utc(now) or utcnow()
    meet = get_meet_or_404(session, meet_id)

    if meet.locked_by_id is None:
        return False

    held_by_other = meet.locked_by_id != user.id
    expired = meet.lock_expires_at is not None and _as_utc(meet.lock_expires_at) < now
    if held_by_other and not expired and not user.is_admin:
        raise MeetLockedError(
            meet_id=meet_id,
            locked_by_username=_username(session, meet.locked_by_id),
            lock_expires_at=_as_utc(meet.lock_expires_at),
        )

    _clear_lock(meet)
    session.add(meet)
    session.commit()

    if _LOCK_ACTIVITY_LOG:
        logger.info("meet-lock-release meet=%d user=%d", meet_id, user.id)
    return True


def release_meet_locks(session: Session, user_id: int) -> int:
    """Clear every lock held by `user_id` (logout / done editing). Returns the count."""
    result = session.execute(
        update(Meet)
        .where(Meet.locked_by_id == user_id)
        .values(locked_by_id=None, locked_at=None, lock_expires_at=None)
        .execution_options(synchronize_session=False)
    )
    session.commit()

    if _LOCK_ACTIVITY_LOG:
        logger.info("meet-lock-release-all user=%d released=%d", user_id, result.rowcount)
    return result.rowcount
