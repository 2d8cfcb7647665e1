"""
Meet Guards

Reusable lookups that enforce meet state rules:
- Meet must exist
- Only meets that are not soft-deleted can be mutated
"""

from sqlmodel import Session

from app.models.meet import Meet
from app.utils.errors import NotFoundError, StateViolationError


def get_meet_or_404(session: Session, meet_id: int) -> Meet:
    """
    Get a meet or raise NotFoundError.

    Soft-deleted meets are reported as missing for reads.
    """
    meet = session.get(Meet, meet_id)
    if not meet or meet.deleted_at is not None:
        raise NotFoundError("Meet not found")
    return meet


def require_mutable_meet(session: Session, meet_id: int) -> Meet:
    """
    Require that a meet exists and has not been soft-deleted.

    Raises:
        NotFoundError: Meet does not exist
        StateViolationError: Meet was soft-deleted
    """
    meet = session.get(Meet, meet_id)
    if not meet:
        raise NotFoundError("Meet not found")
    if meet.deleted_at is not None:
        raise StateViolationError(f"MEET_DELETED: Meet {meet_id} was deleted and cannot be modified")
    return meet
