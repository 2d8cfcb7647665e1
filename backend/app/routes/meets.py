"""
Meet API Routes
Edit lock, wrestler attendance and the change log.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from app.database import get_session
from app.models.meet_wrestler_status import WrestlerStatus
from app.services.meet_activity import list_meet_changes, log_meet_change
from app.services.meet_lock import (
    LockStatus,
    acquire_meet_lock,
    get_meet_lock_status,
    release_meet_lock,
    release_meet_locks,
)
from app.services.roster import set_wrestler_status
from app.utils.meet_guards import get_meet_or_404
from app.utils.rbac import ActingUser, get_acting_user, get_coach

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class LockStatusResponse(BaseModel):
    meet_id: int
    locked: bool
    locked_by_id: Optional[int] = None
    locked_by_username: Optional[str] = None
    lock_expires_at: Optional[datetime] = None


class ReleaseLocksResponse(BaseModel):
    ok: bool = True
    released: int


class WrestlerStatusRequest(BaseModel):
    status: WrestlerStatus


class WrestlerStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    meet_id: int
    wrestler_id: int
    status: str


class MeetChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    meet_id: int
    actor_id: Optional[int] = None
    message: str
    created_at: datetime


def _lock_response(status: LockStatus) -> LockStatusResponse:
    return LockStatusResponse(
        meet_id=status.meet_id,
        locked=status.locked,
        locked_by_id=status.locked_by_id,
        locked_by_username=status.locked_by_username,
        lock_expires_at=status.lock_expires_at,
    )


# ============================================================================
# Edit Lock Endpoints
# ============================================================================


@router.post("/meets/lock/release", response_model=ReleaseLocksResponse)
def release_my_locks(session: Session = Depends(get_session), user: ActingUser = Depends(get_acting_user)):
    """Release every meet lock held by the current user (logout / done editing)"""
    return ReleaseLocksResponse(released=release_meet_locks(session, user.id))


@router.get("/meets/{meet_id}/lock", response_model=LockStatusResponse)
def get_lock(meet_id: int, session: Session = Depends(get_session)):
    return _lock_response(get_meet_lock_status(session, meet_id))


@router.post("/meets/{meet_id}/lock", response_model=LockStatusResponse)
def acquire_lock(meet_id: int, session: Session = Depends(get_session), user: ActingUser = Depends(get_coach)):
    """Acquire or renew the edit lock. 409 with holder and expiry if someone else has it."""
    return _lock_response(acquire_meet_lock(session, meet_id, user.id))


@router.delete("/meets/{meet_id}/lock", response_model=LockStatusResponse)
def release_lock(meet_id: int, session: Session = Depends(get_session), user: ActingUser = Depends(get_coach)):
    release_meet_lock(session, meet_id, user)
    return _lock_response(get_meet_lock_status(session, meet_id))


# ============================================================================
# Attendance & Change Log Endpoints
# ============================================================================


@router.put("/meets/{meet_id}/wrestlers/{wrestler_id}/status", response_model=WrestlerStatusResponse)
def update_wrestler_status(
    meet_id: int,
    wrestler_id: int,
    request: WrestlerStatusRequest,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    row = set_wrestler_status(session, meet_id, wrestler_id, request.status.value)
    log_meet_change(session, meet_id, user.id, f"Marked wrestler {wrestler_id} {row.status}.")
    return row


@router.get("/meets/{meet_id}/changes", response_model=List[MeetChangeResponse])
def get_changes(meet_id: int, limit: int = Query(default=100, ge=1, le=500), session: Session = Depends(get_session)):
    get_meet_or_404(session, meet_id)
    return list_meet_changes(session, meet_id, limit=limit)
