"""
Mat API Routes
Assign bouts to mats and reorder bouts within their mats.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.database import get_session
from app.services.mat_assignment import (
    MAX_MATS,
    MAX_MIN_REST_BOUTS,
    MAX_REST_PENALTY,
    MIN_MATS,
    assign_mats_for_meet,
    reorder_bouts_for_meet,
)
from app.services.meet_activity import log_meet_change
from app.utils.rbac import ActingUser, get_coach

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class AssignMatsRequest(BaseModel):
    """Omitted values fall back to the meet's stored settings"""

    num_mats: Optional[int] = Field(default=None, ge=MIN_MATS, le=MAX_MATS)
    min_rest_bouts: Optional[int] = Field(default=None, ge=0, le=MAX_MIN_REST_BOUTS)
    rest_penalty: Optional[float] = Field(default=None, ge=0, le=MAX_REST_PENALTY)


class AssignMatsResponse(BaseModel):
    assigned_count: int
    num_mats: int
    rest_penalty_total: float


class ReorderResponse(BaseModel):
    reordered_count: int
    num_mats: int
    rest_penalty_total: float


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/meets/{meet_id}/mats/assign", response_model=AssignMatsResponse)
def assign_mats(
    meet_id: int,
    request: AssignMatsRequest,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    """Reset and reassign mat + order for every active bout in the meet"""
    summary = assign_mats_for_meet(
        session,
        meet_id,
        user,
        num_mats=request.num_mats,
        min_rest_bouts=request.min_rest_bouts,
        rest_penalty=request.rest_penalty,
    )
    log_meet_change(session, meet_id, user.id, f"Assigned mats ({summary.assigned_count} bouts on {summary.num_mats} mats).")
    return AssignMatsResponse(
        assigned_count=summary.assigned_count,
        num_mats=summary.num_mats,
        rest_penalty_total=summary.rest_penalty_total,
    )


@router.post("/meets/{meet_id}/bouts/reorder", response_model=ReorderResponse)
def reorder_bouts(
    meet_id: int,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    """Resequence bouts within their current mats to improve rest"""
    summary = reorder_bouts_for_meet(session, meet_id, user)
    if summary.reordered_count:
        log_meet_change(session, meet_id, user.id, f"Reordered {summary.reordered_count} bouts.")
    return ReorderResponse(
        reordered_count=summary.reordered_count,
        num_mats=summary.num_mats,
        rest_penalty_total=summary.rest_penalty_total,
    )
