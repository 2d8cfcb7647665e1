"""
Pairing API Routes
Generate, force, list and delete bouts; manage excluded pairs; view rejected pairs.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlmodel import Session

from app.database import get_session
from app.services.eligibility import DAYS_PER_YEAR, MAX_MATCHES_PER_WRESTLER, PairingSettings
from app.services.meet_activity import log_meet_change
from app.services.pair_exclusions import (
    add_excluded_pair,
    list_excluded_pairs,
    list_rejected_pairs,
    remove_excluded_pair,
)
from app.services.pairing_service import (
    delete_pairings,
    force_pair,
    generate_pairings_for_meet,
    list_active_bouts,
    set_bout_locked,
)
from app.utils.meet_guards import get_meet_or_404
from app.utils.rbac import ActingUser, get_coach

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class GeneratePairingsRequest(BaseModel):
    max_age_gap_days: int = Field(default=DAYS_PER_YEAR, ge=0)
    max_weight_diff_pct: float = Field(default=0.1, ge=0, le=1)  # Fraction, 0.1 = 10%
    first_year_only_with_first_year: bool = True
    allow_same_team_matches: bool = False
    matches_per_wrestler: int = Field(default=2, ge=1, le=MAX_MATCHES_PER_WRESTLER)
    max_matches_per_wrestler: Optional[int] = Field(default=None, ge=1, le=MAX_MATCHES_PER_WRESTLER)
    preserve_mats: bool = False


class GeneratePairingsResponse(BaseModel):
    run_id: str
    created_count: int
    rejected_count: int
    kept_count: int
    total_wrestlers: int
    assigned_count: Optional[int] = None


class PairRequest(BaseModel):
    """Two distinct wrestlers"""

    wrestler_a_id: int
    wrestler_b_id: int

    @model_validator(mode="after")
    def validate_different_wrestlers(self):
        if self.wrestler_a_id == self.wrestler_b_id:
            raise ValueError("wrestler_a_id and wrestler_b_id must be different")
        return self


class BoutLockRequest(BaseModel):
    locked: bool


class BoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    meet_id: int
    red_id: int
    green_id: int
    pair_key: str
    mat_index: Optional[int] = None
    order: Optional[int] = None
    bout_type: str
    locked: bool
    score: float
    notes: Optional[str] = None


class DeletePairingsResponse(BaseModel):
    deleted_count: int


class ExcludedPairResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    meet_id: int
    pair_key: str
    wrestler_a_id: int
    wrestler_b_id: int
    created_by_id: Optional[int] = None
    created_at: datetime


class RejectedPairResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    meet_id: int
    pair_key: str
    wrestler_a_id: int
    wrestler_b_id: int
    reason: str
    run_id: str
    created_by_id: Optional[int] = None
    created_at: datetime


# ============================================================================
# Bout Endpoints
# ============================================================================


@router.get("/meets/{meet_id}/pairings", response_model=List[BoutResponse])
def get_pairings(meet_id: int, session: Session = Depends(get_session)):
    """Active bouts for a meet (bouts with absent wrestlers are hidden)"""
    return list_active_bouts(session, meet_id)


@router.post("/meets/{meet_id}/pairings/generate", response_model=GeneratePairingsResponse)
def generate_pairings(
    meet_id: int,
    request: GeneratePairingsRequest,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    """
    Regenerate pairings for a meet.

    Locked and forced bouts are kept. Unless preserve_mats is set, mats are
    reassigned with the meet's stored mat settings.
    """
    meet = get_meet_or_404(session, meet_id)
    settings = PairingSettings(
        max_age_gap_days=request.max_age_gap_days,
        max_weight_diff_pct=request.max_weight_diff_pct,
        first_year_only_with_first_year=request.first_year_only_with_first_year,
        allow_same_team_matches=request.allow_same_team_matches,
        matches_per_wrestler=request.matches_per_wrestler,
        max_matches_per_wrestler=request.max_matches_per_wrestler or meet.max_matches_per_wrestler,
    )
    summary = generate_pairings_for_meet(session, meet_id, user, settings, preserve_mats=request.preserve_mats)

    log_meet_change(session, meet_id, user.id, f"Generated pairings ({summary.created_count} new bouts).")
    if summary.assigned_count is not None:
        log_meet_change(session, meet_id, user.id, "Assigned mats.")

    return GeneratePairingsResponse(
        run_id=summary.run_id,
        created_count=summary.created_count,
        rejected_count=summary.rejected_count,
        kept_count=summary.kept_count,
        total_wrestlers=summary.total_wrestlers,
        assigned_count=summary.assigned_count,
    )


@router.post("/meets/{meet_id}/pairings/force", response_model=BoutResponse)
def force_pairing(
    meet_id: int,
    request: PairRequest,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    """Force a bout between two wrestlers (returns the existing bout if already paired)"""
    bout = force_pair(session, meet_id, request.wrestler_a_id, request.wrestler_b_id, user)
    log_meet_change(session, meet_id, user.id, f"Forced bout {bout.red_id} vs {bout.green_id}.")
    return bout


@router.delete("/meets/{meet_id}/pairings", response_model=DeletePairingsResponse)
def delete_meet_pairings(
    meet_id: int,
    keep_locked: bool = Query(default=False),
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    """Delete every bout in a meet (optionally keeping locked bouts)"""
    deleted = delete_pairings(session, meet_id, user, keep_locked=keep_locked)
    log_meet_change(session, meet_id, user.id, f"Deleted {deleted} bouts.")
    return DeletePairingsResponse(deleted_count=deleted)


@router.patch("/bouts/{bout_id}/lock", response_model=BoutResponse)
def update_bout_lock(
    bout_id: int,
    request: BoutLockRequest,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    """Lock or unlock a single bout"""
    bout = set_bout_locked(session, bout_id, request.locked, user)
    verb = "Locked" if bout.locked else "Unlocked"
    log_meet_change(session, bout.meet_id, user.id, f"{verb} bout {bout.id}.")
    return bout


# ============================================================================
# Excluded / Rejected Pair Endpoints
# ============================================================================


@router.get("/meets/{meet_id}/excluded-pairs", response_model=List[ExcludedPairResponse])
def get_excluded_pairs(meet_id: int, session: Session = Depends(get_session)):
    return list_excluded_pairs(session, meet_id)


@router.post("/meets/{meet_id}/excluded-pairs", response_model=ExcludedPairResponse, status_code=201)
def create_excluded_pair(
    meet_id: int,
    request: PairRequest,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    """Veto a pair of wrestlers for this meet"""
    row = add_excluded_pair(session, meet_id, request.wrestler_a_id, request.wrestler_b_id, created_by_id=user.id)
    log_meet_change(session, meet_id, user.id, f"Excluded pair {row.pair_key}.")
    return row


@router.delete("/meets/{meet_id}/excluded-pairs/{excluded_pair_id}", status_code=204)
def delete_excluded_pair(
    meet_id: int,
    excluded_pair_id: int,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_coach),
):
    remove_excluded_pair(session, meet_id, excluded_pair_id)
    log_meet_change(session, meet_id, user.id, f"Removed excluded pair {excluded_pair_id}.")
    return None


@router.get("/meets/{meet_id}/rejected-pairs", response_model=List[RejectedPairResponse])
def get_rejected_pairs(meet_id: int, session: Session = Depends(get_session)):
    """Pairs the generator could not satisfy, for per-wrestler visibility"""
    return list_rejected_pairs(session, meet_id)
