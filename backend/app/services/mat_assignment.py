"""
Mat assignment and bout reordering for a meet.

assign_mats_for_meet():
    preferred mat per bout from the home team's mat rules (or the default
    bands), then the rest-aware sequencer picks the final mat and order.
    When the home team sets home_team_prefer_same_mat, each home wrestler
    stays on the mat of their first bout.
reorder_bouts_for_meet():
    keeps every bout on its mat and only recomputes order.

Bouts involving an absent wrestler are hidden from the active view; they are
left out of sequencing and their mat/order is cleared so they cannot hold a
slot.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from app.models.bout import Bout
from app.models.mat_rule import TeamMatRule
from app.models.meet import Meet
from app.models.team import Team
from app.models.wrestler import Wrestler
from app.services.mat_rules import MatRule, bout_profile, preferred_mat
from app.services.meet_lock import acquire_meet_lock
from app.services.roster import load_absent_ids, load_meet_wrestlers, to_profile
from app.services.sequencer import SequencedBout, compute_rest_penalty, reorder, sequence
from app.utils.errors import InvalidInputError
from app.utils.meet_guards import require_mutable_meet
from app.utils.rbac import ActingUser

logger = logging.getLogger(__name__)

MIN_MATS = 1
MAX_MATS = 10
MAX_MIN_REST_BOUTS = 20
MAX_REST_PENALTY = 1000.0


@dataclass(frozen=True)
class MatAssignmentSummary:
    assigned_count: int
    num_mats: int
    rest_penalty_total: float


@dataclass(frozen=True)
class ReorderSummary:
    reordered_count: int
    num_mats: int
    rest_penalty_total: float


def load_mat_rules(session: Session, team_id: Optional[int]) -> List[MatRule]:
    if team_id is None:
        return []
    rows = session.exec(
        select(TeamMatRule).where(TeamMatRule.team_id == team_id).order_by(TeamMatRule.mat_index)
    ).all()
    return [
        MatRule(
            mat_index=r.mat_index,
            min_experience=r.min_experience,
            max_experience=r.max_experience,
            min_age=r.min_age,
            max_age=r.max_age,
            color=r.color,
        )
        for r in rows
    ]


def to_sequenced(bout: Bout) -> SequencedBout:
    return SequencedBout(
        id=bout.id,
        red_id=bout.red_id,
        green_id=bout.green_id,
        mat_index=bout.mat_index,
        order=bout.order,
        locked=bout.locked,
    )


def split_active_bouts(session: Session, meet_id: int) -> Tuple[List[Bout], List[Bout]]:
    """(active, hidden) bouts in creation order; hidden ones involve an absent wrestler."""
    absent = load_absent_ids(session, meet_id)
    bouts = session.exec(select(Bout).where(Bout.meet_id == meet_id).order_by(Bout.id)).all()
    active = [b for b in bouts if b.red_id not in absent and b.green_id not in absent]
    hidden = [b for b in bouts if b.red_id in absent or b.green_id in absent]
    return active, hidden


def preferred_mats(
    bouts: Sequence[Bout], wrestlers: Dict[int, Wrestler], meet: Meet, rules: Sequence[MatRule]
) -> Dict[int, int]:
    preferred: Dict[int, int] = {}
    for bout in bouts:
        red = wrestlers.get(bout.red_id)
        green = wrestlers.get(bout.green_id)
        if red is None or green is None:
            continue
        profile = bout_profile(to_profile(red), to_profile(green), meet.meet_date)
        preferred[bout.id] = preferred_mat(profile, rules, meet.num_mats)
    return preferred


def same_mat_wrestlers(
    session: Session, bouts: Sequence[Bout], wrestlers: Dict[int, Wrestler], meet: Meet
) -> Dict[int, List[int]]:
    """bout id -> home wrestlers in it, when the home team keeps its wrestlers on one mat."""
    if meet.home_team_id is None:
        return {}
    home = session.get(Team, meet.home_team_id)
    if home is None or not home.home_team_prefer_same_mat:
        return {}

    pinned: Dict[int, List[int]] = {}
    for bout in bouts:
        ids = [
            wid
            for wid in (bout.red_id, bout.green_id)
            if wid in wrestlers and wrestlers[wid].team_id == home.id
        ]
        if ids:
            pinned[bout.id] = ids
    return pinned


def _clear_slots(session: Session, bouts: Sequence[Bout]) -> None:
    for bout in bouts:
        bout.mat_index = None
        bout.order = None
        session.add(bout)


def _validate_mat_settings(num_mats: int, min_rest_bouts: int, rest_penalty: float) -> None:
    if not MIN_MATS <= num_mats <= MAX_MATS:
        raise InvalidInputError(f"num_mats must be between {MIN_MATS} and {MAX_MATS}")
    if not 0 <= min_rest_bouts <= MAX_MIN_REST_BOUTS:
        raise InvalidInputError(f"min_rest_bouts must be between 0 and {MAX_MIN_REST_BOUTS}")
    if not 0 <= rest_penalty <= MAX_REST_PENALTY:
        raise InvalidInputError(f"rest_penalty must be between 0 and {MAX_REST_PENALTY:g}")


def assign_mats(session: Session, meet: Meet) -> MatAssignmentSummary:
    """Place every active bout of `meet` using the meet's stored mat settings. Commits."""
    active, hidden = split_active_bouts(session, meet.id)
    wrestlers = load_meet_wrestlers(session, meet.id)
    rules = load_mat_rules(session, meet.home_team_id)
    preferred = preferred_mats(active, wrestlers, meet, rules)
    same_mat = same_mat_wrestlers(session, active, wrestlers, meet)

    sequenced = [to_sequenced(b) for b in active]
    placements = sequence(
        sequenced, meet.num_mats, meet.min_rest_bouts, meet.rest_penalty, preferred, same_mat=same_mat
    )

    for bout in active:
        bout.mat_index, bout.order = placements[bout.id]
        session.add(bout)
    _clear_slots(session, hidden)
    session.commit()

    total = compute_rest_penalty(sequenced, placements, meet.min_rest_bouts, meet.rest_penalty)
    logger.info(
        "Assigned mats for meet %d: bouts=%d hidden=%d mats=%d penalty=%.1f",
        meet.id,
        len(active),
        len(hidden),
        meet.num_mats,
        total,
    )
    return MatAssignmentSummary(assigned_count=len(active), num_mats=meet.num_mats, rest_penalty_total=total)


def assign_mats_for_meet(
    session: Session,
    meet_id: int,
    user: ActingUser,
    num_mats: Optional[int] = None,
    min_rest_bouts: Optional[int] = None,
    rest_penalty: Optional[float] = None,
) -> MatAssignmentSummary:
    """
    Reset and reassign mats for every bout in a meet.

    Settings that are passed are stored on the meet so later reorders use the
    same cost model.
    """
    acquire_meet_lock(session, meet_id, user.id)
    meet = require_mutable_meet(session, meet_id)

    num_mats = meet.num_mats if num_mats is None else num_mats
    min_rest_bouts = meet.min_rest_bouts if min_rest_bouts is None else min_rest_bouts
    rest_penalty = meet.rest_penalty if rest_penalty is None else rest_penalty
    _validate_mat_settings(num_mats, min_rest_bouts, rest_penalty)

    meet.num_mats = num_mats
    meet.min_rest_bouts = min_rest_bouts
    meet.rest_penalty = rest_penalty
    session.add(meet)
    session.commit()
    session.refresh(meet)

    return assign_mats(session, meet)


def reorder_bouts_for_meet(session: Session, meet_id: int, user: ActingUser) -> ReorderSummary:
    """
    Resequence bouts within their current mats. Returns how many bouts moved.

    Hidden bouts lose their mat and order, as in assign_mats(), so no slot
    is held twice once their wrestler is available again.
    """
    acquire_meet_lock(session, meet_id, user.id)
    meet = require_mutable_meet(session, meet_id)

    active, hidden = split_active_bouts(session, meet_id)
    _clear_slots(session, hidden)
    placed = [b for b in active if b.mat_index is not None]
    sequenced = [to_sequenced(b) for b in placed]
    placements = reorder(sequenced, meet.min_rest_bouts, meet.rest_penalty)

    moved = 0
    for bout in placed:
        _mat, order = placements[bout.id]
        if bout.order != order:
            bout.order = order
            session.add(bout)
            moved += 1
    session.commit()

    total = compute_rest_penalty(sequenced, placements, meet.min_rest_bouts, meet.rest_penalty)
    logger.info("Reordered meet %d: moved=%d hidden=%d penalty=%.1f", meet_id, moved, len(hidden), total)
    return ReorderSummary(reordered_count=moved, num_mats=meet.num_mats, rest_penalty_total=total)
