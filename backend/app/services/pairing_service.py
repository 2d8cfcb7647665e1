"""
Pairing Service: persisted entry points around the pair generator.

Every mutating function acquires the meet edit lock for the acting user
before touching the meet's bout set. The lock renews on each call and is not
released afterwards.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from app.models.bout import Bout
from app.services.eligibility import PairingSettings
from app.services.mat_assignment import assign_mats
from app.services.meet_lock import acquire_meet_lock
from app.services.pair_exclusions import load_excluded_keys, record_rejections
from app.services.pair_generator import generate
from app.services.roster import load_absent_ids, load_roster, require_meet_wrestler
from app.utils.errors import InvalidInputError, NotFoundError, StateViolationError
from app.utils.meet_guards import get_meet_or_404, require_mutable_meet
from app.utils.pair_key import normalize_pair, pair_key
from app.utils.rbac import ActingUser

logger = logging.getLogger(__name__)

BOUT_TYPE_NORMAL = "normal"
BOUT_TYPE_FORCED = "forced"


@dataclass(frozen=True)
class GenerationSummary:
    run_id: str
    created_count: int
    rejected_count: int
    kept_count: int
    total_wrestlers: int
    assigned_count: Optional[int] = None


def generate_pairings_for_meet(
    session: Session,
    meet_id: int,
    user: ActingUser,
    settings: PairingSettings,
    preserve_mats: bool = False,
) -> GenerationSummary:
    """
    Regenerate the meet's bouts.

    Unlocked bouts are deleted; locked (and forced) bouts are kept and seeded
    into the generator so they still count against each wrestler's target.
    Unless `preserve_mats` is set, mats are reassigned afterwards with the
    meet's stored mat settings.
    """
    settings.validate()
    acquire_meet_lock(session, meet_id, user.id)
    meet = require_mutable_meet(session, meet_id)

    session.execute(delete(Bout).where(Bout.meet_id == meet_id, Bout.locked.is_(False)))
    kept = session.exec(select(Bout).where(Bout.meet_id == meet_id).order_by(Bout.id)).all()

    roster = load_roster(session, meet_id)
    absent_ids = load_absent_ids(session, meet_id)
    result = generate(
        roster,
        settings,
        excluded_keys=load_excluded_keys(session, meet_id),
        seeded_pairs=[(b.red_id, b.green_id) for b in kept],
        absent_ids=absent_ids,
    )

    for generated in result.bouts:
        session.add(
            Bout(
                meet_id=meet_id,
                red_id=generated.red_id,
                green_id=generated.green_id,
                pair_key=generated.pair_key,
                bout_type=BOUT_TYPE_NORMAL,
                score=generated.cost,
                notes=generated.notes,
            )
        )

    run_id = uuid.uuid4().hex
    rejected_count = record_rejections(session, meet_id, result.rejected, run_id, created_by_id=user.id)
    session.commit()

    logger.info(
        "Generated pairings for meet %d (run %s): created=%d kept=%d rejected=%d wrestlers=%d",
        meet_id,
        run_id,
        len(result.bouts),
        len(kept),
        rejected_count,
        len(result.bout_counts),
    )

    assigned_count = None
    if not preserve_mats:
        session.refresh(meet)
        assigned_count = assign_mats(session, meet).assigned_count

    return GenerationSummary(
        run_id=run_id,
        created_count=len(result.bouts),
        rejected_count=rejected_count,
        kept_count=len(kept),
        total_wrestlers=len(result.bout_counts),
        assigned_count=assigned_count,
    )


def find_bout_for_pair(session: Session, meet_id: int, wrestler_a_id: int, wrestler_b_id: int) -> Optional[Bout]:
    key = pair_key(wrestler_a_id, wrestler_b_id)
    return session.exec(select(Bout).where(Bout.meet_id == meet_id, Bout.pair_key == key)).first()


def force_pair(session: Session, meet_id: int, wrestler_a_id: int, wrestler_b_id: int, user: ActingUser) -> Bout:
    """
    Create a locked bout between two wrestlers, bypassing eligibility.

    Absent wrestlers are still refused, and an existing bout for the same pair
    is returned unchanged instead of creating a duplicate.
    """
    if wrestler_a_id == wrestler_b_id:
        raise InvalidInputError("A wrestler cannot be paired with themselves")
    acquire_meet_lock(session, meet_id, user.id)
    require_mutable_meet(session, meet_id)
    require_meet_wrestler(session, meet_id, wrestler_a_id)
    require_meet_wrestler(session, meet_id, wrestler_b_id)

    absent_ids = load_absent_ids(session, meet_id)
    for wid in (wrestler_a_id, wrestler_b_id):
        if wid in absent_ids:
            raise StateViolationError(f"WRESTLER_ABSENT: Wrestler {wid} is not attending this meet")

    existing = find_bout_for_pair(session, meet_id, wrestler_a_id, wrestler_b_id)
    if existing:
        return existing

    red_id, green_id = normalize_pair(wrestler_a_id, wrestler_b_id)
    bout = Bout(
        meet_id=meet_id,
        red_id=red_id,
        green_id=green_id,
        pair_key=pair_key(red_id, green_id),
        bout_type=BOUT_TYPE_FORCED,
        locked=True,
        notes="forced",
    )
    session.add(bout)
    session.commit()
    session.refresh(bout)
    logger.info("Forced bout %d in meet %d: %d vs %d", bout.id, meet_id, red_id, green_id)
    return bout


def delete_pairings(session: Session, meet_id: int, user: ActingUser, keep_locked: bool = False) -> int:
    """Delete the meet's bouts (optionally keeping locked ones). Returns the count deleted."""
    acquire_meet_lock(session, meet_id, user.id)
    require_mutable_meet(session, meet_id)

    stmt = delete(Bout).where(Bout.meet_id == meet_id)
    if keep_locked:
        stmt = stmt.where(Bout.locked.is_(False))
    result = session.execute(stmt)
    session.commit()

    logger.info("Deleted %d bouts from meet %d (keep_locked=%s)", result.rowcount, meet_id, keep_locked)
    return result.rowcount


def set_bout_locked(session: Session, bout_id: int, locked: bool, user: ActingUser) -> Bout:
    """Freeze (or unfreeze) a bout against regeneration and reordering."""
    bout = session.get(Bout, bout_id)
    if not bout:
        raise NotFoundError("Bout not found")
    acquire_meet_lock(session, bout.meet_id, user.id)
    require_mutable_meet(session, bout.meet_id)

    if locked:
        absent_ids = load_absent_ids(session, bout.meet_id)
        if bout.red_id in absent_ids or bout.green_id in absent_ids:
            raise StateViolationError("WRESTLER_ABSENT: Cannot lock a bout with an absent wrestler")

    bout.locked = locked
    session.add(bout)
    session.commit()
    session.refresh(bout)
    return bout


def list_active_bouts(session: Session, meet_id: int) -> List[Bout]:
    """
    Bouts shown for a meet.

    Bouts involving an absent wrestler are filtered out (not deleted).
    Order: mat (unassigned last), order, id.
    """
    get_meet_or_404(session, meet_id)
    absent_ids = load_absent_ids(session, meet_id)
    bouts = session.exec(select(Bout).where(Bout.meet_id == meet_id)).all()
    visible = [b for b in bouts if b.red_id not in absent_ids and b.green_id not in absent_ids]
    return sorted(
        visible,
        key=lambda b: (
            b.mat_index is None,
            b.mat_index if b.mat_index is not None else 0,
            b.order if b.order is not None else 0,
            b.id,
        ),
    )
