"""
Excluded and rejected pair records for a meet.

Excluded pairs are coach vetoes and are enforced by the generator.
Rejected pairs only explain why a wrestler ended a run short of bouts.
Both are keyed by the normalized pair key.
"""

from typing import Iterable, List, Optional, Set

from sqlmodel import Session, select

from app.models.pair_records import ExcludedPair, RejectedPair
from app.services.pair_generator import RejectedCandidate
from app.services.roster import require_meet_wrestler
from app.utils.errors import ConflictError, InvalidInputError, NotFoundError
from app.utils.meet_guards import get_meet_or_404, require_mutable_meet
from app.utils.pair_key import normalize_pair, pair_key


def load_excluded_keys(session: Session, meet_id: int) -> Set[str]:
    return set(session.exec(select(ExcludedPair.pair_key).where(ExcludedPair.meet_id == meet_id)).all())


def list_excluded_pairs(session: Session, meet_id: int) -> List[ExcludedPair]:
    get_meet_or_404(session, meet_id)
    return list(
        session.exec(
            select(ExcludedPair)
            .where(ExcludedPair.meet_id == meet_id)
            .order_by(ExcludedPair.wrestler_a_id, ExcludedPair.wrestler_b_id)
        ).all()
    )


def add_excluded_pair(
    session: Session, meet_id: int, wrestler_a_id: int, wrestler_b_id: int, created_by_id: Optional[int] = None
) -> ExcludedPair:
    require_mutable_meet(session, meet_id)
    if wrestler_a_id == wrestler_b_id:
        raise InvalidInputError("A wrestler cannot be excluded from wrestling themselves")
    require_meet_wrestler(session, meet_id, wrestler_a_id)
    require_meet_wrestler(session, meet_id, wrestler_b_id)

    key = pair_key(wrestler_a_id, wrestler_b_id)
    existing = session.exec(
        select(ExcludedPair).where(ExcludedPair.meet_id == meet_id, ExcludedPair.pair_key == key)
    ).first()
    if existing:
        raise ConflictError(f"Pair {key} is already excluded")

    low, high = normalize_pair(wrestler_a_id, wrestler_b_id)
    row = ExcludedPair(meet_id=meet_id, pair_key=key, wrestler_a_id=low, wrestler_b_id=high, created_by_id=created_by_id)
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def remove_excluded_pair(session: Session, meet_id: int, excluded_pair_id: int) -> None:
    require_mutable_meet(session, meet_id)
    row = session.get(ExcludedPair, excluded_pair_id)
    if not row or row.meet_id != meet_id:
        raise NotFoundError("Excluded pair not found")
    session.delete(row)
    session.commit()


def list_rejected_pairs(session: Session, meet_id: int) -> List[RejectedPair]:
    get_meet_or_404(session, meet_id)
    return list(
        session.exec(
            select(RejectedPair)
            .where(RejectedPair.meet_id == meet_id)
            .order_by(RejectedPair.wrestler_a_id, RejectedPair.wrestler_b_id)
        ).all()
    )


def record_rejections(
    session: Session,
    meet_id: int,
    candidates: Iterable[RejectedCandidate],
    run_id: str,
    created_by_id: Optional[int] = None,
) -> int:
    """
    Upsert rejected pairs for a generation run. Caller commits.

    Rows persist across regenerations; a pair rejected again is re-attributed
    to the latest run.
    """
    count = 0
    for candidate in candidates:
        key = candidate.pair_key
        low, high = normalize_pair(candidate.wrestler_id, candidate.partner_id)
        row = session.exec(
            select(RejectedPair).where(RejectedPair.meet_id == meet_id, RejectedPair.pair_key == key)
        ).first()
        if row is None:
            row = RejectedPair(
                meet_id=meet_id,
                pair_key=key,
                wrestler_a_id=low,
                wrestler_b_id=high,
                reason=candidate.reason,
                run_id=run_id,
                created_by_id=created_by_id,
            )
        else:
            row.reason = candidate.reason
            row.run_id = run_id
            row.created_by_id = created_by_id
        session.add(row)
        count += 1
    return count
