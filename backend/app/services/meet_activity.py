"""Audit sink: human-readable change log per meet."""

from typing import List, Optional

from sqlmodel import Session, select

from app.models.meet_change import MeetChange


def log_meet_change(session: Session, meet_id: int, actor_id: Optional[int], message: str) -> MeetChange:
    change = MeetChange(meet_id=meet_id, actor_id=actor_id, message=message)
    session.add(change)
    session.commit()
    session.refresh(change)
    return change


def list_meet_changes(session: Session, meet_id: int, limit: int = 100) -> List[MeetChange]:
    return list(
        session.exec(
            select(MeetChange)
            .where(MeetChange.meet_id == meet_id)
            .order_by(MeetChange.created_at.desc(), MeetChange.id.desc())
            .limit(limit)
        ).all()
    )
