"""
Roster loading for a meet.

Turns persisted rows into the immutable profiles the engine works on:
- roster = active wrestlers on the meet's participating teams
- absent ids = wrestlers marked ABSENT / NOT_COMING for the meet
"""

from typing import Dict, List, Set

from sqlmodel import Session, select

from app.models.meet import MeetTeam
from app.models.meet_wrestler_status import UNAVAILABLE_STATUSES, MeetWrestlerStatus, WrestlerStatus
from app.models.wrestler import Wrestler
from app.services.eligibility import WrestlerProfile
from app.utils.errors import InvalidInputError, NotFoundError
from app.utils.meet_guards import require_mutable_meet


def to_profile(wrestler: Wrestler) -> WrestlerProfile:
    return WrestlerProfile(
        id=wrestler.id,
        team_id=wrestler.team_id,
        birthdate=wrestler.birthdate,
        weight=wrestler.weight,
        experience_years=wrestler.experience_years,
        skill=wrestler.skill,
        active=wrestler.active,
    )


def meet_team_ids(session: Session, meet_id: int) -> List[int]:
    return list(session.exec(select(MeetTeam.team_id).where(MeetTeam.meet_id == meet_id).order_by(MeetTeam.team_id)).all())


def load_meet_wrestlers(session: Session, meet_id: int) -> Dict[int, Wrestler]:
    """All wrestlers (active or not) on the meet's teams, keyed by id."""
    team_ids = meet_team_ids(session, meet_id)
    if not team_ids:
        return {}
    wrestlers = session.exec(select(Wrestler).where(Wrestler.team_id.in_(team_ids)).order_by(Wrestler.id)).all()
    return {w.id: w for w in wrestlers}


def load_roster(session: Session, meet_id: int) -> List[WrestlerProfile]:
    return [to_profile(w) for w in load_meet_wrestlers(session, meet_id).values() if w.active]


def load_absent_ids(session: Session, meet_id: int) -> Set[int]:
    rows = session.exec(
        select(MeetWrestlerStatus.wrestler_id).where(
            MeetWrestlerStatus.meet_id == meet_id,
            MeetWrestlerStatus.status.in_(UNAVAILABLE_STATUSES),
        )
    ).all()
    return set(rows)


def require_meet_wrestler(session: Session, meet_id: int, wrestler_id: int) -> Wrestler:
    """Wrestler must exist and belong to one of the meet's teams."""
    wrestler = session.get(Wrestler, wrestler_id)
    if not wrestler or wrestler.team_id not in meet_team_ids(session, meet_id):
        raise NotFoundError(f"Wrestler {wrestler_id} not found in this meet")
    return wrestler


def set_wrestler_status(session: Session, meet_id: int, wrestler_id: int, status: str) -> MeetWrestlerStatus:
    """Mark a wrestler AVAILABLE / ABSENT / NOT_COMING for a meet."""
    require_mutable_meet(session, meet_id)
    require_meet_wrestler(session, meet_id, wrestler_id)
    try:
        status = WrestlerStatus(status).value
    except ValueError:
        raise InvalidInputError(f"Unknown wrestler status '{status}'")

    row = session.exec(
        select(MeetWrestlerStatus).where(
            MeetWrestlerStatus.meet_id == meet_id,
            MeetWrestlerStatus.wrestler_id == wrestler_id,
        )
    ).first()
    if row is None:
        row = MeetWrestlerStatus(meet_id=meet_id, wrestler_id=wrestler_id, status=status)
    else:
        row.status = status
    session.add(row)
    session.commit()
    session.refresh(row)
    return row
