from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.bout import Bout


class Meet(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    meet_date: date
    location: Optional[str] = None
    home_team_id: Optional[int] = Field(default=None, foreign_key="team.id")

    # Scheduling defaults (updated by mat assignment, read by reordering)
    num_mats: int = Field(default=4)
    min_rest_bouts: int = Field(default=4)
    rest_penalty: float = Field(default=10.0)
    max_matches_per_wrestler: int = Field(default=5)

    # Edit lock: (holder, stamped at, expires at). UTC timestamps.
    locked_by_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    locked_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    lock_expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    deleted_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))

    # Relationships
    bouts: List["Bout"] = Relationship(back_populates="meet")


class MeetTeam(SQLModel, table=True):
    """A team participating in a meet."""

    __tablename__ = "meet_team"

    __table_args__ = (SAUniqueConstraint("meet_id", "team_id", name="uq_meet_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    meet_id: int = Field(foreign_key="meet.id", index=True)
    team_id: int = Field(foreign_key="team.id", index=True)
