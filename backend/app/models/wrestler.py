from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.team import Team


class Wrestler(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    first: str
    last: str
    birthdate: date
    weight: float  # Pounds
    experience_years: int = Field(default=0)  # 0 = first-year wrestler
    skill: int = Field(default=0)  # Coach-assigned rating, 0..5
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))

    # Relationships
    team: "Team" = Relationship(back_populates="wrestlers")
