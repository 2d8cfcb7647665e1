"""
Team Mat Rule Model

Per-mat eligibility band configured by a (home) team. A bout is routed to the
first mat whose experience and age ranges contain the bout's profile.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.team import Team


class TeamMatRule(SQLModel, table=True):
    __tablename__ = "team_mat_rule"

    __table_args__ = (
        SAUniqueConstraint("team_id", "mat_index", name="uq_team_mat_index"),
        CheckConstraint("min_experience <= max_experience", name="ck_experience_range"),
        CheckConstraint("min_age <= max_age", name="ck_age_range"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    mat_index: int  # 0-based
    color: Optional[str] = Field(default=None, max_length=20)
    min_experience: int = Field(default=0)
    max_experience: int = Field(default=10)
    min_age: float = Field(default=0)  # Years, half-year precision
    max_age: float = Field(default=100)

    # Relationships
    team: "Team" = Relationship(back_populates="mat_rules")
