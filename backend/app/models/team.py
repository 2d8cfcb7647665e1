from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.mat_rule import TeamMatRule
    from app.models.wrestler import Wrestler


class Team(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    symbol: Optional[str] = Field(default=None, max_length=4)  # Short code shown on bout sheets
    color: Optional[str] = Field(default=None, max_length=20)
    # Home team only: keep each of its wrestlers on the mat of their first bout
    home_team_prefer_same_mat: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))

    # Relationships
    wrestlers: List["Wrestler"] = Relationship(back_populates="team")
    mat_rules: List["TeamMatRule"] = Relationship(back_populates="team")
