from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.meet import Meet


class Bout(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("meet_id", "pair_key", name="uq_bout_meet_pair"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    meet_id: int = Field(foreign_key="meet.id", index=True)
    red_id: int = Field(foreign_key="wrestler.id")
    green_id: int = Field(foreign_key="wrestler.id")
    pair_key: str  # "<low id>|<high id>"
    mat_index: Optional[int] = Field(default=None)  # 0-based, None until assigned
    order: Optional[int] = Field(default=None)  # 1-based position within the mat
    bout_type: str = Field(default="normal")  # "normal" | "forced"
    locked: bool = Field(default=False)
    score: float = Field(default=0.0)  # Pairing cost at generation time
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))

    # Relationships
    meet: "Meet" = Relationship(back_populates="bouts")
