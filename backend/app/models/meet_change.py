from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class MeetChange(SQLModel, table=True):
    """Human-readable audit entry for a change made to a meet."""

    __tablename__ = "meet_change"

    id: Optional[int] = Field(default=None, primary_key=True)
    meet_id: int = Field(foreign_key="meet.id", index=True)
    actor_id: Optional[int] = Field(default=None, foreign_key="user.id")
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))
