from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class WrestlerStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    ABSENT = "ABSENT"
    NOT_COMING = "NOT_COMING"


# Statuses that remove a wrestler from generation and from the active bout view
UNAVAILABLE_STATUSES = (WrestlerStatus.ABSENT.value, WrestlerStatus.NOT_COMING.value)


class MeetWrestlerStatus(SQLModel, table=True):
    __tablename__ = "meet_wrestler_status"

    __table_args__ = (SAUniqueConstraint("meet_id", "wrestler_id", name="uq_meet_wrestler_status"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    meet_id: int = Field(foreign_key="meet.id", index=True)
    wrestler_id: int = Field(foreign_key="wrestler.id", index=True)
    status: str = Field(default=WrestlerStatus.AVAILABLE.value)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))
