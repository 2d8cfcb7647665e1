"""
Excluded / Rejected Pair Models

Both tables are keyed by the normalized pair key so that (A, B) and (B, A)
collide on the same row.

Constraint: wrestler_a_id < wrestler_b_id
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import DateTime, CheckConstraint
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class ExcludedPair(SQLModel, table=True):
    """Coach-created veto: these two wrestlers are never paired in this meet."""

    __tablename__ = "excluded_pair"

    __table_args__ = (
        SAUniqueConstraint("meet_id", "pair_key", name="uq_meet_excluded_pair"),
        CheckConstraint("wrestler_a_id < wrestler_b_id", name="ck_excluded_pair_order"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    meet_id: int = Field(foreign_key="meet.id", index=True)
    pair_key: str
    wrestler_a_id: int = Field(foreign_key="wrestler.id")
    wrestler_b_id: int = Field(foreign_key="wrestler.id")
    created_by_id: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))


class RejectedPair(SQLModel, table=True):
    """Record of a pairing the generator could not satisfy (informational only)."""

    __tablename__ = "rejected_pair"

    __table_args__ = (
        SAUniqueConstraint("meet_id", "pair_key", name="uq_meet_rejected_pair"),
        CheckConstraint("wrestler_a_id < wrestler_b_id", name="ck_rejected_pair_order"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    meet_id: int = Field(foreign_key="meet.id", index=True)
    pair_key: str
    wrestler_a_id: int = Field(foreign_key="wrestler.id")
    wrestler_b_id: int = Field(foreign_key="wrestler.id")
    reason: str  # Eligibility reason code, or "partner_at_capacity"
    run_id: str = Field(index=True)  # Generation run that produced the record
    created_by_id: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))
