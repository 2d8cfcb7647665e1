"""
Role checks.

The acting user is resolved once per request and passed explicitly into every
service call. Roles are ordered; a check is a comparison against a minimum.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from app.database import get_session
from app.models.user import User
from app.utils.errors import PermissionDeniedError


class Role(str, Enum):
    PARENT = "PARENT"
    COACH = "COACH"
    ADMIN = "ADMIN"


ROLE_ORDER = {Role.PARENT: 0, Role.COACH: 1, Role.ADMIN: 2}


@dataclass(frozen=True)
class ActingUser:
    id: int
    username: str
    role: Role
    team_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def has_role(user: ActingUser, minimum: Role) -> bool:
    return ROLE_ORDER[user.role] >= ROLE_ORDER[minimum]


def require_role(user: ActingUser, minimum: Role) -> ActingUser:
    if not has_role(user, minimum):
        raise PermissionDeniedError(f"Requires role {minimum.value} or higher")
    return user


def require_team_coach(user: ActingUser, team_id: int) -> ActingUser:
    require_role(user, Role.COACH)
    if not user.is_admin and user.team_id != team_id:
        raise PermissionDeniedError("Coaches may only edit their own team")
    return user


def acting_user_from_model(user: User) -> ActingUser:
    return ActingUser(id=user.id, username=user.username, role=Role(user.role), team_id=user.team_id)


def get_acting_user(
    x_user_id: Optional[int] = Header(default=None),
    session: Session = Depends(get_session),
) -> ActingUser:
    """Resolve the acting user from the X-User-Id header (set by the auth proxy)."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Sign in required")
    user = session.get(User, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return acting_user_from_model(user)


def get_coach(user: ActingUser = Depends(get_acting_user)) -> ActingUser:
    return require_role(user, Role.COACH)
