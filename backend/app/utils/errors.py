"""
Scheduling Errors

Distinct, caller-inspectable error kinds raised by the pairing and scheduling
services. Routes do not catch these; a single exception handler in app.main
maps them onto HTTP responses via `status_code`.
"""

from datetime import datetime
from typing import Any, Dict, Optional


class SchedulingError(Exception):
    """Base class for all engine errors"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"detail": self.message}


class NotFoundError(SchedulingError):
    """Meet, wrestler, team or bout reference is missing"""

    status_code = 404


class ConflictError(SchedulingError):
    """Lock held by another user, or the record already exists"""

    status_code = 409


class MeetLockedError(ConflictError):
    """Another user holds the meet edit lock"""

    def __init__(self, meet_id: int, locked_by_username: Optional[str], lock_expires_at: Optional[datetime]):
        super().__init__("Meet is locked")
        self.meet_id = meet_id
        self.locked_by_username = locked_by_username
        self.lock_expires_at = lock_expires_at

    def to_payload(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "locked_by_username": self.locked_by_username,
            "lock_expires_at": self.lock_expires_at.isoformat() if self.lock_expires_at else None,
        }


class InvalidInputError(SchedulingError):
    """Settings outside their numeric bounds, malformed pair identities"""

    status_code = 400


class StateViolationError(SchedulingError):
    """Operation not allowed in the current state (absent wrestler, deleted meet)"""

    status_code = 409


class PermissionDeniedError(SchedulingError):
    """Acting user's role is too low for the operation"""

    status_code = 403
