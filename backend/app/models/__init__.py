from app.models.bout import Bout
from app.models.mat_rule import TeamMatRule
from app.models.meet import Meet, MeetTeam
from app.models.meet_change import MeetChange
from app.models.meet_wrestler_status import MeetWrestlerStatus, WrestlerStatus
from app.models.pair_records import ExcludedPair, RejectedPair
from app.models.team import Team
from app.models.user import User
from app.models.wrestler import Wrestler

__all__ = [
    "User",
    "Team",
    "TeamMatRule",
    "Wrestler",
    "Meet",
    "MeetTeam",
    "MeetWrestlerStatus",
    "WrestlerStatus",
    "Bout",
    "ExcludedPair",
    "RejectedPair",
    "MeetChange",
]
