"""
Team Mat Rule API Routes
Read and replace a team's per-mat eligibility bands.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import delete
from sqlmodel import Session, select

from app.database import get_session
from app.models.mat_rule import TeamMatRule
from app.models.team import Team
from app.services.mat_assignment import MAX_MATS
from app.services.mat_rules import DEFAULT_MAT_RULES
from app.utils.errors import NotFoundError
from app.utils.rbac import ActingUser, get_acting_user, require_team_coach

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class MatRuleModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mat_index: int = Field(ge=0, lt=MAX_MATS)
    color: Optional[str] = Field(default=None, max_length=20)
    min_experience: int = Field(ge=0, le=50)
    max_experience: int = Field(ge=0, le=50)
    min_age: float = Field(ge=0, le=100)
    max_age: float = Field(ge=0, le=100)

    @model_validator(mode="after")
    def validate_ranges(self):
        if self.min_experience > self.max_experience:
            raise ValueError("min_experience must be <= max_experience")
        if self.min_age > self.max_age:
            raise ValueError("min_age must be <= max_age")
        return self


class MatRulesRequest(BaseModel):
    rules: List[MatRuleModel] = Field(default_factory=list, max_length=MAX_MATS)
    # None leaves the stored flag unchanged
    home_team_prefer_same_mat: Optional[bool] = None

    @model_validator(mode="after")
    def validate_unique_mats(self):
        indexes = [r.mat_index for r in self.rules]
        if len(indexes) != len(set(indexes)):
            raise ValueError("mat_index values must be unique")
        return self


class MatRulesResponse(BaseModel):
    team_id: Optional[int] = None
    rules: List[MatRuleModel]
    home_team_prefer_same_mat: bool = False


# ============================================================================
# Endpoints
# ============================================================================


def _get_team_or_404(session: Session, team_id: int) -> Team:
    team = session.get(Team, team_id)
    if not team:
        raise NotFoundError("Team not found")
    return team


@router.get("/mat-rules/defaults", response_model=MatRulesResponse)
def get_default_mat_rules():
    """Built-in bands used when the home team has no rules of its own"""
    return MatRulesResponse(
        rules=[
            MatRuleModel(
                mat_index=r.mat_index,
                color=r.color,
                min_experience=r.min_experience,
                max_experience=r.max_experience,
                min_age=r.min_age,
                max_age=r.max_age,
            )
            for r in DEFAULT_MAT_RULES
        ]
    )


@router.get("/teams/{team_id}/mat-rules", response_model=MatRulesResponse)
def get_team_mat_rules(team_id: int, session: Session = Depends(get_session)):
    team = _get_team_or_404(session, team_id)

    rules = session.exec(
        select(TeamMatRule).where(TeamMatRule.team_id == team_id).order_by(TeamMatRule.mat_index)
    ).all()
    return MatRulesResponse(
        team_id=team_id,
        rules=[MatRuleModel.model_validate(r) for r in rules],
        home_team_prefer_same_mat=team.home_team_prefer_same_mat,
    )


@router.put("/teams/{team_id}/mat-rules", response_model=MatRulesResponse)
def replace_team_mat_rules(
    team_id: int,
    request: MatRulesRequest,
    session: Session = Depends(get_session),
    user: ActingUser = Depends(get_acting_user),
):
    """Replace the team's mat rules wholesale, and optionally its same-mat flag"""
    require_team_coach(user, team_id)
    team = _get_team_or_404(session, team_id)

    session.execute(delete(TeamMatRule).where(TeamMatRule.team_id == team_id))
    for rule in sorted(request.rules, key=lambda r: r.mat_index):
        session.add(TeamMatRule(team_id=team_id, **rule.model_dump()))
    if request.home_team_prefer_same_mat is not None:
        team.home_team_prefer_same_mat = request.home_team_prefer_same_mat
        session.add(team)
    session.commit()

    return get_team_mat_rules(team_id, session)
