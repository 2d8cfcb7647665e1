"""
Eligibility Evaluator: decides whether two wrestlers may be paired.

Checks run in a fixed order and stop at the first failure:
1. same team (unless same-team bouts are allowed)
2. coach-excluded pair
3. first-year rule (first-years only face first-years)
4. age gap in days
5. weight gap as a fraction of the lighter wrestler

Eligible pairs get a cost (lower is better): normalized age gap plus
normalized weight gap, plus a small skill-difference tiebreak that orders
candidates but never rejects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import AbstractSet, Optional

from app.utils.errors import InvalidInputError
from app.utils.pair_key import pair_key

DAYS_PER_YEAR = 365

# Hard cap applied on top of any per-meet setting
MAX_MATCHES_PER_WRESTLER = 5

AGE_COST_WEIGHT = 1.0
WEIGHT_COST_WEIGHT = 2.0
SKILL_TIEBREAK_WEIGHT = 0.001

# Reason codes
REASON_SAME_TEAM = "same_team"
REASON_EXCLUDED = "excluded_pair"
REASON_FIRST_YEAR = "first_year_mismatch"
REASON_AGE_GAP = "age_gap"
REASON_WEIGHT_GAP = "weight_gap"
REASON_PARTNER_AT_CAPACITY = "partner_at_capacity"


@dataclass(frozen=True)
class WrestlerProfile:
    """Immutable view of a wrestler for the duration of one scheduling run."""

    id: int
    team_id: int
    birthdate: date
    weight: float
    experience_years: int = 0
    skill: int = 0
    active: bool = True

    @property
    def is_first_year(self) -> bool:
        return self.experience_years <= 0


@dataclass(frozen=True)
class PairingSettings:
    max_age_gap_days: int = DAYS_PER_YEAR
    max_weight_diff_pct: float = 0.1  # Fraction of the lighter wrestler's weight
    first_year_only_with_first_year: bool = True
    allow_same_team_matches: bool = False
    matches_per_wrestler: int = 2
    max_matches_per_wrestler: int = MAX_MATCHES_PER_WRESTLER

    def validate(self) -> "PairingSettings":
        if self.max_age_gap_days < 0:
            raise InvalidInputError("max_age_gap_days must be >= 0")
        if self.max_weight_diff_pct < 0:
            raise InvalidInputError("max_weight_diff_pct must be >= 0")
        if not 1 <= self.max_matches_per_wrestler <= MAX_MATCHES_PER_WRESTLER:
            raise InvalidInputError(f"max_matches_per_wrestler must be between 1 and {MAX_MATCHES_PER_WRESTLER}")
        if not 1 <= self.matches_per_wrestler <= MAX_MATCHES_PER_WRESTLER:
            raise InvalidInputError(f"matches_per_wrestler must be between 1 and {MAX_MATCHES_PER_WRESTLER}")
        return self

    @property
    def target_matches(self) -> int:
        return min(self.matches_per_wrestler, self.max_matches_per_wrestler, MAX_MATCHES_PER_WRESTLER)


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    cost: float = 0.0
    reason: Optional[str] = None


def age_gap_days(a: WrestlerProfile, b: WrestlerProfile) -> int:
    return abs((a.birthdate - b.birthdate).days)


def weight_diff_pct(weight_a: float, weight_b: float) -> float:
    """Symmetric weight difference as a fraction of the lighter wrestler."""
    base = min(weight_a, weight_b)
    if base <= 0:
        return float("inf")
    return abs(weight_a - weight_b) / base


def evaluate(
    a: WrestlerProfile,
    b: WrestlerProfile,
    settings: PairingSettings,
    excluded_keys: AbstractSet[str] = frozenset(),
) -> EligibilityResult:
    if not settings.allow_same_team_matches and a.team_id == b.team_id:
        return EligibilityResult(eligible=False, reason=REASON_SAME_TEAM)

    if pair_key(a.id, b.id) in excluded_keys:
        return EligibilityResult(eligible=False, reason=REASON_EXCLUDED)

    if settings.first_year_only_with_first_year and a.is_first_year != b.is_first_year:
        return EligibilityResult(eligible=False, reason=REASON_FIRST_YEAR)

    age_gap = age_gap_days(a, b)
    if age_gap > settings.max_age_gap_days:
        return EligibilityResult(eligible=False, reason=REASON_AGE_GAP)

    w_pct = weight_diff_pct(a.weight, b.weight)
    if w_pct > settings.max_weight_diff_pct:
        return EligibilityResult(eligible=False, reason=REASON_WEIGHT_GAP)

    cost = 0.0
    if settings.max_age_gap_days > 0:
        cost += AGE_COST_WEIGHT * age_gap / settings.max_age_gap_days
    if settings.max_weight_diff_pct > 0:
        cost += WEIGHT_COST_WEIGHT * w_pct / settings.max_weight_diff_pct
    cost += SKILL_TIEBREAK_WEIGHT * abs(a.skill - b.skill)

    return EligibilityResult(eligible=True, cost=cost)
