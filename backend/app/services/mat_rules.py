"""
Mat Rule Resolver: routes a bout to the mat whose eligibility band fits it.

A bout's profile is the lower experience and the lower age of its two
wrestlers, so the more novice wrestler decides the mat. Rules are scanned in
mat_index order; the first rule whose inclusive ranges contain the profile
wins. No match falls back to mat 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence

from app.services.eligibility import WrestlerProfile

DAYS_PER_YEAR_EXACT = 365.25


@dataclass(frozen=True)
class MatRule:
    mat_index: int
    min_experience: int
    max_experience: int
    min_age: float
    max_age: float
    color: Optional[str] = None

    def matches(self, experience: int, age: float) -> bool:
        return (
            self.min_experience <= experience <= self.max_experience
            and self.min_age <= age <= self.max_age
        )


# Novice-to-open bands used when the meet has no home team or the home team
# has not configured any rules.
DEFAULT_MAT_RULES: List[MatRule] = [
    MatRule(0, 0, 0, 0, 8.5, "#90EE90"),
    MatRule(1, 0, 1, 8.5, 10.5, "#FF0000"),
    MatRule(2, 1, 3, 8.5, 11.5, "#ADD8E6"),
    MatRule(3, 2, 5, 10.5, 13.5, "#A52A2A"),
    MatRule(4, 4, 10, 12.5, 20, "#FFA500"),
    MatRule(5, 0, 50, 0, 100, "#808080"),
]


@dataclass(frozen=True)
class BoutProfile:
    experience_years: int
    age_years: float


def age_in_years(birthdate: date, on_date: date) -> float:
    return (on_date - birthdate).days / DAYS_PER_YEAR_EXACT


def bout_profile(red: WrestlerProfile, green: WrestlerProfile, on_date: date) -> BoutProfile:
    return BoutProfile(
        experience_years=min(red.experience_years, green.experience_years),
        age_years=min(age_in_years(red.birthdate, on_date), age_in_years(green.birthdate, on_date)),
    )


def effective_rules(team_rules: Optional[Iterable[MatRule]]) -> List[MatRule]:
    rules = sorted(team_rules or [], key=lambda r: r.mat_index)
    return rules if rules else list(DEFAULT_MAT_RULES)


def preferred_mat(profile: BoutProfile, rules: Optional[Sequence[MatRule]], num_mats: Optional[int] = None) -> int:
    """
    Return the 0-based mat index for a bout profile.

    When `num_mats` is given the result is clamped to the meet's last mat so a
    rule set written for more mats still yields a usable index.
    """
    mat = 0
    for rule in effective_rules(rules):
        if rule.matches(profile.experience_years, profile.age_years):
            mat = rule.mat_index
            break
    if num_mats is not None:
        mat = max(0, min(mat, num_mats - 1))
    return mat
