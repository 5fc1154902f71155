"""Match score (0-100) with a one-line explanation for a profile/opportunity pair."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fresherflow.opportunities.models import Opportunity
from fresherflow.profile.models import Profile
from fresherflow.utils.text_processing import to_normalized_set

# Scoring weights
WEIGHT_SKILLS = 45
OPEN_SKILLS_SCORE = 20
BATCH_SCORE = 15
OPEN_BATCH_SCORE = 7
EXPERIENCE_SCORE = 15
OPEN_EXPERIENCE_SCORE = 8
ELIGIBILITY_CAP = 30
CITY_SCORE = 10
WORK_MODE_SCORE = 5
OPEN_WORK_MODE_SCORE = 2
PREFERENCE_CAP = 15
URGENT_BONUS = 10  # closes within 2 days
SOON_BONUS = 5  # closes within a week

# Entry-level candidates are assumed to have no prior experience
FRESHER_EXPERIENCE_YEARS = 0

NO_PROFILE_REASON = "Complete profile for match score"
DEFAULT_REASON = "General fit"
BATCH_REASON = "Eligible batch"

DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class MatchResult:
    score: int
    reason: str


def _days_left(expires_at: datetime, now: datetime) -> int:
    return math.ceil((expires_at - now).total_seconds() / DAY_SECONDS)


def score(profile: Optional[Profile], opportunity: Opportunity, now: Optional[datetime] = None) -> MatchResult:
    """Score an opportunity for a profile.

    Deterministic for a fixed ``now``; defaults to the current UTC time,
    which only matters for the urgency bonus.
    """
    if profile is None:
        return MatchResult(0, NO_PROFILE_REASON)

    now = now or datetime.now(timezone.utc)
    total = 0.0
    reason = DEFAULT_REASON

    # 1. Skills
    profile_skills = to_normalized_set(profile.skills)
    required_skills = to_normalized_set(opportunity.required_skills)
    if required_skills and profile_skills:
        matched = len(required_skills & profile_skills)
        total += matched / len(required_skills) * WEIGHT_SKILLS
        if matched > 0:
            reason = f"{matched} matching skills"
    elif not required_skills:
        total += OPEN_SKILLS_SCORE

    # 2. Eligibility: batch year + experience range
    eligibility = 0
    if opportunity.allowed_passout_years:
        year = profile.passout_year
        if year and year in opportunity.allowed_passout_years:
            eligibility += BATCH_SCORE
            if reason == DEFAULT_REASON:
                reason = BATCH_REASON
    else:
        eligibility += OPEN_BATCH_SCORE

    if opportunity.experience_max is not None:
        if (opportunity.experience_min or 0) <= FRESHER_EXPERIENCE_YEARS <= opportunity.experience_max:
            eligibility += EXPERIENCE_SCORE
    else:
        eligibility += OPEN_EXPERIENCE_SCORE
    total += min(ELIGIBILITY_CAP, eligibility)

    # 3. Preferences: city + work mode
    preference = 0
    if to_normalized_set(profile.preferred_cities) & to_normalized_set(opportunity.locations):
        preference += CITY_SCORE
    if opportunity.work_mode and opportunity.work_mode in (profile.work_modes or []):
        preference += WORK_MODE_SCORE
    elif not opportunity.work_mode:
        preference += OPEN_WORK_MODE_SCORE
    total += min(PREFERENCE_CAP, preference)

    # 4. Urgency
    if opportunity.expires_at is not None:
        days_left = _days_left(opportunity.expires_at, now)
        if 0 < days_left <= 2:
            total += URGENT_BONUS
        elif 2 < days_left <= 7:
            total += SOON_BONUS

    # Round half up, then clamp
    return MatchResult(max(0, min(100, math.floor(total + 0.5))), reason)
