"""Profile completion percentage.

This is the only place that decides what "complete" means. The API profile
gate and every progress display call into it.
"""

from fresherflow.profile.models import Profile

WEIGHT_EDUCATION = 40
WEIGHT_PREFERENCES = 40
WEIGHT_READINESS = 20


def calculate_completion(profile: Profile) -> int:
    completion = 0

    if profile.education_level and profile.course and profile.specialization and profile.passout_year:
        completion += WEIGHT_EDUCATION

    if profile.interested_in and profile.preferred_cities and profile.work_modes:
        completion += WEIGHT_PREFERENCES

    if profile.availability and profile.skills:
        completion += WEIGHT_READINESS

    return completion


def is_profile_complete(profile: Profile) -> bool:
    return calculate_completion(profile) == 100
