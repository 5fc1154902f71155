"""Eligibility rules: the in-memory fine filter, display ordering and the
explainable rule-by-rule check used by the action endpoints.

Everything here is pure. Missing or malformed profile fields make a check
fail; nothing raises.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from fresherflow.opportunities.models import EducationLevel, Opportunity, OpportunityType
from fresherflow.profile.models import Profile
from fresherflow.utils.text_processing import to_normalized_set

logger = logging.getLogger("fresherflow.matching.eligibility")

EDUCATION_ORDER = [EducationLevel.DIPLOMA.value, EducationLevel.DEGREE.value, EducationLevel.PG.value]


def _as_list(value) -> list:
    return list(value) if isinstance(value, (list, tuple, set)) else []


def has_degree_match(opportunity: Opportunity, profile: Profile) -> bool:
    """Exact match of the profile's education level against the allowed list."""
    level = profile.education_level
    if not level:
        return False
    return level in _as_list(opportunity.allowed_degrees)


def has_skill_overlap(opportunity: Opportunity, profile: Profile) -> bool:
    """True when no skills are required, or at least one required skill is held."""
    required = to_normalized_set(_as_list(opportunity.required_skills))
    if not required:
        return True
    return bool(required & to_normalized_set(_as_list(profile.skills)))


def filter_eligible(opportunities: list[Opportunity], profile: Profile) -> list[Opportunity]:
    """Second-stage filter applied on top of the coarse database query.

    Keeps input order and never mutates its arguments.
    """
    return [
        opp for opp in opportunities
        if has_degree_match(opp, profile) and has_skill_overlap(opp, profile)
    ]


def sort_for_display(opportunities: list[Opportunity]) -> list[Opportunity]:
    """Walk-ins pinned first, then newest first. Stable for equal keys."""
    return sorted(
        opportunities,
        key=lambda opp: (opp.type != OpportunityType.WALKIN, -opp.posted_at.timestamp()),
    )


# Explainable rule engine


@dataclass(frozen=True)
class EligibilityRule:
    name: str
    check: Callable[[Opportunity, Profile], bool]
    reason: Callable[[Opportunity, Profile], str]


@dataclass
class EligibilityResult:
    eligible: bool
    reason: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    matched_rules: list[str] = field(default_factory=list)
    failed_rules: list[str] = field(default_factory=list)


def _degree_check(opp: Opportunity, profile: Profile) -> bool:
    degrees = _as_list(opp.allowed_degrees)
    courses = _as_list(opp.allowed_courses)
    if not degrees and not courses:
        return True
    if not profile.education_level:
        return False

    if courses and ((profile.course and profile.course in courses)
                    or (profile.specialization and profile.specialization in courses)):
        return True

    if degrees and profile.education_level in EDUCATION_ORDER:
        user_rank = EDUCATION_ORDER.index(profile.education_level)
        # A higher qualification satisfies a lower requirement
        return any(deg in EDUCATION_ORDER and EDUCATION_ORDER.index(deg) <= user_rank for deg in degrees)

    return False


def _degree_reason(opp: Opportunity, profile: Profile) -> str:
    if opp.allowed_courses:
        return f"This opportunity requires specific courses: {', '.join(opp.allowed_courses)}"
    return (
        f"Your education level ({profile.education_level}) is not in the allowed degrees: "
        f"{', '.join(opp.allowed_degrees)}"
    )


def _passout_check(opp: Opportunity, profile: Profile) -> bool:
    years = _as_list(opp.allowed_passout_years)
    if not years:
        return True
    return bool((profile.grad_year and profile.grad_year in years) or (profile.pg_year and profile.pg_year in years))


def _passout_reason(opp: Opportunity, profile: Profile) -> str:
    year = profile.pg_year or profile.grad_year
    return f"Your passout year ({year}) is not in the allowed years: {', '.join(str(y) for y in opp.allowed_passout_years)}"


def _skills_reason(opp: Opportunity, profile: Profile) -> str:
    held = ", ".join(profile.skills) if profile.skills else "None"
    return f"You need at least one of these skills: {', '.join(opp.required_skills)}. Your skills: {held}"


def _location_check(opp: Opportunity, profile: Profile) -> bool:
    cities = to_normalized_set(profile.preferred_cities)
    if not cities:
        return True
    return bool(cities & to_normalized_set(opp.locations))


def _location_reason(opp: Opportunity, profile: Profile) -> str:
    return (
        f"Opportunity locations ({', '.join(opp.locations)}) don't match your preferred cities: "
        f"{', '.join(profile.preferred_cities) or 'None'}"
    )


def _work_mode_check(opp: Opportunity, profile: Profile) -> bool:
    if not opp.work_mode or not profile.work_modes:
        return True
    return opp.work_mode in profile.work_modes


def _work_mode_reason(opp: Opportunity, profile: Profile) -> str:
    return f"Work mode ({opp.work_mode}) doesn't match your preferences: {', '.join(profile.work_modes) or 'None'}"


DEGREE_RULE = EligibilityRule("DEGREE_MATCH", _degree_check, _degree_reason)
PASSOUT_YEAR_RULE = EligibilityRule("PASSOUT_YEAR_MATCH", _passout_check, _passout_reason)
SKILLS_RULE = EligibilityRule("SKILLS_MATCH", has_skill_overlap, _skills_reason)
LOCATION_RULE = EligibilityRule("LOCATION_MATCH", _location_check, _location_reason)
WORK_MODE_RULE = EligibilityRule("WORK_MODE_MATCH", _work_mode_check, _work_mode_reason)

HARD_RULES = [DEGREE_RULE, PASSOUT_YEAR_RULE, SKILLS_RULE]
SOFT_RULES = [LOCATION_RULE, WORK_MODE_RULE]


def check_eligibility(
    opportunity: Opportunity,
    profile: Profile,
    user_id: Optional[str] = None,
) -> EligibilityResult:
    """Run hard rules (stop at first failure), then soft rules as warnings."""
    result = EligibilityResult(eligible=True)

    for rule in HARD_RULES:
        if rule.check(opportunity, profile):
            result.matched_rules.append(rule.name)
            continue
        result.eligible = False
        result.failed_rules.append(rule.name)
        result.reason = rule.reason(opportunity, profile)
        logger.info(
            "Eligibility check failed: user=%s opportunity=%s rule=%s",
            user_id, opportunity.id, rule.name,
        )
        return result

    for rule in SOFT_RULES:
        if rule.check(opportunity, profile):
            result.matched_rules.append(rule.name)
        else:
            result.warnings.append(rule.reason(opportunity, profile))
            logger.debug("Soft rule warning: user=%s opportunity=%s rule=%s", user_id, opportunity.id, rule.name)

    return result


def filter_with_reasons(
    opportunities: list[Opportunity],
    profile: Profile,
    user_id: Optional[str] = None,
) -> list[tuple[Opportunity, EligibilityResult]]:
    results = [(opp, check_eligibility(opp, profile, user_id)) for opp in opportunities]
    return [(opp, res) for opp, res in results if res.eligible]
