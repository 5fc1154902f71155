"""Matcher facade: fine filter, score, then arrange for display."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fresherflow.matching.eligibility import filter_eligible, sort_for_display
from fresherflow.matching.match_score import score
from fresherflow.opportunities.models import Opportunity
from fresherflow.profile.models import Profile

logger = logging.getLogger("fresherflow.matching")


@dataclass
class ScoredOpportunity:
    opportunity: Opportunity
    match_score: int
    match_reason: str

    def to_dict(self) -> dict:
        data = self.opportunity.to_dict()
        data["matchScore"] = self.match_score
        data["matchReason"] = self.match_reason
        return data


def build_feed(
    opportunities: list[Opportunity],
    profile: Optional[Profile],
    apply_filter: bool = True,
    now: Optional[datetime] = None,
) -> list[ScoredOpportunity]:
    """Return the opportunities a profile should see, annotated and ordered.

    Without a profile there is nothing to filter against; every listing is
    kept and carries the "complete your profile" score.
    """
    eligible = opportunities
    if profile is not None and apply_filter:
        eligible = filter_eligible(opportunities, profile)
        logger.info("Fine filter kept %d/%d opportunities", len(eligible), len(opportunities))

    ordered = sort_for_display(eligible)

    scored = []
    for opp in ordered:
        result = score(profile, opp, now=now)
        scored.append(ScoredOpportunity(opp, result.score, result.reason))
    return scored
