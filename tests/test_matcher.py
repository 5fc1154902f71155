"""Tests for the feed pipeline facade."""

from datetime import datetime, timedelta, timezone

from fresherflow.matching.match_score import NO_PROFILE_REASON
from fresherflow.matching.matcher import ScoredOpportunity, build_feed
from fresherflow.opportunities.models import Opportunity, OpportunityType
from fresherflow.profile.models import Profile

NOW = datetime(2024, 6, 10, tzinfo=timezone.utc)


def make_profile(**kwargs) -> Profile:
    defaults = dict(
        education_level="DEGREE",
        grad_year=2024,
        skills=["React"],
        preferred_cities=["Pune"],
        work_modes=["ONSITE"],
    )
    defaults.update(kwargs)
    return Profile(**defaults)


def make_opportunity(**kwargs) -> Opportunity:
    defaults = dict(
        id="opp-1",
        title="Frontend Developer",
        company="Acme",
        posted_at=NOW - timedelta(days=1),
        allowed_degrees=["DEGREE"],
        required_skills=["React"],
    )
    defaults.update(kwargs)
    return Opportunity(**defaults)


class TestBuildFeed:
    def test_filters_then_orders_for_display(self):
        opps = [
            make_opportunity(id="old-job", posted_at=NOW - timedelta(days=5)),
            make_opportunity(id="pg-only", allowed_degrees=["PG"]),
            make_opportunity(id="walkin", type=OpportunityType.WALKIN, posted_at=NOW - timedelta(days=9)),
            make_opportunity(id="new-job", posted_at=NOW - timedelta(hours=2)),
        ]
        feed = build_feed(opps, make_profile(), now=NOW)
        assert [row.opportunity.id for row in feed] == ["walkin", "new-job", "old-job"]

    def test_every_row_is_scored(self):
        feed = build_feed([make_opportunity()], make_profile(), now=NOW)
        assert isinstance(feed[0], ScoredOpportunity)
        assert 0 < feed[0].match_score <= 100
        assert feed[0].match_reason

    def test_without_profile_keeps_everything(self):
        opps = [make_opportunity(id="a"), make_opportunity(id="b", allowed_degrees=["PG"])]
        feed = build_feed(opps, None, now=NOW)
        assert {row.opportunity.id for row in feed} == {"a", "b"}
        assert all(row.match_score == 0 for row in feed)
        assert all(row.match_reason == NO_PROFILE_REASON for row in feed)

    def test_filter_can_be_skipped(self):
        opps = [make_opportunity(id="pg-only", allowed_degrees=["PG"])]
        feed = build_feed(opps, make_profile(), apply_filter=False, now=NOW)
        assert [row.opportunity.id for row in feed] == ["pg-only"]

    def test_input_not_mutated(self):
        opps = [make_opportunity(id="b", posted_at=NOW - timedelta(days=3)), make_opportunity(id="a")]
        build_feed(opps, make_profile(), now=NOW)
        assert [o.id for o in opps] == ["b", "a"]

    def test_to_dict_carries_score(self):
        row = build_feed([make_opportunity()], make_profile(), now=NOW)[0]
        data = row.to_dict()
        assert data["id"] == "opp-1"
        assert data["matchScore"] == row.match_score
        assert data["matchReason"] == row.match_reason
