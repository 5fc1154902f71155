"""Tests for the match scorer."""

from datetime import datetime, timedelta, timezone

from fresherflow.matching.match_score import score
from fresherflow.opportunities.models import Opportunity
from fresherflow.profile.models import Profile

NOW = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)


def make_profile(**kwargs) -> Profile:
    defaults = dict(
        skills=["React", "Node"],
        grad_year=2024,
        preferred_cities=["Bangalore"],
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
    )
    defaults.update(kwargs)
    return Opportunity(**defaults)


class TestScore:
    def test_perfect_match_scores_100(self):
        opp = make_opportunity(
            required_skills=["React"],
            allowed_passout_years=[2024],
            locations=["Bangalore"],
            work_mode="ONSITE",
            experience_min=0,
            experience_max=1,
            expires_at=NOW + timedelta(days=1),
        )
        result = score(make_profile(), opp, now=NOW)
        assert result.score == 100
        assert result.reason == "1 matching skills"

    def test_no_profile(self):
        result = score(None, make_opportunity(), now=NOW)
        assert result.score == 0
        assert result.reason == "Complete profile for match score"

    def test_open_opportunity_gets_flat_scores(self):
        # 20 skills + 7 batch + 8 experience + 2 work mode
        result = score(make_profile(), make_opportunity(), now=NOW)
        assert result.score == 37
        assert result.reason == "General fit"

    def test_partial_skill_match_rounds(self):
        opp = make_opportunity(required_skills=["React", "Vue", "Angular"], allowed_passout_years=[2020],
                               experience_max=0, work_mode="REMOTE")
        # 45/3 = 15 skills + 0 batch + 15 experience + 0 preferences
        result = score(make_profile(), opp, now=NOW)
        assert result.score == 30
        assert result.reason == "1 matching skills"

    def test_batch_reason_when_no_skill_match(self):
        opp = make_opportunity(required_skills=["Java"], allowed_passout_years=[2024])
        assert score(make_profile(), opp, now=NOW).reason == "Eligible batch"

    def test_skills_case_insensitive(self):
        opp = make_opportunity(required_skills=[" react", "NODE"])
        assert score(make_profile(), opp, now=NOW).reason == "2 matching skills"

    def test_full_eligibility_band_is_30(self):
        opp = make_opportunity(allowed_passout_years=[2024], experience_min=0, experience_max=2,
                               required_skills=["Java"], work_mode="REMOTE")
        assert score(make_profile(), opp, now=NOW).score == 30

    def test_experience_range_excluding_freshers(self):
        opp = make_opportunity(required_skills=["Java"], experience_min=2, experience_max=5,
                               allowed_passout_years=[2020], work_mode="REMOTE")
        assert score(make_profile(), opp, now=NOW).score == 0

    def test_urgency_bands(self):
        base = dict(required_skills=["Java"], allowed_passout_years=[2020], experience_min=3,
                    experience_max=5, work_mode="REMOTE")
        assert score(make_profile(), make_opportunity(expires_at=NOW + timedelta(days=2), **base), now=NOW).score == 10
        assert score(make_profile(), make_opportunity(expires_at=NOW + timedelta(days=5), **base), now=NOW).score == 5
        assert score(make_profile(), make_opportunity(expires_at=NOW + timedelta(days=10), **base), now=NOW).score == 0
        assert score(make_profile(), make_opportunity(expires_at=NOW - timedelta(days=1), **base), now=NOW).score == 0

    def test_profile_without_skills_gets_nothing_for_required_skills(self):
        opp = make_opportunity(required_skills=["React"], allowed_passout_years=[2020],
                               experience_max=0, work_mode="REMOTE")
        assert score(make_profile(skills=[]), opp, now=NOW).score == 15

    def test_always_within_bounds(self):
        profiles = [make_profile(), make_profile(skills=[], preferred_cities=[], work_modes=[], grad_year=None)]
        opportunities = [
            make_opportunity(),
            make_opportunity(required_skills=["React", "Node"], locations=["Bangalore"], work_mode="ONSITE",
                             expires_at=NOW + timedelta(hours=3)),
            make_opportunity(required_skills=["X"], allowed_passout_years=[1999], experience_min=9, experience_max=10),
        ]
        for profile in profiles:
            for opp in opportunities:
                result = score(profile, opp, now=NOW)
                assert isinstance(result.score, int)
                assert 0 <= result.score <= 100
