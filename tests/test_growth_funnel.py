"""Tests for growth funnel counters."""

from fresherflow.growth import funnel as funnel_module
from fresherflow.growth.funnel import GrowthFunnel, InMemoryCounterStore


def make_funnel() -> GrowthFunnel:
    return GrowthFunnel(InMemoryCounterStore())


class TestRecord:
    def test_source_sanitized_and_event_normalized(self):
        funnel = make_funnel()
        assert funnel.record("My Source!!", "detail_view") is True
        metrics = funnel.get_metrics()
        assert metrics["sources"][0]["source"] == "mysource"
        assert metrics["sources"][0]["DETAIL_VIEW"] == 1

    def test_unknown_event_is_noop(self):
        funnel = make_funnel()
        assert funnel.record("src", "bogus_event") is False
        assert funnel.record("src", None) is False
        assert funnel.get_metrics()["sources"] == []

    def test_missing_source_is_unknown(self):
        funnel = make_funnel()
        funnel.record(None, "LOGIN_VIEW")
        assert funnel.get_metrics()["sources"][0]["source"] == "unknown"

    def test_non_string_source_is_unknown(self):
        funnel = make_funnel()
        assert funnel.record(42, "DETAIL_VIEW") is True
        assert funnel.record(["ads"], "detail_view") is True
        row = funnel.get_metrics()["sources"][0]
        assert row["source"] == "unknown"
        assert row["DETAIL_VIEW"] == 2

    def test_non_string_event_is_noop(self):
        funnel = make_funnel()
        assert funnel.record("ads", 5) is False
        assert funnel.record("ads", {"event": "DETAIL_VIEW"}) is False
        assert funnel.get_metrics()["sources"] == []

    def test_auth_success_with_signup(self):
        funnel = make_funnel()
        funnel.record_auth_success("ads", is_signup=True)
        funnel.record_auth_success("ads")
        row = funnel.get_metrics()["sources"][0]
        assert row["AUTH_SUCCESS"] == 2
        assert row["SIGNUP_SUCCESS"] == 1


class TestMetrics:
    def test_percentages(self):
        funnel = make_funnel()
        for _ in range(3):
            funnel.record("blog", "DETAIL_VIEW")
        funnel.record("blog", "LOGIN_VIEW")
        funnel.record("blog", "AUTH_SUCCESS")
        row = funnel.get_metrics()["sources"][0]
        assert row["detailToLoginPct"] == 33.33
        assert row["loginToAuthPct"] == 100.0

    def test_zero_denominators(self):
        funnel = make_funnel()
        funnel.record("x", "AUTH_SUCCESS")
        row = funnel.get_metrics()["sources"][0]
        assert row["detailToLoginPct"] == 0
        assert row["loginToAuthPct"] == 0

    def test_sorted_by_auth_success_and_totals(self):
        funnel = make_funnel()
        funnel.record("low", "AUTH_SUCCESS")
        for _ in range(3):
            funnel.record("high", "AUTH_SUCCESS")
        funnel.record("none", "DETAIL_VIEW")

        metrics = funnel.get_metrics()
        assert [r["source"] for r in metrics["sources"]][:2] == ["high", "low"]
        assert metrics["totals"]["AUTH_SUCCESS"] == 4
        assert metrics["totals"]["DETAIL_VIEW"] == 1

    def test_separate_stores_are_isolated(self):
        a, b = make_funnel(), make_funnel()
        a.record("s", "DETAIL_VIEW")
        assert b.get_metrics()["sources"] == []


class TestDefaultFunnel:
    def test_module_level_helpers_share_one_store(self):
        before = funnel_module.get_growth_funnel_metrics()["totals"]["SIGNUP_SUCCESS"]
        assert funnel_module.record_growth_event("module-test", "login_view")
        funnel_module.record_auth_success("module-test", is_signup=True)
        metrics = funnel_module.get_growth_funnel_metrics()
        assert metrics["totals"]["SIGNUP_SUCCESS"] == before + 1
        assert funnel_module.get_default_funnel().get_metrics() == metrics
