"""Tests for deployment scoring."""

import pytest

from project_health.core import DeploymentScorer
from project_health.core.deployment_scoring import UNREACHABLE_SUGGESTION, pagespeed_findings
from project_health.schemas import (
    Confidence,
    DeploymentEvidence,
    Opportunity,
    PageSpeedEvidence,
    PageSpeedScores,
    Priority,
)


def healthy(**overrides) -> DeploymentEvidence:
    fields = dict(
        reachable=True,
        status_code=200,
        response_time_ms=300,
        final_url="https://example.com/",
        uses_https=True,
        has_caching_headers=True,
        has_compression=True,
        is_html=True,
        has_title=True,
        has_viewport=True,
        page_size=50_000,
    )
    fields.update(overrides)
    return DeploymentEvidence(**fields)


def unreachable(kind: str, error: str = "boom") -> DeploymentEvidence:
    return DeploymentEvidence(reachable=False, error_kind=kind, error=error)


@pytest.fixture
def scorer():
    return DeploymentScorer()


def titles(items):
    return [item.title for item in items]


class TestReachable:
    def test_healthy_deployment(self, scorer):
        result = scorer.score(healthy())
        b = result.breakdown

        assert (b.performance.earned, b.errors.earned, b.durability.earned) == (100, 100, 100)
        assert b.overall == 95
        assert b.pagespeed_average is None
        assert result.issues == []
        assert titles(result.suggestions) == ["HTTP Status OK"]
        assert result.confidence is Confidence.MEDIUM
        assert result.verdict.label == "Good Shape"

    def test_plain_http_and_missing_headers(self, scorer):
        result = scorer.score(healthy(uses_https=False, missing_security_headers=["X-Frame-Options"]))
        b = result.breakdown

        assert b.durability.earned == 70
        assert b.overall == 91
        assert "✗ Not Using HTTPS (-25)" in b.durability.details
        assert "Not Using HTTPS" in titles(result.issues)
        https = next(s for s in result.suggestions if s.title == "Enable HTTPS")
        assert https.priority is Priority.CRITICAL
        headers = next(i for i in result.issues if i.title == "Missing Security Headers")
        assert headers.description == "Missing headers: X-Frame-Options"

    def test_server_error_and_slow_response(self, scorer):
        result = scorer.score(healthy(status_code=503, response_time_ms=6000))
        b = result.breakdown

        assert b.errors.earned == 60
        assert b.performance.earned == 70
        assert b.overall == 75
        assert result.verdict.label == "Needs Attention"
        assert "HTTP Status OK" not in titles(result.suggestions)
        assert titles(result.issues)[:2] == ["Server Error Detected", "Extremely Slow Response"]

    def test_client_error(self, scorer):
        result = scorer.score(healthy(status_code=404))
        assert result.breakdown.errors.earned == 70
        assert result.issues[0].severity == "major"

    def test_redirect_is_info_only(self, scorer):
        result = scorer.score(healthy(redirects=1))
        assert result.breakdown.performance.earned == 95
        redirect = result.issues[0]
        assert redirect.title == "Redirect Detected"
        assert redirect.severity == "info"
        assert titles(result.suggestions) == ["HTTP Status OK"]

    def test_large_page_and_missing_markup(self, scorer):
        result = scorer.score(healthy(page_size=2_000_000, has_title=False, has_viewport=False))
        b = result.breakdown

        assert b.performance.earned == 85
        assert b.durability.earned == 95
        page = next(i for i in result.issues if i.title == "Large Page Size")
        assert page.description == "Page size is 1.91MB."
        assert {"Add Page Title", "Add Viewport Meta Tag", "Reduce Page Size"} <= set(titles(result.suggestions))

    def test_error_content(self, scorer):
        result = scorer.score(healthy(has_error_content=True))
        assert result.breakdown.errors.earned == 80

    def test_non_html_skips_markup_checks(self, scorer):
        result = scorer.score(healthy(is_html=False, has_title=False, has_viewport=False))
        assert result.issues == []

    def test_many_problems_floor_at_zero(self, scorer):
        probe = healthy(
            status_code=500,
            response_time_ms=9000,
            has_error_content=True,
            uses_https=False,
            missing_security_headers=["Content-Security-Policy"],
            has_caching_headers=False,
            has_compression=False,
            page_size=5_000_000,
            has_viewport=False,
        )
        b = scorer.score(probe).breakdown
        assert b.errors.earned == 40
        assert b.performance.earned == 45
        assert b.durability.earned == 65
        assert 0 <= b.overall <= 95


class TestUnreachable:
    def test_timeout(self, scorer):
        result = scorer.score(unreachable("timeout"))
        b = result.breakdown

        assert (b.performance.earned, b.errors.earned, b.durability.earned) == (70, 50, 100)
        assert titles(result.issues) == ["Request Timeout"]
        assert result.suggestions == [UNREACHABLE_SUGGESTION]
        assert result.confidence is Confidence.LOW
        assert result.verdict.label == "Unreachable"

    def test_ssl(self, scorer):
        result = scorer.score(unreachable("ssl"))
        assert result.breakdown.durability.earned == 60
        assert result.breakdown.errors.earned == 80
        assert titles(result.issues) == ["SSL Certificate Error"]

    @pytest.mark.parametrize(("kind", "title"), [("dns", "Domain Not Found"), ("refused", "Connection Refused")])
    def test_named_failures(self, scorer, kind, title):
        assert titles(scorer.score(unreachable(kind)).issues) == [title]

    def test_other_failure_describes_error(self, scorer):
        result = scorer.score(unreachable("connection", "Connection reset by peer"))
        assert result.issues[0].title == "Connection Failed"
        assert result.issues[0].description == "Could not connect: Connection reset by peer"

    def test_pagespeed_does_not_raise_confidence(self, scorer):
        pagespeed = PageSpeedEvidence(analyzed=True, scores=PageSpeedScores(
            performance=90, accessibility=90, best_practices=90, seo=90,
        ))
        result = scorer.score(unreachable("dns"), pagespeed)
        assert result.confidence is Confidence.LOW
        assert result.verdict.label == "Unreachable"


def slow_pagespeed(opportunities=6) -> PageSpeedEvidence:
    return PageSpeedEvidence(
        analyzed=True,
        scores=PageSpeedScores(performance=40, accessibility=70, best_practices=90, seo=70),
        opportunities=[
            Opportunity(id=f"opp-{i}", title=f"Opportunity {i}", score=30 if i == 0 else 60, display_value=f"{i}s")
            for i in range(opportunities)
        ],
    )


class TestPageSpeed:
    def test_blends_into_overall(self, scorer):
        result = scorer.score(healthy(), slow_pagespeed())
        b = result.breakdown

        assert b.pagespeed_average == 62
        assert b.overall == 77
        assert result.confidence is Confidence.HIGH

    def test_findings(self):
        issues, suggestions = pagespeed_findings(slow_pagespeed())

        assert titles(issues) == [
            "Poor Performance Score",
            "Accessibility Issues Detected",
            "SEO Improvements Needed",
        ]
        assert len(suggestions) == 5
        assert suggestions[0].priority is Priority.HIGH
        assert suggestions[0].description == "0s"
        assert suggestions[1].priority is Priority.MEDIUM

    def test_not_analyzed_has_no_findings(self):
        assert pagespeed_findings(PageSpeedEvidence(error="quota")) == ([], [])

    def test_failed_pagespeed_is_ignored(self, scorer):
        result = scorer.score(healthy(), PageSpeedEvidence(error="Rate limit exceeded"))
        assert result.breakdown.pagespeed_average is None
        assert result.breakdown.overall == 95
        assert result.confidence is Confidence.MEDIUM
