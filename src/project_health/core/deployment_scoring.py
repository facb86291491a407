"""Deduction-based scoring for live deployments.

Each check pairs a condition on the HTTP probe with per-category penalties,
a user-facing issue and an optional suggestion. Categories start at 100
and are floored at 0.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from project_health.core.rules import CategoryRules, Rule
from project_health.core.scoring import Floor, Rung, VerdictLadder
from project_health.schemas import (
    CategoryScore,
    Confidence,
    DeploymentEvidence,
    DeploymentScoreBreakdown,
    Issue,
    PageSpeedEvidence,
    Priority,
    Suggestion,
    Verdict,
)
from project_health.schemas.report import MAX_OVERALL_SCORE

CATEGORY_START = 100
OVERALL_WEIGHTS = {"performance": 0.3, "errors": 0.4, "durability": 0.3}
PAGESPEED_BLEND = 0.6
PROBE_BLEND = {"errors": 0.2, "durability": 0.2}

LARGE_PAGE_BYTES = 1_000_000
POOR_PERFORMANCE = 50
POOR_ACCESSIBILITY = 80
POOR_SEO = 80
MAX_OPPORTUNITY_SUGGESTIONS = 5

Text = Callable[[DeploymentEvidence], str]


@dataclass(frozen=True)
class DeploymentCheck:
    """One probe finding: when it fires, what it costs, what it tells the user."""
    when: Callable[[DeploymentEvidence], bool]
    penalties: dict[str, int]
    severity: str
    category: str
    title: str
    description: str | Text
    impact: str
    suggestion: Suggestion | None = None

    def issue(self, probe: DeploymentEvidence) -> Issue:
        description = self.description(probe) if callable(self.description) else self.description
        return Issue(
            severity=self.severity,
            category=self.category,
            title=self.title,
            description=description,
            impact=self.impact,
        )


def _status(probe: DeploymentEvidence) -> int:
    return probe.status_code or 0


def _html(probe: DeploymentEvidence) -> bool:
    return probe.reachable and probe.is_html


UNREACHABLE_SUGGESTION = Suggestion(
    priority=Priority.CRITICAL,
    category="error",
    title="Ensure Application is Running",
    description="Verify your deployment is active, check hosting provider status, and confirm the URL is correct.",
)

REACHABLE_CHECKS = [
    DeploymentCheck(
        when=lambda p: _status(p) >= 500,
        penalties={"errors": 40},
        severity="critical",
        category="error",
        title="Server Error Detected",
        description=lambda p: f"The server returned a {p.status_code} error. This indicates a server-side problem.",
        impact="Users will see an error page instead of your application.",
        suggestion=Suggestion(
            priority=Priority.HIGH,
            category="error",
            title="Fix Server Errors",
            description="Check your server logs, ensure your application is running, and verify database connections.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: 400 <= _status(p) < 500,
        penalties={"errors": 30},
        severity="major",
        category="error",
        title="Client Error Detected",
        description=lambda p: (
            f"The server returned a {p.status_code} error. "
            "The requested resource may not exist or be inaccessible."
        ),
        impact="Users may not be able to access your application.",
        suggestion=Suggestion(
            priority=Priority.HIGH,
            category="error",
            title="Fix Access Issues",
            description="Verify the URL is correct, check authentication settings, and ensure routes are properly configured.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: 300 <= _status(p) < 400 or p.redirects > 0,
        penalties={"performance": 5},
        severity="info",
        category="performance",
        title="Redirect Detected",
        description=lambda p: f"The URL redirects to another location ({p.redirects} redirect(s)).",
        impact="Adds slight latency to page load.",
    ),
    DeploymentCheck(
        when=lambda p: (p.response_time_ms or 0) > 5000,
        penalties={"performance": 30},
        severity="critical",
        category="performance",
        title="Extremely Slow Response",
        description=lambda p: f"Response time is {p.response_time_ms}ms (over 5 seconds).",
        impact="Users will likely leave before the page loads. Search engines may penalize slow sites.",
        suggestion=Suggestion(
            priority=Priority.HIGH,
            category="performance",
            title="Improve Server Response Time",
            description="Consider upgrading hosting, optimizing database queries, implementing caching, or using a CDN.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: 2000 < (p.response_time_ms or 0) <= 5000,
        penalties={"performance": 15},
        severity="major",
        category="performance",
        title="Slow Response Time",
        description=lambda p: f"Response time is {p.response_time_ms}ms (over 2 seconds).",
        impact="User experience may suffer. Mobile users especially will notice delays.",
        suggestion=Suggestion(
            priority=Priority.MEDIUM,
            category="performance",
            title="Optimize Response Time",
            description="Target response times under 1 second. Check for slow database queries or API calls.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: 1000 < (p.response_time_ms or 0) <= 2000,
        penalties={"performance": 5},
        severity="minor",
        category="performance",
        title="Moderate Response Time",
        description=lambda p: f"Response time is {p.response_time_ms}ms.",
        impact="Acceptable but could be faster.",
    ),
    DeploymentCheck(
        when=lambda p: _html(p) and p.has_error_content,
        penalties={"errors": 20},
        severity="critical",
        category="error",
        title="Error Page Content Detected",
        description="The page contains error message content.",
        impact="Users are seeing an error page.",
    ),
    DeploymentCheck(
        when=lambda p: _html(p) and not p.has_title,
        penalties={},
        severity="minor",
        category="seo",
        title="Missing Page Title",
        description="The page does not have a title tag.",
        impact="Bad for SEO and browser tab display.",
        suggestion=Suggestion(
            priority=Priority.LOW,
            category="seo",
            title="Add Page Title",
            description="Add a descriptive <title> tag to improve SEO.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: _html(p) and not p.has_viewport,
        penalties={"durability": 5},
        severity="minor",
        category="accessibility",
        title="Missing Viewport Meta Tag",
        description="The page may not be mobile-friendly.",
        impact="Poor experience on mobile devices.",
        suggestion=Suggestion(
            priority=Priority.MEDIUM,
            category="accessibility",
            title="Add Viewport Meta Tag",
            description='Add <meta name="viewport" content="width=device-width, initial-scale=1"> for mobile support.',
        ),
    ),
    DeploymentCheck(
        when=lambda p: _html(p) and (p.page_size or 0) > LARGE_PAGE_BYTES,
        penalties={"performance": 15},
        severity="major",
        category="performance",
        title="Large Page Size",
        description=lambda p: f"Page size is {(p.page_size or 0) / 1024 / 1024:.2f}MB.",
        impact="Slow loading, especially on mobile networks.",
        suggestion=Suggestion(
            priority=Priority.HIGH,
            category="performance",
            title="Reduce Page Size",
            description="Optimize images, minify CSS/JS, and consider lazy loading.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: not p.uses_https,
        penalties={"durability": 25},
        severity="critical",
        category="security",
        title="Not Using HTTPS",
        description="The site is served over HTTP without encryption.",
        impact='Data can be intercepted. Browsers show "Not Secure" warning.',
        suggestion=Suggestion(
            priority=Priority.CRITICAL,
            category="security",
            title="Enable HTTPS",
            description="Configure SSL/TLS certificate. Most hosting providers offer free SSL via Let's Encrypt.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: bool(p.missing_security_headers),
        penalties={"durability": 5},
        severity="minor",
        category="security",
        title="Missing Security Headers",
        description=lambda p: f"Missing headers: {', '.join(p.missing_security_headers)}",
        impact="Reduced protection against certain attacks.",
        suggestion=Suggestion(
            priority=Priority.MEDIUM,
            category="security",
            title="Add Security Headers",
            description="Configure your server to send security headers to protect against XSS, clickjacking, etc.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: not p.has_caching_headers,
        penalties={"performance": 5},
        severity="minor",
        category="performance",
        title="No Caching Headers",
        description="The server does not specify caching behavior.",
        impact="Browsers will re-download resources on every visit.",
        suggestion=Suggestion(
            priority=Priority.MEDIUM,
            category="performance",
            title="Configure Caching",
            description="Add Cache-Control headers to improve repeat visit performance.",
        ),
    ),
    DeploymentCheck(
        when=lambda p: not p.has_compression,
        penalties={"performance": 5},
        severity="minor",
        category="performance",
        title="No Compression",
        description="Response is not compressed.",
        impact="Larger download size, slower loading.",
        suggestion=Suggestion(
            priority=Priority.LOW,
            category="performance",
            title="Enable Compression",
            description="Enable gzip or brotli compression on your server.",
        ),
    ),
]

UNREACHABLE_CHECKS = [
    DeploymentCheck(
        when=lambda p: p.error_kind == "timeout",
        penalties={"errors": 50, "performance": 30},
        severity="critical",
        category="error",
        title="Request Timeout",
        description="The server did not respond within the configured timeout.",
        impact="Users cannot access your application.",
    ),
    DeploymentCheck(
        when=lambda p: p.error_kind == "dns",
        penalties={"errors": 50},
        severity="critical",
        category="error",
        title="Domain Not Found",
        description="The domain does not exist or DNS is not configured.",
        impact="Application is completely inaccessible.",
    ),
    DeploymentCheck(
        when=lambda p: p.error_kind == "refused",
        penalties={"errors": 50},
        severity="critical",
        category="error",
        title="Connection Refused",
        description="The server is not accepting connections.",
        impact="Application is down or misconfigured.",
    ),
    DeploymentCheck(
        when=lambda p: p.error_kind == "ssl",
        penalties={"durability": 40, "errors": 20},
        severity="critical",
        category="security",
        title="SSL Certificate Error",
        description="The SSL certificate is invalid, expired, or misconfigured.",
        impact="Browsers will block access with security warning.",
    ),
    DeploymentCheck(
        when=lambda p: p.error_kind not in {"timeout", "dns", "refused", "ssl"},
        penalties={"errors": 50},
        severity="critical",
        category="error",
        title="Connection Failed",
        description=lambda p: f"Could not connect: {p.error or 'unknown error'}",
        impact="Application may be inaccessible.",
    ),
]

DEPLOYMENT_LADDER = VerdictLadder(
    floors=[
        Floor("reachable", 1, Verdict(
            label="Unreachable", emoji="🚫",
            reason="The deployment could not be reached", color="danger",
        )),
    ],
    rungs=[
        Rung(40, Verdict(label="Critical Issues", emoji="🚨",
                         reason="Critical issues need immediate attention", color="danger")),
        Rung(60, Verdict(label="Needs Fixes", emoji="⚠️",
                         reason="Several issues should be fixed before launch", color="warning")),
        Rung(80, Verdict(label="Needs Attention", emoji="📈",
                         reason="Your project needs some attention", color="info")),
    ],
    top=Verdict(label="Good Shape", emoji="🎉",
                reason="Your deployment is in good shape", color="success"),
)


def _category_rules(name: str, checks: list[DeploymentCheck]) -> CategoryRules:
    return CategoryRules(
        name=name,
        max=CATEGORY_START,
        start=CATEGORY_START,
        rules=[
            Rule(check.when, -check.penalties[name], f"✗ {check.title} (-{check.penalties[name]})")
            for check in checks
            if name in check.penalties
        ],
    )


def pagespeed_findings(pagespeed: PageSpeedEvidence) -> tuple[list[Issue], list[Suggestion]]:
    """Issues for poor page-speed categories and suggestions for top opportunities."""
    issues: list[Issue] = []
    suggestions: list[Suggestion] = []
    scores = pagespeed.scores
    if not pagespeed.analyzed or scores is None:
        return issues, suggestions

    if scores.performance < POOR_PERFORMANCE:
        issues.append(Issue(
            severity="major",
            category="performance",
            title="Poor Performance Score",
            description=f"Page-speed performance score is {scores.performance}/100",
            impact="Slow pages lead to poor user experience and lower SEO rankings",
        ))
    if scores.accessibility < POOR_ACCESSIBILITY:
        issues.append(Issue(
            severity="major",
            category="accessibility",
            title="Accessibility Issues Detected",
            description=f"Page-speed accessibility score is {scores.accessibility}/100",
            impact="Some users may have difficulty using your application",
        ))
    if scores.seo < POOR_SEO:
        issues.append(Issue(
            severity="minor",
            category="seo",
            title="SEO Improvements Needed",
            description=f"Page-speed SEO score is {scores.seo}/100",
            impact="Your site may not rank well in search engines",
        ))

    for opp in pagespeed.opportunities[:MAX_OPPORTUNITY_SUGGESTIONS]:
        suggestions.append(Suggestion(
            priority=Priority.HIGH if opp.score < 50 else Priority.MEDIUM,
            category="performance",
            title=opp.title,
            description=opp.display_value or opp.description or "",
        ))
    return issues, suggestions


@dataclass
class DeploymentAssessment:
    breakdown: DeploymentScoreBreakdown
    confidence: Confidence
    verdict: Verdict
    issues: list[Issue] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)


class DeploymentScorer:
    """Scores a deployment from its HTTP probe and optional page-speed run."""

    def score(
        self,
        probe: DeploymentEvidence,
        pagespeed: PageSpeedEvidence | None = None,
    ) -> DeploymentAssessment:
        checks = REACHABLE_CHECKS if probe.reachable else UNREACHABLE_CHECKS
        fired = [check for check in checks if check.when(probe)]

        categories: dict[str, CategoryScore] = {
            name: _category_rules(name, checks).evaluate(probe) for name in OVERALL_WEIGHTS
        }
        weighted = round(sum(categories[name].earned * w for name, w in OVERALL_WEIGHTS.items()))

        issues = [check.issue(probe) for check in fired]
        suggestions = [check.suggestion for check in fired if check.suggestion is not None]
        if not probe.reachable:
            suggestions.append(UNREACHABLE_SUGGESTION)
        elif _status(probe) in (200, 201):
            suggestions.append(Suggestion(
                priority=Priority.INFO,
                category="success",
                title="HTTP Status OK",
                description="Your application returns a successful response.",
            ))

        pagespeed_average = None
        if pagespeed is not None and pagespeed.analyzed and pagespeed.scores is not None:
            pagespeed_average = pagespeed.scores.weighted_average
            weighted = round(
                pagespeed_average * PAGESPEED_BLEND
                + sum(categories[name].earned * w for name, w in PROBE_BLEND.items())
            )
            ps_issues, ps_suggestions = pagespeed_findings(pagespeed)
            issues.extend(ps_issues)
            suggestions.extend(ps_suggestions)

        overall = max(0, min(MAX_OVERALL_SCORE, weighted))
        breakdown = DeploymentScoreBreakdown(
            **categories,
            pagespeed_average=pagespeed_average,
            overall=overall,
        )

        if not probe.reachable:
            confidence = Confidence.LOW
        elif pagespeed_average is not None:
            confidence = Confidence.HIGH
        else:
            confidence = Confidence.MEDIUM

        verdict = DEPLOYMENT_LADDER.pick(overall, reachable=int(probe.reachable))

        logger.info(
            f"Deployment scored: perf={categories['performance'].earned} "
            f"errors={categories['errors'].earned} durability={categories['durability'].earned} "
            f"-> {overall} ({confidence.value})"
        )
        return DeploymentAssessment(
            breakdown=breakdown,
            confidence=confidence,
            verdict=verdict,
            issues=issues,
            suggestions=suggestions,
        )
