"""Suggestions, priority actions, issues and plain-language summaries."""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from project_health.core.scoring import ScoringContext, ScoringPolicy
from project_health.schemas import (
    Confidence,
    DeploymentEvidence,
    Issue,
    PageSpeedEvidence,
    Priority,
    PriorityAction,
    RepositoryEvidence,
    StackEvidence,
    Suggestion,
    SummaryPoint,
)
from project_health.utils import plural

# Suggestions whose titles match the same topic are collapsed to one
TOPIC_PATTERNS: list[tuple[str, list[str]]] = [
    ("eslint", ["eslint", "linting", "code quality"]),
    ("typescript", ["typescript"]),
    ("tests", ["test", "testing", "jest", "vitest"]),
    ("security", ["vulnerabilit", "security", "audit"]),
    ("outdated", ["outdated", "update", "packages can be updated"]),
]

MANY_OUTDATED = 10
OUTDATED_ACTION_THRESHOLD = 5
LINT_WARNING_THRESHOLD = 5
SLOW_LCP_SECONDS = 4.0


def topic_of(title: str) -> str:
    lower = title.lower()
    for key, patterns in TOPIC_PATTERNS:
        if any(p in lower for p in patterns):
            return key
    return lower


def deduplicate(suggestions: list[Suggestion]) -> list[Suggestion]:
    """Keep only the highest-priority suggestion per topic.

    The survivor takes the position of the first suggestion seen for its
    topic, so relative order across topics is preserved.
    """
    kept: list[Suggestion] = []
    index_by_topic: dict[str, int] = {}

    for suggestion in suggestions:
        topic = topic_of(suggestion.title)
        if topic not in index_by_topic:
            index_by_topic[topic] = len(kept)
            kept.append(suggestion)
            continue
        idx = index_by_topic[topic]
        if suggestion.priority.rank < kept[idx].priority.rank:
            kept[idx] = suggestion

    dropped = len(suggestions) - len(kept)
    if dropped:
        logger.debug(f"Deduplicated {dropped} overlapping suggestions")
    return kept


def finalize(
    suggestions: list[Suggestion],
    confidence: Confidence,
    stack: StackEvidence | None = None,
) -> list[Suggestion]:
    """Add framework hints, deduplicate, guarantee one suggestion, disclose limits, sort."""
    candidates = list(suggestions)
    if stack is not None and stack.framework == "Next.js" and not stack.has_tests:
        candidates.append(Suggestion(
            priority=Priority.MEDIUM,
            category="testing",
            title="Add React Testing Library",
            description="Test your Next.js components to prevent UI regressions.",
        ))

    result = deduplicate(candidates)

    if not result:
        result.append(Suggestion(
            priority=Priority.LOW,
            category="general",
            title="Consider adding more documentation",
            description="Good documentation improves maintainability.",
        ))

    if confidence != Confidence.HIGH:
        result.append(Suggestion(
            priority=Priority.INFO,
            category="analysis",
            title="Analysis depth limited",
            description=f"Confidence: {confidence.value}. Runtime behavior and load testing not performed.",
        ))

    # sorted() is stable, so equal priorities keep their order
    return sorted(result, key=lambda s: s.priority.rank)


@dataclass
class Recommendations:
    suggestions: list[Suggestion] = field(default_factory=list)
    priority_actions: list[PriorityAction] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    summary: list[SummaryPoint] = field(default_factory=list)


MAINTAIN_ACTION = PriorityAction(
    priority=1,
    urgency="Keep it up",
    title="Maintain regular updates",
    command="npm outdated",
    time_estimate="Weekly check",
    impact="Keeps your project healthy over time",
)


class RecommendationSynthesizer:
    """Derives everything a reader acts on from evidence and scores."""

    def for_repository(
        self,
        evidence: RepositoryEvidence,
        policy: ScoringPolicy,
        confidence: Confidence,
    ) -> Recommendations:
        ctx = ScoringContext(evidence=evidence, policy=policy)
        suggestions = finalize(self._repository_suggestions(ctx), confidence, evidence.stack)
        recs = Recommendations(
            suggestions=suggestions,
            priority_actions=self._repository_actions(evidence),
            issues=self._repository_issues(ctx),
            summary=self._repository_summary(evidence),
        )
        logger.info(
            f"Synthesized {len(recs.suggestions)} suggestions, "
            f"{len(recs.priority_actions)} actions, {len(recs.issues)} issues"
        )
        return recs

    def for_deployment(
        self,
        suggestions: list[Suggestion],
        issues: list[Issue],
        confidence: Confidence,
        probe: DeploymentEvidence,
        pagespeed: PageSpeedEvidence | None = None,
    ) -> Recommendations:
        return Recommendations(
            suggestions=finalize(suggestions, confidence),
            priority_actions=self._deployment_actions(probe, pagespeed),
            issues=issues,
            summary=self._deployment_summary(probe, pagespeed),
        )

    def _repository_suggestions(self, ctx: ScoringContext) -> list[Suggestion]:
        evidence = ctx.evidence
        stack = evidence.stack
        suggestions: list[Suggestion] = []

        if not evidence.packages_analyzed:
            suggestions.extend(self._ecosystem_suggestions(stack))

        if ctx.policy.suggest_tooling and evidence.packages_analyzed:
            if not stack.has_typescript:
                suggestions.append(Suggestion(
                    priority=Priority.MEDIUM,
                    category="code-quality",
                    title="Consider using TypeScript",
                    description="TypeScript can help catch errors early and improve code maintainability.",
                ))
            if not stack.has_linter:
                suggestions.append(Suggestion(
                    priority=Priority.HIGH,
                    category="code-quality",
                    title="Add ESLint for code quality",
                    description="ESLint helps maintain consistent code style and catches common errors.",
                ))

        outdated = evidence.dependencies.outdated
        if outdated > MANY_OUTDATED:
            suggestions.append(Suggestion(
                priority=Priority.MEDIUM,
                category="maintenance",
                title="Update outdated dependencies",
                description=f"{outdated} packages are outdated. Run 'npm update' to update them.",
            ))
        elif outdated > 0:
            suggestions.append(Suggestion(
                priority=Priority.LOW,
                category="maintenance",
                title=f"{plural(outdated, 'package')} can be updated",
                description="Consider updating to latest versions for bug fixes and improvements.",
            ))

        quality = evidence.code_quality
        if quality.analyzed and not ctx.own_lint_config_trusted:
            if quality.errors > 0:
                suggestions.append(Suggestion(
                    priority=Priority.HIGH,
                    category="code-quality",
                    title=f"Fix {quality.errors} ESLint errors",
                    description="ESLint errors indicate potential bugs or code quality issues.",
                ))
            if quality.warnings > LINT_WARNING_THRESHOLD:
                suggestions.append(Suggestion(
                    priority=Priority.MEDIUM,
                    category="code-quality",
                    title=f"Address {quality.warnings} ESLint warnings",
                    description="Warnings may indicate code smell or potential issues.",
                ))

        if evidence.typecheck.analyzed and evidence.typecheck.errors > 0:
            suggestions.append(Suggestion(
                priority=Priority.HIGH,
                category="code-quality",
                title=f"Fix {evidence.typecheck.errors} TypeScript errors",
                description="TypeScript errors may cause runtime issues.",
            ))

        library = ctx.policy.repo_type.is_library_like
        if ctx.audited and ctx.vulns.critical > 0:
            suggestions.append(Suggestion(
                priority=Priority.CRITICAL,
                category="security",
                title=f"Fix {ctx.vulns.critical} critical vulnerabilities",
                description=(
                    "Critical vulnerabilities in production dependencies affect all users of this library."
                    if library else "Critical vulnerabilities must be fixed immediately."
                ),
            ))
        elif ctx.audited and ctx.vulns.high > 0:
            suggestions.append(Suggestion(
                priority=Priority.HIGH,
                category="security",
                title=f"Fix {ctx.vulns.high} high severity vulnerabilities",
                description=(
                    "High severity issues in production dependencies should be addressed promptly."
                    if library else "High severity issues should be addressed promptly."
                ),
            ))

        if not stack.has_tests:
            suggestions.append(Suggestion(
                priority=Priority.HIGH,
                category="testing",
                title="Add automated tests",
                description="Tests help ensure your code works correctly and prevents regressions.",
            ))

        if not stack.has_readme:
            suggestions.append(Suggestion(
                priority=Priority.MEDIUM,
                category="hygiene",
                title="Add a README",
                description="A README helps others understand your project.",
            ))

        return suggestions

    @staticmethod
    def _ecosystem_suggestions(stack: StackEvidence) -> list[Suggestion]:
        if stack.language:
            return [Suggestion(
                priority=Priority.INFO,
                category="general",
                title=f"{stack.language} project detected",
                description=(
                    f"Full {stack.language} analysis is coming soon. "
                    "Currently only Node.js is fully supported."
                ),
            )]
        return [Suggestion(
            priority=Priority.HIGH,
            category="general",
            title="Project type not recognized",
            description="Could not find package.json, requirements.txt, or go.mod. Analysis is limited.",
        )]

    @staticmethod
    def _repository_actions(evidence: RepositoryEvidence) -> list[PriorityAction]:
        """One action per concern, in fixed precedence order."""
        vulns = evidence.security.vulnerabilities
        actions: list[PriorityAction] = []

        if vulns.critical > 0:
            actions.append(PriorityAction(
                priority=1,
                urgency="Do this now",
                title="Fix critical security vulnerabilities",
                command="npm audit fix --force",
                time_estimate="5 minutes",
                impact="Prevents hackers from exploiting known weaknesses",
            ))
        if vulns.high > 0:
            actions.append(PriorityAction(
                priority=2,
                urgency="Do this today",
                title="Fix high severity vulnerabilities",
                command="npm audit fix",
                time_estimate="10 minutes",
                impact="Reduces security risk significantly",
            ))
        if not evidence.stack.has_tests:
            actions.append(PriorityAction(
                priority=3,
                urgency="Do this week",
                title="Add automated tests",
                command="npm install -D jest",
                time_estimate="2-4 hours",
                impact="Catches bugs before users find them",
            ))
        if not evidence.stack.has_linter:
            actions.append(PriorityAction(
                priority=4,
                urgency="Nice to have",
                title="Add code linting",
                command="npm install -D eslint && npx eslint --init",
                time_estimate="30 minutes",
                impact="Catches common mistakes automatically",
            ))
        if evidence.dependencies.outdated > OUTDATED_ACTION_THRESHOLD:
            actions.append(PriorityAction(
                priority=5,
                urgency="When you have time",
                title="Update outdated packages",
                command="npm update",
                time_estimate="15 minutes",
                impact="Gets bug fixes and security patches",
            ))

        return actions or [MAINTAIN_ACTION]

    @staticmethod
    def _deployment_actions(
        probe: DeploymentEvidence,
        pagespeed: PageSpeedEvidence | None,
    ) -> list[PriorityAction]:
        actions: list[PriorityAction] = []

        if not probe.reachable:
            actions.append(PriorityAction(
                priority=1,
                urgency="Do this now",
                title="Bring the deployment back online",
                command="Check your hosting provider dashboard and deployment logs",
                time_estimate="15 minutes",
                impact="Nobody can use your application until it responds",
            ))
            return actions

        if not probe.uses_https:
            actions.append(PriorityAction(
                priority=1,
                urgency="Do this now",
                title="Enable HTTPS",
                command="Enable a free Let's Encrypt certificate on your host",
                time_estimate="15 minutes",
                impact="Removes the browser's \"Not Secure\" warning",
            ))
        if (probe.status_code or 0) >= 400:
            actions.append(PriorityAction(
                priority=2,
                urgency="Do this today",
                title="Fix error responses",
                command=f"curl -I {probe.final_url or ''}".strip(),
                time_estimate="30 minutes",
                impact="Visitors currently see an error page",
            ))
        scores = pagespeed.scores if pagespeed is not None and pagespeed.analyzed else None
        if scores is not None and scores.performance < 50:
            actions.append(PriorityAction(
                priority=3,
                urgency="Do this week",
                title="Improve page performance",
                command="Optimize images, enable caching, and minimize JavaScript",
                time_estimate="2-4 hours",
                impact="Faster pages keep visitors and rank higher in search",
            ))

        return actions or [PriorityAction(
            priority=1,
            urgency="Keep it up",
            title="Keep monitoring your deployment",
            command=f"curl -I {probe.final_url or ''}".strip(),
            time_estimate="Weekly check",
            impact="Catches regressions before your users do",
        )]

    @staticmethod
    def _repository_issues(ctx: ScoringContext) -> list[Issue]:
        issues: list[Issue] = []
        vulns = ctx.evidence.security.vulnerabilities

        if vulns.critical > 0:
            issues.append(Issue(
                severity="critical",
                category="security",
                title=f"{vulns.critical} Critical Vulnerabilities",
                description="Critical security vulnerabilities found in dependencies",
                impact="Your application may be vulnerable to attacks",
            ))
        if vulns.high > 0:
            issues.append(Issue(
                severity="major",
                category="security",
                title=f"{vulns.high} High Severity Vulnerabilities",
                description="High severity security issues in dependencies",
                impact="Security risk in your application",
            ))
        errors = ctx.evidence.code_quality.errors
        if ctx.evidence.code_quality.analyzed and errors > 0:
            issues.append(Issue(
                severity="major",
                category="code-quality",
                title=f"{errors} ESLint Errors",
                description="Code quality issues detected by ESLint",
                impact="May indicate bugs or poor code practices",
            ))
        return issues

    @staticmethod
    def _repository_summary(evidence: RepositoryEvidence) -> list[SummaryPoint]:
        summary: list[SummaryPoint] = []
        vulns = evidence.security.vulnerabilities
        stack = evidence.stack

        if vulns.total > 0:
            serious = vulns.critical + vulns.high
            if serious > 0:
                summary.append(SummaryPoint(
                    icon="🚨",
                    title="Security Issues Found",
                    plain=(
                        f"Your project has {plural(serious, 'serious security problem')} "
                        "that should be fixed immediately."
                    ),
                    action='Run "npm audit fix" in your terminal to automatically fix most issues.',
                ))
            else:
                summary.append(SummaryPoint(
                    icon="⚠️",
                    title="Minor Security Warnings",
                    plain=f"Your project has {plural(vulns.total, 'minor security warning')}.",
                    action="These are low priority but worth reviewing when you have time.",
                ))
        elif evidence.security.analyzed:
            summary.append(SummaryPoint(
                icon="✅",
                title="No Security Issues",
                plain="No known security vulnerabilities were found in your dependencies.",
                action="Keep dependencies updated to maintain this.",
            ))

        if not stack.has_tests:
            summary.append(SummaryPoint(
                icon="⚠️",
                title="No Tests Detected",
                plain="Your project doesn't have automated tests. This means bugs could slip through unnoticed.",
                action="Consider adding tests with Jest or Vitest to catch bugs before users do.",
            ))

        if not stack.has_typescript and stack.language == "JavaScript":
            summary.append(SummaryPoint(
                icon="💡",
                title="No TypeScript",
                plain="Your project uses JavaScript without TypeScript. This is fine for small projects.",
                action="For larger projects, TypeScript helps catch errors before they happen.",
            ))

        outdated = evidence.dependencies.outdated
        if outdated > MANY_OUTDATED:
            summary.append(SummaryPoint(
                icon="📦",
                title="Many Outdated Packages",
                plain=f"{outdated} of your packages are outdated. Old packages may have bugs or security issues.",
                action="Run \"npm update\" to update safely, or \"npm outdated\" to see what's old.",
            ))

        return summary

    @staticmethod
    def _deployment_summary(
        probe: DeploymentEvidence,
        pagespeed: PageSpeedEvidence | None,
    ) -> list[SummaryPoint]:
        summary: list[SummaryPoint] = []

        if not probe.reachable:
            summary.append(SummaryPoint(
                icon="🚫",
                title="Site Unreachable",
                plain="We could not load your site. Visitors will see an error instead of your application.",
                action="Verify your deployment is active and the URL is correct.",
            ))
            return summary

        if probe.uses_https:
            summary.append(SummaryPoint(
                icon="✅",
                title="HTTPS Enabled",
                plain="Site uses HTTPS encryption.",
                action="Keep your certificate renewed.",
            ))
        else:
            summary.append(SummaryPoint(
                icon="⚠️",
                title="No Encryption",
                plain='Browsers show "Not Secure" for your site. Users won\'t trust it.',
                action="Enable HTTPS with a free certificate from your host.",
            ))

        if pagespeed is None or not pagespeed.analyzed or pagespeed.scores is None:
            return summary

        performance = pagespeed.scores.performance
        if performance >= 90:
            summary.append(SummaryPoint(
                icon="✅",
                title="Fast Site",
                plain="Your site loads quickly on most devices.",
                action="Keep an eye on page weight as you add features.",
            ))
        elif performance >= 50:
            summary.append(SummaryPoint(
                icon="⚠️",
                title="A Bit Slow",
                plain="Your site is a bit slow, especially on phones. This hurts conversions.",
                action="Work through the top page-speed opportunities.",
            ))
        else:
            summary.append(SummaryPoint(
                icon="🚨",
                title="Too Slow",
                plain="Your site is too slow. You're losing visitors and search ranking.",
                action="Optimize images, enable caching, and minimize JavaScript.",
            ))

        lcp = pagespeed.web_vitals.lcp
        if lcp is not None and lcp > SLOW_LCP_SECONDS:
            summary.append(SummaryPoint(
                icon="🐢",
                title="Slow Main Content",
                plain=f"Your page takes {lcp}s to show content. Most users will leave before it loads.",
                action="Compress images, use lazy loading, optimize server response.",
            ))

        return summary
