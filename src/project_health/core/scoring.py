"""Evidence-based repository scoring.

Every category starts at zero and every point is earned by a specific,
recorded piece of evidence. The overall score is discounted by how much
evidence could be collected and never exceeds 95.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from project_health.core.rules import Cap, CategoryRules, Rule
from project_health.schemas import (
    Confidence,
    RepositoryEvidence,
    RepoType,
    ScoreBreakdown,
    Verdict,
    VulnerabilityCounts,
)
from project_health.schemas.report import MAX_OVERALL_SCORE

HIGH_COVERAGE = 0.8
MEDIUM_COVERAGE = 0.4


@dataclass(frozen=True)
class OutdatedTier:
    """Award `points` when the outdated count is at most `limit` (None: any)."""
    limit: int | None
    points: int
    note: str = ""


@dataclass(frozen=True)
class Rung:
    below: int
    verdict: Verdict


@dataclass(frozen=True)
class Floor:
    """Force `verdict` when `signal` is below `threshold`, whatever the overall."""
    signal: str
    threshold: int
    verdict: Verdict


@dataclass(frozen=True)
class VerdictLadder:
    """Hard floors checked first, then the first rung whose bound exceeds overall."""
    floors: list[Floor]
    rungs: list[Rung]
    top: Verdict

    def pick(self, overall: int, **signals: int) -> Verdict:
        for floor in self.floors:
            if signals[floor.signal] < floor.threshold:
                return floor.verdict
        for rung in self.rungs:
            if overall < rung.below:
                return rung.verdict
        return self.top


SECURITY_FLOOR = 15
TESTING_FLOOR = 5

LIBRARY_LADDER = VerdictLadder(
    floors=[
        Floor("security", SECURITY_FLOOR, Verdict(
            label="Security Issues", emoji="🚨",
            reason="Production dependencies have security vulnerabilities", color="danger",
        )),
    ],
    rungs=[
        Rung(40, Verdict(label="Needs Attention", emoji="⚠️",
                         reason="Some areas need improvement", color="warning")),
        Rung(55, Verdict(label="Functional Library", emoji="📦",
                         reason="Basic library functionality in place", color="info")),
        Rung(70, Verdict(label="Good Library", emoji="✅",
                         reason="Well-maintained library", color="success")),
        Rung(85, Verdict(label="Production-Grade", emoji="🚀",
                         reason="High-quality, production-ready library", color="success")),
    ],
    top=Verdict(label="Excellent Library", emoji="🏆",
                reason="Exceptional quality, industry-leading practices", color="success"),
)

APPLICATION_LADDER = VerdictLadder(
    floors=[
        Floor("security", SECURITY_FLOOR, Verdict(
            label="Not Production Ready", emoji="🚨",
            reason="Critical security issues must be fixed", color="danger",
        )),
        Floor("testing", TESTING_FLOOR, Verdict(
            label="Not Interview Ready", emoji="⚠️",
            reason="No tests detected - add tests to demonstrate professionalism", color="warning",
        )),
    ],
    rungs=[
        Rung(25, Verdict(label="Beginner Level", emoji="🚫",
                         reason="Significant improvements needed", color="danger")),
        Rung(40, Verdict(label="Needs Work", emoji="⚠️",
                         reason="Address major issues before sharing", color="warning")),
        Rung(55, Verdict(label="Developing", emoji="📈",
                         reason="Good foundation, keep improving", color="info")),
        Rung(70, Verdict(label="Acceptable", emoji="✅",
                         reason="Meets basic quality standards", color="success")),
        Rung(85, Verdict(label="Production Ready", emoji="🚀",
                         reason="Good quality, ready for deployment", color="success")),
    ],
    top=Verdict(label="Excellent", emoji="🏆",
                reason="Exceptional quality (rare)", color="success"),
)


@dataclass(frozen=True)
class ScoringPolicy:
    """Every repo-type-dependent decision, selected once per analysis."""
    repo_type: RepoType
    production_only_vulnerabilities: bool
    trust_own_lint_config: bool
    suggest_tooling: bool
    outdated_tiers: tuple[OutdatedTier, ...]
    ladder: VerdictLadder

    @classmethod
    def for_repo_type(cls, repo_type: RepoType) -> ScoringPolicy:
        if repo_type.is_library_like:
            # Libraries pin versions for compatibility; be lenient on outdated
            return cls(
                repo_type=repo_type,
                production_only_vulnerabilities=True,
                trust_own_lint_config=True,
                suggest_tooling=False,
                outdated_tiers=(
                    OutdatedTier(0, 4),
                    OutdatedTier(10, 3, "common for libraries"),
                    OutdatedTier(None, 2, "may be intentional for compatibility"),
                ),
                ladder=LIBRARY_LADDER,
            )
        return cls(
            repo_type=repo_type,
            production_only_vulnerabilities=False,
            trust_own_lint_config=False,
            suggest_tooling=True,
            outdated_tiers=(
                OutdatedTier(0, 4),
                OutdatedTier(5, 2),
                OutdatedTier(None, 0),
            ),
            ladder=APPLICATION_LADDER,
        )


@dataclass(frozen=True)
class ScoringContext:
    """What the rules see: evidence plus the policy chosen for it."""
    evidence: RepositoryEvidence
    policy: ScoringPolicy

    @property
    def vulns(self) -> VulnerabilityCounts:
        """Vulnerability counts that score (production-only for library types)."""
        security = self.evidence.security
        if self.policy.production_only_vulnerabilities:
            return security.production_vulnerabilities
        return security.vulnerabilities

    @property
    def dev_only_vulns(self) -> int:
        return max(0, self.evidence.security.vulnerabilities.total - self.vulns.total)

    @property
    def audited(self) -> bool:
        return self.evidence.security.analyzed

    @property
    def linted(self) -> bool:
        return self.evidence.code_quality.analyzed

    @property
    def own_lint_config_trusted(self) -> bool:
        return self.policy.trust_own_lint_config and self.evidence.stack.has_linter

    @property
    def outdated_tier(self) -> OutdatedTier:
        outdated = self.evidence.dependencies.outdated
        for tier in self.policy.outdated_tiers:
            if tier.limit is None or outdated <= tier.limit:
                return tier
        return self.policy.outdated_tiers[-1]


def _outdated_detail(c: ScoringContext) -> str:
    outdated = c.evidence.dependencies.outdated
    tier = c.outdated_tier
    if outdated == 0:
        return f"✓ All dependencies up to date (+{tier.points})"
    mark = "⚠" if tier.points else "✗"
    suffix = f" - {tier.note}" if tier.note else ""
    return f"{mark} {outdated} outdated packages (+{tier.points}){suffix}"


SECURITY_RULES = CategoryRules(
    name="security",
    max=30,
    rules=[
        Rule(lambda c: c.audited and c.dev_only_vulns > 0 and c.policy.production_only_vulnerabilities, 0,
             lambda c: f"ℹ️ {c.dev_only_vulns} vulnerabilities in devDependencies (not counted for libraries)"),
        Rule(lambda c: c.audited and c.vulns.critical == 0, 10, "✓ No critical vulnerabilities (+10)"),
        Rule(lambda c: c.audited and c.vulns.critical > 0, 0,
             lambda c: f"✗ {c.vulns.critical} critical vulnerabilities (0)"),
        Rule(lambda c: c.audited and c.vulns.high == 0, 10, "✓ No high vulnerabilities (+10)"),
        Rule(lambda c: c.audited and c.vulns.high > 0, 0,
             lambda c: f"✗ {c.vulns.high} high vulnerabilities (0)"),
        Rule(lambda c: c.audited and c.vulns.moderate == 0, 5, "✓ No moderate vulnerabilities (+5)"),
        Rule(lambda c: c.audited and c.vulns.moderate > 0, 2,
             lambda c: f"⚠ {c.vulns.moderate} moderate vulnerabilities (+2)"),
        Rule(lambda c: c.audited and c.vulns.total == 0, 5, "✓ Zero vulnerabilities (+5 bonus)"),
        Rule(lambda c: not c.audited, 5, "⚠ Security audit could not run (+5 base)"),
    ],
    caps=[
        Cap(lambda c: c.audited and c.vulns.critical > 0, 10,
            "✗ Capped at 10: critical vulnerabilities present"),
        Cap(lambda c: c.audited and c.vulns.critical == 0 and c.vulns.high > 0, 20,
            "✗ Capped at 20: high vulnerabilities present"),
    ],
)

CODE_QUALITY_RULES = CategoryRules(
    name="code_quality",
    max=25,
    rules=[
        Rule(lambda c: c.own_lint_config_trusted, 15, "✓ ESLint configured in project (+15)"),
        Rule(lambda c: c.own_lint_config_trusted, 0, "ℹ️ Library uses its own ESLint configuration"),
        Rule(lambda c: not c.own_lint_config_trusted and c.evidence.stack.has_linter, 5,
             "✓ ESLint configured (+5)"),
        Rule(lambda c: not c.own_lint_config_trusted and c.linted, 5, "✓ Linter analysis completed (+5)"),
        Rule(lambda c: not c.own_lint_config_trusted and c.linted and c.evidence.code_quality.errors == 0, 10,
             "✓ Zero linter errors (+10)"),
        Rule(lambda c: not c.own_lint_config_trusted and c.linted and 0 < c.evidence.code_quality.errors <= 5, 5,
             lambda c: f"⚠ {c.evidence.code_quality.errors} linter errors (+5)"),
        Rule(lambda c: not c.own_lint_config_trusted and c.linted and c.evidence.code_quality.errors > 5, 0,
             lambda c: f"✗ {c.evidence.code_quality.errors} linter errors (0)"),
        Rule(lambda c: not c.own_lint_config_trusted and c.linted and c.evidence.code_quality.warnings <= 10, 5,
             lambda c: f"✓ Warnings under control ({c.evidence.code_quality.warnings} ≤ 10) (+5)"),
        Rule(lambda c: not c.own_lint_config_trusted and c.linted
             and 10 < c.evidence.code_quality.warnings <= 25, 2,
             lambda c: f"⚠ {c.evidence.code_quality.warnings} warnings (+2)"),
        Rule(lambda c: not c.own_lint_config_trusted and c.linted and c.evidence.code_quality.warnings > 25, 0,
             lambda c: f"✗ {c.evidence.code_quality.warnings} warnings (0)"),
        Rule(lambda c: not c.own_lint_config_trusted and not c.linted and c.evidence.stack.has_linter, 0,
             "⚠ Linter could not run (0)"),
        Rule(lambda c: not c.own_lint_config_trusted and not c.linted and not c.evidence.stack.has_linter, 5,
             "⚠ No linter configured (+5 base)"),
        Rule(lambda c: c.evidence.stack.has_typescript, 3, "✓ TypeScript in use (+3 bonus)"),
    ],
)

# Coverage depth is not measured; the +5 is an estimate, not an assessment
TESTING_RULES = CategoryRules(
    name="testing",
    max=20,
    rules=[
        Rule(lambda c: c.evidence.stack.has_tests, 10, "✓ Test framework detected (+10)"),
        Rule(lambda c: c.evidence.stack.has_tests, 5, "⚠ Test coverage not measured (+5 estimated)"),
        Rule(lambda c: not c.evidence.stack.has_tests, 0, "✗ No tests detected (0)"),
        Rule(lambda c: c.evidence.stack.has_ci, 5, "✓ CI/CD configured (+5)"),
    ],
)

DEPENDENCY_RULES = CategoryRules(
    name="dependencies",
    max=10,
    rules=[
        Rule(lambda c: c.evidence.dependencies.analyzed, 2, "✓ Package manager detected (+2)"),
        Rule(lambda c: c.evidence.dependencies.analyzed and c.audited and c.vulns.total == 0, 4,
             "✓ No vulnerable dependencies (+4)"),
        Rule(lambda c: c.evidence.dependencies.analyzed and c.audited and c.vulns.total > 0
             and c.vulns.critical == 0 and c.vulns.high == 0, 2,
             "⚠ Only low/moderate vulnerabilities (+2)"),
        Rule(lambda c: c.evidence.dependencies.analyzed and c.audited
             and (c.vulns.critical > 0 or c.vulns.high > 0), 0,
             "✗ Dependencies with critical/high vulnerabilities (0)"),
        Rule(lambda c: c.evidence.dependencies.analyzed and not c.audited, 0,
             "⚠ Vulnerability data unavailable (0)"),
        Rule(lambda c: c.evidence.dependencies.analyzed, lambda c: c.outdated_tier.points, _outdated_detail),
        Rule(lambda c: not c.evidence.dependencies.analyzed, 2, "⚠ Dependencies not analyzed (+2 base)"),
    ],
)

HYGIENE_RULES = CategoryRules(
    name="hygiene",
    max=10,
    rules=[
        Rule(lambda c: c.evidence.stack.has_readme, 2, "✓ README exists (+2)"),
        Rule(lambda c: not c.evidence.stack.has_readme, 0, "✗ No README (0)"),
        Rule(lambda c: c.evidence.stack.has_license, 2, "✓ License present (+2)"),
        Rule(lambda c: c.evidence.stack.has_env_example, 2, "✓ Environment config (.env.example) (+2)"),
        Rule(lambda c: c.evidence.stack.has_ci, 2, "✓ CI config present (+2)"),
        Rule(lambda c: c.evidence.stack.has_proper_structure, 2, "✓ Proper folder structure (+2)"),
    ],
)

CATEGORY_RULES = {
    "security": SECURITY_RULES,
    "code_quality": CODE_QUALITY_RULES,
    "testing": TESTING_RULES,
    "dependencies": DEPENDENCY_RULES,
    "hygiene": HYGIENE_RULES,
}


def assess_confidence(evidence: RepositoryEvidence) -> Confidence:
    """Coverage of the security, code-quality and dependency collectors."""
    ran = [
        evidence.security.analyzed,
        evidence.code_quality.analyzed,
        evidence.dependencies.analyzed,
    ]
    coverage = sum(ran) / len(ran)
    if coverage >= HIGH_COVERAGE:
        return Confidence.HIGH
    if coverage >= MEDIUM_COVERAGE:
        return Confidence.MEDIUM
    return Confidence.LOW


@dataclass(frozen=True)
class ScoringOutcome:
    breakdown: ScoreBreakdown
    confidence: Confidence
    verdict: Verdict
    policy: ScoringPolicy


class ScoringEngine:
    """Turns repository evidence into a bounded, explainable score.

    Deterministic: identical evidence and repo type always produce an
    identical breakdown and verdict.
    """

    def score(self, evidence: RepositoryEvidence, repo_type: RepoType) -> ScoringOutcome:
        policy = ScoringPolicy.for_repo_type(repo_type)
        ctx = ScoringContext(evidence=evidence, policy=policy)

        categories = {name: rules.evaluate(ctx) for name, rules in CATEGORY_RULES.items()}
        raw_total = sum(category.earned for category in categories.values())
        max_possible = sum(category.max for category in categories.values())

        confidence = assess_confidence(evidence)
        overall = min(MAX_OVERALL_SCORE, round(raw_total * confidence.multiplier))

        breakdown = ScoreBreakdown(
            **categories,
            raw_total=raw_total,
            confidence_multiplier=confidence.multiplier,
            overall=overall,
            max_possible=max_possible,
        )
        verdict = policy.ladder.pick(
            overall,
            security=breakdown.security.earned,
            testing=breakdown.testing.earned,
        )

        logger.info(
            f"Scored {repo_type.value}: raw={raw_total} x{confidence.multiplier} "
            f"-> {overall} ({confidence.value}), verdict={verdict.label}"
        )
        return ScoringOutcome(breakdown=breakdown, confidence=confidence, verdict=verdict, policy=policy)
