"""Evidence schemas: one record per collector, each independently fallible."""

from __future__ import annotations

from pydantic import BaseModel, Field

MAX_SECURITY_FINDINGS = 10
MAX_OUTDATED_ENTRIES = 10
MAX_LINT_ISSUES = 20


class VulnerabilityCounts(BaseModel):
    """Vulnerability counts by severity."""
    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0
    total: int = 0

    def __add__(self, other: VulnerabilityCounts) -> VulnerabilityCounts:
        return VulnerabilityCounts(
            critical=self.critical + other.critical,
            high=self.high + other.high,
            moderate=self.moderate + other.moderate,
            low=self.low + other.low,
            total=self.total + other.total,
        )


class SecurityFinding(BaseModel):
    """A single vulnerable package reported by the audit."""
    package: str
    severity: str
    title: str = "Vulnerability detected"
    fix_available: bool = False


class SecurityEvidence(BaseModel):
    """Dependency audit result.

    `analyzed` separates "zero vulnerabilities" from "audit could not run".
    """
    analyzed: bool = False
    vulnerabilities: VulnerabilityCounts = Field(default_factory=VulnerabilityCounts)
    production_vulnerabilities: VulnerabilityCounts = Field(default_factory=VulnerabilityCounts)
    findings: list[SecurityFinding] = Field(default_factory=list)


class OutdatedPackage(BaseModel):
    """A dependency with a newer release available."""
    name: str
    current: str | None = None
    wanted: str | None = None
    latest: str | None = None
    dep_type: str | None = None  # dependencies, devDependencies


class DependencyEvidence(BaseModel):
    """Dependency inventory and outdated check."""
    analyzed: bool = False
    total: int = 0
    production: int = 0
    dev: int = 0
    outdated: int = 0
    outdated_list: list[OutdatedPackage] = Field(default_factory=list)


class LintIssue(BaseModel):
    """A single linter message."""
    file: str
    line: int | None = None
    message: str
    rule: str | None = None
    severity: str = "warning"  # error, warning


class CodeQualityEvidence(BaseModel):
    """Lint run result."""
    analyzed: bool = False
    lint_configured: bool = False
    errors: int = 0
    warnings: int = 0
    issues: list[LintIssue] = Field(default_factory=list)


class TypeCheckEvidence(BaseModel):
    """Type-checker run result."""
    analyzed: bool = False
    configured: bool = False
    errors: int = 0


class StackEvidence(BaseModel):
    """Detected language, framework and project-hygiene flags."""
    detected: bool = False
    language: str | None = None
    framework: str | None = None
    has_typescript: bool = False
    has_linter: bool = False
    has_tests: bool = False
    has_ci: bool = False
    has_readme: bool = False
    has_license: bool = False
    has_env_example: bool = False
    has_proper_structure: bool = False


class DeploymentEvidence(BaseModel):
    """HTTP probe of a live deployment."""
    reachable: bool = False
    status_code: int | None = None
    response_time_ms: int | None = None
    redirects: int = 0
    final_url: str | None = None
    content_type: str | None = None
    content_length: int | None = None
    server: str | None = None
    uses_https: bool = False
    missing_security_headers: list[str] = Field(default_factory=list)
    has_caching_headers: bool = False
    has_compression: bool = False
    is_html: bool = False
    has_title: bool = False
    has_viewport: bool = False
    has_error_content: bool = False
    page_size: int | None = None
    error_kind: str | None = None  # timeout, dns, refused, ssl, connection
    error: str | None = None


class PageSpeedScores(BaseModel):
    """The four 0-100 category scores."""
    performance: int
    accessibility: int
    best_practices: int
    seo: int

    @property
    def weighted_average(self) -> int:
        return round(
            self.performance * 0.4
            + self.accessibility * 0.2
            + self.best_practices * 0.2
            + self.seo * 0.2
        )


class WebVitals(BaseModel):
    """Core web vitals. Times in seconds except TBT (milliseconds)."""
    lcp: float | None = None
    fcp: float | None = None
    cls: float | None = None
    tbt: int | None = None
    si: float | None = None
    tti: float | None = None


class Opportunity(BaseModel):
    """A page-speed improvement opportunity."""
    id: str
    title: str
    description: str | None = None
    score: int
    savings: str | None = None
    display_value: str | None = None


class Diagnostic(BaseModel):
    id: str
    title: str
    description: str | None = None
    display_value: str | None = None


class FailedAudit(BaseModel):
    id: str
    title: str
    description: str | None = None
    category: str


class PageSpeedEvidence(BaseModel):
    """Page-speed assessment of a deployment."""
    analyzed: bool = False
    strategy: str = "mobile"
    scores: PageSpeedScores | None = None
    web_vitals: WebVitals = Field(default_factory=WebVitals)
    opportunities: list[Opportunity] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    failed_audits: list[FailedAudit] = Field(default_factory=list)
    error: str | None = None


class RepositoryEvidence(BaseModel):
    """All evidence gathered for a repository target."""
    stack: StackEvidence = Field(default_factory=StackEvidence)
    security: SecurityEvidence = Field(default_factory=SecurityEvidence)
    dependencies: DependencyEvidence = Field(default_factory=DependencyEvidence)
    code_quality: CodeQualityEvidence = Field(default_factory=CodeQualityEvidence)
    typecheck: TypeCheckEvidence = Field(default_factory=TypeCheckEvidence)
    packages_analyzed: list[str] = Field(default_factory=list)
