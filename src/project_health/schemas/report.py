"""Report schemas: scores, verdicts, suggestions and the final report."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from project_health.schemas.evidence import (
    DeploymentEvidence,
    PageSpeedEvidence,
    RepositoryEvidence,
)
from project_health.schemas.target import AnalysisTarget

MAX_OVERALL_SCORE = 95


class RepoType(str, Enum):
    """Packaging intent of the analyzed project."""
    APPLICATION = "application"
    LIBRARY = "library"
    FRAMEWORK = "framework"
    CLI = "cli"
    MONOREPO = "monorepo"

    @property
    def is_library_like(self) -> bool:
        return self in {RepoType.LIBRARY, RepoType.FRAMEWORK, RepoType.CLI}


class Confidence(str, Enum):
    """How much of the evidence was actually collected."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def multiplier(self) -> float:
        return {Confidence.HIGH: 1.0, Confidence.MEDIUM: 0.85, Confidence.LOW: 0.7}[self]


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        return list(Priority).index(self)


class CategoryScore(BaseModel):
    """Points earned in one category. `details` documents every delta."""
    earned: int = 0
    max: int
    details: list[str] = Field(default_factory=list)


class ScoreBreakdown(BaseModel):
    """Five capped categories plus the confidence-adjusted overall."""
    security: CategoryScore
    code_quality: CategoryScore
    testing: CategoryScore
    dependencies: CategoryScore
    hygiene: CategoryScore
    raw_total: int
    confidence_multiplier: float
    overall: int = Field(ge=0, le=MAX_OVERALL_SCORE)
    max_possible: int = MAX_OVERALL_SCORE

    def categories(self) -> dict[str, CategoryScore]:
        return {
            "security": self.security,
            "code_quality": self.code_quality,
            "testing": self.testing,
            "dependencies": self.dependencies,
            "hygiene": self.hygiene,
        }


class DeploymentScoreBreakdown(BaseModel):
    """Deduction-based scores for a live deployment."""
    performance: CategoryScore
    errors: CategoryScore
    durability: CategoryScore
    pagespeed_average: int | None = None
    overall: int = Field(ge=0, le=MAX_OVERALL_SCORE)
    max_possible: int = MAX_OVERALL_SCORE


class Verdict(BaseModel):
    """Qualitative label derived from the overall score and repo type."""
    label: str
    emoji: str
    reason: str
    color: str  # danger, warning, info, success


class Suggestion(BaseModel):
    priority: Priority
    category: str
    title: str
    description: str


class PriorityAction(BaseModel):
    """A concrete next step, ordered by `priority`."""
    priority: int = Field(ge=1)
    urgency: str
    title: str
    command: str
    time_estimate: str
    impact: str


class Issue(BaseModel):
    severity: str  # critical, major, minor, info
    category: str
    title: str
    description: str
    impact: str


class SummaryPoint(BaseModel):
    """Plain-language explanation for non-technical readers."""
    icon: str
    title: str
    plain: str
    action: str


class AnalysisReport(BaseModel):
    """Final aggregate of one analysis run. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    target: AnalysisTarget | None = None
    url: str
    success: bool = False
    error: str | None = None
    repo_type: RepoType | None = None
    confidence: Confidence = Confidence.LOW
    analysis_depth: list[str] = Field(default_factory=list)
    repository: RepositoryEvidence | None = None
    deployment: DeploymentEvidence | None = None
    pagespeed: PageSpeedEvidence | None = None
    scores: ScoreBreakdown | None = None
    deployment_scores: DeploymentScoreBreakdown | None = None
    verdict: Verdict | None = None
    issues: list[Issue] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)
    priority_actions: list[PriorityAction] = Field(default_factory=list)
    summary: list[SummaryPoint] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime
    duration_ms: int = 0

    @property
    def overall(self) -> int:
        if self.scores is not None:
            return self.scores.overall
        if self.deployment_scores is not None:
            return self.deployment_scores.overall
        return 0
