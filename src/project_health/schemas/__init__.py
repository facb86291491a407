"""Pydantic schemas for project health analysis."""

from project_health.schemas.evidence import (
    CodeQualityEvidence,
    DependencyEvidence,
    DeploymentEvidence,
    Diagnostic,
    FailedAudit,
    LintIssue,
    Opportunity,
    OutdatedPackage,
    PageSpeedEvidence,
    PageSpeedScores,
    RepositoryEvidence,
    SecurityEvidence,
    SecurityFinding,
    StackEvidence,
    TypeCheckEvidence,
    VulnerabilityCounts,
    WebVitals,
)
from project_health.schemas.report import (
    AnalysisReport,
    CategoryScore,
    Confidence,
    DeploymentScoreBreakdown,
    Issue,
    Priority,
    PriorityAction,
    RepoType,
    ScoreBreakdown,
    Suggestion,
    SummaryPoint,
    Verdict,
)
from project_health.schemas.target import AnalysisTarget, TargetKind

__all__ = [
    "AnalysisReport",
    "AnalysisTarget",
    "CategoryScore",
    "CodeQualityEvidence",
    "Confidence",
    "DependencyEvidence",
    "DeploymentEvidence",
    "DeploymentScoreBreakdown",
    "Diagnostic",
    "FailedAudit",
    "Issue",
    "LintIssue",
    "Opportunity",
    "OutdatedPackage",
    "PageSpeedEvidence",
    "PageSpeedScores",
    "Priority",
    "PriorityAction",
    "RepoType",
    "RepositoryEvidence",
    "ScoreBreakdown",
    "SecurityEvidence",
    "SecurityFinding",
    "StackEvidence",
    "Suggestion",
    "SummaryPoint",
    "TargetKind",
    "TypeCheckEvidence",
    "Verdict",
    "VulnerabilityCounts",
    "WebVitals",
]
