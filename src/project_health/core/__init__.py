"""Core module exports."""

from project_health.core.classifier import ProjectClassifier
from project_health.core.deployment_scoring import DeploymentAssessment, DeploymentScorer
from project_health.core.orchestrator import AnalysisOrchestrator
from project_health.core.pool import AnalysisPool
from project_health.core.recommendations import RecommendationSynthesizer
from project_health.core.scoring import ScoringEngine, ScoringOutcome, ScoringPolicy
from project_health.core.sink import InMemoryReportSink, ReportSink
from project_health.core.workspace import AcquisitionError, find_manifests, working_copy

__all__ = [
    "AcquisitionError",
    "AnalysisOrchestrator",
    "AnalysisPool",
    "DeploymentAssessment",
    "DeploymentScorer",
    "InMemoryReportSink",
    "ProjectClassifier",
    "RecommendationSynthesizer",
    "ReportSink",
    "ScoringEngine",
    "ScoringOutcome",
    "ScoringPolicy",
    "find_manifests",
    "working_copy",
]
