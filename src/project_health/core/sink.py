"""Where finished reports go.

Storage implementations satisfy `ReportSink` structurally; the analysis
core never persists anything itself.
"""

from __future__ import annotations

from typing import Protocol

from project_health.schemas import AnalysisReport


class ReportSink(Protocol):
    async def save(self, job_id: str, report: AnalysisReport) -> None: ...


class InMemoryReportSink:
    """Keeps reports in a dict keyed by job id."""

    def __init__(self) -> None:
        self.reports: dict[str, AnalysisReport] = {}

    async def save(self, job_id: str, report: AnalysisReport) -> None:
        self.reports[job_id] = report

    def get(self, job_id: str) -> AnalysisReport | None:
        return self.reports.get(job_id)
