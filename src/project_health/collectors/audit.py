"""Dependency vulnerability audit (npm audit)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from project_health.collectors.base import Collector, parse_json_output
from project_health.schemas import (
    SecurityEvidence,
    SecurityFinding,
    StackEvidence,
    VulnerabilityCounts,
)
from project_health.schemas.evidence import MAX_SECURITY_FINDINGS


class _AuditMetadata(BaseModel):
    vulnerabilities: VulnerabilityCounts


class _AuditEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    severity: str = "unknown"
    via: list[Any] = Field(default_factory=list)
    fix_available: Any = Field(default=False, alias="fixAvailable")

    @property
    def title(self) -> str:
        for item in self.via:
            if isinstance(item, dict) and item.get("title"):
                return str(item["title"])
        return "Vulnerability detected"


class _AuditReport(BaseModel):
    metadata: _AuditMetadata
    vulnerabilities: dict[str, _AuditEntry] = Field(default_factory=dict)


def parse_audit(stdout: str) -> _AuditReport | None:
    """Validate npm audit JSON; None when the output is unusable."""
    payload = parse_json_output(stdout)
    if not isinstance(payload, dict):
        return None
    try:
        return _AuditReport.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Unexpected audit output shape: {e.error_count()} validation errors")
        return None


class SecurityAuditCollector(Collector):
    """Runs the audit twice: all dependencies, then production-only."""

    name = "security-audit"

    async def collect(self, project_dir: Path, stack: StackEvidence) -> SecurityEvidence:
        evidence = SecurityEvidence()

        logger.info(f"Running npm audit in {project_dir}")
        result = await self.run_tool(["npm", "audit", "--json"], cwd=project_dir)
        report = parse_audit(result.stdout) if result else None
        if report is None:
            logger.warning("npm audit produced no usable output")
            return evidence

        counts = report.metadata.vulnerabilities
        evidence.analyzed = True
        evidence.vulnerabilities = counts
        for package, entry in report.vulnerabilities.items():
            if len(evidence.findings) >= MAX_SECURITY_FINDINGS:
                break
            evidence.findings.append(SecurityFinding(
                package=package,
                severity=entry.severity,
                title=entry.title,
                fix_available=bool(entry.fix_available),
            ))
        logger.info(
            f"All vulnerabilities: {counts.total} total "
            f"({counts.critical} critical, {counts.high} high)"
        )

        prod = await self.run_tool(["npm", "audit", "--omit=dev", "--json"], cwd=project_dir)
        prod_report = parse_audit(prod.stdout) if prod else None
        if prod_report is None:
            # Unknown production scope: assume every finding ships
            evidence.production_vulnerabilities = counts
        else:
            evidence.production_vulnerabilities = prod_report.metadata.vulnerabilities
        logger.info(
            f"Production-only vulnerabilities: {evidence.production_vulnerabilities.total} total"
        )

        return evidence
