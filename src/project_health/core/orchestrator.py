"""End-to-end analysis of one target URL."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

from loguru import logger
from pydantic import BaseModel

from project_health.collectors import (
    Collector,
    HttpProbe,
    LintCollector,
    OutdatedCollector,
    PageSpeedClient,
    SecurityAuditCollector,
    TypeCheckCollector,
)
from project_health.collectors.stack import (
    count_dependencies,
    detect_other_ecosystem,
    inspect_manifest,
    probe_hygiene,
    read_manifest,
)
from project_health.config import AnalyzerSettings
from project_health.core.classifier import ProjectClassifier
from project_health.core.deployment_scoring import DeploymentScorer
from project_health.core.recommendations import RecommendationSynthesizer
from project_health.core.scoring import ScoringEngine
from project_health.core.workspace import AcquisitionError, find_manifests, working_copy
from project_health.schemas import (
    AnalysisReport,
    AnalysisTarget,
    CodeQualityEvidence,
    DependencyEvidence,
    PageSpeedEvidence,
    RepositoryEvidence,
    SecurityEvidence,
    StackEvidence,
    TargetKind,
    TypeCheckEvidence,
)
from project_health.schemas.evidence import (
    MAX_LINT_ISSUES,
    MAX_OUTDATED_ENTRIES,
    MAX_SECURITY_FINDINGS,
)
from project_health.schemas.manifest import PackageManifest
from project_health.utils import truncate_text
from project_health.utils.process import CommandError, CommandRunner

E = TypeVar("E", bound=BaseModel)

INSTALL_COMMAND = ["npm", "install", "--ignore-scripts", "--no-audit", "--no-fund"]


def merge_stack(stacks: list[StackEvidence]) -> StackEvidence:
    """OR the flags together; first language and framework win.

    TypeScript in any package makes the whole project TypeScript.
    """
    merged = StackEvidence()
    for stack in stacks:
        merged.detected = merged.detected or stack.detected
        merged.language = merged.language or stack.language
        merged.framework = merged.framework or stack.framework
        merged.has_typescript = merged.has_typescript or stack.has_typescript
        merged.has_linter = merged.has_linter or stack.has_linter
        merged.has_tests = merged.has_tests or stack.has_tests
    if merged.has_typescript:
        merged.language = "TypeScript"
    return merged


def merge_security(parts: list[SecurityEvidence]) -> SecurityEvidence:
    merged = SecurityEvidence()
    for part in parts:
        if not part.analyzed:
            continue
        merged.analyzed = True
        merged.vulnerabilities = merged.vulnerabilities + part.vulnerabilities
        merged.production_vulnerabilities = (
            merged.production_vulnerabilities + part.production_vulnerabilities
        )
        merged.findings.extend(part.findings)
    merged.findings = merged.findings[:MAX_SECURITY_FINDINGS]
    return merged


def merge_dependencies(parts: list[DependencyEvidence]) -> DependencyEvidence:
    merged = DependencyEvidence()
    for part in parts:
        merged.analyzed = merged.analyzed or part.analyzed
        merged.total += part.total
        merged.production += part.production
        merged.dev += part.dev
        merged.outdated += part.outdated
        merged.outdated_list.extend(part.outdated_list)
    merged.outdated_list = merged.outdated_list[:MAX_OUTDATED_ENTRIES]
    return merged


def merge_code_quality(parts: list[CodeQualityEvidence]) -> CodeQualityEvidence:
    merged = CodeQualityEvidence()
    for part in parts:
        merged.lint_configured = merged.lint_configured or part.lint_configured
        if not part.analyzed:
            continue
        merged.analyzed = True
        merged.errors += part.errors
        merged.warnings += part.warnings
        merged.issues.extend(part.issues)
    merged.issues = merged.issues[:MAX_LINT_ISSUES]
    return merged


def merge_typecheck(parts: list[TypeCheckEvidence]) -> TypeCheckEvidence:
    merged = TypeCheckEvidence()
    for part in parts:
        merged.configured = merged.configured or part.configured
        if part.analyzed:
            merged.analyzed = True
            merged.errors += part.errors
    return merged


def analysis_depth(evidence: RepositoryEvidence) -> list[str]:
    """Names of the analyses that actually produced evidence."""
    depth = []
    if evidence.security.analyzed:
        depth.append("security-audit")
    if evidence.code_quality.analyzed:
        depth.append("eslint")
    if evidence.stack.has_linter:
        depth.append("eslint-config-detected")
    if evidence.dependencies.analyzed:
        depth.append("dependencies")
    if evidence.typecheck.analyzed:
        depth.append("typescript")
    return depth


class _PackageRun:
    """Evidence gathered for one manifest directory."""

    def __init__(self, manifest: PackageManifest, project_dir: Path):
        self.manifest = manifest
        self.project_dir = project_dir
        self.stack = inspect_manifest(manifest, project_dir)
        self.security = SecurityEvidence()
        self.dependencies = count_dependencies(manifest)
        self.code_quality = CodeQualityEvidence(lint_configured=self.stack.has_linter)
        self.typecheck = TypeCheckEvidence(configured=self.stack.has_typescript)


class AnalysisOrchestrator:
    """Acquires a target, runs collectors, scores and synthesizes a report.

    `analyze` never raises: acquisition problems produce a failed report,
    collector problems produce `analyzed=False` evidence.
    """

    def __init__(
        self,
        settings: AnalyzerSettings | None = None,
        runner: CommandRunner | None = None,
        *,
        http_probe: HttpProbe | None = None,
        pagespeed: PageSpeedClient | None = None,
    ):
        self.settings = settings or AnalyzerSettings.from_env()
        self.runner = runner or CommandRunner()

        self.audit = SecurityAuditCollector(self.runner, timeout=self.settings.audit_timeout)
        self.outdated = OutdatedCollector(self.runner, timeout=self.settings.audit_timeout)
        self.lint = LintCollector(self.runner, timeout=self.settings.lint_timeout)
        self.typecheck = TypeCheckCollector(self.runner, timeout=self.settings.lint_timeout)
        self.http_probe = http_probe or HttpProbe(timeout=self.settings.http_timeout)
        self.pagespeed = pagespeed or PageSpeedClient(
            api_key=self.settings.pagespeed_api_key,
            timeout=self.settings.pagespeed_timeout,
        )

        self.classifier = ProjectClassifier()
        self.scoring = ScoringEngine()
        self.deployment_scoring = DeploymentScorer()
        self.synthesizer = RecommendationSynthesizer()

    async def analyze(self, url: str, include_pagespeed: bool = True) -> AnalysisReport:
        """Analyze a GitHub repository or a live deployment URL."""
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        logger.info(f"Starting analysis of {url}")

        try:
            target = AnalysisTarget.resolve(url)
        except ValueError as e:
            return self._failed(url, None, str(e), started_at, start)

        try:
            if target.kind == TargetKind.DEPLOYMENT:
                fields = await self._analyze_deployment(target, include_pagespeed)
            else:
                async with working_copy(target, self.settings, self.runner) as repo_dir:
                    fields = await self._analyze_repository(repo_dir)
        except AcquisitionError as e:
            logger.error(f"Acquisition failed for {url}: {e}")
            return self._failed(url, target, str(e), started_at, start)
        except Exception as e:
            logger.exception(f"Analysis of {url} failed unexpectedly")
            return self._failed(url, target, f"Analysis failed: {e}", started_at, start)

        report = AnalysisReport(
            target=target,
            url=url,
            success=True,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            duration_ms=round((time.perf_counter() - start) * 1000),
            **fields,
        )
        logger.info(
            f"Completed {url}: score {report.overall}/95 "
            f"({report.confidence.value}) in {report.duration_ms}ms"
        )
        return report

    async def _analyze_repository(self, repo_dir: Path) -> dict:
        manifest_paths = find_manifests(repo_dir)
        runs: list[_PackageRun] = []
        for path in manifest_paths:
            manifest = read_manifest(path)
            if manifest is not None:
                runs.append(_PackageRun(manifest, path.parent))

        if runs:
            for run in runs:
                await self._collect_package(run)
            stack = merge_stack([run.stack for run in runs])
            root = next((run for run in runs if run.project_dir == repo_dir), runs[0])
            repo_type = self.classifier.classify(root.manifest)
        else:
            stack = detect_other_ecosystem(repo_dir)
            repo_type = self.classifier.classify(None)

        evidence = RepositoryEvidence(
            stack=probe_hygiene(repo_dir, stack),
            security=merge_security([run.security for run in runs]),
            dependencies=merge_dependencies([run.dependencies for run in runs]),
            code_quality=merge_code_quality([run.code_quality for run in runs]),
            typecheck=merge_typecheck([run.typecheck for run in runs]),
            packages_analyzed=[
                str(run.project_dir.relative_to(repo_dir)) for run in runs
            ],
        )

        outcome = self.scoring.score(evidence, repo_type)
        recs = self.synthesizer.for_repository(evidence, outcome.policy, outcome.confidence)

        return {
            "repo_type": repo_type,
            "confidence": outcome.confidence,
            "analysis_depth": analysis_depth(evidence),
            "repository": evidence,
            "scores": outcome.breakdown,
            "verdict": outcome.verdict,
            "issues": recs.issues,
            "suggestions": recs.suggestions,
            "priority_actions": recs.priority_actions,
            "summary": recs.summary,
        }

    async def _collect_package(self, run: _PackageRun) -> None:
        """Install one package in isolation, then run its collectors in order."""
        logger.info(f"Installing dependencies in {run.project_dir}")
        try:
            result = await self.runner.run(
                INSTALL_COMMAND,
                cwd=run.project_dir,
                timeout=self.settings.operation_timeout,
            )
        except CommandError as e:
            logger.warning(f"Install skipped for {run.project_dir}: {e}")
            return
        if not result.ok:
            logger.warning(
                f"Install failed for {run.project_dir} (exit {result.returncode}): "
                f"{truncate_text(result.stderr.strip(), 300)}"
            )
            return

        run.security = await self._guarded(self.audit, run, run.security)
        outdated = await self._guarded(self.outdated, run, DependencyEvidence())
        run.dependencies = run.dependencies.model_copy(update={
            "analyzed": outdated.analyzed,
            "outdated": outdated.outdated,
            "outdated_list": outdated.outdated_list,
        })
        run.code_quality = await self._guarded(self.lint, run, run.code_quality)
        run.typecheck = await self._guarded(self.typecheck, run, run.typecheck)

    @staticmethod
    async def _guarded(collector: Collector, run: _PackageRun, default: E) -> E:
        """Run a collector; any unexpected failure degrades to `default`."""
        try:
            return await collector.collect(run.project_dir, run.stack)
        except Exception as e:
            logger.warning(f"{collector.name} failed for {run.project_dir}: {e}")
            return default

    async def _analyze_deployment(self, target: AnalysisTarget, include_pagespeed: bool) -> dict:
        probe = await self.http_probe.probe(target.url)

        pagespeed: PageSpeedEvidence | None = None
        if include_pagespeed and self.settings.enable_pagespeed and probe.reachable:
            logger.info(f"Running page-speed analysis for {target.url}")
            try:
                pagespeed = await self.pagespeed.analyze(target.url)
            except Exception as e:
                logger.warning(f"Page-speed analysis failed for {target.url}: {e}")
                pagespeed = PageSpeedEvidence(error=str(e))
            if not pagespeed.analyzed:
                logger.warning(f"Page-speed analysis unavailable: {pagespeed.error}")

        assessment = self.deployment_scoring.score(probe, pagespeed)
        recs = self.synthesizer.for_deployment(
            assessment.suggestions,
            assessment.issues,
            assessment.confidence,
            probe,
            pagespeed,
        )

        depth = ["http-probe"]
        if pagespeed is not None and pagespeed.analyzed:
            depth.append("pagespeed")

        return {
            "confidence": assessment.confidence,
            "analysis_depth": depth,
            "deployment": probe,
            "pagespeed": pagespeed,
            "deployment_scores": assessment.breakdown,
            "verdict": assessment.verdict,
            "issues": recs.issues,
            "suggestions": recs.suggestions,
            "priority_actions": recs.priority_actions,
            "summary": recs.summary,
        }

    @staticmethod
    def _failed(
        url: str,
        target: AnalysisTarget | None,
        error: str,
        started_at: datetime,
        start: float,
    ) -> AnalysisReport:
        return AnalysisReport(
            target=target,
            url=url,
            success=False,
            error=error,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            duration_ms=round((time.perf_counter() - start) * 1000),
        )
