"""Shared fixtures: a scripted command runner and evidence builders."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from project_health.config import AnalyzerSettings
from project_health.schemas import (
    CodeQualityEvidence,
    DependencyEvidence,
    RepositoryEvidence,
    SecurityEvidence,
    StackEvidence,
    TypeCheckEvidence,
    VulnerabilityCounts,
)
from project_health.utils.process import CommandResult, CommandRunner, ToolNotFoundError

Effect = Callable[[list[str], Path | None], None]


@dataclass
class Call:
    args: list[str]
    cwd: Path | None
    timeout: float
    env: dict[str, str] | None


@dataclass
class _Scripted:
    prefix: tuple[str, ...]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    raises: Exception | None = None
    effect: Effect | None = None


@dataclass
class FakeRunner(CommandRunner):
    """Answers commands by longest matching argv prefix.

    Among equally long prefixes the latest script wins. Unscripted commands
    behave like a missing executable.
    """

    scripted: list[_Scripted] = field(default_factory=list)
    calls: list[Call] = field(default_factory=list)

    def on(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        raises: Exception | None = None,
        effect: Effect | None = None,
    ) -> FakeRunner:
        self.scripted.append(_Scripted(prefix, returncode, stdout, stderr, raises, effect))
        return self

    def commands(self) -> list[str]:
        return [" ".join(call.args) for call in self.calls]

    async def run(self, args, cwd=None, timeout=60.0, env=None):
        self.calls.append(Call(list(args), cwd, timeout, env))
        matches = [s for s in self.scripted if tuple(args[: len(s.prefix)]) == s.prefix]
        if not matches:
            raise ToolNotFoundError(f"Executable not found: {args[0]}")
        scripted = max(reversed(matches), key=lambda s: len(s.prefix))
        if scripted.effect is not None:
            scripted.effect(list(args), cwd)
        if scripted.raises is not None:
            raise scripted.raises
        return CommandResult(
            args=list(args),
            returncode=scripted.returncode,
            stdout=scripted.stdout,
            stderr=scripted.stderr,
        )


def audit_json(critical=0, high=0, moderate=0, low=0, vulnerabilities=None) -> str:
    total = critical + high + moderate + low
    return json.dumps({
        "auditReportVersion": 2,
        "vulnerabilities": vulnerabilities or {},
        "metadata": {
            "vulnerabilities": {
                "info": 0, "low": low, "moderate": moderate,
                "high": high, "critical": critical, "total": total,
            },
        },
    })


def write_repo(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def clone_effect(files: dict[str, str]) -> Effect:
    """A `git clone` side effect that materializes `files` in the destination."""

    def effect(args: list[str], cwd: Path | None) -> None:
        dest = Path(args[-1])
        dest.mkdir(parents=True, exist_ok=True)
        write_repo(dest, files)

    return effect


def make_evidence(
    *,
    audited: bool = True,
    vulns: VulnerabilityCounts | None = None,
    prod_vulns: VulnerabilityCounts | None = None,
    linted: bool = True,
    lint_errors: int = 0,
    lint_warnings: int = 0,
    deps_analyzed: bool = True,
    outdated: int = 0,
    **stack_flags,
) -> RepositoryEvidence:
    vulns = vulns or VulnerabilityCounts()
    stack = StackEvidence(detected=True, language="JavaScript", **stack_flags)
    return RepositoryEvidence(
        stack=stack,
        security=SecurityEvidence(
            analyzed=audited,
            vulnerabilities=vulns,
            production_vulnerabilities=prod_vulns if prod_vulns is not None else vulns,
        ),
        dependencies=DependencyEvidence(analyzed=deps_analyzed, outdated=outdated),
        code_quality=CodeQualityEvidence(
            analyzed=linted,
            lint_configured=stack.has_linter,
            errors=lint_errors,
            warnings=lint_warnings,
        ),
        typecheck=TypeCheckEvidence(configured=stack.has_typescript),
        packages_analyzed=["."],
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def settings(tmp_path: Path) -> AnalyzerSettings:
    return AnalyzerSettings(
        temp_dir=tmp_path / "work",
        operation_timeout=5,
        audit_timeout=5,
        lint_timeout=5,
        analysis_timeout_ms=5000,
        pagespeed_timeout=5,
        enable_pagespeed=True,
    )
