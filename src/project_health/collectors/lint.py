"""Lint run (ESLint), with a built-in fallback ruleset."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from project_health.collectors.base import Collector, parse_json_output
from project_health.schemas import CodeQualityEvidence, LintIssue, StackEvidence
from project_health.schemas.evidence import MAX_LINT_ISSUES
from project_health.utils import truncate_text

FALLBACK_CONFIG_NAME = ".eslintrc.project-health.json"

# Modern syntax (modules, JSX, ES2021 globals) must parse without errors
FALLBACK_CONFIG = {
    "root": True,
    "env": {"browser": True, "node": True, "es2021": True},
    "parserOptions": {
        "ecmaVersion": 2021,
        "sourceType": "module",
        "ecmaFeatures": {"jsx": True},
    },
    "rules": {
        "no-unused-vars": "warn",
        "no-undef": "error",
        "no-console": "off",
    },
}

LINT_EXTENSIONS = ".js,.jsx,.ts,.tsx"
ISSUES_PER_FILE = 3


class _LintMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rule_id: str | None = Field(default=None, alias="ruleId")
    severity: int = 1
    message: str = ""
    line: int | None = None


class _LintFileResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath")
    messages: list[_LintMessage] = Field(default_factory=list)
    error_count: int = Field(default=0, alias="errorCount")
    warning_count: int = Field(default=0, alias="warningCount")


_LINT_RESULTS = TypeAdapter(list[_LintFileResult])


def _relative(file_path: str, project_dir: Path) -> str:
    try:
        return str(Path(file_path).relative_to(project_dir))
    except ValueError:
        return file_path.replace(str(project_dir), "").lstrip("/")


class LintCollector(Collector):
    """Lints with the project's own config, or a minimal fallback ruleset."""

    name = "lint"

    async def collect(self, project_dir: Path, stack: StackEvidence) -> CodeQualityEvidence:
        evidence = CodeQualityEvidence(lint_configured=stack.has_linter)
        common = [".", "--ext", LINT_EXTENSIONS, "--format", "json", "--max-warnings", "10000"]

        logger.info(f"Running ESLint in {project_dir}")
        if stack.has_linter:
            result = await self.run_tool(["npx", "--no-install", "eslint", *common], cwd=project_dir)
        else:
            config_path = project_dir / FALLBACK_CONFIG_NAME
            config_path.write_text(json.dumps(FALLBACK_CONFIG))
            try:
                result = await self.run_tool(
                    [
                        "npx", "--yes", "eslint@8", *common,
                        "--no-eslintrc", "--config", FALLBACK_CONFIG_NAME,
                    ],
                    cwd=project_dir,
                    env={"ESLINT_USE_FLAT_CONFIG": "false"},
                )
            finally:
                config_path.unlink(missing_ok=True)

        if result is None or not result.stdout.strip():
            logger.warning("ESLint returned no output")
            return evidence

        payload = parse_json_output(result.stdout)
        try:
            files = _LINT_RESULTS.validate_python(payload)
        except ValidationError:
            logger.warning("ESLint output was not a result list")
            return evidence

        for file in files:
            evidence.errors += file.error_count
            evidence.warnings += file.warning_count
            for msg in file.messages[:ISSUES_PER_FILE]:
                if len(evidence.issues) >= MAX_LINT_ISSUES:
                    break
                evidence.issues.append(LintIssue(
                    file=_relative(file.file_path, project_dir),
                    line=msg.line,
                    message=truncate_text(msg.message, max_length=300),
                    rule=msg.rule_id,
                    severity="error" if msg.severity == 2 else "warning",
                ))

        evidence.analyzed = True
        logger.info(f"ESLint: {evidence.errors} errors, {evidence.warnings} warnings")
        return evidence
