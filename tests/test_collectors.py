"""Tests for the subprocess-backed evidence collectors."""

import json

import pytest

from conftest import audit_json
from project_health.collectors import (
    LintCollector,
    OutdatedCollector,
    SecurityAuditCollector,
    TypeCheckCollector,
)
from project_health.collectors.base import parse_json_output
from project_health.collectors.lint import FALLBACK_CONFIG_NAME
from project_health.schemas import StackEvidence
from project_health.utils.process import CommandTimeoutError

JS = StackEvidence(detected=True, language="JavaScript")
LINTED = StackEvidence(detected=True, language="JavaScript", has_linter=True)
TS = StackEvidence(detected=True, language="TypeScript", has_typescript=True)


class TestParseJsonOutput:
    def test_plain_json(self):
        assert parse_json_output('{"a": 1}') == {"a": 1}

    def test_noise_around_object(self):
        assert parse_json_output('npm WARN something\n{"a": 1}\ntrailer') == {"a": 1}

    def test_noise_around_list(self):
        assert parse_json_output("warning: x\n[1, 2]\n") == [1, 2]

    @pytest.mark.parametrize("text", ["", "   ", "not json at all", "{broken"])
    def test_unusable_output_is_none(self, text):
        assert parse_json_output(text) is None


class TestSecurityAudit:
    @pytest.mark.asyncio
    async def test_tracks_all_and_production_counts(self, runner, tmp_path):
        vulns = {
            "lodash": {"severity": "critical", "via": [{"title": "Prototype pollution"}], "fixAvailable": True},
            "minimist": {"severity": "high", "via": ["lodash"], "fixAvailable": False},
        }
        runner.on("npm", "audit", "--json", returncode=1, stdout=audit_json(critical=1, high=1, vulnerabilities=vulns))
        runner.on("npm", "audit", "--omit=dev", "--json", returncode=1, stdout=audit_json(critical=1))

        evidence = await SecurityAuditCollector(runner).collect(tmp_path, JS)

        assert evidence.analyzed
        assert evidence.vulnerabilities.critical == 1
        assert evidence.vulnerabilities.high == 1
        assert evidence.vulnerabilities.total == 2
        assert evidence.production_vulnerabilities.total == 1
        assert evidence.production_vulnerabilities.high == 0
        titles = {f.package: f.title for f in evidence.findings}
        assert titles == {"lodash": "Prototype pollution", "minimist": "Vulnerability detected"}
        assert evidence.findings[0].fix_available is True

    @pytest.mark.asyncio
    async def test_unusable_production_audit_counts_everything(self, runner, tmp_path):
        runner.on("npm", "audit", "--json", stdout=audit_json(moderate=2))
        runner.on("npm", "audit", "--omit=dev", "--json", stdout="npm ERR! something broke")

        evidence = await SecurityAuditCollector(runner).collect(tmp_path, JS)

        assert evidence.analyzed
        assert evidence.production_vulnerabilities.moderate == 2

    @pytest.mark.asyncio
    async def test_missing_npm_is_not_analyzed(self, runner, tmp_path):
        evidence = await SecurityAuditCollector(runner).collect(tmp_path, JS)
        assert not evidence.analyzed
        assert evidence.vulnerabilities.total == 0

    @pytest.mark.asyncio
    async def test_timeout_is_not_analyzed(self, runner, tmp_path):
        runner.on("npm", "audit", raises=CommandTimeoutError("npm timed out after 5s"))
        evidence = await SecurityAuditCollector(runner).collect(tmp_path, JS)
        assert not evidence.analyzed

    @pytest.mark.asyncio
    async def test_malformed_output_is_not_analyzed(self, runner, tmp_path):
        runner.on("npm", "audit", stdout='{"error": {"code": "ENOLOCK"}}')
        evidence = await SecurityAuditCollector(runner).collect(tmp_path, JS)
        assert not evidence.analyzed


class TestOutdated:
    @pytest.mark.asyncio
    async def test_counts_outdated_packages(self, runner, tmp_path):
        payload = {
            "react": {"current": "17.0.2", "wanted": "17.0.2", "latest": "18.2.0", "type": "dependencies"},
            "jest": {"current": "27.0.0", "wanted": "27.5.1", "latest": "29.7.0", "type": "devDependencies"},
            "ws": [{"current": "7.0.0", "wanted": "7.5.9", "latest": "8.16.0"}],
        }
        runner.on("npm", "outdated", returncode=1, stdout=json.dumps(payload))

        evidence = await OutdatedCollector(runner).collect(tmp_path, JS)

        assert evidence.analyzed
        assert evidence.outdated == 3
        react = next(p for p in evidence.outdated_list if p.name == "react")
        assert (react.current, react.latest, react.dep_type) == ("17.0.2", "18.2.0", "dependencies")
        ws = next(p for p in evidence.outdated_list if p.name == "ws")
        assert ws.latest == "8.16.0"

    @pytest.mark.asyncio
    async def test_empty_output_from_clean_exit_means_up_to_date(self, runner, tmp_path):
        runner.on("npm", "outdated", returncode=0, stdout="")
        evidence = await OutdatedCollector(runner).collect(tmp_path, JS)
        assert evidence.analyzed
        assert evidence.outdated == 0

    @pytest.mark.asyncio
    async def test_empty_output_from_failure_is_not_analyzed(self, runner, tmp_path):
        runner.on("npm", "outdated", returncode=1, stdout="", stderr="npm ERR!")
        evidence = await OutdatedCollector(runner).collect(tmp_path, JS)
        assert not evidence.analyzed

    @pytest.mark.asyncio
    async def test_error_payload_is_not_analyzed(self, runner, tmp_path):
        runner.on("npm", "outdated", returncode=1, stdout='{"error": {"code": "E404"}}')
        evidence = await OutdatedCollector(runner).collect(tmp_path, JS)
        assert not evidence.analyzed


def eslint_output(*files):
    return json.dumps([
        {
            "filePath": path,
            "errorCount": errors,
            "warningCount": warnings,
            "messages": [
                {"ruleId": "no-undef", "severity": 2, "message": f"problem {i}", "line": i + 1}
                for i in range(errors)
            ] + [
                {"ruleId": "no-unused-vars", "severity": 1, "message": f"unused {i}", "line": 50 + i}
                for i in range(warnings)
            ],
        }
        for path, errors, warnings in files
    ])


class TestLint:
    @pytest.mark.asyncio
    async def test_uses_project_config_when_present(self, runner, tmp_path):
        runner.on("npx", "--no-install", "eslint", returncode=1,
                  stdout=eslint_output((str(tmp_path / "src/a.js"), 2, 1)))

        evidence = await LintCollector(runner).collect(tmp_path, LINTED)

        assert evidence.analyzed
        assert evidence.lint_configured
        assert (evidence.errors, evidence.warnings) == (2, 1)
        assert evidence.issues[0].file == "src/a.js"
        assert evidence.issues[0].severity == "error"
        assert runner.calls[0].args[:3] == ["npx", "--no-install", "eslint"]

    @pytest.mark.asyncio
    async def test_fallback_config_is_written_then_removed(self, runner, tmp_path):
        seen = {}

        def capture(args, cwd):
            seen["config"] = json.loads((cwd / FALLBACK_CONFIG_NAME).read_text())

        runner.on("npx", "--yes", "eslint@8", stdout=eslint_output(("a.js", 0, 0)), effect=capture)

        evidence = await LintCollector(runner).collect(tmp_path, JS)

        assert evidence.analyzed
        assert not evidence.lint_configured
        assert seen["config"]["root"] is True
        assert not (tmp_path / FALLBACK_CONFIG_NAME).exists()
        call = runner.calls[0]
        assert "--no-eslintrc" in call.args
        assert call.env == {"ESLINT_USE_FLAT_CONFIG": "false"}

    @pytest.mark.asyncio
    async def test_issue_list_is_capped(self, runner, tmp_path):
        files = [(f"f{i}.js", 5, 0) for i in range(10)]
        runner.on("npx", "--no-install", "eslint", returncode=1, stdout=eslint_output(*files))

        evidence = await LintCollector(runner).collect(tmp_path, LINTED)

        assert evidence.errors == 50
        assert len(evidence.issues) == 20
        assert sum(1 for issue in evidence.issues if issue.file == "f0.js") == 3

    @pytest.mark.asyncio
    async def test_no_output_is_not_analyzed(self, runner, tmp_path):
        runner.on("npx", "--no-install", "eslint", returncode=1, stderr="eslint: not found")
        evidence = await LintCollector(runner).collect(tmp_path, LINTED)
        assert not evidence.analyzed
        assert evidence.lint_configured


class TestTypeCheck:
    @pytest.mark.asyncio
    async def test_skipped_without_typescript(self, runner, tmp_path):
        evidence = await TypeCheckCollector(runner).collect(tmp_path, JS)
        assert not evidence.analyzed
        assert not evidence.configured
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_counts_diagnostics(self, runner, tmp_path):
        output = (
            "src/a.ts(1,5): error TS2322: Type 'string' is not assignable.\n"
            "src/b.ts(3,1): error TS2304: Cannot find name 'x'.\n"
        )
        runner.on("npx", "--no-install", "tsc", returncode=2, stdout=output)

        evidence = await TypeCheckCollector(runner).collect(tmp_path, TS)

        assert evidence.analyzed
        assert evidence.errors == 2

    @pytest.mark.asyncio
    async def test_clean_run(self, runner, tmp_path):
        runner.on("npx", "--no-install", "tsc", returncode=0)
        evidence = await TypeCheckCollector(runner).collect(tmp_path, TS)
        assert evidence.analyzed
        assert evidence.errors == 0

    @pytest.mark.asyncio
    async def test_failure_without_diagnostics_is_not_analyzed(self, runner, tmp_path):
        runner.on("npx", "--no-install", "tsc", returncode=1, stderr="npm ERR! could not determine executable")
        evidence = await TypeCheckCollector(runner).collect(tmp_path, TS)
        assert not evidence.analyzed
