"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from project_health.config import AnalyzerSettings

ENV_VARS = [
    "TEMP_DIR", "OPERATION_TIMEOUT", "AUDIT_TIMEOUT", "LINT_TIMEOUT",
    "ANALYSIS_TIMEOUT_MS", "PAGESPEED_TIMEOUT", "PAGESPEED_API_KEY",
    "ENABLE_LIGHTHOUSE", "MAX_CONCURRENT_ANALYSES", "MAX_REPO_SIZE_MB",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = AnalyzerSettings.from_env()
    assert settings.operation_timeout == 300
    assert settings.audit_timeout == 60
    assert settings.lint_timeout == 120
    assert settings.http_timeout == 30
    assert settings.pagespeed_api_key is None
    assert settings.enable_pagespeed is True
    assert settings.max_concurrent == 1
    assert settings.max_repo_size_mb == 100
    assert settings.temp_dir.name == "project-health-repos"


def test_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("TEMP_DIR", str(tmp_path))
    monkeypatch.setenv("ANALYSIS_TIMEOUT_MS", "5000")
    monkeypatch.setenv("PAGESPEED_API_KEY", "abc")
    monkeypatch.setenv("ENABLE_LIGHTHOUSE", "false")
    monkeypatch.setenv("MAX_CONCURRENT_ANALYSES", "3")

    settings = AnalyzerSettings.from_env()

    assert settings.temp_dir == Path(tmp_path)
    assert settings.http_timeout == 5
    assert settings.pagespeed_api_key == "abc"
    assert settings.enable_pagespeed is False
    assert settings.max_concurrent == 3


def test_concurrency_is_at_least_one(monkeypatch):
    monkeypatch.setenv("MAX_CONCURRENT_ANALYSES", "0")
    assert AnalyzerSettings.from_env().max_concurrent == 1


def test_invalid_number_raises(monkeypatch):
    monkeypatch.setenv("AUDIT_TIMEOUT", "soon")
    with pytest.raises(ValidationError, match="audit_timeout"):
        AnalyzerSettings.from_env()


def test_blank_api_key_is_unset(monkeypatch):
    monkeypatch.setenv("PAGESPEED_API_KEY", "  ")
    assert AnalyzerSettings.from_env().pagespeed_api_key is None


def test_explicit_values_override_environment(monkeypatch):
    monkeypatch.setenv("MAX_CONCURRENT_ANALYSES", "4")
    settings = AnalyzerSettings(max_concurrent=2, analysis_timeout_ms=1500)
    assert settings.max_concurrent == 2
    assert settings.http_timeout == 1.5
