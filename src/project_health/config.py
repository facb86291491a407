"""Runtime settings read from the environment."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalyzerSettings(BaseSettings):
    """Timeouts (seconds unless noted), limits and feature switches."""

    temp_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "project-health-repos"
    )
    operation_timeout: float = 300.0  # clone, install
    audit_timeout: float = 60.0  # audit, outdated
    lint_timeout: float = 120.0  # lint, type-check
    analysis_timeout_ms: int = 30000  # HTTP probe
    pagespeed_timeout: float = 120.0
    pagespeed_api_key: str | None = None
    enable_pagespeed: bool = Field(
        default=True,
        validation_alias=AliasChoices("enable_pagespeed", "enable_lighthouse"),
    )
    max_concurrent: int = Field(
        default=1,
        validation_alias=AliasChoices("max_concurrent", "max_concurrent_analyses"),
    )
    max_repo_size_mb: int = 100

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("pagespeed_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("max_concurrent")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        return max(1, v)

    @property
    def http_timeout(self) -> float:
        return self.analysis_timeout_ms / 1000

    @classmethod
    def from_env(cls) -> AnalyzerSettings:
        return cls()
