"""Package manifest (package.json) schema."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PackageManifest(BaseModel):
    """The subset of package.json fields the analysis relies on."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = None
    main: str | None = None
    module: str | None = None
    exports: Any = None
    bin: Any = None
    private: bool = False
    workspaces: Any = None
    eslint_config: Any = Field(default=None, alias="eslintConfig")
    scripts: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, Any] = Field(default_factory=dict)
    dev_dependencies: dict[str, Any] = Field(default_factory=dict, alias="devDependencies")

    @field_validator("scripts", mode="before")
    @classmethod
    def _drop_non_string_scripts(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: v for k, v in value.items() if isinstance(v, str)}
        return value

    @field_validator("private", mode="before")
    @classmethod
    def _coerce_private(cls, value: Any) -> bool:
        return value is True

    @property
    def all_dependencies(self) -> dict[str, Any]:
        return {**self.dependencies, **self.dev_dependencies}

    def script(self, name: str) -> str:
        return self.scripts.get(name, "")
