"""Repo-type classification from manifest fields."""

from __future__ import annotations

from loguru import logger

from project_health.schemas import RepoType
from project_health.schemas.manifest import PackageManifest

# Start/dev scripts that boot a standalone app rather than a library
APP_BOOTSTRAP_SIGNATURES: dict[str, list[str]] = {
    "start": ["node server", "node app", "node src/index", "next", "react-scripts"],
    "dev": ["next"],
}

LIBRARY_BUILD_TOOLS = ["rollup", "tsc", "webpack"]
PUBLISH_HOOKS = ["prepublish", "prepublishOnly"]
FRAMEWORK_NAME_KEYWORDS = ["express", "fastify", "koa", "hapi", "nest", "next", "nuxt", "gatsby"]


class ProjectClassifier:
    """Heuristic classifier isolated so it can be replaced without touching scoring.

    Precedence: cli, then library/framework, then monorepo, then application.
    CLI comes first because CLI tools often also declare `main`.
    """

    def classify(self, manifest: PackageManifest | None) -> RepoType:
        if manifest is None:
            return RepoType.APPLICATION

        if manifest.bin:
            repo_type = RepoType.CLI
        elif self._is_library(manifest):
            repo_type = RepoType.FRAMEWORK if self._is_framework(manifest) else RepoType.LIBRARY
        elif manifest.workspaces or (manifest.private and not manifest.main):
            repo_type = RepoType.MONOREPO
        else:
            repo_type = RepoType.APPLICATION

        logger.info(f"Detected repo type: {repo_type.value}")
        return repo_type

    def _is_library(self, manifest: PackageManifest) -> bool:
        has_entry_points = bool(manifest.main or manifest.module or manifest.exports)
        return has_entry_points and not self._boots_app(manifest) and self._builds_package(manifest)

    @staticmethod
    def _boots_app(manifest: PackageManifest) -> bool:
        for script, signatures in APP_BOOTSTRAP_SIGNATURES.items():
            command = manifest.script(script)
            if any(sig in command for sig in signatures):
                return True
        return False

    @staticmethod
    def _builds_package(manifest: PackageManifest) -> bool:
        build = manifest.script("build")
        if any(tool in build for tool in LIBRARY_BUILD_TOOLS):
            return True
        return any(manifest.script(hook) for hook in PUBLISH_HOOKS)

    @staticmethod
    def _is_framework(manifest: PackageManifest) -> bool:
        name = (manifest.name or "").lower()
        return bool(manifest.main) and any(kw in name for kw in FRAMEWORK_NAME_KEYWORDS)
