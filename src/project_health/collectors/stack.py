"""Filesystem probes: manifest facts, project hygiene, coarse language detection."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from project_health.schemas import DependencyEvidence, StackEvidence
from project_health.schemas.manifest import PackageManifest

FRAMEWORKS: list[tuple[str, str]] = [
    ("next", "Next.js"),
    ("react", "React"),
    ("vue", "Vue.js"),
    ("@angular/core", "Angular"),
    ("express", "Express.js"),
    ("fastify", "Fastify"),
    ("svelte", "Svelte"),
    ("nuxt", "Nuxt.js"),
]

TEST_PACKAGES = {"jest", "mocha", "vitest", "@testing-library/react", "cypress", "@playwright/test"}
LINT_PACKAGES = {"eslint", "@eslint/js"}
LINT_CONFIG_FILES = [
    "eslint.config.js", "eslint.config.mjs", "eslint.config.cjs", "eslint.config.ts",
    ".eslintrc", ".eslintrc.js", ".eslintrc.cjs", ".eslintrc.json", ".eslintrc.yml", ".eslintrc.yaml",
]
# The script `npm init` writes; it does not mean tests exist
NPM_PLACEHOLDER_TEST = "no test specified"

README_FILES = ["README.md", "readme.md", "README", "README.rst"]
LICENSE_FILES = ["LICENSE", "LICENSE.md", "LICENSE.txt", "LICENCE"]
ENV_EXAMPLE_FILES = [".env.example", ".env.sample", "env.example"]
CI_PATHS = [".github/workflows", ".gitlab-ci.yml", ".travis.yml", "Jenkinsfile", ".circleci"]
STRUCTURE_DIRS = ["src", "lib", "app", "components", "pages", "tests", "test", "__tests__", "spec"]
MIN_STRUCTURE_DIRS = 2

OTHER_ECOSYSTEMS: list[tuple[list[str], str]] = [
    (["requirements.txt", "pyproject.toml", "setup.py"], "Python"),
    (["go.mod"], "Go"),
]


def read_manifest(path: Path) -> PackageManifest | None:
    """Load and validate a package.json; None if unreadable or malformed."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Invalid manifest {path}: {e}")
        return None
    if not isinstance(payload, dict):
        logger.warning(f"Invalid manifest {path}: not an object")
        return None
    try:
        return PackageManifest.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Invalid manifest {path}: {e.error_count()} validation errors")
        return None


def _any_exists(root: Path, names: list[str]) -> bool:
    return any((root / name).exists() for name in names)


def has_tests(manifest: PackageManifest) -> bool:
    if TEST_PACKAGES & manifest.all_dependencies.keys():
        return True
    test_script = manifest.script("test")
    return bool(test_script) and NPM_PLACEHOLDER_TEST not in test_script


def inspect_manifest(manifest: PackageManifest, project_dir: Path) -> StackEvidence:
    """Stack facts derivable from one manifest and its directory."""
    deps = manifest.all_dependencies
    stack = StackEvidence(detected=True, language="JavaScript")

    if "typescript" in deps or (project_dir / "tsconfig.json").exists():
        stack.has_typescript = True
        stack.language = "TypeScript"

    for package, framework in FRAMEWORKS:
        if package in deps:
            stack.framework = framework
            break

    stack.has_linter = bool(
        LINT_PACKAGES & deps.keys()
        or manifest.eslint_config
        or _any_exists(project_dir, LINT_CONFIG_FILES)
    )
    stack.has_tests = has_tests(manifest)
    return stack


def count_dependencies(manifest: PackageManifest) -> DependencyEvidence:
    production = len(manifest.dependencies)
    dev = len(manifest.dev_dependencies)
    return DependencyEvidence(total=production + dev, production=production, dev=dev)


def probe_hygiene(repo_dir: Path, stack: StackEvidence) -> StackEvidence:
    """Add README/LICENSE/env-example/CI/folder-layout flags to `stack`."""
    try:
        entries = {p.name for p in repo_dir.iterdir()}
    except OSError:
        entries = set()
    structure_hits = sum(1 for name in STRUCTURE_DIRS if name in entries)

    return stack.model_copy(update={
        "has_readme": _any_exists(repo_dir, README_FILES),
        "has_license": _any_exists(repo_dir, LICENSE_FILES),
        "has_env_example": _any_exists(repo_dir, ENV_EXAMPLE_FILES),
        "has_ci": _any_exists(repo_dir, CI_PATHS),
        "has_proper_structure": structure_hits >= MIN_STRUCTURE_DIRS,
    })


def detect_other_ecosystem(repo_dir: Path) -> StackEvidence:
    """Coarse language detection for projects without a package.json."""
    for markers, language in OTHER_ECOSYSTEMS:
        if _any_exists(repo_dir, markers):
            logger.info(f"No package.json; detected {language} project")
            return StackEvidence(detected=True, language=language, framework="Unknown")
    logger.info("No package.json and no recognised project markers")
    return StackEvidence()
