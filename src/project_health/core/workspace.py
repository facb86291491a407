"""Working copy acquisition, manifest discovery and guaranteed cleanup."""

from __future__ import annotations

import asyncio
import contextlib
import secrets
import shutil
from collections.abc import AsyncIterator
from pathlib import Path

from loguru import logger

from project_health.config import AnalyzerSettings
from project_health.schemas import AnalysisTarget, TargetKind
from project_health.utils.process import CommandError, CommandRunner

MANIFEST_NAME = "package.json"

# Conventional sub-project directories checked for their own manifest
MONOREPO_DIRS = ["frontend", "backend", "client", "server", "web", "api", "app", "packages"]


class AcquisitionError(RuntimeError):
    """The working copy could not be obtained. Fatal for the run."""


def directory_size(path: Path) -> int:
    """Total size in bytes of regular files under `path`, skipping symlinks."""
    total = 0
    for f in path.rglob("*"):
        if f.is_symlink() or ".git" in f.parts:
            continue
        if f.is_file():
            with contextlib.suppress(OSError):
                total += f.stat().st_size
    return total


@contextlib.asynccontextmanager
async def working_copy(
    target: AnalysisTarget,
    settings: AnalyzerSettings,
    runner: CommandRunner,
) -> AsyncIterator[Path]:
    """Shallow-clone a repository target into a private directory.

    The directory is keyed by a random identifier so concurrent runs never
    share it, and it is removed on every exit path.

    Raises:
        AcquisitionError: clone failed or the repository is too large.
    """
    if target.kind != TargetKind.REPOSITORY:
        msg = f"Only repository targets have a working copy: {target.url}"
        raise AcquisitionError(msg)

    repo_dir = settings.temp_dir / secrets.token_hex(8)
    try:
        settings.temp_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Cloning {target.clone_url} to {repo_dir}")

        try:
            result = await runner.run(
                ["git", "clone", "--depth", "1", target.clone_url, str(repo_dir)],
                timeout=settings.operation_timeout,
                env={"GIT_TERMINAL_PROMPT": "0"},
            )
        except CommandError as e:
            raise AcquisitionError(f"Clone failed: {e}") from e
        if not result.ok:
            detail = result.stderr.strip().splitlines()[-1:] or ["unknown error"]
            raise AcquisitionError(f"Clone failed: {detail[0]}")

        size = await asyncio.to_thread(directory_size, repo_dir)
        max_bytes = settings.max_repo_size_mb * 1024 * 1024
        if size > max_bytes:
            msg = f"Repository exceeds max size ({size} > {max_bytes} bytes)"
            raise AcquisitionError(msg)

        yield repo_dir
    finally:
        if repo_dir.exists():
            try:
                await asyncio.to_thread(shutil.rmtree, repo_dir)
                logger.info(f"Cleaned up: {repo_dir}")
            except OSError as e:
                logger.error(f"Cleanup failed for {repo_dir}: {e}")


def find_manifests(repo_dir: Path) -> list[Path]:
    """Find every package manifest, including common monorepo layouts.

    Checks the root, a fixed set of conventional sub-project directories,
    and one level below `packages/`.
    """
    found: list[Path] = []

    def add(path: Path) -> None:
        if path.is_file() and path not in found:
            found.append(path)

    add(repo_dir / MANIFEST_NAME)
    for name in MONOREPO_DIRS:
        add(repo_dir / name / MANIFEST_NAME)

    packages_dir = repo_dir / "packages"
    if packages_dir.is_dir():
        for entry in sorted(packages_dir.iterdir()):
            if entry.is_dir():
                add(entry / MANIFEST_NAME)

    for path in found:
        logger.debug(f"Found manifest: {path.relative_to(repo_dir)}")
    return found
