"""Outdated dependency check (npm outdated)."""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from project_health.collectors.base import Collector, parse_json_output
from project_health.schemas import DependencyEvidence, OutdatedPackage, StackEvidence
from project_health.schemas.evidence import MAX_OUTDATED_ENTRIES


class _OutdatedEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current: str | None = None
    wanted: str | None = None
    latest: str | None = None
    dep_type: str | None = Field(default=None, alias="type")


class OutdatedCollector(Collector):
    """Counts outdated packages.

    npm exits 1 when anything is outdated, so the exit code alone says
    nothing; empty output is only trusted from a clean exit.
    """

    name = "outdated"

    async def collect(self, project_dir: Path, stack: StackEvidence) -> DependencyEvidence:
        evidence = DependencyEvidence()

        logger.info(f"Checking outdated packages in {project_dir}")
        result = await self.run_tool(["npm", "outdated", "--json"], cwd=project_dir)
        if result is None:
            return evidence

        if not result.stdout.strip():
            if result.ok:
                evidence.analyzed = True
            else:
                logger.warning(f"npm outdated failed with exit code {result.returncode}")
            return evidence

        payload = parse_json_output(result.stdout)
        if not isinstance(payload, dict) or "error" in payload:
            logger.warning("npm outdated produced no usable output")
            return evidence

        packages: list[OutdatedPackage] = []
        for name, info in payload.items():
            # Workspaces report a list per package; only the first entry is kept
            if isinstance(info, list) and info:
                info = info[0]
            try:
                entry = _OutdatedEntry.model_validate(info)
            except ValidationError:
                continue
            packages.append(OutdatedPackage(
                name=name,
                current=entry.current,
                wanted=entry.wanted,
                latest=entry.latest,
                dep_type=entry.dep_type,
            ))

        evidence.analyzed = True
        evidence.outdated = len(payload)
        evidence.outdated_list = packages[:MAX_OUTDATED_ENTRIES]
        logger.info(f"Outdated packages: {evidence.outdated}")
        return evidence
