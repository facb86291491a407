"""TypeScript compile check (tsc --noEmit)."""

from __future__ import annotations

import re
from pathlib import Path

from loguru import logger

from project_health.collectors.base import Collector
from project_health.schemas import StackEvidence, TypeCheckEvidence

TS_ERROR = re.compile(r"error TS\d+")


class TypeCheckCollector(Collector):
    name = "typescript"

    async def collect(self, project_dir: Path, stack: StackEvidence) -> TypeCheckEvidence:
        evidence = TypeCheckEvidence(configured=stack.has_typescript)
        if not stack.has_typescript:
            return evidence

        logger.info(f"Running TypeScript check in {project_dir}")
        result = await self.run_tool(["npx", "--no-install", "tsc", "--noEmit"], cwd=project_dir)
        if result is None:
            return evidence

        output = result.stdout + result.stderr
        errors = len(TS_ERROR.findall(output))
        if not result.ok and errors == 0:
            # tsc failed without reporting diagnostics (missing binary, bad config)
            logger.warning(f"tsc exited {result.returncode} without diagnostics")
            return evidence

        evidence.analyzed = True
        evidence.errors = errors
        logger.info(f"TypeScript: {errors} errors")
        return evidence
