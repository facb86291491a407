"""Abstract base for evidence collectors."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel

from project_health.schemas import StackEvidence
from project_health.utils.process import CommandError, CommandResult, CommandRunner


class Collector(ABC):
    """Produces one Evidence record from one external tool.

    Collectors never raise for tool problems: a missing tool, a timeout or
    unusable output yields evidence with `analyzed=False`.
    """

    name: str = "collector"

    def __init__(self, runner: CommandRunner | None = None, timeout: float = 60.0):
        self.runner = runner or CommandRunner()
        self.timeout = timeout

    @abstractmethod
    async def collect(self, project_dir: Path, stack: StackEvidence) -> BaseModel:
        """Collect evidence for the project rooted at `project_dir`."""

    async def run_tool(
        self,
        args: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> CommandResult | None:
        """Run a tool, returning None if it is missing or timed out."""
        try:
            return await self.runner.run(args, cwd=cwd, timeout=self.timeout, env=env)
        except CommandError as e:
            logger.warning(f"{self.name} skipped: {e}")
            return None


def parse_json_output(text: str) -> Any | None:
    """Parse JSON tool output, tolerating noise printed before or after it.

    Returns None for empty or malformed output so callers can tell
    "could not parse" apart from an empty result.
    """
    text = text.strip()
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    for open_char, close_char in (("{", "}"), ("[", "]")):
        start = text.find(open_char)
        end = text.rfind(close_char) + 1
        if start >= 0 and end > start:
            try:
                return json.loads(text[start:end])
            except json.JSONDecodeError:
                continue

    logger.warning(f"Failed to parse tool output as JSON: {text[:200]}...")
    return None
