"""Async subprocess runner with bounded timeouts."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
from dataclasses import dataclass
from pathlib import Path

from loguru import logger


class CommandError(RuntimeError):
    """An external command could not produce a result."""


class ToolNotFoundError(CommandError):
    """The executable is not installed."""


class CommandTimeoutError(CommandError):
    """The command exceeded its timeout and was killed."""


@dataclass
class CommandResult:
    """Exit status and decoded output of a finished command."""
    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs external tools without a shell.

    Non-zero exit codes are returned, not raised: audit and lint tools
    exit non-zero when they find problems.
    """

    async def run(
        self,
        args: list[str],
        cwd: Path | None = None,
        timeout: float = 60.0,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        merged_env = {**os.environ, **env} if env else None
        logger.debug(f"Running: {' '.join(args)} (cwd={cwd}, timeout={timeout}s)")

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=os.name == "posix",
            )
        except FileNotFoundError as e:
            msg = f"Executable not found: {args[0]}"
            raise ToolNotFoundError(msg) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            await _kill_tree(proc)
            msg = f"{args[0]} timed out after {timeout}s"
            raise CommandTimeoutError(msg) from None
        except BaseException:
            await _kill_tree(proc)
            raise

        return CommandResult(
            args=list(args),
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )


async def _kill_tree(proc: asyncio.subprocess.Process) -> None:
    """Kill the child and everything it spawned, then reap it.

    On POSIX the child leads its own session, so its process group holds
    the helpers that `npx` and `npm` start.
    """
    if proc.returncode is not None:
        return
    with contextlib.suppress(ProcessLookupError):
        if os.name == "posix":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    await proc.wait()
