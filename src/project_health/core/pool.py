"""Bounded concurrency for analysis runs."""

from __future__ import annotations

import asyncio

from loguru import logger

from project_health.core.orchestrator import AnalysisOrchestrator
from project_health.core.sink import InMemoryReportSink, ReportSink
from project_health.schemas import AnalysisReport


class AnalysisPool:
    """Runs at most `max_concurrent` analyses at once.

    The limit lives on the instance; callers that need a shared limit share
    the pool. Every finished report is handed to the sink.
    """

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        sink: ReportSink | None = None,
        max_concurrent: int = 1,
    ):
        if max_concurrent < 1:
            msg = f"max_concurrent must be at least 1, got {max_concurrent}"
            raise ValueError(msg)
        self.orchestrator = orchestrator
        self.sink = sink or InMemoryReportSink()
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._tasks: dict[str, asyncio.Task[AnalysisReport]] = {}
        self._running = 0

    @property
    def running(self) -> int:
        """Analyses currently holding a slot."""
        return self._running

    @property
    def pending(self) -> int:
        """Submitted jobs that have not finished yet."""
        return sum(1 for task in self._tasks.values() if not task.done())

    async def run(self, job_id: str, url: str, include_pagespeed: bool = True) -> AnalysisReport:
        """Wait for a slot, analyze `url` and save the report under `job_id`."""
        async with self._semaphore:
            self._running += 1
            logger.info(f"Job {job_id} started ({self._running}/{self.max_concurrent} slots)")
            try:
                report = await self.orchestrator.analyze(url, include_pagespeed=include_pagespeed)
            finally:
                self._running -= 1

        await self.sink.save(job_id, report)
        logger.info(f"Job {job_id} finished: success={report.success}")
        return report

    def submit(self, job_id: str, url: str, include_pagespeed: bool = True) -> asyncio.Task[AnalysisReport]:
        """Schedule a job in the background and return its task."""
        if job_id in self._tasks and not self._tasks[job_id].done():
            msg = f"Job {job_id} is already running"
            raise ValueError(msg)
        task = asyncio.create_task(self.run(job_id, url, include_pagespeed))
        self._tasks[job_id] = task
        return task

    async def drain(self) -> list[AnalysisReport]:
        """Wait for every submitted job and return their reports."""
        tasks = list(self._tasks.values())
        reports = await asyncio.gather(*tasks)
        self._tasks = {job_id: t for job_id, t in self._tasks.items() if not t.done()}
        return list(reports)
