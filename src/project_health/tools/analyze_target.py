"""analyze_target MCP tool implementation."""

from __future__ import annotations

import uuid

from loguru import logger

from project_health.core import AnalysisOrchestrator, AnalysisPool


async def analyze_target(
    url: str,
    include_pagespeed: bool = True,
    pool: AnalysisPool | None = None,
) -> dict:
    """Analyze a GitHub repository or a live deployment and score it.

    Args:
        url: GitHub repository URL or http(s) deployment URL
        include_pagespeed: Run the page-speed probe for deployments (default: true)
        pool: Concurrency pool to run through; a one-off orchestrator is used if omitted

    Returns:
        The full analysis report: evidence, scores, verdict, issues,
        suggestions, priority actions and summary
    """
    logger.info(f"Starting target analysis: {url}")

    try:
        if pool is None:
            report = await AnalysisOrchestrator().analyze(url, include_pagespeed=include_pagespeed)
        else:
            job_id = uuid.uuid4().hex
            report = await pool.run(job_id, url, include_pagespeed=include_pagespeed)

        if report.success:
            logger.info(f"Analysis complete: {report.overall}/95 ({report.confidence.value})")
        else:
            logger.warning(f"Analysis failed: {report.error}")

        return report.model_dump(mode="json")

    except Exception as e:
        logger.error(f"Target analysis failed: {e}")
        raise
