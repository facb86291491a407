"""Page-speed assessment via the PageSpeed Insights API."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from project_health.schemas import (
    Diagnostic,
    FailedAudit,
    Opportunity,
    PageSpeedEvidence,
    PageSpeedScores,
    WebVitals,
)

PAGESPEED_API_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
CATEGORIES = ["performance", "accessibility", "best-practices", "seo"]

OPPORTUNITY_AUDITS = [
    "render-blocking-resources",
    "unused-css-rules",
    "unused-javascript",
    "modern-image-formats",
    "uses-optimized-images",
    "uses-text-compression",
    "uses-responsive-images",
    "efficient-animated-content",
    "duplicated-javascript",
    "legacy-javascript",
    "preload-lcp-image",
    "unminified-css",
    "unminified-javascript",
]

DIAGNOSTIC_AUDITS = [
    "dom-size",
    "critical-request-chains",
    "network-requests",
    "network-rtt",
    "network-server-latency",
    "main-thread-tasks",
    "bootup-time",
    "mainthread-work-breakdown",
    "font-display",
    "third-party-summary",
]

IMPORTANT_AUDITS: dict[str, str] = {
    "color-contrast": "accessibility",
    "image-alt": "accessibility",
    "label": "accessibility",
    "button-name": "accessibility",
    "link-name": "accessibility",
    "html-has-lang": "accessibility",
    "meta-viewport": "accessibility",
    "meta-description": "seo",
    "document-title": "seo",
    "crawlable-anchors": "seo",
    "robots-txt": "seo",
    "canonical": "seo",
    "is-on-https": "best-practices",
    "geolocation-on-start": "best-practices",
    "notification-on-start": "best-practices",
    "no-vulnerable-libraries": "best-practices",
    "errors-in-console": "best-practices",
}

MAX_OPPORTUNITIES = 10
MAX_DIAGNOSTICS = 8


def _category_score(categories: dict[str, Any], key: str) -> int:
    score = (categories.get(key) or {}).get("score") or 0
    return round(float(score) * 100)


def _numeric(audits: dict[str, Any], key: str) -> float | None:
    value = (audits.get(key) or {}).get("numericValue")
    return float(value) if isinstance(value, (int, float)) else None


def _seconds(audits: dict[str, Any], key: str) -> float | None:
    ms = _numeric(audits, key)
    return round(ms / 1000, 2) if ms is not None else None


def _failing(audits: dict[str, Any], key: str) -> dict[str, Any] | None:
    audit = audits.get(key)
    if not isinstance(audit, dict):
        return None
    score = audit.get("score")
    if score is None or score >= 1:
        return None
    return audit


def extract_web_vitals(audits: dict[str, Any]) -> WebVitals:
    cls_value = _numeric(audits, "cumulative-layout-shift")
    tbt = _numeric(audits, "total-blocking-time")
    return WebVitals(
        lcp=_seconds(audits, "largest-contentful-paint"),
        fcp=_seconds(audits, "first-contentful-paint"),
        cls=round(cls_value, 3) if cls_value is not None else None,
        tbt=round(tbt) if tbt is not None else None,
        si=_seconds(audits, "speed-index"),
        tti=_seconds(audits, "interactive"),
    )


def extract_opportunities(audits: dict[str, Any]) -> list[Opportunity]:
    """Failing opportunity audits, worst first."""
    opportunities = []
    for audit_id in OPPORTUNITY_AUDITS:
        audit = _failing(audits, audit_id)
        if audit is None:
            continue
        savings_ms = (audit.get("details") or {}).get("overallSavingsMs")
        opportunities.append(Opportunity(
            id=audit_id,
            title=audit.get("title", audit_id),
            description=audit.get("description"),
            score=round(audit["score"] * 100),
            savings=f"{round(savings_ms)}ms potential savings" if savings_ms else None,
            display_value=audit.get("displayValue"),
        ))
    opportunities.sort(key=lambda o: o.score)
    return opportunities[:MAX_OPPORTUNITIES]


def extract_diagnostics(audits: dict[str, Any]) -> list[Diagnostic]:
    diagnostics = []
    for audit_id in DIAGNOSTIC_AUDITS:
        audit = _failing(audits, audit_id)
        if audit is None:
            continue
        diagnostics.append(Diagnostic(
            id=audit_id,
            title=audit.get("title", audit_id),
            description=audit.get("description"),
            display_value=audit.get("displayValue"),
        ))
    return diagnostics[:MAX_DIAGNOSTICS]


def extract_failed_audits(audits: dict[str, Any]) -> list[FailedAudit]:
    failed = []
    for audit_id, category in IMPORTANT_AUDITS.items():
        audit = audits.get(audit_id)
        if isinstance(audit, dict) and audit.get("score") == 0:
            failed.append(FailedAudit(
                id=audit_id,
                title=audit.get("title", audit_id),
                description=audit.get("description"),
                category=category,
            ))
    return failed


class PageSpeedClient:
    """Queries the page-speed service for one URL and device strategy."""

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def analyze(self, url: str, strategy: str = "mobile") -> PageSpeedEvidence:
        evidence = PageSpeedEvidence(strategy=strategy)
        params: list[tuple[str, str]] = [("url", url), ("strategy", strategy)]
        params += [("category", c) for c in CATEGORIES]
        if self.api_key:
            params.append(("key", self.api_key))
        else:
            logger.info("No PageSpeed API key: subject to the anonymous rate limit")

        logger.info(f"Running PageSpeed for {url} ({strategy})")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    PAGESPEED_API_URL, params=params, headers={"Accept": "application/json"}
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            evidence.error = "Analysis timed out. The page may be too slow or unresponsive."
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                evidence.error = "Rate limit exceeded. Please try again later."
            elif status == 400:
                evidence.error = "Invalid URL or URL not accessible from Google servers."
            else:
                evidence.error = f"PageSpeed API returned HTTP {status}"
        except (httpx.HTTPError, ValueError) as e:
            evidence.error = str(e) or type(e).__name__

        if evidence.error:
            logger.warning(f"PageSpeed failed for {url}: {evidence.error}")
            return evidence

        lighthouse = data.get("lighthouseResult") if isinstance(data, dict) else None
        if not isinstance(lighthouse, dict):
            evidence.error = "No Lighthouse result in response"
            logger.warning(f"PageSpeed failed for {url}: {evidence.error}")
            return evidence

        categories = lighthouse.get("categories") or {}
        audits = lighthouse.get("audits") or {}
        evidence.scores = PageSpeedScores(
            performance=_category_score(categories, "performance"),
            accessibility=_category_score(categories, "accessibility"),
            best_practices=_category_score(categories, "best-practices"),
            seo=_category_score(categories, "seo"),
        )
        evidence.web_vitals = extract_web_vitals(audits)
        evidence.opportunities = extract_opportunities(audits)
        evidence.diagnostics = extract_diagnostics(audits)
        evidence.failed_audits = extract_failed_audits(audits)
        evidence.analyzed = True

        logger.info(f"PageSpeed complete: performance {evidence.scores.performance}/100")
        return evidence
