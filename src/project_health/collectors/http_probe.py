"""HTTP probe of a live deployment."""

from __future__ import annotations

import re
import time

import httpx
from loguru import logger

from project_health.schemas import DeploymentEvidence

USER_AGENT = "ProjectHealth-Analyzer/1.0 (Project Health Check)"
ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
MAX_REDIRECTS = 5

TITLE_TAG = re.compile(r"<title[^>]*>\s*[^<\s]", re.IGNORECASE)
VIEWPORT_META = re.compile(r"<meta[^>]+name\s*=\s*[\"']?viewport", re.IGNORECASE)
ERROR_MARKERS = ["Internal Server Error", "500 Error"]

DNS_MARKERS = ["name or service not known", "nodename nor servname", "getaddrinfo", "name resolution"]


def classify_transport_error(error: httpx.HTTPError) -> str:
    """Map a transport failure to timeout, dns, refused, ssl or connection."""
    if isinstance(error, httpx.TimeoutException):
        return "timeout"
    text = str(error).lower()
    if any(marker in text for marker in DNS_MARKERS):
        return "dns"
    if "refused" in text:
        return "refused"
    if "certificate" in text or "ssl" in text:
        return "ssl"
    return "connection"


def missing_security_headers(headers: httpx.Headers, https: bool) -> list[str]:
    missing = []
    if "x-frame-options" not in headers and "content-security-policy" not in headers:
        missing.append("X-Frame-Options")
    if "x-content-type-options" not in headers:
        missing.append("X-Content-Type-Options")
    if https and "strict-transport-security" not in headers:
        missing.append("Strict-Transport-Security")
    return missing


class HttpProbe:
    """Fetches a URL once and records status, timing, headers and content checks.

    Every status code is a valid response; only transport failures make the
    deployment unreachable.
    """

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self.transport = transport

    async def probe(self, url: str) -> DeploymentEvidence:
        evidence = DeploymentEvidence(final_url=url, uses_https=url.startswith("https"))
        start = time.perf_counter()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                max_redirects=MAX_REDIRECTS,
                headers={"User-Agent": USER_AGENT, "Accept": ACCEPT},
                transport=self.transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            evidence.error_kind = classify_transport_error(e)
            evidence.error = str(e) or type(e).__name__
            evidence.response_time_ms = round((time.perf_counter() - start) * 1000)
            logger.warning(f"Probe of {url} failed ({evidence.error_kind}): {evidence.error}")
            return evidence

        headers = response.headers
        final_url = str(response.url)
        evidence.reachable = True
        evidence.status_code = response.status_code
        evidence.response_time_ms = round((time.perf_counter() - start) * 1000)
        evidence.redirects = len(response.history)
        evidence.final_url = final_url
        evidence.uses_https = final_url.startswith("https")
        evidence.content_type = headers.get("content-type", "unknown")
        evidence.server = headers.get("server", "Not disclosed")
        try:
            evidence.content_length = int(headers["content-length"])
        except (KeyError, ValueError):
            evidence.content_length = None

        evidence.missing_security_headers = missing_security_headers(headers, evidence.uses_https)
        evidence.has_caching_headers = any(
            h in headers for h in ("cache-control", "etag", "last-modified")
        )
        encoding = headers.get("content-encoding", "")
        evidence.has_compression = "gzip" in encoding or "br" in encoding

        if "text/html" in evidence.content_type:
            html = response.text
            evidence.is_html = True
            evidence.has_title = bool(TITLE_TAG.search(html))
            evidence.has_viewport = bool(VIEWPORT_META.search(html))
            evidence.has_error_content = any(marker in html for marker in ERROR_MARKERS)
            evidence.page_size = evidence.content_length or len(response.content)

        logger.info(
            f"Probe of {url}: HTTP {evidence.status_code} in {evidence.response_time_ms}ms "
            f"({evidence.redirects} redirects)"
        )
        return evidence
