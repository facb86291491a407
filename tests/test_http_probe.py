"""Tests for the deployment HTTP probe."""

import gzip

import httpx
import pytest

from project_health.collectors import HttpProbe
from project_health.collectors.http_probe import USER_AGENT, classify_transport_error

PAGE = """<!doctype html>
<html><head>
<title>Demo</title>
<meta name="viewport" content="width=device-width, initial-scale=1">
</head><body>Hello</body></html>"""

SECURE_HEADERS = {
    "x-frame-options": "DENY",
    "x-content-type-options": "nosniff",
    "strict-transport-security": "max-age=63072000",
    "cache-control": "max-age=60",
    "server": "nginx",
}


def probe_with(handler) -> HttpProbe:
    return HttpProbe(timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_healthy_page():
    seen = {}

    def handler(request):
        seen["user_agent"] = request.headers["user-agent"]
        return httpx.Response(200, headers=SECURE_HEADERS, html=PAGE)

    evidence = await probe_with(handler).probe("https://example.com/")

    assert evidence.reachable
    assert evidence.status_code == 200
    assert evidence.redirects == 0
    assert evidence.uses_https
    assert evidence.missing_security_headers == []
    assert evidence.has_caching_headers
    assert not evidence.has_compression
    assert evidence.is_html
    assert evidence.has_title
    assert evidence.has_viewport
    assert not evidence.has_error_content
    assert evidence.page_size == len(PAGE.encode())
    assert evidence.server == "nginx"
    assert evidence.response_time_ms is not None
    assert seen["user_agent"] == USER_AGENT


@pytest.mark.asyncio
async def test_redirect_to_https_is_followed():
    def handler(request):
        if request.url.scheme == "http":
            return httpx.Response(301, headers={"location": "https://example.com/"})
        return httpx.Response(200, headers=SECURE_HEADERS, html=PAGE)

    evidence = await probe_with(handler).probe("http://example.com/")

    assert evidence.redirects == 1
    assert evidence.final_url == "https://example.com/"
    assert evidence.uses_https


@pytest.mark.asyncio
async def test_error_status_is_still_reachable():
    def handler(request):
        return httpx.Response(500, html="<html><title>Oops</title>Internal Server Error</html>")

    evidence = await probe_with(handler).probe("http://example.com/")

    assert evidence.reachable
    assert evidence.status_code == 500
    assert evidence.has_error_content
    assert not evidence.uses_https
    assert evidence.missing_security_headers == ["X-Frame-Options", "X-Content-Type-Options"]


@pytest.mark.asyncio
async def test_empty_title_and_missing_viewport():
    def handler(request):
        return httpx.Response(200, html="<html><head><title>  </title></head></html>")

    evidence = await probe_with(handler).probe("https://example.com/")

    assert not evidence.has_title
    assert not evidence.has_viewport
    assert "Strict-Transport-Security" in evidence.missing_security_headers


@pytest.mark.asyncio
async def test_compressed_json_response():
    body = gzip.compress(b'{"ok": true}')

    def handler(request):
        return httpx.Response(
            200,
            headers={"content-type": "application/json", "content-encoding": "gzip", "etag": '"abc"'},
            content=body,
        )

    evidence = await probe_with(handler).probe("https://api.example.com/health")

    assert evidence.has_compression
    assert evidence.has_caching_headers
    assert not evidence.is_html
    assert evidence.page_size is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (httpx.ConnectTimeout("timed out"), "timeout"),
        (httpx.ConnectError("[Errno -2] Name or service not known"), "dns"),
        (httpx.ConnectError("[Errno 111] Connection refused"), "refused"),
        (httpx.ConnectError("[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed"), "ssl"),
        (httpx.ReadError("connection reset"), "connection"),
    ],
)
async def test_transport_failures(error, kind):
    def handler(request):
        raise error

    evidence = await probe_with(handler).probe("https://down.example.com/")

    assert not evidence.reachable
    assert evidence.error_kind == kind
    assert evidence.error
    assert evidence.status_code is None


def test_classify_unknown_error():
    assert classify_transport_error(httpx.RemoteProtocolError("")) == "connection"
