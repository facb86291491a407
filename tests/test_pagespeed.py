"""Tests for the page-speed client."""

import httpx
import pytest

from project_health.collectors import PageSpeedClient
from project_health.collectors.pagespeed import extract_opportunities, extract_web_vitals

LIGHTHOUSE = {
    "lighthouseResult": {
        "categories": {
            "performance": {"score": 0.42},
            "accessibility": {"score": 0.9},
            "best-practices": {"score": 1},
            "seo": {"score": None},
        },
        "audits": {
            "largest-contentful-paint": {"numericValue": 4321.0},
            "first-contentful-paint": {"numericValue": 1200},
            "cumulative-layout-shift": {"numericValue": 0.12345},
            "total-blocking-time": {"numericValue": 350.4},
            "speed-index": {"numericValue": 3000},
            "interactive": {"numericValue": 5000},
            "unused-javascript": {
                "title": "Reduce unused JavaScript",
                "score": 0.3,
                "displayValue": "Potential savings of 120 KiB",
                "details": {"overallSavingsMs": 450.6},
            },
            "render-blocking-resources": {"title": "Eliminate render-blocking resources", "score": 0.1},
            "unminified-css": {"title": "Minify CSS", "score": 1},
            "dom-size": {"title": "Avoid an excessive DOM size", "score": 0.5, "displayValue": "1,900 elements"},
            "image-alt": {"title": "Images lack alt text", "score": 0},
            "document-title": {"title": "Has a title", "score": 1},
        },
    },
}


def client_with(handler, api_key=None) -> PageSpeedClient:
    return PageSpeedClient(api_key=api_key, timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_parses_lighthouse_result():
    seen = {}

    def handler(request):
        seen["params"] = request.url.params
        return httpx.Response(200, json=LIGHTHOUSE)

    evidence = await client_with(handler, api_key="secret").analyze("https://example.com", strategy="desktop")

    assert evidence.analyzed
    assert evidence.error is None
    assert evidence.strategy == "desktop"
    scores = evidence.scores
    assert (scores.performance, scores.accessibility, scores.best_practices, scores.seo) == (42, 90, 100, 0)
    assert seen["params"]["url"] == "https://example.com"
    assert seen["params"]["key"] == "secret"
    assert seen["params"].get_list("category") == ["performance", "accessibility", "best-practices", "seo"]

    assert [o.id for o in evidence.opportunities] == ["render-blocking-resources", "unused-javascript"]
    assert evidence.opportunities[1].savings == "451ms potential savings"
    assert [d.id for d in evidence.diagnostics] == ["dom-size"]
    assert [(a.id, a.category) for a in evidence.failed_audits] == [("image-alt", "accessibility")]


def test_web_vitals_units():
    vitals = extract_web_vitals(LIGHTHOUSE["lighthouseResult"]["audits"])
    assert vitals.lcp == 4.32
    assert vitals.fcp == 1.2
    assert vitals.cls == 0.123
    assert vitals.tbt == 350
    assert vitals.tti == 5.0


def test_opportunities_without_audits():
    assert extract_opportunities({}) == []


@pytest.mark.asyncio
async def test_no_key_is_anonymous():
    seen = {}

    def handler(request):
        seen["params"] = request.url.params
        return httpx.Response(200, json=LIGHTHOUSE)

    await client_with(handler).analyze("https://example.com")
    assert "key" not in seen["params"]
    assert seen["params"]["strategy"] == "mobile"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "message"),
    [
        (429, "Rate limit exceeded. Please try again later."),
        (400, "Invalid URL or URL not accessible from Google servers."),
        (503, "PageSpeed API returned HTTP 503"),
    ],
)
async def test_http_errors(status, message):
    evidence = await client_with(lambda request: httpx.Response(status, json={})).analyze("https://example.com")
    assert not evidence.analyzed
    assert evidence.error == message
    assert evidence.scores is None


@pytest.mark.asyncio
async def test_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow")

    evidence = await client_with(handler).analyze("https://example.com")
    assert evidence.error.startswith("Analysis timed out")


@pytest.mark.asyncio
async def test_missing_lighthouse_result():
    evidence = await client_with(lambda request: httpx.Response(200, json={"id": "x"})).analyze("https://example.com")
    assert not evidence.analyzed
    assert evidence.error == "No Lighthouse result in response"


@pytest.mark.asyncio
async def test_non_json_body():
    evidence = await client_with(lambda request: httpx.Response(200, text="<html>")).analyze("https://example.com")
    assert not evidence.analyzed
    assert evidence.error
