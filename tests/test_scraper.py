import httpx
import pytest

from conftest import FREELANCER_HTML, NOW

from job_feed.services.scraper import SourceScraper


@pytest.mark.asyncio
async def test_scrape_hands_page_to_extractor(sources, page_transport):
    source = sources["freelancer"]
    scraper = SourceScraper(source, transport=page_transport({"www.freelancer.com.ar": FREELANCER_HTML}))

    listings = await scraper.scrape(NOW)

    assert len(listings) == 5
    assert listings[0]["id"] == f"freelancer-{NOW}-0"


@pytest.mark.asyncio
async def test_browser_headers_are_sent(sources):
    seen = {}

    def handler(request):
        seen.update(request.headers)
        return httpx.Response(200, text="<html></html>")

    scraper = SourceScraper(sources["freelancer"], transport=httpx.MockTransport(handler))
    await scraper.scrape(NOW)

    assert "Chrome" in seen["user-agent"]
    assert seen["accept-language"].startswith("es-ES")
    assert seen["referer"] == "https://www.freelancer.com.ar/"


@pytest.mark.asyncio
async def test_http_error_becomes_error_listing(sources, page_transport):
    source = sources["workana"]
    transport = page_transport({"www.workana.com": httpx.Response(500, text="oops")})

    listings = await SourceScraper(source, transport=transport).scrape(NOW)

    assert len(listings) == 1
    error = listings[0]
    assert error["id"] == "error-workana-1"
    assert error["title"] == "Error al obtener trabajos"
    assert error["link"] == source.url
    assert error["published_date"] == "Ahora"
    assert error["timestamp"] == NOW
    assert "500" in error["error"]


@pytest.mark.asyncio
async def test_timeout_becomes_error_listing(sources, page_transport):
    transport = page_transport({"www.workana.com": httpx.ReadTimeout("timed out")})

    listings = await SourceScraper(sources["workana"], timeout=15.0, transport=transport).scrape(NOW)

    assert listings[0]["error"] == "Timeout after 15s"


@pytest.mark.asyncio
async def test_connection_error_becomes_error_listing(sources, page_transport):
    transport = page_transport({"www.freelancer.com.ar": httpx.ConnectError("connection refused")})

    listings = await SourceScraper(sources["freelancer"], transport=transport).scrape(NOW)

    assert listings[0]["error"] == "connection refused"
    assert listings[0]["title"] == "Error al obtener proyectos de Freelancer"
