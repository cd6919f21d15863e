from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

from job_feed.services.sources import SourceConfig
from job_feed.utils.text_processing import now_ms

logger = logging.getLogger(__name__)


class SourceScraper:
    """
    One extraction pass against one marketplace: fetch the search page, then
    hand the HTML to the source's extractor.

    Network failures never propagate; they come back as a single error
    listing so the UI can show that the source is down.
    """

    def __init__(
        self,
        source: SourceConfig,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.source = source
        self.timeout = timeout
        self.transport = transport

    async def fetch(self) -> str:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.source.headers,
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            resp = await client.get(self.source.url)
            logger.info(
                f"{self.source.name}: status={resp.status_code}, url={resp.url}, length={len(resp.text)}"
            )
            resp.raise_for_status()
            return resp.text

    async def scrape(self, now: int | None = None) -> List[Dict[str, Any]]:
        logger.info(f"{self.source.name}: starting scrape of {self.source.url}")
        try:
            html = await self.fetch()
        except httpx.TimeoutException:
            logger.error(f"{self.source.name}: request timed out after {self.timeout}s")
            return [self.error_listing(f"Timeout after {self.timeout:g}s", now)]
        except httpx.HTTPError as e:
            logger.error(f"{self.source.name}: scraping failed: {e}")
            return [self.error_listing(str(e) or type(e).__name__, now)]

        return self.source.extractor.extract(html, now)

    def error_listing(self, message: str, now: int | None = None) -> Dict[str, Any]:
        return {
            "id": f"error-{self.source.key}-1",
            "title": self.source.error_title,
            "link": self.source.url,
            "country": "N/A",
            "skills": [],
            "price": "N/A",
            "type": "N/A",
            "published_date": "Ahora",
            "timestamp": now if now is not None else now_ms(),
            "description": "",
            "error": message,
        }
