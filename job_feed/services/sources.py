from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

from job_feed.config import Settings
from job_feed.services.embedded_extractor import EmbeddedDataExtractor
from job_feed.services.markup_extractor import MarkupSelectorExtractor, MarkupSelectors

WORKANA = "workana"
FREELANCER = "freelancer"

# Headers that mimic a real browser for HTTP requests
HTTP_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

FREELANCER_SELECTORS = MarkupSelectors(
    cards=[
        ".JobSearchCard-item",
        ".project-item",
        "article.project",
        '[data-role="project-card"]',
    ],
    title_link=[
        ".JobSearchCard-primary-heading a",
        "h2 a",
        "h3 a",
        ".project-title a",
        "a[data-title]",
    ],
    location=[
        ".JobSearchCard-primary-heading-location",
        ".location",
        ".country",
        '[class*="location"]',
        '[class*="country"]',
    ],
    skills=[
        ".JobSearchCard-primary-tags a",
        ".skill",
        ".tag",
        ".badge",
        '[class*="skill"]',
        '[class*="tag"]',
    ],
    price=[
        ".JobSearchCard-primary-price",
        ".budget",
        ".price",
        ".amount",
        '[class*="price"]',
        '[class*="budget"]',
    ],
    type=[
        ".JobSearchCard-item-type",
        '[class*="type"]',
    ],
    published=[
        ".JobSearchCard-primary-heading-days",
        "time",
        ".published",
        ".date",
        '[class*="time"]',
        '[class*="date"]',
    ],
    description=[
        ".JobSearchCard-primary-description",
        ".description",
        '[class*="description"]',
    ],
)

WORKANA_LINK_TEMPLATE = "https://www.workana.com/job/{slug}"


class Extractor(Protocol):
    def extract(self, html: str, now: int | None = None) -> List[Dict[str, Any]]:
        ...


@dataclass(frozen=True)
class SourceConfig:
    """One upstream marketplace: where to fetch it and how to read it."""
    key: str
    name: str
    url: str
    base_url: str
    extractor: Extractor
    error_title: str
    headers: Dict[str, str] = field(default_factory=lambda: dict(HTTP_HEADERS))
    needs_relevance_filter: bool = False

    @property
    def cache_key(self) -> str:
        return f"{self.key}-jobs"


def build_sources(settings: Settings) -> Dict[str, SourceConfig]:
    """Source registry keyed by source key, in merge order."""
    workana_base = "https://www.workana.com"
    freelancer_base = "https://www.freelancer.com.ar"

    workana = SourceConfig(
        key=WORKANA,
        name="Workana",
        url=settings.workana_url,
        base_url=workana_base,
        extractor=EmbeddedDataExtractor(
            source_key=WORKANA,
            source_name="Workana",
            base_url=workana_base,
            link_template=WORKANA_LINK_TEMPLATE,
            position_step_ms=settings.position_step_ms,
        ),
        error_title="Error al obtener trabajos",
    )
    freelancer = SourceConfig(
        key=FREELANCER,
        name="Freelancer",
        url=settings.freelancer_url,
        base_url=freelancer_base,
        extractor=MarkupSelectorExtractor(
            source_key=FREELANCER,
            source_name="Freelancer",
            base_url=freelancer_base,
            selectors=FREELANCER_SELECTORS,
            # Ads and tracking cards link off-site
            link_must_contain="freelancer.com",
            position_step_ms=settings.position_step_ms,
        ),
        error_title="Error al obtener proyectos de Freelancer",
        headers={**HTTP_HEADERS, "Referer": f"{freelancer_base}/"},
        # Freelancer ignores the skill filters in the query string
        needs_relevance_filter=True,
    )
    return {WORKANA: workana, FREELANCER: freelancer}
