from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional
from urllib.parse import urljoin

from job_feed.schemas.listing import NormalizedListing, UNSPECIFIED
from job_feed.services.sources import SourceConfig
from job_feed.utils.text_processing import now_ms, strip_html, truncate

logger = logging.getLogger(__name__)

MAX_SKILLS = 10
MAX_DESCRIPTION = 300


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _absolute_link(link: str, source: SourceConfig) -> str:
    if not link:
        return source.url
    if link.startswith(("http://", "https://")):
        return link
    return urljoin(source.base_url + "/", link)


def normalize_listing(
    raw: Mapping[str, Any],
    source: SourceConfig,
    index: int = 0,
    scraped_at: Optional[str] = None,
) -> Optional[NormalizedListing]:
    """
    Map one raw listing into the shared schema.

    `price` and `budget` are the same value under two names: whichever the
    source filled is copied into the other. Returns None when the raw record
    has neither a title nor a link.
    """
    title = _text(raw.get("title"))
    link = _text(raw.get("link"))
    if not title and not link:
        logger.debug(f"{source.name}: dropping listing without title and link")
        return None

    price = _text(raw.get("price")) or _text(raw.get("budget")) or UNSPECIFIED
    budget = _text(raw.get("budget")) or _text(raw.get("price")) or UNSPECIFIED
    timestamp = raw.get("timestamp")
    if scraped_at is None:
        scraped_at = datetime.now(timezone.utc).isoformat()

    return NormalizedListing(
        id=_text(raw.get("id")) or f"{source.key}-{index}",
        title=title or UNSPECIFIED,
        link=_absolute_link(link, source),
        country=_text(raw.get("country")) or UNSPECIFIED,
        skills=[_text(s) for s in raw.get("skills") or [] if _text(s)][:MAX_SKILLS],
        price=price,
        budget=budget,
        type=_text(raw.get("type")) or UNSPECIFIED,
        source=source.name,
        timestamp=int(timestamp) if timestamp is not None else now_ms(),
        published_date=_text(raw.get("published_date") or raw.get("publishedDate")),
        description=truncate(strip_html(_text(raw.get("description"))), MAX_DESCRIPTION),
        scraped_at=scraped_at,
        error=raw.get("error"),
    )


def normalize_listings(raws: Iterable[Mapping[str, Any]], source: SourceConfig) -> List[NormalizedListing]:
    scraped_at = datetime.now(timezone.utc).isoformat()
    normalized: List[NormalizedListing] = []
    for index, raw in enumerate(raws):
        listing = normalize_listing(raw, source, index=index, scraped_at=scraped_at)
        if listing is not None:
            normalized.append(listing)
    return normalized
