"""
Extraction of listings from a client-side data island.

Some marketplaces render their search results from JSON passed to a frontend
component as an HTML attribute, e.g.

    <search :results-initials="{&quot;results&quot;:[...]}"></search>

The attribute value is entity-encoded JSON. We locate it, decode it and map
each element to a raw listing dict.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from job_feed.schemas.listing import UNSPECIFIED
from job_feed.utils.text_processing import (
    classify_type,
    decode_entities,
    now_ms,
    strip_html,
)

logger = logging.getLogger(__name__)

NO_TITLE = "Sin título"
MAX_SKILLS = 10

DEFAULT_ATTRIBUTE = ":results-initials"

SKILL_LIST_KEYS = ("skills", "categories", "tags")
# Priority order; the first key present on a skill object names it
SKILL_NAME_KEYS = ("anchorText", "name", "title", "text", "label")


def skill_name(skill: Any) -> str:
    if isinstance(skill, str):
        return skill.strip()
    if isinstance(skill, dict):
        for key in SKILL_NAME_KEYS:
            if key in skill:
                value = skill[key]
                return strip_html(value) if isinstance(value, str) else ""
    return ""


def skill_names(item: Dict[str, Any]) -> List[str]:
    for key in SKILL_LIST_KEYS:
        raw = item.get(key)
        if not isinstance(raw, list) or not raw:
            continue
        names: List[str] = []
        for skill in raw:
            name = skill_name(skill)
            if name and name not in names:
                names.append(name)
        return names[:MAX_SKILLS]
    return []


def title_text(markup: str) -> str:
    """
    Text of a title fragment.

    Rendered titles are often elided ("Desarrollo de una app…") while a nested
    tag keeps the full text in its title attribute; the longer one wins.
    """
    if not markup:
        return ""
    text = strip_html(markup)
    if "<" not in markup:
        return text
    soup = BeautifulSoup(markup, "lxml")
    titled = soup.find(attrs={"title": True})
    if titled is not None:
        full = titled["title"].strip()
        if len(full) > len(text):
            return full
    return text


def title_href(markup: str) -> str:
    if not markup or "<" not in markup:
        return ""
    anchor = BeautifulSoup(markup, "lxml").find("a", href=True)
    return anchor["href"] if anchor is not None else ""


def _text_field(item: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = item.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str) and value.strip():
            return strip_html(value)
    return ""


class EmbeddedDataExtractor:
    """Reads listings out of an entity-encoded JSON attribute."""

    def __init__(
        self,
        source_key: str,
        source_name: str,
        base_url: str,
        link_template: str,
        attribute: str = DEFAULT_ATTRIBUTE,
        position_step_ms: int = 60_000,
    ):
        self.source_key = source_key
        self.source_name = source_name
        self.base_url = base_url
        self.link_template = link_template
        self.attribute = attribute
        self.position_step_ms = position_step_ms

        name = re.escape(attribute)
        self._patterns = [
            re.compile(name + r'\s*=\s*"([^"]*)"'),
            re.compile(name + r"\s*=\s*'([^']*)'"),
        ]

    def find_island(self, html: str) -> Optional[str]:
        for pattern in self._patterns:
            match = pattern.search(html or "")
            if match:
                return match.group(1)
        return None

    def decode_island(self, raw: str) -> Optional[List[Any]]:
        try:
            payload = json.loads(decode_entities(raw))
        except json.JSONDecodeError as e:
            logger.error(f"{self.source_name}: data island is not valid JSON: {e}")
            return None

        if isinstance(payload, dict):
            payload = payload.get("results", payload.get("projects"))
        if not isinstance(payload, list):
            logger.warning(f"{self.source_name}: data island holds no result list")
            return None
        return payload

    def extract(self, html: str, now: int | None = None) -> List[Dict[str, Any]]:
        if now is None:
            now = now_ms()

        raw = self.find_island(html)
        if raw is None:
            logger.warning(f"{self.source_name}: attribute {self.attribute!r} not found in page")
            return []

        items = self.decode_island(raw)
        if not items:
            return []

        listings: List[Dict[str, Any]] = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                continue
            try:
                listing = self._map_item(item, index, now)
            except Exception as e:
                logger.error(f"{self.source_name}: error processing item {index}: {e}")
                continue
            if listing is not None:
                listings.append(listing)

        logger.info(f"{self.source_name}: extracted {len(listings)} of {len(items)} items")
        return listings

    def _link(self, item: Dict[str, Any], title_markup: str) -> str:
        direct = item.get("link") or item.get("url")
        if isinstance(direct, str) and direct.strip():
            return urljoin(self.base_url, direct.strip())

        slug = item.get("slug")
        if isinstance(slug, str) and slug.strip():
            return self.link_template.format(slug=slug.strip())

        href = title_href(title_markup)
        return urljoin(self.base_url, href) if href else ""

    def _map_item(self, item: Dict[str, Any], index: int, now: int) -> Optional[Dict[str, Any]]:
        title_markup = item.get("title") or item.get("name") or ""
        if not isinstance(title_markup, str):
            title_markup = str(title_markup)

        title = title_text(title_markup) or NO_TITLE
        link = self._link(item, title_markup)
        if title == NO_TITLE or not link:
            logger.debug(f"{self.source_name}: item {index} has no usable title/link")
            return None

        budget = _text_field(item, "budget", "price") or UNSPECIFIED
        hourly = item.get("isHourly", item.get("hourly"))
        if isinstance(hourly, bool):
            project_type = classify_type("hourly" if hourly else "fixed")
        else:
            project_type = classify_type(budget)

        published = _text_field(item, "postedDate", "publishedDate")
        if not published:
            published = f"Hace {index + 1} minuto{'s' if index else ''}"

        return {
            "id": f"{self.source_key}-{now}-{index}",
            "title": title,
            "link": link,
            "country": _text_field(item, "country", "location") or UNSPECIFIED,
            "skills": skill_names(item),
            "budget": budget,
            "type": project_type,
            "published_date": published,
            # The island carries no usable publish time; results come newest first
            "timestamp": now - index * self.position_step_ms,
            "description": _text_field(item, "description"),
            "index": index,
        }
