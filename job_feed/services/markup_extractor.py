"""
Selector-fallback extraction of listing cards from server-rendered HTML.

Marketplace markup drifts, so every logical field is resolved by a chain of
matchers tried in priority order; the first non-empty value wins and every
field has a fallback, so one missing field never costs the whole card.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from job_feed.schemas.listing import UNSPECIFIED
from job_feed.utils.text_processing import (
    classify_type,
    clean_whitespace,
    is_relative_time,
    now_ms,
    parse_relative_time,
)

logger = logging.getLogger(__name__)

NO_TITLE = "Sin título"
MAX_SKILLS = 10

# Used when none of the configured card selectors match anything
GENERIC_CARD_SELECTORS = 'article, .card, [data-qa*="project"], [class*="Card"]'
GENERIC_CARD_MIN_TEXT = 100

HEADING_SELECTOR = "h2, h3, h4"

# Budget mentions in free text: "$250 - $750", "USD 500", "Presupuesto: $300"
BUDGET_PATTERN = re.compile(
    r"\$[\d,]+\s*-?\s*\$?[\d,]*|USD\s*[\d,]+|Presupuesto[:\s]*\$?[\d,]+",
    re.IGNORECASE,
)

Matcher = Callable[[Tag], Any]


@dataclass(frozen=True)
class MarkupSelectors:
    """Ranked CSS selector groups for each logical field of a listing card."""
    cards: Sequence[str]
    title_link: Sequence[str]
    location: Sequence[str] = ()
    skills: Sequence[str] = ()
    price: Sequence[str] = ()
    type: Sequence[str] = ()
    published: Sequence[str] = ()
    description: Sequence[str] = ()


# ── Matchers ────────────────────────────────────────────────────────────

def first_match(matchers: Sequence[Matcher], card: Tag) -> Any:
    """Run matchers in order and return the first non-empty result."""
    for matcher in matchers:
        value = matcher(card)
        if value:
            return value
    return None


def select_text(selector: str) -> Matcher:
    def match(card: Tag) -> str:
        el = card.select_one(selector)
        return clean_whitespace(el.get_text(" ")) if el else ""
    return match


def select_attr(selector: str, attr: str) -> Matcher:
    def match(card: Tag) -> str:
        el = card.select_one(selector)
        if el is None:
            return ""
        value = el.get(attr)
        return clean_whitespace(value) if isinstance(value, str) else ""
    return match


def select_all_text(selector: str, accept: Callable[[str], bool]) -> Matcher:
    def match(card: Tag) -> List[str]:
        values: List[str] = []
        for el in card.select(selector):
            text = clean_whitespace(el.get_text(" "))
            if accept(text) and text not in values:
                values.append(text)
        return values
    return match


def regex_text(pattern: re.Pattern) -> Matcher:
    def match(card: Tag) -> str:
        found = pattern.search(card.get_text(" "))
        return clean_whitespace(found.group(0)) if found else ""
    return match


def select_title_link(selector: str) -> Matcher:
    """Title text (or data-title) plus href of the first element matching selector."""
    def match(card: Tag) -> Optional[Tuple[str, str]]:
        el = card.select_one(selector)
        if el is None:
            return None
        title = clean_whitespace(el.get_text(" ")) or clean_whitespace(el.get("data-title") or "")
        if not title:
            return None
        return title, el.get("href") or ""
    return match


def heading_title_link(card: Tag) -> Optional[Tuple[str, str]]:
    """Last resort: any heading for the title and the card's first link."""
    heading = card.select_one(HEADING_SELECTOR)
    if heading is None:
        return None
    title = clean_whitespace(heading.get_text(" "))
    if not title:
        return None
    anchor = heading.find("a") or card.find("a")
    link = anchor.get("href", "") if anchor is not None else ""
    return title, link


def is_skill_text(text: str) -> bool:
    return 1 < len(text) < 50 and "$" not in text and "USD" not in text


# ── Extractor ───────────────────────────────────────────────────────────

class MarkupSelectorExtractor:
    """Turns a search-results page into raw listing dicts using selector chains."""

    def __init__(
        self,
        source_key: str,
        source_name: str,
        base_url: str,
        selectors: MarkupSelectors,
        link_must_contain: Optional[str] = None,
        position_step_ms: int = 60_000,
    ):
        self.source_key = source_key
        self.source_name = source_name
        self.base_url = base_url
        self.selectors = selectors
        self.link_must_contain = link_must_contain
        self.position_step_ms = position_step_ms

        self._title_link: List[Matcher] = [select_title_link(s) for s in selectors.title_link]
        self._title_link.append(heading_title_link)
        self._location: List[Matcher] = [select_text(s) for s in selectors.location]
        self._location += [select_attr(s, "title") for s in selectors.location]
        self._skills: List[Matcher] = [select_all_text(s, is_skill_text) for s in selectors.skills]
        self._price: List[Matcher] = [select_text(s) for s in selectors.price]
        self._price.append(regex_text(BUDGET_PATTERN))
        self._type: List[Matcher] = [select_text(s) for s in selectors.type]
        self._published: List[Matcher] = [select_text(s) for s in selectors.published]
        self._published += [select_attr(s, "datetime") for s in selectors.published]
        self._published += [select_attr(s, "title") for s in selectors.published]
        self._description: List[Matcher] = [select_text(s) for s in selectors.description]

    def find_cards(self, soup: BeautifulSoup) -> List[Tag]:
        for selector in self.selectors.cards:
            cards = soup.select(selector)
            if cards:
                logger.info(f"{self.source_name}: found {len(cards)} cards with: {selector}")
                return cards

        cards = [
            el for el in soup.select(GENERIC_CARD_SELECTORS)
            if len(el.get_text(strip=True)) > GENERIC_CARD_MIN_TEXT
        ]
        logger.warning(
            f"{self.source_name}: no card selector matched, generic fallback found {len(cards)} blocks"
        )
        return cards

    def extract(self, html: str, now: int | None = None) -> List[Dict[str, Any]]:
        if now is None:
            now = now_ms()
        soup = BeautifulSoup(html or "", "lxml")
        cards = self.find_cards(soup)

        listings: List[Dict[str, Any]] = []
        for index, card in enumerate(cards):
            try:
                listing = self._extract_card(card, index, now)
            except Exception as e:
                logger.error(f"{self.source_name}: error processing card {index}: {e}")
                continue
            if listing is not None:
                listings.append(listing)

        logger.info(f"{self.source_name}: extracted {len(listings)} of {len(cards)} cards")
        return listings

    def _absolute(self, link: str) -> str:
        if link and not link.startswith("http"):
            return urljoin(self.base_url, link)
        return link

    def _extract_card(self, card: Tag, index: int, now: int) -> Optional[Dict[str, Any]]:
        title, link = first_match(self._title_link, card) or (NO_TITLE, "")
        link = self._absolute(link)

        if title == NO_TITLE or not link or link == UNSPECIFIED:
            logger.debug(f"{self.source_name}: card {index} has no usable title/link")
            return None
        if self.link_must_contain and self.link_must_contain not in link:
            logger.debug(f"{self.source_name}: card {index} links off-site: {link}")
            return None

        published = first_match(self._published, card) or ""
        if is_relative_time(published):
            timestamp = parse_relative_time(published, now)
        else:
            # Results are listed newest first; fake one step per position
            timestamp = now - index * self.position_step_ms
        if not published:
            published = f"Posición {index + 1}"

        skills = first_match(self._skills, card) or []

        return {
            "id": f"{self.source_key}-{now}-{index}",
            "title": title,
            "link": link,
            "country": first_match(self._location, card) or UNSPECIFIED,
            "skills": skills[:MAX_SKILLS],
            "price": first_match(self._price, card) or UNSPECIFIED,
            "type": classify_type(first_match(self._type, card)),
            "published_date": published,
            "timestamp": timestamp,
            "description": first_match(self._description, card) or "",
            "index": index,
        }
