from __future__ import annotations
import re
import time
from html import unescape
from typing import Optional

from bs4 import BeautifulSoup

from job_feed.schemas.listing import UNSPECIFIED, HOURLY, FIXED_PRICE

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS
# 30-day month, an approximation rather than a calendar month
MONTH_MS = 30 * DAY_MS

# Checked in order, first match wins ("day" is tested before "week")
TIME_UNITS = [
    (("second", "segundo"), SECOND_MS),
    (("minute", "minuto"), MINUTE_MS),
    (("hour", "hora"), HOUR_MS),
    (("day", "día", "dia"), DAY_MS),
    (("week", "semana"), WEEK_MS),
    (("month", "mes"), MONTH_MS),
]

# The only entities the embedded data islands are known to use
HTML_ENTITIES = {
    "&quot;": '"',
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&#39;": "'",
    "&apos;": "'",
}
_ENTITY_RE = re.compile("|".join(re.escape(e) for e in HTML_ENTITIES))

# "1,500" and "1.500" count as a single number
_PRICE_RE = re.compile(r"\d{1,3}(?:[.,]\d{3})+(?!\d)|\d+")


def now_ms() -> int:
    return int(time.time() * 1000)


def _unit_ms(text: str) -> Optional[int]:
    for keywords, unit in TIME_UNITS:
        if any(k in text for k in keywords):
            return unit
    return None


def is_relative_time(text: str | None) -> bool:
    """True when the text carries both a number and a known time unit."""
    if not text:
        return False
    lowered = text.lower()
    return bool(re.search(r"\d+", lowered)) and _unit_ms(lowered) is not None


def parse_relative_time(text: str | None, now: int | None = None) -> int:
    """
    Convert "hace 3 horas" / "3 hours ago" into an epoch timestamp in ms.

    Unparseable text is treated as "just now" and returns `now` unchanged.
    """
    if now is None:
        now = now_ms()
    if not text:
        return now

    lowered = text.lower()
    number = re.search(r"(\d+)", lowered)
    if not number:
        return now

    unit = _unit_ms(lowered)
    if unit is None:
        return now
    return now - int(number.group(1)) * unit


def parse_price_floor(text: str | None) -> int | None:
    """
    Return the first number in a price string, or None when there is none.

    Thousands separators are folded into the number on purpose: "$1,500" and
    "USD 1.500" both read as 1500, not 1.
    """
    if not text:
        return None
    match = _PRICE_RE.search(text)
    if not match:
        return None
    return int(re.sub(r"[.,]", "", match.group(0)))


def decode_entities(text: str) -> str:
    """Decode the fixed entity table in a single pass (so "&amp;quot;" -> "&quot;")."""
    return _ENTITY_RE.sub(lambda m: HTML_ENTITIES[m.group(0)], text)


def clean_whitespace(text: str | None) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def strip_html(text: str | None) -> str:
    """Parse a fragment as markup and return its text content."""
    if not text:
        return ""
    if "<" not in text:
        return clean_whitespace(unescape(text))
    soup = BeautifulSoup(text, "lxml")
    return clean_whitespace(soup.get_text(" "))


def classify_type(text: str | None) -> str:
    """Map free text about the billing model to "Por hora" / "Precio fijo"."""
    lowered = (text or "").lower()
    if "hourly" in lowered or "hora" in lowered:
        return HOURLY
    if "fixed" in lowered or "fijo" in lowered:
        return FIXED_PRICE
    return UNSPECIFIED


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip()


def time_ago(timestamp: int, now: int | None = None) -> str:
    """Spanish "hace N ..." label for a timestamp in ms."""
    if now is None:
        now = now_ms()
    diff = now - timestamp

    minutes = diff // MINUTE_MS
    hours = diff // HOUR_MS
    days = diff // DAY_MS

    if days > 0:
        return f"hace {days} día{'s' if days > 1 else ''}"
    if hours > 0:
        return f"hace {hours} hora{'s' if hours > 1 else ''}"
    if minutes > 0:
        return f"hace {minutes} minuto{'s' if minutes > 1 else ''}"
    return "hace un momento"
