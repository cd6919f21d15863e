"""
Keyword and budget heuristics for sources that mix technical and
non-technical listings (Freelancer ignores the skill filters in its URL).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping

from job_feed.schemas.listing import UNSPECIFIED
from job_feed.utils.text_processing import parse_price_floor

logger = logging.getLogger(__name__)

ALLOWED_SKILLS = [
    "Python", "JavaScript", "PHP", "HTML", "CSS", "React", "Node", "Vue", "Angular",
    "Java", "C#", "C++", "Ruby", "Go", "Swift", "Kotlin", "TypeScript", "SQL",
    "MySQL", "PostgreSQL", "MongoDB", "Redis", "AWS", "Azure", "Docker", "Kubernetes",
    "API", "REST", "GraphQL", "Git", "Linux", "DevOps", "CI/CD", "Testing",
    "jQuery", "Bootstrap", "Tailwind", "Next", "Nuxt", "Express", "Django", "Flask",
    "Laravel", "Spring", "Nest", ".NET", "Android", "iOS", "Flutter", "React Native",
    "WordPress", "Shopify", "WooCommerce", "Magento", "PrestaShop", "OpenCart",
    "Web Development", "Software Development", "Mobile Development", "App Development",
    "Backend", "Frontend", "Full Stack", "Database", "Blockchain", "Machine Learning",
    "Desarrollo de software", "Desarrollo web", "Desarrollo de apps",
    "Diseño web", "Programador", "Developer", "Engineer", "Ionic", "Xamarin", "Unity",
    "Game", "CRM", "ERP", "eCommerce", "Responsive", "UI/UX", "SEO técnico",
]

EXCLUDED_KEYWORDS = [
    "Ventas", "Sales", "Marketing", "Redacción", "Writing", "Translation",
    "Traducción", "Data Entry", "Entrada de datos", "Virtual Assistant",
    "Asistente virtual", "Customer Service", "Atención al cliente", "Telemarketing",
    "Lead Generation", "Generación de leads", "Social Media Marketing",
    "SEO (no técnico)", "Content Writing", "Copywriting", "Diseño de logotipos",
    "Logo Design", "Illustration", "Ilustración", "Video Editing", "Edición de video",
    "Audio", "Voice", "Voz", "Photography", "Fotografía",
]

_ALLOWED = [s.lower() for s in ALLOWED_SKILLS]
_EXCLUDED = [k.lower() for k in EXCLUDED_KEYWORDS]

DEFAULT_MIN_BUDGET = 50


def _haystack(listing: Mapping[str, Any]) -> str:
    skills = listing.get("skills") or []
    return f"{listing.get('title') or ''} {listing.get('description') or ''} {' '.join(skills)}".lower()


def is_relevant(listing: Mapping[str, Any]) -> bool:
    """Keep programming work; anything matching an excluded keyword is dropped first."""
    text = _haystack(listing)

    if any(keyword in text for keyword in _EXCLUDED):
        return False

    skills = [s.lower() for s in listing.get("skills") or [] if s]
    if not skills:
        return any(allowed in text for allowed in _ALLOWED)

    # Both directions so "React" matches "React.js" and "Node" matches "Node"
    return any(
        allowed in skill or skill in allowed
        for skill in skills
        for allowed in _ALLOWED
    )


def meets_price_floor(listing: Mapping[str, Any], floor: int = DEFAULT_MIN_BUDGET) -> bool:
    """Unknown prices pass; only a parsed value below the floor is rejected."""
    price = listing.get("price") or listing.get("budget")
    if not price or price == UNSPECIFIED:
        return True
    value = parse_price_floor(price)
    if value is None:
        return True
    return value >= floor


def filter_listings(
    listings: Iterable[Dict[str, Any]],
    floor: int = DEFAULT_MIN_BUDGET,
    source_name: str = "",
) -> List[Dict[str, Any]]:
    """Apply both filters; error records always pass so failures stay visible."""
    listings = list(listings)
    kept: List[Dict[str, Any]] = []
    off_topic = under_budget = 0
    for listing in listings:
        if listing.get("error"):
            kept.append(listing)
        elif not is_relevant(listing):
            off_topic += 1
        elif not meets_price_floor(listing, floor):
            under_budget += 1
        else:
            kept.append(listing)

    logger.info(
        f"{source_name or 'Relevance'} filter: kept {len(kept)} of {len(listings)} "
        f"(off-topic={off_topic}, under budget={under_budget})"
    )
    return kept
