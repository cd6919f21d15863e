"""
Shared fixtures: marketplace pages captured in the shape the scrapers expect,
a fixed clock and the production source registry.
"""

import json

import httpx
import pytest

from job_feed.config import Settings
from job_feed.services.sources import build_sources

NOW = 1_700_000_000_000  # fixed "now" in epoch ms


# Freelancer search results: five technical projects, newest first
FREELANCER_HTML = """
<html><body>
<div class="JobSearchCard-list">
  <div class="JobSearchCard-item">
    <div class="JobSearchCard-primary-heading">
      <a class="JobSearchCard-primary-heading-link" href="/projects/python/scraper-api-fastapi">Build a Python scraper API</a>
      <span class="JobSearchCard-primary-heading-days">3 hours ago</span>
    </div>
    <p class="JobSearchCard-primary-description">Need a FastAPI service that scrapes product pages and exposes them as JSON.</p>
    <div class="JobSearchCard-primary-tags">
      <a href="/jobs/python/">Python</a>
      <a href="/jobs/web-scraping/">Web Scraping</a>
      <a href="/jobs/fastapi/">FastAPI</a>
    </div>
    <div class="JobSearchCard-secondary">
      <div class="JobSearchCard-primary-price">$250 - $750 USD</div>
      <div class="JobSearchCard-item-type">Fixed price</div>
      <span class="JobSearchCard-primary-heading-location">Argentina</span>
    </div>
  </div>
  <div class="JobSearchCard-item">
    <div class="JobSearchCard-primary-heading">
      <a href="https://www.freelancer.com.ar/projects/react/dashboard-react">Dashboard en React y Node</a>
      <span class="JobSearchCard-primary-heading-days">hace 5 horas</span>
    </div>
    <p class="JobSearchCard-primary-description">Panel administrativo con React, Node y MongoDB.</p>
    <div class="JobSearchCard-primary-tags">
      <a>React.js</a>
      <a>Node.js</a>
    </div>
    <div class="JobSearchCard-primary-price">$60 - $90 USD / hora</div>
    <div class="JobSearchCard-item-type">Por hora</div>
    <span class="JobSearchCard-primary-heading-location">México</span>
  </div>
  <div class="JobSearchCard-item">
    <div class="JobSearchCard-primary-heading">
      <a href="/projects/php/laravel-migration">Migrate Laravel 8 app to Laravel 11</a>
    </div>
    <p class="JobSearchCard-primary-description">Upgrade dependencies and fix breaking changes.</p>
    <div class="JobSearchCard-primary-tags"><a>PHP</a><a>Laravel</a></div>
    <div class="JobSearchCard-primary-price">$1,500 USD</div>
  </div>
  <div class="JobSearchCard-item">
    <div class="JobSearchCard-primary-heading">
      <a href="/projects/mobile/flutter-app">Flutter delivery app</a>
      <span class="JobSearchCard-primary-heading-days">20 minutes ago</span>
    </div>
    <div class="JobSearchCard-primary-tags"><a>Flutter</a><a>Android</a><a>iOS</a></div>
    <div class="JobSearchCard-primary-price">$100 - $300 USD</div>
  </div>
  <div class="JobSearchCard-item">
    <div class="JobSearchCard-primary-heading">
      <a href="/projects/devops/docker-ci">Dockerize Django project and set up CI/CD</a>
      <span class="JobSearchCard-primary-heading-days">hace 45 minutos</span>
    </div>
    <div class="JobSearchCard-primary-tags"><a>Docker</a><a>Django</a></div>
    <div class="JobSearchCard-primary-price">Presupuesto a convenir</div>
  </div>
</div>
</body></html>
"""

MALFORMED_HTML = "<html><body><h1>Mantenimiento</h1><p>Volvemos pronto.</p></body></html>"


def encode_island(payload) -> str:
    """Entity-encode JSON the way the marketplace renders it into an attribute."""
    text = json.dumps(payload, ensure_ascii=False)
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


WORKANA_RESULTS = [
    {
        "slug": "desarrollo-api-django",
        "title": '<span title="Desarrollo de API REST con Django y PostgreSQL">Desarrollo de API REST con Django…</span>',
        "description": "<p>Necesitamos una <strong>API</strong> para nuestra app de reservas.</p>",
        "budget": "USD 500 - 1,000",
        "country": '<span class="country-name">Argentina</span>',
        "skills": [{"anchorText": "Django", "slug": "django"}, {"name": "PostgreSQL"}, "Python"],
        "isHourly": False,
    },
    {
        "title": '<a href="/job/app-movil-flutter">App móvil en Flutter</a>',
        "budget": "USD 15 - 45 / hora",
        "location": "México",
        "skills": [{"title": "Flutter"}],
    },
    {
        "title": "Landing page en WordPress",
        "url": "https://www.workana.com/job/landing-wordpress",
        "categories": [{"label": "WordPress"}],
        "hourly": True,
    },
    {"slug": "sin-titulo", "title": ""},
    {"title": "Proyecto sin enlace"},
]


def workana_page(results=None, quote='"') -> str:
    payload = {"results": WORKANA_RESULTS if results is None else results}
    return (
        "<html><body><div id=\"app\">"
        f"<search :results-initials={quote}{encode_island(payload)}{quote} :page=\"1\"></search>"
        "</div></body></html>"
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    return Settings(_env_file=None, log_file=None)


@pytest.fixture
def sources(settings):
    return build_sources(settings)


@pytest.fixture
def freelancer_html():
    return FREELANCER_HTML


@pytest.fixture
def workana_html():
    return workana_page()


@pytest.fixture
def page_transport():
    """MockTransport serving one page per host; records every request."""
    def build(pages, calls=None):
        def handler(request: httpx.Request) -> httpx.Response:
            if calls is not None:
                calls.append(request.url.host)
            page = pages[request.url.host]
            if isinstance(page, Exception):
                raise page
            if isinstance(page, httpx.Response):
                return page
            return httpx.Response(200, text=page)
        return httpx.MockTransport(handler)
    return build
