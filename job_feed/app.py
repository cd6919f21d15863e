from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request

from job_feed.config import Settings, settings
from job_feed.services.aggregator import ListingAggregator, SourceSet
from job_feed.services.cache import ResultCache
from job_feed.services.notifier import TelegramNotifier
from job_feed.services.scraper import SourceScraper
from job_feed.services.sources import build_sources
from job_feed.utils.logging_config import setup_logging

# Initialize Logging
setup_logging(settings.log_level, settings.log_file)

logger = logging.getLogger(__name__)


def build_aggregator(config: Settings) -> ListingAggregator:
    """Wire the production sources, scrapers and cache together."""
    sources = build_sources(config)
    scrapers = {
        key: SourceScraper(source, timeout=config.request_timeout_seconds).scrape
        for key, source in sources.items()
    }
    return ListingAggregator(
        sources=sources,
        scrapers=scrapers,
        cache=ResultCache(default_ttl=config.cache_duration_seconds),
        cache_ttl=config.cache_duration_seconds,
        min_budget=config.min_budget,
    )


def build_notifier(config: Settings) -> TelegramNotifier:
    return TelegramNotifier(
        bot_token=config.telegram_bot_token,
        chat_id=config.telegram_chat_id,
        timeout=config.request_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    aggregator: ListingAggregator = app.state.aggregator
    logger.info(
        f"{settings.app_name} ready: sources={aggregator.source_names(SourceSet.ALL)} "
        f"cache={aggregator.cache_ttl:g}s telegram={'on' if app.state.notifier.configured else 'off'}"
    )
    yield
    aggregator.cache.clear()


def create_app(
    aggregator: Optional[ListingAggregator] = None,
    notifier: Optional[TelegramNotifier] = None,
) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.aggregator = aggregator or build_aggregator(settings)
    app.state.notifier = notifier or build_notifier(settings)

    # Register routes
    from job_feed.routes.api_listings import router as listings_router
    from job_feed.routes.api_notifications import router as notifications_router

    app.include_router(listings_router, prefix="/api", tags=["listings"])
    app.include_router(notifications_router, prefix="/api/notifications", tags=["notifications"])

    @app.middleware("http")
    async def add_cache_headers(request: Request, call_next):
        response = await call_next(request)
        # Clients poll the feed; freshness is governed by the server-side cache
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response

    return app
