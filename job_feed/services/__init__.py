from job_feed.services.aggregator import ListingAggregator, SourceSet
from job_feed.services.cache import ResultCache
from job_feed.services.embedded_extractor import EmbeddedDataExtractor
from job_feed.services.markup_extractor import MarkupSelectorExtractor
from job_feed.services.notifier import TelegramNotifier
from job_feed.services.scraper import SourceScraper

__all__ = [
    "ListingAggregator",
    "SourceSet",
    "ResultCache",
    "EmbeddedDataExtractor",
    "MarkupSelectorExtractor",
    "TelegramNotifier",
    "SourceScraper",
]
