from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from job_feed.schemas.listing import NormalizedListing
from job_feed.services.cache import ResultCache
from job_feed.services.normalizer import normalize_listings
from job_feed.services.relevance import DEFAULT_MIN_BUDGET, filter_listings
from job_feed.services.sources import FREELANCER, WORKANA, SourceConfig
from job_feed.utils.text_processing import HOUR_MS, now_ms

logger = logging.getLogger(__name__)

ALL_CACHE_KEY = "all-jobs"
MAX_TRACKED_LINKS = 5000

# Called with the pass timestamp (epoch ms), returns raw listing dicts
ScrapeFn = Callable[[int], Awaitable[List[Dict[str, Any]]]]


class SourceSet(str, Enum):
    WORKANA = WORKANA
    FREELANCER = FREELANCER
    ALL = "all"


@dataclass
class AggregationResult:
    records: List[NormalizedListing]
    served_from_cache: bool
    counts: Dict[str, int]
    total_count: int
    hours: Optional[int] = None
    forced: bool = False
    new_records: List[NormalizedListing] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)


@dataclass
class _Extraction:
    records: List[NormalizedListing]
    counts: Dict[str, int]
    new_records: List[NormalizedListing]


class NewListingTracker:
    """
    Remembers which links were already served so fresh passes can report new ones.

    Baselines are per source: the first pass that returns listings for a source
    only records its links. At most `max_links` links are remembered, oldest
    dropped first.
    """

    def __init__(self, max_links: int = MAX_TRACKED_LINKS):
        self.max_links = max_links
        self._seen: "OrderedDict[str, None]" = OrderedDict()
        self._seeded: Set[str] = set()

    def observe(self, records: Iterable[NormalizedListing]) -> List[NormalizedListing]:
        fresh: List[NormalizedListing] = []
        sources: Set[str] = set()
        for record in records:
            if record.is_error:
                continue
            sources.add(record.source)
            if record.source in self._seeded and record.link not in self._seen:
                fresh.append(record)
            self._seen[record.link] = None
            self._seen.move_to_end(record.link)

        while len(self._seen) > self.max_links:
            self._seen.popitem(last=False)
        self._seeded.update(sources)
        return fresh


def within_window(
    records: Iterable[NormalizedListing], hours: Optional[int], now: int
) -> List[NormalizedListing]:
    """Drop records older than `hours`; error records are always kept."""
    records = list(records)
    if hours is None:
        return records
    limit = now - hours * HOUR_MS
    return [r for r in records if r.is_error or r.timestamp >= limit]


def sort_newest_first(records: Iterable[NormalizedListing]) -> List[NormalizedListing]:
    # sorted() is stable with reverse=True, so ties keep extraction order
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


class ListingAggregator:
    """
    Cache-first access to the merged listing feed.

    On a miss every source in the requested set is scraped concurrently; a
    source that fails contributes an empty list instead of failing the request.
    The merged list is cached before the age window is applied so requests with
    different windows share one extraction.
    """

    def __init__(
        self,
        sources: Dict[str, SourceConfig],
        scrapers: Dict[str, ScrapeFn],
        cache: ResultCache,
        cache_ttl: float = 60.0,
        min_budget: int = DEFAULT_MIN_BUDGET,
        tracker: Optional[NewListingTracker] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.sources = sources
        self.scrapers = scrapers
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.min_budget = min_budget
        self.tracker = tracker or NewListingTracker()
        self._clock = clock
        self._in_flight: Dict[str, asyncio.Task] = {}
        # Bumped on every invalidation of a cache key
        self._generations: Dict[str, int] = {}

    def source_keys(self, source_set: SourceSet) -> List[str]:
        if source_set == SourceSet.ALL:
            return list(self.sources)
        return [source_set.value]

    def source_names(self, source_set: SourceSet) -> List[str]:
        return [self.sources[k].name for k in self.source_keys(source_set)]

    def cache_key(self, source_set: SourceSet) -> str:
        if source_set == SourceSet.ALL:
            return ALL_CACHE_KEY
        return self.sources[source_set.value].cache_key

    async def get_or_extract(self, source_set: SourceSet, hours: Optional[int] = None) -> AggregationResult:
        key = self.cache_key(source_set)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Serving {len(cached)} listings for {key} from cache")
            return AggregationResult(
                records=within_window(cached, hours, self._clock()),
                served_from_cache=True,
                counts=self._counts_from_records(source_set, cached),
                total_count=len(cached),
                hours=hours,
            )

        logger.info(f"Cache empty or expired for {key}, extracting")
        extraction = await self._extract_shared(source_set)
        return AggregationResult(
            records=within_window(extraction.records, hours, self._clock()),
            served_from_cache=False,
            counts=extraction.counts,
            total_count=len(extraction.records),
            hours=hours,
            new_records=extraction.new_records,
        )

    async def force_refresh(self, source_set: SourceSet, hours: Optional[int] = None) -> AggregationResult:
        """Invalidate every cache key covering `source_set`, then extract again."""
        self.invalidate(source_set)
        # An extraction already running started before the invalidation; do not join it
        extraction = await self._extract_shared(source_set, fresh=True)
        return AggregationResult(
            records=within_window(extraction.records, hours, self._clock()),
            served_from_cache=False,
            counts=extraction.counts,
            total_count=len(extraction.records),
            hours=hours,
            forced=True,
            new_records=extraction.new_records,
        )

    def invalidate(self, source_set: SourceSet) -> None:
        keys = {self.cache_key(source_set), ALL_CACHE_KEY}
        keys.update(self.sources[k].cache_key for k in self.source_keys(source_set))
        for key in keys:
            self.cache.delete(key)
            self._generations[key] = self._generations.get(key, 0) + 1
        logger.info(f"Cache cleared: {sorted(keys)}")

    def _write_keys(self, source_set: SourceSet) -> List[str]:
        keys = [self.cache_key(source_set)]
        if source_set == SourceSet.ALL:
            keys += [self.sources[k].cache_key for k in self.source_keys(source_set)]
        return keys

    async def _extract_shared(self, source_set: SourceSet, fresh: bool = False) -> _Extraction:
        """Concurrent misses on the same key wait for a single extraction."""
        key = self.cache_key(source_set)
        task = self._in_flight.get(key)
        if task is None or fresh:
            # Generations are captured now, before the pass can be overtaken
            generations = {k: self._generations.get(k, 0) for k in self._write_keys(source_set)}
            task = asyncio.ensure_future(self._extract(source_set, generations))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        else:
            logger.info(f"Joining in-flight extraction for {key}")
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    def _store(self, key: str, records: List[NormalizedListing], generations: Dict[str, int]) -> None:
        if self._generations.get(key, 0) != generations[key]:
            logger.info(f"Skipping cache write for {key}: invalidated during extraction")
            return
        self.cache.set(key, records, self.cache_ttl)

    async def _extract(self, source_set: SourceSet, generations: Dict[str, int]) -> _Extraction:
        now = self._clock()
        keys = self.source_keys(source_set)
        results = await asyncio.gather(*(self._run_source(k, now) for k in keys))

        per_source = dict(zip(keys, results))
        merged: List[NormalizedListing] = []
        for k in keys:
            merged.extend(per_source[k])
        merged = sort_newest_first(merged)

        self._store(self.cache_key(source_set), merged, generations)
        if source_set == SourceSet.ALL:
            # Keep the single-source views consistent with the combined one
            for k in keys:
                self._store(self.sources[k].cache_key, sort_newest_first(per_source[k]), generations)

        counts = {k: len(per_source[k]) for k in keys}
        logger.info(f"Extracted {len(merged)} listings {counts}, cached for {self.cache_ttl:g}s")
        return _Extraction(records=merged, counts=counts, new_records=self.tracker.observe(merged))

    async def _run_source(self, key: str, now: int) -> List[NormalizedListing]:
        source = self.sources[key]
        try:
            raw = await self.scrapers[key](now)
        except Exception as e:
            logger.error(f"{source.name} raised exception: {e}")
            return []

        if source.needs_relevance_filter:
            raw = filter_listings(raw, floor=self.min_budget, source_name=source.name)
        return normalize_listings(raw, source)

    def _counts_from_records(self, source_set: SourceSet, records: List[NormalizedListing]) -> Dict[str, int]:
        counts = {}
        for k in self.source_keys(source_set):
            name = self.sources[k].name
            counts[k] = sum(1 for r in records if r.source == name)
        return counts
