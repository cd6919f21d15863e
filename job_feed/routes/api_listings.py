from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from job_feed.config import settings
from job_feed.schemas.listing import ListingFeedResponse
from job_feed.services.aggregator import AggregationResult, ListingAggregator, SourceSet
from job_feed.services.notifier import TelegramNotifier

router = APIRouter()

MAX_HOURS = 24 * 30


def get_aggregator(request: Request) -> ListingAggregator:
    return request.app.state.aggregator


def get_notifier(request: Request) -> TelegramNotifier:
    return request.app.state.notifier


def _feed_response(result: AggregationResult, aggregator: ListingAggregator, source_set: SourceSet) -> ListingFeedResponse:
    return ListingFeedResponse(
        jobs=result.records,
        cached=result.served_from_cache,
        forced=result.forced,
        count=result.count,
        total_count=result.total_count,
        hours=result.hours,
        sources=aggregator.source_names(source_set),
        breakdown=result.counts,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


def _queue_notification(result: AggregationResult, notifier: TelegramNotifier, background_tasks: BackgroundTasks):
    if result.new_records and notifier.configured:
        background_tasks.add_task(notifier.notify, result.new_records)


async def _serve(source_set, hours, aggregator, notifier, background_tasks) -> ListingFeedResponse:
    result = await aggregator.get_or_extract(source_set, hours)
    _queue_notification(result, notifier, background_tasks)
    return _feed_response(result, aggregator, source_set)


async def _refresh(source_set, hours, aggregator, notifier, background_tasks) -> ListingFeedResponse:
    result = await aggregator.force_refresh(source_set, hours)
    _queue_notification(result, notifier, background_tasks)
    return _feed_response(result, aggregator, source_set)


@router.get("/all", response_model=ListingFeedResponse, response_model_exclude_none=True)
async def list_all(
    background_tasks: BackgroundTasks,
    hours: int = Query(settings.default_hours, ge=1, le=MAX_HOURS),
    aggregator: ListingAggregator = Depends(get_aggregator),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Listings from every source, newest first, within the last `hours`."""
    return await _serve(SourceSet.ALL, hours, aggregator, notifier, background_tasks)


@router.post("/all", response_model=ListingFeedResponse, response_model_exclude_none=True)
async def refresh_all(
    background_tasks: BackgroundTasks,
    hours: Optional[int] = Query(None, ge=1, le=MAX_HOURS),
    aggregator: ListingAggregator = Depends(get_aggregator),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Drop every cached feed and scrape all sources again."""
    return await _refresh(SourceSet.ALL, hours, aggregator, notifier, background_tasks)


@router.get("/jobs", response_model=ListingFeedResponse, response_model_exclude_none=True)
async def list_workana(
    background_tasks: BackgroundTasks,
    hours: Optional[int] = Query(None, ge=1, le=MAX_HOURS),
    aggregator: ListingAggregator = Depends(get_aggregator),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    return await _serve(SourceSet.WORKANA, hours, aggregator, notifier, background_tasks)


@router.post("/jobs", response_model=ListingFeedResponse, response_model_exclude_none=True)
async def refresh_workana(
    background_tasks: BackgroundTasks,
    hours: Optional[int] = Query(None, ge=1, le=MAX_HOURS),
    aggregator: ListingAggregator = Depends(get_aggregator),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    return await _refresh(SourceSet.WORKANA, hours, aggregator, notifier, background_tasks)


@router.get("/freelancer", response_model=ListingFeedResponse, response_model_exclude_none=True)
async def list_freelancer(
    background_tasks: BackgroundTasks,
    hours: Optional[int] = Query(None, ge=1, le=MAX_HOURS),
    aggregator: ListingAggregator = Depends(get_aggregator),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    return await _serve(SourceSet.FREELANCER, hours, aggregator, notifier, background_tasks)


@router.post("/freelancer", response_model=ListingFeedResponse, response_model_exclude_none=True)
async def refresh_freelancer(
    background_tasks: BackgroundTasks,
    hours: Optional[int] = Query(None, ge=1, le=MAX_HOURS),
    aggregator: ListingAggregator = Depends(get_aggregator),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    return await _refresh(SourceSet.FREELANCER, hours, aggregator, notifier, background_tasks)
