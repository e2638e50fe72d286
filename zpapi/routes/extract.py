"""
Extraction route handlers, including the server-sent events stream.
"""
import json
import logging
from typing import AsyncIterator, Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from zpscraper.browser import PageFetcher, PlaywrightFetcher
from zpscraper.core import ExtractionConfig, UrlList, run_extraction
from zpscraper.models import BatchError, Complete, UrlsDiscovered

from ..config import config
from ..models import (
    ExtractionSummary,
    ExtractRequest,
    ExtractSearchRequest,
    ExtractStreamRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["extract"])

FetcherFactory = Callable[[], PageFetcher]

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def get_fetcher_factory() -> FetcherFactory:
    """Dependency returning a factory for fetchers usable with `async with`."""
    return lambda: PlaywrightFetcher(headless=config.HEADLESS)


def validate_listing_host(urls: List[str]) -> None:
    invalid = [u for u in urls if config.ALLOWED_HOST not in u]
    if invalid:
        raise HTTPException(
            status_code=400,
            detail={"error": f"All URLs must be from {config.ALLOWED_HOST}", "invalidUrls": invalid},
        )


def clamp_concurrency(value: int) -> int:
    return max(1, min(value, config.MAX_CONCURRENCY))


def sse_line(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


async def event_stream(source, factory: FetcherFactory, extraction: ExtractionConfig) -> AsyncIterator[str]:
    """Serialize run_extraction events as SSE frames; any crash becomes a final error event."""
    try:
        async with factory() as fetcher:
            async for event in run_extraction(source, fetcher, config=extraction):
                yield sse_line(event.to_dict())
    except Exception as e:
        logger.error(f"Error in stream: {e}", exc_info=True)
        yield sse_line({"type": "error", "error": str(e) or "Unknown error"})


@router.post("/extract-search-stream")
async def extract_search_stream(
    body: ExtractStreamRequest,
    factory: FetcherFactory = Depends(get_fetcher_factory),
):
    """
    Two-step streaming extraction.

    With `urls` the given chunk is extracted and every progress event is
    streamed. With only `searchUrl` the search is discovered and the
    stream ends after the `urls` event.
    """
    if body.urls is not None:
        if not body.urls:
            raise HTTPException(status_code=400, detail="The URL list is empty")
        if body.startIndex < 0:
            raise HTTPException(status_code=400, detail="startIndex must be >= 0")
        extraction = ExtractionConfig(
            max_items=body.limit,
            concurrency=clamp_concurrency(body.concurrency),
            skip_images=body.skipImages,
            chunk_offset=body.startIndex,
        )
        logger.info(
            f"Processing chunk: {body.startIndex} to {body.startIndex + body.limit} "
            f"(concurrency: {extraction.concurrency}, skipImages: {body.skipImages})"
        )
        source = UrlList(body.urls)
    else:
        if not body.searchUrl:
            raise HTTPException(status_code=400, detail="A search URL or a list of URLs is required")
        if config.ALLOWED_HOST not in body.searchUrl:
            raise HTTPException(status_code=400, detail=f"The URL must be from {config.ALLOWED_HOST}")
        logger.info(f"Extracting URLs from search page: {body.searchUrl}")
        extraction = ExtractionConfig(max_items=0)
        source = body.searchUrl

    return StreamingResponse(
        event_stream(source, factory, extraction),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/extract", response_model=ExtractionSummary)
async def extract_listings(
    body: ExtractRequest,
    factory: FetcherFactory = Depends(get_fetcher_factory),
):
    """Extract up to MAX_URLS_PER_REQUEST listings and return the summary."""
    if not body.urls:
        raise HTTPException(status_code=400, detail="Provide at least one URL")
    if len(body.urls) > config.MAX_URLS_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"At most {config.MAX_URLS_PER_REQUEST} URLs per request",
        )
    validate_listing_host(body.urls)

    logger.info(f"Starting extraction for {len(body.urls)} URLs...")
    extraction = ExtractionConfig(max_items=0, concurrency=config.DEFAULT_CONCURRENCY)
    summary: Optional[Complete] = None
    async with factory() as fetcher:
        async for event in run_extraction(UrlList(body.urls), fetcher, config=extraction):
            if isinstance(event, Complete):
                summary = event

    logger.info(f"Extraction complete: {summary.extracted} successful, {summary.failed} failed")
    payload = summary.to_dict()
    payload.pop("type")
    return ExtractionSummary(success=True, **payload)


@router.post("/extract-search", response_model=ExtractionSummary)
async def extract_search(
    body: ExtractSearchRequest,
    factory: FetcherFactory = Depends(get_fetcher_factory),
):
    """Discover a search and extract its first `maxProperties` listings."""
    if config.ALLOWED_HOST not in body.searchUrl:
        raise HTTPException(status_code=400, detail=f"The URL must be from {config.ALLOWED_HOST}")
    max_properties = max(1, min(body.maxProperties, config.MAX_SEARCH_PROPERTIES))

    logger.info(f"Starting search extraction for: {body.searchUrl}")
    extraction = ExtractionConfig(max_items=max_properties, concurrency=config.DEFAULT_CONCURRENCY)
    found_in_search = None
    summary: Optional[Complete] = None
    async with factory() as fetcher:
        async for event in run_extraction(body.searchUrl, fetcher, config=extraction):
            if isinstance(event, BatchError):
                raise HTTPException(status_code=502, detail=event.reason)
            if isinstance(event, UrlsDiscovered):
                found_in_search = event.total_estimate or len(event.urls)
            elif isinstance(event, Complete):
                summary = event

    logger.info(
        f"Search extraction complete: {summary.extracted} successful, "
        f"{summary.failed} failed ({found_in_search} found in search)"
    )
    payload = summary.to_dict()
    payload.pop("type")
    return ExtractionSummary(success=True, totalFoundInSearch=found_in_search, **payload)
