"""
Core extraction orchestration: discovery, batched concurrent fetching and
the progress event stream.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Union

from .browser import PageFetcher
from .listing import LISTING_RENDER_WAIT_MS, fetch_listing
from .models import (
    BatchError,
    Complete,
    FetchFailure,
    FetchOutcome,
    ItemFailed,
    ItemStarted,
    ItemSucceeded,
    ListingRecord,
    ProgressEvent,
    UrlsDiscovered,
)
from .search import DEFAULT_MAX_PAGES, PAGE_DELAY_RANGE, discover_listing_urls
from .utils import DelayFunc, random_delay


logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5
DEFAULT_MAX_ITEMS = 10
BATCH_DELAY_RANGE = (1.0, 2.0)


@dataclass
class ExtractionConfig:
    """
    Knobs for one extraction run.

    max_items <= 0 means no limit. With a search URL that turns the run
    into discovery only: the URLs are reported and nothing is fetched.
    """
    max_items: int = DEFAULT_MAX_ITEMS
    concurrency: int = DEFAULT_CONCURRENCY
    skip_images: bool = False
    chunk_offset: int = 0
    max_pages: int = DEFAULT_MAX_PAGES
    render_wait_ms: int = LISTING_RENDER_WAIT_MS

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError("concurrency must be a positive integer")
        if self.chunk_offset < 0:
            raise ValueError("chunk_offset must be >= 0")


@dataclass
class UrlList:
    """Previously discovered listing URLs; skips the discovery phase."""
    urls: List[str] = field(default_factory=list)


Source = Union[str, UrlList]


def select_work(urls: List[str], offset: int, max_items: int) -> List[str]:
    """The slice of `urls` a run is responsible for."""
    if max_items <= 0:
        return list(urls[offset:])
    return list(urls[offset:offset + max_items])


def batched(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def _guarded_fetch(url: str, fetcher: PageFetcher, config: ExtractionConfig) -> FetchOutcome:
    try:
        return await fetch_listing(
            url, fetcher, skip_images=config.skip_images, render_wait_ms=config.render_wait_ms
        )
    except Exception as e:
        logger.exception(f">>> Listing task crashed for {url}")
        return FetchFailure(url=url, reason=str(e) or e.__class__.__name__)


async def run_extraction(
    source: Source,
    fetcher: PageFetcher,
    config: Optional[ExtractionConfig] = None,
    delay: Optional[DelayFunc] = None,
    page_delay: Optional[DelayFunc] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> AsyncIterator[ProgressEvent]:
    """
    Run discovery (for a search URL) and extraction, yielding progress events.

    Each batch of `config.concurrency` URLs is fetched concurrently and
    joined before anything is reported, so a batch always yields all its
    ItemStarted events first and then one completion per URL in URL order.
    Closing the generator, or setting `cancel_event`, stops the run before
    the next batch; the batch in flight is always allowed to finish. A
    cancelled consumer task also waits for the batch, then sees
    CancelledError.
    """
    if config is None:
        config = ExtractionConfig()
    if delay is None:
        delay = random_delay(*BATCH_DELAY_RANGE)
    if page_delay is None:
        page_delay = random_delay(*PAGE_DELAY_RANGE)

    if isinstance(source, UrlList):
        all_urls = list(source.urls)
        logger.info(f">>> Using {len(all_urls)} supplied URLs (offset {config.chunk_offset})")
    else:
        discovery = await discover_listing_urls(
            source, fetcher, max_pages=config.max_pages, delay=page_delay
        )
        if not discovery.success:
            logger.error(f">>> Discovery failed: {discovery.error}")
            yield BatchError(reason=discovery.error or "Could not extract URLs from the search page")
            return

        all_urls = discovery.urls
        logger.info(f">>> Discovered {len(all_urls)} URLs (search reports {discovery.total_estimate})")
        yield UrlsDiscovered(urls=list(all_urls), total_estimate=discovery.total_estimate)

        if config.max_items <= 0:
            logger.info(">>> Discovery-only run, nothing to extract")
            return

    work = select_work(all_urls, config.chunk_offset, config.max_items)
    batches = batched(work, config.concurrency)
    records: List[ListingRecord] = []
    failures: List[FetchFailure] = []
    processed = 0

    for batch_no, batch in enumerate(batches):
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f">>> Cancelled before batch {batch_no + 1}/{len(batches)}")
            break

        base_index = config.chunk_offset + batch_no * config.concurrency
        logger.info(f">>> Batch {batch_no + 1}/{len(batches)}: {len(batch)} listing(s) from index {base_index}")

        for i, url in enumerate(batch):
            yield ItemStarted(index=base_index + i, url=url)

        tasks = [asyncio.create_task(_guarded_fetch(u, fetcher, config)) for u in batch]
        joined = asyncio.gather(*tasks)
        try:
            outcomes = await asyncio.shield(joined)
        except asyncio.CancelledError:
            # Consumer went away mid-batch: the batch still runs to completion
            logger.info(f">>> Cancelled during batch {batch_no + 1}; waiting for {len(tasks)} fetch(es)")
            await joined
            raise

        for i, outcome in enumerate(outcomes):
            index = base_index + i
            if outcome.ok:
                records.append(outcome.record)
                yield ItemSucceeded(index=index, record=outcome.record)
            else:
                failures.append(outcome)
                yield ItemFailed(index=index, url=outcome.url, reason=outcome.reason)
        processed += len(batch)

        if batch_no < len(batches) - 1:
            await delay()

    logger.info(f">>> Extraction finished: {len(records)} ok, {len(failures)} failed of {processed}")
    yield Complete(
        total=processed,
        succeeded=len(records),
        failed=len(failures),
        records=records,
        failures=failures,
    )


async def collect_events(source: Source, fetcher: PageFetcher, **kwargs) -> List[ProgressEvent]:
    """Drain `run_extraction` into a list."""
    return [event async for event in run_extraction(source, fetcher, **kwargs)]


async def run_scrape(source: Source, fetcher: PageFetcher, **kwargs) -> Union[Complete, BatchError, UrlsDiscovered]:
    """
    Run an extraction to the end and return its terminal event.

    That is the Complete summary, the BatchError of a failed discovery, or
    the UrlsDiscovered event of a discovery-only run.
    """
    last = None
    async for event in run_extraction(source, fetcher, **kwargs):
        if isinstance(event, (Complete, BatchError, UrlsDiscovered)):
            last = event
    return last
