"""
Zonaprop Listing Scraper Package
"""
from .models import (
    ListingRecord,
    FetchSuccess,
    FetchFailure,
    DiscoveryResult,
    UrlsDiscovered,
    ItemStarted,
    ItemSucceeded,
    ItemFailed,
    BatchError,
    Complete,
)
from .browser import PageFetcher, PageResponse, PlaywrightFetcher
from .exceptions import ScraperError, FetchError
from .listing import fetch_listing, parse_listing_html
from .search import discover_listing_urls, build_page_url
from .core import ExtractionConfig, UrlList, run_extraction, run_scrape
from .export import records_to_dataframe, save_output_rows
from .utils import init_logger, now_iso, parse_number, derive_price_per_area

__version__ = "1.0.0"

__all__ = [
    "ListingRecord",
    "FetchSuccess",
    "FetchFailure",
    "DiscoveryResult",
    "UrlsDiscovered",
    "ItemStarted",
    "ItemSucceeded",
    "ItemFailed",
    "BatchError",
    "Complete",
    "PageFetcher",
    "PageResponse",
    "PlaywrightFetcher",
    "ScraperError",
    "FetchError",
    "fetch_listing",
    "parse_listing_html",
    "discover_listing_urls",
    "build_page_url",
    "ExtractionConfig",
    "UrlList",
    "run_extraction",
    "run_scrape",
    "records_to_dataframe",
    "save_output_rows",
    "init_logger",
    "now_iso",
    "parse_number",
    "derive_price_per_area",
]
