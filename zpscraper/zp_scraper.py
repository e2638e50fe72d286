"""
Command-line entry point for the Zonaprop scraper.
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from .browser import PlaywrightFetcher, headless_from_env
from .core import DEFAULT_CONCURRENCY, DEFAULT_MAX_ITEMS, ExtractionConfig, UrlList, run_extraction
from .database import db_add_execution, db_connect, db_create_saved_search, db_init
from .export import save_output_rows
from .models import BatchError, Complete, ItemFailed, ItemStarted, ItemSucceeded, UrlsDiscovered
from .search import DEFAULT_MAX_PAGES
from .utils import init_logger, now_iso


logger = logging.getLogger("zpscraper")


def parse_args(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(description="Zonaprop listing scraper with CSV/XLSX export and saved searches")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--search", type=str, help="Zonaprop search results URL")
    src.add_argument("--urls", nargs="+", help="Listing URLs to extract directly")
    src.add_argument("--urls-file", type=str, help="File with one listing URL per line")
    ap.add_argument("--max-items", type=int, default=DEFAULT_MAX_ITEMS,
                    help="Maximum listings to extract (0 = no limit; with --search use --discover-only to only list URLs)")
    ap.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Listings fetched in parallel")
    ap.add_argument("--start-index", type=int, default=0, help="Offset into the URL list (resume a chunked run)")
    ap.add_argument("--max-pages", type=int, default=DEFAULT_MAX_PAGES, help="Maximum search result pages to visit")
    ap.add_argument("--skip-images", action="store_true", help="Do not load images while rendering")
    ap.add_argument("--discover-only", action="store_true", help="Only list the URLs found by the search")
    ap.add_argument("--headed", action="store_true", help="Show the browser window")
    ap.add_argument("--out", type=str, default="zonaprop_export.csv", help="CSV/XLSX output path")
    ap.add_argument("--db", type=str, default="", help="SQLite DB for saved searches (used with --save-as)")
    ap.add_argument("--save-as", type=str, default="", help="Record this search run under the given name")
    # Logging
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=None,
                    help="Global log level for both console and file (overrides --log-console/--log-file).")
    ap.add_argument("--log-console", choices=lvl_choices, default=os.getenv("LOG_CONSOLE", "INFO"),
                    help="Console log level (default from env LOG_CONSOLE or INFO).")
    ap.add_argument("--log-file", choices=lvl_choices, default=os.getenv("LOG_FILE", "DEBUG"),
                    help="File log level (default from env LOG_FILE or DEBUG).")
    ap.add_argument("--log-file-path", default=os.getenv("LOG_FILE_PATH", "zpscraper.log"),
                    help="Path to log file (default from env LOG_FILE_PATH or zpscraper.log).")
    ap.add_argument("--no-file-log", action="store_true",
                    help="Disable file logging (only console output).")

    args = ap.parse_args(argv)
    if args.save_as and not args.search:
        ap.error("--save-as requires --search")
    if args.save_as and not args.db:
        ap.error("--save-as requires --db")
    if args.search and args.max_items <= 0 and not args.discover_only:
        ap.error("--max-items must be >= 1 with --search (use --discover-only to only list URLs)")
    if args.concurrency < 1:
        ap.error("--concurrency must be >= 1")
    return args


def read_urls_file(path: str) -> List[str]:
    with open(path, encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip() and not line.startswith("#")]


async def run_cli(args) -> int:
    if args.search:
        source = args.search
    else:
        source = UrlList(args.urls if args.urls else read_urls_file(args.urls_file))

    config = ExtractionConfig(
        max_items=0 if args.discover_only else args.max_items,
        concurrency=args.concurrency,
        skip_images=args.skip_images,
        chunk_offset=args.start_index,
        max_pages=args.max_pages,
    )
    if args.discover_only and isinstance(source, UrlList):
        logger.error(">>> --discover-only needs --search")
        return 2

    headless = headless_from_env(True) and not args.headed
    summary = None
    discovery_error = None
    async with PlaywrightFetcher(headless=headless) as fetcher:
        async for event in run_extraction(source, fetcher, config=config):
            if isinstance(event, UrlsDiscovered):
                logger.info(f">>> {len(event.urls)} URLs found (search reports {event.total_estimate})")
                if args.discover_only:
                    for u in event.urls:
                        print(u)
            elif isinstance(event, ItemStarted):
                logger.info(f">>> [{event.index}] scraping {event.url}")
            elif isinstance(event, ItemSucceeded):
                r = event.record
                logger.info(f">>> [{event.index}] {r.name} | {r.price} {r.currency} | {r.total_area} m2 | {r.url}")
            elif isinstance(event, ItemFailed):
                logger.warning(f">>> [{event.index}] failed: {event.reason} ({event.url})")
            elif isinstance(event, BatchError):
                logger.error(f">>> {event.reason}")
                discovery_error = event.reason
            elif isinstance(event, Complete):
                summary = event

    if discovery_error is not None:
        return 1
    if summary is None:
        return 0

    logger.info(f">>> Done: {summary.extracted} extracted, {summary.failed} failed of {summary.total}")
    if summary.records:
        save_output_rows(summary.records, args.out)

    if args.save_as:
        os.makedirs(os.path.dirname(args.db) or ".", exist_ok=True)
        conn = db_connect(args.db)
        try:
            db_init(conn)
            search = db_create_saved_search(conn, args.save_as, args.search)
            execution = db_add_execution(conn, search["id"], summary.records)
            logger.info(f">>> Saved execution {execution['id']} ({execution['results_count']} results)")
        finally:
            conn.close()

    return 0 if summary.failed == 0 else 3


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    eff_console = args.log_level or args.log_console
    eff_file = args.log_level or args.log_file
    init_logger(
        console_level=eff_console,
        file_level=eff_file,
        log_file=None if args.no_file_log else args.log_file_path
    )
    logger.info(
        f"Logger initialized: console={eff_console}, "
        f"file={'DISABLED' if args.no_file_log else eff_file}, "
        f"path={'N/A' if args.no_file_log else args.log_file_path}"
    )
    logger.info(f">>> Run started at {now_iso()}")
    sys.exit(asyncio.run(run_cli(args)))


if __name__ == "__main__":
    main()
