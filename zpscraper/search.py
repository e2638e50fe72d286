"""
Search result discovery: walks the paginated results of one search and
collects listing URLs.
"""
import logging
import math
import re
from typing import Callable, Dict, List, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from .browser import PageFetcher
from .exceptions import FetchError
from .models import DiscoveryResult
from .utils import DelayFunc, parse_number, random_delay


logger = logging.getLogger(__name__)

BASE_URL = "https://www.zonaprop.com.ar"
LISTING_PATH_PATTERN = "/propiedades/"
RESULTS_PER_PAGE = 30
DEFAULT_MAX_PAGES = 10
SEARCH_RENDER_WAIT_MS = 3000
PAGE_DELAY_RANGE = (1.0, 3.0)

HEADING_TAGS = ["h1", "h2", "h3", "h4"]
RE_TOTAL_ESTIMATE = re.compile(
    r"(\d[\d.,]*)\s+(?:propiedades|inmuebles|departamentos|casas|ph|terrenos|"
    r"locales|oficinas|cocheras|resultados|avisos)\b",
    re.I,
)
RE_PAGE_SUFFIX = re.compile(r"-pagina-\d+(?=\.html$)")

PageUrlBuilder = Callable[[str, int], str]


def build_page_url(search_url: str, page: int) -> str:
    """
    URL of result page `page` for a search.

    Zonaprop paginates as `<slug>-pagina-N.html`; page 1 is the bare slug.
    Query string and fragment are kept.
    """
    parts = urlsplit(search_url)
    path = RE_PAGE_SUFFIX.sub("", parts.path)
    if page > 1:
        if path.endswith(".html"):
            path = f"{path[:-len('.html')]}-pagina-{page}.html"
        else:
            path = f"{path.rstrip('/')}-pagina-{page}.html"
    return urlunsplit(parts._replace(path=path))


def parse_total_estimate(html: str) -> int:
    """Result count announced in the page headings, e.g. "1.234 propiedades"; 0 when absent."""
    soup = BeautifulSoup(html, "html.parser")
    for heading in soup.find_all(HEADING_TAGS):
        m = RE_TOTAL_ESTIMATE.search(heading.get_text(" ", strip=True))
        if m:
            value = parse_number(m.group(1))
            if value is not None:
                return int(value)
    return 0


def extract_listing_urls(html: str, base_url: str = BASE_URL) -> List[str]:
    """Absolute listing URLs from all anchors on a results page, first occurrence order."""
    soup = BeautifulSoup(html, "html.parser")
    seen: Dict[str, None] = {}
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if LISTING_PATH_PATTERN not in href:
            continue
        full_url = href if href.startswith("http") else urljoin(base_url, href)
        seen.setdefault(full_url, None)
    return list(seen)


def pages_to_visit(total_estimate: int, max_pages: int) -> int:
    if max_pages < 1:
        return 1
    if total_estimate <= 0:
        return max_pages
    return max(1, min(math.ceil(total_estimate / RESULTS_PER_PAGE), max_pages))


async def discover_listing_urls(
    search_url: str,
    fetcher: PageFetcher,
    max_pages: int = DEFAULT_MAX_PAGES,
    delay: Optional[DelayFunc] = None,
    page_url_builder: PageUrlBuilder = build_page_url,
    render_wait_ms: int = SEARCH_RENDER_WAIT_MS,
) -> DiscoveryResult:
    """
    Resolve a search URL to a deduplicated list of listing URLs.

    Page 1 must load; later pages are best effort and pagination stops at
    the first one that fails. Zero URLs overall is reported as a probable
    anti-automation block.
    """
    if delay is None:
        delay = random_delay(*PAGE_DELAY_RANGE)

    logger.info(f">>> Opening search page: {search_url}")
    try:
        resp = await fetcher.fetch(search_url, render_wait_ms)
    except FetchError as e:
        logger.error(f">>> Search page fetch failed: {e.message}")
        return DiscoveryResult(success=False, error=f"Could not load search page: {e.message}")
    except Exception as e:
        logger.exception(">>> Unexpected error loading search page")
        return DiscoveryResult(success=False, error=f"Could not load search page: {e}")

    if resp.status != 200:
        logger.error(f">>> Search page answered HTTP {resp.status}")
        return DiscoveryResult(
            success=False,
            error=f"HTTP {resp.status}: could not access the search page",
        )

    total_estimate = parse_total_estimate(resp.html)
    n_pages = pages_to_visit(total_estimate, max_pages)
    logger.info(f">>> Search reports {total_estimate} results; visiting up to {n_pages} page(s)")

    found: Dict[str, None] = {}
    for u in extract_listing_urls(resp.html, search_url):
        found.setdefault(u, None)
    pages_visited = 1
    logger.info(f">>> Page 1: {len(found)} listing URLs")

    for page in range(2, n_pages + 1):
        await delay()
        page_url = page_url_builder(search_url, page)
        try:
            page_resp = await fetcher.fetch(page_url, render_wait_ms)
        except Exception as e:
            logger.warning(f">>> Stopping pagination at page {page}: {e}")
            break
        if page_resp.status != 200:
            logger.warning(f">>> Stopping pagination at page {page}: HTTP {page_resp.status}")
            break

        before = len(found)
        for u in extract_listing_urls(page_resp.html, page_url):
            found.setdefault(u, None)
        pages_visited += 1
        logger.info(f">>> Page {page}: {len(found) - before} new listing URLs ({len(found)} total)")

    urls = list(found)
    if not urls:
        return DiscoveryResult(
            success=False,
            total_estimate=total_estimate,
            pages_visited=pages_visited,
            blocked=True,
            error="No listings found on the search page; the site may be blocking automated access",
        )

    if total_estimate and total_estimate > len(urls):
        logger.info(f">>> Reachable URLs ({len(urls)}) below announced total ({total_estimate})")

    return DiscoveryResult(
        success=True,
        urls=urls,
        total_estimate=total_estimate,
        pages_visited=pages_visited,
    )
