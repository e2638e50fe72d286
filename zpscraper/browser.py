"""
Page-fetch capability backed by Playwright.

The crawl core only relies on `PageFetcher.fetch`: give it a URL, get back
the rendered HTML and the HTTP status, or a `FetchError`. Everything about
how the page gets rendered lives here.
"""
import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import async_playwright, Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from .exceptions import FetchError


logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 60_000
VIEWPORT = {"width": 1920, "height": 1080}
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)
EXTRA_HEADERS = {
    "Accept-Language": "es-AR,es;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Cache-Control": "max-age=0",
    "Upgrade-Insecure-Requests": "1",
}
LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--lang=es-AR",
]
HEADLESS_ARGS = ["--disable-dev-shm-usage", "--no-sandbox", "--disable-gpu"]

# Hides the most obvious automation markers before any page script runs
STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['es-AR', 'es', 'en'] });
window.chrome = { runtime: {} };
"""

BLOCKED_RESOURCE_TYPES = {"image", "media", "font"}


@dataclass
class PageResponse:
    status: int
    html: str
    final_url: str = ""


class PageFetcher(ABC):
    """Anything that can turn a URL into rendered HTML."""

    @abstractmethod
    async def fetch(self, url: str, render_wait_ms: int, skip_images: bool = False) -> PageResponse:
        """Return the rendered document, or raise FetchError."""


def headless_from_env(default: bool = True) -> bool:
    raw = os.getenv("HEADLESS")
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


class PlaywrightFetcher(PageFetcher):
    """
    Chromium-backed fetcher.

    One browser per fetcher, one fresh browser context per fetch, so
    concurrent fetches never share cookies or storage.

        async with PlaywrightFetcher() as fetcher:
            resp = await fetcher.fetch(url, render_wait_ms=2000)
    """

    def __init__(self, headless: bool = True, navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS):
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self._playwright = None
        self._browser = None

    async def __aenter__(self) -> "PlaywrightFetcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self):
        if self._browser is not None:
            return
        args = list(LAUNCH_ARGS)
        if self.headless:
            args += HEADLESS_ARGS
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless, args=args)
        logger.info(f">>> Browser launched (headless={self.headless})")

    async def close(self):
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def fetch(self, url: str, render_wait_ms: int, skip_images: bool = False) -> PageResponse:
        if self._browser is None:
            raise FetchError(url, "Browser not started")

        context = await self._browser.new_context(
            viewport=VIEWPORT,
            user_agent=USER_AGENT,
            locale="es-AR",
            extra_http_headers=EXTRA_HEADERS,
        )
        try:
            context.set_default_navigation_timeout(self.navigation_timeout_ms)
            await context.add_init_script(STEALTH_INIT_SCRIPT)
            if skip_images:
                await context.route("**/*", _abort_heavy_resources)

            page = await context.new_page()
            logger.debug(f">>> Navigating to: {url}")
            try:
                response = await page.goto(url, wait_until="domcontentloaded")
            except PlaywrightTimeout as e:
                raise FetchError(url, f"Timeout loading page: {e}") from e
            except PlaywrightError as e:
                raise FetchError(url, f"Navigation failed: {e}") from e

            if response is None:
                raise FetchError(url, "No response received")

            # Dynamic content needs a moment after DOMContentLoaded
            await asyncio.sleep(render_wait_ms / 1000)

            try:
                html = await page.content()
            except PlaywrightError as e:
                raise FetchError(url, f"Could not read page content: {e}") from e

            return PageResponse(status=response.status, html=html, final_url=page.url)
        finally:
            await context.close()


async def _abort_heavy_resources(route):
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()
