"""
Shared pytest fixtures: a canned-HTML page fetcher and page builders.
"""
import asyncio
from typing import Dict, List, Optional, Union

import pytest

from zpscraper.browser import PageFetcher, PageResponse
from zpscraper.exceptions import FetchError


class FakeFetcher(PageFetcher):
    """Serves canned pages; unknown URLs raise FetchError."""

    def __init__(self, pages: Optional[Dict[str, Union[tuple, Exception]]] = None,
                 delays: Optional[Dict[str, float]] = None):
        self.pages = pages or {}
        self.delays = delays or {}
        self.calls: List[str] = []
        self.completed: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def fetch(self, url: str, render_wait_ms: int, skip_images: bool = False) -> PageResponse:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
            self.completed.append(url)
        finally:
            self.in_flight -= 1

        page = self.pages.get(url)
        if page is None:
            raise FetchError(url, "Connection refused")
        if isinstance(page, Exception):
            raise page
        status, html = page
        return PageResponse(status=status, html=html, final_url=url)


def build_listing_html(
    name: str = "Departamento en venta en Palermo",
    price: str = "venta USD 850.000",
    expenses: Optional[str] = "Expensas $ 600.000",
    summary: str = "Departamento · 110m² · 4 ambientes",
    location: Optional[str] = "Av. Santa Fe 3200, Palermo, Capital Federal",
    features: Optional[List[str]] = None,
    body_extra: str = "",
    image: Optional[str] = "https://imgar.zonapropcdn.com/avisos/1/00/12/34/1200x1200/1.jpg",
) -> str:
    if features is None:
        features = ["380 m² cub.", "2300 m² tot.", "3 dormitorios", "2 baños", "1 cochera"]
    head = f'<meta property="og:image" content="{image}">' if image else ""
    parts = [f"<html><head>{head}</head><body>"]
    if name:
        parts.append(f"<h1>{name}</h1>")
    if price:
        parts.append(f'<div class="price-item-container"><span>{price}</span></div>')
    if expenses:
        parts.append(f'<div class="price-expenses">{expenses}</div>')
    if summary:
        parts.append(f'<h2 class="title-type-sup-property">{summary}</h2>')
    if location:
        parts.append(f'<div class="section-location-property"><h4>{location}</h4></div>')
    if features:
        items = "".join(f'<li class="icon-feature">{f}</li>' for f in features)
        parts.append(f'<ul id="section-icon-features-property">{items}</ul>')
    parts.append(body_extra)
    parts.append("</body></html>")
    return "".join(parts)


def build_search_html(hrefs: List[str], heading: str = "") -> str:
    anchors = "".join(f'<div class="card"><a href="{h}">aviso</a></div>' for h in hrefs)
    return f"<html><body><h1>{heading}</h1><div class='postings'>{anchors}</div></body></html>"


@pytest.fixture
def fake_fetcher_cls():
    return FakeFetcher


@pytest.fixture
def listing_html():
    return build_listing_html


@pytest.fixture
def search_html():
    return build_search_html
