"""
Listing page fetching and field extraction.
"""
import logging
import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from .browser import PageFetcher
from .exceptions import FetchError
from .models import FetchFailure, FetchOutcome, FetchSuccess, ListingRecord
from .utils import clean_text, parse_number, to_int


logger = logging.getLogger(__name__)

LISTING_RENDER_WAIT_MS = 2000

PRICE_SEL = ".price-value, .price-item-container"
EXPENSES_SEL = ".price-expenses, .price-extra"
LOCATION_SEL = ".section-location-property"
FEATURE_SEL = ".icon-feature, li.icon-feature"
GALLERY_IMG_SEL = "#new-gallery-portal img, .gallery img, img[src*='zonapropcdn']"

_NUM = r"(\d+(?:[.,]\d+)?)"
RE_PRICE_MARKED = re.compile(r"(?:USD|ARS|\$)\s*([\d.,]+)", re.I)
RE_ANY_NUMBER = re.compile(r"([\d.,]+)")
RE_EXPENSES = re.compile(r"\$?\s*(\d[\d.,]*)")
RE_M2_ANY = re.compile(_NUM + r"\s*m²", re.I)
RE_AMBIENTES = re.compile(r"(\d+)\s*ambientes?", re.I)
RE_M2_COVERED = re.compile(_NUM + r"\s*m²?\s*(?:cub|cubiertos?)", re.I)
RE_M2_TOTAL = re.compile(_NUM + r"\s*m²?\s*(?:tot|totales?)", re.I)
RE_M2_COVERED_DOC = re.compile(_NUM + r"\s*m²?\s*cubiertos?", re.I)
RE_M2_TOTAL_DOC = re.compile(_NUM + r"\s*m²?\s*totales?", re.I)
RE_PARKING_KEYWORD = re.compile(r"cochera|garage|estacionamiento", re.I)
RE_PARKING_COUNT = re.compile(r"(\d+)\s*(?:cocheras?|garages?)", re.I)
RE_BEDROOMS = re.compile(r"(\d+)\s*dormitorios?|(\d+)\s*habitaci[oó]n(?:es)?", re.I)
RE_BATHROOMS = re.compile(r"(\d+)\s*baños?", re.I)


def _text(el) -> str:
    if el is None:
        return ""
    return clean_text(el.get_text(" ", strip=True))


def detect_currency(price_text: str) -> Optional[str]:
    """USD or ARS from the price block; a bare `$` means pesos."""
    if "USD" in price_text:
        return "USD"
    if "ARS" in price_text or "$" in price_text:
        return "ARS"
    return None


def extract_price_text(price_text: str) -> str:
    """Pull the numeric run out of e.g. "venta USD 850.000"."""
    m = RE_PRICE_MARKED.search(price_text)
    if m:
        return m.group(1)
    m = RE_ANY_NUMBER.search(price_text)
    return m.group(1) if m else ""


def split_location(location_text: str) -> Tuple[str, str]:
    """ "Street 1234, Neighborhood, City" -> (street, neighborhood)."""
    parts = [p.strip() for p in location_text.split(",")]
    street = parts[0] if parts else ""
    neighborhood = parts[1] if len(parts) > 1 else ""
    return street, neighborhood


def _summary_heading(soup: BeautifulSoup) -> str:
    # "Departamento · 110m² · 4 ambientes"; the last matching h2 wins
    found = ""
    for h2 in soup.find_all("h2"):
        text = _text(h2)
        if "m²" in text or "ambiente" in text:
            found = text
    return found


def _feature_areas(feature_texts: List[str]) -> Tuple[str, str]:
    covered = ""
    total = ""
    for text in feature_texts:
        m = RE_M2_COVERED.search(text)
        if m:
            covered = m.group(1)
        m = RE_M2_TOTAL.search(text)
        if m:
            total = m.group(1)
    return covered, total


def _image_url(soup: BeautifulSoup) -> Optional[str]:
    og = soup.find("meta", attrs={"property": "og:image"})
    if og and og.get("content"):
        return og["content"]
    for img in soup.select(GALLERY_IMG_SEL):
        src = img.get("src") or img.get("data-src")
        if src and src.startswith("http"):
            return src
    return None


def extract_raw_fields(html: str, skip_images: bool = False) -> Dict[str, Optional[str]]:
    """Collect the raw text for every known field; nothing is converted here."""
    soup = BeautifulSoup(html, "html.parser")
    all_text = soup.get_text(" ", strip=True)

    name = _text(soup.find("h1"))
    street, neighborhood = split_location(_text(soup.select_one(LOCATION_SEL)))

    price_block = _text(soup.select_one(PRICE_SEL))
    currency = detect_currency(price_block)
    price_text = extract_price_text(price_block)

    expenses_text = ""
    expenses_el = soup.select_one(EXPENSES_SEL)
    if expenses_el is not None:
        m = RE_EXPENSES.search(_text(expenses_el))
        if m:
            expenses_text = m.group(1)

    summary = _summary_heading(soup)
    total_text = ""
    rooms_text = ""
    m = RE_M2_ANY.search(summary)
    if m:
        total_text = m.group(1)
    m = RE_AMBIENTES.search(summary)
    if m:
        rooms_text = m.group(1)

    feature_texts = [_text(el) for el in soup.select(FEATURE_SEL)]
    covered_text, feature_total = _feature_areas(feature_texts)
    if feature_total:
        total_text = feature_total

    # Feature list gave nothing: scan the whole document
    if not covered_text:
        m = RE_M2_COVERED_DOC.search(all_text)
        if m:
            covered_text = m.group(1)
    if not total_text:
        m = RE_M2_TOTAL_DOC.search(all_text)
        if m:
            total_text = m.group(1)

    parking = None
    if RE_PARKING_KEYWORD.search(all_text):
        m = RE_PARKING_COUNT.search(all_text)
        parking = m.group(1) if m else "1"

    bedrooms_text = None
    m = RE_BEDROOMS.search(all_text)
    if m:
        bedrooms_text = m.group(1) or m.group(2)

    bathrooms_text = None
    m = RE_BATHROOMS.search(all_text)
    if m:
        bathrooms_text = m.group(1)

    return {
        "name": name,
        "address": street,
        "neighborhood": neighborhood,
        "image_url": None if skip_images else _image_url(soup),
        "price_text": price_text,
        "currency": currency,
        "expenses_text": expenses_text,
        "covered_text": covered_text,
        "total_text": total_text,
        "parking": parking,
        "bedrooms_text": bedrooms_text or rooms_text,
        "bathrooms_text": bathrooms_text,
    }


def parse_listing_html(url: str, html: str, skip_images: bool = False) -> ListingRecord:
    """Turn a rendered listing page into a ListingRecord. Unparseable fields become None."""
    raw = extract_raw_fields(html, skip_images=skip_images)
    return ListingRecord(
        url=url,
        name=raw["name"] or "",
        address=raw["address"] or "",
        neighborhood=raw["neighborhood"] or "",
        image_url=raw["image_url"],
        covered_area=parse_number(raw["covered_text"]),
        total_area=parse_number(raw["total_text"]),
        parking=raw["parking"],
        bedrooms=to_int(parse_number(raw["bedrooms_text"])),
        bathrooms=to_int(parse_number(raw["bathrooms_text"])),
        price=parse_number(raw["price_text"]),
        currency=raw["currency"],
        expenses=parse_number(raw["expenses_text"]),
    )


async def fetch_listing(
    url: str,
    fetcher: PageFetcher,
    skip_images: bool = False,
    render_wait_ms: int = LISTING_RENDER_WAIT_MS,
) -> FetchOutcome:
    """
    Fetch and parse one listing.

    Never raises: fetch errors and non-200 responses come back as
    FetchFailure so one bad listing cannot take down a batch.
    """
    try:
        resp = await fetcher.fetch(url, render_wait_ms, skip_images=skip_images)
    except FetchError as e:
        logger.warning(f">>> Fetch failed for {url}: {e.message}")
        return FetchFailure(url=url, reason=e.message)
    except Exception as e:
        logger.exception(f">>> Unexpected error fetching {url}")
        return FetchFailure(url=url, reason=str(e) or e.__class__.__name__)

    if resp.status != 200:
        logger.warning(f">>> {url} answered HTTP {resp.status}")
        return FetchFailure(url=url, reason=f"HTTP {resp.status}: could not access the listing page")

    try:
        record = parse_listing_html(url, resp.html, skip_images=skip_images)
    except Exception as e:
        logger.exception(f">>> Could not parse {url}")
        return FetchFailure(url=url, reason=f"Parse error: {e}")

    logger.debug(f">>> Parsed {url}: {record.name} | {record.price} {record.currency}")
    return FetchSuccess(record=record)
