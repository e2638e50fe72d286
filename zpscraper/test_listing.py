"""
Tests for listing page parsing and fetch_listing failure handling.
"""
import asyncio

from zpscraper.exceptions import FetchError
from zpscraper.listing import (
    detect_currency,
    extract_price_text,
    fetch_listing,
    parse_listing_html,
    split_location,
)
from zpscraper.models import FetchFailure, FetchSuccess, ListingRecord

URL = "https://www.zonaprop.com.ar/propiedades/departamento-palermo-12345.html"


def test_parse_full_listing(listing_html):
    record = parse_listing_html(URL, listing_html())

    assert record.url == URL
    assert record.name == "Departamento en venta en Palermo"
    assert record.address == "Av. Santa Fe 3200"
    assert record.neighborhood == "Palermo"
    assert record.price == 850000
    assert record.currency == "USD"
    assert record.expenses == 600000
    assert record.covered_area == 380
    # Feature list wins over the summary heading
    assert record.total_area == 2300
    assert record.bedrooms == 3
    assert record.bathrooms == 2
    assert record.parking == "1"
    assert record.price_per_m2 == 370
    assert record.image_url.startswith("https://imgar.zonapropcdn.com/")


def test_parse_listing_document_fallbacks(listing_html):
    html = listing_html(
        name="Casa en Belgrano",
        price="$ 120.000.000",
        expenses=None,
        summary="Casa · 200m² · 5 ambientes",
        location=None,
        features=[],
        body_extra="<p>Hermosa casa con 150 m² cubiertos y garage.</p>",
    )
    record = parse_listing_html(URL, html, skip_images=True)

    assert record.name == "Casa en Belgrano"
    assert record.currency == "ARS"
    assert record.price == 120000000
    assert record.expenses is None
    assert record.covered_area == 150
    assert record.total_area == 200
    # No explicit bedrooms: room count is used
    assert record.bedrooms == 5
    assert record.bathrooms is None
    assert record.parking == "1"
    assert record.address == ""
    assert record.neighborhood == ""
    assert record.image_url is None
    assert record.price_per_m2 == 600000


def test_parse_listing_parking_count_and_no_price(listing_html):
    html = listing_html(
        price="Consultar precio",
        features=["90 m² tot.", "2 cocheras"],
        summary="",
    )
    record = parse_listing_html(URL, html)

    assert record.price is None
    assert record.currency is None
    assert record.price_per_m2 is None
    assert record.total_area == 90
    assert record.parking == "2"


def test_parse_listing_without_parking(listing_html):
    record = parse_listing_html(URL, listing_html(features=["50 m² tot.", "1 baño"]))
    assert record.parking is None
    assert record.bathrooms == 1


def test_parse_empty_document():
    record = parse_listing_html(URL, "")
    assert record.url == URL
    assert record.name == ""
    assert record.price is None
    assert record.total_area is None


def test_price_helpers():
    assert detect_currency("venta USD 850.000") == "USD"
    assert detect_currency("ARS 1.000") == "ARS"
    assert detect_currency("$ 1.000") == "ARS"
    assert detect_currency("Consultar") is None
    assert extract_price_text("venta USD 850.000") == "850.000"
    assert extract_price_text("alquiler 450.000") == "450.000"
    assert split_location("Calle 1, Nuñez, Capital Federal") == ("Calle 1", "Nuñez")
    assert split_location("Sólo calle") == ("Sólo calle", "")


def test_fetch_listing_success(fake_fetcher_cls, listing_html):
    fetcher = fake_fetcher_cls({URL: (200, listing_html())})
    outcome = asyncio.run(fetch_listing(URL, fetcher))

    assert isinstance(outcome, FetchSuccess)
    assert outcome.ok
    assert outcome.record.price == 850000
    assert fetcher.calls == [URL]


def test_fetch_listing_non_success_status(fake_fetcher_cls):
    fetcher = fake_fetcher_cls({URL: (403, "<html>blocked</html>")})
    outcome = asyncio.run(fetch_listing(URL, fetcher))

    assert isinstance(outcome, FetchFailure)
    assert not outcome.ok
    assert outcome.url == URL
    assert "403" in outcome.reason


def test_fetch_listing_fetch_error(fake_fetcher_cls):
    fetcher = fake_fetcher_cls({URL: FetchError(URL, "Timeout loading page")})
    outcome = asyncio.run(fetch_listing(URL, fetcher))

    assert isinstance(outcome, FetchFailure)
    assert outcome.reason == "Timeout loading page"


def test_fetch_listing_unexpected_error_is_contained(fake_fetcher_cls):
    fetcher = fake_fetcher_cls({URL: RuntimeError("browser crashed")})
    outcome = asyncio.run(fetch_listing(URL, fetcher))

    assert isinstance(outcome, FetchFailure)
    assert "browser crashed" in outcome.reason
    # No retry inside the fetcher
    assert fetcher.calls == [URL]


def test_price_per_m2_tracks_price_and_area():
    record = ListingRecord(url=URL, price=100000, currency="USD", total_area=50)
    assert record.price_per_m2 == 2000

    record.price = 150000
    assert record.price_per_m2 == 3000
    record.total_area = None
    assert record.price_per_m2 is None
    assert record.to_dict()["price_per_m2"] is None

    record.total_area = 100
    assert record.to_dict()["price_per_m2"] == 1500
    assert ListingRecord.from_dict(record.to_dict()) == record


def test_unknown_currency_is_dropped():
    assert ListingRecord(url=URL, currency="EUR").currency is None
