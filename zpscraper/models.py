"""
Data models for the Zonaprop scraper.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union

from .utils import derive_price_per_area


CURRENCIES = ("USD", "ARS")


@dataclass
class ListingRecord:
    """One scraped listing with all extracted data."""

    url: str
    name: str = ""
    address: str = ""
    neighborhood: str = ""
    image_url: Optional[str] = None

    # Surface in m²
    covered_area: Optional[float] = None
    total_area: Optional[float] = None

    parking: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None

    # Parsed price data
    price: Optional[float] = None
    currency: Optional[str] = None
    expenses: Optional[float] = None

    def __post_init__(self):
        if self.currency not in CURRENCIES:
            self.currency = None

    @property
    def price_per_m2(self) -> Optional[int]:
        """Derived from price and total_area on every access, never read from the page."""
        return derive_price_per_area(self.price, self.total_area)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["price_per_m2"] = self.price_per_m2
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListingRecord":
        known = {k: data.get(k) for k in (
            "url", "name", "address", "neighborhood", "image_url",
            "covered_area", "total_area", "parking", "bedrooms", "bathrooms",
            "price", "currency", "expenses",
        ) if k in data}
        return cls(**known)


@dataclass
class FetchSuccess:
    record: ListingRecord
    ok: ClassVar[bool] = True

    @property
    def url(self) -> str:
        return self.record.url


@dataclass
class FetchFailure:
    url: str
    reason: str
    ok: ClassVar[bool] = False


FetchOutcome = Union[FetchSuccess, FetchFailure]


@dataclass
class DiscoveryResult:
    """
    Listing URLs found for one search query.

    `total_estimate` is whatever the results header claims and is kept
    separate from `len(urls)`: a large gap between the two usually means
    the site truncated the results for an automated client.
    """
    success: bool
    urls: List[str] = field(default_factory=list)
    total_estimate: int = 0
    pages_visited: int = 0
    error: Optional[str] = None
    blocked: bool = False


# Progress events. `type` values match the SSE protocol consumed by the web front-end.

@dataclass
class UrlsDiscovered:
    urls: List[str]
    total_estimate: int
    type: ClassVar[str] = "urls"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "urls": list(self.urls),
            "totalFoundInSearch": self.total_estimate,
        }


@dataclass
class ItemStarted:
    index: int
    url: str
    type: ClassVar[str] = "scraping"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "index": self.index, "url": self.url}


@dataclass
class ItemSucceeded:
    index: int
    record: ListingRecord
    type: ClassVar[str] = "property"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "index": self.index, "data": self.record.to_dict()}


@dataclass
class ItemFailed:
    index: int
    url: str
    reason: str
    type: ClassVar[str] = "error_property"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "index": self.index, "url": self.url, "error": self.reason}


@dataclass
class BatchError:
    reason: str
    type: ClassVar[str] = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "error": self.reason}


@dataclass
class Complete:
    total: int
    succeeded: int
    failed: int
    records: List[ListingRecord] = field(default_factory=list)
    failures: List[FetchFailure] = field(default_factory=list)
    type: ClassVar[str] = "complete"

    @property
    def extracted(self) -> int:
        return self.succeeded

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "total": self.total,
            "extracted": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.records],
            "errors": [{"url": f.url, "error": f.reason} for f in self.failures],
        }


ProgressEvent = Union[UrlsDiscovered, ItemStarted, ItemSucceeded, ItemFailed, BatchError, Complete]
