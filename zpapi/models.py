"""
Pydantic models for API request/response serialization.
"""
from typing import List, Optional

from pydantic import BaseModel

from .config import config


class ListingOut(BaseModel):
    """Output model for listing data."""
    url: str
    name: str = ""
    address: str = ""
    neighborhood: str = ""
    image_url: Optional[str] = None
    covered_area: Optional[float] = None
    total_area: Optional[float] = None
    parking: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    expenses: Optional[float] = None
    price_per_m2: Optional[int] = None


class ExtractionError(BaseModel):
    url: str
    error: str


class ExtractRequest(BaseModel):
    """Direct extraction of a handful of listing URLs."""
    urls: List[str]


class ExtractSearchRequest(BaseModel):
    searchUrl: str
    maxProperties: int = 50


class ExtractStreamRequest(BaseModel):
    """
    Either a search URL (discovery only) or a chunk of URLs to extract.
    Field names follow the JSON sent by the browser front-end.
    """
    searchUrl: Optional[str] = None
    urls: Optional[List[str]] = None
    startIndex: int = 0
    limit: int = config.DEFAULT_CHUNK_SIZE
    concurrency: int = config.DEFAULT_CONCURRENCY
    skipImages: bool = False


class ExtractionSummary(BaseModel):
    success: bool = True
    total: int
    extracted: int
    failed: int
    results: List[ListingOut]
    errors: List[ExtractionError]
    totalFoundInSearch: Optional[int] = None


class SavedSearchIn(BaseModel):
    name: str
    url: str


class SavedSearchOut(BaseModel):
    id: str
    name: str
    url: str
    created_at: Optional[str] = None
    last_scraped_at: Optional[str] = None


class ExecutionIn(BaseModel):
    results: List[ListingOut]


class ExecutionOut(BaseModel):
    id: str
    saved_search_id: str
    results_count: int
    results: List[ListingOut]
    created_at: Optional[str] = None
