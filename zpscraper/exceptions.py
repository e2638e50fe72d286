"""
Exception types raised by the scraper package.
"""


class ScraperError(Exception):
    """Base class for scraper errors."""


class FetchError(ScraperError):
    """The page-fetch capability could not load a URL."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.message = message
