"""
API configuration and settings management.
"""
import os

from zpscraper.browser import headless_from_env


class Config:
    """Application configuration."""

    # Database
    DB_PATH: str = os.getenv("ZP_DB", "./data/db/zonaprop.db")

    # API settings
    API_TITLE: str = "Zonaprop Scraper API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Extract Zonaprop listings and stream extraction progress"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Scraping
    HEADLESS: bool = headless_from_env(True)
    ALLOWED_HOST: str = os.getenv("ALLOWED_HOST", "zonaprop.com")
    MAX_URLS_PER_REQUEST: int = int(os.getenv("MAX_URLS_PER_REQUEST", "20"))
    DEFAULT_CONCURRENCY: int = int(os.getenv("DEFAULT_CONCURRENCY", "5"))
    MAX_CONCURRENCY: int = int(os.getenv("MAX_CONCURRENCY", "10"))
    DEFAULT_CHUNK_SIZE: int = 10
    MAX_SEARCH_PROPERTIES: int = 50

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration on startup."""
        if cls.DEFAULT_CONCURRENCY < 1 or cls.MAX_CONCURRENCY < cls.DEFAULT_CONCURRENCY:
            raise ValueError("Invalid concurrency settings")
        db_dir = os.path.dirname(cls.DB_PATH)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)


# Global config instance
config = Config()
