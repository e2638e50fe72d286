"""
Utility functions for text processing, number parsing, pacing and logging.
"""
import asyncio
import logging
import math
import random
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional


# Pauses are expressed in seconds
DelayFunc = Callable[[], Awaitable[None]]


def init_logger(
    name: str = "zpscraper",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "zpscraper.log"
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:  # Create file handler only if log_file is provided
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def clean_text(s: Optional[str]) -> str:
    """Clean and normalize text by removing extra whitespace."""
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def parse_number(text: Any) -> Optional[float]:
    """
    Parse a locale-formatted number out of free text.

    Everything except digits, dots and commas is dropped, dots are treated
    as thousands separators and commas as the decimal mark, so
    "USD 250.000" -> 250000.0 and "1,5 m²" -> 1.5. Returns None when
    nothing numeric is left or the remainder is not a valid number.
    """
    if text is None:
        return None
    if not isinstance(text, str):
        text = str(text)

    cleaned = re.sub(r"[^\d.,]", "", text)
    if not cleaned:
        return None

    normalized = cleaned.replace(".", "").replace(",", ".")
    try:
        value = float(normalized)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def to_int(value: Optional[float]) -> Optional[int]:
    """Truncate a parsed number to int, keeping None."""
    if value is None:
        return None
    return int(value)


def derive_price_per_area(price: Optional[float], total_area: Optional[float]) -> Optional[int]:
    """Price per square metre, rounded half-up; None unless both values are usable."""
    if price is None or total_area is None:
        return None
    if total_area <= 0:
        return None
    return int(math.floor(price / total_area + 0.5))


def random_delay(min_s: float, max_s: float) -> DelayFunc:
    """Build a coroutine function that sleeps a random interval in [min_s, max_s]."""
    async def _sleep() -> None:
        await asyncio.sleep(random.uniform(min_s, max_s))
    return _sleep


async def no_delay() -> None:
    """Pacing stub that never waits."""
    return None
