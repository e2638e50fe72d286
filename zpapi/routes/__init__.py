"""
Route package initialization.
"""
from .extract import router as extract_router
from .saved_searches import router as saved_searches_router

__all__ = ["extract_router", "saved_searches_router"]
