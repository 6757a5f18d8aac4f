"""
Routers package for API endpoints.

This package contains all API route handlers organized by functionality.
"""

from .extract import router as extract_router
from .keys import router as keys_router
from .transcription import router as transcription_router

__all__ = [
    "extract_router",
    "keys_router",
    "transcription_router",
]
