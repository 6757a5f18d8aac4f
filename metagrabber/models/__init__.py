"""
Models package for API request/response validation.

This package contains Pydantic models used throughout the application
for validating API requests and responses.
"""

from .schemas import (
    ExtractRequest,
    ExtractResponse,
    TranscribeRequest,
    TranscribeResponse,
    BatchTranscribeRequest,
    BatchTranscribeResult,
    BatchTranscribeResponse,
    KeyAddRequest,
    KeyStatusResponse,
    KeyCountResponse,
)

__all__ = [
    "ExtractRequest",
    "ExtractResponse",
    "TranscribeRequest",
    "TranscribeResponse",
    "BatchTranscribeRequest",
    "BatchTranscribeResult",
    "BatchTranscribeResponse",
    "KeyAddRequest",
    "KeyStatusResponse",
    "KeyCountResponse",
]
