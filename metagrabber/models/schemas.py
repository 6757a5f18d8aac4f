"""
Pydantic models for request/response validation.

This module contains all Pydantic BaseModel schemas used for API request
and response validation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class ExtractRequest(BaseModel):
    """Request model for resolving a platform page URL to a video URL."""
    url: str = Field(..., description="Facebook Ads Library, Instagram, YouTube or Google Ads Transparency URL")


class ExtractResponse(BaseModel):
    """Resolved video: direct media URL plus display metadata."""
    video_url: str
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None
    platform: str
    quality: Optional[str] = None
    video_id: Optional[str] = None


class TranscribeRequest(BaseModel):
    """Request model for one transcription job."""
    video_url: str = Field(..., description="Direct media URL or HLS/DASH playlist URL")
    language: Optional[str] = Field(None, description="ISO-639-1 language code (auto-detect if omitted)")
    prompt: Optional[str] = Field(None, description="Vocabulary hint to bias recognition")


class TranscribeResponse(BaseModel):
    """Transcript of one job."""
    success: bool = True
    text: str
    language: Optional[str] = None
    segment_count: int
    job_id: str


class BatchTranscribeRequest(BaseModel):
    """Request model for several transcription jobs sharing one key pool."""
    jobs: List[TranscribeRequest] = Field(..., description="Jobs to run", min_length=1)


class BatchTranscribeResult(BaseModel):
    """Result for one job of a batch: transcript on success, message on failure."""
    video_url: str
    success: bool
    text: Optional[str] = None
    language: Optional[str] = None
    segment_count: Optional[int] = None
    job_id: Optional[str] = None
    error: Optional[str] = None


class BatchTranscribeResponse(BaseModel):
    total: int
    successful: int
    failed: int
    results: List[BatchTranscribeResult]


class KeyAddRequest(BaseModel):
    key: str = Field(..., description="Provider API key")


class KeyStatusResponse(BaseModel):
    """Pool status with masked keys (never raw values)."""
    total: int
    in_use: int
    available: int
    keys: List[str]


class KeyCountResponse(BaseModel):
    success: bool = True
    count: int
