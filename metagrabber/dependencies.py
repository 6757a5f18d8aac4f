"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- API key authentication and verification
- Access to the KeyPool, TranscriptionOrchestrator and job semaphore created at startup
"""

import asyncio

from fastapi import Header, HTTPException, Request

from metagrabber.config import get_settings
from metagrabber.services.key_pool import KeyPool
from metagrabber.services.transcription_service import TranscriptionOrchestrator


def verify_api_key(x_api_key: str = Header(None)) -> bool:
    """
    Dependency to verify API key from request header.
    Raises HTTPException 401 if invalid, 500 if not configured.
    """
    settings = get_settings()
    if not settings.api_key:
        raise HTTPException(status_code=500, detail="API key not configured")
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API Key")
    return True


def get_key_pool(request: Request) -> KeyPool:
    """Return the KeyPool instance created in the application lifespan."""
    return request.app.state.key_pool


def get_orchestrator(request: Request) -> TranscriptionOrchestrator:
    """Return the TranscriptionOrchestrator bound to the application's KeyPool."""
    return request.app.state.orchestrator


def get_transcription_semaphore(request: Request) -> asyncio.Semaphore:
    """Return the semaphore limiting concurrent transcription jobs."""
    return request.app.state.transcription_semaphore
