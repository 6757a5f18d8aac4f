"""
Extract router: resolve a platform page URL to a playable video URL.
"""

import asyncio

from fastapi import APIRouter, Body, Depends

from metagrabber.dependencies import verify_api_key
from metagrabber.models import ExtractRequest, ExtractResponse
from metagrabber.services.resolver_service import resolve_video


router = APIRouter(prefix="/api", tags=["Extract"])


@router.post("/extract")
async def extract_video(
    request: ExtractRequest = Body(...),
    _: bool = Depends(verify_api_key)
) -> ExtractResponse:
    """
    Resolve a Facebook Ads Library, Instagram, YouTube or Google Ads
    Transparency URL to a direct video URL.

    Next step: send the returned video_url to POST /api/transcribe
    """
    result = await asyncio.to_thread(resolve_video, request.url.strip())
    return ExtractResponse(**result)
