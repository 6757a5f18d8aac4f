"""
Keys router for managing the provider API key pool.

Keys are only ever returned masked. Every add/remove is persisted before the
response is sent.
"""

from fastapi import APIRouter, Body, Depends

from metagrabber.dependencies import get_key_pool, verify_api_key
from metagrabber.models import KeyAddRequest, KeyCountResponse, KeyStatusResponse
from metagrabber.services.key_pool import KeyPool


router = APIRouter(prefix="/api/keys", tags=["Keys"])


@router.get("")
async def list_keys(
    pool: KeyPool = Depends(get_key_pool),
    _: bool = Depends(verify_api_key)
) -> KeyStatusResponse:
    """Return pool status and masked keys in insertion order (index = position)."""
    status = pool.get_status()
    return KeyStatusResponse(
        total=status["total"],
        in_use=status["in_use"],
        available=status["available"],
        keys=pool.get_masked_keys(),
    )


@router.post("")
async def add_key(
    request: KeyAddRequest = Body(...),
    pool: KeyPool = Depends(get_key_pool),
    _: bool = Depends(verify_api_key)
) -> KeyCountResponse:
    """
    Add a provider API key.

    - 400 if the key is empty
    - 409 if the key is already registered
    """
    return KeyCountResponse(count=pool.add_key(request.key))


@router.delete("/{index}")
async def remove_key(
    index: int,
    pool: KeyPool = Depends(get_key_pool),
    _: bool = Depends(verify_api_key)
) -> KeyCountResponse:
    """
    Remove the key at a position of GET /api/keys.

    - 404 if the index is out of range
    - 409 if the key is reserved by a running transcription
    """
    return KeyCountResponse(count=pool.remove_key(index))
