"""
Transcription router for chunked, key-rotating audio transcription.

Jobs run the blocking pipeline (download, ffmpeg, provider calls) in a worker
thread. A semaphore bounds how many jobs run at once; the KeyPool arbitrates
provider keys between them.
"""

import asyncio

from fastapi import APIRouter, Body, Depends

from metagrabber.dependencies import get_orchestrator, get_transcription_semaphore, verify_api_key
from metagrabber.errors import JobFailedError, TranscriptionError
from metagrabber.models import (
    BatchTranscribeRequest,
    BatchTranscribeResponse,
    BatchTranscribeResult,
    TranscribeRequest,
    TranscribeResponse,
)
from metagrabber.services.transcription_service import TranscriptionOrchestrator


router = APIRouter(prefix="/api", tags=["Transcription"])


async def _run_job(orchestrator: TranscriptionOrchestrator, semaphore: asyncio.Semaphore,
                   job: TranscribeRequest):
    async with semaphore:
        try:
            return await asyncio.to_thread(
                orchestrator.run_job, job.video_url.strip(), job.language, job.prompt
            )
        except TranscriptionError:
            raise
        except Exception as e:
            raise JobFailedError(f"Transcription failed: {str(e)}") from e


@router.post("/transcribe")
async def transcribe(
    request: TranscribeRequest = Body(...),
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
    semaphore: asyncio.Semaphore = Depends(get_transcription_semaphore),
    _: bool = Depends(verify_api_key)
) -> TranscribeResponse:
    """
    Transcribe the audio of a video URL.

    Workflow:
    1. POST /api/extract -> get video_url
    2. POST /api/transcribe -> get transcript text

    Audio over the upload ceiling is split into 10-minute chunks; each chunk
    is sent with an available API key and retried with another key on rate
    limits or provider outages.

    Note: at most MAX_CONCURRENT_TRANSCRIPTIONS jobs run at once. Additional
    requests wait in queue.
    """
    result = await _run_job(orchestrator, semaphore, request)
    return TranscribeResponse(**result.to_dict())


@router.post("/transcribe/batch")
async def transcribe_batch(
    request: BatchTranscribeRequest = Body(...),
    orchestrator: TranscriptionOrchestrator = Depends(get_orchestrator),
    semaphore: asyncio.Semaphore = Depends(get_transcription_semaphore),
    _: bool = Depends(verify_api_key)
) -> BatchTranscribeResponse:
    """
    Transcribe several videos concurrently.

    Each job succeeds or fails on its own; a job can fail fast with "no
    available key" while other jobs hold every key.
    """
    outcomes = await asyncio.gather(
        *(_run_job(orchestrator, semaphore, job) for job in request.jobs),
        return_exceptions=True
    )

    results = []
    for job, outcome in zip(request.jobs, outcomes):
        if isinstance(outcome, TranscriptionError):
            results.append(BatchTranscribeResult(video_url=job.video_url, success=False,
                                                 error=outcome.message))
        else:
            results.append(BatchTranscribeResult(video_url=job.video_url, success=True,
                                                 **outcome.to_dict()))

    successful = sum(1 for r in results if r.success)
    return BatchTranscribeResponse(
        total=len(results),
        successful=successful,
        failed=len(results) - successful,
        results=results,
    )
