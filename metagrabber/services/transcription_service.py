"""
Transcription service: chunked transcription with API key rotation.

This module handles:
- The per-segment retry state machine (Selecting -> Calling -> Succeeded /
  RetryableFailure / FatalFailure) over the shared KeyPool
- Ordered reassembly of segment texts into one transcript
- The end-to-end job: fetch -> (maybe) chunk -> transcribe, with the job
  workspace removed when the job ends

A key reserved for a provider call is always released when the call returns,
whatever the outcome.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from metagrabber.config import Settings, get_settings
from metagrabber.errors import (
    JobFailedError,
    NoKeyAvailableError,
    ProviderError,
    RetriesExhaustedError,
    TranscriptionError,
)
from metagrabber.services.cache_service import cleanup_cache, job_workspace, new_job_id
from metagrabber.services.chunk_service import AudioSegment, Chunker
from metagrabber.services.key_pool import Credential, KeyPool
from metagrabber.services.media_service import MediaFetcher
from metagrabber.services.whisper_client import WhisperClient, is_retryable_status
from metagrabber.utils.logging_utils import get_job_logger

logger = logging.getLogger(__name__)


class AttemptState:
    SELECTING = "selecting"
    CALLING = "calling"
    SUCCEEDED = "succeeded"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


@dataclass
class TranscriptionAttempt:
    """One provider call. Kept only for the duration of a segment's retry loop."""

    credential: Credential
    segment_index: int
    outcome: str
    error: Optional[str] = None
    status: Optional[int] = None


@dataclass
class TranscriptionResult:
    text: str
    language: Optional[str]
    segment_count: int
    job_id: str
    attempts: List[TranscriptionAttempt] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "language": self.language,
            "segment_count": self.segment_count,
            "job_id": self.job_id,
        }


class TranscriptionOrchestrator:
    """Drive provider calls for a job's segments through the shared key pool."""

    def __init__(self, key_pool: KeyPool,
                 client: Optional[WhisperClient] = None,
                 fetcher: Optional[MediaFetcher] = None,
                 chunker: Optional[Chunker] = None,
                 settings: Optional[Settings] = None,
                 max_attempts: Optional[int] = None,
                 backoff_sec: Optional[float] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.settings = settings or get_settings()
        self.key_pool = key_pool
        self.client = client or WhisperClient(self.settings)
        self.fetcher = fetcher or MediaFetcher(self.settings)
        self.chunker = chunker or Chunker(self.settings)
        self.max_attempts = self.settings.max_transcribe_attempts if max_attempts is None else max_attempts
        self.backoff_sec = self.settings.retry_backoff_sec if backoff_sec is None else backoff_sec
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_sec < 0:
            raise ValueError("backoff_sec must not be negative")
        self._sleep = sleep

    # -- single segment -------------------------------------------------

    def transcribe_segment(self, segment: AudioSegment,
                           language: Optional[str] = None,
                           prompt: Optional[str] = None,
                           attempts: Optional[List[TranscriptionAttempt]] = None,
                           log: Optional[logging.LoggerAdapter] = None) -> dict:
        """
        Transcribe one segment, rotating keys on retryable failures.

        Returns:
            Dict with "text" and "language"

        Raises:
            NoKeyAvailableError: no key could be reserved
            RetriesExhaustedError: the attempt ceiling was reached on retryable failures
            ProviderError: the provider rejected the call with a non-retryable status
        """
        log = log or logger
        attempts = attempts if attempts is not None else []
        tried: set = set()
        last_error: Optional[ProviderError] = None
        attempt_no = 0
        state = AttemptState.SELECTING

        while True:
            if state == AttemptState.SELECTING:
                if attempt_no >= self.max_attempts:
                    raise RetriesExhaustedError(
                        f"Transcription failed after {attempt_no} attempts: {last_error.message}",
                        attempts=attempt_no,
                        last_status=last_error.provider_status,
                    )
                key = self._select_key(tried)
                if key is None:
                    if last_error is not None:
                        raise NoKeyAvailableError(
                            f"No available API key to retry with (last error: {last_error.message})"
                        )
                    raise NoKeyAvailableError("No available API key - add a key or try again later")
                tried.add(key.value)
                attempt_no += 1
                state = AttemptState.CALLING

            elif state == AttemptState.CALLING:
                log.info("Segment %d: attempt %d/%d with key %s",
                         segment.index, attempt_no, self.max_attempts, key.masked)
                try:
                    result = self.client.transcribe(segment.path, key.value, language, prompt)
                except ProviderError as e:
                    last_error = e
                    retryable = is_retryable_status(e.provider_status)
                    state = AttemptState.RETRYABLE_FAILURE if retryable else AttemptState.FATAL_FAILURE
                    attempts.append(TranscriptionAttempt(key, segment.index, state,
                                                         error=e.message, status=e.provider_status))
                    log.warning("Segment %d: key %s failed (HTTP %s): %s",
                                segment.index, key.masked, e.provider_status, e.message)
                else:
                    attempts.append(TranscriptionAttempt(key, segment.index, AttemptState.SUCCEEDED))
                    return result
                finally:
                    self.key_pool.release(key)

            elif state == AttemptState.RETRYABLE_FAILURE:
                if attempt_no < self.max_attempts and self.backoff_sec > 0:
                    self._sleep(self.backoff_sec * (2 ** (attempt_no - 1)))
                state = AttemptState.SELECTING

            else:  # FATAL_FAILURE
                raise last_error

    def _select_key(self, tried: set) -> Optional[Credential]:
        """Reserve an untried key; once every key has been tried, any available key."""
        key = self.key_pool.acquire(exclude=tried)
        if key is None and tried and tried.issuperset(self.key_pool.key_values()):
            key = self.key_pool.acquire()
        return key

    # -- many segments --------------------------------------------------

    def transcribe_segments(self, segments: List[AudioSegment],
                            language: Optional[str] = None,
                            prompt: Optional[str] = None,
                            attempts: Optional[List[TranscriptionAttempt]] = None,
                            log: Optional[logging.LoggerAdapter] = None) -> dict:
        """
        Transcribe segments in order, one provider call at a time.

        Returns:
            Dict with the joined "text" and the first reported "language"
        """
        texts = []
        detected_language = None
        for segment in segments:
            result = self.transcribe_segment(segment, language, prompt, attempts, log)
            texts.append((result.get("text") or "").strip())
            detected_language = detected_language or result.get("language")
        return {
            "text": " ".join(t for t in texts if t).strip(),
            "language": detected_language,
        }

    # -- whole job ------------------------------------------------------

    def run_job(self, source_url: str,
                language: Optional[str] = None,
                prompt: Optional[str] = None,
                job_id: Optional[str] = None) -> TranscriptionResult:
        """
        Fetch, chunk if needed, and transcribe one media URL.

        The job workspace (downloaded media, audio, chunks) is deleted when this
        returns or raises.

        Raises:
            TranscriptionError: every failure; errors outside the taxonomy come
                back as JobFailedError naming the stage that raised them
        """
        job_id = job_id or new_job_id()
        log = get_job_logger(job_id)
        started = time.time()

        cleanup_cache(self.settings.cache_dir, self.settings.cache_ttl_hours)

        log.info("Transcription job started: %s", source_url)
        stage = "Fetch"
        with job_workspace(job_id, self.settings.cache_dir) as workspace:
            try:
                audio_path = self.fetcher.fetch(source_url, workspace, log)
                stage = "Chunking"
                segments = self.chunker.chunk(audio_path, job_id, workspace,
                                              self.settings.max_upload_bytes, log)
                stage = "Transcription"
                attempts: List[TranscriptionAttempt] = []
                result = self.transcribe_segments(segments, language, prompt, attempts, log)
            except TranscriptionError as e:
                log.error("Transcription job failed: %s", e.message)
                raise
            except Exception as e:
                log.exception("%s stage failed", stage)
                raise JobFailedError(f"{stage} failed: {str(e)}") from e

        log.info("Transcription job finished in %.1fs (%d segment(s), %d chars)",
                 time.time() - started, len(segments), len(result["text"]))

        return TranscriptionResult(
            text=result["text"],
            language=result["language"] or language,
            segment_count=len(segments),
            job_id=job_id,
            attempts=attempts,
        )
