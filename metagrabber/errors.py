"""
Error taxonomy for the transcription pipeline.

Every failure raised by the key pool, media fetcher, chunker or orchestrator is a
TranscriptionError subclass carrying a human-readable message and the HTTP status
the route layer should answer with.
"""

from typing import Optional


class TranscriptionError(Exception):
    """Base class for all pipeline failures."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Key pool validation

class InvalidKeyError(TranscriptionError):
    status_code = 400


class DuplicateKeyError(TranscriptionError):
    status_code = 409


class IndexOutOfRangeError(TranscriptionError):
    status_code = 404


class KeyInUseError(TranscriptionError):
    status_code = 409


class KeyStoreError(TranscriptionError):
    status_code = 500


# Key exhaustion

class NoKeyAvailableError(TranscriptionError):
    """Every key is in use, or the pool is empty."""

    status_code = 503


class RetriesExhaustedError(NoKeyAvailableError):
    """The attempt ceiling was reached on retryable failures."""

    def __init__(self, message: str, attempts: int, last_status: Optional[int] = None):
        self.attempts = attempts
        self.last_status = last_status
        super().__init__(message)


# Provider

class ProviderError(TranscriptionError):
    """The transcription provider rejected a call."""

    status_code = 502

    def __init__(self, message: str, provider_status: Optional[int] = None):
        self.provider_status = provider_status
        super().__init__(message)


# Media

class DownloadError(TranscriptionError):
    status_code = 502


class DownloadTooSmallError(DownloadError):
    status_code = 422


class MediaProbeError(TranscriptionError):
    status_code = 422


class NoAudioTrackError(TranscriptionError):
    status_code = 422


class AudioExtractionError(TranscriptionError):
    status_code = 500


class ChunkingError(TranscriptionError):
    status_code = 500


class ResolveError(TranscriptionError):
    status_code = 404


# Anything else a job stage raised, wrapped with the stage name

class JobFailedError(TranscriptionError):
    status_code = 500
