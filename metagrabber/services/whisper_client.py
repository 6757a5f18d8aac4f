"""
OpenAI Whisper API client.

One call per audio segment. Any non-200 answer is raised as ProviderError
carrying the HTTP status, which the orchestrator uses to decide whether to
retry with another key. Connection failures and timeouts are reported as 503.
"""

import os
from typing import Optional

import requests

from metagrabber.config import Settings, get_settings
from metagrabber.errors import ProviderError

RETRYABLE_STATUS_CODES = {429, 500, 503}


def is_retryable_status(status: Optional[int]) -> bool:
    return status in RETRYABLE_STATUS_CODES


class WhisperClient:
    """Thin wrapper over POST /audio/transcriptions."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def url(self) -> str:
        return f"{self.settings.openai_api_base.rstrip('/')}/audio/transcriptions"

    def transcribe(self, audio_path: str, api_key: str,
                   language: Optional[str] = None, prompt: Optional[str] = None) -> dict:
        """
        Transcribe one audio file.

        Returns:
            Dict with "text" and, when the provider reports it, "language"

        Raises:
            ProviderError: provider rejected the call or could not be reached
        """
        data = {
            "model": self.settings.transcription_model,
            "response_format": "json",
        }
        # Omitting language lets the provider auto-detect it
        if language:
            data["language"] = language
        if prompt:
            data["prompt"] = prompt

        try:
            with open(audio_path, 'rb') as f:
                response = requests.post(
                    self.url,
                    headers={"Authorization": f"Bearer {api_key}"},
                    files={"file": (os.path.basename(audio_path), f, "audio/mpeg")},
                    data=data,
                    timeout=self.settings.transcribe_timeout
                )
        except requests.exceptions.Timeout:
            raise ProviderError(
                f"Transcription request timed out after {self.settings.transcribe_timeout}s",
                provider_status=503
            )
        except requests.exceptions.ConnectionError as e:
            raise ProviderError(f"Transcription service unreachable: {str(e)}", provider_status=503)
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Transcription request failed: {str(e)}", provider_status=503)

        if response.status_code != 200:
            try:
                error_json = response.json()
                error_message = error_json.get('error', {}).get('message') or response.text
            except (ValueError, AttributeError):
                error_message = response.text
            # Provider message is passed through verbatim; the status travels separately
            raise ProviderError(error_message, provider_status=response.status_code)

        try:
            result = response.json()
        except ValueError:
            raise ProviderError("OpenAI API returned an invalid JSON response", provider_status=502)

        return {"text": result.get("text", ""), "language": result.get("language")}
