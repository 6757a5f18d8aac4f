"""
Media service: turn a media URL into a local audio track for transcription.

Two paths:
- Progressive: stream the file to the job workspace, probe it, then extract
  mono 16kHz MP3 at a bitrate chosen from the media duration.
- Live-segmented (HLS/DASH playlist): ffmpeg reads the playlist directly with a
  hard wall-clock cap, always at the low bitrate because the total length is
  unknown in advance.
"""

import os
import logging
from typing import Optional

import requests

from metagrabber.config import Settings, get_settings
from metagrabber.errors import (
    AudioExtractionError,
    DownloadError,
    DownloadTooSmallError,
    NoAudioTrackError,
)
from metagrabber.services.ffmpeg_service import (
    TIMEOUT_RETURN_CODE,
    is_no_audio_error,
    probe_media,
    run_ffmpeg,
)
from metagrabber.utils.platform_utils import build_media_headers, is_live_stream_url

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_BYTES = 1024 * 1024
CONNECT_TIMEOUT = 30
SAMPLE_RATE = 16000


class MediaFetcher:
    """Produce a local audio file from a source URL inside a job workspace."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def fetch(self, source_url: str, workspace: str, log: Optional[logging.LoggerAdapter] = None) -> str:
        """
        Fetch source_url and return the path of the extracted audio file.

        Raises:
            DownloadError / DownloadTooSmallError: progressive download failed
            NoAudioTrackError: the media has no audio stream
            AudioExtractionError: ffmpeg failed for any other reason
        """
        log = log or logger
        audio_path = os.path.join(workspace, "audio.mp3")

        if is_live_stream_url(source_url):
            log.info("Live playlist detected - extracting audio directly (cap %ss)",
                     self.settings.live_capture_max_sec)
            self.extract_audio_from_stream(source_url, audio_path)
        else:
            video_path = os.path.join(workspace, "source.media")
            log.info("Downloading media")
            size = self.download_file(source_url, video_path)
            log.info("Downloaded %d bytes", size)

            info = probe_media(video_path)
            if not info.has_audio:
                raise NoAudioTrackError("The video has no audio track to transcribe")

            bitrate = self.select_bitrate(info.duration)
            log.info("Extracting audio (duration=%.1fs, bitrate=%s)", info.duration, bitrate)
            self.extract_audio(video_path, audio_path, bitrate)

        log.info("Audio ready: %d bytes", os.path.getsize(audio_path))
        return audio_path

    def select_bitrate(self, duration: float) -> str:
        """Lower bitrate for long media to keep the audio file small."""
        if duration > self.settings.long_media_threshold_sec:
            return self.settings.low_bitrate
        return self.settings.high_bitrate

    def download_file(self, url: str, path: str) -> int:
        """
        Stream url to path. Returns the number of bytes written.

        Raises:
            DownloadError: HTTP error status or network failure
            DownloadTooSmallError: The file is too small to be media (likely an error page)
        """
        try:
            with requests.get(
                url,
                headers=build_media_headers(url),
                stream=True,
                timeout=(CONNECT_TIMEOUT, self.settings.download_timeout)
            ) as response:
                if response.status_code != 200:
                    raise DownloadError(f"Media download failed (HTTP {response.status_code})")
                with open(path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                        if chunk:
                            f.write(chunk)
        except requests.exceptions.Timeout:
            raise DownloadError("Media download timed out")
        except requests.exceptions.RequestException as e:
            raise DownloadError(f"Media download failed: {str(e)}")

        size = os.path.getsize(path)
        if size < self.settings.min_download_bytes:
            raise DownloadTooSmallError(
                f"Downloaded file is too small ({size} bytes) - check that the video URL is valid"
            )
        return size

    def extract_audio(self, video_path: str, audio_path: str, bitrate: str) -> None:
        """Demux a local media file to mono 16kHz MP3."""
        args = [
            '-y',
            '-i', video_path,
            '-vn',
            '-acodec', 'libmp3lame',
            '-b:a', bitrate,
            '-ac', '1',
            '-ar', str(SAMPLE_RATE),
            audio_path
        ]
        _, stderr, code = run_ffmpeg(args, timeout=self.settings.download_timeout)
        self._check_extraction(code, stderr, audio_path)

    def extract_audio_from_stream(self, stream_url: str, audio_path: str) -> None:
        """Capture audio straight from a playlist URL, capped at LIVE_CAPTURE_MAX_SEC."""
        cap = self.settings.live_capture_max_sec
        args = ['-y'] + self._header_args(stream_url) + [
            '-i', stream_url,
            '-vn',
            '-acodec', 'libmp3lame',
            '-b:a', self.settings.low_bitrate,
            '-ac', '1',
            '-ar', str(SAMPLE_RATE),
            '-t', str(cap),
            audio_path
        ]
        # ffmpeg stops itself at -t; the subprocess timeout is the backstop
        _, stderr, code = run_ffmpeg(args, timeout=cap + 120)
        self._check_extraction(code, stderr, audio_path)

    @staticmethod
    def _header_args(url: str) -> list:
        headers = build_media_headers(url)
        args = ['-user_agent', headers.pop("User-Agent")]
        if headers:
            args += ['-headers', ''.join(f"{k}: {v}\r\n" for k, v in headers.items())]
        return args

    @staticmethod
    def _check_extraction(code: int, stderr: str, audio_path: str) -> None:
        if code == 0 and os.path.exists(audio_path) and os.path.getsize(audio_path) > 0:
            return
        if code == TIMEOUT_RETURN_CODE:
            raise AudioExtractionError("Audio extraction timed out")
        if is_no_audio_error(stderr):
            raise NoAudioTrackError("The video has no audio track to transcribe")
        if code == 0:
            raise AudioExtractionError("Audio extraction produced no output")
        raise AudioExtractionError(
            f"Audio extraction failed (exit code {code}): {(stderr or '').strip()[-300:]}"
        )
