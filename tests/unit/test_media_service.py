"""
Unit tests for media fetching, probing and the Whisper client.

This module tests:
- metagrabber/services/media_service.py
- metagrabber/services/ffmpeg_service.py
- metagrabber/services/whisper_client.py
"""

import json
import os
import subprocess

import pytest
import requests
from unittest.mock import patch, MagicMock

from metagrabber.errors import (
    AudioExtractionError,
    DownloadError,
    DownloadTooSmallError,
    MediaProbeError,
    NoAudioTrackError,
    ProviderError,
)
from metagrabber.services.ffmpeg_service import (
    TIMEOUT_RETURN_CODE,
    MediaInfo,
    is_no_audio_error,
    probe_media,
    run_ffmpeg,
)
from metagrabber.services.media_service import MediaFetcher
from metagrabber.services.whisper_client import WhisperClient, is_retryable_status


def mock_stream_response(status_code=200, chunks=(b"\x00" * 5000,)):
    response = MagicMock()
    response.status_code = status_code
    response.iter_content.return_value = list(chunks)
    response.__enter__.return_value = response
    return response


def fake_ffmpeg(args, timeout=600):
    with open(args[-1], "wb") as f:
        f.write(b"\xff\xfb" * 100)
    return "", "", 0


class TestDownload:
    """Test progressive media download."""

    def test_download_writes_file(self, settings, tmp_path, video_url):
        path = str(tmp_path / "source.media")
        with patch("requests.get", return_value=mock_stream_response()) as mock_get:
            size = MediaFetcher(settings).download_file(video_url, path)

        assert size == 5000
        headers = mock_get.call_args.kwargs["headers"]
        assert headers["Referer"] == "https://www.facebook.com/"
        assert mock_get.call_args.kwargs["stream"] is True

    def test_download_too_small(self, settings, tmp_path, video_url):
        path = str(tmp_path / "source.media")
        response = mock_stream_response(chunks=(b"<html>expired</html>",))
        with patch("requests.get", return_value=response):
            with pytest.raises(DownloadTooSmallError) as exc_info:
                MediaFetcher(settings).download_file(video_url, path)

        assert exc_info.value.status_code == 422

    def test_download_http_error(self, settings, tmp_path, video_url):
        with patch("requests.get", return_value=mock_stream_response(status_code=403)):
            with pytest.raises(DownloadError) as exc_info:
                MediaFetcher(settings).download_file(video_url, str(tmp_path / "source.media"))

        assert "HTTP 403" in exc_info.value.message

    def test_download_timeout(self, settings, tmp_path, video_url):
        with patch("requests.get", side_effect=requests.exceptions.Timeout()):
            with pytest.raises(DownloadError):
                MediaFetcher(settings).download_file(video_url, str(tmp_path / "source.media"))


class TestFetch:
    """Test the progressive and live fetch paths."""

    @pytest.mark.parametrize("duration, expected", [(120.0, "128k"), (600.0, "128k"), (601.0, "64k")])
    def test_select_bitrate(self, settings, duration, expected):
        assert MediaFetcher(settings).select_bitrate(duration) == expected

    def test_progressive_path(self, settings, tmp_path, video_url):
        fetcher = MediaFetcher(settings)
        with patch.object(fetcher, "download_file", return_value=5000), \
             patch("metagrabber.services.media_service.probe_media",
                   return_value=MediaInfo(duration=1800.0, has_audio=True, has_video=True)), \
             patch("metagrabber.services.media_service.run_ffmpeg", side_effect=fake_ffmpeg) as mock_ffmpeg:
            audio_path = fetcher.fetch(video_url, str(tmp_path))

        assert audio_path == os.path.join(str(tmp_path), "audio.mp3")
        args = mock_ffmpeg.call_args[0][0]
        assert args[args.index("-b:a") + 1] == "64k"
        assert args[args.index("-ar") + 1] == "16000"
        assert args[args.index("-ac") + 1] == "1"

    def test_no_audio_track_from_probe(self, settings, tmp_path, video_url):
        fetcher = MediaFetcher(settings)
        with patch.object(fetcher, "download_file", return_value=5000), \
             patch("metagrabber.services.media_service.probe_media",
                   return_value=MediaInfo(duration=30.0, has_audio=False, has_video=True)), \
             patch("metagrabber.services.media_service.run_ffmpeg") as mock_ffmpeg:
            with pytest.raises(NoAudioTrackError):
                fetcher.fetch(video_url, str(tmp_path))

        mock_ffmpeg.assert_not_called()

    def test_live_path_skips_download(self, settings, tmp_path, hls_url):
        fetcher = MediaFetcher(settings)
        with patch.object(fetcher, "download_file") as mock_download, \
             patch("metagrabber.services.media_service.run_ffmpeg", side_effect=fake_ffmpeg) as mock_ffmpeg:
            fetcher.fetch(hls_url, str(tmp_path))

        mock_download.assert_not_called()
        args = mock_ffmpeg.call_args[0][0]
        assert args[args.index("-i") + 1] == hls_url
        assert args[args.index("-t") + 1] == "600"
        assert args[args.index("-b:a") + 1] == "64k"
        assert "-user_agent" in args
        assert "Referer: https://www.youtube.com/" in args[args.index("-headers") + 1]
        assert mock_ffmpeg.call_args.kwargs["timeout"] == 720

    def test_live_no_audio(self, settings, tmp_path, hls_url):
        stderr = "Output file #0 does not contain any stream"
        with patch("metagrabber.services.media_service.run_ffmpeg", return_value=("", stderr, 1)):
            with pytest.raises(NoAudioTrackError):
                MediaFetcher(settings).fetch(hls_url, str(tmp_path))

    def test_extraction_timeout(self, settings, tmp_path, hls_url):
        with patch("metagrabber.services.media_service.run_ffmpeg",
                   return_value=("", "Command timed out", TIMEOUT_RETURN_CODE)):
            with pytest.raises(AudioExtractionError) as exc_info:
                MediaFetcher(settings).fetch(hls_url, str(tmp_path))

        assert "timed out" in exc_info.value.message

    def test_extraction_failure(self, settings, tmp_path):
        with patch("metagrabber.services.media_service.run_ffmpeg",
                   return_value=("", "Invalid data found when processing input", 1)):
            with pytest.raises(AudioExtractionError) as exc_info:
                MediaFetcher(settings).extract_audio("in.mp4", str(tmp_path / "out.mp3"), "128k")

        assert "exit code 1" in exc_info.value.message


class TestFfmpegService:
    """Test ffprobe parsing and subprocess handling."""

    def _probe_output(self, streams, duration="61.5"):
        return json.dumps({"streams": streams, "format": {"duration": duration}})

    def test_probe_media(self):
        stdout = self._probe_output([{"codec_type": "video"}, {"codec_type": "audio"}])
        with patch("metagrabber.services.ffmpeg_service.run_ffprobe", return_value=(stdout, "", 0)):
            info = probe_media("video.mp4")

        assert info == MediaInfo(duration=61.5, has_audio=True, has_video=True)

    def test_probe_media_duration_from_stream(self):
        stdout = self._probe_output([{"codec_type": "audio", "duration": "12.0"}], duration="N/A")
        with patch("metagrabber.services.ffmpeg_service.run_ffprobe", return_value=(stdout, "", 0)):
            assert probe_media("audio.mp3").duration == 12.0

    def test_probe_media_failure(self):
        with patch("metagrabber.services.ffmpeg_service.run_ffprobe",
                   return_value=("", "moov atom not found", 1)):
            with pytest.raises(MediaProbeError):
                probe_media("broken.mp4")

    def test_probe_media_no_streams(self):
        with patch("metagrabber.services.ffmpeg_service.run_ffprobe",
                   return_value=(self._probe_output([]), "", 0)):
            with pytest.raises(MediaProbeError):
                probe_media("empty.mp4")

    def test_run_ffmpeg_timeout(self):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=5)):
            _, stderr, code = run_ffmpeg(["-version"], timeout=5)

        assert code == TIMEOUT_RETURN_CODE
        assert "timed out" in stderr

    def test_run_ffmpeg_missing_binary(self):
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            _, _, code = run_ffmpeg(["-version"])

        assert code == 127

    @pytest.mark.parametrize("stderr, expected", [
        ("Output file #0 does not contain any stream", True),
        ("Stream map '0:a' matches no streams.", True),
        ("Invalid data found when processing input", False),
        ("", False),
    ])
    def test_is_no_audio_error(self, stderr, expected):
        assert is_no_audio_error(stderr) is expected


class TestWhisperClient:
    """Test the provider client with mocked HTTP."""

    def _response(self, status_code, payload=None, text=""):
        response = MagicMock()
        response.status_code = status_code
        response.text = text
        if payload is None:
            response.json.side_effect = ValueError("no json")
        else:
            response.json.return_value = payload
        return response

    def test_transcribe_success(self, settings, audio_file):
        with patch("requests.post", return_value=self._response(200, {"text": "hello world"})) as mock_post:
            result = WhisperClient(settings).transcribe(audio_file, "sk-abc", language="en")

        assert result == {"text": "hello world", "language": None}
        kwargs = mock_post.call_args.kwargs
        assert mock_post.call_args[0][0] == "https://api.openai.com/v1/audio/transcriptions"
        assert kwargs["headers"] == {"Authorization": "Bearer sk-abc"}
        assert kwargs["data"] == {"model": "whisper-1", "response_format": "json", "language": "en"}
        assert kwargs["files"]["file"][0] == "audio.mp3"

    def test_language_omitted_for_auto_detect(self, settings, audio_file):
        with patch("requests.post", return_value=self._response(200, {"text": "hola"})) as mock_post:
            WhisperClient(settings).transcribe(audio_file, "sk-abc")

        assert "language" not in mock_post.call_args.kwargs["data"]
        assert "prompt" not in mock_post.call_args.kwargs["data"]

    def test_error_status(self, settings, audio_file):
        payload = {"error": {"message": "Rate limit reached for requests"}}
        with patch("requests.post", return_value=self._response(429, payload)):
            with pytest.raises(ProviderError) as exc_info:
                WhisperClient(settings).transcribe(audio_file, "sk-abc")

        assert exc_info.value.provider_status == 429
        assert exc_info.value.message == "Rate limit reached for requests"

    def test_error_status_plain_text(self, settings, audio_file):
        with patch("requests.post", return_value=self._response(502, text="Bad Gateway")):
            with pytest.raises(ProviderError) as exc_info:
                WhisperClient(settings).transcribe(audio_file, "sk-abc")

        assert exc_info.value.message == "Bad Gateway"

    def test_connection_error_is_retryable(self, settings, audio_file):
        with patch("requests.post", side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(ProviderError) as exc_info:
                WhisperClient(settings).transcribe(audio_file, "sk-abc")

        assert is_retryable_status(exc_info.value.provider_status)

    @pytest.mark.parametrize("error", [
        requests.exceptions.ChunkedEncodingError("connection reset mid-body"),
        requests.exceptions.ContentDecodingError("bad gzip"),
        requests.exceptions.InvalidURL("bad base url"),
        requests.exceptions.TooManyRedirects("redirect loop"),
    ])
    def test_other_request_failures_are_retryable(self, settings, audio_file, error):
        with patch("requests.post", side_effect=error):
            with pytest.raises(ProviderError) as exc_info:
                WhisperClient(settings).transcribe(audio_file, "sk-abc")

        assert exc_info.value.provider_status == 503
        assert str(error) in exc_info.value.message

    @pytest.mark.parametrize("status, expected", [
        (429, True), (500, True), (503, True), (400, False), (401, False), (None, False),
    ])
    def test_is_retryable_status(self, status, expected):
        assert is_retryable_status(status) is expected
