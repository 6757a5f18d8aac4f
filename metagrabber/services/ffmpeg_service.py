"""
FFmpeg service module.

Handles ffmpeg/ffprobe execution. The media tools are treated as black boxes:
callers inspect the exit code and stderr only, and no media parsing happens in
Python.
"""

import json
import re
import subprocess
from dataclasses import dataclass
from typing import Optional, Tuple

from metagrabber.config import get_settings
from metagrabber.errors import MediaProbeError

TIMEOUT_RETURN_CODE = -9
NOT_FOUND_RETURN_CODE = 127

# stderr fragments ffmpeg prints when the input has nothing to map to audio
NO_AUDIO_PATTERNS = [
    r'does not contain any stream',
    r'matches no streams',
    r'Stream map .* matches no streams',
    r'no audio',
]


@dataclass
class MediaInfo:
    """Stream summary reported by ffprobe."""

    duration: float
    has_audio: bool
    has_video: bool


def _run_tool(cmd: list, timeout: int) -> Tuple[str, str, int]:
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout
        )
        return result.stdout, result.stderr, result.returncode

    except subprocess.TimeoutExpired:
        return "", f"Command timed out after {timeout}s", TIMEOUT_RETURN_CODE
    except FileNotFoundError:
        return "", f"{cmd[0]} not found - is it installed?", NOT_FOUND_RETURN_CODE


def run_ffmpeg(args: list, timeout: int = 600) -> Tuple[str, str, int]:
    """
    Run ffmpeg with given arguments.

    Args:
        args: List of ffmpeg arguments (without the binary)
        timeout: Command timeout in seconds

    Returns:
        Tuple of (stdout, stderr, return_code). A timeout returns
        TIMEOUT_RETURN_CODE, a missing binary NOT_FOUND_RETURN_CODE.
    """
    return _run_tool([get_settings().ffmpeg_binary] + args, timeout)


def run_ffprobe(args: list, timeout: int = 60) -> Tuple[str, str, int]:
    """Run ffprobe with given arguments. Same return contract as run_ffmpeg."""
    return _run_tool([get_settings().ffprobe_binary] + args, timeout)


def is_no_audio_error(stderr: str) -> bool:
    """Check ffmpeg stderr for the known "no audio stream" messages."""
    return any(re.search(pattern, stderr or "", re.IGNORECASE) for pattern in NO_AUDIO_PATTERNS)


def probe_media(path: str) -> MediaInfo:
    """
    Probe a media file for its duration and stream types.

    Raises:
        MediaProbeError: If ffprobe fails or reports no streams at all
    """
    stdout, stderr, code = run_ffprobe([
        '-v', 'error',
        '-show_streams',
        '-show_format',
        '-of', 'json',
        path
    ])
    if code != 0:
        raise MediaProbeError(f"Could not read media file: {stderr.strip()[:300] or 'ffprobe failed'}")

    try:
        data = json.loads(stdout or "{}")
    except ValueError:
        raise MediaProbeError("Could not read media file: ffprobe returned invalid JSON")

    streams = data.get("streams", [])
    if not streams:
        raise MediaProbeError("Could not read media file: no streams found")

    codec_types = {s.get("codec_type") for s in streams}
    return MediaInfo(
        duration=_parse_duration(data.get("format", {}).get("duration"), streams),
        has_audio="audio" in codec_types,
        has_video="video" in codec_types,
    )


def get_duration(path: str) -> float:
    """Return media duration in seconds."""
    return probe_media(path).duration


def _parse_duration(format_duration: Optional[str], streams: list) -> float:
    candidates = [format_duration] + [s.get("duration") for s in streams]
    for value in candidates:
        try:
            duration = float(value)
        except (TypeError, ValueError):
            continue
        if duration > 0:
            return duration
    return 0.0
