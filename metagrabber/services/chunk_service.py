"""
Size-based audio chunking using ffmpeg.

Audio at or under the provider upload ceiling is passed through untouched.
Larger files are cut into fixed-length time windows, each re-encoded at a
reduced bitrate into its own file, in time order.
"""

import math
import os
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from metagrabber.config import Settings, get_settings
from metagrabber.errors import ChunkingError, MediaProbeError
from metagrabber.services.ffmpeg_service import get_duration, run_ffmpeg

logger = logging.getLogger(__name__)


@dataclass
class AudioSegment:
    """A time-bounded slice of a job's audio track."""

    index: int
    path: str
    start: float
    duration: float
    size_bytes: int = 0

    @property
    def end(self) -> float:
        return self.start + self.duration


def plan_segments(duration_sec: float, window_sec: float) -> List[Tuple[float, float]]:
    """
    Divide a duration into contiguous (start, duration) windows.

    Produces ceil(duration / window) windows; the last one may be shorter.
    """
    if window_sec <= 0:
        raise ValueError("window_sec must be positive")
    if duration_sec <= 0:
        return []

    count = math.ceil(duration_sec / window_sec)
    windows = []
    for idx in range(count):
        start = idx * window_sec
        windows.append((float(start), float(min(window_sec, duration_sec - start))))
    return windows


def chunk_file_name(job_id: str, idx: int) -> str:
    return f"{job_id}_chunk_{idx:03d}.mp3"


class Chunker:
    """Split an audio file into provider-sized segments."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def chunk(self, audio_path: str, job_id: str, workspace: str,
              size_ceiling: Optional[int] = None,
              log: Optional[logging.LoggerAdapter] = None) -> List[AudioSegment]:
        """
        Return the ordered segments covering audio_path.

        A file at or under size_ceiling comes back as one segment wrapping the
        original file, with no ffmpeg call.

        Raises:
            ChunkingError: If the duration cannot be read or ffmpeg fails
        """
        log = log or logger
        ceiling = self.settings.max_upload_bytes if size_ceiling is None else size_ceiling
        size = os.path.getsize(audio_path)

        if size <= ceiling:
            return [AudioSegment(index=0, path=audio_path, start=0.0,
                                 duration=self._duration_or_zero(audio_path), size_bytes=size)]

        try:
            duration = get_duration(audio_path)
        except MediaProbeError as e:
            raise ChunkingError(f"Could not split audio: {e.message}")
        if duration <= 0:
            raise ChunkingError("Could not split audio: duration unknown")

        windows = plan_segments(duration, self.settings.chunk_window_sec)
        log.info("Audio is %d bytes (ceiling %d) - splitting %.1fs into %d chunks",
                 size, ceiling, duration, len(windows))

        segments = []
        for idx, (start, length) in enumerate(windows):
            chunk_path = os.path.join(workspace, chunk_file_name(job_id, idx))
            self._cut(audio_path, chunk_path, start, length, idx)
            segments.append(AudioSegment(
                index=idx,
                path=chunk_path,
                start=start,
                duration=length,
                size_bytes=os.path.getsize(chunk_path),
            ))
            log.info("Chunk %d: start=%.1fs duration=%.1fs size=%d",
                     idx, start, length, segments[-1].size_bytes)

        return segments

    def _cut(self, audio_path: str, chunk_path: str, start: float, length: float, idx: int) -> None:
        args = [
            '-y',
            '-ss', str(start),
            '-t', str(length),
            '-i', audio_path,
            '-vn',
            '-acodec', 'libmp3lame',
            '-b:a', self.settings.chunk_bitrate,
            '-ac', '1',
            '-ar', '16000',
            chunk_path
        ]
        _, stderr, code = run_ffmpeg(args, timeout=300)
        if code != 0:
            raise ChunkingError(
                f"Chunk {idx} creation failed (exit code {code}): {(stderr or '').strip()[-200:]}"
            )
        if not os.path.exists(chunk_path):
            raise ChunkingError(f"Chunk {idx} was not created")

    @staticmethod
    def _duration_or_zero(audio_path: str) -> float:
        # Duration is informational on the single-segment path
        try:
            return get_duration(audio_path)
        except MediaProbeError:
            return 0.0
