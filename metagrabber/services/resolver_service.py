"""
Resolver service: page URL -> playable video URL.

Uses yt-dlp metadata extraction (no download). For each page the best direct
format is chosen, preferring files the transcription pipeline can download in
one GET over segmented playlists:
1. mp4 with both video and audio, not HLS/DASH, highest resolution first
2. any direct mp4
3. any direct URL
4. any URL (HLS is still transcribable through the live path)
"""

import logging
from typing import Any, Dict, List, Optional

import yt_dlp

from metagrabber.errors import ResolveError
from metagrabber.utils.platform_utils import get_platform_from_url, is_live_stream_url

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = {"youtube", "instagram", "facebook", "google_ads"}


def _is_direct(fmt: Dict[str, Any]) -> bool:
    url = fmt.get("url")
    return bool(url) and not is_live_stream_url(url)


def _by_height(formats: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(formats, key=lambda f: f.get("height") or 0, reverse=True)


def select_format(info: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Pick the most download-friendly format from yt-dlp info."""
    formats = info.get("formats") or []

    muxed_mp4 = [
        f for f in formats
        if f.get("ext") == "mp4"
        and f.get("vcodec") not in (None, "none")
        and f.get("acodec") not in (None, "none")
        and _is_direct(f)
    ]
    if muxed_mp4:
        return _by_height(muxed_mp4)[0]

    any_mp4 = [f for f in formats if f.get("ext") == "mp4" and _is_direct(f)]
    if any_mp4:
        return _by_height(any_mp4)[0]

    direct = [f for f in formats if _is_direct(f)]
    if direct:
        return direct[0]

    with_url = [f for f in formats if f.get("url")]
    if with_url:
        logger.info("No direct format found, falling back to playlist URL")
        return with_url[0]

    return None


def resolve_video(page_url: str) -> Dict[str, Any]:
    """
    Resolve a platform page URL to {video_url, thumbnail_url, title, platform}.

    Raises:
        ResolveError: unsupported URL, or no playable URL could be found
    """
    platform = get_platform_from_url(page_url)
    if platform not in SUPPORTED_PLATFORMS:
        raise ResolveError(
            "Unsupported URL. Enter a YouTube, Instagram, Facebook or Google Ads Transparency URL."
        )

    ydl_opts = {
        'quiet': True,
        'no_warnings': True,
        'skip_download': True,
        'noplaylist': True,
    }

    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(page_url, download=False)
    except yt_dlp.utils.DownloadError as e:
        raise ResolveError(f"Could not extract video: {str(e)}")

    if not info:
        raise ResolveError("Could not extract video: no metadata returned")

    selected = select_format(info)
    video_url = (selected or {}).get("url") or info.get("url")
    if not video_url:
        raise ResolveError("Could not extract video: no playable URL found")

    quality = None
    if selected:
        quality = selected.get("format_note") or selected.get("resolution")

    logger.info("Resolved %s video '%s' (quality=%s)", platform, info.get("title"), quality)

    return {
        "video_url": video_url,
        "thumbnail_url": info.get("thumbnail"),
        "title": info.get("title"),
        "platform": platform,
        "quality": quality,
        "video_id": info.get("id"),
    }
