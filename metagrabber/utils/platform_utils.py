"""
Platform utility functions for detecting video URLs and their CDNs.

This module provides utilities for:
- Detecting platform from a page URL
- Recognising live-segmented (playlist) media URLs
- Building the request headers a media CDN expects
"""

import re
from typing import Dict
from urllib.parse import urlparse


BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# CDN host suffix -> site the CDN expects as Referer/Origin
_CDN_ORIGINS = [
    ("fbcdn.net", "https://www.facebook.com"),
    ("facebook.com", "https://www.facebook.com"),
    ("cdninstagram.com", "https://www.instagram.com"),
    ("instagram.com", "https://www.instagram.com"),
    ("googlevideo.com", "https://www.youtube.com"),
    ("youtube.com", "https://www.youtube.com"),
    ("ytimg.com", "https://www.youtube.com"),
    ("googlesyndication.com", "https://adstransparency.google.com"),
    ("googleusercontent.com", "https://adstransparency.google.com"),
    ("adstransparency.google.com", "https://adstransparency.google.com"),
]


def is_youtube_url(url: str) -> bool:
    """Check if URL is a YouTube watch/shorts URL."""
    youtube_patterns = [
        r'youtube\.com/(watch|shorts|embed)',
        r'youtu\.be/',
    ]
    return any(re.search(pattern, url, re.IGNORECASE) for pattern in youtube_patterns)


def get_platform_from_url(url: str) -> str:
    """
    Detect platform from URL and return lowercase platform name.
    Returns: facebook, instagram, youtube, google_ads, or unknown.
    """
    url_lower = url.lower()

    if 'youtube.com' in url_lower or 'youtu.be' in url_lower:
        return 'youtube'
    elif 'instagram.com' in url_lower:
        return 'instagram'
    elif 'facebook.com' in url_lower or 'fb.watch' in url_lower:
        return 'facebook'
    elif 'adstransparency.google.com' in url_lower:
        return 'google_ads'
    else:
        return 'unknown'


def is_live_stream_url(url: str) -> bool:
    """Check if a media URL is a segmented playlist (HLS/DASH) rather than a file."""
    url_lower = url.lower()
    return '.m3u8' in url_lower or 'manifest' in url_lower


def get_origin_for_media_url(url: str) -> str:
    """Return the site origin a media CDN expects, or empty string if unknown."""
    host = (urlparse(url).hostname or "").lower()
    for suffix, origin in _CDN_ORIGINS:
        if host == suffix or host.endswith("." + suffix):
            return origin
    return ""


def build_media_headers(url: str) -> Dict[str, str]:
    """
    Build request headers for fetching a media URL.

    Some CDNs reject requests whose Referer/Origin does not match their own site,
    so both are set whenever the host is recognised.
    """
    headers = {"User-Agent": BROWSER_USER_AGENT}
    origin = get_origin_for_media_url(url)
    if origin:
        headers["Referer"] = origin + "/"
        headers["Origin"] = origin
    return headers
