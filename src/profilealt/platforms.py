"""Supported platforms: URL detection, profile ids and Apify actor inputs."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from profilealt.errors import InvalidInput
from profilealt.models import ScrapeOptions

TWITTER = "twitter"
INSTAGRAM = "instagram"

ACTORS: dict[str, str] = {
    TWITTER: "gentle_cloud/twitter-tweets-scraper",
    INSTAGRAM: "apify/instagram-scraper",
}

_HOSTS: dict[str, str] = {
    "twitter.com": TWITTER,
    "x.com": TWITTER,
    "instagram.com": INSTAGRAM,
}

DEFAULT_SINCE_DATE = "2024-03-05"
DEFAULT_TWEET_COUNT = 50
DEFAULT_POST_COUNT = 10


def _host(url: str) -> str:
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    for prefix in ("www.", "mobile.", "m."):
        if host.startswith(prefix):
            host = host[len(prefix):]
    return host


def detect_platform(url: str) -> str:
    """Return the platform key for *url* or raise :class:`InvalidInput`."""
    if not url or not url.strip():
        raise InvalidInput("Profile URL is required")
    platform = _HOSTS.get(_host(url.strip()))
    if platform is None:
        raise InvalidInput(f"Invalid social media URL: {url}")
    return platform


def profile_id(url: str) -> str:
    """Last non-empty path segment, e.g. ``nasa`` for ``https://x.com/nasa/``."""
    parsed = urlparse(url if "://" in url else f"https://{url}")
    segments = [s for s in parsed.path.split("/") if s]
    return segments[-1] if segments else "profile"


def build_actor_input(platform: str, url: str, options: ScrapeOptions) -> dict[str, Any]:
    """Build the actor run input for *platform*."""
    if platform == TWITTER:
        return {
            "start_urls": [{"url": url}],
            "since_date": options.since_date or DEFAULT_SINCE_DATE,
            # The tweets actor expects the count as a string.
            "result_count": str(options.result_count or DEFAULT_TWEET_COUNT),
            "include_replies": True,
            "include_retweets": True,
            "expand_tweet": True,
            "include_media": True,
            "tweet_mode": "extended",
        }
    if platform == INSTAGRAM:
        return {
            "directUrls": [url],
            "resultsLimit": options.result_count or DEFAULT_POST_COUNT,
            "searchType": "user",
            "resultsType": "posts",
        }
    raise InvalidInput(f"Unsupported platform: {platform}")
