"""Unit tests for platform detection and actor input building."""

import pytest

from profilealt.errors import InvalidInput
from profilealt.models import ScrapeOptions
from profilealt.platforms import build_actor_input, detect_platform, profile_id


class TestDetectPlatform:
    @pytest.mark.parametrize(
        "url",
        ["https://twitter.com/nasa", "https://x.com/nasa", "https://www.x.com/nasa/", "x.com/nasa"],
    )
    def test_twitter(self, url: str) -> None:
        assert detect_platform(url) == "twitter"

    def test_instagram(self) -> None:
        assert detect_platform("https://www.instagram.com/natgeo/") == "instagram"

    @pytest.mark.parametrize("url", ["", "   ", "https://example.com/u", "https://notx.com/a"])
    def test_rejected(self, url: str) -> None:
        with pytest.raises(InvalidInput):
            detect_platform(url)


class TestProfileId:
    def test_trailing_slash_and_query(self) -> None:
        assert profile_id("https://www.instagram.com/natgeo/?hl=en") == "natgeo"

    def test_plain(self) -> None:
        assert profile_id("https://x.com/nasa") == "nasa"

    def test_no_path(self) -> None:
        assert profile_id("https://x.com") == "profile"


class TestBuildActorInput:
    def test_twitter_defaults(self) -> None:
        payload = build_actor_input("twitter", "https://x.com/nasa", ScrapeOptions())
        assert payload["start_urls"] == [{"url": "https://x.com/nasa"}]
        assert payload["since_date"] == "2024-03-05"
        assert payload["result_count"] == "50"
        assert payload["tweet_mode"] == "extended"
        assert payload["include_media"] is True

    def test_twitter_options(self) -> None:
        options = ScrapeOptions(since_date="2025-01-01", result_count=5)
        payload = build_actor_input("twitter", "https://x.com/nasa", options)
        assert payload["since_date"] == "2025-01-01"
        assert payload["result_count"] == "5"

    def test_instagram(self) -> None:
        payload = build_actor_input("instagram", "https://instagram.com/a", ScrapeOptions())
        assert payload == {
            "directUrls": ["https://instagram.com/a"],
            "resultsLimit": 10,
            "searchType": "user",
            "resultsType": "posts",
        }

    def test_unknown(self) -> None:
        with pytest.raises(InvalidInput):
            build_actor_input("myspace", "u", ScrapeOptions())
