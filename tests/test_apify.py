"""Unit tests for the Apify scrape provider (fake HTTP session)."""

from __future__ import annotations

from typing import Any

import pytest
import requests

from profilealt.apify import ApifyError, ApifyScraper
from profilealt.models import ScrapeOptions


class FakeResponse:
    def __init__(self, status: int, payload: Any = None, headers: dict[str, str] | None = None) -> None:
        self.status_code = status
        self._payload = payload
        self.headers = headers or {}
        self.text = str(payload)

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, responses: list[Any]) -> None:
        self.headers: dict[str, str] = {}
        self._responses = list(responses)
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def request(self, method: str, url: str, timeout: float, **kwargs: Any) -> Any:
        self.calls.append((method, url, kwargs))
        nxt = self._responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def _run(status: str, run_id: str = "run1", dataset: str = "ds1") -> FakeResponse:
    return FakeResponse(201, {"data": {"id": run_id, "status": status, "defaultDatasetId": dataset}})


class TestScrape:
    def test_happy_path(self) -> None:
        session = FakeSession(
            [
                _run("SUCCEEDED"),
                FakeResponse(200, [{"full_text": "a"}, {"full_text": "b"}, "junk"]),
            ]
        )
        scraper = ApifyScraper("tok", session=session)  # type: ignore[arg-type]
        items = scraper("https://x.com/nasa", ScrapeOptions(result_count=5))

        assert items == [{"full_text": "a"}, {"full_text": "b"}]
        assert session.headers["Authorization"] == "Bearer tok"
        method, url, kwargs = session.calls[0]
        assert method == "POST"
        assert url.endswith("/acts/gentle_cloud~twitter-tweets-scraper/runs")
        assert kwargs["json"]["result_count"] == "5"
        assert session.calls[1][1].endswith("/datasets/ds1/items")

    def test_polls_until_finished(self) -> None:
        session = FakeSession(
            [
                _run("RUNNING"),
                FakeResponse(200, {"data": {"id": "run1", "status": "RUNNING"}}),
                FakeResponse(200, {"data": {"id": "run1", "status": "SUCCEEDED", "defaultDatasetId": "ds9"}}),
                FakeResponse(200, []),
            ]
        )
        scraper = ApifyScraper("tok", session=session)  # type: ignore[arg-type]
        assert scraper.scrape("https://instagram.com/natgeo", ScrapeOptions()) == []
        assert session.calls[0][1].endswith("/acts/apify~instagram-scraper/runs")
        assert session.calls[1][1].endswith("/actor-runs/run1")
        assert session.calls[3][1].endswith("/datasets/ds9/items")

    def test_failed_run(self) -> None:
        session = FakeSession([_run("FAILED")])
        with pytest.raises(ApifyError, match="FAILED"):
            ApifyScraper("tok", session=session)("https://x.com/nasa", ScrapeOptions())  # type: ignore[arg-type]

    def test_deadline(self) -> None:
        session = FakeSession([_run("RUNNING")])
        scraper = ApifyScraper("tok", timeout=0, session=session)  # type: ignore[arg-type]
        with pytest.raises(ApifyError, match="did not finish"):
            scraper("https://x.com/nasa", ScrapeOptions())

    def test_http_error(self) -> None:
        session = FakeSession([FakeResponse(401, {"error": "unauthorized"})])
        with pytest.raises(ApifyError, match="401"):
            ApifyScraper("tok", session=session)("https://x.com/nasa", ScrapeOptions())  # type: ignore[arg-type]

    def test_network_error(self) -> None:
        session = FakeSession([requests.ConnectionError("down")])
        with pytest.raises(ApifyError, match="down"):
            ApifyScraper("tok", session=session)("https://x.com/nasa", ScrapeOptions())  # type: ignore[arg-type]

    def test_rate_limit_retry(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sleeps: list[float] = []
        monkeypatch.setattr("profilealt.apify.time.sleep", sleeps.append)
        session = FakeSession(
            [
                FakeResponse(429, None, {"Retry-After": "3"}),
                _run("SUCCEEDED"),
                FakeResponse(200, []),
            ]
        )
        ApifyScraper("tok", session=session)("https://x.com/nasa", ScrapeOptions())  # type: ignore[arg-type]
        assert sleeps == [3]

    def test_requires_token(self) -> None:
        with pytest.raises(ValueError):
            ApifyScraper("")
