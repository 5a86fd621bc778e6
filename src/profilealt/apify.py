"""Minimal Apify REST client: run a scraper actor and list its dataset."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from profilealt.models import RawItem, ScrapeOptions
from profilealt.platforms import ACTORS, build_actor_input, detect_platform

logger = logging.getLogger(__name__)

_API_BASE = "https://api.apify.com/v2"
_CONSOLE_DATASET_URL = "https://console.apify.com/storage/datasets/{}"

# Apify caps a single waitForFinish at 60 seconds.
_MAX_WAIT_SECONDS = 60
_TERMINAL_STATUSES = {"SUCCEEDED", "FAILED", "TIMED-OUT", "ABORTED"}


class ApifyError(Exception):
    """Raised when the Apify API returns an unexpected response."""


class ApifyScraper:
    """Callable scrape provider backed by Apify actors."""

    def __init__(
        self,
        token: str,
        timeout: float = 300.0,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("APIFY_API_TOKEN is required but was empty.")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {token}"})

    # ── public ──────────────────────────────────────────────────────────

    def scrape(self, profile_url: str, options: ScrapeOptions) -> list[RawItem]:
        """Run the platform's actor for *profile_url* and return dataset items."""
        platform = detect_platform(profile_url)
        actor = ACTORS[platform]
        logger.info("Scraping %s profile: %s", platform, profile_url)

        deadline = time.monotonic() + self._timeout
        run = self._start_run(actor, build_actor_input(platform, profile_url, options))
        run = self._wait_for_run(run, deadline)

        dataset_id = run.get("defaultDatasetId")
        if not dataset_id:
            raise ApifyError(f"Actor run {run.get('id')} has no default dataset")
        logger.info("Check your data here: %s", _CONSOLE_DATASET_URL.format(dataset_id))

        items = self._request(
            "GET",
            f"/datasets/{dataset_id}/items",
            params={"format": "json", "clean": "true"},
        )
        if not isinstance(items, list):
            raise ApifyError(f"Dataset {dataset_id} returned {type(items).__name__}, expected list")
        logger.info("Fetched %d items from dataset %s", len(items), dataset_id)
        return [item for item in items if isinstance(item, dict)]

    def __call__(self, profile_url: str, options: ScrapeOptions) -> list[RawItem]:
        return self.scrape(profile_url, options)

    # ── private ─────────────────────────────────────────────────────────

    def _start_run(self, actor: str, run_input: dict[str, Any]) -> dict[str, Any]:
        # Actor ids use "~" instead of "/" inside API paths.
        data = self._request(
            "POST",
            f"/acts/{actor.replace('/', '~')}/runs",
            json=run_input,
            params={"waitForFinish": min(_MAX_WAIT_SECONDS, int(self._timeout))},
        )
        return self._unwrap(data)

    def _wait_for_run(self, run: dict[str, Any], deadline: float) -> dict[str, Any]:
        while run.get("status") not in _TERMINAL_STATUSES:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ApifyError(
                    f"Actor run {run.get('id')} did not finish within {self._timeout:.0f}s"
                )
            logger.debug("Run %s is %s; waiting", run.get("id"), run.get("status"))
            data = self._request(
                "GET",
                f"/actor-runs/{run['id']}",
                params={"waitForFinish": max(1, min(_MAX_WAIT_SECONDS, int(remaining)))},
            )
            run = self._unwrap(data)

        if run["status"] != "SUCCEEDED":
            raise ApifyError(f"Actor run {run.get('id')} ended with status {run['status']}")
        return run

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{_API_BASE}{path}"
        # Per-request timeout covers the server-side waitForFinish plus slack.
        timeout = _MAX_WAIT_SECONDS + 30
        try:
            resp = self._session.request(method, url, timeout=timeout, **kwargs)
            if resp.status_code == 429:
                retry_after = int(resp.headers.get("Retry-After", "10"))
                logger.warning("Rate-limited; sleeping %ds", retry_after)
                time.sleep(retry_after)
                resp = self._session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as exc:
            raise ApifyError(f"Apify request {method} {path} failed: {exc}") from exc
        if resp.status_code not in (200, 201):
            raise ApifyError(f"Apify API returned {resp.status_code}: {resp.text[:500]}")
        try:
            return resp.json()
        except ValueError as exc:
            raise ApifyError(f"Apify API returned invalid JSON for {path}") from exc

    @staticmethod
    def _unwrap(payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise ApifyError("Apify API response is missing the 'data' object")
        return payload["data"]  # type: ignore[no-any-return]
