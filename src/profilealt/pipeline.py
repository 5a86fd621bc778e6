"""Pipeline orchestration — wires scrape → extract media → caption → flatten → report → cleanup."""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from profilealt import config
from profilealt.apify import ApifyScraper
from profilealt.artifacts import ArtifactStore
from profilealt.captioner import ImageCaptioner
from profilealt.errors import ArtifactIOFailure, CaptionFailure, EnrichmentError, ScrapeFailure
from profilealt.flatten import flatten
from profilealt.media import extract_media, report_fields
from profilealt.models import (
    CaptionResult,
    ImageAnalysis,
    ProfileReport,
    RawItem,
    ReportItem,
    RunState,
    ScrapeOptions,
)
from profilealt.platforms import detect_platform, profile_id
from profilealt.report import CAPTION_ERROR_TEXT, render_markdown, render_summary

logger = logging.getLogger(__name__)

ScrapeFn = Callable[[str, ScrapeOptions], Sequence[RawItem]]
CaptionFn = Callable[..., str]


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


class _CaptionBudget:
    """Shared count of caption attempts, bounded by the enrichment cap."""

    def __init__(self, limit: int) -> None:
        self._limit = max(0, limit)
        self._used = 0
        self._lock = threading.Lock()

    def claim(self) -> bool:
        with self._lock:
            if self._used >= self._limit:
                return False
            self._used += 1
            return True

    @property
    def used(self) -> int:
        return self._used


class ProfileEnricher:
    """Scrape a profile, caption its images and build the report.

    Collaborators are long-lived handles passed in by the caller: *scrape*
    returns the raw items for a profile, *captioner* describes one image
    and *store* owns the working area. Each call is one run; the working
    area is emptied when the run ends, whether it succeeded or not.
    """

    def __init__(
        self,
        scrape: ScrapeFn,
        captioner: CaptionFn,
        store: ArtifactStore,
        max_images: int = 10,
        caption_concurrency: int = 1,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._scrape = scrape
        self._captioner = captioner
        self._store = store
        self._max_images = max_images
        self._concurrency = max(1, caption_concurrency)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._state = RunState.IDLE
        self._run_lock = threading.Lock()

    @property
    def state(self) -> RunState:
        return self._state

    # ── public ──────────────────────────────────────────────────────────

    def enrich_profile(
        self,
        profile_url: str,
        since_date: str | None = None,
        result_count: int | None = None,
    ) -> ProfileReport:
        """Run the full enrichment pipeline for *profile_url*."""
        platform = detect_platform(profile_url)
        profile_url = profile_url.strip()
        options = ScrapeOptions(since_date=since_date, result_count=result_count)

        # A queued call must not touch the state of the run in progress.
        with self._run_lock:
            self._state = RunState.IDLE
            try:
                with self._store.run() as store:
                    try:
                        report = self._enrich(store, platform, profile_url, options)
                    finally:
                        self._transition(RunState.CLEANING_UP)
            except BaseException:
                self._transition(RunState.FAILED)
                raise
            self._transition(RunState.DONE)
            return report

    def analyze_staged(self, json_name: str, prompt: str | None = None) -> ImageAnalysis:
        """Caption a staged ``{index: url}`` image map from the working area.

        The staged file is deleted once consumed; descriptions (keyed by URL)
        and a markdown rendering are written and also returned inline.
        """
        with self._store.run() as store:
            staged = store.read_json(json_name)
            if not isinstance(staged, dict):
                raise ArtifactIOFailure(f"Artifact {json_name} is not an image map")
            images = {str(k): str(v) for k, v in staged.items() if v}

            budget = _CaptionBudget(self._max_images)
            keys = [key for key in images if budget.claim()]
            if len(keys) < len(images):
                logger.info(
                    "Enrichment cap %d reached; %d image(s) left undescribed",
                    self._max_images,
                    len(images) - len(keys),
                )
            captions = self._caption_all([images[k] for k in keys], prompt)
            results = dict(zip(keys, captions))
            store.delete_one(json_name)

            descriptions = {
                r.url: r.description if r.ok else CAPTION_ERROR_TEXT for r in captions
            }
            markdown = render_markdown(images, results)

            when = self._clock()
            ident = Path(json_name).stem
            artifacts = [
                store.write_json(
                    store.artifact_name("descriptions", ident, "json", when), descriptions
                ),
                store.write_text(
                    store.artifact_name("descriptions", ident, "md", when), markdown
                ),
            ]
            return ImageAnalysis(
                descriptions=descriptions,
                markdown=markdown,
                artifacts=artifacts,
                captions_attempted=budget.used,
            )

    # ── private ─────────────────────────────────────────────────────────

    def _enrich(
        self,
        store: ArtifactStore,
        platform: str,
        profile_url: str,
        options: ScrapeOptions,
    ) -> ProfileReport:
        # ── 1. Scrape ─────────────────────────────────────────────────────
        self._transition(RunState.SCRAPING)
        try:
            raw_items = list(self._scrape(profile_url, options))
        except Exception as exc:
            raise ScrapeFailure(f"Scrape failed for {profile_url}: {exc}") from exc
        logger.info("Scraped %d item(s) from %s", len(raw_items), profile_url)

        # ── 2. Extract media and claim caption slots ──────────────────────
        self._transition(RunState.ENRICHING)
        budget = _CaptionBudget(self._max_images)
        media_per_item = [extract_media(platform, item) for item in raw_items]
        claimed: list[tuple[int, str]] = []
        for pos, media in enumerate(media_per_item):
            for ref in media:
                if not budget.claim():
                    break
                claimed.append((pos, ref.url))

        total_media = sum(len(m) for m in media_per_item)
        if len(claimed) < total_media:
            logger.info(
                "Enrichment cap %d reached; %d of %d image(s) left uncaptioned",
                self._max_images,
                total_media - len(claimed),
                total_media,
            )

        # ── 3. Caption (results come back in claim order) ─────────────────
        captions = self._caption_all([url for _, url in claimed], None)
        captions_per_item: list[list[CaptionResult]] = [[] for _ in raw_items]
        for (pos, _), result in zip(claimed, captions):
            captions_per_item[pos].append(result)

        # ── 4. Flatten and build report rows ─────────────────────────────
        self._transition(RunState.REPORTING)
        items: list[ReportItem] = []
        for pos, raw in enumerate(raw_items):
            flat = flatten(raw)
            media = media_per_item[pos]
            items.append(
                ReportItem(
                    index=pos + 1,
                    media=media,
                    captions=captions_per_item[pos],
                    fields=flat,
                    **report_fields(platform, flat, media),
                )
            )
        text = render_summary(items)

        # ── 5. Persist ────────────────────────────────────────────────────
        media_urls = [ref.url for media in media_per_item for ref in media]
        when = self._clock()
        ident = profile_id(profile_url)
        image_map = {str(n): url for n, url in enumerate(media_urls, start=1)}
        artifacts = [
            store.write_json(store.artifact_name(platform, ident, "json", when), image_map),
            store.write_text(store.artifact_name(platform, ident, "txt", when), text),
        ]

        failed = sum(1 for c in captions if not c.ok)
        logger.info(
            "Enriched %d item(s): %d caption attempt(s), %d failed",
            len(items),
            budget.used,
            failed,
        )
        return ProfileReport(
            platform=platform,
            profile_url=profile_url,
            profile_id=ident,
            items=items,
            text=text,
            media_urls=media_urls,
            artifacts=artifacts,
            captions_attempted=budget.used,
        )

    def _caption_all(self, urls: list[str], prompt: str | None) -> list[CaptionResult]:
        if self._concurrency == 1 or len(urls) <= 1:
            return [self._caption_one(url, prompt) for url in urls]
        with ThreadPoolExecutor(max_workers=self._concurrency) as pool:
            # map() yields in submission order regardless of completion order.
            return list(pool.map(lambda u: self._caption_one(u, prompt), urls))

    def _caption_one(self, url: str, prompt: str | None) -> CaptionResult:
        try:
            description = self._captioner(url, prompt)
        except CaptionFailure as exc:
            logger.warning("Caption failed for %s: %s", url, exc.reason)
            return CaptionResult(url=url, error=exc.reason)
        except Exception as exc:
            logger.exception("Unexpected captioning error for %s", url)
            return CaptionResult(url=url, error=str(exc) or type(exc).__name__)
        return CaptionResult(url=url, description=description)

    def _transition(self, state: RunState) -> None:
        logger.info("Run state: %s → %s", self._state.value, state.value)
        self._state = state


def build_enricher(
    max_images: int | None = None,
    caption_concurrency: int | None = None,
) -> ProfileEnricher:
    """Wire an enricher from environment configuration."""
    return ProfileEnricher(
        scrape=ApifyScraper(token=config.APIFY_API_TOKEN, timeout=config.SCRAPE_TIMEOUT),
        captioner=ImageCaptioner(
            api_key=config.LLM_API_KEY,
            model=config.LLM_MODEL,
            timeout=config.CAPTION_TIMEOUT,
            fetch_timeout=config.FETCH_TIMEOUT,
        ),
        store=ArtifactStore(config.WORK_DIR),
        max_images=config.MAX_IMAGES if max_images is None else max_images,
        caption_concurrency=(
            config.CAPTION_CONCURRENCY if caption_concurrency is None else caption_concurrency
        ),
    )


def run_enrichment(
    enricher: ProfileEnricher,
    profile_url: str,
    since_date: str | None = None,
    result_count: int | None = None,
) -> dict[str, Any]:
    """Caller entry point: a ``success`` payload instead of raised errors."""
    try:
        report = enricher.enrich_profile(profile_url, since_date, result_count)
    except EnrichmentError as exc:
        logger.error("Enrichment failed for %s: %s", profile_url or "<empty>", exc)
        return {"success": False, "error": str(exc)}
    return report.to_payload()


def run_analysis(
    enricher: ProfileEnricher, json_name: str, prompt: str | None = None
) -> dict[str, Any]:
    """Like :func:`run_enrichment`, for a staged image map."""
    try:
        analysis = enricher.analyze_staged(json_name, prompt)
    except EnrichmentError as exc:
        logger.error("Image analysis failed for %s: %s", json_name, exc)
        return {"success": False, "error": str(exc)}
    return analysis.to_payload()
