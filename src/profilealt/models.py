"""Domain models used across the pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field

# A scrape item is an arbitrary JSON document; the pipeline never mutates it.
JSONValue = Union[
    str, int, float, bool, None, list["JSONValue"], dict[str, "JSONValue"]
]
RawItem = dict[str, JSONValue]

MISSING = "N/A"


class RunState(str, Enum):
    IDLE = "idle"
    SCRAPING = "scraping"
    ENRICHING = "enriching"
    REPORTING = "reporting"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


class ScrapeOptions(BaseModel, frozen=True):
    """Per-run options forwarded to the scrape provider."""

    since_date: str | None = None
    result_count: int | None = None


class MediaReference(BaseModel, frozen=True):
    url: str
    alt_text: str | None = None


class CaptionResult(BaseModel):
    """Outcome of one captioning attempt: a description or a failure reason."""

    url: str
    description: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ReportItem(BaseModel):
    index: int
    username: str = MISSING
    full_name: str = MISSING
    text: str = MISSING
    alt_text: str = MISSING
    image_url: str = MISSING
    media: list[MediaReference] = Field(default_factory=list)
    # Captions line up with a prefix of ``media``; the rest went uncaptioned.
    captions: list[CaptionResult] = Field(default_factory=list)
    fields: dict[str, str] = Field(default_factory=dict)


class ProfileReport(BaseModel):
    platform: str
    profile_url: str
    profile_id: str
    items: list[ReportItem] = Field(default_factory=list)
    text: str = ""
    media_urls: list[str] = Field(default_factory=list)
    # Names of files written during the run; all were deleted by the run's
    # cleanup before the report was returned, so they cannot be read back.
    artifacts: list[str] = Field(default_factory=list)
    captions_attempted: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {"success": True, **self.model_dump(mode="json")}


class ImageAnalysis(BaseModel):
    """Result of captioning a staged ``{index: url}`` image map."""

    descriptions: dict[str, str] = Field(default_factory=dict)
    markdown: str = ""
    # Already removed by cleanup, like ``ProfileReport.artifacts``.
    artifacts: list[str] = Field(default_factory=list)
    captions_attempted: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {"success": True, **self.model_dump(mode="json")}
