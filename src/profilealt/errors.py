"""Error taxonomy for the enrichment pipeline."""

from __future__ import annotations


class EnrichmentError(Exception):
    """Base class for failures surfaced to callers as ``success: false``."""


class InvalidInput(EnrichmentError):
    """Raised when the profile URL is missing or not a supported platform."""


class ScrapeFailure(EnrichmentError):
    """Raised when the scrape provider fails; aborts the run."""


class ArtifactIOFailure(EnrichmentError):
    """Raised when a working-area artifact cannot be written, read or removed."""


class CaptionFailure(Exception):
    """Raised by the captioner for a single image; recovered by the pipeline."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
