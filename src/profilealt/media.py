"""Pull media references and report fields out of raw scrape items."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from profilealt.flatten import pick
from profilealt.models import MISSING, MediaReference, RawItem
from profilealt.platforms import INSTAGRAM, TWITTER

logger = logging.getLogger(__name__)

# Flattened paths for each report field, first non-empty match wins.
_FIELD_PATHS: dict[str, dict[str, tuple[str, ...]]] = {
    TWITTER: {
        "username": ("user.screen_name", "author.userName", "username"),
        "full_name": ("user.name", "author.name", "name"),
        "text": ("full_text", "text"),
        "alt_text": ("ext_alt_text",),
        "image_url": (),
    },
    INSTAGRAM: {
        "username": ("ownerUsername",),
        "full_name": ("ownerFullName",),
        "text": ("caption", "text"),
        "alt_text": ("alt", "accessibilityCaption"),
        "image_url": ("displayUrl",),
    },
}


def _records(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, Mapping)]


def _twitter_media(item: RawItem) -> list[MediaReference]:
    # Basic entities are read only when the extended block has no media list.
    for block_key in ("extended_entities", "entities"):
        block = item.get(block_key)
        if isinstance(block, Mapping) and block.get("media") is not None:
            refs: list[MediaReference] = []
            for media in _records(block.get("media")):
                url = media.get("media_url_https")
                if isinstance(url, str) and url:
                    alt = media.get("ext_alt_text")
                    refs.append(
                        MediaReference(url=url, alt_text=alt if isinstance(alt, str) else None)
                    )
            return refs
    return []


def _instagram_media(item: RawItem) -> list[MediaReference]:
    alt = item.get("alt")
    alt_text = alt if isinstance(alt, str) else None
    images = item.get("images")
    if isinstance(images, list):
        urls = [u for u in images if isinstance(u, str) and u]
        if urls:
            return [MediaReference(url=u, alt_text=alt_text) for u in urls]
    display = item.get("displayUrl")
    if isinstance(display, str) and display:
        return [MediaReference(url=display, alt_text=alt_text)]
    return []


def extract_media(platform: str, item: RawItem) -> list[MediaReference]:
    """Return the media references of *item* in source order (never raises)."""
    if not isinstance(item, Mapping):
        return []
    if platform == TWITTER:
        return _twitter_media(item)
    if platform == INSTAGRAM:
        return _instagram_media(item)
    logger.warning("No media extractor for platform '%s'", platform)
    return []


def report_fields(
    platform: str, flat: Mapping[str, str], media: list[MediaReference]
) -> dict[str, str]:
    """Select the labelled report fields for one flattened item."""
    paths = _FIELD_PATHS.get(platform, {})
    fields = {
        name: pick(flat, *paths.get(name, ()))
        for name in ("username", "full_name", "text", "alt_text", "image_url")
    }
    if fields["image_url"] == MISSING and media:
        fields["image_url"] = media[0].url
    if fields["alt_text"] == MISSING:
        fields["alt_text"] = next((m.alt_text for m in media if m.alt_text), MISSING)
    return fields
