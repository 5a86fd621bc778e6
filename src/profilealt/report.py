"""Render enrichment results as a plain-text summary and a markdown document."""

from __future__ import annotations

from collections.abc import Mapping

from profilealt.models import CaptionResult, ReportItem

SEPARATOR = "-" * 40
CAPTION_ERROR_TEXT = "Error analyzing image"


def render_item(item: ReportItem) -> str:
    """Render one post as a fixed-layout text block."""
    lines = [
        f"Post {item.index}:",
        f"Username: {item.username}",
        f"Full Name: {item.full_name}",
        f"Caption: {item.text}",
        f"Alt Text: {item.alt_text}",
        f"Image URL: {item.image_url}",
    ]
    for n, media in enumerate(item.media, start=1):
        lines.append(f"Image {n}: {media.url}")
        if n <= len(item.captions):
            caption = item.captions[n - 1]
            if caption.ok:
                lines.append(f"Description: {caption.description}")
            else:
                lines.append(f"Description unavailable: {caption.error}")
    lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"


def render_summary(items: list[ReportItem]) -> str:
    """Concatenate item blocks in report order."""
    return "\n".join(render_item(item) for item in items)


def render_markdown(images: Mapping[str, str], results: Mapping[str, CaptionResult]) -> str:
    """Markdown listing of ``{index: url}`` images with their descriptions.

    Images without a result (beyond the enrichment cap) are listed as not
    analyzed.
    """
    parts = ["# Image Descriptions\n\n"]
    for key, url in images.items():
        parts.append(f"## Image {key}\n")
        result = results.get(key)
        if result is None:
            parts.append(f"![Image {key}]({url})\n\n_Not analyzed._\n\n")
        elif result.ok:
            parts.append(f"![Image {key}]({url})\n\n{result.description}\n\n")
        else:
            parts.append(f"{CAPTION_ERROR_TEXT}\n\n")
        parts.append("---\n\n")
    return "".join(parts)
