"""Flatten nested scrape records into dotted-path report rows."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from typing import Any

from profilealt.models import MISSING


def _placeholder(value: Any) -> str:
    # str() would recurse into the same structure, so use the type name only.
    return f"<{type(value).__name__}>"


def _canonical(value: Any) -> str:
    """Stable JSON form for records and nested arrays (sorted keys)."""
    try:
        return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
    except (TypeError, ValueError, RecursionError):
        # Circular references, unsortable keys or nesting past the recursion limit.
        return _placeholder(value)


def _scalar(value: Any, missing: str) -> str:
    if value is None:
        return missing
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _array(values: list[Any] | tuple[Any, ...], array_sep: str, missing: str) -> str:
    parts: list[str] = []
    for element in values:
        if isinstance(element, (Mapping, list, tuple)):
            parts.append(_canonical(element))
        else:
            parts.append(_scalar(element, missing))
    return array_sep.join(parts)


def flatten(
    record: Mapping[str, Any] | None,
    sep: str = ".",
    array_sep: str = ", ",
    missing: str = MISSING,
) -> dict[str, str]:
    """Flatten *record* into an ordered ``{dotted.path: string}`` mapping.

    Nested mappings are walked depth-first in insertion order. Arrays are
    stored at their own key: scalars are stringified and joined with
    ``array_sep``; records and nested arrays are serialised to canonical
    JSON first. ``None`` leaves become *missing*. Never raises.
    """
    flat: dict[str, str] = {}
    if record is None:
        return flat
    if not isinstance(record, Mapping):
        # Not a record at all; expose it under an empty key rather than fail.
        flat[""] = _scalar(record, missing)
        return flat

    _walk(record, sep, array_sep, missing, flat)
    return flat


def _walk(
    root: Mapping[str, Any],
    sep: str,
    array_sep: str,
    missing: str,
    out: dict[str, str],
) -> None:
    # Explicit stack, so nesting depth is not bounded by the recursion limit.
    stack: list[tuple[str, Iterator[tuple[Any, Any]], int]] = [
        ("", iter(root.items()), id(root))
    ]
    active = {id(root)}
    while stack:
        prefix, items, node_id = stack[-1]
        entry = next(items, None)
        if entry is None:
            stack.pop()
            active.discard(node_id)
            continue
        key, value = entry
        path = f"{prefix}{sep}{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            if id(value) in active:
                # Cycle back to an enclosing record.
                out[path] = _placeholder(value)
            else:
                stack.append((path, iter(value.items()), id(value)))
                active.add(id(value))
        elif isinstance(value, (list, tuple)):
            out[path] = _array(value, array_sep, missing)
        else:
            out[path] = _scalar(value, missing)


def pick(flat: Mapping[str, str], *paths: str, default: str = MISSING) -> str:
    """Return the first present, non-empty value among *paths*."""
    for path in paths:
        value = flat.get(path)
        if value and value != default:
            return value
    return default
