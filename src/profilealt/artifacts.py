"""Working-area store for transient JSON/text artifacts of a pipeline run."""

from __future__ import annotations

import json
import logging
import re
import shutil
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from profilealt.errors import ArtifactIOFailure

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")

# One lock per resolved working area: cleanup_all() wipes the whole
# directory, so two runs must never share it at the same time.
_AREA_LOCKS: dict[Path, threading.Lock] = {}
_AREA_LOCKS_GUARD = threading.Lock()


def _area_lock(root: Path) -> threading.Lock:
    key = root.resolve()
    with _AREA_LOCKS_GUARD:
        lock = _AREA_LOCKS.get(key)
        if lock is None:
            lock = _AREA_LOCKS[key] = threading.Lock()
        return lock


class ArtifactStore:
    """Flat directory of named artifacts, emptied at the end of every run."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._issued: set[str] = set()

    @property
    def root(self) -> Path:
        return self._root

    # ── public ──────────────────────────────────────────────────────────

    def ensure_working_area(self) -> Path:
        """Create the working area if it does not exist yet."""
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactIOFailure(f"Cannot create working area {self._root}: {exc}") from exc
        return self._root

    @contextmanager
    def run(self) -> Iterator[ArtifactStore]:
        """Scope one pipeline run: serialise, then always clean up on exit."""
        lock = _area_lock(self._root)
        if not lock.acquire(blocking=False):
            logger.info("Working area %s busy; waiting for the active run", self._root)
            lock.acquire()
        try:
            self.ensure_working_area()
            try:
                yield self
            finally:
                removed = self.cleanup_all()
                logger.debug("Cleaned %d artifact(s) from %s", removed, self._root)
        finally:
            self._issued.clear()
            lock.release()

    def artifact_name(
        self,
        platform: str,
        identifier: str,
        suffix: str,
        when: datetime,
        prefix: str = "",
    ) -> str:
        """Build a unique ``{prefix}{platform}_{identifier}_{epoch_ms}.{suffix}`` name."""
        ident = _UNSAFE_CHARS_RE.sub("_", identifier).strip("._") or "profile"
        stem = f"{prefix}{platform}_{ident}_{int(when.timestamp() * 1000)}"
        name = f"{stem}.{suffix}"
        n = 1
        while name in self._issued or (self._root / name).exists():
            n += 1
            name = f"{stem}_{n}.{suffix}"
        self._issued.add(name)
        return name

    def write_json(self, name: str, value: Any) -> str:
        return self.write_text(name, json.dumps(value, indent=2, ensure_ascii=False))

    def write_text(self, name: str, content: str) -> str:
        path = self._path(name)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ArtifactIOFailure(f"Cannot write artifact {name}: {exc}") from exc
        logger.debug("Wrote artifact %s (%d chars)", name, len(content))
        return name

    def read_json(self, name: str) -> Any:
        path = self._path(name)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ArtifactIOFailure(f"Cannot read artifact {name}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ArtifactIOFailure(f"Artifact {name} is not valid JSON: {exc}") from exc

    def delete_one(self, name: str) -> None:
        try:
            self._path(name).unlink()
        except OSError as exc:
            raise ArtifactIOFailure(f"Cannot delete artifact {name}: {exc}") from exc

    def list_names(self) -> list[str]:
        if not self._root.exists():
            return []
        return sorted(p.name for p in self._root.iterdir())

    def cleanup_all(self) -> int:
        """Delete every entry in the working area; return how many were removed.

        A failure on one entry is logged and does not stop the others.
        """
        if not self._root.exists():
            return 0
        try:
            entries = list(self._root.iterdir())
        except OSError as exc:
            logger.warning("Cannot list working area %s: %s", self._root, exc)
            return 0
        removed = 0
        for entry in entries:
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
                removed += 1
            except OSError as exc:
                logger.warning("Failed to delete %s: %s", entry, exc)
        return removed

    # ── private ─────────────────────────────────────────────────────────

    def _path(self, name: str) -> Path:
        # Artifacts live directly in the working area, never below or above it.
        if not name or Path(name).name != name or name in {".", ".."}:
            raise ArtifactIOFailure(f"Invalid artifact name: {name!r}")
        return self._root / name
