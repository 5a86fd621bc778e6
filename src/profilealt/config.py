"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]
WORK_DIR: Path = Path(os.getenv("PROFILEALT_WORK_DIR", str(PROJECT_ROOT / "public")))

# ── Apify ──────────────────────────────────────────────────────────────────
APIFY_API_TOKEN: str = os.getenv("APIFY_API_TOKEN", "")
SCRAPE_TIMEOUT: float = float(os.getenv("PROFILEALT_SCRAPE_TIMEOUT", "300"))

# ── LLM ────────────────────────────────────────────────────────────────────
LLM_API_KEY: str = os.getenv("LLM_API_KEY", "") or os.getenv("OPENAI_API_KEY", "")
LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
CAPTION_TIMEOUT: float = float(os.getenv("PROFILEALT_CAPTION_TIMEOUT", "60"))
FETCH_TIMEOUT: float = float(os.getenv("PROFILEALT_FETCH_TIMEOUT", "30"))

# ── Enrichment ─────────────────────────────────────────────────────────────
MAX_IMAGES: int = int(os.getenv("PROFILEALT_MAX_IMAGES", "10"))
CAPTION_CONCURRENCY: int = int(os.getenv("PROFILEALT_CAPTION_CONCURRENCY", "1"))
