"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from profilealt import __main__ as cli
from profilealt.artifacts import ArtifactStore
from profilealt.pipeline import ProfileEnricher


def _fake_enricher(tmp_path: Path, items: list[dict[str, Any]], **_: Any) -> ProfileEnricher:
    return ProfileEnricher(
        scrape=lambda url, options: items,
        captioner=lambda url, prompt=None: f"desc of {url}",
        store=ArtifactStore(tmp_path / "public"),
        clock=lambda: datetime(2025, 1, 1, tzinfo=UTC),
    )


class TestParser:
    def test_enrich_args(self) -> None:
        args = cli.build_parser().parse_args(
            ["enrich", "https://x.com/nasa", "--count", "5", "--max-images", "0"]
        )
        assert args.profile_url == "https://x.com/nasa"
        assert args.count == 5
        assert args.max_images == 0
        assert args.since_date is None

    def test_rejects_bad_count(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["enrich", "https://x.com/nasa", "--count", "0"])


class TestMain:
    def test_no_command_prints_help(self) -> None:
        with pytest.raises(SystemExit) as info:
            cli.main([])
        assert info.value.code == 1

    def test_enrich_prints_payload(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        items = [{"ownerUsername": "natgeo", "displayUrl": "https://cdn/a.jpg"}]
        monkeypatch.setattr(cli, "build_enricher", lambda **kw: _fake_enricher(tmp_path, items))
        cli.main(["enrich", "https://instagram.com/natgeo"])

        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is True
        assert payload["items"][0]["username"] == "natgeo"
        assert payload["items"][0]["captions"][0]["description"] == "desc of https://cdn/a.jpg"

    def test_enrich_failure_exits_nonzero(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setattr(cli, "build_enricher", lambda **kw: _fake_enricher(tmp_path, []))
        with pytest.raises(SystemExit) as info:
            cli.main(["enrich", "https://example.com/x"])
        assert info.value.code == 1
        assert json.loads(capsys.readouterr().out)["success"] is False

    def test_missing_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("profilealt.config.APIFY_API_TOKEN", "")
        with pytest.raises(SystemExit) as info:
            cli.main(["enrich", "https://x.com/nasa"])
        assert info.value.code == 1

    def test_analyze_prints_markdown(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        enricher = _fake_enricher(tmp_path, [])
        enricher._store.ensure_working_area()
        enricher._store.write_json("staged.json", {"1": "https://cdn/a.jpg"})
        monkeypatch.setattr(cli, "build_enricher", lambda **kw: enricher)

        cli.main(["analyze", "staged.json"])
        out = capsys.readouterr().out
        assert out.startswith("# Image Descriptions")
        assert "desc of https://cdn/a.jpg" in out
