"""CLI entry-point: ``python -m profilealt enrich`` / ``python -m profilealt analyze``."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from profilealt.pipeline import build_enricher, run_analysis, run_enrichment, setup_logging

logger = logging.getLogger(__name__)


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="profilealt",
        description="Scrape a social profile and describe its images.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command")

    # ── enrich ─────────────────────────────────────────────────────────
    enrich_parser = sub.add_parser("enrich", help="Scrape and caption a profile.")
    enrich_parser.add_argument("profile_url", help="X/Twitter or Instagram profile URL.")
    enrich_parser.add_argument(
        "--since-date",
        default=None,
        help="Oldest tweet date to fetch, YYYY-MM-DD (Twitter only).",
    )
    enrich_parser.add_argument(
        "--count",
        type=_positive_int,
        default=None,
        help="Number of posts to request from the scraper.",
    )
    enrich_parser.add_argument(
        "--max-images",
        type=_non_negative_int,
        default=None,
        help="Maximum caption attempts for the run (default: PROFILEALT_MAX_IMAGES).",
    )
    enrich_parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Parallel caption calls (default: PROFILEALT_CAPTION_CONCURRENCY).",
    )

    # ── analyze ───────────────────────────────────────────────────────
    analyze_parser = sub.add_parser(
        "analyze",
        help="Describe images from a JSON image map staged in the working area.",
    )
    analyze_parser.add_argument("json_name", help="File name inside the working area.")
    analyze_parser.add_argument("--prompt", default=None, help="Custom caption prompt.")
    analyze_parser.add_argument(
        "--max-images",
        type=_non_negative_int,
        default=None,
        help="Maximum caption attempts (default: PROFILEALT_MAX_IMAGES).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in ("enrich", "analyze"):
        parser.print_help()
        sys.exit(1)

    setup_logging(verbose=args.verbose)
    try:
        enricher = build_enricher(
            max_images=args.max_images,
            caption_concurrency=getattr(args, "concurrency", None),
        )
    except ValueError as exc:
        logger.error("%s Set it in the environment or .env", exc)
        sys.exit(1)

    if args.command == "enrich":
        payload = run_enrichment(
            enricher,
            args.profile_url,
            since_date=args.since_date,
            result_count=args.count,
        )
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        payload = run_analysis(enricher, args.json_name, prompt=args.prompt)
        if payload["success"]:
            print(payload["markdown"])
        else:
            print(json.dumps(payload, indent=2, ensure_ascii=False))

    if not payload["success"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
