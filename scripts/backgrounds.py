#!/usr/bin/env python3
# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Operator commands for generated background images.

    python scripts/backgrounds.py generate [--delay 3]
    python scripts/backgrounds.py cleanup [--yes]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from timeline.config import settings
from timeline.database import SessionLocal, schema
from timeline.services import background_service

logger = logging.getLogger("timeline.scripts.backgrounds")


def run_generate(args: argparse.Namespace) -> int:
    """Backfill backgrounds for located events that have none."""
    if not settings.gemini_api_key:
        logger.error("GEMINI_API_KEY is not set")
        return 1

    db = SessionLocal()
    try:
        summary = asyncio.run(
            background_service.backfill_backgrounds(db, delay=args.delay)
        )
    finally:
        db.close()
    print(f"Done. Events: {summary['events']}, images: {summary['images']}")
    return 0


def run_cleanup(args: argparse.Namespace) -> int:
    """Remove every background image blob and row."""
    if not args.yes:
        answer = input("Delete ALL background images? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 1

    db = SessionLocal()
    try:
        removed = background_service.cleanup_backgrounds(db)
    finally:
        db.close()
    print(f"Removed {removed} background image(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="generate missing backgrounds")
    generate.add_argument(
        "--delay",
        type=float,
        default=3.0,
        help="seconds to wait between events (rate limiting)",
    )
    generate.set_defaults(func=run_generate)

    cleanup = sub.add_parser("cleanup", help="delete all background images")
    cleanup.add_argument("--yes", action="store_true", help="skip confirmation")
    cleanup.set_defaults(func=run_cleanup)
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=settings.log_level.upper())
    args = build_parser().parse_args(argv)
    schema.ensure()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
