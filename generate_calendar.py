#!/usr/bin/env python3
"""
OWL Match Calendar Generator

Loads the configured schedule sources (refreshing their cache files when
they are due), applies the requested team/league/region filters and writes
a single ICS calendar feed.

Usage:
    python generate_calendar.py                              # All default leagues
    python generate_calendar.py --teams BOS,LDN --scores show
    python generate_calendar.py --format detailed --output public/owl.ics
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from owlcal.builder import CalendarBuilder
from owlcal.cache import SourceCacheManager
from owlcal.calendar_gen import feed_to_ics, validate_ics
from owlcal.config import load_config
from owlcal.errors import ConfigError, FeedUnavailableError
from owlcal.options import FilterOptions


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an OWL match calendar feed.")
    parser.add_argument("--config", default="sources.json", help="source configuration file")
    parser.add_argument("--output", default="public/calendar.ics", help="where to write the ICS feed")
    parser.add_argument("--teams", help="comma-separated team abbreviations")
    parser.add_argument("--leagues", help="comma-separated league tags")
    parser.add_argument("--regions", help="comma-separated region names")
    parser.add_argument("--format", default="", help="'detailed' for full team names")
    parser.add_argument("--scores", default="", help="'show' to include results")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def options_from_args(args: argparse.Namespace) -> FilterOptions:
    params = {
        key: value
        for key, value in (
            ("teams", args.teams),
            ("leagues", args.leagues),
            ("regions", args.regions),
            ("format", args.format),
            ("scores", args.scores),
        )
        if value
    }
    return FilterOptions.from_query(params)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "INFO")

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 1

    options = options_from_args(args)
    print(f"Building {config.name} calendar from {len(config.sources)} source(s)...")

    with SourceCacheManager() as cache:
        try:
            feed = CalendarBuilder(config, cache).build(options)
        except FeedUnavailableError as e:
            print(f"ERROR: {e}")
            return 1

    ics_bytes = feed_to_ics(feed)
    if not validate_ics(ics_bytes):
        print("ERROR: Generated ICS failed validation")
        return 1

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(ics_bytes)
    print(f"  Saved {output} ({len(feed.events)} events, ttl {feed.ttl_seconds}s)")

    if feed.failed_sources:
        print(f"Skipped {len(feed.failed_sources)} source(s):")
        for name in feed.failed_sources:
            print(f"  - {name}")

    print("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
