"""Command-line entry point: scrape one batch and print the results as JSON.

Usage:
    # Scrape two listings, tagging them with a locality
    scrape-cascade https://www.zillow.com/homedetails/1_zpid/ \\
        https://www.redfin.com/FL/Miami/home/2 --city Miami --state FL

    # Verbose console logs on stderr, compact JSON on stdout
    scrape-cascade https://example.com --log-level DEBUG --indent 0

Environment:
    APIFY_TOKEN enables the actor cascade.  Without it every target goes
    straight to the direct fetch.  Every other setting can be overridden
    through its upper-case environment variable (see ``config.settings``).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from scrape_cascade import scrape
from scrape_cascade.config.settings import get_settings
from scrape_cascade.core.logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrape-cascade",
        description="Scrape URLs through the actor cascade with direct and synthetic fallbacks",
    )
    parser.add_argument("urls", nargs="+", metavar="URL", help="Target URLs")
    parser.add_argument("--city", default=None, help="Locality tag for every target")
    parser.add_argument("--state", default=None, help="State tag for every target")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LOG_LEVEL setting, INFO)",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation; 0 prints one line (default: 2)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    results = asyncio.run(scrape(args.urls, city=args.city, state=args.state, settings=settings))

    indent = args.indent if args.indent > 0 else None
    json.dump([r.to_dict() for r in results], sys.stdout, indent=indent, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
