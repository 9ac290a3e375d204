#!/usr/bin/env python3
"""
Command-line entry point
========================
Runs a full harvest of the wiki's developer reference into one JSON file.

All configuration flows through ``HarvestRunConfig``: defaults, then
``WIKIHARVEST_*`` environment variables (a ``.env`` file is honoured), then
the flags below.

Run with: python -m wikiharvest
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from .errors import HarvestFailure
from .models import HarvestResult
from .pipeline import inspect_pages, run_pipeline
from .run_config import ON_ERROR_CHOICES, HarvestRunConfig

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='wikiharvest',
        description='Harvest function and enum documentation from a wiki into JSON',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m wikiharvest                                  # Full run with defaults
  python -m wikiharvest --output out/api.json --concurrency 2
  python -m wikiharvest --on-error skip                  # Keep going past broken pages
  python -m wikiharvest --inspect /gmod/DLabel:SetDisabled /gmod/Entity:GetPos
        """
    )
    # Every flag defaults to None so unset flags keep env/default values
    parser.add_argument('--base-url', type=str, help='Wiki site root (default: https://wiki.facepunch.com)')
    parser.add_argument('--index-path', type=str, help='Index page path (default: /gmod/)')
    parser.add_argument('--section-label', type=str, help='Sidebar section to harvest (default: "Developer Reference")')
    parser.add_argument('--raw-suffix', type=str, help='Suffix selecting the raw markup view (default: ?format=text)')
    parser.add_argument('--output', type=str, help='Output JSON file (default: dist/functions.json)')
    parser.add_argument('--concurrency', type=int, help='Entity pages fetched at once (default: 4)')
    parser.add_argument('--max-retries', type=int, help='Retries per HTTP request (default: 100)')
    parser.add_argument('--timeout', type=float, help='Timeout per HTTP request in seconds (default: 30)')
    parser.add_argument(
        '--on-error', choices=ON_ERROR_CHOICES,
        help='fail: abort on the first broken entity (default); skip: record it and continue',
    )
    parser.add_argument(
        '--inspect', nargs='+', metavar='LINK',
        help='Parse the given page links and print them instead of running a harvest',
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Warnings and errors only')
    return parser


def print_summary(result: HarvestResult, elapsed: float) -> None:
    """Print harvest summary."""
    print("\n" + "=" * 65)
    print("HARVEST COMPLETE")
    print("=" * 65)
    print(f"  Entities discovered: {result.total}")
    print(f"  Records written:     {result.written}")
    if result.failed:
        print(f"  Entities skipped:    {result.failed}")
        for error in result.errors[:20]:
            print(f"    - {error.link}: {error.error}")
    retries = result.stats.get('retries', 0)
    if retries:
        print(f"  Transport retries:   {retries}")
    print(f"  Total time:          {elapsed:.1f}s")
    print(f"  Output:              {result.output_path}")
    print("=" * 65)


def run_inspect(cfg: HarvestRunConfig, links) -> int:
    pages = asyncio.run(inspect_pages(links, cfg))
    print(json.dumps(pages, indent=2, ensure_ascii=False))
    return 0


def main(argv=None) -> int:
    """Parse argv, build HarvestRunConfig, run. Returns the exit status."""
    env_path = Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(env_path)

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        cfg = HarvestRunConfig.from_cli_args(args).validate()
    except ValueError as e:
        parser.error(str(e))

    if args.inspect:
        try:
            return run_inspect(cfg, args.inspect)
        except HarvestFailure as e:
            logger.error(f"Inspect failed: {e}")
            return 1

    cfg.log_summary()
    logger.info(f"Started at {datetime.now().isoformat(timespec='seconds')}")
    start = time.time()

    try:
        result = run_pipeline(cfg)
    except KeyboardInterrupt:
        logger.error(f"Interrupted at {datetime.now().isoformat(timespec='seconds')}")
        return 130
    except HarvestFailure as e:
        logger.error(f"Failed at {datetime.now().isoformat(timespec='seconds')}: {e}")
        return 1
    except Exception as e:
        logger.error(f"Failed at {datetime.now().isoformat(timespec='seconds')}: {e}", exc_info=True)
        return 1

    logger.info(f"Finished at {datetime.now().isoformat(timespec='seconds')}")
    print_summary(result, time.time() - start)
    return 0


if __name__ == '__main__':
    sys.exit(main())
