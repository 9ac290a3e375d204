"""
Wiki API Harvester Package
Extracts a JSON catalog of documented functions and enums from a wiki's
developer reference.

CLI Usage:
    python -m wikiharvest [options]

    Options:
        --output        Output JSON file (default: dist/functions.json)
        --concurrency   Entity pages fetched at once (default: 4)
        --max-retries   Retries per HTTP request (default: 100)
        --on-error      fail | skip (default: fail)
        --inspect       Parse and print individual pages
"""

from .errors import (
    HarvestFailure, DiscoveryError, FetchError, MarkupParseError, EntityHarvestError,
)
from .models import (
    EntityKind, Realm, DiscoveredEntity, HarvestError, HarvestResult, build_record,
)
from .normalizer import normalize_markup
from .markup_parser import parse_markup, as_list
from .discovery import EntityDiscoverer, parse_index
from .fetcher import PageFetcher
from .output import JsonArrayWriter
from .monitor import HarvestMonitor, HarvestMetrics
from .harvester import Harvester
from .pipeline import HarvestPipeline, run_pipeline, inspect_pages
from .run_config import HarvestRunConfig
from .utils import RetryHandler

__all__ = [
    # Errors
    'HarvestFailure',
    'DiscoveryError',
    'FetchError',
    'MarkupParseError',
    'EntityHarvestError',
    # Model
    'EntityKind',
    'Realm',
    'DiscoveredEntity',
    'HarvestError',
    'HarvestResult',
    'build_record',
    # Stages
    'normalize_markup',
    'parse_markup',
    'as_list',
    'EntityDiscoverer',
    'parse_index',
    'PageFetcher',
    'JsonArrayWriter',
    'HarvestMonitor',
    'HarvestMetrics',
    'Harvester',
    'HarvestPipeline',
    'run_pipeline',
    'inspect_pages',
    'HarvestRunConfig',
    'RetryHandler',
]

__version__ = '1.0.0'
