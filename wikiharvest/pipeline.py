"""
Harvest Pipeline
================
Drives a full run: discovery → harvest → closed JSON artifact.

Artifact lifecycle:
1. **Open**: create the output directory, write ``[``
2. **Discover**: fetch and walk the index page
3. **Harvest**: stream every entity's record into the file
4. **Close**: write ``]``, only after a fully successful harvest

Any fatal error propagates without the closing token, leaving the file as a
valid JSON-array prefix for inspection or manual recovery.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from .discovery import EntityDiscoverer
from .fetcher import PageFetcher
from .harvester import Harvester
from .markup_parser import parse_markup
from .models import HarvestResult
from .monitor import HarvestMonitor
from .normalizer import normalize_markup
from .output import JsonArrayWriter
from .run_config import HarvestRunConfig
from .utils import raw_page_url

logger = logging.getLogger(__name__)


class HarvestPipeline:
    """
    Orchestrates one harvest run.

    Usage::

        pipeline = HarvestPipeline(HarvestRunConfig())
        result = pipeline.run_sync()
    """

    def __init__(
        self,
        config: HarvestRunConfig = None,
        fetcher=None,
        monitor: Optional[HarvestMonitor] = None,
    ):
        """
        Args:
            config: Run configuration (validated here)
            fetcher: Object with an async ``fetch_text(url)``; a
                ``PageFetcher`` is created when omitted
            monitor: Progress monitor shared with the harvester
        """
        self.config = (config or HarvestRunConfig()).validate()
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or PageFetcher(self.config)
        self.monitor = monitor or HarvestMonitor()

    async def run(self) -> HarvestResult:
        writer = JsonArrayWriter(self.config.output_path)
        try:
            writer.open_array()

            discoverer = EntityDiscoverer(self.config, self.fetcher)
            entities = await discoverer.discover()

            harvester = Harvester(self.config, self.fetcher, writer, self.monitor)
            result = await harvester.harvest(entities)

            writer.close_array()
            return result
        finally:
            writer.close()
            if self._owns_fetcher:
                self.fetcher.close()

    def run_sync(self) -> HarvestResult:
        """Sync wrapper: run the pipeline from synchronous code."""
        return asyncio.run(self.run())


def run_pipeline(config: HarvestRunConfig = None, **kwargs) -> HarvestResult:
    """Convenience function: run a full harvest and return its result."""
    return HarvestPipeline(config, **kwargs).run_sync()


async def inspect_pages(
    links: Iterable[str],
    config: HarvestRunConfig = None,
    fetcher=None,
) -> List[Dict[str, Any]]:
    """
    Fetch and parse individual pages without touching the artifact.

    Debug aid for checking how particular pages come out of the parser.
    """
    config = config or HarvestRunConfig()
    owns_fetcher = fetcher is None
    fetcher = fetcher or PageFetcher(config)
    try:
        parsed_pages = []
        for link in links:
            url = raw_page_url(config.base_url, link, config.raw_suffix)
            markup = await fetcher.fetch_text(url)
            parsed = parse_markup(normalize_markup(markup, config.inline_tags))
            parsed_pages.append({'link': link, 'page': parsed})
        return parsed_pages
    finally:
        if owns_fetcher:
            fetcher.close()
