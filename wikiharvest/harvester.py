"""
Harvester
=========
Fetches, parses and streams every discovered entity to the output file.

Architecture:
- one asyncio task per entity, gated by an ``asyncio.Semaphore``
  (``config.concurrency`` in flight at once)
- fetch → normalize → parse → merge discovery metadata → append
- the writer serializes appends, so records land whole, in completion order

Failure policy (``config.on_error``):
- ``fail`` (default): the first entity failure cancels the remaining tasks
  and propagates as ``EntityHarvestError``
- ``skip``: the failure is logged and recorded, the run continues
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from .errors import EntityHarvestError
from .markup_parser import parse_markup
from .models import DiscoveredEntity, HarvestError, HarvestResult, build_record
from .monitor import HarvestMonitor
from .normalizer import normalize_markup
from .output import JsonArrayWriter
from .run_config import HarvestRunConfig
from .utils import raw_page_url

logger = logging.getLogger(__name__)


class Harvester:
    """
    Bounded-concurrency harvest of a discovered entity list.

    Usage::

        harvester = Harvester(config, fetcher, writer)
        result = await harvester.harvest(entities)
    """

    def __init__(
        self,
        config: HarvestRunConfig,
        fetcher,
        writer: JsonArrayWriter,
        monitor: Optional[HarvestMonitor] = None,
    ):
        self.config = config
        self.fetcher = fetcher
        self.writer = writer
        self.monitor = monitor or HarvestMonitor()
        self._errors: List[HarvestError] = []

    def page_url(self, entity: DiscoveredEntity) -> str:
        return raw_page_url(self.config.base_url, entity.link, self.config.raw_suffix)

    async def fetch_record(self, entity: DiscoveredEntity) -> Dict[str, Any]:
        """Fetch and parse one entity's page into its output record."""
        markup = await self.fetcher.fetch_text(self.page_url(entity))
        parsed = parse_markup(normalize_markup(markup, self.config.inline_tags))
        return build_record(parsed, entity)

    async def _harvest_one(self, entity: DiscoveredEntity, semaphore: asyncio.Semaphore) -> bool:
        async with semaphore:
            started = time.monotonic()
            try:
                record = await self.fetch_record(entity)
            except Exception as e:
                logger.error(f"{entity.link} errored! {e}")
                await self.monitor.record_failed(entity)
                if self.config.on_error == "skip":
                    self._errors.append(HarvestError(entity.name, entity.link, str(e)))
                    return False
                raise EntityHarvestError(entity.name, entity.link, e) from e
            fetch_ms = (time.monotonic() - started) * 1000

        self.writer.append(record)
        await self.monitor.record_completed(entity, fetch_ms)
        return True

    async def harvest(self, entities: List[DiscoveredEntity]) -> HarvestResult:
        """
        Harvest all entities into the (already opened) writer.

        Raises:
            EntityHarvestError: On the first failure when ``on_error='fail'``
        """
        self._errors = []
        total = len(entities)
        self.monitor.set_total(total)
        semaphore = asyncio.Semaphore(self.config.concurrency)

        logger.info(
            f"[HARVEST] {total} entities, concurrency={self.config.concurrency}, "
            f"on_error={self.config.on_error}"
        )

        await self.monitor.start()
        stop_reason = "completed"
        tasks = [
            asyncio.create_task(self._harvest_one(entity, semaphore))
            for entity in entities
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException as e:
            stop_reason = f"Error: {e}"
            for task in tasks:
                task.cancel()
            # Let cancelled tasks finish so none writes after we return
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            await self.monitor.set_retries(getattr(self.fetcher, 'retry_count', 0))
            await self.monitor.stop(stop_reason)

        metrics = await self.monitor.snapshot()
        logger.info("\n" + self.monitor.format_summary(metrics))

        return HarvestResult(
            total=total,
            written=self.writer.count,
            errors=list(self._errors),
            stats=metrics.to_dict(),
            output_path=str(self.writer.path),
        )
