"""
Harvest Monitor
===============
Progress and speed tracking for the harvest pass.

Tracks:
- Entities written / failed out of the discovered total
- Entities/sec (rolling 30s window + overall)
- Transport retries
- Per-entity fetch time

Async-safe: all counters are guarded by an asyncio.Lock, so the completion
index handed to the progress callback is unique per entity.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from .models import DiscoveredEntity

logger = logging.getLogger(__name__)

# Rolling window for entities/sec calculation
_ROLLING_WINDOW_SEC = 30.0

ProgressCallback = Callable[[int, int, DiscoveredEntity], None]


@dataclass
class HarvestMetrics:
    """Snapshot of all harvest metrics at a point in time."""
    total: int = 0
    completed: int = 0
    failed: int = 0
    retries: int = 0

    entities_per_sec_rolling: float = 0.0
    entities_per_sec_overall: float = 0.0
    avg_fetch_ms: float = 0.0

    elapsed_sec: float = 0.0
    stop_reason: str = ""

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'completed': self.completed,
            'failed': self.failed,
            'retries': self.retries,
            'entities_per_sec_rolling': self.entities_per_sec_rolling,
            'entities_per_sec_overall': self.entities_per_sec_overall,
            'avg_fetch_ms': self.avg_fetch_ms,
            'elapsed_sec': self.elapsed_sec,
            'stop_reason': self.stop_reason,
        }


class HarvestMonitor:
    """
    Async-safe progress monitor for the harvester.

    Usage::

        monitor = HarvestMonitor(total=len(entities))
        await monitor.start()

        # In each harvest task:
        index = await monitor.record_completed(entity, fetch_ms)

        await monitor.stop()
        metrics = await monitor.snapshot()
    """

    def __init__(self, total: int = 0, report_interval: float = 10.0):
        self._lock = asyncio.Lock()
        self._start_time: float = 0.0
        self._total = total
        self._report_interval = report_interval

        self._completed = 0
        self._failed = 0
        self._retries = 0
        self._fetch_ms_total = 0.0

        self._recent_timestamps: deque[float] = deque()

        self._progress_callback: Optional[ProgressCallback] = None

        self._reporter_task: Optional[asyncio.Task] = None
        self._running = False
        self._stop_reason = ""

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set callback: callback(index, total, entity)"""
        self._progress_callback = callback

    def set_total(self, total: int) -> None:
        self._total = total

    async def start(self) -> None:
        """Start the monitor and periodic reporter."""
        self._start_time = time.monotonic()
        self._running = True
        if self._report_interval > 0:
            self._reporter_task = asyncio.create_task(self._reporter_loop())

    async def stop(self, reason: str = "completed") -> None:
        """Stop the monitor."""
        self._running = False
        self._stop_reason = reason
        if self._reporter_task:
            self._reporter_task.cancel()
            try:
                await self._reporter_task
            except asyncio.CancelledError:
                pass
            self._reporter_task = None

    async def record_completed(self, entity: DiscoveredEntity, fetch_ms: float = 0.0) -> int:
        """Record a written entity; returns its 1-based completion index."""
        now = time.monotonic()
        async with self._lock:
            self._completed += 1
            index = self._completed
            self._fetch_ms_total += fetch_ms
            self._recent_timestamps.append(now)

            cutoff = now - _ROLLING_WINDOW_SEC
            while self._recent_timestamps and self._recent_timestamps[0] < cutoff:
                self._recent_timestamps.popleft()

        logger.info(f"[{index}/{self._total}] {entity.name} {entity.link}")
        if self._progress_callback:
            self._progress_callback(index, self._total, entity)
        return index

    async def record_failed(self, entity: DiscoveredEntity) -> None:
        async with self._lock:
            self._failed += 1

    async def set_retries(self, count: int) -> None:
        async with self._lock:
            self._retries = count

    async def snapshot(self) -> HarvestMetrics:
        """Take a consistent snapshot of all metrics."""
        now = time.monotonic()
        async with self._lock:
            elapsed = now - self._start_time if self._start_time else 0.0

            cutoff = now - _ROLLING_WINDOW_SEC
            while self._recent_timestamps and self._recent_timestamps[0] < cutoff:
                self._recent_timestamps.popleft()
            rolling_count = len(self._recent_timestamps)
            rolling_eps = rolling_count / _ROLLING_WINDOW_SEC if rolling_count else 0.0
            overall_eps = self._completed / elapsed if elapsed > 0 else 0.0
            avg_fetch = self._fetch_ms_total / self._completed if self._completed else 0.0

            return HarvestMetrics(
                total=self._total,
                completed=self._completed,
                failed=self._failed,
                retries=self._retries,
                entities_per_sec_rolling=round(rolling_eps, 2),
                entities_per_sec_overall=round(overall_eps, 2),
                avg_fetch_ms=round(avg_fetch, 1),
                elapsed_sec=round(elapsed, 2),
                stop_reason=self._stop_reason,
            )

    async def _reporter_loop(self) -> None:
        """Periodically log metrics."""
        while self._running:
            await asyncio.sleep(self._report_interval)
            if not self._running:
                break
            m = await self.snapshot()
            logger.info(
                f"[MONITOR] "
                f"done={m.completed}/{m.total} "
                f"fail={m.failed} "
                f"retries={m.retries} "
                f"speed={m.entities_per_sec_rolling:.1f} e/s (rolling) "
                f"{m.entities_per_sec_overall:.1f} e/s (overall) "
                f"avg={m.avg_fetch_ms:.0f}ms "
                f"elapsed={m.elapsed_sec:.0f}s"
            )

    def format_summary(self, metrics: HarvestMetrics) -> str:
        """Format a human-readable summary string."""
        lines = [
            "=" * 65,
            "  HARVEST SUMMARY",
            "=" * 65,
            f"  Entities discovered: {metrics.total}",
            f"  Entities written:    {metrics.completed}",
            f"  Entities failed:     {metrics.failed}",
            f"  Transport retries:   {metrics.retries}",
            "-" * 65,
            f"  Overall speed:       {metrics.entities_per_sec_overall:.2f} entities/sec",
            f"  Avg fetch time:      {metrics.avg_fetch_ms:.0f} ms",
            f"  Elapsed time:        {metrics.elapsed_sec:.1f} s",
            f"  Stop reason:         {metrics.stop_reason}",
            "=" * 65,
        ]
        return "\n".join(lines)
