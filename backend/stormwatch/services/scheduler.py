"""Periodic evaluation and retention cycles.

The evaluation cycle compares the latest pressure against the pressure
logged 3 and 12 hours ago, classifies the trend and publishes any raised
alerts. The retention cycle deletes observations older than the retention
window. Both loops run on the asyncio event loop; store calls are pushed to
a worker thread and bounded by the store timeout.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from ..config import Settings
from ..errors import NotFound, StoreUnavailable
from ..models.store import ObservationStore
from .storm_rules import AlertMask, classify, encode_mask, flag_names
from .window_query import SECONDS_PER_HOUR, WindowQuery

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Scheduler:
    """Owns the evaluation and retention loops."""

    def __init__(
        self,
        window_query: WindowQuery,
        store: ObservationStore,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ):
        self.window_query = window_query
        self.store = store
        self.evaluation_interval = settings.evaluation_interval_sec
        self.retention_interval = settings.retention_interval_sec
        self.retention_hours = settings.retention_hours
        self.store_timeout = settings.store_timeout_sec
        self._clock = clock
        self._running = False
        self._tasks: list[asyncio.Task] = []
        self._publish_callback: Callable[[str], Any] | None = None

        self._last_evaluation: Optional[datetime] = None
        self._last_mask: Optional[AlertMask] = None
        self._cycles = 0
        self._skipped = 0
        self._last_pruned: Optional[int] = None

    @property
    def stats(self) -> dict:
        return {
            "last_evaluation": self._last_evaluation.isoformat() if self._last_evaluation else None,
            "last_alert": encode_mask(self._last_mask) if self._last_mask is not None else None,
            "last_alert_flags": flag_names(self._last_mask) if self._last_mask else [],
            "cycles": self._cycles,
            "skipped_cycles": self._skipped,
            "last_pruned": self._last_pruned,
        }

    def set_publish_callback(self, callback: Callable[[str], Any]) -> None:
        """Set the callback that receives the binary alert string.

        In the running service this is StormTransport.publish_alert.
        """
        self._publish_callback = callback

    async def _call_store(self, fn: Callable[..., T], *args) -> T:
        """Run a blocking store call in a worker thread with a deadline."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.store_timeout)
        except asyncio.TimeoutError as e:
            raise StoreUnavailable(f"store call timed out after {self.store_timeout}s") from e

    async def evaluate(self) -> Optional[AlertMask]:
        """Run one evaluation cycle. Returns the mask, or None if skipped."""
        self._cycles += 1
        try:
            past_12h = await self._call_store(self.window_query.value_at_age, 12)
            past_3h = await self._call_store(self.window_query.value_at_age, 3)
            now = await self._call_store(self.window_query.latest)
        except NotFound as e:
            self._skipped += 1
            logger.info("Skipping evaluation: %s", e)
            return None
        except StoreUnavailable as e:
            self._skipped += 1
            logger.warning("Skipping evaluation, store unavailable: %s", e)
            return None

        delta12h = now.pressure - past_12h
        delta3h = now.pressure - past_3h
        alert = classify(delta12h, delta3h, now.pressure, now.temperature)

        self._last_evaluation = datetime.now(timezone.utc)
        self._last_mask = alert

        logger.info(
            "Evaluation: delta12h=%.1f delta3h=%.1f pressure=%.1f temperature=%.1f alert=0b%s",
            delta12h, delta3h, now.pressure, now.temperature, encode_mask(alert),
        )

        if alert:
            logger.warning("Storm alert: %s", ", ".join(flag_names(alert)))
            if self._publish_callback:
                try:
                    self._publish_callback(encode_mask(alert))
                except Exception as e:
                    logger.error("Failed to publish alert: %s", e, exc_info=True)
        return alert

    async def prune(self) -> Optional[int]:
        """Run one retention cycle. Returns rows deleted, or None on failure."""
        cutoff = int(self._clock()) - self.retention_hours * SECONDS_PER_HOUR
        try:
            deleted = await self._call_store(self.store.prune, cutoff)
        except StoreUnavailable as e:
            logger.error("Retention cleanup failed: %s", e)
            return None
        self._last_pruned = deleted
        logger.info("Retention: removed %d observations older than %dh", deleted, self.retention_hours)
        return deleted

    async def _loop(self, name: str, cycle: Callable[[], Any], interval: int) -> None:
        logger.info("%s loop starting with %ds interval", name, interval)
        while self._running:
            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break
            if not self._running:
                break
            try:
                await cycle()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("%s cycle error: %s", name, e, exc_info=True)

    async def run(self) -> None:
        """Run both loops until stopped or cancelled."""
        self._running = True
        self._tasks = [
            asyncio.create_task(self._loop("Evaluation", self.evaluate, self.evaluation_interval)),
            asyncio.create_task(self._loop("Retention", self.prune, self.retention_interval)),
        ]
        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            pass
        finally:
            for task in self._tasks:
                task.cancel()
            self._tasks = []

    def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
