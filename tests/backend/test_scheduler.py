"""Tests for the evaluation and retention cycles."""

import asyncio
import time

from stormwatch.config import Settings
from stormwatch.errors import NotFound, StoreUnavailable
from stormwatch.services.scheduler import Scheduler
from stormwatch.services.storm_rules import AlertMask
from stormwatch.services.window_query import WindowQuery

HOUR = 3600


def _scheduler(store, clock, **overrides) -> tuple[Scheduler, list[str]]:
    settings = Settings(db_path=":memory:", **overrides)
    scheduler = Scheduler(WindowQuery(store, clock), store, settings, clock)
    published: list[str] = []
    scheduler.set_publish_callback(published.append)
    return scheduler, published


class EmptyWindowQuery:
    def value_at_age(self, hours):
        raise NotFound("empty")

    def latest(self):
        raise NotFound("empty")


class BrokenStore:
    def prune(self, before):
        raise StoreUnavailable("disk I/O error")


class BrokenWindowQuery:
    def value_at_age(self, hours):
        raise StoreUnavailable("disk I/O error")

    def latest(self):
        raise StoreUnavailable("disk I/O error")


class SlowWindowQuery:
    def value_at_age(self, hours):
        time.sleep(0.3)
        return 1000.0

    def latest(self):
        raise AssertionError("should time out before reaching latest()")


class TestEvaluation:
    def test_empty_store_publishes_nothing(self, store, clock):
        scheduler, published = _scheduler(store, clock)
        assert asyncio.run(scheduler.evaluate()) is None
        assert published == []
        assert scheduler.stats["skipped_cycles"] == 1

    def test_falling_pressure_publishes_alert(self, store, add, clock):
        now = int(clock.now)
        add(now - 12 * HOUR + 60, 1012.0)
        add(now - 3 * HOUR + 60, 1008.0)
        add(now, 1000.0, 20.0)

        scheduler, published = _scheduler(store, clock)
        result = asyncio.run(scheduler.evaluate())

        expected = AlertMask.STORM | AlertMask.STRONG_WIND | AlertMask.SEVERE_THUNDERSTORM
        assert result == expected
        assert published == ["10100010"]
        assert scheduler.stats["last_alert"] == "10100010"
        assert scheduler.stats["last_alert_flags"] == ["STRONG_WIND", "STORM", "SEVERE_THUNDERSTORM"]

    def test_steady_pressure_publishes_nothing(self, store, add, clock):
        now = int(clock.now)
        add(now - 11 * HOUR, 1013.0)
        add(now - 2 * HOUR, 1013.0)
        add(now, 1013.0)

        scheduler, published = _scheduler(store, clock)
        assert asyncio.run(scheduler.evaluate()) == AlertMask.NONE
        assert published == []

    def test_store_failure_skips_cycle(self, store, clock):
        settings = Settings(db_path=":memory:")
        scheduler = Scheduler(BrokenWindowQuery(), store, settings, clock)
        assert asyncio.run(scheduler.evaluate()) is None

    def test_store_timeout_skips_cycle(self, store, clock):
        settings = Settings(db_path=":memory:", store_timeout_sec=0.05)
        scheduler = Scheduler(SlowWindowQuery(), store, settings, clock)
        assert asyncio.run(scheduler.evaluate()) is None
        assert scheduler.stats["skipped_cycles"] == 1

    def test_publish_failure_is_contained(self, store, add, clock):
        now = int(clock.now)
        add(now - 3 * HOUR + 60, 1010.0)
        add(now, 1000.0)

        scheduler, _ = _scheduler(store, clock)

        def boom(wire):
            raise RuntimeError("broker gone")

        scheduler.set_publish_callback(boom)
        assert AlertMask.STORM in asyncio.run(scheduler.evaluate())


class TestRetention:
    def test_prunes_older_than_retention_window(self, store, add, clock):
        now = int(clock.now)
        add(now - 25 * HOUR, 1000.0)
        add(now - HOUR, 1001.0)

        scheduler, _ = _scheduler(store, clock)
        assert asyncio.run(scheduler.prune()) == 1
        assert [o.pressure for o in store.history()] == [1001.0]
        assert scheduler.stats["last_pruned"] == 1

    def test_failure_is_logged_not_raised(self, clock):
        settings = Settings(db_path=":memory:")
        scheduler = Scheduler(EmptyWindowQuery(), BrokenStore(), settings, clock)
        assert asyncio.run(scheduler.prune()) is None


class TestLoops:
    def test_run_until_stopped(self, clock):
        settings = Settings(db_path=":memory:", evaluation_interval_sec=0, retention_interval_sec=3600)
        scheduler = Scheduler(EmptyWindowQuery(), BrokenStore(), settings, clock)

        async def scenario():
            task = asyncio.create_task(scheduler.run())
            await asyncio.sleep(0.1)
            scheduler.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(scenario())
        assert scheduler.stats["cycles"] >= 1
