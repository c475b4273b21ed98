"""Shared fixtures: in-memory observation store and a controllable clock."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stormwatch.config import Settings
from stormwatch.models.database import Base, make_engine
from stormwatch.models.store import Observation, ObservationStore
from stormwatch.models import observation  # noqa: F401

# 2024-03-10 00:00:00 UTC, aligned to a bucket boundary
BASE_TS = int(datetime(2024, 3, 10, tzinfo=timezone.utc).timestamp())


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = BASE_TS):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def base_ts():
    return BASE_TS


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return ObservationStore(sessionmaker(bind=engine, autocommit=False, autoflush=False))


@pytest.fixture
def test_settings():
    return Settings(db_path=":memory:")


@pytest.fixture
def add(store):
    """Append an observation to the store."""
    def _add(timestamp: int, pressure: float, temperature: float = 20.0) -> None:
        store.append(Observation(timestamp=timestamp, pressure=pressure, temperature=temperature))
    return _add
