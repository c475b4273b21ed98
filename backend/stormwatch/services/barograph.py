"""Barograph: the stored pressure history down-sampled for charting.

Observations are grouped into calendar-aligned buckets (15 minutes by
default, i.e. 4 per hour), each bucket's pressures are averaged and rounded
to one decimal place, and only the most recent buckets are kept (96 by
default: 24 hours @ 4 per hour).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from ..config import Settings
from ..models.store import Observation, ObservationStore

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_MINUTES = 15
DEFAULT_MAX_POINTS = 96

_ONE_DECIMAL = Decimal("0.1")


@dataclass(frozen=True, order=True)
class BucketKey:
    """Calendar bucket identified by its absolute start.

    Keying on the instant rather than the local wall clock keeps the two
    repeated hours of a DST fall-back apart. hour and slot are the local
    labels only.
    """
    start: int  # epoch seconds
    hour: int = field(compare=False)
    slot: int = field(compare=False)


@dataclass
class _Accumulator:
    total: float = 0.0
    samples: int = 0


@dataclass(frozen=True)
class BarographPoint:
    time: str  # "HH:MM", start of the bucket
    pressure: float

    def to_dict(self) -> dict[str, Any]:
        return {"time": self.time, "pressure": self.pressure}


def round_half_up(value: float) -> float:
    """Round to one decimal place, halves away from zero."""
    return float(Decimal(repr(value)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def bucket_key(timestamp: int, bucket_minutes: int = DEFAULT_BUCKET_MINUTES,
               tz: tzinfo = timezone.utc) -> BucketKey:
    dt = datetime.fromtimestamp(timestamp, tz=tz)
    start = int(timestamp) - (dt.minute % bucket_minutes) * 60 - dt.second
    return BucketKey(start=start, hour=dt.hour, slot=dt.minute // bucket_minutes)


def aggregate(
    history: Iterable[Observation],
    bucket_minutes: int = DEFAULT_BUCKET_MINUTES,
    max_points: int = DEFAULT_MAX_POINTS,
    tz: tzinfo = timezone.utc,
) -> list[BarographPoint]:
    """Average pressure per bucket, oldest first, keeping the last ``max_points``."""
    buckets: dict[BucketKey, _Accumulator] = {}
    for obs in history:
        acc = buckets.setdefault(bucket_key(obs.timestamp, bucket_minutes, tz), _Accumulator())
        acc.total += obs.pressure
        acc.samples += 1

    points = [
        BarographPoint(
            time=f"{key.hour:02d}:{key.slot * bucket_minutes:02d}",
            pressure=round_half_up(acc.total / acc.samples),
        )
        for key, acc in sorted(buckets.items())
    ]

    # Drop the oldest points beyond the cap
    if len(points) > max_points:
        points = points[len(points) - max_points:]
    return points


class BarographService:
    """Builds the barograph from the full stored history."""

    def __init__(self, store: ObservationStore, settings: Settings):
        self._store = store
        self.bucket_minutes = settings.bucket_minutes
        self.max_points = settings.barograph_points
        if settings.barograph_timezone.upper() == "UTC":
            self.tz = timezone.utc
        else:
            self.tz = ZoneInfo(settings.barograph_timezone)

    def barograph(self) -> list[BarographPoint]:
        history = self._store.history()
        points = aggregate(history, self.bucket_minutes, self.max_points, self.tz)
        logger.debug("Barograph: %d observations -> %d points", len(history), len(points))
        return points

    def to_payload(self) -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.barograph()]
