"""Pairs independently arriving pressure and temperature samples.

Pressure and temperature come in on separate MQTT topics. The buffer holds
the most recent unconsumed value of each; as soon as both are present it
stamps them with the current time and writes one observation to the store.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from ..errors import MalformedInput, StoreUnavailable
from ..models.store import Observation, ObservationStore

logger = logging.getLogger(__name__)


def parse_sample(payload: Union[bytes, str]) -> float:
    """Parse a single numeric sample from an MQTT payload."""
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedInput("sample is not valid UTF-8") from e
    try:
        value = float(payload.strip())
    except ValueError as e:
        raise MalformedInput(f"not a number: {payload!r}") from e
    if not math.isfinite(value):
        raise MalformedInput(f"not a finite number: {payload!r}")
    return value


@dataclass
class PendingPair:
    pressure: Optional[float] = None
    temperature: Optional[float] = None

    @property
    def complete(self) -> bool:
        return self.pressure is not None and self.temperature is not None

    def clear(self) -> None:
        self.pressure = None
        self.temperature = None


class ReadingBuffer:
    """Single-owner pending pair; every mutation runs under one lock."""

    def __init__(self, store: ObservationStore, clock: Callable[[], float] = time.time):
        self._store = store
        self._clock = clock
        self._pending = PendingPair()
        self._lock = threading.Lock()

    @property
    def pending(self) -> PendingPair:
        """Snapshot of the current pending pair."""
        with self._lock:
            return PendingPair(self._pending.pressure, self._pending.temperature)

    def offer_pressure(self, value: float) -> Optional[Observation]:
        with self._lock:
            self._pending.pressure = value
            return self._flush()

    def offer_temperature(self, value: float) -> Optional[Observation]:
        with self._lock:
            self._pending.temperature = value
            return self._flush()

    def _flush(self) -> Optional[Observation]:
        """Write the pair if complete. Caller holds the lock."""
        if not self._pending.complete:
            return None

        observation = Observation(
            timestamp=int(self._clock()),
            pressure=self._pending.pressure,
            temperature=self._pending.temperature,
        )
        try:
            self._store.append(observation)
        except StoreUnavailable as e:
            # Keep the pair; the next sample retries the write
            logger.error("Failed to store observation: %s", e)
            return None

        logger.info(
            "Storm [p/t]: %.1fhPa / %.1fº", observation.pressure, observation.temperature,
        )
        self._pending.clear()
        return observation
