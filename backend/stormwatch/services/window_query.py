"""Point lookups into the observation history by age."""

import time
from typing import Callable

from ..errors import NotFound
from ..models.store import Observation, ObservationStore

SECONDS_PER_HOUR = 3600


class WindowQuery:
    """Reads the pressure recorded N hours ago and the latest observation."""

    def __init__(self, store: ObservationStore, clock: Callable[[], float] = time.time):
        self._store = store
        self._clock = clock

    def value_at_age(self, hours: float) -> float:
        """Return the earliest pressure logged after ``now - hours``.

        Raises NotFound if nothing was logged since the cutoff.
        """
        cutoff = int(self._clock()) - int(hours * SECONDS_PER_HOUR)
        observation = self._store.first_after(cutoff)
        if observation is None:
            raise NotFound(f"no observation in the last {hours}h")
        return observation.pressure

    def latest(self) -> Observation:
        observation = self._store.latest()
        if observation is None:
            raise NotFound("no observations stored")
        return observation
