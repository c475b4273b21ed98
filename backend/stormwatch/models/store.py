"""Append-only observation store backed by the ``weather`` table.

Every method opens its own session, so the store can be shared by the MQTT
network thread, the scheduler's worker threads and HTTP handlers. SQLAlchemy
errors are re-raised as StoreUnavailable.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import StoreUnavailable
from .observation import ObservationModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Observation:
    """One paired pressure/temperature reading."""
    timestamp: int  # seconds since epoch
    pressure: float  # hPa
    temperature: float  # °C


def _to_observation(row: ObservationModel) -> Observation:
    return Observation(
        timestamp=row.timestamp,
        pressure=row.pressure,
        temperature=row.temperature,
    )


class ObservationStore:
    """Time series of observations with range queries and pruning."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _session(self) -> Session:
        try:
            return self._session_factory()
        except SQLAlchemyError as e:
            raise StoreUnavailable(str(e)) from e

    def append(self, observation: Observation) -> None:
        db = self._session()
        try:
            db.add(ObservationModel(
                timestamp=observation.timestamp,
                pressure=observation.pressure,
                temperature=observation.temperature,
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailable(f"insert failed: {e}") from e
        finally:
            db.close()

    def first_after(self, cutoff: int) -> Optional[Observation]:
        """Earliest observation with ``timestamp > cutoff``."""
        stmt = (
            select(ObservationModel)
            .where(ObservationModel.timestamp > cutoff)
            .order_by(ObservationModel.timestamp)
            .limit(1)
        )
        return self._first(stmt)

    def latest(self) -> Optional[Observation]:
        stmt = (
            select(ObservationModel)
            .order_by(ObservationModel.timestamp.desc())
            .limit(1)
        )
        return self._first(stmt)

    def history(self) -> list[Observation]:
        """All stored observations, oldest first."""
        stmt = select(ObservationModel).order_by(ObservationModel.timestamp, ObservationModel.id)
        db = self._session()
        try:
            return [_to_observation(r) for r in db.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"history query failed: {e}") from e
        finally:
            db.close()

    def prune(self, before: int) -> int:
        """Delete observations older than ``before``; returns rows removed."""
        db = self._session()
        try:
            result = db.execute(
                delete(ObservationModel).where(ObservationModel.timestamp < before)
            )
            db.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailable(f"prune failed: {e}") from e
        finally:
            db.close()

    def _first(self, stmt) -> Optional[Observation]:
        db = self._session()
        try:
            row = db.scalars(stmt).first()
            return _to_observation(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"query failed: {e}") from e
        finally:
            db.close()
