"""Pydantic schemas for storm API responses."""

from pydantic import BaseModel


class BarographPointOut(BaseModel):
    time: str
    pressure: float


class ObservationOut(BaseModel):
    timestamp: int
    pressure: float
    temperature: float


class SchedulerStats(BaseModel):
    last_evaluation: str | None = None
    last_alert: str | None = None
    last_alert_flags: list[str] = []
    cycles: int = 0
    skipped_cycles: int = 0
    last_pruned: int | None = None


class StatusResponse(BaseModel):
    running: bool
    latest: ObservationOut | None = None
    scheduler: SchedulerStats
