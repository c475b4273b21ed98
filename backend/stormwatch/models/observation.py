"""Observation ORM model for the pressure/temperature time series."""

from sqlalchemy import Float, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class ObservationModel(Base):
    __tablename__ = "weather"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Seconds since epoch (UTC)
    timestamp: Mapped[int] = mapped_column(Integer, nullable=False)
    pressure: Mapped[float] = mapped_column(Float, nullable=False)  # hPa
    temperature: Mapped[float] = mapped_column(Float, nullable=False)  # °C

    __table_args__ = (
        Index("idx_weather_timestamp", "timestamp"),
    )
