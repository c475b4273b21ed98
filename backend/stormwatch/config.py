"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

# Resolve config: prefer system config (installed), fall back to repo .env (dev)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SYSTEM_CONF = Path("/etc/stormwatch/stormwatch.conf")
_ENV_FILE = _SYSTEM_CONF if _SYSTEM_CONF.exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Database
    db_path: str = "weather.db"
    store_timeout_sec: float = 10.0

    @model_validator(mode="after")
    def _resolve_db_path(self) -> "Settings":
        """Make db_path absolute — relative to /var/lib/stormwatch if installed, else project root."""
        if self.db_path == ":memory:":
            return self
        p = Path(self.db_path)
        if not p.is_absolute():
            if _ENV_FILE == _SYSTEM_CONF:
                self.db_path = str(Path("/var/lib/stormwatch") / p)
            else:
                self.db_path = str(_PROJECT_ROOT / p)
        return self

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    # MQTT broker
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_client_id: str = "r9t-storm"
    mqtt_keepalive: int = 60
    mqtt_reconnect_max_sec: int = 120

    # MQTT topics
    pressure_topic: str = "weather/pressure"
    temperature_topic: str = "weather/temperature"
    barograph_request_topic: str = "storm/barograph"
    barograph_topic: str = "weather/barograph"
    alert_topic: str = "alarm/weather"

    # Periodic cycles
    evaluation_interval_sec: int = 5 * 60
    retention_interval_sec: int = 60 * 60
    retention_hours: int = 24

    # Barograph
    bucket_minutes: int = 15
    barograph_hours: int = 24
    barograph_timezone: str = "UTC"

    @field_validator("bucket_minutes")
    @classmethod
    def _check_bucket_minutes(cls, v: int) -> int:
        if v <= 0 or 60 % v != 0:
            raise ValueError("bucket_minutes must divide an hour evenly")
        return v

    @property
    def barograph_points(self) -> int:
        # 24 hours @ 4 buckets per hour = 96 points
        return self.barograph_hours * 60 // self.bucket_minutes

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "STORM_", "env_file": str(_ENV_FILE)}


settings = Settings()
