"""FastAPI application factory and lifespan for the storm alert service."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .models.database import init_database, SessionLocal
from .models.store import ObservationStore
from .services.barograph import BarographService
from .services.mqtt_transport import StormTransport
from .services.reading_buffer import ReadingBuffer
from .services.scheduler import Scheduler
from .services.window_query import WindowQuery
from .api.router import api_router
from .api import storm as storm_api

# Configure logging for our app (uvicorn only configures its own loggers)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:     %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start/stop MQTT transport and periodic cycles."""
    logger.info("Starting R nineT storm alert service...")

    logger.info("Database: %s", settings.db_path)
    init_database()

    store = ObservationStore(SessionLocal)
    window_query = WindowQuery(store)
    barograph = BarographService(store, settings)
    buffer = ReadingBuffer(store)

    transport = StormTransport(settings, buffer, barograph)
    scheduler = Scheduler(window_query, store, settings)
    scheduler.set_publish_callback(transport.publish_alert)

    storm_api.set_services(barograph, scheduler, window_query)

    transport.start()
    scheduler_task = asyncio.create_task(scheduler.run())
    logger.info(
        "Scheduler started (evaluation every %ds, retention every %ds)",
        settings.evaluation_interval_sec, settings.retention_interval_sec,
    )

    yield

    logger.info("Shutting down...")
    scheduler.stop()
    scheduler_task.cancel()
    try:
        await asyncio.wait_for(asyncio.shield(scheduler_task), timeout=settings.store_timeout_sec)
    except (asyncio.CancelledError, asyncio.TimeoutError):
        pass
    transport.stop()
    storm_api.set_services(None, None, None)
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Storm Watch",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(api_router)
    return app


# Application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
