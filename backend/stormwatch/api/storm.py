"""GET /storm/barograph - Down-sampled pressure history.
   GET /storm/status - Latest observation and scheduler diagnostics.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from ..errors import NotFound, StoreUnavailable
from ..schemas.storm import BarographPointOut, StatusResponse

logger = logging.getLogger(__name__)
router = APIRouter()

# These will be set by main.py during startup
_barograph = None
_scheduler = None
_window_query = None


def set_services(barograph, scheduler, window_query):
    global _barograph, _scheduler, _window_query
    _barograph = barograph
    _scheduler = scheduler
    _window_query = window_query


@router.get("/barograph", response_model=list[BarographPointOut])
def get_barograph():
    """Return the last 24 hours of pressure averaged per 15 minute bucket."""
    if _barograph is None:
        raise HTTPException(status_code=503, detail="Service not started")
    try:
        return _barograph.to_payload()
    except StoreUnavailable as e:
        logger.warning("Barograph unavailable: %s", e)
        raise HTTPException(status_code=503, detail="Store unavailable")


@router.get("/status", response_model=StatusResponse)
def get_status():
    """Return the latest observation and scheduler statistics."""
    latest = None
    if _window_query is not None:
        try:
            latest = asdict(_window_query.latest())
        except (NotFound, StoreUnavailable):
            latest = None

    return {
        "running": _scheduler is not None,
        "latest": latest,
        "scheduler": _scheduler.stats if _scheduler else {},
    }
