"""Top-level API router aggregation."""

from fastapi import APIRouter

from . import storm

api_router = APIRouter()

api_router.include_router(storm.router, prefix="/storm")
