from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.maintenance import build_default_maintenance
from services.telemetry import build_default_service
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_service()
    if get_settings().autostart:
        service.start()
    try:
        yield
    finally:
        service.shutdown()
        build_default_maintenance.cache_clear()
        build_default_service.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="IoT Telemetry Simulator",
        description="In-memory device registry with simulated sensor telemetry and alerts.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
