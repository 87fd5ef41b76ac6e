from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from app.stream import router as stream_router
from datastore.ac_status import build_default_store
from logging_config import configure_logging
from peripherals.air_conditioner import build_default_actuator
from peripherals.sensor import build_default_sensor
from services.atmosphere import build_default_atmosphere_service
from services.home import build_default_home


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    home = build_default_home()
    try:
        yield
    finally:
        home.shutdown()
        build_default_home.cache_clear()
        build_default_atmosphere_service.cache_clear()
        build_default_store.cache_clear()
        build_default_actuator.cache_clear()
        build_default_sensor.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Mattori Home",
        description="Atmosphere streaming and air-conditioner control for one room.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    app.include_router(stream_router)
    return app

app = create_app()
