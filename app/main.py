from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.orchestrator import build_default_orchestrator
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    orchestrator = build_default_orchestrator()
    if get_settings().seed_sensors_on_startup:
        orchestrator.registry.seed_from_catalog()
    try:
        yield
    finally:
        orchestrator.shutdown()
        build_default_orchestrator.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="EnviroDash Ingest",
        description=(
            "Fetches PurpleAir and AcuRite telemetry, stores it idempotently, "
            "and serves it merged with stored history."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
