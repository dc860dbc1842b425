from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.metrics import build_default_metrics_service
from storage.topology_source import build_default_topology_source


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_metrics_service()
    try:
        yield
    finally:
        service.shutdown()
        build_default_metrics_service.cache_clear()
        build_default_topology_source.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Mesh Health Metrics",
        description="Per-device and per-extender health records computed from the mesh event log.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
