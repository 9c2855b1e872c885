from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .core.config import settings
from .core.log import configure_logging

from .api.errors import register_exception_handlers
from .api.routes import router as api_router
import twilight_switch.api.routes as routes_module

from .services.twilight import TwilightService
from .storage.sqlite_repo import SQLiteRepository


logger = logging.getLogger(__name__)


# --- Singletons ---
repo = SQLiteRepository(settings.sqlite_path)
service = TwilightService(repo=repo)


def get_repo() -> SQLiteRepository:
    return repo


def get_service() -> TwilightService:
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Starting %s (environment=%s, db=%s)", settings.app_name, settings.environment, settings.sqlite_path)
    if settings.api_token:
        logger.info("Operator token required for settings/relay/history writes")
    else:
        logger.warning("No api_token configured; settings/relay/history writes are open")

    await repo.init()

    try:
        yield
    finally:
        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)
register_exception_handlers(app)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_repo] = get_repo
app.dependency_overrides[routes_module.get_service] = get_service

app.include_router(api_router, prefix="/api")
# Legacy paths still used by the dashboard and ESP32 firmware
app.include_router(api_router, prefix="/api/iot", include_in_schema=False)


@app.get("/")
async def root():
    return {
        "ok": True,
        "app": settings.app_name,
        "description": "Twilight switch backend: lux readings in, relay decisions out",
        "endpoints": {
            "ingest": "POST /api/sensor-data  {lux}",
            "history": "GET /api/sensor-data?page=1&limit=10",
            "latest": "GET /api/sensor-data/latest",
            "range": "GET /api/sensor-data/range?start=2026-01-01&end=2026-01-08",
            "stats": "GET /api/sensor-data/stats",
            "activity": "GET /api/activity?limit=10",
            "settings": "GET|PUT /api/settings",
            "relay": "POST /api/relay  {status}",
            "clear_history": "DELETE /api/history",
        },
        "twilight_logic": {
            "auto": "relay ON when lux < threshold_low",
            "manual": "relay follows manual_relay_state",
        },
    }
