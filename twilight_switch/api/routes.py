from __future__ import annotations

import logging
import math
import secrets
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from ..core.config import settings
from ..core.timeutil import parse_timestamp
from ..domain.errors import NotFoundError, UnauthorizedError, ValidationError
from ..domain.models import SensorEvent
from ..services.twilight import TwilightService
from ..storage.sqlite_repo import SQLiteRepository
from .schemas import (
    ActivityEntryOut,
    ActivityOut,
    ClearHistoryOut,
    IngestOut,
    PageOut,
    RangeOut,
    RelayControlIn,
    RelayOut,
    SensorDataIn,
    SensorEventOut,
    SettingsOut,
    SettingsUpdateIn,
    SettingsUpdateOut,
    StatsOut,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# keeps the OFFSET inside SQLite's 64-bit INTEGER range
MAX_PAGE = 1_000_000_000


# --- Dependency getters (main.py wires the real ones via app.dependency_overrides) ---
def get_repo() -> SQLiteRepository:  # overridden in main
    raise RuntimeError("Repo dependency not configured")

def get_service() -> TwilightService:  # overridden in main
    raise RuntimeError("Service dependency not configured")


async def require_operator(
    authorization: Optional[str] = Header(default=None),
    x_api_key: Optional[str] = Header(default=None),
) -> None:
    """Gate for settings/relay/history writes; open when no api_token is set."""
    expected = settings.api_token
    if not expected:
        return
    supplied = x_api_key
    if authorization and authorization.lower().startswith("bearer "):
        supplied = authorization[7:].strip()
    if not supplied or not secrets.compare_digest(supplied.encode(), expected.encode()):
        raise UnauthorizedError("Missing or invalid operator token")


def _event_out(e: SensorEvent) -> SensorEventOut:
    return SensorEventOut(**asdict(e))


def _optional_range(start: Optional[str], end: Optional[str]):
    if start is None and end is None:
        return None, None
    if start is None or end is None:
        raise ValidationError("Both start and end are required when filtering by date")
    s = parse_timestamp(start, "start")
    e = parse_timestamp(end, "end")
    if s > e:
        raise ValidationError("start must not be after end")
    return s, e


# --- Ingestion ---

@router.post("/sensor-data", status_code=201, response_model=IngestOut)
@router.post("/data", status_code=201, response_model=IngestOut, include_in_schema=False)
@router.post("/ping", status_code=201, response_model=IngestOut, include_in_schema=False)
async def receive_sensor_data(req: SensorDataIn, svc: TwilightService = Depends(get_service)):
    result = await svc.receive_sensor_data(req.lux)
    return IngestOut(
        relay_state=result.relay_state,
        mode=result.mode,
        threshold_low=result.threshold_low,
        manual_relay_state=result.manual_relay_state,
        persisted_event=_event_out(result.event),
    )


# --- Queries ---

@router.get("/sensor-data", response_model=PageOut)
@router.get("/data", response_model=PageOut, include_in_schema=False)
async def list_sensor_data(
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: Optional[int] = Query(default=None, ge=1),
    start: Optional[str] = None,
    end: Optional[str] = None,
    repo: SQLiteRepository = Depends(get_repo),
):
    limit = min(limit or settings.page_size_default, settings.page_size_max)
    s, e = _optional_range(start, end)
    rows, total = await repo.paginate(page, limit, s, e)
    return PageOut(
        rows=[_event_out(r) for r in rows],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.get("/sensor-data/latest", response_model=SensorEventOut)
@router.get("/latest", response_model=SensorEventOut, include_in_schema=False)
async def latest_sensor_data(repo: SQLiteRepository = Depends(get_repo)):
    latest = await repo.latest()
    if latest is None:
        raise NotFoundError("No sensor data yet")
    return _event_out(latest)


@router.get("/sensor-data/range", response_model=RangeOut)
@router.get("/data/range", response_model=RangeOut, include_in_schema=False)
async def sensor_data_range(
    start: Optional[str] = None,
    end: Optional[str] = None,
    repo: SQLiteRepository = Depends(get_repo),
):
    if not start or not end:
        raise ValidationError("Query parameters start and end are required")
    s, e = _optional_range(start, end)
    rows = await repo.by_date_range(s, e)
    return RangeOut(count=len(rows), rows=[_event_out(r) for r in rows])


@router.get("/sensor-data/stats", response_model=StatsOut)
@router.get("/stats", response_model=StatsOut, include_in_schema=False)
@router.get("/statistics", response_model=StatsOut, include_in_schema=False)
async def sensor_stats(
    start: Optional[str] = None,
    end: Optional[str] = None,
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    repo: SQLiteRepository = Depends(get_repo),
):
    s, e = _optional_range(start or start_date, end or end_date)
    stats = await repo.aggregate_stats(s, e)
    return StatsOut(**asdict(stats))


@router.get("/activity", response_model=ActivityOut)
async def activity_log(
    limit: int = Query(default=10, ge=1, le=500),
    svc: TwilightService = Depends(get_service),
):
    entries = await svc.activity(limit)
    return ActivityOut(rows=[ActivityEntryOut(**asdict(a)) for a in entries])


# --- Settings / control ---

@router.get("/settings", response_model=SettingsOut)
async def get_settings(svc: TwilightService = Depends(get_service)):
    ctrl = await svc.current_settings()
    return SettingsOut(**asdict(ctrl))


@router.put("/settings", response_model=SettingsUpdateOut, dependencies=[Depends(require_operator)])
async def update_settings(req: SettingsUpdateIn, svc: TwilightService = Depends(get_service)):
    event = await svc.update_settings(
        mode=req.mode,
        threshold=req.threshold,
        manual_relay_state=req.manual_relay_state,
        threshold_high=req.threshold_high,
    )
    return SettingsUpdateOut(
        mode=event.mode,
        threshold_low=event.threshold_low,
        threshold_high=event.threshold_high,
        manual_relay_state=event.manual_relay_state,
        persisted_event=_event_out(event),
    )


@router.post("/relay", response_model=RelayOut, dependencies=[Depends(require_operator)])
async def control_relay(req: RelayControlIn, svc: TwilightService = Depends(get_service)):
    event = await svc.control_relay(req.status)
    return RelayOut(relay_status=event.relay_status, mode=event.mode, persisted_event=_event_out(event))


@router.delete("/history", response_model=ClearHistoryOut, dependencies=[Depends(require_operator)])
async def clear_history(svc: TwilightService = Depends(get_service)):
    deleted = await svc.clear_history()
    return ClearHistoryOut(deleted=deleted)
