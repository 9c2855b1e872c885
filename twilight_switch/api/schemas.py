from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.models import Mode


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case accepted on input for older firmware
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Requests ---

# SQLite INTEGER is a signed 64-bit value
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1


class SensorDataIn(CamelModel):
    # strict: a JSON true must not become a 1.0 lux reading
    lux: float = Field(strict=True)


class SettingsUpdateIn(CamelModel):
    mode: Optional[str] = None
    threshold: Optional[int] = Field(default=None, strict=True, ge=SQLITE_INT_MIN, le=SQLITE_INT_MAX)
    threshold_high: Optional[int] = Field(default=None, strict=True, ge=SQLITE_INT_MIN, le=SQLITE_INT_MAX)
    manual_relay_state: Optional[bool] = Field(default=None, strict=True)


class RelayControlIn(CamelModel):
    status: bool = Field(strict=True)


# --- Responses ---

class SensorEventOut(CamelModel):
    id: int
    created_at: datetime
    lux: float
    relay_status: bool
    mode: Mode
    threshold_low: int
    threshold_high: int
    manual_relay_state: bool


class IngestOut(CamelModel):
    relay_state: bool
    mode: Mode
    threshold_low: int
    manual_relay_state: bool
    persisted_event: SensorEventOut


class PageOut(CamelModel):
    rows: List[SensorEventOut]
    total: int
    page: int
    limit: int
    total_pages: int


class RangeOut(CamelModel):
    count: int
    rows: List[SensorEventOut]


class StatsOut(CamelModel):
    avg_lux: Optional[float]
    max_lux: Optional[float]
    min_lux: Optional[float]
    total_records: int
    relay_distribution: Dict[str, int]
    mode_distribution: Dict[str, int]


class SettingsOut(CamelModel):
    mode: Mode
    threshold_low: int
    threshold_high: int
    manual_relay_state: bool


class SettingsUpdateOut(SettingsOut):
    persisted_event: SensorEventOut


class RelayOut(CamelModel):
    relay_status: bool
    mode: Mode
    persisted_event: SensorEventOut


class ClearHistoryOut(CamelModel):
    ok: bool = True
    deleted: int


class ActivityEntryOut(CamelModel):
    id: int
    created_at: datetime
    kind: str
    relay_status: bool
    mode: Mode
    lux: float
    message: str


class ActivityOut(CamelModel):
    rows: List[ActivityEntryOut]
