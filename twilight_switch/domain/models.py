from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


class Mode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class SensorEventInput:
    lux: float
    relay_status: bool
    mode: Mode
    threshold_low: int
    threshold_high: int
    manual_relay_state: bool


@dataclass(frozen=True)
class SensorEvent:
    id: int
    created_at: datetime
    lux: float
    relay_status: bool
    mode: Mode
    threshold_low: int
    threshold_high: int
    manual_relay_state: bool


@dataclass(frozen=True)
class ControlSettings:
    mode: Mode
    threshold_low: int
    threshold_high: int
    manual_relay_state: bool


@dataclass(frozen=True)
class Decision:
    relay_state: bool
    mode: Mode
    threshold_low: int
    manual_relay_state: bool
    threshold_high: int


@dataclass(frozen=True)
class IngestResult:
    relay_state: bool
    mode: Mode
    threshold_low: int
    manual_relay_state: bool
    event: SensorEvent


@dataclass(frozen=True)
class Stats:
    avg_lux: Optional[float]
    max_lux: Optional[float]
    min_lux: Optional[float]
    total_records: int
    relay_distribution: Dict[str, int] = field(default_factory=dict)  # "on" / "off"
    mode_distribution: Dict[str, int] = field(default_factory=dict)   # "auto" / "manual"


@dataclass(frozen=True)
class ActivityEntry:
    id: int
    created_at: datetime
    kind: str  # "relay_on" | "relay_off" | "mode_change"
    relay_status: bool
    mode: Mode
    lux: float
    message: str
