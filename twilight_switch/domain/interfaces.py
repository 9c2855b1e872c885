from __future__ import annotations
from datetime import datetime
from typing import Protocol, Optional, Tuple, runtime_checkable
from .models import SensorEvent, SensorEventInput, Stats


@runtime_checkable
class Relay(Protocol):
    relay_id: str

    async def get_state(self) -> bool:
        ...

    async def set_state(self, on: bool, reason: str) -> None:
        ...


@runtime_checkable
class EventStore(Protocol):
    async def init(self) -> None:
        ...

    async def append_event(self, event: SensorEventInput) -> SensorEvent:
        ...

    async def latest(self) -> Optional[SensorEvent]:
        ...

    async def paginate(
        self, page: int, limit: int, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Tuple[list[SensorEvent], int]:
        ...

    async def by_date_range(self, start: datetime, end: datetime) -> list[SensorEvent]:
        ...

    async def recent(self, limit: int) -> list[SensorEvent]:
        ...

    async def count(self) -> int:
        ...

    async def clear_all_but_latest(self) -> int:
        ...

    async def aggregate_stats(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Stats:
        ...
