from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, List, Optional, Tuple

import aiosqlite

from ..core.timeutil import from_storage, now_utc, to_storage
from ..domain.errors import InfrastructureError
from ..domain.models import Mode, SensorEvent, SensorEventInput, Stats

logger = logging.getLogger(__name__)

_COLUMNS = "id,created_at,lux,relay_status,mode,threshold_low,threshold_high,manual_relay_state"
_NEWEST_FIRST = "ORDER BY created_at DESC, id DESC"


def _event_from_row(row) -> SensorEvent:
    eid, ts, lux, relay, mode, low, high, manual = row
    return SensorEvent(
        id=int(eid),
        created_at=from_storage(ts),
        lux=float(lux),
        relay_status=bool(relay),
        mode=Mode(mode),
        threshold_low=int(low),
        threshold_high=int(high),
        manual_relay_state=bool(manual),
    )


def _range_clause(start: Optional[datetime], end: Optional[datetime]) -> Tuple[str, tuple]:
    if start is None or end is None:
        return "", ()
    return "WHERE created_at >= ? AND created_at <= ?", (to_storage(start), to_storage(end))


class SQLiteRepository:
    """Append-only sensor event log.

    The most recent row doubles as the current configuration, so there is no
    update path here.
    """

    def __init__(self, path: str, clock: Callable[[], datetime] = now_utc) -> None:
        self._path = path
        self._clock = clock

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self._path) as db:
                yield db
        except aiosqlite.Error as e:
            logger.error("SQLite failure on %s: %s", self._path, e)
            raise InfrastructureError(f"Storage failure: {e}") from e

    async def init(self) -> None:
        async with self._connect() as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS sensor_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    created_at TEXT NOT NULL,
                    lux REAL NOT NULL,
                    relay_status INTEGER NOT NULL,
                    mode TEXT NOT NULL CHECK (mode IN ('auto', 'manual')),
                    threshold_low INTEGER NOT NULL,
                    threshold_high INTEGER NOT NULL,
                    manual_relay_state INTEGER NOT NULL
                )
                """
            )
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_sensor_events_created ON sensor_events(created_at, id)"
            )
            await db.commit()

    async def append_event(self, e: SensorEventInput) -> SensorEvent:
        ts = to_storage(self._clock())
        async with self._connect() as db:
            cur = await db.execute(
                "INSERT INTO sensor_events(created_at,lux,relay_status,mode,threshold_low,threshold_high,manual_relay_state) "
                "VALUES (?,?,?,?,?,?,?)",
                (
                    ts,
                    float(e.lux),
                    1 if e.relay_status else 0,
                    e.mode.value,
                    int(e.threshold_low),
                    int(e.threshold_high),
                    1 if e.manual_relay_state else 0,
                ),
            )
            await db.commit()
            event_id = cur.lastrowid
        return SensorEvent(
            id=event_id,
            created_at=from_storage(ts),
            lux=float(e.lux),
            relay_status=bool(e.relay_status),
            mode=e.mode,
            threshold_low=int(e.threshold_low),
            threshold_high=int(e.threshold_high),
            manual_relay_state=bool(e.manual_relay_state),
        )

    async def latest(self) -> Optional[SensorEvent]:
        async with self._connect() as db:
            cur = await db.execute(f"SELECT {_COLUMNS} FROM sensor_events {_NEWEST_FIRST} LIMIT 1")
            row = await cur.fetchone()
        return _event_from_row(row) if row else None

    async def count(self) -> int:
        async with self._connect() as db:
            cur = await db.execute("SELECT COUNT(id) FROM sensor_events")
            (total,) = await cur.fetchone()
        return int(total)

    async def paginate(
        self,
        page: int,
        limit: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Tuple[List[SensorEvent], int]:
        offset = (max(1, page) - 1) * limit
        where, params = _range_clause(start, end)
        async with self._connect() as db:
            cur = await db.execute(f"SELECT COUNT(id) FROM sensor_events {where}", params)
            (total,) = await cur.fetchone()
            cur = await db.execute(
                f"SELECT {_COLUMNS} FROM sensor_events {where} {_NEWEST_FIRST} LIMIT ? OFFSET ?",
                params + (limit, offset),
            )
            rows = await cur.fetchall()
        return [_event_from_row(r) for r in rows], int(total)

    async def by_date_range(self, start: datetime, end: datetime) -> List[SensorEvent]:
        where, params = _range_clause(start, end)
        async with self._connect() as db:
            cur = await db.execute(f"SELECT {_COLUMNS} FROM sensor_events {where} {_NEWEST_FIRST}", params)
            rows = await cur.fetchall()
        return [_event_from_row(r) for r in rows]

    async def recent(self, limit: int) -> List[SensorEvent]:
        async with self._connect() as db:
            cur = await db.execute(f"SELECT {_COLUMNS} FROM sensor_events {_NEWEST_FIRST} LIMIT ?", (limit,))
            rows = await cur.fetchall()
        return [_event_from_row(r) for r in rows]

    async def clear_all_but_latest(self) -> int:
        async with self._connect() as db:
            cur = await db.execute(
                f"""
                DELETE FROM sensor_events
                WHERE id NOT IN (SELECT id FROM sensor_events {_NEWEST_FIRST} LIMIT 1)
                """
            )
            await db.commit()
            deleted = cur.rowcount
        return max(0, deleted)

    async def aggregate_stats(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Stats:
        """Aggregates over every row, or over ``start..end`` inclusive.

        Settings and relay-control rows count too. They repeat the lux of the
        reading before them (0.0 when written to an empty store), so they
        weight avg/min/max toward that reading.
        """
        where, params = _range_clause(start, end)
        async with self._connect() as db:
            cur = await db.execute(
                f"SELECT AVG(lux), MAX(lux), MIN(lux), COUNT(id) FROM sensor_events {where}", params
            )
            avg, mx, mn, total = await cur.fetchone()
            cur = await db.execute(
                f"SELECT relay_status, COUNT(id) FROM sensor_events {where} GROUP BY relay_status", params
            )
            relay_rows = await cur.fetchall()
            cur = await db.execute(
                f"SELECT mode, COUNT(id) FROM sensor_events {where} GROUP BY mode", params
            )
            mode_rows = await cur.fetchall()

        relay_distribution = {"on": 0, "off": 0}
        for relay, n in relay_rows:
            relay_distribution["on" if relay else "off"] = int(n)
        mode_distribution = {m.value: 0 for m in Mode}
        for mode, n in mode_rows:
            mode_distribution[mode] = int(n)

        return Stats(
            avg_lux=float(avg) if avg is not None else None,
            max_lux=float(mx) if mx is not None else None,
            min_lux=float(mn) if mn is not None else None,
            total_records=int(total),
            relay_distribution=relay_distribution,
            mode_distribution=mode_distribution,
        )
