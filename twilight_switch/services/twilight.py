from __future__ import annotations
import logging
import math
from typing import List, Optional

from ..core.config import settings
from ..domain.activity import derive_activity
from ..domain.engine import control_from, decide, parse_mode, relay_state_for
from ..domain.errors import ConflictError, ValidationError
from ..domain.interfaces import EventStore
from ..domain.models import (
    ActivityEntry,
    ControlSettings,
    IngestResult,
    Mode,
    SensorEvent,
    SensorEventInput,
)

logger = logging.getLogger(__name__)


class TwilightService:
    """Write-side operations over the event log.

    Every write appends a new row; "current settings" is whatever the latest
    row says, read fresh on each call.
    """

    def __init__(self, repo: EventStore) -> None:
        self._repo = repo

    async def receive_sensor_data(self, lux: Optional[float]) -> IngestResult:
        if lux is None:
            raise ValidationError("Missing field: lux")
        if not math.isfinite(lux):
            raise ValidationError(f"lux must be a finite number, got {lux!r}")

        previous = await self._repo.latest()
        d = decide(lux, previous)

        event = await self._repo.append_event(
            SensorEventInput(
                lux=lux,
                relay_status=d.relay_state,
                mode=d.mode,
                threshold_low=d.threshold_low,
                threshold_high=d.threshold_high,
                manual_relay_state=d.manual_relay_state,
            )
        )
        logger.info(
            "Reading saved id=%s lux=%.1f relay=%s mode=%s",
            event.id, lux, "ON" if d.relay_state else "OFF", d.mode.value,
        )
        return IngestResult(
            relay_state=d.relay_state,
            mode=d.mode,
            threshold_low=d.threshold_low,
            manual_relay_state=d.manual_relay_state,
            event=event,
        )

    async def current_settings(self) -> ControlSettings:
        return control_from(await self._repo.latest())

    async def update_settings(
        self,
        mode: Optional[str] = None,
        threshold: Optional[int] = None,
        manual_relay_state: Optional[bool] = None,
        threshold_high: Optional[int] = None,
    ) -> SensorEvent:
        # Validate before touching storage so a bad mode never reads or writes
        new_mode = parse_mode(mode) if mode is not None else None

        latest = await self._repo.latest()
        ctrl = control_from(latest)

        eff_mode = new_mode if new_mode is not None else ctrl.mode
        eff_low = threshold if threshold is not None else ctrl.threshold_low
        eff_high = threshold_high if threshold_high is not None else ctrl.threshold_high
        eff_manual = manual_relay_state if manual_relay_state is not None else ctrl.manual_relay_state
        lux = latest.lux if latest is not None else 0.0

        event = await self._repo.append_event(
            SensorEventInput(
                lux=lux,
                relay_status=relay_state_for(eff_mode, lux, eff_low, eff_manual),
                mode=eff_mode,
                threshold_low=eff_low,
                threshold_high=eff_high,
                manual_relay_state=eff_manual,
            )
        )
        logger.info(
            "Settings updated id=%s mode=%s threshold=%d manual=%s",
            event.id, eff_mode.value, eff_low, eff_manual,
        )
        return event

    async def control_relay(self, status: bool) -> SensorEvent:
        latest = await self._repo.latest()
        ctrl = control_from(latest)
        if ctrl.mode is Mode.AUTO:
            raise ConflictError("Relay cannot be controlled in AUTO mode. Switch to MANUAL first.")

        event = await self._repo.append_event(
            SensorEventInput(
                lux=latest.lux if latest is not None else 0.0,
                relay_status=status,
                mode=Mode.MANUAL,
                threshold_low=ctrl.threshold_low,
                threshold_high=ctrl.threshold_high,
                manual_relay_state=status,
            )
        )
        logger.info("Manual relay control id=%s relay=%s", event.id, "ON" if status else "OFF")
        return event

    async def clear_history(self) -> int:
        deleted = await self._repo.clear_all_but_latest()
        logger.info("History cleared, %d row(s) deleted", deleted)
        return deleted

    async def activity(self, limit: int) -> List[ActivityEntry]:
        rows = await self._repo.recent(settings.activity_scan_rows)
        rows.reverse()
        return derive_activity(rows, limit)
