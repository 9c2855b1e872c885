from __future__ import annotations
import logging
from typing import Optional

from .errors import ValidationError
from .models import ControlSettings, Decision, Mode, SensorEvent
from ..core.config import settings

logger = logging.getLogger(__name__)


def parse_mode(value: str) -> Mode:
    """Map a case-insensitive mode string onto ``Mode``."""
    try:
        return Mode(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Mode must be 'auto' or 'manual', got {value!r}")


def default_control() -> ControlSettings:
    return ControlSettings(
        mode=Mode(settings.default_mode),
        threshold_low=settings.default_threshold_low,
        threshold_high=settings.default_threshold_high,
        manual_relay_state=settings.default_manual_relay_state,
    )


def control_from(event: Optional[SensorEvent]) -> ControlSettings:
    """Configuration in effect after ``event``; system defaults if there is none."""
    if event is None:
        return default_control()
    return ControlSettings(
        mode=event.mode,
        threshold_low=event.threshold_low,
        threshold_high=event.threshold_high,
        manual_relay_state=event.manual_relay_state,
    )


def relay_state_for(mode: Mode, lux: float, threshold_low: int, manual_relay_state: bool) -> bool:
    if mode is Mode.AUTO:
        # Strict: a reading equal to the threshold counts as light
        return lux < threshold_low
    return manual_relay_state


def decide(new_lux: float, previous: Optional[SensorEvent]) -> Decision:
    """Compute the relay state for a fresh reading.

    Mode, threshold_low, threshold_high and manual_relay_state carry forward
    from ``previous``. threshold_high is carried but never compared against.
    Never raises.
    """
    ctrl = control_from(previous)
    relay_state = relay_state_for(ctrl.mode, new_lux, ctrl.threshold_low, ctrl.manual_relay_state)

    if ctrl.mode is Mode.AUTO:
        logger.info(
            "decide: AUTO lux=%.1f threshold=%d -> relay %s",
            new_lux, ctrl.threshold_low, "ON (dark)" if relay_state else "OFF (light)",
        )
    else:
        logger.info("decide: MANUAL lux=%.1f -> relay %s", new_lux, "ON" if relay_state else "OFF")

    return Decision(
        relay_state=relay_state,
        mode=ctrl.mode,
        threshold_low=ctrl.threshold_low,
        manual_relay_state=ctrl.manual_relay_state,
        threshold_high=ctrl.threshold_high,
    )
