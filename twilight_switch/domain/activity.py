from __future__ import annotations
from typing import Iterable, List, Optional

from .models import ActivityEntry, Mode, SensorEvent


def _relay_entry(ev: SensorEvent) -> ActivityEntry:
    state = "ON" if ev.relay_status else "OFF"
    if ev.mode is Mode.AUTO:
        cmp = "<" if ev.relay_status else ">="
        message = f"Relay {state} (lux {ev.lux:.1f} {cmp} {ev.threshold_low})"
    else:
        message = f"Relay {state} (manual)"
    return ActivityEntry(
        id=ev.id,
        created_at=ev.created_at,
        kind="relay_on" if ev.relay_status else "relay_off",
        relay_status=ev.relay_status,
        mode=ev.mode,
        lux=ev.lux,
        message=message,
    )


def _mode_entry(ev: SensorEvent, prev: SensorEvent) -> ActivityEntry:
    return ActivityEntry(
        id=ev.id,
        created_at=ev.created_at,
        kind="mode_change",
        relay_status=ev.relay_status,
        mode=ev.mode,
        lux=ev.lux,
        message=f"Mode changed {prev.mode.value.upper()} -> {ev.mode.value.upper()}",
    )


def derive_activity(events: Iterable[SensorEvent], limit: int) -> List[ActivityEntry]:
    """Turn an oldest-first event sequence into a newest-first activity log.

    The first event yields its relay state; later events yield an entry only
    when the mode or the relay state differs from the event before it.
    """
    out: list[ActivityEntry] = []
    prev: Optional[SensorEvent] = None
    for ev in events:
        if prev is None:
            out.append(_relay_entry(ev))
        else:
            if ev.mode is not prev.mode:
                out.append(_mode_entry(ev, prev))
            if ev.relay_status != prev.relay_status:
                out.append(_relay_entry(ev))
        prev = ev
    out.reverse()
    return out[:max(0, limit)]
