from __future__ import annotations
import logging

logger = logging.getLogger(__name__)


class SimulatedRelay:
    relay_id = "relay_sim_01"

    def __init__(self) -> None:
        self._state = False
        self.switch_count = 0

    async def get_state(self) -> bool:
        return self._state

    async def set_state(self, on: bool, reason: str) -> None:
        on = bool(on)
        if on != self._state:
            self.switch_count += 1
            logger.info("RELAY -> %s reason=%s", "ON" if on else "OFF", reason)
        self._state = on
