from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable

from .base import Sensor


@dataclass
class LuxPattern:
    # Defaults swing across the stock 100 lux threshold so the relay flips
    type: str = "sine"     # manual|sine|step|ramp|random
    baseline: float = 150
    amplitude: float = 250
    period_s: float = 600
    noise: float = 5

    step_low: float = 20
    step_high: float = 400
    step_period_s: float = 120

    ramp_min: float = 0
    ramp_max: float = 400
    ramp_period_s: float = 600


class SimulatedLuxSensor(Sensor):
    """Stands in for the BH1750 on the ESP32 node."""

    def __init__(
        self,
        sensor_id: str = "bh1750_sim",
        pattern: LuxPattern | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sensor_id = sensor_id
        self._lock = Lock()
        self._pattern = pattern or LuxPattern()
        self._manual_lux = self._pattern.baseline
        self._clock = clock
        self._t0 = clock()

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def set_manual(self, lux: float) -> None:
        with self._lock:
            self._pattern.type = "manual"
            self._manual_lux = float(lux)

    def read(self) -> float:
        with self._lock:
            p = self._pattern
            manual = self._manual_lux

        t = self._clock() - self._t0

        if p.type == "manual":
            v = manual

        elif p.type == "sine":
            v = p.baseline + p.amplitude * math.sin(2 * math.pi * t / max(p.period_s, 1.0))

        elif p.type == "step":
            period = max(p.step_period_s, 1.0)
            v = p.step_high if (t % period) < period / 2.0 else p.step_low

        elif p.type == "ramp":
            period = max(p.ramp_period_s, 1.0)
            frac = (t % period) / period
            v = p.ramp_min + (p.ramp_max - p.ramp_min) * frac

        elif p.type == "random":
            v = p.baseline + random.uniform(-p.amplitude, p.amplitude)

        else:
            v = p.baseline

        if p.noise > 0:
            v += random.uniform(-p.noise, p.noise)

        return float(max(0.0, v))
