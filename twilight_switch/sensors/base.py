from __future__ import annotations

from abc import ABC, abstractmethod


class Sensor(ABC):
    """Lux source for the node simulator."""

    @property
    @abstractmethod
    def sensor_id(self) -> str:
        ...

    @abstractmethod
    def read(self) -> float:
        """Return a lux reading. Raise on failure."""
        ...
