"""
ESP32 node simulator.

Plays the sensor node's side of the ingestion contract: read lux, POST it to
the backend, switch the relay to whatever ``relayState`` comes back. Useful
for exercising the dashboard without hardware.

Usage:
    twilight-node-sim                                   # sine pattern against localhost
    twilight-node-sim --url http://pi.local:8000 --pattern step
    twilight-node-sim --pattern manual --lux 42 --count 3
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

import httpx

from ..core.config import settings
from ..core.log import configure_logging
from ..domain.interfaces import Relay
from ..drivers.actuators_sim import SimulatedRelay
from ..sensors.base import Sensor
from ..sensors.simulated_lux_sensor import LuxPattern, SimulatedLuxSensor

logger = logging.getLogger(__name__)

INGEST_PATH = "/api/sensor-data"


class NodeSimulator:
    def __init__(
        self,
        client: httpx.AsyncClient,
        sensor: Sensor,
        relay: Relay,
        interval_s: float = 5.0,
        path: str = INGEST_PATH,
    ) -> None:
        self._client = client
        self._sensor = sensor
        self._relay = relay
        self._interval_s = interval_s
        self._path = path

        self.sent = 0
        self.failed = 0

    async def step(self) -> Optional[bool]:
        """Send one reading; return the relay state applied, or None on failure."""
        lux = self._sensor.read()
        try:
            resp = await self._client.post(self._path, json={"lux": lux})
            resp.raise_for_status()
            data = resp.json()
            relay_state = bool(data["relayState"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            self.failed += 1
            logger.warning("Ingestion failed for lux=%.1f: %s", lux, e)
            return None

        self.sent += 1
        mode = data.get("mode", "?")
        await self._relay.set_state(relay_state, f"server decision (mode={mode}, lux={lux:.1f})")
        logger.info("Sent lux=%.1f -> relay %s (mode=%s)", lux, "ON" if relay_state else "OFF", mode)
        return relay_state

    async def run(self, count: Optional[int] = None) -> None:
        """Send a reading every interval, forever or until ``count`` attempts."""
        logger.info(
            "Node simulator started (sensor=%s, interval=%ss, path=%s)",
            self._sensor.sensor_id, self._interval_s, self._path,
        )
        attempts = 0
        while count is None or attempts < count:
            if attempts:
                await asyncio.sleep(self._interval_s)
            await self.step()
            attempts += 1

        logger.info("Node simulator stopped (sent=%d failed=%d)", self.sent, self.failed)


async def _run_cli(args: argparse.Namespace) -> None:
    pattern = LuxPattern(type=args.pattern, noise=args.noise)
    sensor = SimulatedLuxSensor(pattern=pattern)
    if args.pattern == "manual":
        sensor.set_manual(args.lux)

    async with httpx.AsyncClient(base_url=args.url, timeout=settings.sim_timeout_seconds) as client:
        sim = NodeSimulator(client, sensor, SimulatedRelay(), interval_s=args.interval)
        await sim.run(count=args.count)


def main() -> None:
    p = argparse.ArgumentParser(description="Simulated twilight-switch sensor node")

    p.add_argument("--url", default=settings.sim_server_url, help="Backend base URL")
    p.add_argument("--interval", type=float, default=settings.sim_interval_seconds,
                   help="Seconds between readings")
    p.add_argument("--pattern", default="sine", choices=["manual", "sine", "step", "ramp", "random"])
    p.add_argument("--lux", type=float, default=150.0, help="Fixed lux for --pattern manual")
    p.add_argument("--noise", type=float, default=5.0, help="Uniform noise added to every reading")
    p.add_argument("--count", type=int, default=None, help="Stop after this many readings")

    args = p.parse_args()

    configure_logging()

    try:
        asyncio.run(_run_cli(args))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
