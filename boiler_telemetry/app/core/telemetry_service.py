import asyncio
import inspect
import time
from typing import Callable, List, Optional

from boiler_telemetry.app.core.register_reader import RegisterReader
from boiler_telemetry.app.core.telemetry_decoder import decode
from boiler_telemetry.app.models.register_map import RegisterMapConfig
from boiler_telemetry.app.models.telemetry import BoilerReading, ReadingSnapshot
from boiler_telemetry.app.utilities.telemetry import logger

ReadingSink = Callable[[ReadingSnapshot], object]


class TelemetryService:
    """
    Reads the configured register span and turns it into boiler readings

    Every successful read becomes the latest snapshot and is handed to the
    registered sinks. A failing sink is logged and does not fail the read.
    """

    def __init__(self, reader: RegisterReader, register_map: RegisterMapConfig):
        self.reader = reader
        self.register_map = register_map
        self.latest: Optional[ReadingSnapshot] = None
        self._sinks: List[ReadingSink] = []

    def add_sink(self, sink: ReadingSink):
        self._sinks.append(sink)

    async def read_raw(self, cancel_event: Optional[asyncio.Event] = None) -> bytes:
        return await self.reader.read_block(
            self.register_map.base_address, self.register_map.span, cancel_event
        )

    async def read_readings(self, cancel_event: Optional[asyncio.Event] = None,
                            source: str = "on_demand") -> List[BoilerReading]:
        """Read, decode and publish one set of readings"""
        snapshot = await self.read_snapshot(cancel_event, source)
        return snapshot.readings

    async def read_snapshot(self, cancel_event: Optional[asyncio.Event] = None,
                            source: str = "on_demand") -> ReadingSnapshot:
        start_time = time.time()
        try:
            frame = await self.read_raw(cancel_event)
            readings = decode(frame, self.register_map)
        except Exception as e:
            logger.error(f"Telemetry read failed: {e}", extra={
                "component": "telemetry_service",
                "source": source,
                "error_type": type(e).__name__,
                "duration_ms": int((time.time() - start_time) * 1000)
            })
            raise

        snapshot = ReadingSnapshot(readings=readings, source=source)
        self.latest = snapshot

        logger.debug("Telemetry read completed", extra={
            "component": "telemetry_service",
            "source": source,
            "boilers": len(readings),
            "duration_ms": int((time.time() - start_time) * 1000)
        })

        await self._publish(snapshot)
        return snapshot

    async def _publish(self, snapshot: ReadingSnapshot):
        for sink in self._sinks:
            try:
                result = sink(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Reading sink failed: {e}", extra={
                    "component": "telemetry_service",
                    "sink": getattr(sink, "__name__", type(sink).__name__)
                }, exc_info=True)
