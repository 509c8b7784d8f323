import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from boiler_telemetry.app.core.connection_manager import ConnectionManager
from boiler_telemetry.app.core.telemetry_exceptions import ReadCancelledError
from boiler_telemetry.app.core.telemetry_service import TelemetryService
from boiler_telemetry.app.models.telemetry import BoilerReading
from boiler_telemetry.app.utilities.telemetry import logger

ReadingCallback = Callable[[List[BoilerReading]], object]
ErrorCallback = Callable[[Exception], object]


@dataclass()
class PollingStats:
    cycles: int = 0
    successful_cycles: int = 0
    failed_cycles: int = 0
    skipped_cycles: int = 0
    missed_ticks: int = 0
    last_cycle_time: Optional[datetime] = None
    last_error: Optional[str] = None


async def _invoke(callback, *args):
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class PollingScheduler:
    """
    Periodic read -> decode -> publish loop.

    Cycles run one after another inside a single task, so two reads never
    overlap; ticks that fall due while a slow cycle is still running are
    dropped. The loop waits on the cancel event between ticks and returns
    as soon as it is set.
    """

    def __init__(self, connection_manager: ConnectionManager, telemetry_service: TelemetryService):
        self.connection_manager = connection_manager
        self.telemetry_service = telemetry_service
        self.stats = PollingStats()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, interval: float, cancel_event: asyncio.Event,
                    on_reading: ReadingCallback, on_error: Optional[ErrorCallback] = None):
        """Poll every ``interval`` seconds until ``cancel_event`` is set"""
        if interval <= 0:
            raise ValueError(f"Polling interval must be positive, got {interval}")
        if self._running:
            raise RuntimeError("Polling scheduler is already running")

        self._running = True
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        logger.info("Polling started", extra={
            "component": "polling_scheduler",
            "interval": interval
        })

        try:
            while not cancel_event.is_set():
                await self._run_cycle(cancel_event, on_reading, on_error)

                next_tick += interval
                now = loop.time()
                if next_tick < now:
                    missed = int((now - next_tick) // interval) + 1
                    self.stats.missed_ticks += missed
                    next_tick += missed * interval
                    logger.debug("Poll cycle overran its interval", extra={
                        "component": "polling_scheduler",
                        "missed_ticks": missed
                    })

                if await self._wait_for_cancel(cancel_event, next_tick - now):
                    break
        finally:
            self._running = False
            logger.info("Polling stopped", extra={
                "component": "polling_scheduler",
                "cycles": self.stats.cycles,
                "skipped_cycles": self.stats.skipped_cycles,
                "failed_cycles": self.stats.failed_cycles
            })

    async def _run_cycle(self, cancel_event: asyncio.Event, on_reading: ReadingCallback,
                         on_error: Optional[ErrorCallback]):
        if not self.connection_manager.is_connected():
            self.stats.skipped_cycles += 1
            logger.debug("Modbus not connected, skipping poll cycle", extra={
                "component": "polling_scheduler"
            })
            return

        self.stats.cycles += 1
        self.stats.last_cycle_time = datetime.now()

        try:
            readings = await self.telemetry_service.read_readings(cancel_event, source="poll")
            await _invoke(on_reading, readings)
        except ReadCancelledError:
            logger.debug("Poll cycle cancelled", extra={
                "component": "polling_scheduler"
            })
            return
        except Exception as e:
            self.stats.failed_cycles += 1
            self.stats.last_error = str(e)
            logger.warning(f"Poll cycle failed: {e}", extra={
                "component": "polling_scheduler",
                "error_type": type(e).__name__,
                "failed_cycles": self.stats.failed_cycles
            })
            await self._report_error(on_error, e)
            return

        self.stats.successful_cycles += 1

    async def _report_error(self, on_error: Optional[ErrorCallback], error: Exception):
        if on_error is None:
            return
        try:
            await _invoke(on_error, error)
        except Exception as e:
            logger.error(f"Poll error observer failed: {e}", extra={
                "component": "polling_scheduler"
            }, exc_info=True)

    async def _wait_for_cancel(self, cancel_event: asyncio.Event, timeout: float) -> bool:
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=max(timeout, 0))
            return True
        except asyncio.TimeoutError:
            return False

    def get_stats(self) -> dict:
        return {
            "running": self._running,
            "cycles": self.stats.cycles,
            "successful_cycles": self.stats.successful_cycles,
            "failed_cycles": self.stats.failed_cycles,
            "skipped_cycles": self.stats.skipped_cycles,
            "missed_ticks": self.stats.missed_ticks,
            "last_cycle_time": self.stats.last_cycle_time.isoformat() if self.stats.last_cycle_time else None,
            "last_error": self.stats.last_error
        }
