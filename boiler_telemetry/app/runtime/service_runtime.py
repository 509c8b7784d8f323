import asyncio
from typing import List, Optional

from boiler_telemetry.app.config import Settings, load_register_map, settings as default_settings
from boiler_telemetry.app.core.config_store import ConfigStore
from boiler_telemetry.app.core.connection_manager import ConnectionManager
from boiler_telemetry.app.core.polling_scheduler import PollingScheduler
from boiler_telemetry.app.core.register_reader import RegisterReader
from boiler_telemetry.app.core.telemetry_exceptions import ConfigError, PLCConnectionError
from boiler_telemetry.app.core.telemetry_service import TelemetryService
from boiler_telemetry.app.core.transport import TransportFactory, create_serial_transport
from boiler_telemetry.app.models.register_map import RegisterMapConfig
from boiler_telemetry.app.models.telemetry import BoilerReading, ReadingSnapshot
from boiler_telemetry.app.schemas.connection import ConnectionConfig
from boiler_telemetry.app.utilities.logging_config import LoggingConfig
from boiler_telemetry.app.utilities.sinks import JsonlReadingSink, log_snapshot
from boiler_telemetry.app.utilities.telemetry import initialize_logging, logger


class ServiceRuntime:
    """Wires the telemetry pipeline together and owns the polling task"""

    def __init__(self, settings: Optional[Settings] = None,
                 register_map: Optional[RegisterMapConfig] = None,
                 transport_factory: TransportFactory = create_serial_transport,
                 configure_logging: bool = True):
        self.settings = settings or default_settings
        if configure_logging:
            initialize_logging(LoggingConfig.from_settings(self.settings))

        self.register_map = register_map or load_register_map(self.settings.register_map_path)
        self.config_store = ConfigStore(self.settings.connection_config_path)
        self.connection_manager = ConnectionManager(transport_factory=transport_factory)
        self.reader = RegisterReader(self.connection_manager, self.register_map)
        self.telemetry_service = TelemetryService(self.reader, self.register_map)
        self.scheduler = PollingScheduler(self.connection_manager, self.telemetry_service)

        self.telemetry_service.add_sink(log_snapshot)
        if self.settings.readings_log_path:
            self.telemetry_service.add_sink(JsonlReadingSink(self.settings.readings_log_path))

        self._cancel_event: Optional[asyncio.Event] = None
        self._polling_task: Optional[asyncio.Task] = None

    async def start(self):
        logger.info("Starting telemetry runtime", extra={
            "component": "service_runtime",
            "poll_interval": self.settings.poll_interval
        })

        try:
            config = self.config_store.load()
        except ConfigError as e:
            # Start disconnected; the stored record can be replaced through the config API
            logger.warning(f"Stored connection config unusable: {e}", extra={
                "component": "service_runtime",
                "path": str(self.config_store.path)
            })
            config = ConnectionConfig()

        if self.settings.auto_connect and config.port:
            try:
                await self.connection_manager.connect(config)
            except PLCConnectionError as e:
                # Operator reconnects from the UI; polling idles meanwhile
                logger.warning(f"Auto-connect failed: {e}", extra={
                    "component": "service_runtime",
                    "port": config.port
                })

        self._cancel_event = asyncio.Event()
        self._polling_task = asyncio.create_task(self.scheduler.start(
            self.settings.poll_interval, self._cancel_event, self._on_poll_readings
        ))
        logger.info("All services initialized successfully")

    async def stop(self):
        logger.info("Shutting down services...")
        if self._cancel_event is not None:
            self._cancel_event.set()
        if self._polling_task is not None:
            await self._polling_task
            self._polling_task = None
        await self.connection_manager.disconnect()

    async def connect(self, config: ConnectionConfig):
        """Remember ``config`` as the last-used parameters, then open the link"""
        self.config_store.save(config)
        return await self.connection_manager.connect(config)

    async def disconnect(self) -> bool:
        return await self.connection_manager.disconnect()

    async def read_now(self) -> List[BoilerReading]:
        return await self.telemetry_service.read_readings(source="on_demand")

    async def read_snapshot(self) -> ReadingSnapshot:
        """On-demand read returning the snapshot it published"""
        return await self.telemetry_service.read_snapshot(source="on_demand")

    def status(self) -> dict:
        status = self.connection_manager.get_status()
        status["metrics"] = self.reader.get_metrics()
        status["polling"] = self.scheduler.get_stats()
        return status

    def _on_poll_readings(self, readings: List[BoilerReading]):
        logger.debug("Poll cycle published readings", extra={
            "component": "service_runtime",
            "boilers": len(readings)
        })
