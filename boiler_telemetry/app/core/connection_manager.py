import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from boiler_telemetry.app.core.telemetry_exceptions import NotConnectedError, PLCConnectionError
from boiler_telemetry.app.core.transport import ModbusTransport, TransportFactory, create_serial_transport
from boiler_telemetry.app.models.connection_manager import ConnectionState
from boiler_telemetry.app.models.serial_config import DEFAULT_SERIAL_SETTINGS, SerialSettings
from boiler_telemetry.app.schemas.connection import ConnectionConfig
from boiler_telemetry.app.utilities.telemetry import logger, set_log_context


class ConnectionManager:
    """
    Owns the serial transport and the connection state machine.

    Connect, disconnect and register reads all hold ``transport_lock`` for
    their whole duration, so the half-duplex link only ever carries one
    request and competing callers queue in arrival order.
    """

    def __init__(self, serial_settings: SerialSettings = DEFAULT_SERIAL_SETTINGS,
                 transport_factory: TransportFactory = create_serial_transport):
        self.serial_settings = serial_settings
        self.transport_factory = transport_factory
        self.transport_lock = asyncio.Lock()
        self._transport: Optional[ModbusTransport] = None
        self._state = ConnectionState.DISCONNECTED
        self._config: Optional[ConnectionConfig] = None
        self.connected_since: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def config(self) -> Optional[ConnectionConfig]:
        return self._config

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    async def connect(self, config: ConnectionConfig) -> ConnectionState:
        """Open the transport on ``config.port``, replacing any open handle"""
        if not config.port:
            raise PLCConnectionError("No serial port configured", plant_id=config.plant_id)

        async with self.transport_lock:
            logger.info("Connecting to PLC", extra={
                "component": "connection_manager",
                "plant_id": config.plant_id,
                "port": config.port,
                "baudrate": self.serial_settings.baudrate,
                "framing": self.serial_settings.framing
            })

            self._close_transport()
            self._config = config

            transport = self.transport_factory(config.port, self.serial_settings)
            try:
                await transport.open()
            except Exception as e:
                self._mark_disconnected(str(e))
                logger.error("PLC connection failed", extra={
                    "component": "connection_manager",
                    "plant_id": config.plant_id,
                    "port": config.port,
                    "error": str(e)
                })
                if isinstance(e, PLCConnectionError):
                    raise
                raise PLCConnectionError(
                    f"Failed to connect to {config.port}: {e}", plant_id=config.plant_id
                ) from e

            self._transport = transport
            self._state = ConnectionState.CONNECTED
            self.connected_since = datetime.now()
            self.last_error = None
            set_log_context(config.plant_id, config.port)

            logger.info("PLC connected", extra={
                "component": "connection_manager",
                "plant_id": config.plant_id,
                "port": config.port
            })
            return self._state

    async def disconnect(self) -> bool:
        """Close the transport. Returns False when there was nothing to disconnect."""
        async with self.transport_lock:
            if self._transport is None:
                logger.info("Nothing to disconnect", extra={
                    "component": "connection_manager"
                })
                return False

            port = self._config.port if self._config else None
            try:
                self._transport.close()
            except Exception as e:
                self._transport = None
                self._mark_disconnected(str(e))
                raise PLCConnectionError(f"Error closing {port}: {e}") from e

            self._transport = None
            self._mark_disconnected(None)
            set_log_context()
            logger.info("PLC disconnected", extra={
                "component": "connection_manager",
                "port": port
            })
            return True

    @asynccontextmanager
    async def acquire(self):
        """Exclusive access to the open transport for the duration of the block"""
        if not self.is_connected():
            raise NotConnectedError(
                "Modbus client not connected",
                plant_id=self._config.plant_id if self._config else None
            )

        async with self.transport_lock:
            # State may have changed while queued behind a disconnect
            if self._transport is None:
                raise NotConnectedError("Modbus client not connected")
            yield self._transport

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "plant_id": self._config.plant_id if self._config else "",
            "port": self._config.port if self._config else "",
            "connected_since": self.connected_since.isoformat() if self.connected_since else None,
            "last_error": self.last_error,
            "serial": {
                "baudrate": self.serial_settings.baudrate,
                "bytesize": self.serial_settings.bytesize,
                "parity": self.serial_settings.parity,
                "stopbits": self.serial_settings.stopbits,
                "slave_id": self.serial_settings.slave_id,
                "timeout": self.serial_settings.timeout,
                "framing": self.serial_settings.framing
            }
        }

    def _close_transport(self):
        """Close the current handle before a reconnect; errors only logged"""
        if self._transport is None:
            return

        try:
            self._transport.close()
            logger.debug("Previous transport closed before reconnect", extra={
                "component": "connection_manager"
            })
        except Exception as e:
            logger.warning("Error closing previous transport", extra={
                "component": "connection_manager",
                "error": str(e)
            })
        finally:
            self._transport = None
            self._mark_disconnected(None)

    def _mark_disconnected(self, error: Optional[str]):
        self._state = ConnectionState.DISCONNECTED
        self.connected_since = None
        if error:
            self.last_error = error
