import asyncio
import struct
from typing import Callable, Protocol

from pymodbus import FramerType
from pymodbus.client import AsyncModbusSerialClient
from pymodbus.exceptions import ConnectionException, ModbusException, ModbusIOException

from boiler_telemetry.app.core.telemetry_exceptions import (
    PLCConnectionError, ProtocolError, TransportIOError, TransportTimeoutError
)
from boiler_telemetry.app.models.serial_config import SerialSettings
from boiler_telemetry.app.utilities.telemetry import logger

FRAMERS = {
    "ascii": FramerType.ASCII,
    "rtu": FramerType.RTU,
}

# Substrings of the ModbusIOException messages raised by pymodbus transactions
NO_RESPONSE_MARKER = "No response received"
DEVICE_ID_MISMATCH_MARKER = "but got id="


class ModbusTransport(Protocol):
    """
    Capability the connection manager needs from a half-duplex Modbus link.

    ``read_holding_registers`` returns the raw big-endian register bytes and
    raises TransportTimeoutError, ProtocolError or TransportIOError.
    """

    async def open(self) -> None: ...

    def close(self) -> None: ...

    async def read_holding_registers(self, address: int, count: int) -> bytes: ...


TransportFactory = Callable[[str, SerialSettings], ModbusTransport]


class SerialModbusTransport:
    """Modbus serial transport backed by a pymodbus async client"""

    def __init__(self, port: str, serial_settings: SerialSettings):
        self.port = port
        self.serial_settings = serial_settings
        self.client = AsyncModbusSerialClient(
            port=port,
            framer=FRAMERS[serial_settings.framing],
            baudrate=serial_settings.baudrate,
            bytesize=serial_settings.bytesize,
            parity=serial_settings.parity,
            stopbits=serial_settings.stopbits,
            timeout=serial_settings.timeout,
            retries=0  # retries are decided by RegisterReader
        )

    async def open(self) -> None:
        try:
            connected = await self.client.connect()
        except (OSError, ModbusException) as e:
            raise PLCConnectionError(f"Failed to open serial port {self.port}: {e}") from e

        if not connected:
            raise PLCConnectionError(
                f"Failed to open serial port {self.port} "
                f"({self.serial_settings.baudrate} baud, {self.serial_settings.bytesize}"
                f"{self.serial_settings.parity}{self.serial_settings.stopbits})"
            )

        logger.debug("Serial transport opened", extra={
            "component": "transport",
            "port": self.port,
            "framing": self.serial_settings.framing
        })

    def close(self) -> None:
        self.client.close()
        logger.debug("Serial transport closed", extra={
            "component": "transport",
            "port": self.port
        })

    async def read_holding_registers(self, address: int, count: int) -> bytes:
        try:
            result = await self.client.read_holding_registers(
                address=address, count=count, slave=self.serial_settings.slave_id
            )
        except asyncio.TimeoutError as e:
            raise TransportTimeoutError(
                f"No response reading {count} registers at {address}: {e}",
                address=address, count=count
            ) from e
        except ModbusIOException as e:
            # pymodbus also raises this for an answer from the wrong device id
            if NO_RESPONSE_MARKER in str(e):
                raise TransportTimeoutError(
                    f"No response reading {count} registers at {address}: {e}",
                    address=address, count=count
                ) from e
            if DEVICE_ID_MISMATCH_MARKER in str(e):
                raise ProtocolError(f"Unexpected responder reading {count} registers at {address}: {e}",
                                    address=address, count=count) from e
            raise TransportIOError(f"Serial I/O error on {self.port}: {e}", address=address, count=count) from e
        except ConnectionException as e:
            raise TransportIOError(f"Serial link failure on {self.port}: {e}", address=address, count=count) from e
        except OSError as e:
            raise TransportIOError(f"Serial I/O error on {self.port}: {e}", address=address, count=count) from e
        except ModbusException as e:
            raise ProtocolError(f"Modbus error reading {count} registers at {address}: {e}",
                                address=address, count=count) from e

        if result.isError():
            raise ProtocolError(f"Device rejected read of {count} registers at {address}: {result}",
                                address=address, count=count)

        registers = getattr(result, "registers", None)
        if registers is None:
            raise ProtocolError(f"Response without register data at {address}: {result}",
                                address=address, count=count)

        return struct.pack(f">{len(registers)}H", *registers)


def create_serial_transport(port: str, serial_settings: SerialSettings) -> ModbusTransport:
    return SerialModbusTransport(port, serial_settings)
