#!/usr/bin/env python3
"""
One-shot probe of the boiler PLC.

Opens the serial port with the fixed 9600-7E1 ASCII settings, reads the
configured register span once and prints the decoded boiler readings.
"""

import argparse
import asyncio
import json
import sys

from serial.tools import list_ports

from boiler_telemetry.app.config import load_register_map, settings
from boiler_telemetry.app.core.connection_manager import ConnectionManager
from boiler_telemetry.app.core.register_reader import RegisterReader
from boiler_telemetry.app.core.telemetry_decoder import decode, frame_to_words
from boiler_telemetry.app.core.telemetry_exceptions import TelemetryError
from boiler_telemetry.app.schemas.connection import ConnectionConfig


def list_serial_ports() -> int:
    ports = list_ports.comports()
    if not ports:
        print("No serial ports found")
        return 1
    for port in sorted(ports, key=lambda p: p.device):
        print(f"{port.device}\t{port.description}")
    return 0


async def probe(port: str, register_map_path: str, show_raw: bool) -> int:
    register_map = load_register_map(register_map_path)
    manager = ConnectionManager()
    reader = RegisterReader(manager, register_map)

    print("Testing connection:")
    print(f"  Port: {port}")
    print(f"  Registers: {register_map.base_address}..{register_map.base_address + register_map.span - 1}")
    print("-" * 40)

    try:
        await manager.connect(ConnectionConfig(port=port))
        print("✓ Serial port opened")

        frame = await reader.read_block(register_map.base_address, register_map.span)
        if show_raw:
            for offset, value in enumerate(frame_to_words(frame)):
                print(f"Register {register_map.base_address + offset}: {value}")

        readings = decode(frame, register_map)
        print(json.dumps([reading.to_dict() for reading in readings], indent=2))
        return 0

    except TelemetryError as e:
        print(f"✗ {type(e).__name__}: {e}")
        return 1
    finally:
        await manager.disconnect()


def main():
    parser = argparse.ArgumentParser(description="Read and decode one telemetry frame from the boiler PLC")
    parser.add_argument("port", nargs="?", help="Serial port, e.g. COM9 or /dev/ttyUSB0")
    parser.add_argument("--register-map", default=settings.register_map_path, help="Register map YAML file")
    parser.add_argument("--raw", action="store_true", help="Also print every raw register value")
    parser.add_argument("--list-ports", action="store_true", help="List available serial ports and exit")
    args = parser.parse_args()

    if args.list_ports:
        sys.exit(list_serial_ports())
    if not args.port:
        parser.error("a serial port is required unless --list-ports is given")

    sys.exit(asyncio.run(probe(args.port, args.register_map, args.raw)))


if __name__ == "__main__":
    main()
