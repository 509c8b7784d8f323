import asyncio
import time
from datetime import datetime
from typing import List, Optional

from boiler_telemetry.app.core.connection_manager import ConnectionManager
from boiler_telemetry.app.core.telemetry_exceptions import (
    LengthMismatchError, ReadCancelledError, TimeoutExhaustedError, TransportTimeoutError
)
from boiler_telemetry.app.core.transport import ModbusTransport
from boiler_telemetry.app.models.connection_manager import ReadMetrics, RegisterBlock
from boiler_telemetry.app.models.register_map import MAX_ADDRESS, RegisterMapConfig
from boiler_telemetry.app.utilities.telemetry import logger


def plan_blocks(start_address: int, count: int, max_chunk_size: int) -> List[RegisterBlock]:
    """Split a register range into ascending requests of at most max_chunk_size registers"""
    blocks = []
    address = start_address
    remaining = count
    while remaining > 0:
        size = min(remaining, max_chunk_size)
        blocks.append(RegisterBlock(address, size))
        address += size
        remaining -= size
    return blocks


class RegisterReader:
    """Chunked holding-register reads with timeout-only retry"""

    def __init__(self, connection_manager: ConnectionManager, register_map: RegisterMapConfig, sleep=asyncio.sleep):
        self.connection_manager = connection_manager
        self.register_map = register_map
        self.metrics = ReadMetrics()
        self._sleep = sleep

    async def read_block(self, start_address: int, count: int,
                         cancel_event: Optional[asyncio.Event] = None) -> bytes:
        """
        Read ``count`` holding registers starting at ``start_address``.

        Returns exactly ``count * 2`` bytes in register order. Any failing
        sub-request fails the whole block; no partial frame is returned.
        """
        if count < 1:
            raise ValueError(f"Register count must be positive, got {count}")
        if start_address < 0 or start_address + count > MAX_ADDRESS + 1:
            raise ValueError(f"Register range {start_address}+{count} outside the Modbus address space")

        blocks = plan_blocks(start_address, count, self.register_map.max_chunk_size)
        start_time = time.time()

        logger.debug("Reading register block", extra={
            "component": "register_reader",
            "start_address": start_address,
            "count": count,
            "chunks": len(blocks)
        })

        async with self.connection_manager.acquire() as transport:
            frame = bytearray()
            for block in blocks:
                frame.extend(await self._read_chunk(transport, block, cancel_event))

        if len(frame) != count * 2:
            raise LengthMismatchError(
                f"Assembled frame has {len(frame)} bytes, expected {count * 2}",
                expected=count * 2, actual=len(frame), address=start_address, count=count
            )

        logger.debug("Register block read", extra={
            "component": "register_reader",
            "start_address": start_address,
            "count": count,
            "duration_ms": int((time.time() - start_time) * 1000)
        })
        return bytes(frame)

    async def _read_chunk(self, transport: ModbusTransport, block: RegisterBlock,
                          cancel_event: Optional[asyncio.Event]) -> bytes:
        max_attempts = self.register_map.max_attempts
        last_exception = None

        for attempt in range(1, max_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Register read cancelled", extra={
                    "component": "register_reader",
                    "address": block.start_address,
                    "attempt": attempt
                })
                raise ReadCancelledError("Register read cancelled",
                                         address=block.start_address, count=block.count)

            start_time = time.time()
            self.metrics.total_requests += 1
            try:
                data = await transport.read_holding_registers(block.start_address, block.count)
            except TransportTimeoutError as e:
                last_exception = e
                self.metrics.timeouts += 1
                self._record_failure(str(e))

                if attempt < max_attempts:
                    self.metrics.retries += 1
                    logger.warning("Register read timed out, retrying", extra={
                        "component": "register_reader",
                        "address": block.start_address,
                        "count": block.count,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "retry_delay": self.register_map.retry_delay
                    })
                    await self._sleep(self.register_map.retry_delay)
                continue
            except Exception as e:
                self._record_failure(str(e))
                logger.error("Register read failed", extra={
                    "component": "register_reader",
                    "address": block.start_address,
                    "count": block.count,
                    "attempt": attempt,
                    "error": str(e)
                })
                raise

            if len(data) != block.byte_length:
                self._record_failure(f"length mismatch at {block.start_address}")
                raise LengthMismatchError(
                    f"Registers {block.start_address}-{block.end_address} returned {len(data)} bytes, "
                    f"expected {block.byte_length}",
                    expected=block.byte_length, actual=len(data),
                    address=block.start_address, count=block.count
                )

            self._record_success(start_time)
            return data

        logger.error("Register read failed after all attempts", extra={
            "component": "register_reader",
            "address": block.start_address,
            "count": block.count,
            "total_attempts": max_attempts
        })
        raise TimeoutExhaustedError(
            f"Registers {block.start_address}-{block.end_address} timed out {max_attempts} times",
            attempts=max_attempts, address=block.start_address, count=block.count
        ) from last_exception

    def _record_success(self, start_time: float):
        response_time = time.time() - start_time
        self.metrics.successful_requests += 1
        self.metrics.response_times.append(response_time)
        self.metrics.avg_response_time = sum(self.metrics.response_times) / len(self.metrics.response_times)
        self.metrics.last_successful_read = datetime.now()

    def _record_failure(self, error_message: str):
        self.metrics.failed_requests += 1
        self.metrics.last_error = error_message
        self.metrics.last_error_time = datetime.now()

    def get_metrics(self) -> dict:
        metrics = self.metrics
        return {
            "total_requests": metrics.total_requests,
            "successful_requests": metrics.successful_requests,
            "failed_requests": metrics.failed_requests,
            "timeouts": metrics.timeouts,
            "retries": metrics.retries,
            "success_rate": metrics.success_rate,
            "avg_response_time": metrics.avg_response_time,
            "last_successful_read": metrics.last_successful_read.isoformat() if metrics.last_successful_read else None,
            "last_error": metrics.last_error,
            "last_error_time": metrics.last_error_time.isoformat() if metrics.last_error_time else None
        }
