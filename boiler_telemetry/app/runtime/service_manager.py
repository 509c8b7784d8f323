import asyncio
import concurrent.futures
import threading
from typing import List, Optional

from boiler_telemetry.app.models.telemetry import BoilerReading, ReadingSnapshot
from boiler_telemetry.app.runtime.service_runtime import ServiceRuntime
from boiler_telemetry.app.schemas.connection import ConnectionConfig
from boiler_telemetry.app.utilities.telemetry import logger


class ServiceManager:
    """
    Runs a ServiceRuntime on a background event loop thread

    Desktop shells call the synchronous wrappers below from their UI
    thread; every call is marshalled onto the runtime's loop, so on-demand
    reads queue behind polling on the same transport lock.
    """

    def __init__(self):
        self._runtime: Optional[ServiceRuntime] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._service_thread: Optional[threading.Thread] = None
        self._ready_event: Optional[threading.Event] = None
        self._startup_error: Optional[BaseException] = None

    @property
    def runtime(self) -> Optional[ServiceRuntime]:
        return self._runtime

    def start_background_service(self, runtime: ServiceRuntime, max_wait_time: float = 30.0):
        """Start the service runtime in a background thread"""
        if self._service_thread and self._service_thread.is_alive():
            raise RuntimeError("Background service is already running")

        self._runtime = runtime
        self._ready_event = threading.Event()
        self._startup_error = None

        def run_service():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._loop = loop

            try:
                loop.run_until_complete(runtime.start())
            except Exception as e:
                logger.error(f"Background service failed to start: {e}", exc_info=True)
                self._startup_error = e
                self._ready_event.set()
                loop.close()
                return

            self._ready_event.set()
            logger.info("Background service started and ready")

            try:
                loop.run_forever()
            finally:
                logger.info("Background service shutting down...")
                loop.run_until_complete(runtime.stop())
                loop.close()

        self._service_thread = threading.Thread(target=run_service, name="telemetry-runtime", daemon=True)
        self._service_thread.start()

        if not self._ready_event.wait(timeout=max_wait_time):
            raise TimeoutError(f"Background service failed to start within {max_wait_time} seconds")
        if self._startup_error is not None:
            self._service_thread = None
            raise RuntimeError(f"Background service failed to start: {self._startup_error}") from self._startup_error

    def stop_background_service(self, timeout: float = 10.0):
        if self._loop and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)

        if self._service_thread:
            self._service_thread.join(timeout=timeout)

        self._loop = None
        self._service_thread = None
        self._runtime = None
        self._ready_event = None
        logger.info("Background service stopped")

    def connect(self, config: ConnectionConfig, timeout: float = 15.0):
        self._ensure_started()
        return self._run(self._runtime.connect(config), timeout, "connect")

    def disconnect(self, timeout: float = 15.0) -> bool:
        self._ensure_started()
        return self._run(self._runtime.disconnect(), timeout, "disconnect")

    def read_now(self, timeout: float = 30.0) -> List[BoilerReading]:
        self._ensure_started()
        return self._run(self._runtime.read_now(), timeout, "read")

    def is_connected(self) -> bool:
        self._ensure_started()
        return self._runtime.connection_manager.is_connected()

    def latest_readings(self) -> Optional[ReadingSnapshot]:
        self._ensure_started()
        return self._runtime.telemetry_service.latest

    def load_config(self) -> ConnectionConfig:
        self._ensure_started()
        return self._runtime.config_store.load()

    def save_config(self, config: ConnectionConfig) -> None:
        self._ensure_started()
        self._runtime.config_store.save(config)

    def status(self) -> dict:
        self._ensure_started()
        return self._runtime.status()

    def _ensure_started(self):
        if not self._runtime or not self._loop:
            raise RuntimeError("Background service not started. Call start_background_service() first.")

    def _run(self, coroutine, timeout: float, operation: str):
        """Run a runtime coroutine on the background loop and wait for its result"""
        future = asyncio.run_coroutine_threadsafe(coroutine, self._loop)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise TimeoutError(f"{operation} operation timed out after {timeout} seconds")


# Global instance
service_manager = ServiceManager()
