from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from boiler_telemetry.app.api.v1.router import API_VERSION, api_router, root_router
from boiler_telemetry.app.config import settings
from boiler_telemetry.app.core.exceptions import setup_exception_handlers
from boiler_telemetry.app.runtime.service_runtime import ServiceRuntime
from boiler_telemetry.app.utilities.telemetry import logger


def create_app(runtime: Optional[ServiceRuntime] = None) -> FastAPI:
    """Create and configure FastAPI application"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle application startup and shutdown"""
        service_runtime = runtime or ServiceRuntime(settings)
        try:
            await service_runtime.start()
            app.state.runtime = service_runtime
        except Exception as e:
            logger.error(f"Failed to initialize application: {str(e)}")
            raise

        try:
            yield
        finally:
            app.state.runtime = None
            await service_runtime.stop()

    app = FastAPI(title=settings.api_title, version=API_VERSION, lifespan=lifespan)
    app.state.runtime = None

    setup_exception_handlers(app)

    app.include_router(root_router)
    app.include_router(api_router)

    return app


def run():
    uvicorn.run(create_app(), host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    run()
