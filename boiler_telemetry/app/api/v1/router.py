from fastapi import APIRouter

from boiler_telemetry.app.schemas.common import RootResponse
from boiler_telemetry.app.api.v1.configuration import router as config_router
from boiler_telemetry.app.api.v1.connection import router as connection_router
from boiler_telemetry.app.api.v1.telemetry import router as telemetry_router

API_VERSION = "1.0.0"

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(connection_router)
api_router.include_router(telemetry_router)
api_router.include_router(config_router)


@api_router.get("", response_model=RootResponse)
async def v1_root() -> RootResponse:
    return RootResponse(message="Boiler Telemetry API v1 is running", version=API_VERSION)


# Root endpoint at application level (not under /api/v1)
root_router = APIRouter()


@root_router.get("/", response_model=RootResponse)
async def root() -> RootResponse:
    return RootResponse(message="Boiler Telemetry API is running", version=API_VERSION)
