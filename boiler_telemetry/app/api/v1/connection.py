from fastapi import APIRouter, Depends

from boiler_telemetry.app.core.telemetry_exceptions import PLCConnectionError
from boiler_telemetry.app.dependencies import get_runtime
from boiler_telemetry.app.runtime.service_runtime import ServiceRuntime
from boiler_telemetry.app.schemas.connection import (
    ConnectionConfig, ConnectionStatusResponse, ConnectRequest, DisconnectResponse
)
from boiler_telemetry.app.utilities.telemetry import logger

router = APIRouter(prefix="/connection", tags=["connection"])


@router.get("", response_model=ConnectionStatusResponse)
async def get_connection_status(runtime: ServiceRuntime = Depends(get_runtime)) -> ConnectionStatusResponse:
    """Connection state, fixed serial parameters, read metrics and polling counters"""
    return ConnectionStatusResponse(**runtime.status())


@router.post("/connect", response_model=ConnectionStatusResponse)
async def connect(request: ConnectRequest, runtime: ServiceRuntime = Depends(get_runtime)) -> ConnectionStatusResponse:
    """
    Open the serial link and remember the parameters for the next start.

    When ``comPort`` is omitted the stored port is used. Reconnecting while
    connected closes the previous link first.
    """
    port = request.port
    if not port:
        port = runtime.config_store.load().port
    if not port:
        raise PLCConnectionError("No serial port given and none stored", plant_id=request.plant_id)

    logger.debug("Connect request", extra={"plant_id": request.plant_id, "port": port})
    await runtime.connect(ConnectionConfig(plant_id=request.plant_id, port=port))
    return ConnectionStatusResponse(**runtime.status())


@router.post("/disconnect", response_model=DisconnectResponse)
async def disconnect(runtime: ServiceRuntime = Depends(get_runtime)) -> DisconnectResponse:
    disconnected = await runtime.disconnect()
    message = "Disconnected" if disconnected else "Nothing to disconnect"
    return DisconnectResponse(disconnected=disconnected, message=message)
