from fastapi import APIRouter, Depends

from boiler_telemetry.app.dependencies import get_runtime
from boiler_telemetry.app.runtime.service_runtime import ServiceRuntime
from boiler_telemetry.app.schemas.connection import ConnectionConfig

router = APIRouter(prefix="/config", tags=["config"])


@router.get("", response_model=ConnectionConfig)
async def load_config(runtime: ServiceRuntime = Depends(get_runtime)) -> ConnectionConfig:
    return runtime.config_store.load()


@router.put("", response_model=ConnectionConfig)
async def save_config(config: ConnectionConfig, runtime: ServiceRuntime = Depends(get_runtime)) -> ConnectionConfig:
    """Store the plant id and port used by the next connect or startup"""
    runtime.config_store.save(config)
    return config
