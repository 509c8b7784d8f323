from fastapi import APIRouter, Depends, HTTPException, status

from boiler_telemetry.app.dependencies import get_runtime
from boiler_telemetry.app.runtime.service_runtime import ServiceRuntime
from boiler_telemetry.app.schemas.telemetry import ReadingSnapshotResponse

router = APIRouter(prefix="/telemetry", tags=["telemetry"])


@router.get("/latest", response_model=ReadingSnapshotResponse)
async def get_latest_readings(runtime: ServiceRuntime = Depends(get_runtime)) -> ReadingSnapshotResponse:
    """Readings of the most recent successful poll or on-demand read"""
    snapshot = runtime.telemetry_service.latest
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No readings available yet"
        )
    return ReadingSnapshotResponse(**snapshot.to_dict())


@router.post("/read", response_model=ReadingSnapshotResponse)
async def read_now(runtime: ServiceRuntime = Depends(get_runtime)) -> ReadingSnapshotResponse:
    """
    Read the boilers immediately.

    The request waits behind any poll cycle currently using the serial link.
    """
    snapshot = await runtime.read_snapshot()
    return ReadingSnapshotResponse(**snapshot.to_dict())
