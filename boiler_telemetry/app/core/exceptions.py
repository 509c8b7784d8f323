from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import time

from boiler_telemetry.app.core.telemetry_exceptions import (
    TelemetryError, PLCConnectionError, NotConnectedError, TimeoutExhaustedError,
    TransportTimeoutError, ProtocolError, TransportIOError, ReadCancelledError,
    FrameError, ConfigError
)
from boiler_telemetry.app.utilities.telemetry import logger

from boiler_telemetry.app.schemas.common import ErrorDetail, ErrorResponse


# Most specific class first; the first isinstance match wins
STATUS_CODE_MAP = (
    (NotConnectedError, status.HTTP_409_CONFLICT),
    (ReadCancelledError, status.HTTP_409_CONFLICT),
    (PLCConnectionError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (TimeoutExhaustedError, status.HTTP_504_GATEWAY_TIMEOUT),
    (TransportTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (ProtocolError, status.HTTP_502_BAD_GATEWAY),
    (TransportIOError, status.HTTP_502_BAD_GATEWAY),
    (FrameError, status.HTTP_502_BAD_GATEWAY),
    (ConfigError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_code_for(exc: TelemetryError) -> int:
    for exc_type, status_code in STATUS_CODE_MAP:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI):
    """Setup custom exception handlers for the FastAPI app"""

    @app.exception_handler(TelemetryError)
    async def telemetry_exception_handler(request: Request, exc: TelemetryError):
        status_code = status_code_for(exc)

        error_detail = ErrorDetail(
            error_type=type(exc).__name__,
            message=str(exc),
            plant_id=exc.plant_id,
            address=exc.address,
            count=exc.count,
            timestamp=time.time()
        )

        logger.error(f"Telemetry error: {error_detail.error_type} - {error_detail.message}", extra={
            "error_type": error_detail.error_type,
            "plant_id": error_detail.plant_id,
            "address": error_detail.address,
            "status_code": status_code,
            "request_path": request.url.path
        })

        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(detail=error_detail).model_dump()
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions gracefully"""
        error_detail = ErrorDetail(
            error_type="InternalServerError",
            message="An unexpected error occurred",
            timestamp=time.time()
        )

        logger.error(f"Unexpected error: {str(exc)}", extra={
            "error": str(exc),
            "request_path": request.url.path,
            "request_method": request.method
        }, exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(detail=error_detail).model_dump()
        )
