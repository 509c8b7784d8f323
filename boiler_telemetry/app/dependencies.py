from fastapi import HTTPException, Request, status

from boiler_telemetry.app.runtime.service_runtime import ServiceRuntime


def get_runtime(request: Request) -> ServiceRuntime:
    """Dependency to get the runtime started by the application lifespan"""
    runtime = getattr(request.app.state, "runtime", None)

    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is initializing, please try again later"
        )

    return runtime
