from fastapi import HTTPException

from models.task_errors import (
    AlreadyRunning,
    CaptureUnavailable,
    GatewayOverloaded,
    GatewayRequestFailed,
    InvalidDirection,
    TaskError,
)

STATUS_BY_ERROR = (
    (AlreadyRunning, 409),
    (CaptureUnavailable, 503),
    (GatewayOverloaded, 502),
    (GatewayRequestFailed, 502),
    (InvalidDirection, 400),
)


def to_http_exception(exc: Exception) -> HTTPException:
    """Translate a domain error into the HTTPException returned to clients."""
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=f"{error_type.kind}: {exc}")
    if isinstance(exc, TaskError):
        return HTTPException(status_code=500, detail=f"{exc.kind}: {exc}")
    return HTTPException(status_code=500, detail=str(exc))
