from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.errors import ConsistencyFault, SeatLockError, StoreUnavailable
from app.logger_config import logger


async def seat_lock_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, SeatLockError) else SeatLockError(str(exc), 500, "internal_error")
    content = {"error": error.error_code, "detail": error.message}
    if isinstance(error, StoreUnavailable):
        content["retryable"] = True
    if isinstance(error, ConsistencyFault):
        logger.critical(f"{request.method} {request.url.path} surfaced consistency fault: {error.message}")
    return JSONResponse(status_code=error.status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SeatLockError, seat_lock_error_handler)
