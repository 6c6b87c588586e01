import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..core.errors import ReservationError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ReservationError)
    async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
        logger.info(
            "Request rejected",
            extra={"path": request.url.path, "code": exc.code, "detail": exc.message},
        )
        return JSONResponse(
            {
                "detail": exc.message,
                "code": exc.code,
                "details": jsonable_encoder(exc.details),
            },
            status_code=exc.status_code,
        )
