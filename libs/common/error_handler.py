from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from libs.common.errors import DomainError
from libs.common.logging import get_logger

logger = get_logger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    else:
        logger.info("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def database_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.exception("Database error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register handlers that turn domain and storage errors into JSON."""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
