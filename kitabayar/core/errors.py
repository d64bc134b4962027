"""Application-wide exception handlers."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def format_validation_errors(errors) -> str:
    """Flatten pydantic errors into one plain message ("fullName is required")."""
    messages = []
    for err in errors:
        msg = err.get("msg", "Invalid request")
        if msg.startswith(_VALUE_ERROR_PREFIX):
            messages.append(msg[len(_VALUE_ERROR_PREFIX):])
            continue
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        messages.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(messages)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    detail = format_validation_errors(exc.errors())
    logger.info("Rejected %s %s: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=400, content={"detail": detail})


async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning("Constraint violation on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Conflicts with an existing record"})


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
