from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.libs.formats.datetime import iso, now


def error_body(request: Request, status_code: int, message: Any) -> dict:
    return {
        "error": {
            "statusCode": status_code,
            "message": message,
            "timestamp": iso(now()),
            "path": request.url.path,
        }
    }


def register_exception_handlers(app: FastAPI):
    """Render every error as {"error": {statusCode, message, timestamp, path}}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"HTTPException {exc.status_code} on {request.url.path}: {exc.detail}")
        else:
            logger.info(f"HTTPException {exc.status_code} on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(request, exc.status_code, exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        messages = []
        for error in exc.errors():
            field = ".".join(str(x) for x in error["loc"] if x != "body") or "body"
            messages.append(f"{field}: {error['msg']}")
        logger.info(f"Validation error on {request.url.path}: {messages}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(request, status.HTTP_400_BAD_REQUEST, messages),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(request, 500, "Internal server error"),
        )
