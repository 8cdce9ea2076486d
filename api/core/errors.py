"""Global exception handlers: every failure becomes {"error": "<message>"}."""

from __future__ import annotations

import logging

import asyncpg
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from .db import ConfigurationError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _catch_unhandled(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_response(500, "An unexpected error occurred")


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        messages = "; ".join(
            f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in exc.errors()
        )
        return error_response(400, messages)

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        logger.error("Configuration error: %s", exc)
        return error_response(500, "Database is not configured.")

    @app.exception_handler(asyncpg.PostgresError)
    async def store_error(request: Request, exc: Exception):
        logger.error("External DB error on %s: %s", request.url.path, exc)
        return error_response(500, str(exc))

    app.add_exception_handler(asyncpg.InterfaceError, store_error)

    @app.exception_handler(OSError)
    async def connection_error(request: Request, exc: OSError):
        logger.error("External DB connection error: %s", exc)
        return error_response(500, str(exc) or "Database connection failed.")

    @app.exception_handler(TimeoutError)
    async def timeout_error(request: Request, exc: TimeoutError):
        logger.error("External DB timeout on %s", request.url.path)
        return error_response(500, "Database request timed out.")

    # Registered before CORSMiddleware so unhandled 500s still carry CORS headers.
    app.add_middleware(BaseHTTPMiddleware, dispatch=_catch_unhandled)
