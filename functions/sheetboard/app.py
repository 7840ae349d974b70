"""
FastAPI application entry point for the bulletin board.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sheetboard.config import Settings, get_settings
from sheetboard.dependencies import BoardServices, init_app_state
from sheetboard.errors import BoardError, ValidationError
from sheetboard.routes import page_router, router
from sheetboard.schemas import ErrorResponse

logger = logging.getLogger(__name__)


async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = ErrorResponse(error=exc.message, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid")
    return f"{location}: {message}" if location else message


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = "; ".join(_describe(error) for error in exc.errors()) or None
    return await board_error_handler(request, ValidationError(message))


def create_app(
    settings: Settings | None = None, services: BoardServices | None = None
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Sheetboard", version="0.1.0")
    init_app_state(app, settings, services)
    app.add_exception_handler(BoardError, board_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(page_router)
    return app


app = create_app()
