"""
Central API router and error handlers for the Axon backend.

This module provides:
- A central router that includes every feature router
- Exception handlers mapping errors to JSON responses
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from axon.common.error_handling import (
    AxonError, CatalogLoadError, PersistenceError, ValidationError, log_error
)
from axon.common.logger import app_logger
from axon.content.router import router as content_router
from axon.training.router import router as training_router

logger = app_logger.getChild("api")

# Create main API router
main_router = APIRouter()

# Dictionary to track registered feature routers
registered_modules: Dict[str, APIRouter] = {}

CATALOG_ERROR_MESSAGE = "Failed to load word database"
GENERIC_ERROR_MESSAGE = "Internal server error"

# Error types reported by FastAPI for undecodable bodies and absent fields
JSON_ERROR_TYPES = ("value_error.jsondecode", "json_invalid")
MISSING_ERROR_TYPES = ("value_error.missing", "missing")


def register_module(name: str, router: APIRouter) -> None:
    """
    Register a feature router with the main API router under ``/<name>``.

    Args:
        name: Feature name used as path prefix and tag
        router: FastAPI router for the feature
    """
    if name in registered_modules:
        logger.warning(f"Module '{name}' already registered, overwriting")

    main_router.include_router(router, prefix=f"/{name}", tags=[name])
    registered_modules[name] = router
    logger.info(f"Registered module: {name} with {len(router.routes)} routes")


register_module("content", content_router)
register_module("training", training_router)


def _field_name(location) -> str:
    parts = [str(part) for part in location if part not in ("body", "__root__")]
    return ".".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Turn request validation failures into a 400 with one readable message.

    Missing top-level fields are listed together; any other failure reports
    its own message.
    """
    errors = exc.errors()
    error_details = [
        {
            "location": list(error.get("loc", [])),
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "")
        }
        for error in errors
    ]

    missing_top: List[str] = []
    message: Optional[str] = None
    for error in errors:
        error_type = error.get("type", "")
        field = _field_name(error.get("loc", []))
        if error_type in JSON_ERROR_TYPES:
            message = "Invalid JSON in request body"
            break
        if error_type in MISSING_ERROR_TYPES:
            if "." in field:
                message = message or f"{field} is required"
            elif field:
                missing_top.append(field)
            continue
        message = message or error.get("msg", "Validation error")

    if missing_top:
        message = f"Missing required fields: {', '.join(missing_top)}"

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message or "Validation error", "details": error_details}
    )


def _server_error(request: Request, message: str, exc: Exception) -> JSONResponse:
    content: Dict[str, Any] = {"error": message}
    if getattr(request.app.state, "debug_errors", False):
        content["details"] = str(exc.cause) if isinstance(exc, AxonError) and exc.cause else str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


async def axon_exception_handler(request: Request, exc: AxonError) -> JSONResponse:
    """Map application errors to status codes and client messages."""
    if isinstance(exc, ValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message})

    log_error(exc, context={"path": request.url.path}, log=logger)

    if isinstance(exc, CatalogLoadError):
        return _server_error(request, CATALOG_ERROR_MESSAGE, exc)
    if isinstance(exc, PersistenceError):
        return _server_error(request, exc.message, exc)
    return _server_error(request, GENERIC_ERROR_MESSAGE, exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error(exc, level=logging.ERROR, context={"path": request.url.path}, log=logger)
    return _server_error(request, GENERIC_ERROR_MESSAGE, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(AxonError, axon_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
