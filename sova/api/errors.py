"""Exception handlers mapping errors to JSON ``{"error": ...}`` bodies."""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from fastapi.routing import APIWebSocketRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from sova.errors import SovaError

logger = logging.getLogger(__name__)


def _websocket_paths(routes) -> list[str]:
    paths = []
    for route in routes:
        if isinstance(route, APIWebSocketRoute):
            paths.append(route.path)
        nested = getattr(route, "routes", None)
        if nested:
            paths.extend(_websocket_paths(nested))
    return paths


def known_routes(app: FastAPI) -> list[str]:
    """``METHOD /path`` for every registered route.

    HTTP routes come from the OpenAPI document, which carries included
    routers with their prefixes however they are nested.
    """
    routes = []
    for path, operations in app.openapi()["paths"].items():
        for method in sorted(operations):
            routes.append(f"{method.upper()} {path}")
    routes.extend(f"WS {path}" for path in _websocket_paths(app.routes))
    return routes


async def sova_error_handler(request: Request, exc: SovaError) -> ORJSONResponse:
    return ORJSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    errors = exc.errors()
    if any(e.get("type") == "json_invalid" for e in errors):
        message = "Invalid JSON body"
    else:
        message = "Invalid request"
    return ORJSONResponse(
        status_code=400,
        content={"error": message, "details": jsonable_encoder(errors)},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    if exc.status_code == 404:
        return ORJSONResponse(
            status_code=404,
            content={
                "error": "Route not found",
                "availableRoutes": known_routes(request.app),
            },
        )
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return ORJSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SovaError, sova_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
