"""Exception handlers and request logging shared by the app and tests."""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from houses_bc.services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


async def upstream_error_handler(request: Request, exc: UpstreamServiceError) -> JSONResponse:
    logger.error("Upstream %s failed on %s: %s", exc.service, request.url.path, exc.message)
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "error": f"{exc.service} is temporarily unavailable, please try again",
        },
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


def install_handlers(app: FastAPI) -> None:
    """Attach the JSON error envelope handlers and request logging."""
    app.add_exception_handler(UpstreamServiceError, upstream_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.middleware("http")(log_requests)
