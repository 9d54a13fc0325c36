"""
Uniform JSON envelope for every API response:

    {"success": bool, "data": ..., "error": {"code", "message", "details"},
     "metadata": {"timestamp", "requestId", "version", "processingTime", ...}}

Also holds the request-context middleware and the exception handlers that
turn errors into that envelope.
"""

import logging
import random
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fantasy_ai.core.config import settings
from fantasy_ai.core.errors import APIError, ErrorCode

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{random.randbytes(6).hex()}"


def _build_metadata(request: Optional[Request], extra: Dict[str, Any]) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "requestId": "unknown",
        "version": settings.API_VERSION,
    }
    if request is not None:
        metadata["requestId"] = getattr(request.state, "request_id", None) or request.headers.get(
            REQUEST_ID_HEADER, "unknown"
        )
        start_time = getattr(request.state, "start_time", None)
        if start_time is not None:
            metadata["processingTime"] = int((time.perf_counter() - start_time) * 1000)
    metadata.update(extra)
    return metadata


def success_response(
    data: Any, request: Optional[Request] = None, status_code: int = 200, **metadata
) -> JSONResponse:
    body = {
        "success": True,
        "data": data,
        "metadata": _build_metadata(request, metadata),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def error_response(
    code: str,
    message: str,
    status_code: int,
    request: Optional[Request] = None,
    details: Any = None,
    **metadata,
) -> JSONResponse:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    body = {
        "success": False,
        "error": error,
        "metadata": _build_metadata(request, metadata),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def add_request_context(request: Request, call_next):
    """Tag every request with an id and a start time"""
    request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
    request.state.start_time = time.perf_counter()
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request.state.request_id
    return response


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

_STATUS_CODES = {
    400: ErrorCode.BAD_REQUEST.value,
    401: ErrorCode.AUTHENTICATION_ERROR.value,
    403: ErrorCode.AUTHORIZATION_ERROR.value,
    404: ErrorCode.NOT_FOUND.value,
    409: ErrorCode.CONFLICT.value,
    429: ErrorCode.RATE_LIMIT_EXCEEDED.value,
    503: ErrorCode.SERVICE_UNAVAILABLE.value,
}


def format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = [str(item) for item in error.get("loc", ()) if item not in ("body", "query", "path")]
        field = ".".join(location)
        parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return ", ".join(parts)


async def api_error_handler(request: Request, exc: APIError):
    return error_response(exc.code, exc.message, exc.status_code, request, exc.details)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return error_response(
        ErrorCode.VALIDATION_ERROR.value,
        format_validation_errors(exc),
        400,
        request,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)
    code = _STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_SERVER_ERROR.value)
    return error_response(code, message, exc.status_code, request)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    message = str(exc) if settings.DEBUG else "An unexpected error occurred"
    return error_response(ErrorCode.INTERNAL_SERVER_ERROR.value, message, 500, request)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
