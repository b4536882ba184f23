from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from engineer_assistant.analyzers.errors import AnalysisError, CameraPermissionError, CameraStateError

logger = logging.getLogger(__name__)


def _get_request_id(request: Request) -> Optional[str]:
    """RequestIdMiddleware sets request.state.request_id; fall back to the inbound header."""
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        return rid
    return request.headers.get("X-Request-Id")


def _error_payload(code: str, message: str, request_id: Optional[str]) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message, "request_id": request_id}}


def _error_response(status_code: int, code: str, message: str, request: Request) -> JSONResponse:
    rid = _get_request_id(request)
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(code=code, message=message, request_id=rid),
        headers={"X-Request-Id": rid} if rid else None,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Normalize HTTPException into the global error schema.
    - detail as dict: {"code": "...", "message": "..."}  (route style)
    - detail as str: "..."                            (FastAPI default style)
    """
    code = "http_error"
    message = "Request failed"

    if isinstance(exc.detail, dict):
        code = str(exc.detail.get("code", code))
        message = str(exc.detail.get("message", message))
    elif isinstance(exc.detail, str):
        message = exc.detail

    return _error_response(exc.status_code, code, message, request)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 with a short "loc: msg; loc: msg" summary."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", []) if x != "body")
        msg = err.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else str(msg))

    message = "; ".join(parts) if parts else "Validation error"
    return _error_response(422, "validation_error", message, request)


async def analysis_error_handler(request: Request, exc: AnalysisError) -> JSONResponse:
    """
    One analysis failed. The user sees the error's user_message; the internal
    detail (which may be a schema dump) stays in the logs.
    """
    logger.warning("analysis_error code=%s detail=%s", exc.code, exc)
    return _error_response(exc.status_code, exc.code, exc.user_message, request)


async def camera_permission_error_handler(request: Request, exc: CameraPermissionError) -> JSONResponse:
    logger.warning("camera_error code=%s detail=%s", exc.code, exc)
    return _error_response(exc.status_code, exc.code, exc.user_message, request)


async def camera_state_error_handler(request: Request, exc: CameraStateError) -> JSONResponse:
    return _error_response(exc.status_code, exc.code, str(exc), request)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all so a 500 still carries the global error schema."""
    logger.exception("Unhandled error")
    return _error_response(500, "internal_error", "Internal server error", request)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AnalysisError, analysis_error_handler)
    app.add_exception_handler(CameraPermissionError, camera_permission_error_handler)
    app.add_exception_handler(CameraStateError, camera_state_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
