"""Exception handlers rendering errors in the shared envelope."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bugtracker.api.response_utils import build_meta
from bugtracker.core.config import settings
from bugtracker.core.exceptions import (
    AnalysisError,
    AuthenticationError,
    AuthorizationError,
    BugTrackerException,
    DatabaseError,
    DimensionMismatchError,
    DuplicateRecordError,
    EmbeddingError,
    RecordNotFoundError,
    SearchError,
    ValidationError,
)
from bugtracker.core.logging import get_logger
from bugtracker.schemas.response import ResponseEnvelope, ResponseError

logger = get_logger(__name__)

EXCEPTION_STATUS_MAP: dict[type[Exception], int] = {
    RecordNotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    DuplicateRecordError: status.HTTP_409_CONFLICT,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    EmbeddingError: status.HTTP_503_SERVICE_UNAVAILABLE,
    DimensionMismatchError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AnalysisError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    SearchError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    DatabaseError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}
DEFAULT_ERROR_CODE = "INTERNAL.UNEXPECTED"


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers that wrap exceptions in the common envelope."""

    app.add_exception_handler(BugTrackerException, _bugtracker_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)


def status_for(exc: Exception) -> int:
    """Most specific mapped status along the exception's MRO."""
    for klass in type(exc).__mro__:
        if klass in EXCEPTION_STATUS_MAP:
            return EXCEPTION_STATUS_MAP[klass]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _envelope_response(
    request: Request,
    status_code: int,
    *,
    code: str,
    message: str,
    details: Any | None = None,
    hint: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    envelope = ResponseEnvelope[None](
        success=False,
        data=None,
        error=ResponseError(code=code, message=message, details=details, hint=hint),
        meta=build_meta(request),
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope, by_alias=True),
        headers=headers,
    )


def _compress_detail(detail: Any) -> tuple[str, Any | None]:
    if isinstance(detail, dict):
        message = detail.get("message", str(detail))
        return message, detail.get("details") or detail

    return str(detail), None


def _format_validation_message(errors: list[dict[str, Any]]) -> str:
    if not errors:
        return "Validation error"

    parts: list[str] = []
    for error in errors:
        loc = error.get("loc", [])
        msg = error.get("msg", "Validation error")
        loc_path = ".".join(str(item) for item in loc) if loc else None
        parts.append(f"{loc_path}: {msg}" if loc_path else msg)

    return "; ".join(parts)


async def _bugtracker_exception_handler(request: Request, exc: BugTrackerException) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)

    return _envelope_response(
        request,
        status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
        hint=getattr(exc, "hint", None),
    )


async def _request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors() or []
    return _envelope_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        code="ValidationError",
        message=_format_validation_message(errors),
        details={"errors": errors},
    )


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message, details = _compress_detail(exc.detail)
    return _envelope_response(
        request,
        exc.status_code,
        code=f"HTTP.{exc.status_code}",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=exc.__class__.__name__,
        error=str(exc),
    )
    details = None if settings.is_production else {"type": exc.__class__.__name__}
    return _envelope_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=DEFAULT_ERROR_CODE,
        message="Unexpected server error.",
        details=details,
    )
