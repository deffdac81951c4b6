"""Mapping of domain errors to HTTP responses"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from church_finance.domain.exceptions import DomainException, ValidationError

logger = logging.getLogger(__name__)


def error_envelope(kind: str, message: str, request_id: Optional[str], details: Any = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"kind": kind, "message": message, "request_id": request_id}
    if details is not None:
        error["details"] = details
    return {"error": error}


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


async def handle_domain_exception(request: Request, exc: DomainException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.kind, exc.message, _request_id(request)),
    )


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies are validation failures like any other: 400
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=error_envelope(ValidationError.kind, "Request validation failed", _request_id(request), details),
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error: {exc}", extra={"request_id": _request_id(request)}, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_envelope("INTERNAL_ERROR", "Internal server error", _request_id(request)),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, handle_domain_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)
