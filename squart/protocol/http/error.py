from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, cast

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


logger = logging.getLogger(__name__)

FieldErrors = List[Dict[str, str]]

_CODES: Dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "unprocessable_entity",
}


def status_to_code(status_code: int) -> str:
    """Stable machine-readable code for an HTTP status."""
    if status_code >= 500:
        return "internal_error"
    return _CODES.get(status_code, "error")


def error_envelope(
    *,
    code: str,
    message: str,
    err_type: str,
    request_id: str,
    field_errors: Optional[FieldErrors] = None,
) -> Dict[str, Any]:
    """Build the JSON body shared by every error response."""
    body: Dict[str, Any] = {
        "code": code,
        "message": message,
        "type": err_type,
        "request_id": request_id,
    }
    if field_errors:
        body["field_errors"] = field_errors
    return {"error": body}


def _respond(
    request: Request,
    status_code: int,
    message: str,
    *,
    field_errors: Optional[FieldErrors] = None,
) -> JSONResponse:
    payload = error_envelope(
        code=status_to_code(status_code),
        message=message,
        err_type="server_error" if status_code >= 500 else "client_error",
        request_id=getattr(request.state, "request_id", ""),
        field_errors=field_errors,
    )
    return JSONResponse(status_code=status_code, content=payload)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, HTTPException):
        return await exception_handler(request, exc)
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _respond(request, exc.status_code, detail)


async def value_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Bad grids, layouts, sides and moves are the caller's fault
    return _respond(request, status.HTTP_400_BAD_REQUEST, str(exc) or "bad request")


async def request_validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    fields: FieldErrors = []
    for err in cast(RequestValidationError, exc).errors():
        fields.append(
            {
                "field": ".".join(str(p) for p in err.get("loc", ()) if p is not None),
                "code": err.get("type", "value_error"),
                "message": err.get("msg", "invalid value"),
            }
        )
    return _respond(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        field_errors=fields or None,
    )


async def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, HTTPException):
        return await http_exception_handler(request, exc)
    if isinstance(exc, ValueError):
        return await value_error_handler(request, exc)
    logger.exception(
        "Unhandled exception", extra={"request_id": getattr(request.state, "request_id", "")}
    )
    return _respond(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")
