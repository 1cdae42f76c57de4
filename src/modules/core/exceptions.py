"""Project-wide DRF exception handler.

Every framework error leaves the API in the same envelope the order
endpoints use for business rejections::

    {"error": "VALIDATION_ERROR", "detail": "...", "fields": {...}}
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)

_ERROR_CODES = {
    exceptions.ValidationError: "VALIDATION_ERROR",
    exceptions.ParseError: "INVALID_JSON",
    exceptions.NotAuthenticated: "AUTH_REQUIRED",
    exceptions.AuthenticationFailed: "AUTH_INVALID",
    exceptions.PermissionDenied: "FORBIDDEN",
    exceptions.NotFound: "NOT_FOUND",
    exceptions.MethodNotAllowed: "METHOD_NOT_ALLOWED",
    exceptions.Throttled: "THROTTLED",
}


def _error_code(exc: Exception) -> str:
    for exc_class, code in _ERROR_CODES.items():
        if isinstance(exc, exc_class):
            return code
    return str(getattr(exc, "default_code", "error")).upper()


def api_exception_handler(
    exc: Exception, context: Dict[str, Any]
) -> Optional[Response]:
    response = exception_handler(exc, context)
    if response is None:
        # Not an API exception: let Django log it and answer 500.
        return None

    code = _error_code(exc)
    body: Dict[str, Any] = {"error": code}
    if isinstance(exc, exceptions.ValidationError):
        body["detail"] = "Request validation failed."
        body["fields"] = response.data
    elif isinstance(response.data, dict):
        body["detail"] = response.data.get("detail", str(exc))
    else:
        body["detail"] = str(exc)

    logger.info("api.error", code=code, status_code=response.status_code)
    response.data = body
    return response


def pydantic_validation_error(exc: PydanticValidationError) -> exceptions.ValidationError:
    """Re-raise a DTO validation failure as a DRF 400 with per-field messages."""
    fields: Dict[str, List[str]] = {}
    for error in exc.errors():
        key = ".".join(str(part) for part in error["loc"]) or "non_field_errors"
        fields.setdefault(key, []).append(error["msg"])
    return exceptions.ValidationError(fields)
