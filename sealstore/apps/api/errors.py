from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sealstore.apps.api.response import error_response
from sealstore.core.errors import (
    AlreadyExistsError,
    DecryptionFailedError,
    ForbiddenError,
    NotFoundError,
    SealStoreError,
    ValidationFailedError,
)


logger = logging.getLogger(__name__)

_DEFAULT_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTH_UNAUTHORIZED",
    403: "AUTH_FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
}

# Most specific classes first: KeyUnavailableError is a DecryptionFailedError.
_DOMAIN_ERRORS: tuple[tuple[type[SealStoreError], int, str], ...] = (
    (NotFoundError, 404, "NOT_FOUND"),
    (AlreadyExistsError, 409, "CONFLICT"),
    (ValidationFailedError, 400, "VALIDATION_ERROR"),
    (ForbiddenError, 403, "FORBIDDEN"),
    (DecryptionFailedError, 500, "DECRYPTION_FAILED"),
)


def _default_code(status_code: int) -> str:
    # Fallback error code when an HTTPException carries none.
    return _DEFAULT_ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def _split_detail(detail: Any, status_code: int) -> tuple[str, str, dict[str, Any] | None]:
    # Pull code, message and details out of an HTTPException detail payload.
    if isinstance(detail, dict):
        code = str(detail.get("code") or _default_code(status_code))
        message = str(detail.get("message") or "Request failed")
        details = {k: v for k, v in detail.items() if k not in {"code", "message"}}
        return code, message, details or None
    if isinstance(detail, str):
        return _default_code(status_code), detail, None
    return _default_code(status_code), "Request failed", None


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Normalize FastAPI and Starlette HTTP errors into the shared envelope.
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Surface request validation errors with structured details.
    payload = error_response(
        request=request,
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(content=payload, status_code=422)


async def sealstore_error_handler(request: Request, exc: SealStoreError) -> JSONResponse:
    # Map domain errors to status codes; corrupted rows already arrive as NotFoundError.
    for error_cls, status_code, code in _DOMAIN_ERRORS:
        if isinstance(exc, error_cls):
            break
    else:
        status_code, code = 500, "INTERNAL_ERROR"
    if status_code >= 500:
        # Ciphertext and store failures stay server-side; clients get a stable message.
        logger.error("request_failed path=%s code=%s error=%s", request.url.path, code, exc)
        message = "Internal server error"
    else:
        message = str(exc)
    payload = error_response(request=request, code=code, message=message)
    return JSONResponse(content=payload, status_code=status_code)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Avoid leaking stack traces; return a stable internal error envelope.
    logger.exception("request_unhandled path=%s", request.url.path, exc_info=exc)
    payload = error_response(request=request, code="INTERNAL_ERROR", message="Internal server error")
    return JSONResponse(content=payload, status_code=500)
