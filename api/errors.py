"""
api/errors.py -- Rendering of domain errors into the standard error envelope.

Shared by the exception handlers in api/main.py and by routes that must add
headers to an error response (login sets Cache-Control: no-store).
"""

from typing import Optional

from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse
from auth.errors import AuthError


def error_response(status_code: int, code: str, message: str, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


def auth_error_response(exc: AuthError) -> JSONResponse:
    return error_response(exc.status_code, exc.code, exc.message)
