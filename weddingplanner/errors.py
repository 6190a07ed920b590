# weddingplanner/errors.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    code = "Error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "ValidationError"


class AuthError(AppError):
    status_code = 401
    code = "AuthError"


class ForbiddenError(AppError):
    status_code = 403
    code = "Forbidden"


class ConflictError(AppError):
    # Booking conflicts are reported as plain bad requests.
    status_code = 400
    code = "Conflict"


class NotFoundError(AppError):
    status_code = 404
    code = "NotFound"


class InternalError(AppError):
    status_code = 500
    code = "InternalError"

    def __init__(self, message: str = "Internal server error."):
        super().__init__(message)


def _body(exc: AppError) -> dict:
    return {"message": exc.message, "code": exc.code}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.error("%s %s -> %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_body(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        fields = []
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
            if loc:
                fields.append(".".join(loc))
        message = "Incomplete or invalid data."
        if fields:
            message = f"Incomplete or invalid data: {', '.join(sorted(set(fields)))}."
        return JSONResponse(status_code=400, content=_body(ValidationError(message)))
