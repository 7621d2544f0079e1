# stockpile/core/errors.py
"""
HTTP error taxonomy.

Every error leaving the API is rendered as ``{"code": ..., "message": ...}``
where ``code`` is the error class name, so clients can branch on it without
parsing messages.
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockpile.core.logging import logger, request_context


class APIError(Exception):
    status_code = 500
    default_message = "something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class BadRequestError(APIError):
    status_code = 400
    default_message = "bad request"


class UnauthorizedError(APIError):
    status_code = 401
    default_message = "authentication required"


class PaymentRequiredError(APIError):
    status_code = 402
    default_message = "payment required"


class ForbiddenError(APIError):
    status_code = 403
    default_message = "forbidden"


class NotFoundError(APIError):
    status_code = 404
    default_message = "does not exist"


class MethodNotAllowedError(APIError):
    status_code = 405
    default_message = "method not allowed"


class ConflictError(APIError):
    status_code = 409
    default_message = "already exists"


class UnprocessableEntityError(APIError):
    status_code = 422
    default_message = "unprocessable entity"


class InternalServerError(APIError):
    status_code = 500


ERRORS_BY_STATUS = {
    cls.status_code: cls
    for cls in (
        BadRequestError,
        UnauthorizedError,
        PaymentRequiredError,
        ForbiddenError,
        NotFoundError,
        MethodNotAllowedError,
        ConflictError,
        UnprocessableEntityError,
        InternalServerError,
    )
}


def error_response(error: APIError, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Render framework and application errors as ``{code, message}``."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        error_class = ERRORS_BY_STATUS.get(exc.status_code)
        if error_class is None:
            return JSONResponse(
                status_code=exc.status_code,
                content={"code": "HTTPError", "message": str(exc.detail)},
                headers=getattr(exc, "headers", None),
            )
        message = exc.detail if isinstance(exc.detail, str) else None
        return error_response(error_class(message and message.lower()), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "invalid request"
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()))
            message = f"{location}: {errors[0].get('msg', 'invalid value')}"
        return error_response(BadRequestError(message))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.exception("Unhandled exception while handling request", exc_info=exc, extra=request_context(request))
        return error_response(InternalServerError())
