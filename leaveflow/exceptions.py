from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or out-of-range input."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PreconditionError(AppError):
    """A required relationship is missing, e.g. an employee without a manager."""

    status_code = status.HTTP_409_CONFLICT


class AuthenticationError(AppError):
    """Missing or invalid session credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(AppError):
    """The actor is not allowed to perform the operation on this resource."""

    status_code = status.HTTP_403_FORBIDDEN


class TokenError(AppError):
    """Malformed, expired or badly signed token."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidStateError(AppError):
    """Transition attempted on a leave request that has already been decided."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamUnavailableError(AppError):
    """The classifier or mail provider could not be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
