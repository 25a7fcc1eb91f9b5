"""
Global exception handling for the application.
Standardizes error responses into a single JSON envelope.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings

settings = get_settings()
logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AppError):
    """Client-correctable input error."""
    def __init__(self, message: str = "Campos inválidos", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class EntityNotFoundException(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Não encontrado", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class ConflictException(AppError):
    """State conflict, e.g. a request already taken by another technician."""
    def __init__(self, message: str = "Conflito", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_409_CONFLICT, details)


class UnauthorizedException(AppError):
    """Authentication failure error."""
    def __init__(self, message: str = "Não autenticado", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, details)


class ForbiddenException(AppError):
    """Authorization failure error."""
    def __init__(self, message: str = "Acesso negado", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_403_FORBIDDEN, details)


class UpstreamServiceException(AppError):
    """A third-party service (storage, mail) failed."""
    def __init__(self, message: str = "Serviço externo indisponível", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY, details)


def _error_body(code: str, message: str, path: str, details: Optional[Dict[str, Any]] = None) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
            "path": path,
        }
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render raised AppError subclasses."""
    headers = None
    if isinstance(exc, UnauthorizedException):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.__class__.__name__, exc.message, request.url.path, exc.details),
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map pydantic validation failures to 400 with one message per field."""
    fields: Dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields[".".join(loc) or "body"] = error.get("msg", "Valor inválido")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("ValidationException", "Campos inválidos", request.url.path, {"fields": fields}),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions globally."""
    if isinstance(exc, AppError):
        return await app_error_handler(request, exc)

    logger.exception("Unhandled error", path=request.url.path, method=request.method)

    details = {}
    if settings.ENVIRONMENT != "production":
        details = {"exception": exc.__class__.__name__, "reason": str(exc)}

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "InternalServerError",
            "Ocorreu um erro inesperado. Tente novamente mais tarde.",
            request.url.path,
            details,
        ),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
