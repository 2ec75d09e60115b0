"""Иерархия ошибок движка синхронизации и их HTTP-представление.

Каждая ошибка несет стабильную категорию и HTTP-статус. Сообщения
StorageError никогда не раскрывают текст ошибки хранилища.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Базовая ошибка домена"""

    category = "internal"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(SyncError):
    """Диаграмма, версия или аккаунт отсутствуют либо принадлежат другому пользователю"""

    category = "not_found"
    status_code = 404
    default_message = "Not found"


class ValidationError(SyncError):
    """Некорректный запрос или нарушение правил хранения версий"""

    category = "validation"
    status_code = 400
    default_message = "Invalid request"


class ConflictError(SyncError):
    category = "conflict"
    status_code = 409
    default_message = "Conflict"


class AuthenticationRequiredError(SyncError):
    category = "authentication_required"
    status_code = 401
    default_message = "Authentication required"


class SessionExpiredError(SyncError):
    """Токен истек или вытеснен более поздним входом"""

    category = "session_expired"
    status_code = 401
    default_message = "Session expired. Please login again."


class StorageError(SyncError):
    category = "storage_failure"
    status_code = 500
    default_message = "Internal storage error"


def error_response(exc: SyncError) -> JSONResponse:
    headers = None
    if exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "category": exc.category},
        headers=headers,
    )


async def sync_error_handler(request: Request, exc: SyncError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.category} on {request.url.path}: {exc.message}")
    else:
        logger.debug(f"{exc.category} on {request.url.path}: {exc.message}")
    return error_response(exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": SyncError.default_message, "category": SyncError.category},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Ошибки разбора тела и параметров запроса -> категория validation"""
    errors = exc.errors()
    message = ValidationError.default_message
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", message)
    return error_response(ValidationError(message))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SyncError, sync_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
