import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog.config import settings

logger = logging.getLogger(__name__)

'''
Вспомогательная функция _error_response()

Принимает параметры status_code, detail, code, request. Возвращает стандартный FastAPI-ответ с JSON-телом.

Собираем единый формат ошибки.
'''
def _error_response(
    *,
    status_code: int,
    detail: str,
    code: str,
    request: Request,
    errors: Optional[list[dict[str, Any]]] = None,
    headers: Optional[dict[str, str]] = None,
    trace: Optional[str] = None,
) -> JSONResponse:
    content = {
        "detail": detail,
        "code": code,
        "path": request.url.path,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    if errors:
        content["errors"] = errors
    if trace:
        content["trace"] = trace
    return JSONResponse(status_code=status_code, content=content, headers=headers)

# Базовый класс AppError
class AppError(Exception):
    status_code = 400
    code = "app_error"
    detail = "Application error"
    headers: Optional[dict[str, str]] = None

    def __init__(self, detail: str | None = None, code: str | None = None):
        if detail is not None:
            self.detail = detail
        if code is not None:
            self.code = code
        super().__init__(self.detail)


# ================
# Кастомные ошибки
# ================

class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    detail = "Validation error"

    def __init__(self, detail: str | None = None, field: str | None = None):
        super().__init__(detail)
        self.errors = [{"field": field, "message": self.detail}] if field else []


class AuthenticationError(AppError):
    status_code = 401
    code = "not_authenticated"
    detail = "Could not validate credentials"
    headers = {"WWW-Authenticate": "Bearer"}


class PermissionDeniedError(AppError):
    status_code = 403
    code = "permission_denied"
    detail = "You are not allowed to perform this action"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    detail = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    detail = "Resource already exists"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(
        status_code=exc.status_code,
        detail=exc.detail,
        code=exc.code,
        request=request,
        errors=getattr(exc, "errors", None),
        headers=exc.headers,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(
        status_code=exc.status_code,
        detail=detail,
        code="http_error",
        request=request,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    # loc выглядит как ("body", "title") или ("query", "page")
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return _error_response(
        status_code=400,
        detail="Validation error",
        code="validation_error",
        request=request,
        errors=errors,
    )


async def integrity_error_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
    return _error_response(
        status_code=409,
        detail="Resource already exists",
        code="conflict",
        request=request,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=500,
        detail="Internal server error",
        code="internal_server_error",
        request=request,
        trace="".join(traceback.format_exception(exc)) if settings.DEBUG else None,
    )


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(
        status_code=429,
        detail=f"Rate limit exceeded: {getattr(exc, 'detail', '')}".strip(),
        code="rate_limited",
        request=request,
    )
