import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings

logger = logging.getLogger(__name__)


class FormBuilderError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(FormBuilderError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(FormBuilderError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(FormBuilderError):
    status_code = status.HTTP_409_CONFLICT


class InternalError(FormBuilderError):
    pass


class StorageError(InternalError):
    pass


def error_response(status_code: int, error: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"body": {"error": error}}, headers=headers)


def _describe(error: dict) -> str:
    # loc is ("body", "question", "question_text") or ("query", "username")
    field = ".".join(str(part) for part in error.get("loc", ())[1:])
    if error.get("type") == "missing":
        return f"{field or 'request body'} is required"
    if not field:
        return error.get("msg", "invalid request")
    return f"{field}: {error.get('msg')}"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FormBuilderError)
    async def _domain_error(request: Request, exc: FormBuilderError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        message = "; ".join(_describe(e) for e in exc.errors()) or "invalid request"
        return error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = "Internal Server Error"
        if settings.EXPOSE_ERROR_DETAILS:
            message = f"{message}: {exc}"
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)
