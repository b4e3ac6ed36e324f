"""Exception-to-response mapping for the HTTP API.

Responsibilities:
- Map domain exceptions to status codes with `{message}` bodies.
- Keep stack traces and provider payloads out of every response.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import (
    AudioStorageError,
    InputValidationError,
    JobNotFoundError,
    ProviderError,
    TextTooLongError,
)
from .schemas import TextTooLongResponse


def _message(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


async def _text_too_long(_: Request, exc: TextTooLongError) -> JSONResponse:
    body = TextTooLongResponse(
        message=str(exc),
        current_length=exc.length,
        max_length=exc.max_length,
    )
    return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))


async def _input_validation(_: Request, exc: InputValidationError) -> JSONResponse:
    return _message(400, str(exc))


async def _request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _message(400, "Invalid request")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = str(first.get("msg", "Invalid value"))
    return _message(400, f"{location}: {detail}" if location else detail)


async def _not_found(_: Request, exc: JobNotFoundError) -> JSONResponse:
    return _message(404, str(exc))


async def _provider_failure(_: Request, exc: ProviderError) -> JSONResponse:
    logger.warning("Provider call failed ({}): {}", exc.failure_kind, exc)
    return _message(502, str(exc))


async def _storage_failure(_: Request, exc: AudioStorageError) -> JSONResponse:
    logger.error("Audio storage failed: {}", exc)
    return _message(500, str(exc))


async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _message(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error on {} {}.", request.method, request.url.path)
    return _message(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain exception handlers on `app`."""

    app.add_exception_handler(TextTooLongError, _text_too_long)
    app.add_exception_handler(InputValidationError, _input_validation)
    app.add_exception_handler(RequestValidationError, _request_validation)
    app.add_exception_handler(JobNotFoundError, _not_found)
    app.add_exception_handler(ProviderError, _provider_failure)
    app.add_exception_handler(AudioStorageError, _storage_failure)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unexpected)
