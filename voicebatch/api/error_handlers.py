"""
Exception handlers: map the error taxonomy onto the ``{success, error}``
envelope and HTTP status codes.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from voicebatch.core.exceptions import (
    AlreadyTerminal,
    NotFoundError,
    NothingToRetry,
    NotRemoteManaged,
    PartialSubmissionError,
    RemoteServiceError,
    ValidationError,
    VoiceBatchError,
)

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, details: dict = None) -> JSONResponse:
    content = {"success": False, "error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def status_code_for(exc: VoiceBatchError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (ValidationError, NotRemoteManaged)):
        return 400
    if isinstance(exc, AlreadyTerminal):
        return 409
    if isinstance(exc, PartialSubmissionError):
        return 207
    if isinstance(exc, RemoteServiceError):
        if exc.status_code and exc.status_code >= 400:
            return exc.status_code
        return 502
    return 500


async def voicebatch_exception_handler(request: Request, exc: VoiceBatchError) -> JSONResponse:
    # Informational, not a failure
    if isinstance(exc, NothingToRetry):
        return JSONResponse(
            status_code=200,
            content={"success": True, "data": {"nothing_to_retry": True, "message": exc.message, **exc.details}},
        )

    status_code = status_code_for(exc)
    error_type = exc.__class__.__name__

    if status_code >= 500:
        logger.error("%s on %s: %s", error_type, request.url.path, exc)
    else:
        logger.info("%s on %s: %s", error_type, request.url.path, exc.message)

    return error_response(status_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "Invalid request body", {"errors": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s: %s", request.url.path, exc)
    return error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(VoiceBatchError, voicebatch_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
