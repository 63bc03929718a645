"""
Exception handlers for the REST API

Domain errors (core.errors) are raised by the services and rendered here as

    {"success": false, "error_code": ..., "detail": ..., "extra": {...}}

with the status code the error class carries. Request body validation
failures use the same shape with error_code VALIDATION_FAILED.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.errors import PatientActorError, ValidationFailedError

logger = logging.getLogger(__name__)


def error_body(exc: PatientActorError) -> dict:
    return {
        "success": False,
        "error_code": exc.error_code,
        "detail": exc.detail,
        "extra": jsonable_encoder(exc.extra),
    }


async def patient_actor_error_handler(request: Request, exc: PatientActorError) -> JSONResponse:
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        level,
        f"{exc.error_code}: {exc.detail}",
        extra={"path": request.url.path, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]
    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "error_count": len(errors)},
    )
    wrapped = ValidationFailedError("Invalid request body", extra={"errors": errors})
    return JSONResponse(status_code=wrapped.status_code, content=error_body(wrapped))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PatientActorError, patient_actor_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
