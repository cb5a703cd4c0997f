"""Render every error response as a problem details body."""
import logging
from http import HTTPStatus
from typing import Dict, List, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import TaskServiceError
from .models import utcnow
from .schemas.problem import Problem
from .schemas.task import field_errors

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"

_RFC7231 = "https://tools.ietf.org/html/rfc7231"
PROBLEM_TYPES = {
    400: f"{_RFC7231}#section-6.5.1",
    404: f"{_RFC7231}#section-6.5.4",
    405: f"{_RFC7231}#section-6.5.5",
    409: f"{_RFC7231}#section-6.5.8",
    500: f"{_RFC7231}#section-6.6.1",
}


def problem_response(
    request: Request,
    status_code: int,
    title: str,
    detail: Optional[str] = None,
    errors: Optional[Dict[str, List[str]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    problem = Problem(
        type=PROBLEM_TYPES.get(status_code, "about:blank"),
        title=title,
        status=status_code,
        detail=detail,
        instance=request.url.path,
        errors=errors,
        request_id=request.headers.get("x-request-id") or str(uuid4()),
        timestamp=utcnow(),
    )
    return JSONResponse(
        problem.model_dump(by_alias=True, exclude_none=True, mode="json"),
        status_code=status_code,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers,
    )


async def task_service_error_handler(request: Request, exc: TaskServiceError):
    return problem_response(
        request,
        exc.status_code,
        exc.title,
        exc.detail,
        errors=getattr(exc, "errors", None),
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return problem_response(
        request,
        400,
        "Validation error",
        "One or more validation errors occurred",
        errors=field_errors(exc.errors()),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    try:
        title = HTTPStatus(exc.status_code).phrase
    except ValueError:
        title = "Error"
    return problem_response(
        request,
        exc.status_code,
        title,
        str(exc.detail) if exc.detail else None,
        headers=getattr(exc, "headers", None),
    )


async def unexpected_error_handler(request: Request, exc: Exception):
    # the traceback is logged where the failure is raised
    logger.error("Unhandled %s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return problem_response(
        request,
        500,
        "An unexpected error occurred",
        "The server could not complete the request",
    )


def install_problem_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskServiceError, task_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
