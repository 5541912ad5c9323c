"""RFC9457 Problem Details for the dashboard API.

Dashboard errors subclass the ``fastapi_problem.error`` problems and are
rendered by the library's exception handler. ``HTTPException`` and request
validation failures keep FastAPI's default bodies everywhere except under
``/api/v1/``, where they get the same problem envelope; validation problems
carry the pydantic error list under ``errors``.
"""

from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi import HTTPException as FastAPIHTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler as default_handler
from fastapi.exception_handlers import (
    request_validation_exception_handler as default_validation_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi_problem.error import BadRequestProblem, NotFoundProblem, ServerProblem
from fastapi_problem.handler import add_exception_handler, new_exception_handler
from starlette.exceptions import HTTPException

API_PREFIX = "/api/v1/"
PROBLEM_MEDIA_TYPE = "application/problem+json"

# Status code to title mapping for RFC9457 Problem Details
_STATUS_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class AlertNotFoundError(NotFoundProblem):
    """Alert not found error."""

    title = "Alert Not Found"


class VesselNotFoundError(NotFoundProblem):
    """Vessel not found error."""

    title = "Vessel Not Found"


class InvalidFilterError(BadRequestProblem):
    """A filter value that cannot be applied."""

    title = "Invalid Filter"


class BackendUnavailableError(ServerProblem):
    """The hosted backend failed and no fallback data exists."""

    title = "Backend Unavailable"
    status = 503


class InternalServerError(ServerProblem):
    """Internal server error."""

    title = "Internal Server Error"


def _problem_response(status_code: int, content: dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=content,
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Wrap ``HTTPException`` on API paths in the RFC9457 envelope."""
    if not isinstance(exc, HTTPException):
        raise exc

    if not request.url.path.startswith(API_PREFIX):
        return await default_handler(request, exc)

    title = _STATUS_TITLES.get(exc.status_code, "HTTP Error")
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "status": exc.status_code,
        "instance": str(request.url.path),
    }

    # Support problem extensions when detail is a dictionary
    if isinstance(exc.detail, dict):
        detail_dict: dict[str, Any] = exc.detail
        problem.update(
            {
                key: value
                for key, value in detail_dict.items()
                if key not in ("type", "title", "status", "instance")
            }
        )
        problem["detail"] = detail_dict.get("detail", title)
    else:
        problem["detail"] = str(exc.detail) if exc.detail else title

    return _problem_response(exc.status_code, problem)


async def validation_exception_handler(request: Request, exc: Exception) -> Response:
    """Report request validation failures on API paths as 422 problems."""
    if not isinstance(exc, RequestValidationError):
        raise exc

    if not request.url.path.startswith(API_PREFIX):
        return await default_validation_handler(request, exc)

    return _problem_response(
        422,
        {
            "type": "about:blank",
            "title": _STATUS_TITLES[422],
            "status": 422,
            "detail": "Request validation failed",
            "instance": str(request.url.path),
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def register_problem_handlers(app: FastAPI) -> None:
    """Install the fastapi-problem handler plus the API-scoped overrides.

    The problem bases are registered explicitly so raised problems never reach
    the catch-all ``Exception`` handler. The scoped handlers are registered
    last so they replace the library's ``HTTPException`` and
    ``RequestValidationError`` handlers.
    """
    problem_handler = new_exception_handler()
    add_exception_handler(app, problem_handler)
    for problem in (BadRequestProblem, NotFoundProblem, ServerProblem):
        app.add_exception_handler(problem, problem_handler)
    for http_exception in (HTTPException, FastAPIHTTPException):
        app.add_exception_handler(http_exception, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
