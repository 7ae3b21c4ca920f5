"""Error types rendered as RFC 9457 Problem Details.

Every problem body carries ``type``, ``title``, ``status`` and an ``error``
member with the human-readable message, plus any subclass extensions.

https://tools.ietf.org/rfc/rfc9457.txt
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..schemas.common import Violation

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://tours.example.com/problems"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ProblemDetailsException(HTTPException):
    """Base class for errors returned to clients as Problem Details."""

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.title = title
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance

        body: Dict[str, Any] = {
            "type": self.type_uri,
            "title": title,
            "status": status_code,
            "error": detail or title,
        }
        if detail:
            body["detail"] = detail
        if instance:
            body["instance"] = instance
        body.update(extensions or {})
        self.problem_details = body

        super().__init__(status_code=status_code, detail=body, headers=headers)


class ValidationError(ProblemDetailsException):
    """Bad input: schema failures, business rules and rejected import files."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[List[Dict[str, Any]]] = None,
        total_rows: Optional[int] = None,
        instance: Optional[str] = None,
    ):
        extensions: Dict[str, Any] = {}
        if errors:
            extensions["errors"] = errors
        if total_rows is not None:
            extensions["total_rows"] = total_rows

        super().__init__(
            400,
            "Validation Error",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/validation-error",
            instance=instance,
            extensions=extensions,
        )


class AuthenticationError(ProblemDetailsException):
    """Missing, invalid or expired admin session."""

    def __init__(self, detail: str = "Not authenticated", instance: Optional[str] = None):
        super().__init__(
            401,
            "Authentication Required",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/authentication-required",
            instance=instance,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFoundError(ProblemDetailsException):
    """A tour, file or other resource does not exist."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            target = f"{resource_type} '{resource_id}'" if resource_id else resource_type
            detail = f"The requested {target} could not be found"

        extensions = {"resource_type": resource_type}
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            404,
            "Resource Not Found",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class BookingConflictError(ProblemDetailsException):
    """Deletion refused because bookings still reference the tours."""

    def __init__(self, tour_ids: List[str], instance: Optional[str] = None):
        if len(tour_ids) == 1:
            detail = "Cannot delete a tour that has bookings"
        else:
            detail = "Cannot delete tours that have bookings"

        super().__init__(
            400,
            "Tour Has Bookings",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/tour-has-bookings",
            instance=instance,
            extensions={"tour_ids": tour_ids},
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """Render a ProblemDetailsException as its JSON body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.problem_details,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render schema validation failures as 400 Problem Details with violations."""
    violations = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        violations.append(Violation(
            path=".".join(location) or "body",
            message=error.get("msg", "Invalid value"),
        ).model_dump())

    detail = violations[0]["message"] if len(violations) == 1 else "The request data failed validation"
    problem = ValidationError(detail=detail, instance=str(request.url.path))
    problem.problem_details["violations"] = violations
    return await problem_details_handler(request, problem)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler for unexpected errors.

    The exception is logged with an ``error_id`` that is also returned to
    the client; the response never includes exception text.
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content={
            "type": f"{PROBLEM_BASE_URI}/internal-server-error",
            "title": "Internal Server Error",
            "status": 500,
            "error": "Internal server error",
            "instance": request.url.path,
            "error_id": error_id,
            "timestamp": _utc_timestamp(),
        },
        media_type="application/problem+json",
    )
