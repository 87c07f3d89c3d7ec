"""HTTP-facing errors rendered as RFC 9457 Problem Details."""

import logging
import uuid
from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .clock import utcnow

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://example.com/problems"


class ProblemDetailsException(HTTPException):
    """
    Base class for errors that reach API clients as Problem Details.

    The body carries the RFC 9457 members (type, title, status, detail,
    instance) plus an optional machine-readable code, a retryable flag
    and any extension members.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        problem_type: Optional[str] = None,
        code: Optional[str] = None,
        retryable: Optional[bool] = None,
        extensions: Optional[dict[str, Any]] = None,
    ):
        self.title = title
        self.code = code

        body: dict[str, Any] = {
            "type": f"{PROBLEM_TYPE_BASE}/{problem_type}" if problem_type else f"about:blank#{status_code}",
            "title": title,
            "status": status_code,
        }
        if detail:
            body["detail"] = detail
        if code:
            body["code"] = code
        if retryable is not None:
            body["retryable"] = retryable
        body.update(extensions or {})
        self.problem_details = body

        super().__init__(status_code=status_code, detail=body)


class NotFoundError(ProblemDetailsException):
    """A referenced resource does not exist."""

    def __init__(self, resource_type: str, resource_id: str, code: Optional[str] = None):
        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=f"The requested {resource_type} with ID '{resource_id}' could not be found",
            problem_type="resource-not-found",
            code=code,
            retryable=False,
            extensions={"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictError(ProblemDetailsException):
    """The request conflicts with the current state of a resource."""

    def __init__(
        self,
        detail: str,
        code: Optional[str] = None,
        conflicting_resource: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=409,
            title="Resource Conflict",
            detail=detail,
            problem_type="resource-conflict",
            code=code,
            retryable=False,
            extensions={"conflicting_resource": conflicting_resource} if conflicting_resource else None,
        )


class BookingNotFoundError(NotFoundError):
    """Exception when a booking does not exist."""

    def __init__(self, booking_id: str):
        super().__init__("booking", booking_id, code="BOOKING_NOT_FOUND")
        self.booking_id = booking_id


class InvalidTransitionError(ConflictError):
    """Exception when a booking status change is not in the transition table."""

    def __init__(self, booking_id: str, from_status: str, to_status: str):
        super().__init__(
            detail=f"Cannot transition from {from_status} to {to_status}.",
            code="INVALID_TRANSITION",
            conflicting_resource={
                "booking_id": booking_id,
                "from_status": from_status,
                "to_status": to_status,
            },
        )
        self.booking_id = booking_id
        self.from_status = from_status
        self.to_status = to_status


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """Render a ProblemDetailsException with the request URL as its instance."""
    return JSONResponse(
        status_code=exc.status_code,
        content={**exc.problem_details, "instance": str(request.url)},
        media_type="application/problem+json",
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render request validation failures as a 422 Problem Details response.

    Each failed field becomes a violation with a dotted path, e.g. body.offer_id.
    """
    violations = [
        {
            "path": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{PROBLEM_TYPE_BASE}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "The request data failed validation",
            "instance": str(request.url),
            "violations": violations,
        },
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Convert an unhandled exception into a 500 problem.

    The error id in the body matches the logged error, so a report from a
    client can be traced to its stack trace.
    """
    error_id = str(uuid.uuid4())
    logger.error(
        f"Unhandled error: {exc!s}",
        exc_info=exc,
        extra={"error_id": error_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=500,
        content={
            "type": f"{PROBLEM_TYPE_BASE}/internal-server-error",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred while processing the request",
            "instance": str(request.url),
            "error_id": error_id,
            "timestamp": utcnow().isoformat() + "Z",
        },
        media_type="application/problem+json",
    )
