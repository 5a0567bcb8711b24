"""
HTTP rendering of Results for FastAPI handlers.

Client failures (4xx) reach the caller with their message and structured
details. Server failures (5xx) are rendered opaquely; the message, exception
and details stay in the server logs.

    return build_fastapi_response(result, success_status=201, serializer=Submission.to_dict)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from typing import Any, TypeVar

from fastapi.responses import JSONResponse

from railway.failure import ErrorCode, FailureDescription
from railway.result import Result

T = TypeVar("T")

OPAQUE_SERVER_MESSAGE = "Internal server error"

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.AUTHENTICATION_ERROR: 401,
    ErrorCode.AUTHORIZATION_ERROR: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.SERVICE_UNAVAILABLE_ERROR: 503,
    ErrorCode.TIMEOUT_ERROR: 504,
}


def status_for(error: FailureDescription | ErrorCode) -> int:
    """HTTP status for a failure or bare code; anything unlisted is a 500."""
    code = error.code if isinstance(error, FailureDescription) else error
    return STATUS_BY_CODE.get(code, 500)


def _jsonable(detail: Any) -> Any:
    if is_dataclass(detail) and not isinstance(detail, type):
        return asdict(detail)
    return detail


def error_body(error: FailureDescription) -> dict[str, Any]:
    """
    JSON body for a failure:

        {
            "error_code": "VALIDATION_ERROR",
            "message": "Invalid OSI data format",
            "timestamp": "2026-03-15T09:30:00+00:00",
            "details": [{"field": "artgEntry", "message": "...", "value": null}]
        }

    `details` is present only for client failures that carry some.
    """
    body: dict[str, Any] = {"error_code": error.code.value, "timestamp": error.timestamp.isoformat()}
    if not error.code.is_client_error:
        body["message"] = OPAQUE_SERVER_MESSAGE
        return body
    body["message"] = error.message
    if error.details:
        body["details"] = [_jsonable(d) for d in error.details]
    return body


def build_response(
    result: Result[T],
    success_status: int = 200,
    serializer: Callable[[T], Any] | None = None,
) -> tuple[Any, int]:
    """(body, status) for a Result; `serializer` turns the success value into JSON."""
    return result.either(
        lambda value: (value if serializer is None else serializer(value), success_status),
        lambda error: (error_body(error), status_for(error)),
    )


def build_fastapi_response(
    result: Result[T],
    success_status: int = 200,
    serializer: Callable[[T], Any] | None = None,
) -> JSONResponse:
    body, status = build_response(result, success_status, serializer)
    return JSONResponse(content=body, status_code=status)
