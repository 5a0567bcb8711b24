"""
Failure description — structured error information for the failure track.

An ErrorCode says what kind of failure happened; the FailureDescription
carries the human message, the originating exception (server-side only) and
optional structured details, such as the list of validation issues that made
a submission invalid.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Any


@unique
class ErrorCode(Enum):
    """
    Error codes for the failure track, grouped by HTTP status range.

    Client errors are safe to show to the caller verbatim.
    Server errors are logged in full and rendered opaquely.
    """

    # --- Client-side errors (4xx HTTP range) ---
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Record failed schema, business-rule or draft validation (→ 400)."""

    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    """Caller identity missing (→ 401)."""

    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    """Caller role not allowed to perform the operation (→ 403)."""

    NOT_FOUND = "NOT_FOUND"
    """Target absent, or not visible to the caller (→ 404)."""

    CONFLICT = "CONFLICT"
    """Business-state conflict: duplicate active certificate, double submit (→ 409)."""

    # --- Server-side errors (5xx HTTP range) ---
    DATABASE_ERROR = "DATABASE_ERROR"
    """Datastore failure or unanticipated constraint violation (→ 500)."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """System misconfiguration (→ 500)."""

    SERVICE_UNAVAILABLE_ERROR = "SERVICE_UNAVAILABLE_ERROR"
    """Service not initialised yet (→ 503)."""

    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    """Datastore call exceeded its time budget (→ 504)."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Unexpected/unclassified failures (→ 500)."""

    @property
    def is_client_error(self) -> bool:
        return self in _CLIENT_ERRORS


_CLIENT_ERRORS = frozenset({
    ErrorCode.VALIDATION_ERROR,
    ErrorCode.AUTHENTICATION_ERROR,
    ErrorCode.AUTHORIZATION_ERROR,
    ErrorCode.NOT_FOUND,
    ErrorCode.CONFLICT,
})


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor.

    >>> desc = FailureDescription(ErrorCode.NOT_FOUND, "Certificate not found")
    >>> desc.code
    <ErrorCode.NOT_FOUND: 'NOT_FOUND'>
    >>> desc.details
    ()
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    details: tuple[Any, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def full_stack_trace(self) -> str:
        """Message plus the formatted exception chain, for server-side logs only."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__)
        )
        return f"{self.message}\n{tb}"
