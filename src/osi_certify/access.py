"""
Access rules shared by the workflow services.

Callers arrive pre-authenticated with a role. Administrators may act on
everything; manufacturers only on their own submissions, and never on
review, issuance, revocation or system configuration.

A manufacturer asking for someone else's submission gets NOT_FOUND rather
than AUTHORIZATION_ERROR, so ids of other organisations' records don't leak.
"""

from __future__ import annotations

from collections.abc import Callable

from railway import ErrorCode
from railway.result import Result

from osi_certify.domain.models import Caller, Submission, ValidationReport


def require_admin(caller: Caller, action: str) -> Result[Caller]:
    if caller.is_admin:
        return Result.success(caller)
    return Result.failure(ErrorCode.AUTHORIZATION_ERROR, f"Only administrators may {action}")


def visible_to(caller: Caller) -> Callable[[Submission], Result[Submission]]:
    def check(submission: Submission) -> Result[Submission]:
        if submission.is_visible_to(caller):
            return Result.success(submission)
        return Result.failure(ErrorCode.NOT_FOUND, "Submission not found")

    return check


def report_to_result(report: ValidationReport, message: str = "Invalid OSI data format") -> Result[ValidationReport]:
    """An invalid report becomes a VALIDATION_ERROR carrying every issue."""
    if report.valid:
        return Result.success(report)
    return Result.failure(ErrorCode.VALIDATION_ERROR, message, details=report.errors)
