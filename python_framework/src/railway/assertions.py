"""
Test assertions for Result values.

Each helper fails with the offending track spelled out, so a red test shows
the error code and message instead of a bare `assert False`:

    cert = ResultAssertions.assert_success(issuer.issue(submission.id, admin))
    ResultAssertions.assert_failure(issuer.issue(submission.id, admin), ErrorCode.CONFLICT)
    assert ResultAssertions.assert_failure_fields(service.submit(draft.id, maker)) == ["products"]
"""

from __future__ import annotations

from typing import TypeVar

from railway.failure import ErrorCode, FailureDescription
from railway.result import Result

T = TypeVar("T")


def _describe(result: Result[T]) -> str:
    if result.is_success():
        return f"Success({result.value()!r})"
    error = result.error()
    return f"Failure({error.code.value}: {error.message!r})"


class ResultAssertions:
    @staticmethod
    def assert_success(result: Result[T], message: str = "") -> T:
        """Assert the Result is a Success and return the value."""
        suffix = f" — {message}" if message else ""
        assert result.is_success(), f"Expected Success but got {_describe(result)}{suffix}"
        return result.value()

    @staticmethod
    def assert_failure(
        result: Result[T],
        expected_code: ErrorCode | None = None,
        message: str = "",
    ) -> FailureDescription:
        """Assert the Result is a Failure (with `expected_code`, when given) and return it."""
        suffix = f" — {message}" if message else ""
        assert result.is_failure(), f"Expected Failure but got {_describe(result)}{suffix}"
        error = result.error()
        if expected_code is not None:
            assert error.code is expected_code, (
                f"Expected error code {expected_code.value} but got {_describe(result)}{suffix}"
            )
        return error

    @staticmethod
    def assert_failure_fields(result: Result[T]) -> list[str]:
        """Assert a VALIDATION_ERROR and return the `field` of every issue it carries, in order."""
        error = ResultAssertions.assert_failure(result, ErrorCode.VALIDATION_ERROR)
        return [getattr(issue, "field", None) for issue in error.details]
