"""
Railway-Oriented Programming (ROP) — explicit, composable error handling.

    from railway import Result, ErrorCode

    def find_certificate(number: str) -> Result[Certificate]:
        cert = lookup(number)
        if cert is None:
            return Result.failure(ErrorCode.NOT_FOUND, "Certificate not found")
        return Result.success(cert)

    result = find_certificate("OSI-2026-000001").map(lambda c: c.status)
"""

from railway.assertions import ResultAssertions
from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultAssertions",
]

__version__ = "1.1.0"
