"""
Verification resolver — the public read path for certificate numbers.

Every call appends exactly one VerificationAttempt to the audit log,
whatever the outcome. Writing the attempt is best effort: a failure is
logged and swallowed so an audit outage never blocks a verifier.

    verifier.verify(" osi-2026-000042 ")
      → normalize → find_by_number → resolve_verification → record attempt
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

import structlog
from railway import ErrorCode
from railway.result import Failure, Result, Success

from osi_certify.domain.certificates import normalize_certificate_number, resolve_verification
from osi_certify.domain.models import (
    ATTEMPT_RESULT_ERROR,
    Certificate,
    VerificationAttempt,
    VerificationResult,
    utcnow,
)
from osi_certify.domain.ports import CertificateRepository, VerificationLog

log = structlog.get_logger()

# Raw input is logged and stored as typed; anything longer is truncated.
MAX_LOGGED_INPUT = 128


class CertificateVerifier:
    def __init__(
        self,
        certificates: CertificateRepository,
        audit_log: VerificationLog,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._certificates = certificates
        self._audit_log = audit_log
        self._clock = clock

    def verify(
        self,
        certificate_number: str,
        caller_address: str | None = None,
        user_agent: str | None = None,
    ) -> Result[VerificationResult]:
        raw = (certificate_number or "")[:MAX_LOGGED_INPUT]
        normalized = normalize_certificate_number(certificate_number or "")

        lookup: Result[Certificate | None]
        if normalized is None:
            lookup = Result.failure(ErrorCode.NOT_FOUND, "Malformed certificate number")
        else:
            lookup = self._certificates.find_by_number(normalized)

        match lookup:
            case Success(certificate):
                found: Certificate | None = certificate
            case Failure(error) if error.code is ErrorCode.NOT_FOUND:
                found = None
            case Failure(error):
                log.error(
                    "verification.lookup_failed",
                    certificate_number=raw,
                    error_code=error.code.value,
                    error=error.full_stack_trace(),
                )
                self._record(raw, ATTEMPT_RESULT_ERROR, caller_address, user_agent, None)
                return Result.failure_from(error)

        result = resolve_verification(found, self._clock())
        self._record(
            raw,
            result.status.value,
            caller_address,
            user_agent,
            found.id if found is not None else None,
        )
        log.info("verification.resolved", certificate_number=raw, status=result.status.value)
        return Result.success(result)

    def _record(
        self,
        raw: str,
        outcome: str,
        caller_address: str | None,
        user_agent: str | None,
        certificate_id: UUID | None,
    ) -> None:
        attempt = VerificationAttempt(
            certificate_number=raw,
            result=outcome,
            caller_address=caller_address,
            user_agent=user_agent[:MAX_LOGGED_INPUT * 4] if user_agent else None,
            resolved_certificate_id=certificate_id,
            timestamp=self._clock(),
        )
        self._audit_log.record(attempt).peek_failure(
            lambda e: log.warning(
                "verification.log_failed",
                certificate_number=raw,
                error_code=e.code.value,
                error=e.message,
            )
        )
