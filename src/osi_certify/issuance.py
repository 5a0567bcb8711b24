"""
Certificate issuer — issue, revoke and look up certificates.

Orchestration only. Numbering, signing and expiry are pure functions in
`osi_certify.domain.certificates`; the locking, the active-certificate check
and sequence allocation happen inside the repository's issuing transaction.
This service supplies the issuance instant (from an injected clock), the
validity horizon and the verification base URL, and enforces who may act.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from functools import partial
from uuid import UUID

import structlog
from railway import ErrorCode, FailureDescription
from railway.result import Result

from osi_certify.access import require_admin, visible_to
from osi_certify.config import CertificateSettings
from osi_certify.domain.certificates import build_certificate
from osi_certify.domain.models import (
    Caller,
    Certificate,
    CertificateStatus,
    utcnow,
)
from osi_certify.domain.ports import CertificateRepository, SubmissionRepository

log = structlog.get_logger()


def _as_certificate_not_found(error: FailureDescription) -> FailureDescription:
    if error.code is ErrorCode.NOT_FOUND:
        return FailureDescription(ErrorCode.NOT_FOUND, "Certificate not found")
    return error


class CertificateIssuer:
    def __init__(
        self,
        certificates: CertificateRepository,
        submissions: SubmissionRepository,
        settings: CertificateSettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._certificates = certificates
        self._submissions = submissions
        self._settings = settings
        self._clock = clock

    def issue(self, submission_id: UUID, caller: Caller | None = None) -> Result[Certificate]:
        """
        Issue a certificate for an approved submission.

        `caller` is None only for issuance triggered by the workflow itself
        (approval); any caller given must be an administrator.

        Fails with NOT_FOUND when no approved submission has that id and
        CONFLICT when it already holds an active certificate.
        """
        if caller is not None:
            allowed = require_admin(caller, "issue certificates")
            if allowed.is_failure():
                return Result.failure_from(allowed.error())

        issued_at = self._clock()
        build = partial(
            build_certificate,
            issued_at=issued_at,
            validity_years=self._settings.validity_years,
            verification_base_url=self._settings.verification_base_url,
            issued_by=caller.user_id if caller is not None else None,
        )
        return (
            self._certificates.issue(submission_id, issued_at, build)
            .peek(lambda c: log.info(
                "issuance.issued",
                certificate_number=c.certificate_number,
                submission_id=str(submission_id),
                expires_at=c.expires_at.isoformat(),
            ))
            .peek_failure(lambda e: log.warning(
                "issuance.rejected",
                submission_id=str(submission_id),
                error_code=e.code.value,
                reason=e.message,
            ))
        )

    def revoke(self, certificate_id: UUID, reason: str, caller: Caller) -> Result[Certificate]:
        """
        `active → revoked`, administrators only.

        NOT_FOUND if no active certificate has that id, including one still
        stored active whose expiry has passed.
        """
        reason = (reason or "").strip()
        now = self._clock()
        return (
            require_admin(caller, "revoke certificates")
            .ensure(lambda _: bool(reason), ErrorCode.VALIDATION_ERROR, "A revocation reason is required")
            .flat_map(lambda _: self._certificates.get(certificate_id))
            .ensure(
                lambda c: c.status is CertificateStatus.ACTIVE,
                ErrorCode.NOT_FOUND,
                "Active certificate not found",
            )
            .ensure(
                lambda c: c.expires_at > now,
                ErrorCode.NOT_FOUND,
                "Certificate has already expired",
            )
            .flat_map(lambda _: self._certificates.revoke(certificate_id, reason, now))
            .peek(lambda c: log.info(
                "issuance.revoked",
                certificate_number=c.certificate_number,
                revoked_by=str(caller.user_id),
            ))
        )

    def get(self, certificate_id: UUID, caller: Caller) -> Result[Certificate]:
        """Administrators see every certificate; manufacturers only those of their own submissions."""
        if caller.is_admin:
            return self._certificates.get(certificate_id)
        return self._certificates.get(certificate_id).flat_map(
            lambda certificate: self._submissions.get(certificate.submission_id)
            .flat_map(visible_to(caller))
            .map(lambda _: certificate)
            .map_failure(_as_certificate_not_found)
        )

    def list_for_submission(self, submission_id: UUID, caller: Caller) -> Result[list[Certificate]]:
        return (
            self._submissions.get(submission_id)
            .flat_map(visible_to(caller))
            .flat_map(lambda _: self._certificates.list_for_submission(submission_id))
        )
