"""
Submission workflow — create, edit, submit and review supplement records.

Lifecycle:

  draft → submitted → under_review → {approved, rejected}

Every write goes through the validation dispatcher first. Only a record that
stays `draft` is checked leniently; anything persisted in a later status is
checked against the full schema and business rules. Status changes are
conditional on the status this service read, so two concurrent requests
cannot both move the same submission (the loser gets CONFLICT).

Approving a submission issues its certificate in the same call.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from railway import ErrorCode, FailureDescription
from railway.result import Result

from osi_certify.access import report_to_result, require_admin, visible_to
from osi_certify.domain.models import (
    Caller,
    Certificate,
    Submission,
    SubmissionStatus,
    utcnow,
)
from osi_certify.domain.ports import SubmissionRepository
from osi_certify.domain.records import IngestedRecord, ingest_record
from osi_certify.issuance import CertificateIssuer
from osi_certify.validation.dispatcher import ValidationMode, validate_as

log = structlog.get_logger()

CREATABLE_STATUSES = (SubmissionStatus.DRAFT, SubmissionStatus.SUBMITTED)
REVIEW_DECISIONS = (SubmissionStatus.APPROVED, SubmissionStatus.REJECTED)
# Statuses in which an administrator may still correct the record.
ADMIN_EDITABLE_STATUSES = (SubmissionStatus.SUBMITTED, SubmissionStatus.UNDER_REVIEW)


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    """
    Result of a review decision.

    An approval whose certificate could not be issued still stands; the
    issuance failure is reported next to it.
    """

    submission: Submission
    certificate: Certificate | None = None
    issuance_error: FailureDescription | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"submission": self.submission.to_dict()}
        if self.certificate is not None:
            body["certificate"] = self.certificate.to_dict()
        if self.issuance_error is not None:
            body["issuanceError"] = {
                "error_code": self.issuance_error.code.value,
                "message": self.issuance_error.message
                if self.issuance_error.code.is_client_error else "Internal server error",
            }
        return body


class SubmissionService:
    def __init__(
        self,
        repository: SubmissionRepository,
        issuer: CertificateIssuer,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._issuer = issuer
        self._clock = clock

    # ──────────────────────── Helpers ────────────────────────

    def _validated(self, ingested: IngestedRecord, status: SubmissionStatus) -> Result[IngestedRecord]:
        report = validate_as(ingested.record, ValidationMode.for_status(status), self._clock().date())
        if not report.valid:
            log.info("submissions.validation_failed", status=status.value, fields=report.fields)
        return report_to_result(report).map(lambda _: ingested)

    def _load(self, submission_id: UUID, caller: Caller) -> Result[Submission]:
        return self._repository.get(submission_id).flat_map(visible_to(caller))

    # ──────────────────────── Operations ────────────────────────

    def get(self, submission_id: UUID, caller: Caller) -> Result[Submission]:
        return self._load(submission_id, caller)

    def create(
        self,
        record: Any,
        target_status: SubmissionStatus,
        caller: Caller,
        organization_id: UUID | None = None,
    ) -> Result[Submission]:
        """Create a submission as `draft` (lenient checks) or straight as `submitted`."""
        if target_status not in CREATABLE_STATUSES:
            return Result.failure(
                ErrorCode.VALIDATION_ERROR,
                "Submissions can only be created as draft or submitted",
            )

        now = self._clock()

        def build(ingested: IngestedRecord) -> Submission:
            return Submission(
                record=ingested.record,
                warnings=ingested.warnings,
                status=target_status,
                created_by=caller.user_id,
                organization_id=organization_id,
                created_at=now,
                updated_at=now,
                submitted_at=now if target_status is SubmissionStatus.SUBMITTED else None,
            )

        return (
            self._validated(ingest_record(record), target_status)
            .map(build)
            .flat_map(self._repository.insert)
            .peek(lambda s: log.info(
                "submissions.created",
                submission_id=str(s.id),
                status=s.status.value,
                created_by=str(caller.user_id),
            ))
        )

    def update(
        self,
        submission_id: UUID,
        record: Any,
        caller: Caller,
        target_status: SubmissionStatus | None = None,
    ) -> Result[Submission]:
        """
        Replace the record of a submission.

        A draft may be edited by its owner and optionally moved to `submitted`
        in the same write. Administrators may also correct a record that is
        `submitted` or `under_review`, without changing its status.
        """
        return self._load(submission_id, caller).flat_map(
            lambda current: self._update(current, record, caller, target_status)
        )

    def _update(
        self,
        current: Submission,
        record: Any,
        caller: Caller,
        target_status: SubmissionStatus | None,
    ) -> Result[Submission]:
        new_status = target_status or current.status

        if current.status is SubmissionStatus.DRAFT:
            if new_status not in CREATABLE_STATUSES:
                return Result.failure(
                    ErrorCode.CONFLICT, f"A draft cannot be moved to {new_status.value}"
                )
        elif current.status in ADMIN_EDITABLE_STATUSES and caller.is_admin:
            if new_status is not current.status:
                return Result.failure(
                    ErrorCode.CONFLICT, "Status changes go through submit and review"
                )
        else:
            return Result.failure(
                ErrorCode.CONFLICT,
                f"Submission is {current.status.value} and can no longer be edited",
            )

        now = self._clock()
        submitted_at = current.submitted_at
        if current.status is SubmissionStatus.DRAFT and new_status is SubmissionStatus.SUBMITTED:
            submitted_at = now

        return (
            self._validated(ingest_record(record), new_status)
            .map(lambda ingested: replace(
                current,
                record=ingested.record,
                warnings=ingested.warnings,
                status=new_status,
                submitted_at=submitted_at,
                updated_at=now,
            ))
            .flat_map(lambda updated: self._repository.save_record(updated, current.status))
            .peek(lambda s: log.info(
                "submissions.updated",
                submission_id=str(s.id),
                status=s.status.value,
                updated_by=str(caller.user_id),
            ))
        )

    def submit(self, submission_id: UUID, caller: Caller) -> Result[Submission]:
        """`draft → submitted` after full validation of the stored record."""
        return (
            self._load(submission_id, caller)
            .ensure(
                lambda s: s.status is SubmissionStatus.DRAFT,
                ErrorCode.CONFLICT,
                "Only draft submissions can be submitted",
            )
            .flat_map(lambda s: self._validated(
                IngestedRecord(record=s.record, warnings=s.warnings), SubmissionStatus.SUBMITTED
            ))
            .flat_map(lambda _: self._repository.transition(
                submission_id, SubmissionStatus.DRAFT, SubmissionStatus.SUBMITTED
            ))
            .peek(lambda s: log.info("submissions.submitted", submission_id=str(s.id)))
        )

    def start_review(self, submission_id: UUID, caller: Caller) -> Result[Submission]:
        """`submitted → under_review`, administrators only."""
        return (
            require_admin(caller, "review submissions")
            .flat_map(lambda _: self._repository.transition(
                submission_id,
                SubmissionStatus.SUBMITTED,
                SubmissionStatus.UNDER_REVIEW,
                reviewed_by=caller.user_id,
            ))
            .peek(lambda s: log.info(
                "submissions.review_started",
                submission_id=str(s.id),
                reviewer=str(caller.user_id),
            ))
        )

    def review(
        self,
        submission_id: UUID,
        decision: SubmissionStatus,
        caller: Caller,
        notes: str | None = None,
    ) -> Result[ReviewOutcome]:
        """
        `under_review → approved | rejected`, administrators only.

        An approval re-validates the record in full and then issues the
        certificate.
        """
        if decision not in REVIEW_DECISIONS:
            return Result.failure(
                ErrorCode.VALIDATION_ERROR, "Review decision must be approved or rejected"
            )

        decided = (
            require_admin(caller, "review submissions")
            .flat_map(lambda _: self._repository.get(submission_id))
            .ensure(
                lambda s: s.status is SubmissionStatus.UNDER_REVIEW,
                ErrorCode.CONFLICT,
                "Only submissions under review can be decided",
            )
        )
        if decision is SubmissionStatus.APPROVED:
            decided = decided.flat_map(
                lambda s: self._validated(
                    IngestedRecord(record=s.record, warnings=s.warnings), SubmissionStatus.APPROVED
                ).map(lambda _: s)
            )

        return (
            decided
            .flat_map(lambda _: self._repository.transition(
                submission_id,
                SubmissionStatus.UNDER_REVIEW,
                decision,
                reviewed_by=caller.user_id,
                review_notes=notes,
            ))
            .peek(lambda s: log.info(
                "submissions.reviewed",
                submission_id=str(s.id),
                decision=decision.value,
                reviewer=str(caller.user_id),
            ))
            .map(lambda s: self._outcome(s, caller))
        )

    def _outcome(self, submission: Submission, reviewer: Caller) -> ReviewOutcome:
        if submission.status is not SubmissionStatus.APPROVED:
            return ReviewOutcome(submission=submission)

        issued = self._issuer.issue(submission.id, reviewer)
        if issued.is_success():
            return ReviewOutcome(submission=submission, certificate=issued.value())

        error = issued.error()
        log.error(
            "submissions.issuance_after_approval_failed",
            submission_id=str(submission.id),
            error_code=error.code.value,
            error=error.full_stack_trace(),
        )
        return ReviewOutcome(submission=submission, issuance_error=error)
