"""
PostgreSQL repository adapters — submissions and certificates.

Adapter layer — implements the SubmissionRepository and CertificateRepository
ports with psycopg (v3) and raw parameterized SQL. No ORM.

Status changes are optimistic: every UPDATE is conditioned on the status the
caller last saw, and zero affected rows means someone else moved first
(CONFLICT) or the row is gone (NOT_FOUND).

Certificate numbering is allocated inside the issuing transaction through a
per-year counter row, so concurrent issuers serialize on that row instead of
racing on COUNT(*)+1.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

import psycopg
import structlog
from psycopg.types.json import Jsonb
from railway import ErrorCode
from railway.result import Result
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from osi_certify.adapters.database import Connection, Database
from osi_certify.domain.certificates import year_prefix
from osi_certify.domain.models import (
    Certificate,
    CertificateStatus,
    IssuanceContext,
    ProductWarning,
    Submission,
    SubmissionStatus,
)

log = structlog.get_logger()

# ─────────────────────── Submissions ───────────────────────

_INSERT_SUBMISSION = """
INSERT INTO supplements (
    id, osi_data, structured_warnings, status, organization_id, created_by,
    created_at, updated_at, submitted_at
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
RETURNING *
"""

_SAVE_RECORD = """
UPDATE supplements
SET osi_data = %s, structured_warnings = %s, status = %s,
    submitted_at = %s, updated_at = now()
WHERE id = %s AND status = %s
RETURNING *
"""

_TRANSITION = """
UPDATE supplements
SET status = %(new)s,
    updated_at = now(),
    submitted_at = CASE WHEN %(new)s = 'submitted' THEN now() ELSE submitted_at END,
    reviewed_at = CASE WHEN %(new)s IN ('approved', 'rejected') THEN now() ELSE reviewed_at END,
    reviewed_by = COALESCE(%(reviewed_by)s, reviewed_by),
    review_notes = COALESCE(%(review_notes)s, review_notes)
WHERE id = %(id)s AND status = %(expected)s
RETURNING *
"""


def _row_to_submission(row: dict[str, Any]) -> Submission:
    return Submission(
        id=row["id"],
        record=row["osi_data"],
        warnings=tuple(ProductWarning(**w) for w in row["structured_warnings"] or []),
        status=SubmissionStatus(row["status"]),
        organization_id=row["organization_id"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        submitted_at=row["submitted_at"],
        reviewed_at=row["reviewed_at"],
        reviewed_by=row["reviewed_by"],
        review_notes=row["review_notes"],
    )


def _warnings_json(submission: Submission) -> Jsonb:
    return Jsonb([w.to_dict() for w in submission.warnings])


def _missing_or_conflict(
    conn: Connection, submission_id: UUID, expected: SubmissionStatus
) -> Result[Submission]:
    row = conn.execute("SELECT status FROM supplements WHERE id = %s", (submission_id,)).fetchone()
    if row is None:
        return Result.failure(ErrorCode.NOT_FOUND, "Submission not found")
    return Result.failure(
        ErrorCode.CONFLICT,
        f"Submission is {row['status']}, expected {expected.value}",
    )


class PsycopgSubmissionRepository:
    """Implements the SubmissionRepository port."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def insert(self, submission: Submission) -> Result[Submission]:
        def work(conn: Connection) -> Result[Submission]:
            row = conn.execute(
                _INSERT_SUBMISSION,
                (
                    submission.id,
                    Jsonb(submission.record),
                    _warnings_json(submission),
                    submission.status.value,
                    submission.organization_id,
                    submission.created_by,
                    submission.created_at,
                    submission.updated_at,
                    submission.submitted_at,
                ),
            ).fetchone()
            log.info("repository.submission_inserted", submission_id=str(submission.id),
                     status=submission.status.value)
            return Result.success(_row_to_submission(row))

        return self._db.transact(work, "Failed to persist submission")

    def get(self, submission_id: UUID) -> Result[Submission]:
        def work(conn: Connection) -> Result[Submission]:
            row = conn.execute("SELECT * FROM supplements WHERE id = %s", (submission_id,)).fetchone()
            return Result.from_optional(row, "Submission not found").map(_row_to_submission)

        return self._db.transact(work, "Failed to load submission")

    def save_record(
        self,
        submission: Submission,
        expected_status: SubmissionStatus,
    ) -> Result[Submission]:
        def work(conn: Connection) -> Result[Submission]:
            row = conn.execute(
                _SAVE_RECORD,
                (
                    Jsonb(submission.record),
                    _warnings_json(submission),
                    submission.status.value,
                    submission.submitted_at,
                    submission.id,
                    expected_status.value,
                ),
            ).fetchone()
            if row is None:
                return _missing_or_conflict(conn, submission.id, expected_status)
            return Result.success(_row_to_submission(row))

        return self._db.transact(work, "Failed to update submission")

    def transition(
        self,
        submission_id: UUID,
        expected_status: SubmissionStatus,
        new_status: SubmissionStatus,
        reviewed_by: UUID | None = None,
        review_notes: str | None = None,
    ) -> Result[Submission]:
        def work(conn: Connection) -> Result[Submission]:
            row = conn.execute(
                _TRANSITION,
                {
                    "id": submission_id,
                    "expected": expected_status.value,
                    "new": new_status.value,
                    "reviewed_by": reviewed_by,
                    "review_notes": review_notes,
                },
            ).fetchone()
            if row is None:
                return _missing_or_conflict(conn, submission_id, expected_status)
            log.info("repository.submission_transitioned", submission_id=str(submission_id),
                     from_status=expected_status.value, to_status=new_status.value)
            return Result.success(_row_to_submission(row))

        return self._db.transact(work, "Failed to change submission status")


# ─────────────────────── Certificates ───────────────────────

ACTIVE_CERTIFICATE_INDEX = "uq_certificates_active_supplement"
CERTIFICATE_NUMBER_CONSTRAINT = "uq_certificates_number"

_LOCK_APPROVED_SUBMISSION = """
SELECT s.id,
       s.osi_data -> 'artgEntry' ->> 'productName' AS product_name,
       COALESCE(o.legal_name, s.osi_data -> 'artgEntry' ->> 'sponsor', '') AS organization_name
FROM supplements s
LEFT JOIN organizations o ON s.organization_id = o.id
WHERE s.id = %s AND s.status = 'approved'
FOR UPDATE OF s
"""

_EXPIRE_LAPSED = """
UPDATE certificates SET status = 'expired'
WHERE supplement_id = %s AND status = 'active' AND expires_at <= %s
"""

_HAS_ACTIVE = "SELECT 1 FROM certificates WHERE supplement_id = %s AND status = 'active'"

# Seeded on first use of a year from the highest number already issued that
# year; afterwards an atomic increment under the row lock.
_NEXT_SEQUENCE = """
INSERT INTO certificate_sequences AS seq (year, last_value)
VALUES (
    %(year)s,
    (SELECT COALESCE(MAX(RIGHT(certificate_number, 6)::int), 0) + 1
     FROM certificates WHERE certificate_number LIKE %(prefix)s)
)
ON CONFLICT (year) DO UPDATE
SET last_value = GREATEST(seq.last_value + 1, EXCLUDED.last_value)
RETURNING last_value
"""

_INSERT_CERTIFICATE = """
INSERT INTO certificates (
    id, supplement_id, certificate_number, serial_number, digital_signature,
    product_name, organization_name, status, issued_at, expires_at,
    verification_url, issued_by
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""

_REVOKE = """
UPDATE certificates
SET status = 'revoked', revoked_at = %s, revocation_reason = %s
WHERE id = %s AND status = 'active'
RETURNING *
"""


class SequenceCollision(Exception):
    """A freshly allocated certificate number already exists; retried with a new sequence."""


def _row_to_certificate(row: dict[str, Any]) -> Certificate:
    return Certificate(
        id=row["id"],
        submission_id=row["supplement_id"],
        certificate_number=row["certificate_number"],
        serial_number=row["serial_number"],
        signature=row["digital_signature"],
        product_name=row["product_name"],
        organization_name=row["organization_name"],
        status=CertificateStatus(row["status"]),
        issued_at=row["issued_at"],
        expires_at=row["expires_at"],
        verification_url=row["verification_url"],
        issued_by=row["issued_by"],
        revoked_at=row["revoked_at"],
        revocation_reason=row["revocation_reason"],
    )


class PsycopgCertificateRepository:
    """
    Implements the CertificateRepository port.

    Issuance guards, all inside one transaction:
      - FOR UPDATE on the submission serializes issuers of the same record
      - the per-year counter row serializes number allocation
      - uq_certificates_active_supplement backs the active-certificate check
      - uq_certificates_number backs numbering; a collision is retried
    """

    def __init__(self, database: Database, max_attempts: int = 3) -> None:
        self._db = database
        self._max_attempts = max_attempts

    def issue(
        self,
        submission_id: UUID,
        issued_at: datetime,
        build: Callable[[IssuanceContext], Certificate],
    ) -> Result[Certificate]:
        attempt = retry(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception_type(SequenceCollision),
            reraise=True,
        )(self._issue_once)
        try:
            return attempt(submission_id, issued_at, build)
        except SequenceCollision as e:
            log.error("repository.sequence_exhausted_retries", submission_id=str(submission_id))
            return Result.failure(ErrorCode.DATABASE_ERROR, "Failed to allocate certificate number", e)

    def _issue_once(
        self,
        submission_id: UUID,
        issued_at: datetime,
        build: Callable[[IssuanceContext], Certificate],
    ) -> Result[Certificate]:
        def work(conn: Connection) -> Result[Certificate]:
            target = conn.execute(_LOCK_APPROVED_SUBMISSION, (submission_id,)).fetchone()
            if target is None:
                return Result.failure(ErrorCode.NOT_FOUND, "Approved submission not found")

            conn.execute(_EXPIRE_LAPSED, (submission_id, issued_at))
            if conn.execute(_HAS_ACTIVE, (submission_id,)).fetchone() is not None:
                return Result.failure(
                    ErrorCode.CONFLICT, "Active certificate already exists for this submission"
                )

            sequence = conn.execute(
                _NEXT_SEQUENCE,
                {"year": issued_at.year, "prefix": year_prefix(issued_at.year) + "%"},
            ).fetchone()["last_value"]

            certificate = build(IssuanceContext(
                submission_id=submission_id,
                product_name=target["product_name"] or "",
                organization_name=target["organization_name"],
                year=issued_at.year,
                sequence=sequence,
            ))
            return self._insert(conn, certificate)

        return self._db.transact(work, "Failed to issue certificate")

    def _insert(self, conn: Connection, certificate: Certificate) -> Result[Certificate]:
        try:
            with conn.transaction():
                conn.execute(
                    _INSERT_CERTIFICATE,
                    (
                        certificate.id,
                        certificate.submission_id,
                        certificate.certificate_number,
                        certificate.serial_number,
                        certificate.signature,
                        certificate.product_name,
                        certificate.organization_name,
                        certificate.status.value,
                        certificate.issued_at,
                        certificate.expires_at,
                        certificate.verification_url,
                        certificate.issued_by,
                    ),
                )
        except psycopg.errors.UniqueViolation as e:
            constraint = e.diag.constraint_name
            if constraint == ACTIVE_CERTIFICATE_INDEX:
                return Result.failure(
                    ErrorCode.CONFLICT, "Active certificate already exists for this submission"
                )
            if constraint == CERTIFICATE_NUMBER_CONSTRAINT:
                log.warning("repository.sequence_collision", number=certificate.certificate_number)
                raise SequenceCollision(certificate.certificate_number) from e
            raise
        log.info(
            "repository.certificate_inserted",
            certificate_number=certificate.certificate_number,
            submission_id=str(certificate.submission_id),
        )
        return Result.success(certificate)

    def get(self, certificate_id: UUID) -> Result[Certificate]:
        return self._fetch_one(
            "SELECT * FROM certificates WHERE id = %s", certificate_id, "Failed to load certificate"
        )

    def find_by_number(self, certificate_number: str) -> Result[Certificate]:
        return self._fetch_one(
            "SELECT * FROM certificates WHERE certificate_number = %s",
            certificate_number,
            "Failed to look up certificate",
        )

    def _fetch_one(self, query: str, key: Any, error_message: str) -> Result[Certificate]:
        def work(conn: Connection) -> Result[Certificate]:
            row = conn.execute(query, (key,)).fetchone()
            return Result.from_optional(row, "Certificate not found").map(_row_to_certificate)

        return self._db.transact(work, error_message)

    def list_for_submission(self, submission_id: UUID) -> Result[list[Certificate]]:
        def work(conn: Connection) -> Result[list[Certificate]]:
            rows = conn.execute(
                "SELECT * FROM certificates WHERE supplement_id = %s ORDER BY issued_at DESC",
                (submission_id,),
            ).fetchall()
            return Result.success([_row_to_certificate(row) for row in rows])

        return self._db.transact(work, "Failed to list certificates")

    def revoke(
        self,
        certificate_id: UUID,
        reason: str,
        revoked_at: datetime,
    ) -> Result[Certificate]:
        def work(conn: Connection) -> Result[Certificate]:
            row = conn.execute(_REVOKE, (revoked_at, reason, certificate_id)).fetchone()
            return Result.from_optional(row, "Active certificate not found").map(_row_to_certificate)

        return self._db.transact(work, "Failed to revoke certificate")
