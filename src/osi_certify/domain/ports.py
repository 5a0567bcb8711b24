"""
Ports — Protocol-based interfaces for infrastructure adapters.

These define WHAT the workflow needs from the datastore without specifying
HOW it's done. Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (psycopg implementations)

Every method returns a Result; adapters never let driver exceptions escape.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from railway.result import Result

from osi_certify.domain.models import (
    Certificate,
    IssuanceContext,
    Submission,
    SubmissionStatus,
    SystemConfig,
    VerificationAttempt,
)


@runtime_checkable
class SubmissionRepository(Protocol):
    """Port: persist submissions with optimistic status transitions."""

    def insert(self, submission: Submission) -> Result[Submission]: ...

    def get(self, submission_id: UUID) -> Result[Submission]:
        """Fails with NOT_FOUND when no submission has that id."""
        ...

    def save_record(
        self,
        submission: Submission,
        expected_status: SubmissionStatus,
    ) -> Result[Submission]:
        """
        Overwrite record, warnings and status, conditioned on the stored
        status still being `expected_status`.

        Fails with CONFLICT when the condition matches zero rows.
        """
        ...

    def transition(
        self,
        submission_id: UUID,
        expected_status: SubmissionStatus,
        new_status: SubmissionStatus,
        reviewed_by: UUID | None = None,
        review_notes: str | None = None,
    ) -> Result[Submission]:
        """
        Move `expected_status → new_status` in one conditional UPDATE.

        Fails with CONFLICT when the stored status is no longer the expected one.
        """
        ...


@runtime_checkable
class CertificateRepository(Protocol):
    """
    Port: certificate persistence.

    `issue` runs the whole issuance inside ONE transaction:
      1. lock the approved submission (NOT_FOUND if absent / not approved)
      2. mark its lapsed active certificates expired, then reject if an
         active certificate remains (CONFLICT)
      3. allocate the next sequence for `issued_at.year` atomically
      4. build the certificate from the IssuanceContext and insert it
    """

    def issue(
        self,
        submission_id: UUID,
        issued_at: datetime,
        build: Callable[[IssuanceContext], Certificate],
    ) -> Result[Certificate]: ...

    def get(self, certificate_id: UUID) -> Result[Certificate]: ...

    def find_by_number(self, certificate_number: str) -> Result[Certificate]:
        """Fails with NOT_FOUND when no certificate carries that number."""
        ...

    def list_for_submission(self, submission_id: UUID) -> Result[list[Certificate]]: ...

    def revoke(
        self,
        certificate_id: UUID,
        reason: str,
        revoked_at: datetime,
    ) -> Result[Certificate]:
        """Only `active → revoked`; NOT_FOUND when no active certificate has that id."""
        ...


@runtime_checkable
class VerificationLog(Protocol):
    """Port: append-only verification audit trail."""

    def record(self, attempt: VerificationAttempt) -> Result[VerificationAttempt]: ...


@runtime_checkable
class SystemConfigStore(Protocol):
    """Port: named system settings rows."""

    def load(self) -> Result[SystemConfig]: ...

    def save(self, config: SystemConfig) -> Result[SystemConfig]: ...
