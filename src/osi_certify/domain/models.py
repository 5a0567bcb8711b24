"""
Domain models — immutable value objects for submissions, certificates,
validation reports and the verification audit trail.

All models are frozen dataclasses. The OSI document itself stays a plain
JSON mapping (camelCase, as submitted) because its shape is owned by the
schema validator, not by Python types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum, unique
from typing import Any
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(UTC)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@unique
class SubmissionStatus(StrEnum):
    """draft → submitted → under_review → {approved, rejected}."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


@unique
class CertificateStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


@unique
class VerificationStatus(StrEnum):
    VALID = "valid"
    EXPIRED = "expired"
    REVOKED = "revoked"
    NOT_FOUND = "not_found"


# Recorded on an attempt whose lookup itself failed.
ATTEMPT_RESULT_ERROR = "error"


@unique
class Role(StrEnum):
    ADMIN = "admin"
    MANUFACTURER = "manufacturer"


@dataclass(frozen=True, slots=True)
class Caller:
    """A pre-authenticated caller: who they are and which role they hold."""

    user_id: UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


# ─────────────────────── Validation ───────────────────────


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One violation: dotted field path, human message, offending value."""

    field: str
    message: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "value": self.value}


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """
    Uniform pass/fail contract shared by every validator.

    `valid` is derived from the error list so the two can never disagree.
    """

    errors: tuple[ValidationIssue, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.errors]

    @staticmethod
    def of(errors: list[ValidationIssue]) -> ValidationReport:
        return ValidationReport(errors=tuple(errors))

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": [issue.to_dict() for issue in self.errors]}


# ─────────────────────── Submissions ───────────────────────


@dataclass(frozen=True, slots=True)
class ProductWarning:
    """Canonical safety warning. Every incoming warning is decoded into this shape."""

    text: str
    type: str = "General"
    source: str = "Unknown"

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "type": self.type, "source": self.source}


@dataclass(frozen=True, slots=True)
class Submission:
    """
    A supplement record and its position in the review workflow.

    `record` is the OSI document (warnings as plain texts); `warnings` holds
    the canonical warning list decoded at ingestion.
    """

    record: dict[str, Any] = field(repr=False)
    created_by: UUID
    status: SubmissionStatus = SubmissionStatus.DRAFT
    warnings: tuple[ProductWarning, ...] = ()
    id: UUID = field(default_factory=uuid4)
    organization_id: UUID | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewed_by: UUID | None = None
    review_notes: str | None = None

    @property
    def product_name(self) -> str | None:
        entry = self.record.get("artgEntry")
        if isinstance(entry, dict):
            return entry.get("productName")
        return None

    def is_visible_to(self, caller: Caller) -> bool:
        return caller.is_admin or self.created_by == caller.user_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "osiData": self.record,
            "warnings": [w.to_dict() for w in self.warnings],
            "status": self.status.value,
            "organizationId": str(self.organization_id) if self.organization_id else None,
            "createdBy": str(self.created_by),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "submittedAt": _iso(self.submitted_at),
            "reviewedAt": _iso(self.reviewed_at),
            "reviewedBy": str(self.reviewed_by) if self.reviewed_by else None,
            "reviewNotes": self.review_notes,
        }


# ─────────────────────── Certificates ───────────────────────


@dataclass(frozen=True, slots=True)
class IssuanceContext:
    """
    What the store hands back while the issuing transaction is open:
    the locked submission's names and the freshly allocated sequence.
    """

    submission_id: UUID
    product_name: str
    organization_name: str
    year: int
    sequence: int


@dataclass(frozen=True, slots=True)
class Certificate:
    """
    A signed, numbered certificate for one approved submission.

    `signature` is fixed at issuance and never recomputed.
    """

    submission_id: UUID
    certificate_number: str
    serial_number: str
    signature: str
    product_name: str
    organization_name: str
    issued_at: datetime
    expires_at: datetime
    status: CertificateStatus = CertificateStatus.ACTIVE
    id: UUID = field(default_factory=uuid4)
    verification_url: str | None = None
    issued_by: UUID | None = None
    revoked_at: datetime | None = None
    revocation_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "submissionId": str(self.submission_id),
            "certificateNumber": self.certificate_number,
            "serialNumber": self.serial_number,
            "signature": self.signature,
            "productName": self.product_name,
            "organizationName": self.organization_name,
            "status": self.status.value,
            "issuedAt": _iso(self.issued_at),
            "expiresAt": _iso(self.expires_at),
            "verificationUrl": self.verification_url,
            "issuedBy": str(self.issued_by) if self.issued_by else None,
            "revokedAt": _iso(self.revoked_at),
            "revocationReason": self.revocation_reason,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """The subset shown to anonymous verifiers."""
        return {
            "certificateNumber": self.certificate_number,
            "productName": self.product_name,
            "organizationName": self.organization_name,
            "issuedAt": _iso(self.issued_at),
            "expiresAt": _iso(self.expires_at),
            "revokedAt": _iso(self.revoked_at),
            "revocationReason": self.revocation_reason,
        }


# ─────────────────────── Verification ───────────────────────


@dataclass(frozen=True, slots=True)
class VerificationResult:
    valid: bool
    status: VerificationStatus
    message: str
    certificate: Certificate | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "valid": self.valid,
            "status": self.status.value,
            "message": self.message,
        }
        if self.certificate is not None:
            body["certificate"] = self.certificate.to_public_dict()
        return body


@dataclass(frozen=True, slots=True)
class VerificationAttempt:
    """Append-only audit record of one public lookup, whatever its outcome."""

    certificate_number: str
    result: str
    caller_address: str | None = None
    user_agent: str | None = None
    resolved_certificate_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=utcnow)


# ─────────────────────── System configuration ───────────────────────


@dataclass(frozen=True, slots=True)
class SystemConfig:
    """
    Platform-wide presentation toggles.

    Persisted as one named row per field; see SystemConfigService for the
    load/apply/reload boundary.
    """

    demo_mode: bool = False
    presentation_mode: bool = False
    accelerated_mode: bool = False

    SETTING_KEYS = ("demo_mode", "presentation_mode", "accelerated_mode")

    @staticmethod
    def from_rows(rows: dict[str, str]) -> SystemConfig:
        """Build from raw `system_settings` rows; unknown keys are ignored, missing ones default."""
        return SystemConfig(**{
            key: rows[key].strip().lower() == "true"
            for key in SystemConfig.SETTING_KEYS
            if key in rows
        })

    def to_rows(self) -> dict[str, str]:
        return {key: str(getattr(self, key)).lower() for key in self.SETTING_KEYS}

    def to_dict(self) -> dict[str, bool]:
        return {
            "demoMode": self.demo_mode,
            "presentationMode": self.presentation_mode,
            "acceleratedMode": self.accelerated_mode,
        }
