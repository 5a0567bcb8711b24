"""
Certificate rules — numbering, signing, expiry and verification status.

Pure functions only; the issuing transaction lives in the repository adapter
and the orchestration in `osi_certify.issuance`.

Public contract: certificate numbers are `OSI-YYYY-NNNNNN` (four-digit year,
six-digit zero-padded sequence). End users type them into the verification
form, so the format never changes.
"""

from __future__ import annotations

import hashlib
import re
from datetime import UTC, datetime
from uuid import UUID

from osi_certify.domain.models import (
    Certificate,
    CertificateStatus,
    IssuanceContext,
    VerificationResult,
    VerificationStatus,
)

CERTIFICATE_PREFIX = "OSI"
SEQUENCE_WIDTH = 6
CERTIFICATE_NUMBER_PATTERN = re.compile(r"^OSI-(\d{4})-(\d{6})$")


def format_certificate_number(year: int, sequence: int) -> str:
    if not 1 <= sequence < 10**SEQUENCE_WIDTH:
        raise ValueError(f"Certificate sequence out of range: {sequence}")
    return f"{CERTIFICATE_PREFIX}-{year:04d}-{sequence:0{SEQUENCE_WIDTH}d}"


def year_prefix(year: int) -> str:
    """LIKE-pattern prefix shared by every certificate issued in `year`."""
    return f"{CERTIFICATE_PREFIX}-{year:04d}-"


def normalize_certificate_number(raw: str) -> str | None:
    """
    Canonical form of a hand-typed certificate number, or None if it can't be one.

    >>> normalize_certificate_number("  osi-2026-000042 ")
    'OSI-2026-000042'
    >>> normalize_certificate_number("OSI-26-42") is None
    True
    """
    candidate = raw.strip().upper()
    if CERTIFICATE_NUMBER_PATTERN.match(candidate) is None:
        return None
    return candidate


def iso_millis(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix: 2026-10-19T08:30:00.000Z."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def serial_number(certificate_number: str, issued_at: datetime) -> str:
    return f"{certificate_number}-{int(issued_at.timestamp() * 1000)}"


def sign(
    certificate_number: str,
    product_name: str,
    organization_name: str,
    issued_at: datetime,
) -> str:
    """SHA-256 hex digest over `number|product|organization|issuedAt`."""
    payload = "|".join(
        (certificate_number, product_name, organization_name, iso_millis(issued_at))
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def add_years(moment: datetime, years: int) -> datetime:
    """Same calendar day `years` later; 29 February falls back to 28 February."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def build_certificate(
    context: IssuanceContext,
    issued_at: datetime,
    validity_years: int,
    verification_base_url: str | None = None,
    issued_by: UUID | None = None,
) -> Certificate:
    number = format_certificate_number(context.year, context.sequence)
    verification_url = None
    if verification_base_url:
        verification_url = f"{verification_base_url.rstrip('/')}/verify/{number}"
    return Certificate(
        submission_id=context.submission_id,
        certificate_number=number,
        serial_number=serial_number(number, issued_at),
        signature=sign(number, context.product_name, context.organization_name, issued_at),
        product_name=context.product_name,
        organization_name=context.organization_name,
        issued_at=issued_at,
        expires_at=add_years(issued_at, validity_years),
        verification_url=verification_url,
        issued_by=issued_by,
    )


def resolve_verification(certificate: Certificate | None, now: datetime) -> VerificationResult:
    """
    Derive the public verification status. Order matters:

      1. no certificate          → not_found
      2. stored status revoked   → revoked (whatever expires_at says)
      3. expires_at <= now       → expired (overrides a stored `active`)
      4. otherwise               → valid
    """
    if certificate is None:
        return VerificationResult(
            valid=False,
            status=VerificationStatus.NOT_FOUND,
            message="Certificate not found",
        )
    if certificate.status is CertificateStatus.REVOKED:
        return VerificationResult(
            valid=False,
            status=VerificationStatus.REVOKED,
            message=f"Certificate has been revoked: {certificate.revocation_reason}",
            certificate=certificate,
        )
    if certificate.expires_at <= now or certificate.status is CertificateStatus.EXPIRED:
        return VerificationResult(
            valid=False,
            status=VerificationStatus.EXPIRED,
            message="Certificate has expired",
            certificate=certificate,
        )
    return VerificationResult(
        valid=True,
        status=VerificationStatus.VALID,
        message="Certificate is valid and active",
        certificate=certificate,
    )
