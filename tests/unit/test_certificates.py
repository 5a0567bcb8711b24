"""
Unit tests for the certificate rules — numbering, signing, expiry and the
verification status derivation.
"""

from __future__ import annotations

import hashlib
from dataclasses import replace
from datetime import UTC, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from osi_certify.domain.certificates import (
    add_years,
    build_certificate,
    format_certificate_number,
    iso_millis,
    normalize_certificate_number,
    resolve_verification,
    serial_number,
    sign,
)
from osi_certify.domain.models import (
    CertificateStatus,
    IssuanceContext,
    VerificationStatus,
)
from tests.conftest import NOW


def _context(sequence: int = 1) -> IssuanceContext:
    return IssuanceContext(
        submission_id=uuid4(),
        product_name="Vitamin C 500mg",
        organization_name="Acme Health Pty Ltd",
        year=NOW.year,
        sequence=sequence,
    )


class TestNumbering:
    def test_number_format(self) -> None:
        assert format_certificate_number(2026, 1) == "OSI-2026-000001"
        assert format_certificate_number(2026, 123456) == "OSI-2026-123456"

    @pytest.mark.parametrize("sequence", [0, -1, 1_000_000])
    def test_out_of_range_sequence_is_rejected(self, sequence: int) -> None:
        with pytest.raises(ValueError):
            format_certificate_number(2026, sequence)

    def test_normalize_trims_and_uppercases(self) -> None:
        assert normalize_certificate_number("  osi-2026-000042\n") == "OSI-2026-000042"

    @pytest.mark.parametrize("raw", ["", "OSI-26-42", "OSI-2026-42", "XYZ-2026-000001", "OSI-2026-0000001"])
    def test_normalize_rejects_malformed_numbers(self, raw: str) -> None:
        assert normalize_certificate_number(raw) is None


class TestSigning:
    def test_signature_is_sha256_over_pipe_joined_fields(self) -> None:
        """
        GIVEN number, product, organization and issue instant
        WHEN signed
        THEN the signature is the SHA-256 hex of "number|product|org|ISO millis Z".
        """
        issued_at = datetime(2026, 3, 15, 9, 30, 0, 123000, tzinfo=UTC)
        payload = "OSI-2026-000001|Vitamin C 500mg|Acme Health Pty Ltd|2026-03-15T09:30:00.123Z"

        signature = sign("OSI-2026-000001", "Vitamin C 500mg", "Acme Health Pty Ltd", issued_at)

        assert signature == hashlib.sha256(payload.encode()).hexdigest()
        assert len(signature) == 64

    def test_iso_millis_normalizes_to_utc(self) -> None:
        moment = datetime(2026, 3, 15, 19, 30, tzinfo=timezone(timedelta(hours=10)))

        assert iso_millis(moment) == "2026-03-15T09:30:00.000Z"

    def test_serial_number_uses_epoch_milliseconds(self) -> None:
        issued_at = datetime(2026, 1, 1, tzinfo=UTC)

        assert serial_number("OSI-2026-000001", issued_at) == (
            f"OSI-2026-000001-{int(issued_at.timestamp()) * 1000}"
        )


class TestExpiry:
    def test_add_years_keeps_calendar_day(self) -> None:
        assert add_years(NOW, 2) == NOW.replace(year=2028)

    def test_leap_day_falls_back_to_28_february(self) -> None:
        leap = datetime(2024, 2, 29, 12, 0, tzinfo=UTC)

        assert add_years(leap, 2) == datetime(2026, 2, 28, 12, 0, tzinfo=UTC)


class TestBuildCertificate:
    def test_build_from_context(self) -> None:
        """
        GIVEN an issuance context with sequence 7
        WHEN a certificate is built with a two-year horizon
        THEN number, serial, signature, expiry and URL are all derived from it.
        """
        context = _context(sequence=7)

        cert = build_certificate(context, NOW, 2, "https://verify.example.org/")

        assert cert.certificate_number == "OSI-2026-000007"
        assert cert.serial_number == serial_number("OSI-2026-000007", NOW)
        assert cert.signature == sign("OSI-2026-000007", context.product_name, context.organization_name, NOW)
        assert cert.expires_at == NOW.replace(year=2028)
        assert cert.status is CertificateStatus.ACTIVE
        assert cert.verification_url == "https://verify.example.org/verify/OSI-2026-000007"
        assert cert.submission_id == context.submission_id

    def test_without_base_url_there_is_no_verification_url(self) -> None:
        assert build_certificate(_context(), NOW, 2).verification_url is None


class TestResolveVerification:
    def _cert(self, **changes):
        return replace(build_certificate(_context(), NOW - timedelta(days=30), 2), **changes)

    def test_missing_certificate_is_not_found(self) -> None:
        result = resolve_verification(None, NOW)

        assert result.status is VerificationStatus.NOT_FOUND
        assert not result.valid
        assert result.certificate is None

    def test_active_unexpired_certificate_is_valid(self) -> None:
        result = resolve_verification(self._cert(), NOW)

        assert result.status is VerificationStatus.VALID
        assert result.valid
        assert result.message == "Certificate is valid and active"

    def test_past_expiry_overrides_stored_active(self) -> None:
        """
        GIVEN a certificate stored active whose expiresAt is in the past
        WHEN resolved
        THEN the status is expired and valid is false.
        """
        cert = self._cert(expires_at=NOW - timedelta(seconds=1))

        result = resolve_verification(cert, NOW)

        assert result.status is VerificationStatus.EXPIRED
        assert not result.valid

    def test_expiry_boundary_is_inclusive(self) -> None:
        assert resolve_verification(self._cert(expires_at=NOW), NOW).status is VerificationStatus.EXPIRED

    def test_revoked_wins_over_expiry_and_carries_reason(self) -> None:
        cert = replace(
            self._cert(expires_at=NOW - timedelta(days=1)),
            status=CertificateStatus.REVOKED,
            revoked_at=NOW,
            revocation_reason="Label misrepresentation",
        )

        result = resolve_verification(cert, NOW)

        assert result.status is VerificationStatus.REVOKED
        assert not result.valid
        assert "Label misrepresentation" in result.message

    def test_public_view_hides_internal_fields(self) -> None:
        body = resolve_verification(self._cert(), NOW).to_dict()

        assert body["status"] == "valid"
        assert set(body["certificate"]) == {
            "certificateNumber", "productName", "organizationName",
            "issuedAt", "expiresAt", "revokedAt", "revocationReason",
        }
