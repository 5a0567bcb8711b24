"""
PostgreSQL schema — tables, constraints and indexes the adapters rely on.

Two constraints carry correctness under concurrent requests:
  - uq_certificates_number: a certificate number is never issued twice
  - uq_certificates_active_supplement: at most one active certificate per submission
"""

from __future__ import annotations

import psycopg

DDL = """
CREATE TABLE IF NOT EXISTS organizations (
    id            UUID PRIMARY KEY,
    legal_name    TEXT NOT NULL,
    trading_name  TEXT
);

CREATE TABLE IF NOT EXISTS supplements (
    id                   UUID PRIMARY KEY,
    osi_data             JSONB NOT NULL,
    structured_warnings  JSONB NOT NULL DEFAULT '[]'::jsonb,
    status               TEXT NOT NULL
        CHECK (status IN ('draft', 'submitted', 'under_review', 'approved', 'rejected')),
    organization_id      UUID REFERENCES organizations(id),
    created_by           UUID NOT NULL,
    created_at           TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at           TIMESTAMPTZ NOT NULL DEFAULT now(),
    submitted_at         TIMESTAMPTZ,
    reviewed_at          TIMESTAMPTZ,
    reviewed_by          UUID,
    review_notes         TEXT
);

CREATE TABLE IF NOT EXISTS certificates (
    id                  UUID PRIMARY KEY,
    supplement_id       UUID NOT NULL REFERENCES supplements(id),
    certificate_number  TEXT NOT NULL,
    serial_number       TEXT NOT NULL UNIQUE,
    digital_signature   TEXT NOT NULL,
    product_name        TEXT NOT NULL,
    organization_name   TEXT NOT NULL,
    status              TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'expired', 'revoked')),
    issued_at           TIMESTAMPTZ NOT NULL,
    expires_at          TIMESTAMPTZ NOT NULL,
    verification_url    TEXT,
    issued_by           UUID,
    revoked_at          TIMESTAMPTZ,
    revocation_reason   TEXT,
    CONSTRAINT uq_certificates_number UNIQUE (certificate_number)
);

CREATE UNIQUE INDEX IF NOT EXISTS uq_certificates_active_supplement
    ON certificates (supplement_id) WHERE status = 'active';

CREATE TABLE IF NOT EXISTS certificate_sequences (
    year        INTEGER PRIMARY KEY,
    last_value  INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS verification_attempts (
    id                  UUID PRIMARY KEY,
    certificate_number  TEXT NOT NULL,
    certificate_id      UUID REFERENCES certificates(id),
    result              TEXT NOT NULL,
    caller_address      TEXT,
    user_agent          TEXT,
    attempted_at        TIMESTAMPTZ NOT NULL
);

CREATE TABLE IF NOT EXISTS system_settings (
    setting_key    TEXT PRIMARY KEY,
    setting_value  TEXT NOT NULL,
    updated_at     TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

TRUNCATE_ALL = """
TRUNCATE verification_attempts, certificates, certificate_sequences,
         supplements, organizations, system_settings CASCADE;
"""


def create_schema(dsn: str) -> None:
    """Apply the DDL; idempotent."""
    with psycopg.connect(dsn) as conn:
        conn.execute(DDL)
