"""
PostgreSQL adapters for the verification audit trail and system settings.

verification_attempts is append-only: this adapter only ever INSERTs.
system_settings holds one row per SystemConfig field; `save` upserts all of
them in one transaction so a reload never observes a half-applied config.
"""

from __future__ import annotations

import structlog
from railway.result import Result

from osi_certify.adapters.database import Connection, Database
from osi_certify.domain.models import SystemConfig, VerificationAttempt

log = structlog.get_logger()

_INSERT_ATTEMPT = """
INSERT INTO verification_attempts (
    id, certificate_number, certificate_id, result, caller_address, user_agent, attempted_at
) VALUES (%s, %s, %s, %s, %s, %s, %s)
"""

_UPSERT_SETTING = """
INSERT INTO system_settings (setting_key, setting_value, updated_at)
VALUES (%s, %s, now())
ON CONFLICT (setting_key) DO UPDATE
SET setting_value = EXCLUDED.setting_value, updated_at = now()
"""


class PsycopgVerificationLog:
    """Implements the VerificationLog port."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def record(self, attempt: VerificationAttempt) -> Result[VerificationAttempt]:
        def work(conn: Connection) -> Result[VerificationAttempt]:
            conn.execute(
                _INSERT_ATTEMPT,
                (
                    attempt.id,
                    attempt.certificate_number,
                    attempt.resolved_certificate_id,
                    attempt.result,
                    attempt.caller_address,
                    attempt.user_agent,
                    attempt.timestamp,
                ),
            )
            return Result.success(attempt)

        return self._db.transact(work, "Failed to record verification attempt")


class PsycopgSystemConfigStore:
    """Implements the SystemConfigStore port."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def load(self) -> Result[SystemConfig]:
        def work(conn: Connection) -> Result[SystemConfig]:
            rows = conn.execute(
                "SELECT setting_key, setting_value FROM system_settings WHERE setting_key = ANY(%s)",
                (list(SystemConfig.SETTING_KEYS),),
            ).fetchall()
            return Result.success(
                SystemConfig.from_rows({row["setting_key"]: row["setting_value"] for row in rows})
            )

        return self._db.transact(work, "Failed to load system settings")

    def save(self, config: SystemConfig) -> Result[SystemConfig]:
        def work(conn: Connection) -> Result[SystemConfig]:
            with conn.cursor() as cur:
                cur.executemany(_UPSERT_SETTING, list(config.to_rows().items()))
            log.info("system_settings.saved", **config.to_rows())
            return Result.success(config)

        return self._db.transact(work, "Failed to save system settings")
