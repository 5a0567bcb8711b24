"""
Application entry point — wires dependencies and starts the HTTP server.

Composition root: creates concrete adapters, injects them into the
workflow services, and hands the services to the ASGI app.

This is the ONLY place where concrete classes are instantiated.
Everything else depends on Protocol interfaces.

Responsibilities:
  1. Configure structlog for structured logging
  2. Load and validate configuration from environment
  3. Create concrete adapter instances (one Database, four stores)
  4. Wire the services (validation is pure and needs no wiring)
  5. Start uvicorn on the ASGI app
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

import structlog
import uvicorn

from osi_certify import __version__
from osi_certify.adapters.audit import PsycopgSystemConfigStore, PsycopgVerificationLog
from osi_certify.adapters.database import Database
from osi_certify.adapters.repository import (
    PsycopgCertificateRepository,
    PsycopgSubmissionRepository,
)
from osi_certify.config import AppSettings
from osi_certify.issuance import CertificateIssuer
from osi_certify.submissions import SubmissionService
from osi_certify.system_config import SystemConfigService
from osi_certify.verification import CertificateVerifier


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for structured logging.

    Dotted event names (`issuance.issued`, `verification.log_failed`) with
    key-value context, ISO timestamps, filtered at `log_level`.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@dataclass(frozen=True, slots=True)
class Services:
    """Everything the HTTP layer calls into."""

    submissions: SubmissionService
    issuer: CertificateIssuer
    verifier: CertificateVerifier
    system_config: SystemConfigService
    database: Database | None = None


def create_services(settings: AppSettings) -> Services:
    """
    Instantiate all concrete adapters from application settings and wire
    them into the services.
    """
    database = Database(
        dsn=settings.database.get_dsn(),
        connect_timeout_seconds=settings.database.connect_timeout_seconds,
        statement_timeout_ms=settings.database.statement_timeout_ms,
    )
    submission_repository = PsycopgSubmissionRepository(database)
    certificate_repository = PsycopgCertificateRepository(database)

    issuer = CertificateIssuer(
        certificates=certificate_repository,
        submissions=submission_repository,
        settings=settings.certificates,
    )
    return Services(
        submissions=SubmissionService(submission_repository, issuer),
        issuer=issuer,
        verifier=CertificateVerifier(certificate_repository, PsycopgVerificationLog(database)),
        system_config=SystemConfigService(PsycopgSystemConfigStore(database)),
        database=database,
    )


def main() -> None:
    """Load settings, configure logging and serve the ASGI app."""
    try:
        settings = AppSettings()
    except Exception as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    configure_structlog(settings.log_level)
    log = structlog.get_logger()

    log.info(
        "app.starting",
        version=__version__,
        log_level=settings.log_level,
        host=settings.server.host,
        port=settings.server.port,
        validity_years=settings.certificates.validity_years,
    )

    try:
        uvicorn.run(
            "osi_certify.asgi:app",
            host=settings.server.host,
            port=settings.server.port,
            log_level=settings.log_level.lower(),
        )
    except KeyboardInterrupt:
        log.info("app.shutdown", reason="signal received")


if __name__ == "__main__":
    main()
