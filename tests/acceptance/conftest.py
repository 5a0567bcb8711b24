"""
Acceptance test fixtures — PostgreSQL testcontainer for end-to-end tests.

Reuses the production schema and the truncation pattern of the integration
tests, scoped for the acceptance session.
"""

from __future__ import annotations

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from osi_certify.adapters.schema import TRUNCATE_ALL, create_schema
from tests.integration.conftest import psycopg_url


@pytest.fixture(scope="session")
def acceptance_pg() -> PostgresContainer:
    """Start a PostgreSQL container for the acceptance test session."""
    with PostgresContainer("postgres:16-alpine") as pg:
        create_schema(psycopg_url(pg))
        yield pg


@pytest.fixture()
def acceptance_dsn(acceptance_pg: PostgresContainer) -> str:
    """Return a psycopg-compatible DSN and truncate all tables before each test."""
    connection_url = psycopg_url(acceptance_pg)
    with psycopg.connect(connection_url) as conn:
        conn.execute(TRUNCATE_ALL)
        conn.commit()
    return connection_url
