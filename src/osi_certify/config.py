"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables (12-factor app)
  - Fall back to .env file
  - Validate types and constraints at startup

Only AppSettings is a BaseSettings instance. Sub-settings are plain BaseModel
classes populated via env_nested_delimiter="__", so DATABASE__HOST maps to
database.host and CERTIFICATES__VALIDITY_YEARS to certificates.validity_years.

Runtime presentation toggles (demo/presentation/accelerated mode) are NOT
settings: they live in the database as SystemConfig and are managed by
SystemConfigService.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class DatabaseSettings(BaseModel):
    """
    PostgreSQL connection.

    DATABASE__DSN wins when set; otherwise host, name, username and password
    are all required and assembled into a DSN. Every store call is bounded by
    `connect_timeout_seconds` and a server-side `statement_timeout_ms`.
    """

    dsn: SecretStr | None = None
    host: str | None = None
    port: int = Field(default=5432, ge=1, le=65535)
    name: str | None = None
    username: str | None = None
    password: SecretStr | None = None

    connect_timeout_seconds: int = Field(default=5, ge=1)
    statement_timeout_ms: int = Field(default=5000, ge=100)

    @model_validator(mode="after")
    def resolve_dsn(self) -> DatabaseSettings:
        if self.dsn is not None:
            return self
        parts = {"HOST": self.host, "NAME": self.name, "USERNAME": self.username, "PASSWORD": self.password}
        missing = [f"DATABASE__{key}" for key, value in parts.items() if not value]
        if missing:
            raise ValueError(f"Set DATABASE__DSN or all of: {', '.join(missing)}")
        secret = self.password.get_secret_value()  # type: ignore[union-attr]
        self.dsn = SecretStr(f"postgresql://{self.username}:{secret}@{self.host}:{self.port}/{self.name}")
        return self

    def get_dsn(self) -> str:
        assert self.dsn is not None
        return self.dsn.get_secret_value()


class CertificateSettings(BaseModel):
    """Certificate issuance parameters."""

    validity_years: int = Field(
        default=2, ge=1, le=10, description="Years between issuedAt and expiresAt",
    )
    verification_base_url: str = Field(
        default="http://localhost:3000",
        description="Public site base URL; certificates link to <base>/verify/<number>",
    )

    @field_validator("verification_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class ServerSettings(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)


class AppSettings(BaseSettings):
    """
    Root application settings — aggregates all sub-settings.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings
    certificates: CertificateSettings = Field(default_factory=lambda: CertificateSettings())
    server: ServerSettings = Field(default_factory=lambda: ServerSettings())

    log_level: str = Field(default="INFO")
