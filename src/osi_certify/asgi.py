"""
FastAPI + Uvicorn ASGI application.

Thin HTTP layer over the workflow services: parse the request, identify the
caller, call one service operation, render its Result. Every error path goes
through railway.http_support, so 5xx bodies never carry driver messages.

Callers are authenticated upstream; the gateway forwards their identity as
`X-User-Id` (UUID) and `X-User-Role` (admin | manufacturer). Only
`/public/verify/{number}`, `/validate`, `/health` and `/info` are anonymous.

Entry point for production: uvicorn osi_certify.asgi:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from railway import ErrorCode
from railway.http_support import build_fastapi_response
from railway.result import Result

from osi_certify import __version__
from osi_certify.access import require_admin
from osi_certify.config import AppSettings
from osi_certify.domain.models import (
    Caller,
    Certificate,
    Role,
    Submission,
    SubmissionStatus,
    SystemConfig,
    VerificationResult,
    VerificationStatus,
)
from osi_certify.main import Services, configure_structlog, create_services
from osi_certify.validation.dispatcher import validate

# ─────────────────────── Global State ───────────────────────
# Set during app startup; tests assign it directly.

_services: Services | None = None
_error_message: str | None = None
log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    FastAPI lifespan context manager — runs on startup and shutdown.

    Startup: load settings, wire services, load the system configuration.
    """
    global _services, _error_message

    try:
        settings = AppSettings()
    except Exception as e:
        _error_message = f"Configuration error: {e}"
        log.error("asgi.startup_error", error=_error_message)
        raise

    configure_structlog(settings.log_level)
    log.info("asgi.startup_config", version=__version__, log_level=settings.log_level)

    _services = create_services(settings)
    # Unreachable store at boot: keep defaults, /health reports it.
    _services.system_config.reload()

    log.info("asgi.startup_complete")
    yield
    log.info("asgi.shutdown_complete")


app = FastAPI(
    title="osi-certify",
    description="OSI supplement record validation, review and certificate verification",
    version=__version__,
    lifespan=lifespan,
)


# ─────────────────────── Request bodies ───────────────────────


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ValidateRequest(_Body):
    data: Any = None
    is_draft: bool = Field(default=False, alias="isDraft")


class CreateSubmissionRequest(_Body):
    osi_data: Any = Field(alias="osiData")
    status: SubmissionStatus = SubmissionStatus.DRAFT
    organization_id: UUID | None = Field(default=None, alias="organizationId")


class UpdateSubmissionRequest(_Body):
    osi_data: Any = Field(alias="osiData")
    status: SubmissionStatus | None = None


class ReviewRequest(_Body):
    decision: SubmissionStatus
    notes: str | None = None


class IssueRequest(_Body):
    submission_id: UUID = Field(alias="submissionId")


class RevokeRequest(_Body):
    reason: str = ""


class SystemConfigRequest(_Body):
    demo_mode: bool = Field(default=False, alias="demoMode")
    presentation_mode: bool = Field(default=False, alias="presentationMode")
    accelerated_mode: bool = Field(default=False, alias="acceleratedMode")


# ─────────────────────── Dependencies ───────────────────────


def services() -> Result[Services]:
    if _services is None:
        return Result.failure(ErrorCode.SERVICE_UNAVAILABLE_ERROR, "Service not initialised")
    return Result.success(_services)


def current_caller(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Result[Caller]:
    """Identity forwarded by the gateway; missing or malformed headers are AUTHENTICATION_ERROR."""
    if not x_user_id or not x_user_role:
        return Result.failure(ErrorCode.AUTHENTICATION_ERROR, "Caller identity is required")
    try:
        return Result.success(Caller(user_id=UUID(x_user_id), role=Role(x_user_role.lower())))
    except ValueError:
        return Result.failure(ErrorCode.AUTHENTICATION_ERROR, "Caller identity is malformed")


ServicesDep = Annotated[Result[Services], Depends(services)]
CallerDep = Annotated[Result[Caller], Depends(current_caller)]


def _with(
    svc: Result[Services],
    caller: Result[Caller],
) -> Result[tuple[Services, Caller]]:
    return svc.flat_map(lambda s: caller.map(lambda c: (s, c)))


# ─────────────────────── Probes ───────────────────────


@app.get("/health")
def health() -> JSONResponse:
    """
    Liveness/readiness probe.

    200 when the services are wired and the database answers; 503 otherwise.
    """
    if _error_message:
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": _error_message})
    if _services is None:
        return JSONResponse(status_code=503, content={"status": "starting"})
    if _services.database is not None and _services.database.ping().is_failure():
        log.warning("health.database_unreachable")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "reason": "database unreachable"})
    return JSONResponse(status_code=200, content={"status": "healthy"})


@app.get("/info")
def info() -> dict[str, Any]:
    return {
        "name": "osi-certify",
        "version": __version__,
        "initialized": _services is not None,
        "has_error": _error_message is not None,
        "system_config": _services.system_config.current.to_dict() if _services else None,
    }


# ─────────────────────── Validation ───────────────────────


@app.post("/validate")
def validate_record(body: ValidateRequest) -> dict[str, Any]:
    """Validate a record without persisting it; always 200 with `{valid, errors}`."""
    return validate(body.data, body.is_draft).to_dict()


# ─────────────────────── Submissions ───────────────────────


@app.post("/submissions")
def create_submission(body: CreateSubmissionRequest, svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(
        lambda sc: sc[0].submissions.create(body.osi_data, body.status, sc[1], body.organization_id)
    )
    return build_fastapi_response(result, success_status=201, serializer=Submission.to_dict)


@app.get("/submissions/{submission_id}")
def get_submission(submission_id: UUID, svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(lambda sc: sc[0].submissions.get(submission_id, sc[1]))
    return build_fastapi_response(result, serializer=Submission.to_dict)


@app.put("/submissions/{submission_id}")
def update_submission(
    submission_id: UUID, body: UpdateSubmissionRequest, svc: ServicesDep, caller: CallerDep
) -> JSONResponse:
    result = _with(svc, caller).flat_map(
        lambda sc: sc[0].submissions.update(submission_id, body.osi_data, sc[1], body.status)
    )
    return build_fastapi_response(result, serializer=Submission.to_dict)


@app.post("/submissions/{submission_id}/submit")
def submit_submission(submission_id: UUID, svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(lambda sc: sc[0].submissions.submit(submission_id, sc[1]))
    return build_fastapi_response(result, serializer=Submission.to_dict)


@app.post("/submissions/{submission_id}/review/start")
def start_review(submission_id: UUID, svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(lambda sc: sc[0].submissions.start_review(submission_id, sc[1]))
    return build_fastapi_response(result, serializer=Submission.to_dict)


@app.post("/submissions/{submission_id}/review")
def review_submission(
    submission_id: UUID, body: ReviewRequest, svc: ServicesDep, caller: CallerDep
) -> JSONResponse:
    result = _with(svc, caller).flat_map(
        lambda sc: sc[0].submissions.review(submission_id, body.decision, sc[1], body.notes)
    )
    return build_fastapi_response(result, serializer=lambda outcome: outcome.to_dict())


@app.get("/submissions/{submission_id}/certificates")
def list_certificates(submission_id: UUID, svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(
        lambda sc: sc[0].issuer.list_for_submission(submission_id, sc[1])
    )
    return build_fastapi_response(result, serializer=lambda certs: [c.to_dict() for c in certs])


# ─────────────────────── Certificates ───────────────────────


@app.post("/certificates")
def issue_certificate(body: IssueRequest, svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(lambda sc: sc[0].issuer.issue(body.submission_id, sc[1]))
    return build_fastapi_response(result, success_status=201, serializer=Certificate.to_dict)


@app.get("/certificates/{certificate_id}")
def get_certificate(certificate_id: UUID, svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(lambda sc: sc[0].issuer.get(certificate_id, sc[1]))
    return build_fastapi_response(result, serializer=Certificate.to_dict)


@app.put("/certificates/{certificate_id}/revoke")
def revoke_certificate(
    certificate_id: UUID, body: RevokeRequest, svc: ServicesDep, caller: CallerDep
) -> JSONResponse:
    result = _with(svc, caller).flat_map(
        lambda sc: sc[0].issuer.revoke(certificate_id, body.reason, sc[1])
    )
    return build_fastapi_response(result, serializer=Certificate.to_dict)


@app.get("/public/verify/{certificate_number}")
def verify_certificate(certificate_number: str, request: Request, svc: ServicesDep) -> JSONResponse:
    """
    Public verification. 200 for valid, expired and revoked; 404 when the
    number resolves to nothing. The body has the same shape either way.
    """
    result = svc.flat_map(lambda s: s.verifier.verify(
        certificate_number,
        caller_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    ))
    if result.is_success() and result.value().status is VerificationStatus.NOT_FOUND:
        return JSONResponse(status_code=404, content=result.value().to_dict())
    return build_fastapi_response(result, serializer=VerificationResult.to_dict)


# ─────────────────────── System configuration ───────────────────────


@app.get("/admin/system-config")
def get_system_config(svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(
        lambda sc: require_admin(sc[1], "read system configuration")
        .map(lambda _: sc[0].system_config.current)
    )
    return build_fastapi_response(result, serializer=SystemConfig.to_dict)


@app.put("/admin/system-config")
def put_system_config(body: SystemConfigRequest, svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    config = SystemConfig(
        demo_mode=body.demo_mode,
        presentation_mode=body.presentation_mode,
        accelerated_mode=body.accelerated_mode,
    )
    result = _with(svc, caller).flat_map(lambda sc: sc[0].system_config.apply(config, sc[1]))
    return build_fastapi_response(result, serializer=SystemConfig.to_dict)


@app.post("/admin/system-config/reload")
def reload_system_config(svc: ServicesDep, caller: CallerDep) -> JSONResponse:
    result = _with(svc, caller).flat_map(
        lambda sc: require_admin(sc[1], "reload system configuration")
        .flat_map(lambda _: sc[0].system_config.reload())
    )
    return build_fastapi_response(result, serializer=SystemConfig.to_dict)


if __name__ == "__main__":
    # For local testing: python -m uvicorn osi_certify.asgi:app --reload
    import uvicorn

    uvicorn.run("osi_certify.asgi:app", host="0.0.0.0", port=8000, reload=False, log_level="info")
