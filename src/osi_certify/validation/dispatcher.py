"""
Validation dispatcher — the single entry point for validating a record.

Two modes, each with its own contract:

  DRAFT  → draft validator only
  FINAL  → schema validator; if (and only if) it passes, business rules

Callers that persist a submission go through `validate` / `validate_as`;
nothing else calls the individual validators directly.
"""

from __future__ import annotations

from datetime import date
from enum import Enum, unique
from typing import Any

from osi_certify.domain.models import SubmissionStatus, ValidationReport
from osi_certify.validation.draft import validate_draft
from osi_certify.validation.rules import validate_business_rules
from osi_certify.validation.schema import validate_schema


@unique
class ValidationMode(Enum):
    DRAFT = "draft"
    FINAL = "final"

    @staticmethod
    def for_status(status: SubmissionStatus) -> ValidationMode:
        """Only a record persisted as `draft` may skip final validation."""
        return ValidationMode.DRAFT if status is SubmissionStatus.DRAFT else ValidationMode.FINAL


def _validate_final(record: Any, today: date | None) -> ValidationReport:
    structural = validate_schema(record)
    if not structural.valid:
        return structural
    return validate_business_rules(record, today)


def validate_as(record: Any, mode: ValidationMode, today: date | None = None) -> ValidationReport:
    match mode:
        case ValidationMode.DRAFT:
            return validate_draft(record)
        case ValidationMode.FINAL:
            return _validate_final(record, today)
    raise TypeError(f"Unknown validation mode: {mode!r}")  # pragma: no cover


def validate(record: Any, is_draft: bool, today: date | None = None) -> ValidationReport:
    """`{valid, errors}` for `record`; `is_draft` selects the lenient mode."""
    return validate_as(record, ValidationMode.DRAFT if is_draft else ValidationMode.FINAL, today)
