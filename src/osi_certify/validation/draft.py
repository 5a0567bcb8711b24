"""
Draft validator — the lenient mode for work-in-progress submissions.

Drafts are saved incrementally, so only the skeleton is checked: the record
is an object, the three core sections exist, and the product has a name.
No closed-record checks and no nested requiredness.
"""

from __future__ import annotations

from typing import Any

from osi_certify.domain.models import ValidationIssue, ValidationReport

DRAFT_SECTIONS = ("artgEntry", "products", "components")


def _absent(value: Any) -> bool:
    """JSON falsiness: null, false, 0 and "" are absent; containers count even when empty."""
    if isinstance(value, (dict, list)):
        return False
    return not value


def validate_draft(record: Any) -> ValidationReport:
    if not isinstance(record, dict):
        return ValidationReport.of([
            ValidationIssue(field="root", message="Data must be an object", value=record),
        ])

    issues = [
        ValidationIssue(field=section, message=f"{section} section is required", value=None)
        for section in DRAFT_SECTIONS
        if _absent(record.get(section))
    ]

    entry = record.get("artgEntry")
    if not _absent(entry) and (not isinstance(entry, dict) or _absent(entry.get("productName"))):
        issues.append(
            ValidationIssue(field="artgEntry.productName", message="Product name is required", value=None)
        )

    return ValidationReport.of(issues)
