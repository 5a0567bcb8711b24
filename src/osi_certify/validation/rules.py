"""
Business rules — cross-field invariants the schema cannot express.

Runs only on schema-valid records, so the shapes below can be trusted.
Every rule is evaluated; violations accumulate.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from osi_certify.domain.models import ValidationIssue, ValidationReport

Rule = Callable[[dict[str, Any], date], ValidationIssue | None]


def _today() -> date:
    return datetime.now(UTC).date()


def at_least_one_active_ingredient(record: dict[str, Any], today: date) -> ValidationIssue | None:
    components = record.get("components") or []
    if any(component.get("activeIngredients") for component in components):
        return None
    return ValidationIssue(
        field="components.activeIngredients",
        message="At least one active ingredient is required",
        value=None,
    )


def registry_name_listed_in_products(record: dict[str, Any], today: date) -> ValidationIssue | None:
    """
    The registry product name must appear among `products`.

    Several products are allowed (combination packs); only membership is checked.
    """
    products = record.get("products") or []
    names = [product.get("productName") for product in products]
    if record["artgEntry"].get("productName") in names:
        return None
    return ValidationIssue(
        field="products.productName",
        message="Product name in products array should match artgEntry.productName",
        value=names,
    )


def registry_start_not_in_future(record: dict[str, Any], today: date) -> ValidationIssue | None:
    raw = record["artgEntry"].get("registryStartDate")
    if not raw:
        return None
    if date.fromisoformat(raw) <= today:
        return None
    return ValidationIssue(
        field="artgEntry.registryStartDate",
        message="Registry start date cannot be in the future",
        value=raw,
    )


RULES: tuple[Rule, ...] = (
    at_least_one_active_ingredient,
    registry_name_listed_in_products,
    registry_start_not_in_future,
)


def validate_business_rules(record: dict[str, Any], today: date | None = None) -> ValidationReport:
    """Apply every rule against `today` (defaults to the current UTC date)."""
    reference = today or _today()
    issues = [issue for rule in RULES if (issue := rule(record, reference)) is not None]
    return ValidationReport.of(issues)
