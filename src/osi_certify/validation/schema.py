"""
Schema validator — structural contract of an OSI v0.2 record.

The record is closed: every object level sets `additionalProperties: false`,
so an unknown key is reported, never silently dropped. All violations are
collected in one pass via `iter_errors`; nothing short-circuits.

Field paths are dotted with list indices in brackets, e.g.
`components[0].activeIngredients[1].quantity`. A missing required property
is reported on the path of the property itself, an unexpected property on
the path of the unexpected key.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError as SchemaError

from osi_certify.domain.models import ValidationIssue, ValidationReport

_STRING = {"type": "string"}
_DATE = {"type": "string", "format": "date"}
_NULLABLE_STRING = {"type": ["string", "null"]}
_STRING_LIST = {"type": "array", "items": _STRING}


def _closed(properties: dict[str, Any], required: Iterable[str] = ()) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "type": "object",
        "properties": properties,
        "additionalProperties": False,
    }
    required = list(required)
    if required:
        schema["required"] = required
    return schema


def _list_of(item: dict[str, Any], min_items: int = 0) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "array", "items": item}
    if min_items:
        schema["minItems"] = min_items
    return schema


REQUIRED_SECTIONS = (
    "artgEntry",
    "products",
    "permittedIndications",
    "warnings",
    "dosageInformation",
    "allergenInformation",
    "components",
    "documentInformation",
)

ACTIVE_INGREDIENT_SCHEMA = _closed(
    {
        "name": _STRING,
        "commonName": _STRING,
        "quantity": _STRING,
        "equivalentTo": _NULLABLE_STRING,
    },
    required=("name", "commonName", "quantity"),
)

COMPONENT_SCHEMA = _closed(
    {
        "formulation": _STRING,
        "dosageForm": _STRING,
        "routeOfAdministration": _STRING,
        "visualIdentification": _NULLABLE_STRING,
        "activeIngredients": _list_of(ACTIVE_INGREDIENT_SCHEMA),
        "excipients": _list_of(_closed({"name": _STRING}, required=("name",))),
    },
    required=("formulation", "dosageForm", "activeIngredients", "excipients"),
)

OSI_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    **_closed(
        {
            "artgEntry": _closed(
                {
                    "registryNumber": _STRING,
                    "productName": _STRING,
                    "type": _STRING,
                    "sponsor": _STRING,
                    "postalAddress": _STRING,
                    "registryStartDate": _DATE,
                    "productCategory": _STRING,
                    "status": _STRING,
                    "approvalArea": _STRING,
                },
                required=("registryNumber", "productName", "sponsor", "status"),
            ),
            "conditions": _STRING_LIST,
            "products": _list_of(
                _closed(
                    {"productName": _STRING, "productType": _STRING, "effectiveDate": _DATE},
                    required=("productName", "productType"),
                ),
                min_items=1,
            ),
            "permittedIndications": _list_of(
                _closed({"text": _STRING, "evidenceNotes": _STRING}, required=("text",))
            ),
            "indicationRequirements": _STRING_LIST,
            "standardIndications": _STRING,
            "specificIndications": _STRING,
            "warnings": _STRING_LIST,
            "dosageInformation": _closed(
                {"adults": _STRING, "children": _STRING, "generalNotes": _STRING}
            ),
            "allergenInformation": _closed(
                {
                    "containsAllergens": _STRING_LIST,
                    "freeOfClaims": _STRING_LIST,
                    "allergenStatement": _STRING,
                    "crossContaminationRisk": {"type": ["boolean", "null"]},
                }
            ),
            "additionalProductInformation": _closed(
                {
                    "packSizeInformation": _closed(
                        {"packSize": _NULLABLE_STRING, "poisonSchedule": _NULLABLE_STRING}
                    ),
                }
            ),
            "components": _list_of(COMPONENT_SCHEMA, min_items=1),
            "documentInformation": _closed(
                {
                    "dataEntrySource": _STRING,
                    "dataEntryDate": _DATE,
                    "version": _STRING,
                    "notes": _STRING,
                },
                required=("dataEntrySource", "dataEntryDate", "version"),
            ),
        },
        required=REQUIRED_SECTIONS,
    ),
}

Draft7Validator.check_schema(OSI_SCHEMA)
_VALIDATOR = Draft7Validator(OSI_SCHEMA, format_checker=Draft7Validator.FORMAT_CHECKER)

_REQUIRED_MESSAGE = re.compile(r"^'(?P<name>.+)' is a required property$")


def format_path(path: Iterable[str | int]) -> str:
    """
    >>> format_path(["components", 0, "activeIngredients"])
    'components[0].activeIngredients'
    >>> format_path([])
    'root'
    """
    rendered = ""
    for part in path:
        if isinstance(part, int):
            rendered += f"[{part}]"
        else:
            rendered += f".{part}" if rendered else str(part)
    return rendered or "root"


def _issues_for(error: SchemaError) -> Iterator[ValidationIssue]:
    path = list(error.absolute_path)

    if error.validator == "required":
        match = _REQUIRED_MESSAGE.match(error.message)
        if match is not None:
            yield ValidationIssue(
                field=format_path([*path, match.group("name")]),
                message=error.message,
                value=None,
            )
            return

    if error.validator == "additionalProperties" and isinstance(error.instance, dict):
        known = error.schema.get("properties", {})
        for key in error.instance:
            if key not in known:
                yield ValidationIssue(
                    field=format_path([*path, key]),
                    message=f"Additional property {key!r} is not allowed",
                    value=error.instance[key],
                )
        return

    yield ValidationIssue(field=format_path(path), message=error.message, value=error.instance)


def validate_schema(record: Any) -> ValidationReport:
    """Check `record` against the closed OSI schema, reporting every violation."""
    issues = [issue for error in _VALIDATOR.iter_errors(record) for issue in _issues_for(error)]
    issues.sort(key=lambda issue: issue.field)
    return ValidationReport.of(issues)
