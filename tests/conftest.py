"""
Shared test fixtures and helpers for the osi-certify test suite.

`make_record()` builds a complete, schema-valid OSI record (a vitamin C
tablet listed in 2020) that tests then break in exactly one place.
"""

from __future__ import annotations

import copy
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import pytest

from osi_certify.domain.models import Caller, Role

TODAY = date(2026, 3, 15)
NOW = datetime(2026, 3, 15, 9, 30, 0, tzinfo=UTC)

ADMIN = Caller(user_id=UUID("00000000-0000-0000-0000-00000000a0a0"), role=Role.ADMIN)
MAKER = Caller(user_id=UUID("00000000-0000-0000-0000-0000000000b1"), role=Role.MANUFACTURER)
OTHER_MAKER = Caller(user_id=UUID("00000000-0000-0000-0000-0000000000b2"), role=Role.MANUFACTURER)

_VALID_RECORD: dict[str, Any] = {
    "artgEntry": {
        "registryNumber": "AUST L 123456",
        "productName": "Vitamin C 500mg",
        "type": "Listed Medicine",
        "sponsor": "Acme Health Pty Ltd",
        "postalAddress": "1 Example St, Sydney NSW 2000",
        "registryStartDate": "2020-01-15",
        "productCategory": "Medicine",
        "status": "Active",
        "approvalArea": "Listed",
    },
    "products": [
        {"productName": "Vitamin C 500mg", "productType": "Single Medicine Product"},
    ],
    "permittedIndications": [
        {"text": "Maintain/support immune system health", "evidenceNotes": "Traditional use"},
    ],
    "warnings": ["Keep out of reach of children"],
    "dosageInformation": {"adults": "Take 1 tablet daily with food"},
    "allergenInformation": {
        "containsAllergens": [],
        "freeOfClaims": ["gluten"],
        "allergenStatement": "No known allergens",
        "crossContaminationRisk": None,
    },
    "components": [
        {
            "formulation": "Tablet",
            "dosageForm": "Tablet, film coated",
            "routeOfAdministration": "Oral",
            "visualIdentification": None,
            "activeIngredients": [
                {"name": "Ascorbic acid", "commonName": "Vitamin C", "quantity": "500 mg"},
            ],
            "excipients": [{"name": "Microcrystalline cellulose"}],
        },
    ],
    "documentInformation": {
        "dataEntrySource": "ARTG public summary",
        "dataEntryDate": "2026-01-10",
        "version": "0.2",
    },
}


def make_record() -> dict[str, Any]:
    """Return a fresh deep copy of a complete, valid OSI record."""
    return copy.deepcopy(_VALID_RECORD)


def fixed_clock(moment: datetime = NOW):
    """A clock that always returns `moment`."""
    return lambda: moment


@pytest.fixture()
def valid_record() -> dict[str, Any]:
    return make_record()
