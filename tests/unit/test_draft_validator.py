"""
Unit tests for the draft validator — the lenient, work-in-progress mode.
"""

from __future__ import annotations

import pytest

from osi_certify.validation.draft import DRAFT_SECTIONS, validate_draft


class TestDraftSkeleton:
    def test_minimal_draft_is_valid(self) -> None:
        """
        GIVEN a record with artgEntry.productName, empty products and empty components
        WHEN validated as a draft
        THEN it is valid.
        """
        record = {"artgEntry": {"productName": "X"}, "products": [], "components": []}

        assert validate_draft(record).valid

    def test_unknown_properties_are_tolerated(self) -> None:
        record = {
            "artgEntry": {"productName": "X", "notes": "wip"},
            "products": [],
            "components": [{}],
            "scratch": True,
        }

        assert validate_draft(record).valid

    def test_non_object_is_a_single_root_error(self) -> None:
        report = validate_draft("just a string")

        assert report.fields == ["root"]
        assert report.errors[0].message == "Data must be an object"

    def test_array_root_is_a_single_root_error(self) -> None:
        """
        GIVEN a JSON array instead of an object
        WHEN validated as a draft
        THEN only the root error is reported, not one per missing section.
        """
        report = validate_draft([{"artgEntry": {"productName": "X"}}])

        assert report.fields == ["root"]

    def test_empty_object_names_every_section(self) -> None:
        report = validate_draft({})

        assert report.fields == list(DRAFT_SECTIONS)
        assert report.errors[0].message == "artgEntry section is required"

    @pytest.mark.parametrize("falsy", [None, False, 0, ""])
    def test_scalar_falsy_section_counts_as_missing(self, falsy: object) -> None:
        record = {"artgEntry": {"productName": "X"}, "products": falsy, "components": []}

        assert validate_draft(record).fields == ["products"]


class TestDraftProductName:
    def test_missing_product_name_is_reported(self) -> None:
        """
        GIVEN a draft whose artgEntry lacks productName
        WHEN validated
        THEN artgEntry.productName is reported.
        """
        record = {"artgEntry": {"sponsor": "Acme"}, "products": [], "components": []}

        report = validate_draft(record)

        assert report.fields == ["artgEntry.productName"]
        assert report.errors[0].message == "Product name is required"

    def test_empty_product_name_is_reported(self) -> None:
        record = {"artgEntry": {"productName": ""}, "products": [], "components": []}

        assert validate_draft(record).fields == ["artgEntry.productName"]

    def test_missing_artg_entry_does_not_also_report_product_name(self) -> None:
        record = {"products": [], "components": []}

        assert validate_draft(record).fields == ["artgEntry"]
