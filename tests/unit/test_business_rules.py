"""
Unit tests for the business rule validator — cross-field invariants.

Records here are schema-valid; each test breaks exactly one rule unless it
is checking accumulation.
"""

from __future__ import annotations

from datetime import date

from osi_certify.validation.rules import RULES, validate_business_rules
from tests.conftest import TODAY, make_record


class TestActiveIngredients:
    def test_record_without_active_ingredients_fails(self) -> None:
        """
        GIVEN a record whose only component has no active ingredients
        WHEN business rules are applied
        THEN components.activeIngredients is reported.
        """
        record = make_record()
        record["components"][0]["activeIngredients"] = []

        report = validate_business_rules(record, TODAY)

        assert report.fields == ["components.activeIngredients"]

    def test_record_without_components_fails(self) -> None:
        record = make_record()
        record["components"] = []

        assert validate_business_rules(record, TODAY).fields == ["components.activeIngredients"]

    def test_one_ingredient_in_any_component_is_enough(self) -> None:
        record = make_record()
        record["components"].insert(0, {
            "formulation": "Capsule shell",
            "dosageForm": "Capsule",
            "activeIngredients": [],
            "excipients": [{"name": "Gelatin"}],
        })

        assert validate_business_rules(record, TODAY).valid


class TestProductNameMatch:
    def test_mismatched_name_reports_every_product_name(self) -> None:
        """
        GIVEN artgEntry.productName "A" and products named "B" and "C"
        WHEN business rules are applied
        THEN products.productName is reported with value ["B", "C"].
        """
        record = make_record()
        record["artgEntry"]["productName"] = "A"
        record["products"] = [
            {"productName": "B", "productType": "Single"},
            {"productName": "C", "productType": "Single"},
        ]

        report = validate_business_rules(record, TODAY)

        assert report.fields == ["products.productName"]
        assert report.errors[0].value == ["B", "C"]

    def test_name_listed_among_several_products_passes(self) -> None:
        record = make_record()
        record["products"].append({"productName": "Vitamin C 1000mg", "productType": "Single"})

        assert validate_business_rules(record, TODAY).valid

    def test_empty_products_cannot_list_the_name(self) -> None:
        record = make_record()
        record["products"] = []

        report = validate_business_rules(record, TODAY)

        assert report.fields == ["products.productName"]
        assert report.errors[0].value == []


class TestRegistryStartDate:
    def test_future_start_date_fails(self) -> None:
        record = make_record()
        record["artgEntry"]["registryStartDate"] = "2026-03-16"

        report = validate_business_rules(record, TODAY)

        assert report.fields == ["artgEntry.registryStartDate"]
        assert report.errors[0].value == "2026-03-16"

    def test_start_date_today_passes(self) -> None:
        record = make_record()
        record["artgEntry"]["registryStartDate"] = TODAY.isoformat()

        assert validate_business_rules(record, TODAY).valid

    def test_missing_start_date_passes(self) -> None:
        record = make_record()
        del record["artgEntry"]["registryStartDate"]

        assert validate_business_rules(record, TODAY).valid

    def test_defaults_to_current_date(self) -> None:
        record = make_record()
        record["artgEntry"]["registryStartDate"] = "2999-01-01"

        assert validate_business_rules(record).fields == ["artgEntry.registryStartDate"]


class TestAccumulation:
    def test_all_rules_run_and_accumulate(self) -> None:
        record = make_record()
        record["components"][0]["activeIngredients"] = []
        record["artgEntry"]["productName"] = "Something else"
        record["artgEntry"]["registryStartDate"] = "2030-01-01"

        report = validate_business_rules(record, date(2026, 1, 1))

        assert len(report.errors) == len(RULES)
        assert set(report.fields) == {
            "components.activeIngredients",
            "products.productName",
            "artgEntry.registryStartDate",
        }
