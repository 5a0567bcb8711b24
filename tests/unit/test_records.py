"""
Unit tests for record ingestion — warning and indication decoding.
"""

from __future__ import annotations

from osi_certify.domain.models import ProductWarning
from osi_certify.domain.records import MISSING_WARNING_TEXT, decode_warning, ingest_record
from osi_certify.validation.schema import validate_schema
from tests.conftest import make_record


class TestDecodeWarning:
    def test_plain_string(self) -> None:
        assert decode_warning("Do not exceed the stated dose") == ProductWarning(
            text="Do not exceed the stated dose", type="General", source="Unknown"
        )

    def test_structured_object(self) -> None:
        raw = {"text": "Contains sulfites", "type": "Allergen", "source": "TGO 92"}

        assert decode_warning(raw) == ProductWarning("Contains sulfites", "Allergen", "TGO 92")

    def test_legacy_warning_key(self) -> None:
        assert decode_warning({"warning": "If symptoms persist see your doctor"}).text == (
            "If symptoms persist see your doctor"
        )

    def test_object_without_text_gets_placeholder(self) -> None:
        assert decode_warning({"type": "Regulatory"}) == ProductWarning(
            MISSING_WARNING_TEXT, "Regulatory", "Unknown"
        )


class TestIngestRecord:
    def test_mixed_warnings_become_texts_and_canonical_list(self) -> None:
        """
        GIVEN a record whose warnings mix strings and objects
        WHEN ingested
        THEN the record carries plain texts and the canonical list keeps type and source.
        """
        record = make_record()
        record["warnings"] = [
            "Keep out of reach of children",
            {"text": "Contains sulfites", "type": "Allergen", "source": "Label"},
        ]

        ingested = ingest_record(record)

        assert ingested.record["warnings"] == ["Keep out of reach of children", "Contains sulfites"]
        assert ingested.warnings[1] == ProductWarning("Contains sulfites", "Allergen", "Label")
        assert validate_schema(ingested.record).valid

    def test_string_indications_are_decoded(self) -> None:
        record = make_record()
        record["permittedIndications"] = ["Relieve tiredness"]

        ingested = ingest_record(record)

        assert ingested.record["permittedIndications"] == [{"text": "Relieve tiredness"}]
        assert validate_schema(ingested.record).valid

    def test_payload_is_not_mutated(self) -> None:
        record = make_record()
        record["warnings"] = [{"text": "Contains sulfites"}]

        ingest_record(record)

        assert record["warnings"] == [{"text": "Contains sulfites"}]

    def test_non_object_passes_through(self) -> None:
        ingested = ingest_record("oops")

        assert ingested.record == "oops"
        assert ingested.warnings == ()

    def test_non_list_warnings_are_left_for_the_validator(self) -> None:
        record = make_record()
        record["warnings"] = "single string"

        ingested = ingest_record(record)

        assert ingested.record["warnings"] == "single string"
        assert validate_schema(ingested.record).fields == ["warnings"]
