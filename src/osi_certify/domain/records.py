"""
Record ingestion — decode an incoming OSI payload into its canonical form.

Clients send warnings either as bare strings or as `{text, type, source}`
objects (older exports use `warning` instead of `text`). They are decoded
once, here, into ProductWarning values; the OSI document keeps only the
warning texts so it stays within the closed schema. Indications sent as bare
strings are decoded the same way into `{text, evidenceNotes}`.

Anything that is not a list is left untouched for the validators to report.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from osi_certify.domain.models import ProductWarning

MISSING_WARNING_TEXT = "Warning information not available"


@dataclass(frozen=True, slots=True)
class IngestedRecord:
    record: Any
    warnings: tuple[ProductWarning, ...]


def decode_warning(raw: Any) -> ProductWarning:
    if isinstance(raw, str):
        return ProductWarning(text=raw)
    if isinstance(raw, dict):
        return ProductWarning(
            text=raw.get("text") or raw.get("warning") or MISSING_WARNING_TEXT,
            type=raw.get("type") or "General",
            source=raw.get("source") or "Unknown",
        )
    return ProductWarning(text=MISSING_WARNING_TEXT)


def _decode_indication(raw: Any) -> Any:
    if isinstance(raw, str):
        return {"text": raw}
    return raw


def ingest_record(payload: Any) -> IngestedRecord:
    """
    Decode a submitted payload.

    Returns a deep copy; the caller's payload is never mutated. A payload
    that is not a mapping is passed through so the validators can reject it.
    """
    if not isinstance(payload, dict):
        return IngestedRecord(record=payload, warnings=())

    record = copy.deepcopy(payload)
    warnings: tuple[ProductWarning, ...] = ()

    raw_warnings = record.get("warnings")
    if isinstance(raw_warnings, list):
        warnings = tuple(decode_warning(w) for w in raw_warnings)
        record["warnings"] = [w.text for w in warnings]

    indications = record.get("permittedIndications")
    if isinstance(indications, list):
        record["permittedIndications"] = [_decode_indication(i) for i in indications]

    return IngestedRecord(record=record, warnings=warnings)

