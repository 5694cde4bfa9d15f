from __future__ import annotations
from dataclasses import dataclass

import pandas as pd

from .class_codes import ClassCodeEntry, MRSL_CLASS_CODES, is_known_code
from .extraction import ExtractionRecord


@dataclass(frozen=True)
class FieldSpec:
    key: str  # wire key
    label: str
    placeholder: str = ""


FIELD_SPECS: list[FieldSpec] = [
    FieldSpec("mrsl_class_code", "MRSL Class Code", "Select a class code..."),
    FieldSpec("insured", "Insured", "Enter insured name"),
    FieldSpec("form_received_date", "Form Received Date", "DD/MM/YYYY"),
    FieldSpec("inception_date", "Inception Date", "DD/MM/YYYY"),
    FieldSpec("renewal_date", "Renewal Date", "DD/MM/YYYY"),
    FieldSpec("total_due", "Total Due", "0.00"),
    FieldSpec("policy_fee", "Policy Fee", "0.00"),
]


def class_code_choices(
    current: str | None,
    codes: tuple[ClassCodeEntry, ...] = MRSL_CLASS_CODES,
) -> list[tuple[str, str]]:
    """
    (label, value) pairs for the class code selector. A current value outside
    the list (a "HM/WR" pair, free text) is offered as its own choice so the
    selector keeps showing it.
    """
    choices = [(f"{c.code} - {c.description}", c.code) for c in codes]
    if current and not is_known_code(current, codes):
        choices.insert(0, (f"{current} (not in list)", current))
    return choices


def apply_edit(record: ExtractionRecord, field: str, value: str | None) -> ExtractionRecord:
    # the old record stays valid for anything still holding it
    return record.with_field(field, value)


def review_table(extracted: ExtractionRecord | None, current: ExtractionRecord | None) -> pd.DataFrame:
    rows = []
    for spec in FIELD_SPECS:
        before = extracted.get(spec.key) if extracted else None
        after = current.get(spec.key) if current else None
        rows.append(
            {
                "field": spec.label,
                "extracted": before,
                "current": after,
                "edited": before != after,
            }
        )
    return pd.DataFrame(rows, columns=["field", "extracted", "current", "edited"])
