from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from .class_codes import ClassCodeEntry, MRSL_CLASS_CODES
from .config import Settings, TARGET_FIELDS
from .errors import ConfigurationError, ExtractionError
from .intake import encode_document
from .llm import GeminiClient, build_system_instruction

logger = logging.getLogger(__name__)

# wire key -> attribute name
WIRE_TO_ATTR = {
    "mrsl_class_code": "class_code",
    "insured": "insured",
    "form_received_date": "form_received_date",
    "inception_date": "inception_date",
    "renewal_date": "renewal_date",
    "total_due": "total_due",
    "policy_fee": "policy_fee",
}
ATTR_TO_WIRE = {v: k for k, v in WIRE_TO_ATTR.items()}


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


@dataclass(frozen=True)
class ExtractionRecord:
    class_code: str | None = None
    insured: str | None = None
    form_received_date: str | None = None
    inception_date: str | None = None
    renewal_date: str | None = None
    total_due: str | None = None
    policy_fee: str | None = None

    def with_field(self, name: str, value: str | None) -> ExtractionRecord:
        """Copy-on-write edit. `name` may be the attribute or the wire key."""
        attr = WIRE_TO_ATTR.get(name, name)
        if attr not in ATTR_TO_WIRE:
            raise KeyError(f"Unknown field: {name}")
        return dataclasses.replace(self, **{attr: _blank_to_none(value)})

    def get(self, name: str) -> str | None:
        return getattr(self, WIRE_TO_ATTR.get(name, name))

    def to_dict(self) -> dict[str, str | None]:
        return {k: getattr(self, WIRE_TO_ATTR[k]) for k in TARGET_FIELDS}


def parse_record(payload: Any) -> ExtractionRecord:
    """
    Validate the model's JSON against the declared shape. The service enforces
    the schema too, but what arrives here is still untyped data.
    """
    if not isinstance(payload, dict):
        raise ExtractionError(f"Expected a JSON object, got {type(payload).__name__}")

    missing = [k for k in TARGET_FIELDS if k not in payload]
    if missing:
        raise ExtractionError(f"Response is missing fields: {', '.join(missing)}")

    extra = sorted(k for k in payload if k not in WIRE_TO_ATTR)
    if extra:
        logger.warning("Dropping unexpected keys from model response: %s", ", ".join(extra))

    values: dict[str, str | None] = {}
    for key in TARGET_FIELDS:
        v = payload[key]
        if v is not None and not isinstance(v, str):
            raise ExtractionError(f"Field {key} must be a string or null, got {type(v).__name__}")
        values[WIRE_TO_ATTR[key]] = _blank_to_none(v)

    return ExtractionRecord(**values)


def extract(
    document: bytes,
    settings: Settings,
    client: GeminiClient | None = None,
    reference_date: date | None = None,
    codes: tuple[ClassCodeEntry, ...] = MRSL_CLASS_CODES,
) -> ExtractionRecord:
    if not settings.gemini_api_key:
        raise ConfigurationError("Gemini API key is missing")

    client = client or GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        host=settings.gemini_host,
        timeout_s=settings.gemini_timeout_s,
    )
    ref = reference_date or settings.reference_date or date.today()

    logger.info("Requesting extraction from %s (%d bytes, reference date %s)", client.model, len(document), ref)
    payload = client.generate_json(
        system_instruction=build_system_instruction(codes, ref),
        document_b64=encode_document(document),
    )
    record = parse_record(payload)

    found = sum(1 for v in record.to_dict().values() if v is not None)
    logger.info("Extraction returned %d/%d fields", found, len(TARGET_FIELDS))
    return record
