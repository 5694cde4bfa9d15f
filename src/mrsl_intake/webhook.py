from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import requests

from .config import Settings
from .errors import SubmissionError
from .extraction import ExtractionRecord
from .utils import utc_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionPayload:
    record: ExtractionRecord
    source_filename: str
    extracted_at: str

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = self.record.to_dict()
        body["source_filename"] = self.source_filename
        body["extracted_at"] = self.extracted_at
        return body


def build_payload(record: ExtractionRecord, filename: str, now: datetime | None = None) -> SubmissionPayload:
    if not filename:
        raise SubmissionError("A source filename is required for submission")
    return SubmissionPayload(record=record, source_filename=filename, extracted_at=utc_timestamp(now))


def submit(
    record: ExtractionRecord,
    filename: str,
    settings: Settings,
    session: requests.Session | None = None,
    now: datetime | None = None,
) -> None:
    """POST the reviewed record to the webhook. One call, no retry, nothing kept locally."""
    payload = build_payload(record, filename, now)
    http = session or requests

    try:
        r = http.post(
            settings.webhook_url,
            json=payload.to_json(),
            headers={"Content-Type": "application/json"},
            timeout=settings.webhook_timeout_s,
        )
    except requests.RequestException as e:
        logger.error("Webhook unreachable: %s", e)
        raise SubmissionError("Webhook submission failed") from e

    # any 2xx counts as delivered
    if not 200 <= r.status_code < 300:
        logger.error("Webhook answered HTTP %s for %s", r.status_code, filename)
        raise SubmissionError(f"Webhook submission failed (HTTP {r.status_code})")

    logger.info("Submitted %s to webhook (HTTP %s)", filename, r.status_code)
