"""
Shared fixtures: settings, a tiny PDF and fake HTTP sessions standing in for
Gemini and the webhook.
"""
from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from mrsl_intake.config import Settings

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << /Root 1 0 R >>\n%%EOF\n"

SAMPLE_PAYLOAD = {
    "mrsl_class_code": "HM",
    "insured": "Acme Ltd",
    "form_received_date": "01/03/2026",
    "inception_date": "01/04/2026",
    "renewal_date": "01/04/2027",
    "total_due": "USD 10000.00",
    "policy_fee": "0.00",
}


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    def json(self) -> Any:
        if self._body is None:
            raise requests.JSONDecodeError("Expecting value", self.text, 0)
        return self._body

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Records every post() and answers with queued responses (or raises queued exceptions)."""
    def __init__(self, *responses: FakeResponse | Exception):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected POST to {url}")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def gemini_envelope(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": "STOP"}]}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        webhook_url="https://hooks.example.test/mrsl",
        gemini_api_key="test-key",
        gemini_model="gemini-test",
        gemini_host="https://gemini.example.test",
    )


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    return dict(SAMPLE_PAYLOAD)


@pytest.fixture
def pdf_file(tmp_path):
    p = tmp_path / "policy.pdf"
    p.write_bytes(PDF_BYTES)
    return p
