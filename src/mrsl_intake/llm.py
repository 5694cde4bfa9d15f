from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any

import requests

from .class_codes import ClassCodeEntry, format_for_prompt
from .config import PDF_MEDIA_TYPE, TARGET_FIELDS
from .errors import ExtractionError

logger = logging.getLogger(__name__)

TASK_PROMPT = (
    "Extract the data from this insurance document according to the system "
    "instructions and return it as a JSON object."
)

# Gemini's OpenAPI-subset schema: every key present, every value a nullable string
RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {f: {"type": "STRING", "nullable": True} for f in TARGET_FIELDS},
    "required": list(TARGET_FIELDS),
}


class GeminiClient:
    """
    Single-shot Gemini client:
    - schema-constrained JSON output (responseMimeType + responseSchema)
    - no retries; any failure is surfaced to the reviewer as ExtractionError
    """
    def __init__(
        self,
        api_key: str,
        model: str,
        host: str = "https://generativelanguage.googleapis.com",
        timeout_s: int = 600,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.host = host.rstrip("/")
        self.timeout_s = timeout_s
        # None means module-level requests.post, which opens and closes its own session
        self.session = session

    def generate_json(
        self,
        system_instruction: str,
        document_b64: str,
        prompt: str = TASK_PROMPT,
        schema: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.host}/v1beta/models/{self.model}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"inlineData": {"mimeType": PDF_MEDIA_TYPE, "data": document_b64}},
                        {"text": prompt},
                    ],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema or RESPONSE_SCHEMA,
                "temperature": 0,
            },
        }
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

        try:
            r = (self.session or requests).post(url, json=payload, headers=headers, timeout=self.timeout_s)
            r.raise_for_status()
            data = r.json()
        except requests.HTTPError as e:
            raise ExtractionError(f"Gemini request failed: {_error_detail(e.response)}") from e
        except ValueError as e:
            # requests' JSONDecodeError is both a ValueError and a RequestException
            raise ExtractionError("Gemini returned a non-JSON envelope") from e
        except requests.RequestException as e:
            raise ExtractionError(f"Could not reach Gemini: {e}") from e

        text = response_text(data)
        if not text:
            raise ExtractionError("No response from Gemini")

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            # no repair: a malformed answer is shown to the reviewer as a failure
            logger.error("Failed to parse Gemini response: %.500s", text)
            raise ExtractionError("Invalid response format from AI") from e


def response_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate; raise if the prompt was blocked."""
    if not isinstance(data, dict):
        raise ExtractionError("Unexpected Gemini envelope")

    candidates = data.get("candidates") or []
    if not isinstance(candidates, list):
        raise ExtractionError("Unexpected Gemini envelope")
    if not candidates:
        feedback = data.get("promptFeedback") or {}
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if reason:
            raise ExtractionError(f"Gemini blocked the request: {reason}")
        return ""

    first = candidates[0] or {}
    content = (first.get("content") or {}) if isinstance(first, dict) else None
    if not isinstance(content, dict):
        raise ExtractionError("Unexpected Gemini envelope")
    parts = content.get("parts") or []
    if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
        raise ExtractionError("Unexpected Gemini envelope")

    texts = [p["text"] for p in parts if "text" in p]
    if not all(isinstance(t, str) for t in texts):
        raise ExtractionError("Unexpected Gemini envelope")

    text = "".join(texts)
    if not text.strip() and first.get("finishReason") not in (None, "STOP"):
        raise ExtractionError(f"Gemini stopped without output: {first.get('finishReason')}")
    return text.strip()


def _error_detail(resp: requests.Response | None) -> str:
    if resp is None:
        return "no response"
    try:
        body = resp.json()
    except ValueError:
        body = None
    msg = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        msg = body["error"].get("message")
    return f"HTTP {resp.status_code}" + (f": {msg}" if msg else "")


def build_system_instruction(codes: tuple[ClassCodeEntry, ...], reference_date: date) -> str:
    return f"""
You are an expert insurance document analyst. Your task is to extract specific data fields from the provided PDF insurance document.

Valid MRSL Class Codes:
{format_for_prompt(codes)}

Extraction Rules:
1. MRSL Class Code (mrsl_class_code):
   - Analyze the nature of insurance coverage.
   - Match to the most appropriate code from the list.
   - If ambiguous between two codes, return both separated by a slash (e.g., "HM/WR").
   - If genuinely unknown, return null.

2. Insured (insured):
   - Identify the entity seeking coverage (not the broker or insurer).
   - Capture complete legal name including suffixes (Ltd, GmbH, etc.).
   - If multiple entities, extract the primary/parent entity.
   - If uncertain, append " [verify]" to the name.

3. Form Received Date (form_received_date):
   - Format: DD/MM/YYYY.
   - Document creation, submission, or prepared date. Not policy dates.

4. Inception Date (inception_date):
   - Format: DD/MM/YYYY.
   - Policy start date. Resolve relative terms like "today" or "tomorrow" based on the document date or current date ({reference_date.isoformat()}).

5. Renewal Date (renewal_date):
   - Format: DD/MM/YYYY.
   - Policy expiry or renewal date. Often 12 months after inception.

6. Total Due (total_due):
   - Decimal string (e.g., "125000.00").
   - Total payable amount. Include currency code if stated (e.g., "USD 125000.00").

7. Policy Fee (policy_fee):
   - Decimal string (e.g., "500.00").
   - Separate fee/admin charge. Return "0.00" if not found.

General:
- Scan all pages.
- Return null for fields you are not confident about.
- Dates must be DD/MM/YYYY.
- Currency fields should be decimal strings.
""".strip()
