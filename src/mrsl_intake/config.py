from __future__ import annotations
from dataclasses import dataclass
from datetime import date
import os

from dateutil import parser as dateparser
from dotenv import load_dotenv

from .errors import ConfigurationError

# Wire keys, in the order the model and the webhook see them
TARGET_FIELDS = [
    "mrsl_class_code",
    "insured",
    "form_received_date",
    "inception_date",
    "renewal_date",
    "total_due",
    "policy_fee",
]

PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class Settings:
    webhook_url: str
    gemini_api_key: str = ""
    gemini_model: str = "gemini-3.1-pro-preview"
    gemini_host: str = "https://generativelanguage.googleapis.com"

    # HTTP
    gemini_timeout_s: int = 600
    webhook_timeout_s: int = 60

    # Relative dates in documents ("tomorrow") resolve against this; None = today
    reference_date: date | None = None

    class_codes_path: str | None = None
    log_level: str = "INFO"


def parse_reference_date(raw: str) -> date | None:
    raw = raw.strip()
    if not raw:
        return None
    try:
        # ISO dates parse unambiguously; anything else is read day-first
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return dateparser.parse(raw, dayfirst=True).date()
    except (ValueError, OverflowError) as e:
        raise ConfigurationError(f"REFERENCE_DATE is not a date: {raw!r}") from e


def _timeout_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a whole number of seconds, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> Settings:
    load_dotenv()

    webhook_url = os.getenv("WEBHOOK_URL", "").strip()
    if not webhook_url:
        raise ConfigurationError("WEBHOOK_URL env var is required (set to the webhook endpoint).")

    return Settings(
        webhook_url=webhook_url,
        # missing key is tolerated here; extraction refuses to run without it
        gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-3.1-pro-preview").strip(),
        gemini_host=os.getenv("GEMINI_HOST", "https://generativelanguage.googleapis.com").strip(),
        gemini_timeout_s=_timeout_env("GEMINI_TIMEOUT_S", 600),
        webhook_timeout_s=_timeout_env("WEBHOOK_TIMEOUT_S", 60),
        reference_date=parse_reference_date(os.getenv("REFERENCE_DATE", "")),
        class_codes_path=os.getenv("CLASS_CODES_PATH", "").strip() or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
