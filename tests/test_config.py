"""
Tests for settings loading and the reference class code list.
"""
from datetime import date
import json

import pytest

from mrsl_intake.class_codes import (
    MRSL_CLASS_CODES,
    format_for_prompt,
    is_known_code,
    load_class_codes,
)
from mrsl_intake.config import load_settings, parse_reference_date
from mrsl_intake.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch):
    monkeypatch.setattr("mrsl_intake.config.load_dotenv", lambda *a, **kw: False)
    for var in ("WEBHOOK_URL", "GEMINI_API_KEY", "GEMINI_MODEL", "REFERENCE_DATE", "CLASS_CODES_PATH",
                "GEMINI_TIMEOUT_S", "WEBHOOK_TIMEOUT_S"):
        monkeypatch.delenv(var, raising=False)


class TestLoadSettings:
    def test_webhook_url_required(self):
        with pytest.raises(ConfigurationError):
            load_settings()

    def test_missing_api_key_is_not_fatal_at_startup(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_URL", "https://hooks.example.test/x")
        s = load_settings()
        assert s.webhook_url == "https://hooks.example.test/x"
        assert s.gemini_api_key == ""
        assert s.gemini_model == "gemini-3.1-pro-preview"
        assert s.reference_date is None

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_URL", "https://hooks.example.test/x")
        monkeypatch.setenv("GEMINI_API_KEY", " abc ")
        monkeypatch.setenv("GEMINI_MODEL", "gemini-other")
        monkeypatch.setenv("REFERENCE_DATE", "20/02/2026")
        s = load_settings()
        assert s.gemini_api_key == "abc"
        assert s.gemini_model == "gemini-other"
        assert s.reference_date == date(2026, 2, 20)

    def test_timeouts_default(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_URL", "https://hooks.example.test/x")
        s = load_settings()
        assert (s.gemini_timeout_s, s.webhook_timeout_s) == (600, 60)

    @pytest.mark.parametrize("var", ["GEMINI_TIMEOUT_S", "WEBHOOK_TIMEOUT_S"])
    @pytest.mark.parametrize("raw", ["ten", "1.5", "0", "-5"])
    def test_bad_timeout(self, monkeypatch, var, raw):
        monkeypatch.setenv("WEBHOOK_URL", "https://hooks.example.test/x")
        monkeypatch.setenv(var, raw)
        with pytest.raises(ConfigurationError, match=var):
            load_settings()


class TestReferenceDate:
    def test_iso(self):
        assert parse_reference_date("2026-02-03") == date(2026, 2, 3)

    def test_day_first(self):
        assert parse_reference_date("03/02/2026") == date(2026, 2, 3)

    def test_blank_means_today(self):
        assert parse_reference_date("  ") is None

    def test_garbage(self):
        with pytest.raises(ConfigurationError):
            parse_reference_date("not a date")


class TestClassCodes:
    def test_builtin_list_has_unique_codes(self):
        codes = [c.code for c in MRSL_CLASS_CODES]
        assert len(codes) == len(set(codes))
        assert "HM" in codes and "WR" in codes

    def test_prompt_format(self):
        text = format_for_prompt(MRSL_CLASS_CODES)
        assert text.splitlines()[0] == "HM: Hull & Machinery"

    def test_known_code(self):
        assert is_known_code("HM")
        assert not is_known_code("HM/WR")
        assert not is_known_code(None)

    def test_load_from_file(self, tmp_path):
        p = tmp_path / "codes.json"
        p.write_text(json.dumps([{"code": "AA", "description": "Alpha"}, {"code": "BB", "description": "Beta"}]))
        codes = load_class_codes(str(p))
        assert [c.code for c in codes] == ["AA", "BB"]

    def test_default_without_path(self):
        assert load_class_codes(None) is MRSL_CLASS_CODES

    @pytest.mark.parametrize("content", [
        "[]",
        "{}",
        '[{"code": "AA"}]',
        '[{"code": "AA", "description": "x"}, {"code": "AA", "description": "y"}]',
        "not json",
    ])
    def test_bad_files(self, tmp_path, content):
        p = tmp_path / "codes.json"
        p.write_text(content)
        with pytest.raises(ConfigurationError):
            load_class_codes(str(p))
