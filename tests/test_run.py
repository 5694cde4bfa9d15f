"""
Tests for the command line entry point.
"""
import json

import pytest

from mrsl_intake import run
from mrsl_intake.errors import ExtractionError
from mrsl_intake.extraction import parse_record


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    monkeypatch.setattr("mrsl_intake.config.load_dotenv", lambda *a, **kw: False)
    monkeypatch.setenv("WEBHOOK_URL", "https://hooks.example.test/mrsl")
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("CLASS_CODES_PATH", raising=False)
    monkeypatch.delenv("REFERENCE_DATE", raising=False)


def test_extract_prints_record(pdf_file, sample_payload, monkeypatch, capsys, tmp_path):
    seen = {}

    def fake_extract(data, settings, reference_date=None, codes=()):
        seen["reference_date"] = reference_date
        return parse_record(sample_payload)

    monkeypatch.setattr(run, "extract", fake_extract)
    out_path = tmp_path / "out" / "record.json"
    code = run.main(["extract", str(pdf_file), "--reference-date", "2026-02-20", "--output", str(out_path)])

    assert code == run.EXIT_OK
    assert json.loads(capsys.readouterr().out) == sample_payload
    assert json.loads(out_path.read_text()) == sample_payload
    assert seen["reference_date"].isoformat() == "2026-02-20"


def test_extract_and_submit(pdf_file, sample_payload, monkeypatch):
    submitted = []
    monkeypatch.setattr(run, "extract", lambda *a, **kw: parse_record(sample_payload))
    monkeypatch.setattr(run, "submit", lambda record, name, settings: submitted.append((record, name)))

    assert run.main(["extract", str(pdf_file), "--submit"]) == run.EXIT_OK
    assert [name for _, name in submitted] == ["policy.pdf"]


def test_non_pdf_exit_code(tmp_path, monkeypatch):
    p = tmp_path / "notes.txt"
    p.write_text("hello")
    monkeypatch.setattr(run, "extract", lambda *a, **kw: pytest.fail("should not extract"))
    assert run.main(["extract", str(p)]) == run.EXIT_NOT_PDF


def test_extraction_error_exit_code(pdf_file, monkeypatch, capsys):
    def boom(*a, **kw):
        raise ExtractionError("Invalid response format from AI")

    monkeypatch.setattr(run, "extract", boom)
    assert run.main(["extract", str(pdf_file)]) == run.EXIT_FAILED
    assert "Invalid response format from AI" in capsys.readouterr().err


def test_missing_file(tmp_path):
    assert run.main(["extract", str(tmp_path / "missing.pdf")]) == run.EXIT_FAILED


def test_ui_without_webhook_url(monkeypatch, capsys):
    monkeypatch.delenv("WEBHOOK_URL", raising=False)
    assert run.main(["ui"]) == run.EXIT_FAILED
    assert "[ERROR] WEBHOOK_URL" in capsys.readouterr().err
