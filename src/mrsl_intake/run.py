from __future__ import annotations

import argparse
import json
import logging
import sys

from .class_codes import load_class_codes
from .config import load_settings, parse_reference_date
from .errors import IntakeError
from .extraction import extract
from .intake import is_pdf, load_upload
from .utils import setup_logging, write_json
from .webhook import submit

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NOT_PDF = 2


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mrsl-intake", description="Extract MRSL fields from an insurance PDF.")
    sub = p.add_subparsers(dest="command", required=True)

    ex = sub.add_parser("extract", help="extract one PDF and print the record as JSON")
    ex.add_argument("input", help="path to the PDF")
    ex.add_argument("--reference-date", default="", help="current date for relative phrases (default: today)")
    ex.add_argument("--submit", action="store_true", help="send the record to WEBHOOK_URL afterwards")
    ex.add_argument("--output", default="", help="also write the record to this JSON file")

    sub.add_parser("ui", help="launch the review UI")
    return p


def cmd_extract(args: argparse.Namespace) -> int:
    settings = load_settings()
    setup_logging(settings.log_level)

    upload = load_upload(args.input)
    if not is_pdf(upload.media_type):
        logger.error("%s is not a PDF (%s)", upload.name, upload.media_type)
        return EXIT_NOT_PDF

    codes = load_class_codes(settings.class_codes_path)
    ref = parse_reference_date(args.reference_date)
    record = extract(upload.data, settings, reference_date=ref, codes=codes)

    out = record.to_dict()
    print(json.dumps(out, indent=2, ensure_ascii=False))
    if args.output:
        write_json(args.output, out)

    if args.submit:
        submit(record, upload.name, settings)
        print(f"[SUBMIT] {upload.name} -> webhook ok", file=sys.stderr)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    try:
        if args.command == "ui":
            from .ui_gradio import main as ui_main
            ui_main()
            return EXIT_OK
        return cmd_extract(args)
    except (IntakeError, OSError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
