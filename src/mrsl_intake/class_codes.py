from __future__ import annotations
from dataclasses import dataclass
import json
import logging

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassCodeEntry:
    code: str
    description: str


MRSL_CLASS_CODES: tuple[ClassCodeEntry, ...] = (
    ClassCodeEntry("HM", "Hull & Machinery"),
    ClassCodeEntry("WR", "War Risks"),
    ClassCodeEntry("PI", "Protection & Indemnity"),
    ClassCodeEntry("CG", "Cargo"),
    ClassCodeEntry("ST", "Stock Throughput"),
    ClassCodeEntry("FD", "Freight, Demurrage & Defence"),
    ClassCodeEntry("LH", "Loss of Hire"),
    ClassCodeEntry("MI", "Mortgagees' Interest"),
    ClassCodeEntry("BR", "Builders' Risks"),
    ClassCodeEntry("CL", "Charterers' Liability"),
    ClassCodeEntry("SP", "Specie"),
    ClassCodeEntry("YT", "Yachts & Pleasure Craft"),
    ClassCodeEntry("PT", "Ports & Terminals"),
    ClassCodeEntry("EN", "Offshore Energy"),
    ClassCodeEntry("KR", "Kidnap & Ransom"),
)


def load_class_codes(path: str | None = None) -> tuple[ClassCodeEntry, ...]:
    """
    Built-in list, or a JSON file of [{"code": ..., "description": ...}, ...]
    replacing it wholesale. Called once at startup.
    """
    if not path:
        return MRSL_CLASS_CODES

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read class codes from {path}: {e}") from e

    if not isinstance(raw, list) or not raw:
        raise ConfigurationError(f"{path} must contain a non-empty JSON list")

    entries: list[ClassCodeEntry] = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict):
            raise ConfigurationError(f"{path}: every entry must be an object, got {item!r}")
        code = str(item.get("code") or "").strip()
        desc = str(item.get("description") or "").strip()
        if not code or not desc:
            raise ConfigurationError(f"{path}: entry needs both code and description: {item!r}")
        if code in seen:
            raise ConfigurationError(f"{path}: duplicate class code {code}")
        seen.add(code)
        entries.append(ClassCodeEntry(code, desc))

    logger.info("Loaded %d class codes from %s", len(entries), path)
    return tuple(entries)


def format_for_prompt(codes: tuple[ClassCodeEntry, ...]) -> str:
    return "\n".join(f"{c.code}: {c.description}" for c in codes)


def is_known_code(value: str | None, codes: tuple[ClassCodeEntry, ...] = MRSL_CLASS_CODES) -> bool:
    return value is not None and any(c.code == value for c in codes)
