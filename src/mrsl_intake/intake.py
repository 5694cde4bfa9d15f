from __future__ import annotations
from dataclasses import dataclass, field
import base64
import logging
import mimetypes
import os

from .config import PDF_MEDIA_TYPE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedFile:
    name: str
    media_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def size_mb(self) -> float:
        return self.size / 1024 / 1024


def is_pdf(media_type: str | None) -> bool:
    return (media_type or "").split(";")[0].strip().lower() == PDF_MEDIA_TYPE


def guess_media_type(filename: str) -> str:
    media_type, _ = mimetypes.guess_type(filename)
    return media_type or "application/octet-stream"


def load_upload(path: str, name: str | None = None) -> SelectedFile:
    """
    Read a picked or dropped file from disk. The UI hands us a temp path;
    `name` carries the user's original file name when it differs.
    """
    name = name or os.path.basename(path)
    with open(path, "rb") as f:
        data = f.read()
    sf = SelectedFile(name=name, media_type=guess_media_type(name), data=data)
    logger.debug("Loaded upload %s (%s, %d bytes)", sf.name, sf.media_type, sf.size)
    return sf


def encode_document(data: bytes) -> str:
    # the inference request is a JSON body, so the PDF travels as base64 text
    return base64.b64encode(data).decode("ascii")
