# weddingplanner/uploads.py
from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile

from .config import settings
from .errors import ValidationError

log = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"image/png", "image/jpg", "image/jpeg"})
CHUNK_SIZE = 64 * 1024
PUBLIC_PREFIX = "uploads"

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_name(raw: str | None) -> str:
    name = (raw or "").replace("\\", "/").split("/")[-1].strip()
    name = _UNSAFE_RE.sub("_", name).strip("._")
    return name[:100] or "proof"


def _upload_dir() -> Path:
    d = Path(settings.upload_dir)
    d.mkdir(parents=True, exist_ok=True)
    return d


def store_payment_proof(upload: UploadFile | None) -> str:
    """Save a payment-proof image and return its public reference."""
    if upload is None or not upload.filename:
        raise ValidationError("Payment proof is required.")

    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        log.warning("[UPLOAD] rejected %r (%s)", upload.filename, content_type)
        raise ValidationError("Only .png, .jpg and .jpeg files are allowed.")

    filename = f"{int(time.time() * 1000)}-{uuid4().hex}-{_safe_name(upload.filename)}"
    target = _upload_dir() / filename

    written = 0
    with target.open("wb") as out:
        while chunk := upload.file.read(CHUNK_SIZE):
            written += len(chunk)
            if written > settings.max_upload_bytes:
                break
            out.write(chunk)

    if written > settings.max_upload_bytes:
        target.unlink(missing_ok=True)
        log.warning("[UPLOAD] rejected %r: larger than %d bytes", upload.filename, settings.max_upload_bytes)
        raise ValidationError("Payment proof file is too large.")

    return f"{PUBLIC_PREFIX}/{filename}"


def discard(reference: str) -> None:
    name = reference.split("/")[-1]
    if not name:
        return
    (Path(settings.upload_dir) / name).unlink(missing_ok=True)
