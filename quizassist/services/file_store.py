"""Local-disk store for teacher uploads (level 3 PDFs, question images).

Files land in ``UPLOAD_DIR`` under a random name and are served back from
``UPLOAD_BASE_URL``. Callers only ever see the returned URL.
"""

import logging
import uuid
from pathlib import Path
from typing import BinaryIO

from quizassist.config import settings
from quizassist.core.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

_CHUNK = 1024 * 1024


def upload_dir() -> Path:
    path = Path(settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def save(stream: BinaryIO, content_type: str | None, filename: str | None = None) -> str:
    """Copy ``stream`` to disk and return its public URL."""
    extension = ALLOWED_CONTENT_TYPES.get(content_type or "")
    if extension is None:
        raise ValidationError(
            "Only PDF and image uploads are accepted",
            {"content_type": content_type, "allowed": sorted(ALLOWED_CONTENT_TYPES)},
        )

    name = f"{uuid.uuid4().hex}{extension}"
    dest = upload_dir() / name
    written = 0
    with open(dest, "wb") as out:
        while chunk := stream.read(_CHUNK):
            written += len(chunk)
            if written > settings.MAX_UPLOAD_BYTES:
                out.close()
                dest.unlink(missing_ok=True)
                raise ValidationError(
                    "Upload is too large", {"max_bytes": settings.MAX_UPLOAD_BYTES}
                )
            out.write(chunk)

    if written == 0:
        dest.unlink(missing_ok=True)
        raise ValidationError("Uploaded file is empty")

    logger.info("Stored upload %s (%s, %d bytes) as %s", filename, content_type, written, name)
    return f"{settings.UPLOAD_BASE_URL.rstrip('/')}/{name}"


def path_for(url: str) -> Path | None:
    """Resolve a URL returned by :func:`save` back to its file, if it is ours."""
    prefix = settings.UPLOAD_BASE_URL.rstrip("/") + "/"
    if not url.startswith(prefix):
        return None
    name = url[len(prefix):]
    if "/" in name or name.startswith("."):
        return None
    path = Path(settings.UPLOAD_DIR) / name
    return path if path.is_file() else None
