# crowdsafe/backend/bucket.py
"""Local-filesystem stand-in for the `crowd-videos` object bucket."""
import logging
import os
import re
import time
from pathlib import Path

from crowdsafe.errors import UploadError, VideoValidationError

logger = logging.getLogger(__name__)

BUCKET_DIR = Path(os.getenv("BUCKET_DIR", "bucket")).resolve()
BUCKET_NAME = "crowd-videos"
CHUNK_SIZE = 1024 * 1024  # 1 MB

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def bucket_root() -> Path:
    return BUCKET_DIR / BUCKET_NAME


def object_name(filename: str) -> str:
    """public/<epoch-ms>-<filename>"""
    base = _UNSAFE.sub("_", Path(filename or "video").name).strip("._") or "video"
    return f"public/{int(time.time() * 1000)}-{base}"


def resolve(name: str) -> Path:
    root = bucket_root().resolve()
    path = (root / name).resolve()
    if root not in path.parents:
        raise UploadError(f"invalid object name: {name}", status_code=400)
    return path


async def upload(name: str, file, max_bytes: int) -> int:
    """
    Stream an UploadFile into the bucket under `name`.
    Returns bytes written. Oversized streams are removed and rejected.
    """
    dest = resolve(name)
    written = 0
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with dest.open("wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise VideoValidationError(
                        f"File size must be less than {max_bytes // (1024 * 1024)}MB", status_code=413
                    )
                out.write(chunk)
    except VideoValidationError:
        dest.unlink(missing_ok=True)
        raise
    except OSError as e:
        dest.unlink(missing_ok=True)
        logger.error("Upload error for %s: %s", name, e)
        raise UploadError() from e

    logger.info("stored %s (%d bytes)", name, written)
    return written
