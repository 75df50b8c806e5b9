"""
Bid photo storage on local disk.

Files land in <UPLOAD_DIR>/bids/<epoch-ms>-<index>-<original name> and are
referenced from bid rows by their public path under /uploads.
"""
import os
import re
import time
from typing import List, Optional

from fastapi import UploadFile

from vendorbid.core.config import settings
from vendorbid.core.errors import BadRequestError
from vendorbid.core.logging import get_logger

logger = get_logger(__name__)

PHOTO_SUBDIR = "bids"
PUBLIC_PREFIX = "/uploads"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_filename(filename: str) -> str:
    name = os.path.basename(filename or "").strip()
    name = _UNSAFE_CHARS.sub("_", name)
    return name or "photo"


def validate_photos(photos: Optional[List[UploadFile]]) -> List[UploadFile]:
    """Drop empty form parts and enforce the count and extension limits."""
    photos = [p for p in (photos or []) if p is not None and p.filename]
    if len(photos) > settings.MAX_BID_PHOTOS:
        raise BadRequestError(f"At most {settings.MAX_BID_PHOTOS} photos can be attached")

    allowed = {ext.lower() for ext in settings.ALLOWED_PHOTO_EXTENSIONS}
    for photo in photos:
        ext = os.path.splitext(photo.filename)[1].lower()
        if ext not in allowed:
            raise BadRequestError(
                f"File type not allowed. Allowed: {', '.join(sorted(allowed))}"
            )
    return photos


def _write_new(storage_dir: str, prefix: str, name: str, content: bytes) -> str:
    """Write `content` under a name no other upload holds and return that name."""
    stored_name = f"{prefix}-{name}"
    attempt = 0
    while True:
        try:
            with open(os.path.join(storage_dir, stored_name), "xb") as f:
                f.write(content)
            return stored_name
        except FileExistsError:
            attempt += 1
            stored_name = f"{prefix}-{attempt}-{name}"


async def save_bid_photos(photos: List[UploadFile]) -> List[str]:
    """Write photos to disk and return their public paths."""
    storage_dir = os.path.join(settings.UPLOAD_DIR, PHOTO_SUBDIR)
    os.makedirs(storage_dir, exist_ok=True)

    saved = []
    try:
        batch_ms = int(time.time() * 1000)
        for i, photo in enumerate(photos):
            content = await photo.read()
            if len(content) > settings.MAX_UPLOAD_SIZE:
                raise BadRequestError(f"Photo {photo.filename} exceeds the upload size limit")

            stored_name = _write_new(storage_dir, f"{batch_ms}-{i}", _safe_filename(photo.filename), content)
            saved.append(f"{PUBLIC_PREFIX}/{PHOTO_SUBDIR}/{stored_name}")
    except Exception:
        delete_photos(saved)
        raise

    return saved


def delete_photos(paths: List[str]) -> None:
    """Remove stored photos, e.g. when the bid they belong to was refused."""
    for path in paths:
        name = path.rsplit("/", 1)[-1]
        full_path = os.path.join(settings.UPLOAD_DIR, PHOTO_SUBDIR, name)
        try:
            os.remove(full_path)
        except FileNotFoundError:
            logger.warning(f"Photo already removed: {full_path}")
