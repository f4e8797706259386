"""Per-photo upload pipeline shared by the single and bulk upload endpoints.

validate -> transform -> name -> store/publish -> descriptor. Nothing here
touches HTTP; the routers own request parsing and status codes.
"""

import os
import re
import time
import uuid
from typing import Any, Dict, Optional

from .aws import storage
from .core.errors import (
    FileTooLargeError,
    GalleryError,
    NotConfiguredError,
    UnsupportedTypeError,
)
from .core.logging_config import get_logger
from .core.models import PhotoOut, UploadedPhoto, UploadResult
from .imaging import prepare_upload

logger = get_logger(__name__)

ALLOWED_IMAGE_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic"}
CONTENT_TYPES_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
}
GENERIC_CONTENT_TYPES = {None, "", "application/octet-stream"}
MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_FILES_PER_REQUEST = 10
DEFAULT_GUEST_NAME = "Invitado"
DESCRIPTION_PREFIX = "Subida por: "
THUMBNAIL_WIDTH = 400

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9áéíóúÁÉÍÓÚñÑ\s]")

# Shorter wording used inside bulk results
BULK_ERROR_MESSAGES = {
    UnsupportedTypeError: "Tipo de archivo no permitido",
    FileTooLargeError: "Archivo muy grande (máx 10MB)",
}
BULK_FALLBACK_ERROR = "Error al procesar la imagen"


def require_folder(folder_id: Optional[str]) -> str:
    if not folder_id:
        raise NotConfiguredError()
    return folder_id


def sanitize_guest_name(raw: Optional[str]) -> str:
    cleaned = _UNSAFE_NAME_CHARS.sub("", raw or "").strip()
    return cleaned or DEFAULT_GUEST_NAME


def compose_filename(guest_name: str, unique: bool = False) -> str:
    """`<name>_<epoch ms>.jpg`, with a random suffix when several files share a request."""
    stem = f"{guest_name}_{int(time.time() * 1000)}"
    if unique:
        stem = f"{stem}_{uuid.uuid4().hex[:6]}"
    return f"{stem}.jpg"


def resolve_content_type(content_type: Optional[str], filename: Optional[str]) -> Optional[str]:
    """Use the file extension when the browser sent no specific type (common for HEIC)."""
    if content_type not in GENERIC_CONTENT_TYPES:
        return content_type
    extension = os.path.splitext(filename or "")[1].lower()
    return CONTENT_TYPES_BY_EXTENSION.get(extension, content_type)


def validate_upload(content_type: Optional[str], size: int) -> None:
    if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise UnsupportedTypeError()
    if size > MAX_FILE_SIZE:
        raise FileTooLargeError()


def photo_urls(image_id: str) -> Dict[str, str]:
    return {
        "url": f"/api/image/{image_id}",
        "thumbnail": f"/api/image/{image_id}?w={THUMBNAIL_WIDTH}",
    }


def publish_photo(
    *,
    data_bytes: bytes,
    guest_name: str,
    folder_id: str,
    unique: bool = False,
) -> UploadedPhoto:
    processed = prepare_upload(data_bytes)
    name = compose_filename(guest_name, unique=unique)
    item = storage.store_photo(
        data_bytes=processed,
        folder_id=folder_id,
        name=name,
        description=f"{DESCRIPTION_PREFIX}{guest_name}",
    )
    return UploadedPhoto(id=item["image_id"], name=item["name"], **photo_urls(item["image_id"]))


def process_upload(
    *,
    original_name: str,
    content_type: Optional[str],
    data_bytes: bytes,
    guest_name: str,
    folder_id: str,
) -> UploadResult:
    """Run one file of a bulk request; failures become a failed result."""
    try:
        validate_upload(content_type, len(data_bytes))
        photo = publish_photo(
            data_bytes=data_bytes,
            guest_name=guest_name,
            folder_id=folder_id,
            unique=True,
        )
    except GalleryError as e:
        logger.warning("bulk_file_failed", original_name=original_name, error=type(e).__name__)
        message = BULK_ERROR_MESSAGES.get(type(e), BULK_FALLBACK_ERROR)
        return UploadResult(originalName=original_name, success=False, error=message)

    return UploadResult(originalName=original_name, success=True, **photo.model_dump())


def uploaded_by(description: Optional[str]) -> str:
    if not description:
        return DEFAULT_GUEST_NAME
    return description.replace(DESCRIPTION_PREFIX, "", 1) or DEFAULT_GUEST_NAME


def to_photo_out(item: Dict[str, Any]) -> PhotoOut:
    urls = photo_urls(item["image_id"])
    return PhotoOut(
        id=item["image_id"],
        name=item["name"],
        uploadedBy=uploaded_by(item.get("description")),
        createdAt=storage.created_at_iso(item["created_at"]),
        thumbnail=urls["thumbnail"],
        fullSize=urls["url"],
    )
