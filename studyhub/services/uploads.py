"""Image upload validation and naming."""

import re
import time
import uuid

from studyhub.errors import ValidationError
from studyhub.services.blob_storage import validate_blob_path_segment

MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5,242,880
DEFAULT_UPLOAD_FOLDER = "posts"

# Allowed content types and the extension used when the filename has none
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

_EXTENSION_RE = re.compile(r"^[a-z0-9]{1,5}$")


def validate_image(content_type: str | None, size: int) -> None:
    """Reject files over 5MB or of a type other than JPEG, PNG, WebP or GIF."""
    if size > MAX_UPLOAD_BYTES:
        raise ValidationError("File size must be less than 5MB")
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Only JPEG, PNG, WebP, and GIF files are allowed")


def file_extension(filename: str | None, content_type: str) -> str:
    """Lower-cased extension of ``filename``, or the content type's default."""
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if _EXTENSION_RE.match(ext):
            return ext
    return ALLOWED_IMAGE_TYPES[content_type]


def build_upload_path(
    folder: str | None, filename: str | None, content_type: str
) -> str:
    """Return ``{folder}/{timestamp}_{random}.{ext}`` for a new upload.

    The client's filename only contributes its extension, so uploads never
    collide or escape the folder.
    """
    folder = folder or DEFAULT_UPLOAD_FOLDER
    try:
        validate_blob_path_segment(folder)
    except ValueError as e:
        raise ValidationError("Invalid upload path") from e
    timestamp = int(time.time() * 1000)
    random_part = uuid.uuid4().hex[:12]
    ext = file_extension(filename, content_type)
    return f"{folder}/{timestamp}_{random_part}.{ext}"
