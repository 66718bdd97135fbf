"""Image upload endpoint."""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from studyhub.models.profile import UploadedImage, UploadResponse
from studyhub.services.auth import SessionContext, get_session_context
from studyhub.services.blob_storage import upload_image
from studyhub.services.uploads import (
    DEFAULT_UPLOAD_FOLDER,
    MAX_UPLOAD_BYTES,
    build_upload_path,
    validate_image,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])


@router.post("", response_model=UploadResponse)
async def upload(
    file: UploadFile = File(...),
    path: str = Form(default=DEFAULT_UPLOAD_FOLDER),
    auth: SessionContext = Depends(get_session_context),
):
    """Store an image for use in a post and return its public URL."""
    caller = await auth.require_user()

    # Read one byte past the limit so oversized files are detected
    # without buffering all of them
    data = await file.read(MAX_UPLOAD_BYTES + 1)
    validate_image(file.content_type, len(data))

    blob_path = build_upload_path(path, file.filename, file.content_type)
    url = await upload_image(blob_path, data, file.content_type)
    logger.info("User %s uploaded %s", caller.id, blob_path)
    return UploadResponse(data=UploadedImage(path=blob_path, url=url))
