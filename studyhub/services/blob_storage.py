"""Azure Blob Storage service for uploaded images."""

import asyncio
import logging
import re

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.identity import ManagedIdentityCredential
from azure.storage.blob import ContainerClient, ContentSettings

from studyhub.config import get_settings
from studyhub.errors import StorageError

logger = logging.getLogger(__name__)

_SAFE_PATH_SEGMENT_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")

IMAGE_CACHE_CONTROL = "public, max-age=3600"

# Lazy singleton, lives for the process lifetime
_images_container_client: ContainerClient | None = None


def validate_blob_path_segment(segment: str) -> str:
    """Validate a user-supplied blob path segment.

    Rejects inputs containing path traversal sequences (..), slashes,
    backslashes, or other unsafe characters. Returns the segment unchanged
    if valid; raises ValueError otherwise.
    """
    if not segment or ".." in segment or not _SAFE_PATH_SEGMENT_RE.match(segment):
        raise ValueError(f"Invalid blob path segment: {segment!r}")
    return segment


def _get_credential() -> ManagedIdentityCredential:
    """Return Managed Identity credential."""
    settings = get_settings()
    return ManagedIdentityCredential(
        client_id=settings.managed_identity_client_id or None
    )


def create_container_client(container_name: str) -> ContainerClient:
    """Create a ContainerClient for the given container."""
    settings = get_settings()
    account_url = f"https://{settings.azure_storage_account}.blob.core.windows.net"
    return ContainerClient(
        account_url=account_url,
        container_name=container_name,
        credential=_get_credential(),
    )


def _get_images_container_client() -> ContainerClient:
    """Return the shared container client for images (lazy singleton)."""
    global _images_container_client
    if _images_container_client is None:
        settings = get_settings()
        if not settings.storage_configured:
            raise StorageError("Image storage is not configured")
        _images_container_client = create_container_client(
            settings.azure_images_container
        )
    return _images_container_client


def public_image_url(blob_path: str, default_url: str) -> str:
    """Public URL for an image, honouring a configured CDN/base URL."""
    base = get_settings().images_public_base_url.rstrip("/")
    if base:
        return f"{base}/{blob_path}"
    return default_url


def check_storage_connectivity() -> bool:
    """Lightweight storage connectivity check (lists 1 blob)."""
    try:
        client = _get_images_container_client()
        next(client.list_blobs(results_per_page=1).__iter__())
        return True
    except StopIteration:
        # Container exists but is empty, still connected
        return True
    except Exception:
        return False


async def upload_image(blob_path: str, data: bytes, content_type: str) -> str:
    """Upload image bytes to ``images/{blob_path}`` and return the public URL.

    Never overwrites: an existing blob at the same path is a StorageError.
    """
    client = _get_images_container_client()
    try:
        blob = client.get_blob_client(blob_path)
        # The blob client is synchronous; keep the upload off the event loop
        await asyncio.to_thread(
            blob.upload_blob,
            data,
            overwrite=False,
            content_settings=ContentSettings(
                content_type=content_type, cache_control=IMAGE_CACHE_CONTROL
            ),
        )
    except ResourceExistsError as e:
        logger.warning("Image already exists at %s", blob_path)
        raise StorageError("An image with that name already exists") from e
    except AzureError as e:
        logger.warning("Azure API error uploading image %s: %s", blob_path, e)
        raise StorageError("Failed to upload image") from e

    logger.info("Uploaded image %s (%d bytes)", blob_path, len(data))
    return public_image_url(blob_path, blob.url)

