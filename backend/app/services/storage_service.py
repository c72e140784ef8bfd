"""
LensCritique Backend: Object Storage Service
=============================================

What:  Validates post images and uploads them to the backend's public
       `photos` bucket, returning their public URLs.
How:   Images are checked locally first: count, extension, size, then the
       real content type read from the bytes with python-magic. Uploads go
       through the storage REST API with the uploader's bearer token, so
       the bucket's row-level policies apply to the real user.
Who:   Called by PostService during post publication.

Object layout:
    photos/
    └── <user_id>/
        ├── 1718036400123-k3j9x2a.jpg
        └── 1718036400561-p0q8w1z.png

    Public URL: {BACKEND_URL}/storage/v1/object/public/photos/<path>

Uploads that succeed before a later failure are left in place. Nothing
removes orphaned objects.
"""

import logging
import secrets
import string
import time
import uuid
from dataclasses import dataclass
from pathlib import PurePath
from typing import List, Optional

import httpx
import magic

from app.config import settings
from app.exceptions import PermissionDeniedError, StorageError, ValidationError
from app.services.backend_errors import is_policy_denial

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif"}

# Detected from the file header, never from the filename
ALLOWED_MIME_TYPES = {"image/png", "image/jpeg", "image/webp", "image/gif"}

STORAGE_DENIED_MESSAGE = (
    "Storage Permission Denied: You need to apply the RLS Fix in the "
    "Admin Panel to allow photo uploads."
)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class ImageUpload:
    """One image as received from the multipart form."""

    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


class ObjectStorage:
    def __init__(
        self,
        base_url: Optional[str] = None,
        anon_key: Optional[str] = None,
        bucket: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.storage_base_url
        self.anon_key = anon_key if anon_key is not None else settings.backend_anon_key
        self.bucket = bucket or settings.storage_bucket
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"apikey": self.anon_key},
                transport=self._transport,
            )
        return self._client

    # ── Validation ────────────────────────────────────────────────────────

    @staticmethod
    def validate_image_count(count: int) -> None:
        if count < 1:
            raise ValidationError(
                message="Please upload at least one photo.", field="images"
            )
        if count > settings.max_images_per_post:
            raise ValidationError(
                message=f"Maximum {settings.max_images_per_post} images allowed",
                field="images",
                context={"received": count},
            )

    @staticmethod
    def validate_extension(filename: str) -> str:
        """Returns the lowercase extension without the dot."""
        ext = PurePath(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="images",
                context={"filename": filename},
            )
        return ext[1:]

    @staticmethod
    def validate_size(image: ImageUpload) -> None:
        max_mb = settings.max_file_size / (1024 * 1024)
        if image.size == 0:
            raise ValidationError(
                message=f"Image '{image.filename}' is empty.", field="images"
            )
        if image.size > settings.max_file_size:
            raise ValidationError(
                message=(
                    f"Image '{image.filename}' ({image.size / (1024 * 1024):.1f}MB) "
                    f"exceeds maximum of {max_mb:.0f}MB."
                ),
                field="images",
                context={"max_size_mb": max_mb, "actual_size": image.size},
            )

    @staticmethod
    def validate_mime_type(image: ImageUpload) -> str:
        """
        Detect the real content type from the image bytes.

        A renamed HTML or PDF file passes the extension check; its header
        does not pass this one.

        Returns:
            Detected MIME type, e.g. "image/jpeg"

        Raises:
            ValidationError: the bytes are not one of ALLOWED_MIME_TYPES
            StorageError:    libmagic could not inspect the buffer
        """
        try:
            mime_type = magic.from_buffer(image.content, mime=True)
        except Exception as e:
            logger.error("MIME detection failed for %s: %s", image.filename, e)
            raise StorageError(
                message="Could not verify the image type. Please try again.",
                context={"filename": image.filename, "error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"'{image.filename}' is not a valid image "
                    f"(detected content type '{mime_type}')."
                ),
                field="images",
                context={"detected_mime": mime_type, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def validate_images(self, images: List[ImageUpload]) -> None:
        """
        All local checks, in order of cost. No network I/O.

        Each image's content_type is replaced by the detected MIME type, so
        the upload never trusts what the client declared.
        """
        self.validate_image_count(len(images))
        for image in images:
            self.validate_extension(image.filename)
            self.validate_size(image)
            image.content_type = self.validate_mime_type(image)

    # ── Paths and URLs ────────────────────────────────────────────────────

    @staticmethod
    def object_path(user_id: uuid.UUID, extension: str) -> str:
        """`{user_id}/{epoch_ms}-{random}.{ext}`"""
        suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(7))
        return f"{user_id}/{int(time.time() * 1000)}-{suffix}.{extension}"

    def public_url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/object/public/{self.bucket}/{path}"

    # ── Upload ────────────────────────────────────────────────────────────

    async def upload(self, access_token: str, path: str, image: ImageUpload) -> str:
        """
        Upload one object and return its public URL.

        Raises:
            PermissionDeniedError: the bucket's row-level policy refused the write
            StorageError:          any other upload failure
        """
        content_type = image.content_type or self.validate_mime_type(image)
        try:
            response = await self.client.post(
                f"/object/{self.bucket}/{path}",
                content=image.content,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": content_type,
                    "x-upsert": "false",
                },
            )
        except httpx.HTTPError as e:
            logger.error("Storage upload to %s failed: %s", path, e)
            raise StorageError(
                message=f"Storage error: {e}. Make sure '{self.bucket}' bucket exists.",
                context={"path": path},
            )

        if not response.is_success:
            message = _storage_message(response)
            if is_policy_denial(message):
                logger.warning("Storage policy denied upload to %s", path)
                raise PermissionDeniedError(
                    message=STORAGE_DENIED_MESSAGE, resource="storage"
                )
            logger.error(
                "Storage upload to %s failed: HTTP %d %s",
                path, response.status_code, message,
            )
            raise StorageError(
                message=f"Storage error: {message}. Make sure '{self.bucket}' bucket exists.",
                context={"path": path, "upstream_status": response.status_code},
            )

        logger.info("Uploaded %s (%d bytes)", path, image.size)
        return self.public_url(path)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _storage_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase


object_storage = ObjectStorage()
