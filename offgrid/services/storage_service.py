"""
Alibaba Cloud OSS (Object Storage Service) integration.

Handles avatar and chat attachment uploads, validation and removal.
"""
import io
import logging
import uuid
from pathlib import Path
from typing import Dict, Any, List, Optional

import oss2
from PIL import Image, UnidentifiedImageError
from fastapi import HTTPException, status

from offgrid.config import settings
from offgrid.utils.datetime_utils import utc_now
from offgrid.utils.validators import is_image_mime_type, validate_file_type

logger = logging.getLogger(__name__)

AVATAR_FOLDER = "avatars"
CHAT_FILES_FOLDER = "chat-files"

_IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class StorageService:
    """Service for storing files in Alibaba Cloud OSS."""

    def __init__(self, bucket: Optional[oss2.Bucket] = None):
        """
        Initialize storage service.

        Args:
            bucket: Pre-built bucket (defaults to one built from settings on first use)
        """
        self._bucket = bucket

    @property
    def bucket(self) -> oss2.Bucket:
        if self._bucket is None:
            if not settings.oss_access_key_id or not settings.oss_access_key_secret:
                logger.warning("OSS credentials not configured. File upload will fail.")
            auth = oss2.Auth(settings.oss_access_key_id, settings.oss_access_key_secret)
            self._bucket = oss2.Bucket(auth, settings.oss_endpoint, settings.oss_bucket_name)
        return self._bucket

    # ------------------------------------------------------------------
    # Keys and URLs
    # ------------------------------------------------------------------

    @staticmethod
    def _sanitize_filename(filename: str) -> str:
        """
        Sanitize filename to prevent security issues.

        Removes path separators, null bytes and leading dots, limits length.
        """
        filename = (filename or "file").replace('/', '_').replace('\\', '_')
        filename = filename.replace('\x00', '')
        filename = filename.lstrip('.') or "file"

        if len(filename) > 255:
            name_parts = filename.rsplit('.', 1)
            if len(name_parts) == 2:
                name, ext = name_parts
                filename = f"{name[:255 - len(ext) - 1]}.{ext}"
            else:
                filename = filename[:255]

        return filename

    @staticmethod
    def avatar_key(user_id: str, content_type: str) -> str:
        """avatars/{user_id}/avatar-{timestamp}.{ext}"""
        ext = _IMAGE_EXTENSIONS.get(content_type.lower(), "img")
        timestamp = int(utc_now().timestamp() * 1000)
        return f"{AVATAR_FOLDER}/{user_id}/avatar-{timestamp}.{ext}"

    def chat_file_key(self, conversation_id: str, filename: str) -> str:
        """chat-files/{conversation_id}/{unique}_{name}"""
        safe_name = self._sanitize_filename(filename)
        path = Path(safe_name)
        unique_id = uuid.uuid4().hex[:12]
        return f"{CHAT_FILES_FOLDER}/{conversation_id}/{unique_id}_{path.stem}{path.suffix}"

    @staticmethod
    def public_url(key: str) -> str:
        """
        Get public URL for an object key.

        Format: https://{bucket}.{public_endpoint}/{key}
        """
        public_endpoint = settings.oss_endpoint.replace('-internal', '')
        return f"https://{settings.oss_bucket_name}.{public_endpoint}/{key}"

    @staticmethod
    def key_from_url(url: Optional[str]) -> Optional[str]:
        """Object key of a public URL produced by public_url(), or None for foreign URLs."""
        if not url:
            return None
        prefix = StorageService.public_url("")
        if not url.startswith(prefix):
            return None
        return url[len(prefix):] or None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _check_size(content: bytes, max_size: int) -> None:
        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="File is empty"
            )
        if len(content) > max_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large ({len(content)} bytes). Maximum: {max_size} bytes"
            )

    @staticmethod
    def _verify_image(content: bytes) -> None:
        """Reject payloads Pillow cannot parse as an image."""
        try:
            with Image.open(io.BytesIO(content)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail="File is not a valid image"
            )

    def validate_avatar(self, content: bytes, content_type: str) -> None:
        """
        Validate an avatar upload.

        Raises:
            HTTPException: 413 above 5MB, 415 for non-image or disallowed types
        """
        allowed: List[str] = settings.get_avatar_types_list()
        self._check_size(content, settings.max_avatar_size)

        if not validate_file_type(content_type, allowed):
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail=f"File type not supported: {content_type}. Allowed types: {', '.join(allowed)}"
            )

        self._verify_image(content)

    def validate_chat_file(self, content: bytes, content_type: str, image_only: bool = False) -> None:
        """
        Validate a chat attachment.

        Args:
            content: File bytes
            content_type: Client-declared MIME type
            image_only: Require an image (the image action)

        Raises:
            HTTPException: 413 above 10MB, 415 for non-images when image_only
        """
        self._check_size(content, settings.max_chat_file_size)

        if image_only and not is_image_mime_type(content_type):
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail="Please select an image file"
            )

        if is_image_mime_type(content_type):
            self._verify_image(content)

    # ------------------------------------------------------------------
    # Object operations
    # ------------------------------------------------------------------

    async def upload(self, key: str, content: bytes, content_type: str) -> Dict[str, Any]:
        """
        Upload bytes to OSS.

        Args:
            key: Object key
            content: File bytes
            content_type: MIME type stored with the object

        Returns:
            Dict with url, file_size and oss_key

        Raises:
            HTTPException: 503 when the storage service fails
        """
        try:
            result = self.bucket.put_object(
                key,
                content,
                headers={
                    'Content-Type': content_type or 'application/octet-stream',
                    'Cache-Control': 'public, max-age=31536000',
                }
            )
        except oss2.exceptions.OssError as e:
            logger.error(f"OSS upload failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="File storage service temporarily unavailable"
            )

        if result.status != 200:
            logger.error(f"OSS upload returned HTTP {result.status} for {key}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Failed to upload file: HTTP {result.status}"
            )

        logger.info(f"File uploaded successfully: {key} ({len(content)} bytes)")

        return {
            "url": self.public_url(key),
            "file_size": len(content),
            "oss_key": key
        }

    def remove(self, key: str) -> bool:
        """
        Delete an object from OSS, best effort.

        Returns:
            True if successful, False otherwise
        """
        try:
            self.bucket.delete_object(key)
            logger.info(f"File deleted: {key}")
            return True
        except oss2.exceptions.OssError as e:
            logger.warning(f"Failed to delete file {key}: {e}")
            return False


def get_storage_service() -> StorageService:
    """Dependency for the storage service."""
    return StorageService()
