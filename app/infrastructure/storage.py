"""S3-compatible object storage (Cloudflare R2, MinIO, AWS S3) for uploaded media."""

import os
import uuid
from typing import Optional

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings, get_settings

logger = structlog.get_logger(__name__)

PRESIGNED_URL_EXPIRATION = 7 * 24 * 3600  # S3 maximum


class StorageError(Exception):
    """Raised when the storage provider rejects or fails an operation."""


class ObjectStorage:
    def __init__(self, settings: Optional[Settings] = None, client=None):
        self.settings = settings or get_settings()
        self.bucket = self.settings.STORAGE_BUCKET
        self._client = client or boto3.client(
            "s3",
            endpoint_url=self.settings.STORAGE_ENDPOINT_URL or None,
            aws_access_key_id=self.settings.STORAGE_ACCESS_KEY_ID or None,
            aws_secret_access_key=self.settings.STORAGE_SECRET_ACCESS_KEY or None,
            region_name=self.settings.STORAGE_REGION,
            config=Config(signature_version="s3v4"),
        )

    @staticmethod
    def build_key(user_id: int, filename: Optional[str]) -> str:
        ext = os.path.splitext(filename or "")[1].lower()[:10]
        return f"homefix/{user_id}/{uuid.uuid4().hex}{ext}"

    def upload(self, content: bytes, key: str, content_type: str) -> str:
        """Store `content` under `key` and return a URL the SPA can render."""
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
                ContentDisposition="inline",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Upload to object storage failed", key=key, error=str(e))
            raise StorageError(str(e)) from e

        logger.info("Uploaded object", key=key, size=len(content), content_type=content_type)
        return self.url_for(key)

    def url_for(self, key: str) -> str:
        if self.settings.STORAGE_PUBLIC_BASE_URL:
            return f"{self.settings.STORAGE_PUBLIC_BASE_URL.rstrip('/')}/{key}"
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=PRESIGNED_URL_EXPIRATION,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(str(e)) from e
