# app/services/storage.py
"""
File storage for uploaded images.

One backend is chosen at startup from ``STORAGE_BACKEND`` and kept on
``app.state.storage``; handlers only see the ``StorageBackend`` interface.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import DependencyError
from app.core.logging import logger


def image_key(tenant_slug: str, filename: str) -> str:
    return f"{tenant_slug}/images/{filename}"


def thumbnail_key(tenant_slug: str, filename: str) -> str:
    return f"{tenant_slug}/thumbnails/{filename}"


class StorageBackend(ABC):
    """Tenant-scoped blob store"""

    @abstractmethod
    async def save(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return its public URL"""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...


class LocalStorage(StorageBackend):
    """Files under UPLOAD_DIR, served by the app at /uploads"""

    def __init__(self, root: Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes upload root: {key}")
        return path

    def _write(self, path: Path, data: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def save(self, key: str, data: bytes, content_type: str) -> str:
        await run_in_threadpool(self._write, self._path(key), data)
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        await run_in_threadpool(self._path(key).unlink, missing_ok=True)

    def public_url(self, key: str) -> str:
        return f"{self.url_prefix}/{key}"


class ObjectStorage(StorageBackend):
    """S3-compatible bucket (AWS S3, Supabase Storage, MinIO)"""

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        public_url: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.base_public_url = public_url
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )

    async def save(self, key: str, data: bytes, content_type: str) -> str:
        try:
            await run_in_threadpool(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="max-age=3600",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Object storage upload failed for {key}: {str(e)}")
            raise DependencyError("Failed to store image") from e
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        # S3 DeleteObject succeeds for missing keys
        await run_in_threadpool(self.client.delete_object, Bucket=self.bucket, Key=key)

    def public_url(self, key: str) -> str:
        if self.base_public_url:
            return f"{self.base_public_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"


def build_storage() -> StorageBackend:
    """Select the storage backend once, from configuration"""
    if settings.STORAGE_BACKEND == "s3":
        logger.info(f"Using object storage bucket {settings.S3_BUCKET}")
        return ObjectStorage(
            bucket=settings.S3_BUCKET,
            endpoint_url=settings.S3_ENDPOINT,
            region=settings.S3_REGION,
            access_key=settings.S3_ACCESS_KEY,
            secret_key=settings.S3_SECRET_KEY,
            public_url=settings.S3_PUBLIC_URL,
        )
    logger.info(f"Using local storage at {settings.UPLOAD_DIR}")
    return LocalStorage(settings.UPLOAD_DIR)
