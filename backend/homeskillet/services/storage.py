# backend/homeskillet/services/storage.py
"""
Object storage (S3, MinIO, or any S3-compatible endpoint).

Files are addressed by (bucket, path). Rows in the database keep the path and
the public URL; the bytes live only here. Nothing ties an upload to the
database transaction that records it.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import settings

LOGGER = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    path: str
    url: str
    size: int
    content_type: Optional[str]


class Storage(Protocol):
    def upload(self, bucket: str, path: str, data: bytes, *, content_type: Optional[str] = None) -> StoredObject: ...

    def public_url(self, bucket: str, path: str) -> str: ...

    def signed_url(self, bucket: str, path: str, *, expires_in: Optional[int] = None) -> str: ...

    def delete(self, bucket: str, path: str) -> None: ...


def object_path(*parts: str, filename: str) -> str:
    """`<parts>/<uuid>-<filename>` with path separators stripped from the filename."""
    safe = (filename or "file").replace("/", "_").replace("\\", "_").strip() or "file"
    prefix = "/".join(p.strip("/") for p in parts if p)
    return f"{prefix}/{uuid.uuid4().hex}-{safe}" if prefix else f"{uuid.uuid4().hex}-{safe}"


class S3Storage:
    def __init__(self, client: Any, *, public_base_url: Optional[str] = None):
        self._client = client
        self._public_base_url = (public_base_url or "").rstrip("/") or None

    @classmethod
    def from_settings(cls) -> "S3Storage":
        kwargs: dict[str, Any] = {
            "region_name": settings.storage_region,
            "config": Config(signature_version="s3v4"),
        }
        if settings.storage_endpoint_url:
            kwargs["endpoint_url"] = settings.storage_endpoint_url
        if settings.storage_access_key_id:
            kwargs["aws_access_key_id"] = settings.storage_access_key_id
            kwargs["aws_secret_access_key"] = settings.storage_secret_access_key

        client = boto3.client("s3", **kwargs)
        return cls(client, public_base_url=settings.storage_public_base_url)

    def upload(self, bucket: str, path: str, data: bytes, *, content_type: Optional[str] = None) -> StoredObject:
        extra: dict[str, Any] = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client.put_object(Bucket=bucket, Key=path, Body=data, **extra)
        except (ClientError, BotoCoreError) as e:
            LOGGER.error("storage upload failed bucket=%s path=%s: %s", bucket, path, e)
            raise StorageError(str(e)) from e
        return StoredObject(bucket=bucket, path=path, url=self.public_url(bucket, path), size=len(data), content_type=content_type)

    def public_url(self, bucket: str, path: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{bucket}/{path}"
        endpoint = settings.storage_endpoint_url
        if endpoint:
            return f"{endpoint.rstrip('/')}/{bucket}/{path}"
        return f"https://{bucket}.s3.{settings.storage_region}.amazonaws.com/{path}"

    def signed_url(self, bucket: str, path: str, *, expires_in: Optional[int] = None) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": path},
                ExpiresIn=int(expires_in or settings.signed_url_expiry_seconds),
            )
        except (ClientError, BotoCoreError) as e:
            LOGGER.error("presign failed bucket=%s path=%s: %s", bucket, path, e)
            raise StorageError(str(e)) from e

    def delete(self, bucket: str, path: str) -> None:
        try:
            self._client.delete_object(Bucket=bucket, Key=path)
        except (ClientError, BotoCoreError) as e:
            LOGGER.error("storage delete failed bucket=%s path=%s: %s", bucket, path, e)
            raise StorageError(str(e)) from e


@lru_cache(maxsize=1)
def _default_storage() -> S3Storage:
    return S3Storage.from_settings()


def get_storage() -> Storage:
    """FastAPI dependency. Tests override it with an in-memory implementation."""
    return _default_storage()
