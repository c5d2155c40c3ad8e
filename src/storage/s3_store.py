# src/storage/s3_store.py — v2
"""S3-compatible object store (AWS S3, Cloudflare R2, MinIO).

Requires 'boto3' package: pip install boto3.
boto3 is blocking; calls run in worker threads so several objects can be
in flight at once.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import BinaryIO

from catalog_ingest.core.models import StorageObject
from catalog_ingest.storage.base_object_store import BaseObjectStore, StoreError
from catalog_ingest.storage.models import ListingPage

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1024 * 1024


class S3ObjectStore(BaseObjectStore):
    """Object store backed by an S3-compatible bucket."""

    name = "s3"

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        connect_timeout_s: float = 10.0,
        read_timeout_s: float = 60.0,
        max_attempts: int = 3,
    ) -> None:
        """Initialize S3 store.

        Args:
            bucket: Bucket name.
            region: Region ("auto" for R2; boto3 default if not set).
            endpoint_url: Custom endpoint for R2/MinIO.
            access_key_id: Explicit credentials (boto3 chain if omitted).
            secret_access_key: Explicit credentials.
            connect_timeout_s: Per-request connect timeout.
            read_timeout_s: Per-request read timeout.
            max_attempts: botocore retry attempts per request.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError as e:
            raise ImportError(
                "boto3 package required for S3 store: pip install boto3"
            ) from e

        kwargs: dict = {
            "config": Config(
                connect_timeout=connect_timeout_s,
                read_timeout=read_timeout_s,
                retries={"max_attempts": max_attempts, "mode": "standard"},
            ),
        }
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if access_key_id and secret_access_key:
            kwargs["aws_access_key_id"] = access_key_id
            kwargs["aws_secret_access_key"] = secret_access_key

        self._s3 = boto3.client("s3", **kwargs)
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    async def list_page(self, prefix: str, continuation_token: str | None = None) -> ListingPage:
        """List one page via list_objects_v2 continuation tokens."""
        kwargs = {"Bucket": self._bucket, "Prefix": prefix}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token
        try:
            response = await asyncio.to_thread(self._s3.list_objects_v2, **kwargs)
        except Exception as exc:
            raise StoreError("list", prefix, str(exc)) from exc

        objects = [
            StorageObject(
                key=obj["Key"],
                size_bytes=obj.get("Size", 0),
                last_modified=obj.get("LastModified"),
            )
            for obj in response.get("Contents", [])
        ]
        next_token = None
        if response.get("IsTruncated"):
            next_token = response.get("NextContinuationToken")
        return ListingPage(objects=objects, next_token=next_token)

    async def download(self, key: str, destination: Path) -> int:
        return await asyncio.to_thread(self._download_sync, key, destination)

    def _download_sync(self, key: str, destination: Path) -> int:
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
            body = response["Body"]
            written = 0
            with open(destination, "wb") as fh:
                while True:
                    chunk = body.read(DOWNLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    fh.write(chunk)
                    written += len(chunk)
        except Exception as exc:
            raise StoreError("get", key, str(exc)) from exc
        logger.debug("S3 get: s3://%s/%s (%d bytes)", self._bucket, key, written)
        return written

    async def open_stream(self, key: str) -> BinaryIO:
        try:
            response = await asyncio.to_thread(
                self._s3.get_object, Bucket=self._bucket, Key=key,
            )
        except Exception as exc:
            raise StoreError("get", key, str(exc)) from exc
        return response["Body"]

    async def upload(self, key: str, source: Path, content_type: str) -> None:
        await asyncio.to_thread(self._upload_sync, key, source, content_type)

    def _upload_sync(self, key: str, source: Path, content_type: str) -> None:
        try:
            with open(source, "rb") as fh:
                self._s3.upload_fileobj(
                    fh, self._bucket, key, ExtraArgs={"ContentType": content_type},
                )
        except Exception as exc:
            raise StoreError("put", key, str(exc)) from exc
        logger.debug("S3 put: s3://%s/%s (%s)", self._bucket, key, content_type)

    async def exists(self, key: str) -> bool:
        """HEAD the object; a 404 means absent, any other error is raised."""
        try:
            await asyncio.to_thread(self._s3.head_object, Bucket=self._bucket, Key=key)
            return True
        except self._s3.exceptions.ClientError as exc:
            code = str(getattr(exc, "response", {}).get("Error", {}).get("Code", ""))
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StoreError("head", key, str(exc)) from exc
        except Exception as exc:
            raise StoreError("head", key, str(exc)) from exc
