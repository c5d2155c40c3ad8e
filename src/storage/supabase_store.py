# src/storage/supabase_store.py — v1
"""Supabase Storage bucket as an object store (legacy track bucket).

Supabase lists folders with limit/offset; the offset is surfaced as the
continuation token so the scanner treats every backend the same way.
"""

from __future__ import annotations

import asyncio
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO

from catalog_ingest.core.models import StorageObject
from catalog_ingest.storage.base_object_store import BaseObjectStore, StoreError
from catalog_ingest.storage.models import ListingPage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class SupabaseObjectStore(BaseObjectStore):
    """Object store backed by a Supabase Storage bucket."""

    name = "supabase"

    def __init__(self, client: Any, bucket: str, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        """Initialize with an existing supabase Client.

        Args:
            client: supabase.Client (from create_client()).
            bucket: Storage bucket id (e.g. "library-tracks").
            page_size: Listing page size.
        """
        self._client = client
        self._bucket = bucket
        self._page_size = page_size

    def _bucket_api(self) -> Any:
        return self._client.storage.from_(self._bucket)

    async def list_page(self, prefix: str, continuation_token: str | None = None) -> ListingPage:
        offset = int(continuation_token) if continuation_token else 0
        folder = prefix.strip("/")
        options = {
            "limit": self._page_size,
            "offset": offset,
            "sortBy": {"column": "name", "order": "asc"},
        }
        try:
            items = await asyncio.to_thread(self._bucket_api().list, folder, options)
        except Exception as exc:
            raise StoreError("list", prefix, str(exc)) from exc

        objects: list[StorageObject] = []
        for item in items or []:
            # Folder placeholders carry no id/metadata.
            if item.get("id") is None:
                continue
            metadata = item.get("metadata") or {}
            name = item["name"]
            objects.append(StorageObject(
                key=f"{folder}/{name}" if folder else name,
                size_bytes=int(metadata.get("size", 0) or 0),
                last_modified=_parse_timestamp(item.get("updated_at")),
            ))

        next_token = None
        if items and len(items) >= self._page_size:
            next_token = str(offset + len(items))
        return ListingPage(objects=objects, next_token=next_token)

    async def download(self, key: str, destination: Path) -> int:
        try:
            size = await asyncio.to_thread(self._download_sync, key, destination)
        except Exception as exc:
            raise StoreError("get", key, str(exc)) from exc
        logger.debug("Supabase get: %s/%s (%d bytes)", self._bucket, key, size)
        return size

    def _download_sync(self, key: str, destination: Path) -> int:
        data: bytes = self._bucket_api().download(key)
        destination.write_bytes(data)
        return len(data)

    async def open_stream(self, key: str) -> BinaryIO:
        try:
            data: bytes = await asyncio.to_thread(self._bucket_api().download, key)
        except Exception as exc:
            raise StoreError("get", key, str(exc)) from exc
        return io.BytesIO(data)

    async def upload(self, key: str, source: Path, content_type: str) -> None:
        try:
            await asyncio.to_thread(
                self._bucket_api().upload,
                key,
                str(source),
                {"content-type": content_type, "upsert": "true"},
            )
        except Exception as exc:
            raise StoreError("put", key, str(exc)) from exc
        logger.debug("Supabase put: %s/%s (%s)", self._bucket, key, content_type)

    async def exists(self, key: str) -> bool:
        """Search the parent folder for the object name."""
        folder, _, name = key.rpartition("/")
        try:
            items = await asyncio.to_thread(
                self._bucket_api().list, folder, {"limit": 100, "search": name},
            )
        except Exception as exc:
            raise StoreError("head", key, str(exc)) from exc
        return any(item.get("name") == name for item in items or [])
