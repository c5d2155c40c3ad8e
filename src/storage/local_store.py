# src/storage/local_store.py — v3
"""Local filesystem object store (dry runs, exported buckets, tests)."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from catalog_ingest.core.models import StorageObject
from catalog_ingest.storage.base_object_store import BaseObjectStore, StoreError
from catalog_ingest.storage.models import ListingPage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000
PARTIAL_MARKER = ".partial-"


def _place_file(source: Path, dst: Path) -> None:
    """Copy under a temporary name, then rename into place.

    A copy that is cut short never appears at dst, so exists() only
    ever sees complete objects.
    """
    tmp = dst.with_name(f".{dst.name}{PARTIAL_MARKER}{uuid.uuid4().hex}")
    try:
        shutil.copyfile(source, tmp)
        os.replace(tmp, dst)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


class LocalObjectStore(BaseObjectStore):
    """Keys map to paths below base_path; "/" separates key segments."""

    name = "local"

    def __init__(self, base_path: str | Path, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._base = Path(base_path)
        self._page_size = page_size

    def _resolve(self, key: str) -> Path:
        return self._base / key

    async def list_page(self, prefix: str, continuation_token: str | None = None) -> ListingPage:
        offset = int(continuation_token) if continuation_token else 0
        root = self._resolve(prefix) if prefix else self._base
        if not root.is_dir():
            if root.exists():
                raise StoreError("list", prefix, "prefix is not a directory")
            return ListingPage()

        paths = sorted(
            p for p in root.rglob("*") if p.is_file() and PARTIAL_MARKER not in p.name
        )
        page = paths[offset:offset + self._page_size]
        objects = []
        for path in page:
            stat = path.stat()
            objects.append(StorageObject(
                key=path.relative_to(self._base).as_posix(),
                size_bytes=stat.st_size,
                last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            ))
        next_offset = offset + len(page)
        next_token = str(next_offset) if next_offset < len(paths) else None
        return ListingPage(objects=objects, next_token=next_token)

    async def download(self, key: str, destination: Path) -> int:
        src = self._resolve(key)
        try:
            await asyncio.to_thread(shutil.copyfile, src, destination)
        except OSError as exc:
            raise StoreError("get", key, str(exc)) from exc
        return destination.stat().st_size

    async def open_stream(self, key: str) -> BinaryIO:
        try:
            return open(self._resolve(key), "rb")
        except OSError as exc:
            raise StoreError("get", key, str(exc)) from exc

    async def upload(self, key: str, source: Path, content_type: str) -> None:
        dst = self._resolve(key)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(_place_file, source, dst)
        except OSError as exc:
            raise StoreError("put", key, str(exc)) from exc
        logger.debug("Local put: %s (%s)", dst, content_type)

    async def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()
