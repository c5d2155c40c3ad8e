# src/storage/base_object_store.py — v2
"""Abstract object store interface.

Every backend surfaces SDK failures as StoreError so the migration
pipeline can classify them without knowing the SDK.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

from catalog_ingest.storage.models import ListingPage


class StoreError(Exception):
    """Raised when a get/put/list/head call against an object store fails."""

    def __init__(self, operation: str, key: str, reason: str) -> None:
        self.operation = operation
        self.key = key
        self.reason = reason
        super().__init__(f"{operation} failed for {key}: {reason}")


class BaseObjectStore(ABC):
    """Unified interface for object storage backends."""

    name: str = "store"

    @abstractmethod
    async def list_page(self, prefix: str, continuation_token: str | None = None) -> ListingPage:
        """Return one page of objects under prefix."""

    @abstractmethod
    async def download(self, key: str, destination: Path) -> int:
        """Stream an object to a local file; return the number of bytes written."""

    @abstractmethod
    async def open_stream(self, key: str) -> BinaryIO:
        """Open an object for incremental reading. Caller closes it."""

    @abstractmethod
    async def upload(self, key: str, source: Path, content_type: str) -> None:
        """Write a local file to key with the given content type."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether an object is present at key."""
