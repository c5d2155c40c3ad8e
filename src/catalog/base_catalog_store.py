# src/catalog/base_catalog_store.py — v2
"""Abstract catalog store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from catalog_ingest.catalog.models import CatalogRecordRef, RowWriteResult
from catalog_ingest.core.models import CatalogRow


class CatalogWriteError(Exception):
    """Raised when a catalog write call fails as a whole."""


class BaseCatalogStore(ABC):
    """Unified interface for the canonical metadata store."""

    @abstractmethod
    async def upsert_rows(self, rows: list[CatalogRow]) -> list[RowWriteResult]:
        """Insert-or-update rows keyed on track_id."""

    @abstractmethod
    async def select_missing_hash(self) -> list[CatalogRecordRef]:
        """Rows whose full_hash is still null."""

    @abstractmethod
    async def select_all(self) -> list[CatalogRecordRef]:
        """Every row's id, track_id and object key."""

    @abstractmethod
    async def update_full_hash(self, row_id: int | str, full_hash: str) -> None:
        """Set full_hash on a single row by id."""

    @abstractmethod
    async def count_rows(self) -> int:
        """Number of catalog rows."""
