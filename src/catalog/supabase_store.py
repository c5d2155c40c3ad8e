# src/catalog/supabase_store.py — v1
"""Supabase (PostgREST) catalog store for the library_tracks table.

Requires 'supabase' package: pip install supabase.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from catalog_ingest.catalog.base_catalog_store import BaseCatalogStore, CatalogWriteError
from catalog_ingest.catalog.models import CatalogRecordRef, RowWriteResult, to_record
from catalog_ingest.core.models import CatalogRow

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "library_tracks"
DEFAULT_PAGE_SIZE = 1000


def create_supabase_client(url: str, key: str) -> Any:
    """Build a supabase Client from project URL and service key."""
    try:
        from supabase import create_client
    except ImportError as e:
        raise ImportError(
            "supabase package required for Supabase backends: pip install supabase"
        ) from e
    return create_client(url, key)


class SupabaseCatalogStore(BaseCatalogStore):
    """Catalog rows in a Supabase table, conflict key track_id."""

    def __init__(
        self,
        client: Any,
        table: str = DEFAULT_TABLE,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._client = client
        self._table = table
        self._page_size = page_size

    def _query(self) -> Any:
        return self._client.table(self._table)

    async def upsert_rows(self, rows: list[CatalogRow]) -> list[RowWriteResult]:
        if not rows:
            return []
        # PostgREST upserts the union of columns in a payload, so rows that
        # leave curation columns out go in their own call.
        groups: dict[tuple[str, ...], list[dict[str, Any]]] = {}
        for row in rows:
            record = to_record(row)
            groups.setdefault(tuple(record), []).append(record)
        try:
            for records in groups.values():
                await asyncio.to_thread(
                    self._query().upsert(records, on_conflict="track_id").execute
                )
        except Exception as exc:
            raise CatalogWriteError(f"upsert into {self._table} failed: {exc}") from exc
        return [RowWriteResult(track_id=row.track_id, ok=True) for row in rows]

    async def select_missing_hash(self) -> list[CatalogRecordRef]:
        try:
            response = await asyncio.to_thread(
                self._query()
                .select("id, track_id, file_key")
                .is_("content_hash", "null")
                .execute
            )
        except Exception as exc:
            raise CatalogWriteError(f"select from {self._table} failed: {exc}") from exc
        return [
            CatalogRecordRef(id=r["id"], track_id=r["track_id"], object_key=r["file_key"])
            for r in response.data or []
        ]

    async def select_all(self) -> list[CatalogRecordRef]:
        """Page through the table with range() (PostgREST caps each response)."""
        refs: list[CatalogRecordRef] = []
        start = 0
        while True:
            end = start + self._page_size - 1
            try:
                response = await asyncio.to_thread(
                    self._query()
                    .select("id, track_id, file_key")
                    .order("id")
                    .range(start, end)
                    .execute
                )
            except Exception as exc:
                raise CatalogWriteError(f"select from {self._table} failed: {exc}") from exc
            page = response.data or []
            refs.extend(
                CatalogRecordRef(id=r["id"], track_id=r["track_id"], object_key=r["file_key"])
                for r in page
            )
            if len(page) < self._page_size:
                return refs
            start += self._page_size

    async def update_full_hash(self, row_id: int | str, full_hash: str) -> None:
        try:
            await asyncio.to_thread(
                self._query().update({"content_hash": full_hash}).eq("id", row_id).execute
            )
        except Exception as exc:
            raise CatalogWriteError(f"update of row {row_id} failed: {exc}") from exc

    async def count_rows(self) -> int:
        try:
            response = await asyncio.to_thread(
                self._query().select("id", count="exact").execute
            )
        except Exception as exc:
            raise CatalogWriteError(f"count of {self._table} failed: {exc}") from exc
        return response.count or 0
