# src/catalog/memory_store.py — v1
"""In-process catalog store keyed on track_id (dry runs and tests)."""

from __future__ import annotations

import itertools

from catalog_ingest.catalog.base_catalog_store import BaseCatalogStore, CatalogWriteError
from catalog_ingest.catalog.models import CURATION_FIELDS, CatalogRecordRef, RowWriteResult
from catalog_ingest.core.models import CatalogRow


class InMemoryCatalogStore(BaseCatalogStore):
    """Dict-backed catalog with the same upsert semantics as the real table."""

    def __init__(self) -> None:
        self._rows: dict[str, CatalogRow] = {}
        self._ids: dict[str, int] = {}
        self._next_id = itertools.count(1)

    @property
    def rows(self) -> dict[str, CatalogRow]:
        return dict(self._rows)

    def get(self, track_id: str) -> CatalogRow | None:
        return self._rows.get(track_id)

    def row_id(self, track_id: str) -> int | None:
        return self._ids.get(track_id)

    async def upsert_rows(self, rows: list[CatalogRow]) -> list[RowWriteResult]:
        results = []
        for row in rows:
            if row.track_id not in self._ids:
                self._ids[row.track_id] = next(self._next_id)
            existing = self._rows.get(row.track_id)
            if existing is None:
                self._rows[row.track_id] = row.model_copy(deep=True)
            else:
                # Merge like the table's upsert: unset curation columns keep their value.
                update = {
                    name: value
                    for name, value in row.model_dump().items()
                    if name not in CURATION_FIELDS or name in row.model_fields_set
                }
                self._rows[row.track_id] = existing.model_copy(update=update, deep=True)
            results.append(RowWriteResult(track_id=row.track_id, ok=True))
        return results

    async def select_missing_hash(self) -> list[CatalogRecordRef]:
        return [
            CatalogRecordRef(id=self._ids[tid], track_id=tid, object_key=row.object_key)
            for tid, row in self._rows.items()
            if row.full_hash is None
        ]

    async def select_all(self) -> list[CatalogRecordRef]:
        return [
            CatalogRecordRef(id=self._ids[tid], track_id=tid, object_key=row.object_key)
            for tid, row in self._rows.items()
        ]

    async def update_full_hash(self, row_id: int | str, full_hash: str) -> None:
        for track_id, existing_id in self._ids.items():
            if existing_id == row_id:
                self._rows[track_id] = self._rows[track_id].model_copy(
                    update={"full_hash": full_hash}
                )
                return
        raise CatalogWriteError(f"No catalog row with id {row_id}")

    async def count_rows(self) -> int:
        return len(self._rows)
