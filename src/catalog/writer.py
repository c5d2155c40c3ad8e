# src/catalog/writer.py — v1
"""Catalog writer — batched idempotent upserts, hash backfill and verify.

The only component that creates or updates catalog rows. Upserts are keyed
on track_id, so replaying a run never duplicates rows. A failing batch is
logged and its rows reported failed; later batches still go out.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from catalog_ingest.catalog.models import (
    BackfillReport,
    RowWriteResult,
    UpsertReport,
    VerifyReport,
)
from catalog_ingest.core.models import CatalogRow

if TYPE_CHECKING:
    from catalog_ingest.catalog.base_catalog_store import BaseCatalogStore
    from catalog_ingest.hashing.hasher import ContentHasher
    from catalog_ingest.storage.base_object_store import BaseObjectStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_BACKFILL_DELAY_S = 0.1
DEFAULT_WRITE_TIMEOUT_S = 30.0


class CatalogWriter:
    """Write CatalogRows through a catalog store.

    Args:
        store: Catalog backend.
        batch_size: Rows per upsert call.
        timeout_s: Timeout applied to each catalog call.
        backfill_delay_s: Pause between objects during backfill.
    """

    def __init__(
        self,
        store: BaseCatalogStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout_s: float = DEFAULT_WRITE_TIMEOUT_S,
        backfill_delay_s: float = DEFAULT_BACKFILL_DELAY_S,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._store = store
        self._batch_size = batch_size
        self._timeout_s = timeout_s
        self._backfill_delay_s = backfill_delay_s

    @property
    def store(self) -> BaseCatalogStore:
        return self._store

    async def upsert(self, rows: list[CatalogRow]) -> UpsertReport:
        """Upsert rows in batches of batch_size."""
        report = UpsertReport()
        for start in range(0, len(rows), self._batch_size):
            batch = rows[start:start + self._batch_size]
            batch_no = start // self._batch_size + 1
            report.batches += 1
            try:
                results = await asyncio.wait_for(
                    self._store.upsert_rows(batch), timeout=self._timeout_s,
                )
            except Exception as exc:
                report.failed_batches += 1
                reason = str(exc) or type(exc).__name__
                logger.error(
                    "Catalog batch %d failed (%d rows, first=%s): %s",
                    batch_no, len(batch), batch[0].track_id, reason,
                )
                report.results.extend(
                    RowWriteResult(track_id=row.track_id, ok=False, error=reason)
                    for row in batch
                )
                continue

            report.results.extend(results)
            logger.info("Catalog batch %d: upserted %d row(s)", batch_no, len(batch))
        return report

    async def backfill_missing_hashes(
        self,
        object_store: BaseObjectStore,
        hasher: ContentHasher,
    ) -> BackfillReport:
        """Hash objects for rows whose full_hash is null and record it.

        Rows that already carry a hash are never selected, so repeated
        passes only touch what is still missing.
        """
        refs = await asyncio.wait_for(
            self._store.select_missing_hash(), timeout=self._timeout_s,
        )
        report = BackfillReport(selected=len(refs))
        logger.info("Backfilling hashes for %d catalog row(s)", len(refs))

        for index, ref in enumerate(refs):
            if index:
                await asyncio.sleep(self._backfill_delay_s)
            try:
                stream = await asyncio.wait_for(
                    object_store.open_stream(ref.object_key), timeout=self._timeout_s,
                )
                try:
                    fingerprint = await asyncio.to_thread(
                        hasher.hash_stream, stream, ref.object_key,
                    )
                finally:
                    stream.close()
                await asyncio.wait_for(
                    self._store.update_full_hash(ref.id, fingerprint.full_hash),
                    timeout=self._timeout_s,
                )
            except Exception as exc:
                report.failed += 1
                report.failed_keys.append(ref.object_key)
                logger.error(
                    "Hash backfill failed for %s (row %s): %s",
                    ref.object_key, ref.id, exc,
                )
                continue

            report.updated += 1
            logger.info("Backfilled hash for %s", ref.object_key)

        return report

    async def verify_objects(self, object_store: BaseObjectStore) -> VerifyReport:
        """Report catalog rows whose object is missing from object_store.

        Read-only: rows are never modified or deleted. A row whose check
        errors is reported separately from rows known to be missing.
        """
        refs = await asyncio.wait_for(self._store.select_all(), timeout=self._timeout_s)
        report = VerifyReport(checked=len(refs))
        logger.info("Verifying %d catalog row(s) against the object store", len(refs))

        for ref in refs:
            try:
                found = await asyncio.wait_for(
                    object_store.exists(ref.object_key), timeout=self._timeout_s,
                )
            except Exception as exc:
                report.errors.append(ref.object_key)
                logger.error(
                    "Could not check %s (row %s): %s",
                    ref.object_key, ref.id, str(exc) or type(exc).__name__,
                )
                continue

            if found:
                report.present += 1
            else:
                report.missing.append(ref)
                logger.warning(
                    "Catalog row %s (%s) has no object at %s",
                    ref.id, ref.track_id, ref.object_key,
                )

        logger.info(
            "Verify complete: %d present, %d missing, %d unchecked",
            report.present, len(report.missing), len(report.errors),
        )
        return report
