# src/migration/orchestrator.py — v1
"""Migration orchestrator — drive each matched object through the pipeline.

Per object, strictly in order:
    fetch  -> download the source bytes to a unique temp file
    hash   -> stream the temp file through SHA-256
    place  -> upload under the content-addressed library key (skipped when
              that key is already present)
    commit -> upsert the catalog row
    cleanup (always) -> remove the temp file

Objects are independent: they run with bounded concurrency and a failure
at any stage is recorded as failed@<stage> without touching the others.
There is no retry within a run; re-submitting is safe because placement
is content-addressed and the catalog write is an upsert.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from catalog_ingest.catalog.base_catalog_store import CatalogWriteError
from catalog_ingest.core.models import (
    CatalogRow,
    ContentFingerprint,
    MatchResult,
    MigrationRecord,
    MigrationSummary,
)
from catalog_ingest.hashing.hasher import ContentHasher
from catalog_ingest.keys.codec import (
    LIBRARY_PREFIX,
    content_type_for,
    encode_library_key,
    preview_key,
)
from catalog_ingest.logging.context import set_object_context, set_run_context, set_stage

if TYPE_CHECKING:
    from catalog_ingest.catalog.writer import CatalogWriter
    from catalog_ingest.storage.base_object_store import BaseObjectStore

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4
DEFAULT_TEST_MODE_LIMIT = 3


@dataclass(frozen=True)
class StageTimeouts:
    """Timeouts (seconds) for each network call of the pipeline."""

    fetch_s: float = 300.0
    put_s: float = 300.0


def build_catalog_row(
    match: MatchResult,
    fingerprint: ContentFingerprint,
    object_key: str,
    size_bytes: int,
) -> CatalogRow:
    """Assemble the catalog row for a placed object."""
    candidate = match.candidate
    return CatalogRow(
        track_id=match.track_id,
        display_name=candidate.title,
        genres=candidate.genre_list,
        tags=candidate.tag_list,
        object_key=object_key,
        preview_key=preview_key(object_key),
        short_hash=fingerprint.short_hash,
        full_hash=fingerprint.full_hash,
        size_bytes=size_bytes,
        content_type=content_type_for(match.storage_object.extension),
    )


class MigrationOrchestrator:
    """Run the fetch -> hash -> place -> commit pipeline over many objects.

    Args:
        source: Store holding the objects to ingest.
        destination: Store receiving content-addressed originals.
        catalog_writer: Writer used for the commit stage.
        hasher: Content hasher (defaults to SHA-256, 10-char short hash).
        concurrency: Max objects in flight at once.
        timeouts: Per-call timeouts for fetch and put.
        temp_root: Parent directory for the run's temp directory.
        destination_prefix: Key prefix for placed objects.
        test_mode_limit: Objects kept when test_mode is on.
        skip_existing: Skip the upload when the content-addressed key is
            already present in the destination.
    """

    def __init__(
        self,
        source: BaseObjectStore,
        destination: BaseObjectStore,
        catalog_writer: CatalogWriter,
        hasher: ContentHasher | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeouts: StageTimeouts | None = None,
        temp_root: Path | None = None,
        destination_prefix: str = LIBRARY_PREFIX,
        test_mode_limit: int = DEFAULT_TEST_MODE_LIMIT,
        skip_existing: bool = True,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._source = source
        self._destination = destination
        self._writer = catalog_writer
        self._hasher = hasher or ContentHasher()
        self._concurrency = concurrency
        self._timeouts = timeouts or StageTimeouts()
        self._temp_root = temp_root
        self._destination_prefix = destination_prefix
        self._test_mode_limit = test_mode_limit
        self._skip_existing = skip_existing

    async def run(
        self,
        matches: list[MatchResult],
        test_mode: bool = False,
        cancel_event: asyncio.Event | None = None,
        run_id: str | None = None,
    ) -> MigrationSummary:
        """Migrate all matched objects and return the final counts.

        Args:
            matches: Scanned objects paired with their metadata.
            test_mode: Only process the first test_mode_limit objects.
            cancel_event: Once set, no new object is started; objects
                already in flight finish normally.
            run_id: Identifier attached to every log record of the run.
        """
        items = matches[: self._test_mode_limit] if test_mode else list(matches)
        run_id = run_id or uuid.uuid4().hex[:12]
        set_run_context(run_id)
        if test_mode:
            logger.info("Test mode: processing first %d of %d object(s)", len(items), len(matches))
        logger.info(
            "Starting migration run %s: %d object(s), concurrency=%d",
            run_id, len(items), self._concurrency,
        )

        t0 = time.perf_counter()
        semaphore = asyncio.Semaphore(self._concurrency)

        temp_root = str(self._temp_root) if self._temp_root else None
        if self._temp_root:
            self._temp_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=f"catalog-ingest-{run_id}-", dir=temp_root) as tmp:
            workdir = Path(tmp)
            outcomes = await asyncio.gather(*(
                self._guarded(match, index, workdir, semaphore, cancel_event)
                for index, match in enumerate(items)
            ))

        summary = MigrationSummary(duration_seconds=round(time.perf_counter() - t0, 2))
        for outcome in outcomes:
            if outcome is None:
                summary.not_started += 1
            elif outcome.failed:
                summary.failed += 1
                summary.failures.append(outcome)
            else:
                summary.succeeded += 1
        summary.unmatched_track_ids = [m.track_id for m in items if m.is_default]

        logger.info(
            "Migration run %s complete: %d/%d succeeded, %d failed, %d not started",
            run_id, summary.succeeded, summary.total, summary.failed, summary.not_started,
        )
        return summary

    async def _guarded(
        self,
        match: MatchResult,
        index: int,
        workdir: Path,
        semaphore: asyncio.Semaphore,
        cancel_event: asyncio.Event | None,
    ) -> MigrationRecord | None:
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Run cancelled, not starting %s", match.storage_object.key)
                return None
            return await self.migrate_one(match, workdir, index)

    async def migrate_one(
        self,
        match: MatchResult,
        workdir: Path,
        index: int = 0,
    ) -> MigrationRecord:
        """Run one object through the pipeline. Never raises on pipeline errors."""
        obj = match.storage_object
        record = MigrationRecord(key=obj.key, track_id=match.track_id)
        set_object_context(obj.key, record.stage)

        suffix = f".{obj.extension}" if obj.extension else ""
        temp_path = workdir / f"{index:05d}-{uuid.uuid4().hex}{suffix}"
        try:
            size_bytes = await asyncio.wait_for(
                self._source.download(obj.key, temp_path),
                timeout=self._timeouts.fetch_s,
            )
            self._advance(record, "fetched")

            fingerprint = await asyncio.to_thread(self._hasher.hash_file, temp_path)
            record.fingerprint = fingerprint
            self._advance(record, "hashed")

            destination_key = encode_library_key(
                match.bare_track_id,
                fingerprint.short_hash,
                obj.extension,
                prefix=self._destination_prefix,
                version=match.version,
            )
            if self._skip_existing and await asyncio.wait_for(
                self._destination.exists(destination_key),
                timeout=self._timeouts.put_s,
            ):
                logger.info("%s already placed, skipping upload", destination_key)
            else:
                await asyncio.wait_for(
                    self._destination.upload(
                        destination_key, temp_path, content_type_for(obj.extension),
                    ),
                    timeout=self._timeouts.put_s,
                )
            record.destination_key = destination_key
            self._advance(record, "placed")

            row = build_catalog_row(match, fingerprint, destination_key, size_bytes)
            report = await self._writer.upsert([row])
            result = report.result_for(row.track_id)
            if result is None or not result.ok:
                reason = result.error if result is not None else "no result returned"
                raise CatalogWriteError(reason or "row rejected")
            self._advance(record, "committed")
        except Exception as exc:
            record.fail(_describe(exc))
            logger.error(
                "Migration of %s (%s) failed at %s: %s",
                obj.key, match.track_id, record.failed_stage, record.error,
            )
        finally:
            temp_path.unlink(missing_ok=True)

        return record

    @staticmethod
    def _advance(record: MigrationRecord, stage: str) -> None:
        record.advance(stage)  # type: ignore[arg-type]
        set_stage(stage)
        logger.debug("%s -> %s", record.key, stage)


def _describe(exc: Exception) -> str:
    """Error text for logs; timeouts carry no message of their own."""
    if isinstance(exc, asyncio.TimeoutError):
        return "timed out"
    return str(exc) or type(exc).__name__
