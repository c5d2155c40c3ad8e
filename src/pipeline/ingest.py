# src/pipeline/ingest.py — v1
"""Ingestion run — scan -> decode -> match -> migrate.

Usage:
    run = build_ingestion(settings)
    summary = await run.run(prefix, test_mode=True)

A listing failure aborts the whole run (ListingError propagates).
Keys outside the canonical grammar are skipped with a warning and are not
counted as pipeline failures, since they were never attempted.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from catalog_ingest.core.models import KeyParseError, MigrationSummary, StorageObject
from catalog_ingest.keys.codec import decode_key, slugify

if TYPE_CHECKING:
    from catalog_ingest.config.settings import Settings
    from catalog_ingest.matching.matcher import FuzzyMatcher
    from catalog_ingest.migration.orchestrator import MigrationOrchestrator
    from catalog_ingest.storage.scanner import StoreScanner

logger = logging.getLogger(__name__)


class IngestionRun:
    """Wire scanner, matcher and orchestrator into one operator-facing run.

    Args:
        scanner: Lists source objects.
        matcher: Pairs track ids with curated metadata.
        orchestrator: Migrates matched objects.
        accept_plain_filenames: Derive the track id from the file name of
            keys that are not canonical (legacy bucket migration) instead
            of skipping them.
    """

    def __init__(
        self,
        scanner: StoreScanner,
        matcher: FuzzyMatcher,
        orchestrator: MigrationOrchestrator,
        accept_plain_filenames: bool = False,
    ) -> None:
        self._scanner = scanner
        self._matcher = matcher
        self._orchestrator = orchestrator
        self._accept_plain_filenames = accept_plain_filenames

    def resolve_track_id(self, obj: StorageObject) -> tuple[str, str, int] | KeyParseError:
        """(match name, catalog track id, version) for a scanned object, or why it has none.

        The match name is the bare track id shared by every version; the
        catalog id carries the version suffix for versions above 1.
        """
        decoded = decode_key(obj.key)
        if not isinstance(decoded, KeyParseError):
            return decoded.track_id, decoded.catalog_track_id, decoded.version
        if self._accept_plain_filenames:
            slug = slugify(PurePosixPath(obj.key).stem)
            if slug:
                return slug, slug, 1
        return decoded

    async def run(
        self,
        prefix: str,
        test_mode: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> MigrationSummary:
        """Execute one full ingestion run over prefix."""
        objects = await self._scanner.collect(prefix)

        matches = []
        skipped: list[str] = []
        for obj in objects:
            resolved = self.resolve_track_id(obj)
            if isinstance(resolved, KeyParseError):
                logger.warning("Skipping %s: %s", obj.key, resolved.reason)
                skipped.append(obj.key)
                continue
            name, track_id, version = resolved
            matches.append(self._matcher.match(obj, name, track_id, version))

        self._matcher.log_statistics()
        summary = await self._orchestrator.run(
            matches, test_mode=test_mode, cancel_event=cancel_event,
        )
        summary.skipped_keys = skipped
        return summary


def build_ingestion(settings: Settings) -> IngestionRun:
    """Assemble an IngestionRun from configuration."""
    from catalog_ingest.catalog.catalog_factory import create_catalog_store
    from catalog_ingest.catalog.writer import CatalogWriter
    from catalog_ingest.matching.matcher import FuzzyMatcher
    from catalog_ingest.matching.metadata_source import load_candidates
    from catalog_ingest.migration.orchestrator import MigrationOrchestrator, StageTimeouts
    from catalog_ingest.storage.scanner import StoreScanner
    from catalog_ingest.storage.store_factory import create_object_store

    supabase_client = None
    if "supabase" in (settings.source_backend, settings.catalog_backend):
        from catalog_ingest.catalog.supabase_store import create_supabase_client
        supabase_client = create_supabase_client(
            settings.supabase_url, settings.supabase_service_role_key,
        )

    source = create_object_store(settings, "source", supabase_client)
    destination = create_object_store(settings, "destination", supabase_client)
    writer = CatalogWriter(
        create_catalog_store(settings, supabase_client),
        batch_size=settings.catalog_batch_size,
        timeout_s=settings.catalog_timeout_s,
        backfill_delay_s=settings.backfill_delay_s,
    )

    candidates = []
    if settings.metadata_csv is not None:
        candidates = load_candidates(
            settings.metadata_csv,
            title_column=settings.metadata_title_column,
            genre_column=settings.metadata_genre_column,
            tags_column=settings.metadata_tags_column,
        )
    else:
        logger.warning("No METADATA_CSV configured; every object gets default metadata")

    orchestrator = MigrationOrchestrator(
        source=source,
        destination=destination,
        catalog_writer=writer,
        concurrency=settings.concurrency,
        timeouts=StageTimeouts(fetch_s=settings.fetch_timeout_s, put_s=settings.put_timeout_s),
        temp_root=settings.temp_root,
        destination_prefix=settings.destination_prefix,
        test_mode_limit=settings.test_mode_limit,
        skip_existing=settings.skip_existing_uploads,
    )
    return IngestionRun(
        scanner=StoreScanner(source, settings.allowed_extensions_list),
        matcher=FuzzyMatcher(candidates, threshold=settings.match_threshold),
        orchestrator=orchestrator,
        accept_plain_filenames=settings.accept_plain_filenames,
    )
