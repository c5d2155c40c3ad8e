# tests/integration/pipeline/test_int_ingest_local.py — v1
"""Integration: full ingestion run over local stores, configured from Settings.

No Docker required. Exercises build_ingestion -> scan -> match -> migrate
-> commit, a replayed run, and the hash backfill pass.
"""

from __future__ import annotations

import hashlib

import pytest

from catalog_ingest.catalog.writer import CatalogWriter
from catalog_ingest.config.settings import Settings
from catalog_ingest.hashing.hasher import ContentHasher
from catalog_ingest.keys.codec import decode_key
from catalog_ingest.pipeline.ingest import build_ingestion
from catalog_ingest.storage.local_store import LocalObjectStore

METADATA_CSV = (
    "Track,Genre,Tags\n"
    "This Love's a Serenade,\"jazz, soul\",\"lush, melodic\"\n"
    "Break the Chains,\"r&b, orchestral, soul\",\"uplifting, anthemic\"\n"
    "Groove on the Beat,\"edm, house\",\"breakbeat, party\"\n"
)


@pytest.fixture
def workspace(tmp_path):
    source = tmp_path / "bucket"
    (source / "library" / "originals").mkdir(parents=True)
    originals = source / "library" / "originals"
    (originals / "break-the-chains-b5c6d7e8.mp3").write_bytes(b"chains")
    (originals / "groove-on-the-beat-version-2-0123456789.wav").write_bytes(b"groove v2")
    (originals / "totally-unrelated-name-abcdef0123.mp3").write_bytes(b"mystery")
    (originals / "cover-art.jpg").write_bytes(b"jpeg")
    (originals / "Not A Canonical Key.mp3").write_bytes(b"legacy")

    csv_path = tmp_path / "metadata.csv"
    csv_path.write_text(METADATA_CSV, encoding="utf-8")
    return tmp_path, csv_path


def _settings(root, csv_path) -> Settings:
    return Settings(
        _env_file=None,
        source_backend="local",
        source_path=str(root / "bucket"),
        source_prefix="library/originals",
        destination_backend="local",
        destination_path=str(root / "library"),
        catalog_backend="memory",
        metadata_csv=csv_path,
        temp_root=root / "work",
        backfill_delay_s=0,
    )


class TestLocalIngestion:
    @pytest.mark.asyncio
    async def test_full_run(self, workspace):
        root, csv_path = workspace
        run = build_ingestion(_settings(root, csv_path))
        summary = await run.run("library/originals")

        assert summary.as_counts() == {"succeeded": 3, "failed": 0, "total": 3}
        assert summary.skipped_keys == ["library/originals/Not A Canonical Key.mp3"]
        assert summary.unmatched_track_ids == ["totally-unrelated-name"]

        catalog = run._orchestrator._writer.store
        assert await catalog.count_rows() == 3

        versioned = catalog.get("groove-on-the-beat-version-2")
        assert versioned.genres == ["edm", "house"]
        assert versioned.content_type == "audio/wav"
        parsed = decode_key(versioned.object_key)
        assert parsed.track_id == "groove-on-the-beat"
        assert parsed.version == 2
        assert parsed.catalog_track_id == "groove-on-the-beat-version-2"
        assert parsed.short_hash == hashlib.sha256(b"groove v2").hexdigest()[:10]

        fallback = catalog.get("totally-unrelated-name")
        assert fallback.genres == ["unknown"]

        placed = LocalObjectStore(root / "library")
        page = await placed.list_page("library/originals")
        assert len(page.objects) == 3
        assert list((root / "work").iterdir()) == []

    @pytest.mark.asyncio
    async def test_replay_and_backfill(self, workspace):
        root, csv_path = workspace
        settings = _settings(root, csv_path)
        run = build_ingestion(settings)
        await run.run("library/originals")
        catalog = run._orchestrator._writer.store
        before = catalog.rows

        # Replaying the same run converges on the same catalog state.
        await run.run("library/originals")
        assert catalog.rows == before

        # Drop one hash and let the backfill pass restore it.
        await catalog.upsert_rows([before["break-the-chains"].model_copy(update={"full_hash": None})])
        writer = CatalogWriter(catalog, backfill_delay_s=0)
        report = await writer.backfill_missing_hashes(
            LocalObjectStore(root / "library"), ContentHasher(),
        )
        assert report.updated == 1
        assert catalog.get("break-the-chains").full_hash == hashlib.sha256(b"chains").hexdigest()
