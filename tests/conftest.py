# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides sample metadata candidates, storage objects, a fake S3 client and
in-memory stores. No external dependencies; all I/O is local or mocked.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from catalog_ingest.catalog.memory_store import InMemoryCatalogStore
from catalog_ingest.catalog.writer import CatalogWriter
from catalog_ingest.core.models import MetadataCandidate, StorageObject
from catalog_ingest.storage.local_store import LocalObjectStore


# === FIXTURES: Sample data ===


SAMPLE_CANDIDATES = [
    MetadataCandidate(
        title="This Love's a Serenade",
        genre="jazz, soul",
        tags="female vocalist, jazz, soul jazz, lush, passionate, melodic, soulful",
    ),
    MetadataCandidate(
        title="Break the Chains",
        genre="r&b, orchestral, soul",
        tags="female vocalist, r&b, uplifting, conscious, anthemic, orchestral, soul",
    ),
    MetadataCandidate(
        title="Dancing Thrilling",
        genre="disco, r&b, soul, funk",
        tags="dance, disco, r&b, soul, smooth soul, funk, 80s, soulful",
    ),
    MetadataCandidate(
        title="Groove on the Beat",
        genre="edm, house",
        tags="male vocalist, electronic, breakbeat, house, funky house, party",
    ),
    MetadataCandidate(
        title="Hot Honey Dripping",
        genre="r&b, funk, edm, disco",
        tags="male vocalist, r&b, funk, electronic, edm, rhythmic, dance-pop",
    ),
]


@pytest.fixture
def sample_candidates() -> list[MetadataCandidate]:
    """The five curated spreadsheet rows."""
    return list(SAMPLE_CANDIDATES)


@pytest.fixture
def sample_object() -> StorageObject:
    """Minimal canonical storage object."""
    return StorageObject(
        key="library/originals/break-the-chains-b5c6d7e8.mp3",
        size_bytes=4,
        last_modified=datetime(2025, 8, 30, 12, 0, tzinfo=timezone.utc),
    )


# === FIXTURES: Stores ===


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Local source bucket with three legacy-named tracks."""
    root = tmp_path / "source"
    tracks = root / "tracks"
    tracks.mkdir(parents=True)
    (tracks / "Break The Chains.mp3").write_bytes(b"chains audio")
    (tracks / "Groove On The Beat.wav").write_bytes(b"groove audio")
    (tracks / "Hot Honey Dripping.mp3").write_bytes(b"honey audio")
    return root


@pytest.fixture
def source_store(source_dir: Path) -> LocalObjectStore:
    return LocalObjectStore(source_dir)


@pytest.fixture
def destination_store(tmp_path: Path) -> LocalObjectStore:
    dest = tmp_path / "destination"
    dest.mkdir()
    return LocalObjectStore(dest)


@pytest.fixture
def catalog_store() -> InMemoryCatalogStore:
    return InMemoryCatalogStore()


@pytest.fixture
def catalog_writer(catalog_store: InMemoryCatalogStore) -> CatalogWriter:
    return CatalogWriter(catalog_store, backfill_delay_s=0.0)


class _FakeClientError(Exception):
    """Stand-in for botocore ClientError carrying an error code."""

    def __init__(self, code: str) -> None:
        super().__init__(f"An error occurred ({code}) when calling the HeadObject operation")
        self.response = {"Error": {"Code": code}}


@pytest.fixture
def fake_s3_client() -> MagicMock:
    """boto3-like S3 client over a dict, paginating two keys per page."""
    storage: dict[str, bytes] = {}
    content_types: dict[str, str] = {}
    page_size = 2

    client = MagicMock()
    client.storage = storage
    client.content_types = content_types

    def list_objects_v2(Bucket, Prefix, ContinuationToken=None):
        keys = sorted(k for k in storage if k.startswith(Prefix))
        start = int(ContinuationToken) if ContinuationToken else 0
        page = keys[start:start + page_size]
        response = {
            "Contents": [
                {
                    "Key": k,
                    "Size": len(storage[k]),
                    "LastModified": datetime(2025, 8, 30, tzinfo=timezone.utc),
                }
                for k in page
            ],
            "IsTruncated": start + page_size < len(keys),
        }
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(start + page_size)
        return response

    def get_object(Bucket, Key):
        if Key not in storage:
            raise Exception(f"NoSuchKey: {Key}")
        return {"Body": io.BytesIO(storage[Key])}

    def upload_fileobj(Fileobj, Bucket, Key, ExtraArgs=None):
        storage[Key] = Fileobj.read()
        content_types[Key] = (ExtraArgs or {}).get("ContentType", "")

    def head_object(Bucket, Key):
        if Key not in storage:
            raise _FakeClientError("404")
        return {"ContentLength": len(storage[Key]), "ContentType": content_types.get(Key, "")}

    client.list_objects_v2 = list_objects_v2
    client.get_object = get_object
    client.upload_fileobj = upload_fileobj
    client.head_object = head_object
    client.exceptions.ClientError = _FakeClientError
    return client
