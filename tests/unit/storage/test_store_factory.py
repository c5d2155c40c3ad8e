# tests/unit/storage/test_store_factory.py — v1
"""Tests for storage/store_factory.py."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from catalog_ingest.config.settings import Settings
from catalog_ingest.storage.local_store import LocalObjectStore
from catalog_ingest.storage.store_factory import create_object_store
from catalog_ingest.storage.supabase_store import SupabaseObjectStore


def _settings(**kwargs) -> Settings:
    defaults = {
        "source_backend": "local",
        "source_path": "/tmp/src",
        "destination_backend": "local",
        "destination_path": "/tmp/dst",
        "catalog_backend": "memory",
    }
    defaults.update(kwargs)
    return Settings(_env_file=None, **defaults)


class TestCreateObjectStore:
    def test_local_roles(self):
        settings = _settings()
        assert isinstance(create_object_store(settings, "source"), LocalObjectStore)
        assert isinstance(create_object_store(settings, "destination"), LocalObjectStore)

    def test_s3_destination(self):
        pytest.importorskip("boto3")
        from catalog_ingest.storage.s3_store import S3ObjectStore

        settings = _settings(
            destination_backend="s3",
            destination_bucket="audafact",
            r2_account_id="acct",
            r2_access_key_id="key",
            r2_secret_access_key="secret",
        )
        store = create_object_store(settings, "destination")
        assert isinstance(store, S3ObjectStore)
        assert store.bucket == "audafact"

    def test_supabase_source_uses_shared_client(self):
        settings = _settings(
            source_backend="supabase",
            source_bucket="library-tracks",
            supabase_url="https://x.supabase.co",
            supabase_service_role_key="service",
        )
        client = MagicMock()
        store = create_object_store(settings, "source", supabase_client=client)
        assert isinstance(store, SupabaseObjectStore)

    def test_unsupported_destination(self):
        settings = _settings()
        settings.destination_backend = "supabase"  # type: ignore[assignment]
        with pytest.raises(ValueError, match="Unsupported destination"):
            create_object_store(settings, "destination")
