# src/storage/store_factory.py — v3
"""Factory: instantiate source/destination object stores from configuration."""

from __future__ import annotations

from typing import Any, Literal

from catalog_ingest.config.settings import Settings
from catalog_ingest.storage.base_object_store import BaseObjectStore
from catalog_ingest.storage.local_store import LocalObjectStore

StoreRole = Literal["source", "destination"]


def create_object_store(
    settings: Settings,
    role: StoreRole,
    supabase_client: Any = None,
) -> BaseObjectStore:
    """Create the object store configured for the given role.

    Args:
        settings: Application settings.
        role: "source" (objects to ingest) or "destination" (library originals).
        supabase_client: Shared supabase Client, created on demand if omitted.

    Raises:
        ValueError: If the backend type is not supported for the role.
    """
    backend = settings.source_backend if role == "source" else settings.destination_backend

    if backend == "local":
        path = settings.source_path if role == "source" else settings.destination_path
        return LocalObjectStore(path)

    if backend == "s3":
        from catalog_ingest.storage.s3_store import S3ObjectStore
        bucket = settings.source_bucket if role == "source" else settings.destination_bucket
        return S3ObjectStore(
            bucket=bucket,
            region=settings.s3_region or None,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.r2_access_key_id or None,
            secret_access_key=settings.r2_secret_access_key or None,
            connect_timeout_s=settings.connect_timeout_s,
        )

    if backend == "supabase" and role == "source":
        from catalog_ingest.catalog.supabase_store import create_supabase_client
        from catalog_ingest.storage.supabase_store import SupabaseObjectStore
        client = supabase_client or create_supabase_client(
            settings.supabase_url, settings.supabase_service_role_key,
        )
        return SupabaseObjectStore(client, bucket=settings.source_bucket)

    raise ValueError(f"Unsupported {role} store backend: {backend!r}")
