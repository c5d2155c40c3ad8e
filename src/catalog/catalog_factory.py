# src/catalog/catalog_factory.py — v1
"""Factory for catalog store instantiation."""

from __future__ import annotations

from typing import Any

from catalog_ingest.catalog.base_catalog_store import BaseCatalogStore
from catalog_ingest.config.settings import Settings


def create_catalog_store(settings: Settings, supabase_client: Any = None) -> BaseCatalogStore:
    """Instantiate the configured catalog backend."""
    if settings.catalog_backend == "memory":
        from catalog_ingest.catalog.memory_store import InMemoryCatalogStore
        return InMemoryCatalogStore()

    if settings.catalog_backend == "supabase":
        from catalog_ingest.catalog.supabase_store import (
            SupabaseCatalogStore,
            create_supabase_client,
        )
        client = supabase_client or create_supabase_client(
            settings.supabase_url, settings.supabase_service_role_key,
        )
        return SupabaseCatalogStore(client, table=settings.catalog_table)

    raise ValueError(f"Unsupported catalog backend: {settings.catalog_backend!r}")
