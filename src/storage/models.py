# src/storage/models.py — v2
"""Storage domain models: ListingPage."""

from __future__ import annotations

from pydantic import BaseModel, Field

from catalog_ingest.core.models import StorageObject


class ListingPage(BaseModel):
    """One page of an object-store listing."""

    objects: list[StorageObject] = Field(default_factory=list)
    next_token: str | None = None
