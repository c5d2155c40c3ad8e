# src/catalog/models.py — v1
"""Catalog domain models and the row <-> column mapping."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from catalog_ingest.core.models import CatalogRow


class RowWriteResult(BaseModel):
    """Outcome of writing one row."""

    track_id: str
    ok: bool
    error: str | None = None


class UpsertReport(BaseModel):
    """Summary of a batched upsert."""

    results: list[RowWriteResult] = Field(default_factory=list)
    batches: int = 0
    failed_batches: int = 0

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    def result_for(self, track_id: str) -> RowWriteResult | None:
        for result in self.results:
            if result.track_id == track_id:
                return result
        return None


class CatalogRecordRef(BaseModel):
    """Minimal projection of a catalog row needing a hash backfill."""

    id: int | str
    track_id: str
    object_key: str


class BackfillReport(BaseModel):
    """Summary of a hash backfill pass."""

    selected: int = 0
    updated: int = 0
    failed: int = 0
    failed_keys: list[str] = Field(default_factory=list)


class VerifyReport(BaseModel):
    """Catalog rows checked against the object store (read-only)."""

    checked: int = 0
    present: int = 0
    missing: list[CatalogRecordRef] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.missing and not self.errors


_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size_bytes: int) -> str:
    """Human-readable size for the catalog's display column."""
    if size_bytes <= 0:
        return "0 Bytes"
    exponent = 0
    value = float(size_bytes)
    while value >= 1024 and exponent < len(_SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[exponent]}"


# Operator-curated columns; only written when the row sets them explicitly.
CURATION_FIELDS = ("is_active", "is_pro_only", "rotation_week")


def to_record(row: CatalogRow) -> dict[str, Any]:
    """Map a CatalogRow onto catalog table columns."""
    ext = row.object_key.rsplit(".", 1)[-1].lower() if "." in row.object_key else ""
    record: dict[str, Any] = {
        "track_id": row.track_id,
        "name": row.display_name,
        "genre": row.genres,
        "tags": row.tags,
        "file_key": row.object_key,
        "preview_key": row.preview_key,
        "short_hash": row.short_hash,
        "content_hash": row.full_hash,
        "size_bytes": row.size_bytes,
        "size": format_file_size(row.size_bytes),
        "content_type": row.content_type,
        "type": ext,
    }
    for field in CURATION_FIELDS:
        if field in row.model_fields_set:
            record[field] = getattr(row, field)
    return record


def from_record(record: dict[str, Any]) -> CatalogRow:
    """Inverse of to_record() for rows read back from the catalog."""
    curation = {field: record[field] for field in CURATION_FIELDS if field in record}
    return CatalogRow(
        track_id=record["track_id"],
        display_name=record.get("name") or record["track_id"],
        genres=list(record.get("genre") or []),
        tags=list(record.get("tags") or []),
        object_key=record["file_key"],
        preview_key=record.get("preview_key"),
        short_hash=record["short_hash"],
        full_hash=record.get("content_hash"),
        size_bytes=record.get("size_bytes") or 0,
        content_type=record.get("content_type") or "audio/mpeg",
        **curation,
    )
