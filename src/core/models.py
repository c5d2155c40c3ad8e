# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import PurePosixPath
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

SHORT_HASH_LENGTH = 10


# === STORE LISTING ===


class StorageObject(BaseModel):
    """Raw listing entry from an object store. Never persisted."""

    key: str
    size_bytes: int = 0
    last_modified: datetime | None = None

    @property
    def filename(self) -> str:
        return PurePosixPath(self.key).name

    @property
    def extension(self) -> str:
        """Lowercase extension without the dot ("" when the key has none)."""
        return PurePosixPath(self.key).suffix.lstrip(".").lower()


# === CONTENT ADDRESSING ===


class ContentFingerprint(BaseModel):
    """SHA-256 digest of an object's exact bytes plus its short prefix."""

    model_config = ConfigDict(frozen=True)

    full_hash: str
    short_hash: str

    @model_validator(mode="after")
    def _short_hash_is_prefix(self) -> ContentFingerprint:
        if not self.full_hash.startswith(self.short_hash):
            raise ValueError("short_hash must be a prefix of full_hash")
        return self


class ParsedKey(BaseModel):
    """Decoded form of a canonical library object key."""

    model_config = ConfigDict(frozen=True)

    prefix: str
    track_id: str
    version: int = Field(default=1, ge=1)
    short_hash: str
    extension: str
    has_version_segment: bool = False

    @property
    def catalog_track_id(self) -> str:
        """Catalog identity: version 1 shares the bare track id."""
        if self.version == 1:
            return self.track_id
        return f"{self.track_id}-version-{self.version}"


class KeyParseError(BaseModel):
    """Result value for a key outside the canonical grammar."""

    model_config = ConfigDict(frozen=True)

    key: str
    reason: str


# === METADATA RECONCILIATION ===


def split_list_field(value: str) -> list[str]:
    """Split a comma-separated spreadsheet cell, dropping blanks."""
    return [part.strip() for part in value.split(",") if part.strip()]


class MetadataCandidate(BaseModel):
    """One read-only row from the curated metadata spreadsheet."""

    model_config = ConfigDict(frozen=True)

    title: str
    genre: str = ""
    tags: str = ""

    @property
    def genre_list(self) -> list[str]:
        return split_list_field(self.genre)

    @property
    def tag_list(self) -> list[str]:
        return split_list_field(self.tags)


DEFAULT_GENRE = "unknown"


def default_candidate(title: str) -> MetadataCandidate:
    """Fallback candidate used when nothing clears the match threshold."""
    return MetadataCandidate(title=title, genre=DEFAULT_GENRE, tags="")


class MatchResult(BaseModel):
    """A scanned object paired with its metadata (or the default).

    track_id is the catalog identity ("<id>-version-<n>" above version 1);
    base_track_id and version are what the library key is built from.
    """

    storage_object: StorageObject
    track_id: str
    candidate: MetadataCandidate
    score: float = Field(ge=0.0, le=1.0)
    is_default: bool = False
    base_track_id: str | None = None
    version: int = Field(default=1, ge=1)

    @property
    def bare_track_id(self) -> str:
        return self.base_track_id or self.track_id


# === CATALOG ===


class CatalogRow(BaseModel):
    """Canonical metadata record, keyed on track_id."""

    track_id: str
    display_name: str
    genres: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    object_key: str
    preview_key: str | None = None
    short_hash: str
    full_hash: str | None = None
    size_bytes: int = 0
    content_type: str = "audio/mpeg"
    is_active: bool = True
    is_pro_only: bool = False
    rotation_week: int | None = None


# === MIGRATION STATE ===


MigrationStage = Literal["pending", "fetched", "hashed", "placed", "committed"]


class MigrationRecord(BaseModel):
    """Transient per-object pipeline state for a single run."""

    key: str
    track_id: str
    stage: MigrationStage = "pending"
    failed: bool = False
    error: str | None = None
    destination_key: str | None = None
    fingerprint: ContentFingerprint | None = None

    def advance(self, stage: MigrationStage) -> None:
        self.stage = stage

    def fail(self, reason: str) -> None:
        """Mark failed at the stage the object was trying to reach."""
        self.failed = True
        self.error = reason

    @property
    def failed_stage(self) -> str:
        """Name of the stage that could not be completed."""
        order: list[MigrationStage] = ["pending", "fetched", "hashed", "placed", "committed"]
        idx = order.index(self.stage)
        return order[min(idx + 1, len(order) - 1)]

    @property
    def status(self) -> str:
        if self.failed:
            return f"failed@{self.failed_stage}"
        return self.stage


class MigrationSummary(BaseModel):
    """Final counts and diagnostics of an orchestration run."""

    succeeded: int = 0
    failed: int = 0
    not_started: int = 0
    failures: list[MigrationRecord] = Field(default_factory=list)
    unmatched_track_ids: list[str] = Field(default_factory=list)
    skipped_keys: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    def as_counts(self) -> dict[str, int]:
        return {"succeeded": self.succeeded, "failed": self.failed, "total": self.total}

    def format(self) -> str:
        """Human-readable summary for operators."""
        lines = [
            "Migration complete:",
            f"  Succeeded:   {self.succeeded}/{self.total}",
            f"  Failed:      {self.failed}",
        ]
        if self.not_started:
            lines.append(f"  Not started: {self.not_started} (cancelled)")
        if self.skipped_keys:
            lines.append(f"  Skipped:     {len(self.skipped_keys)} unparseable key(s)")
        lines.append(f"  Duration:    {self.duration_seconds:.1f}s")
        for record in self.failures:
            lines.append(f"  ! {record.key} {record.status}: {record.error}")
        if self.unmatched_track_ids:
            lines.append("  Fell back to default metadata:")
            lines.extend(f"    - {track_id}" for track_id in self.unmatched_track_ids)
        return "\n".join(lines)
