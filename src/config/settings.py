# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: which stores
to read from and write to, credentials, matching and pipeline tuning,
logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Source store (objects to ingest) ===
    source_backend: Literal["s3", "supabase", "local"] = "supabase"
    source_bucket: str = "library-tracks"
    source_prefix: str = ""
    source_path: str = ""

    # === Destination store (content-addressed originals) ===
    destination_backend: Literal["s3", "local"] = "s3"
    destination_bucket: str = "audafact"
    destination_prefix: str = "library/originals"
    destination_path: str = ""

    # === S3 / Cloudflare R2 ===
    r2_account_id: str = ""
    r2_access_key_id: str = ""
    r2_secret_access_key: str = ""
    r2_endpoint: str = ""
    s3_region: str = "auto"

    # === Supabase ===
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # === Catalog ===
    catalog_backend: Literal["supabase", "memory"] = "supabase"
    catalog_table: str = "library_tracks"
    catalog_batch_size: int = 10
    backfill_delay_s: float = 0.1

    # === Metadata spreadsheet ===
    metadata_csv: Path | None = None
    metadata_title_column: str = "Track"
    metadata_genre_column: str = "Genre"
    metadata_tags_column: str = "Tags"
    match_threshold: float = 0.70

    # === Pipeline ===
    allowed_extensions: str = "mp3,wav"
    accept_plain_filenames: bool = False
    skip_existing_uploads: bool = True
    concurrency: int = 4
    test_mode_limit: int = 3
    temp_root: Path | None = None

    # === Per-call timeouts ===
    connect_timeout_s: float = 10.0
    fetch_timeout_s: float = 300.0
    put_timeout_s: float = 300.0
    catalog_timeout_s: float = 30.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        uses_s3 = "s3" in (self.source_backend, self.destination_backend)
        if self.source_backend == "s3" and not self.source_bucket:
            errors.append("SOURCE_BUCKET must be set when SOURCE_BACKEND=s3")
        if self.destination_backend == "s3" and not self.destination_bucket:
            errors.append("DESTINATION_BUCKET must be set when DESTINATION_BACKEND=s3")
        if uses_s3 and bool(self.r2_access_key_id) != bool(self.r2_secret_access_key):
            errors.append("R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY must be set together")

        uses_supabase = (
            self.source_backend == "supabase" or self.catalog_backend == "supabase"
        )
        if uses_supabase and not (self.supabase_url and self.supabase_service_role_key):
            errors.append(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for supabase backends"
            )

        if self.source_backend == "local" and not self.source_path:
            errors.append("SOURCE_PATH must be set when SOURCE_BACKEND=local")
        if self.destination_backend == "local" and not self.destination_path:
            errors.append("DESTINATION_PATH must be set when DESTINATION_BACKEND=local")

        if not 0.0 <= self.match_threshold <= 1.0:
            errors.append("MATCH_THRESHOLD must be within [0, 1]")
        if self.concurrency < 1:
            errors.append("CONCURRENCY must be >= 1")
        if self.catalog_batch_size < 1:
            errors.append("CATALOG_BATCH_SIZE must be >= 1")
        if self.test_mode_limit < 1:
            errors.append("TEST_MODE_LIMIT must be >= 1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def allowed_extensions_list(self) -> list[str]:
        """Parse comma-separated extension allow-list."""
        return [
            e.strip().lower().lstrip(".")
            for e in self.allowed_extensions.split(",")
            if e.strip()
        ]

    @property
    def s3_endpoint_url(self) -> str | None:
        """Explicit endpoint, else the R2 account endpoint, else AWS default."""
        if self.r2_endpoint:
            return self.r2_endpoint
        if self.r2_account_id:
            return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"
        return None


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or one-off runs).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
