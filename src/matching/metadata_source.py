# src/matching/metadata_source.py — v1
"""Read curated track metadata from a spreadsheet CSV export.

Expected columns (header names configurable): a title column, a
comma-separated genre column and a comma-separated tag column.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from catalog_ingest.core.models import MetadataCandidate

logger = logging.getLogger(__name__)


class MetadataSourceError(Exception):
    """Raised when the metadata export is missing or lacks required columns."""


def load_candidates(
    path: Path,
    title_column: str = "Track",
    genre_column: str = "Genre",
    tags_column: str = "Tags",
) -> list[MetadataCandidate]:
    """Load metadata candidates, skipping rows without a title.

    Raises:
        MetadataSourceError: If the file cannot be read or has no title column.
    """
    try:
        with open(path, encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            if reader.fieldnames is None or title_column not in reader.fieldnames:
                raise MetadataSourceError(
                    f"{path}: missing required column {title_column!r}"
                )
            candidates = [
                MetadataCandidate(
                    title=row[title_column].strip(),
                    genre=(row.get(genre_column) or "").strip(),
                    tags=(row.get(tags_column) or "").strip(),
                )
                for row in reader
                if (row.get(title_column) or "").strip()
            ]
    except OSError as exc:
        raise MetadataSourceError(f"Cannot read metadata file {path}: {exc}") from exc

    logger.info("Loaded %d metadata candidates from %s", len(candidates), path)
    return candidates
