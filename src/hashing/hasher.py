# src/hashing/hasher.py — v1
"""Streaming content fingerprinting.

SHA-256 over the exact byte stream of an object, read incrementally so
large media files never have to sit in memory. The short hash embedded in
object keys is a fixed-length prefix of the full digest.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import BinaryIO, Iterable

from catalog_ingest.core.models import SHORT_HASH_LENGTH, ContentFingerprint

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


class HashingError(Exception):
    """Raised when the byte stream of an object cannot be read to the end."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Hashing failed for {source}: {reason}")


def short_hash_of(full_hash: str, length: int = SHORT_HASH_LENGTH) -> str:
    """Return the key-embedded prefix of a full hex digest."""
    return full_hash[:length]


class ContentHasher:
    """Produce ContentFingerprints from streams, chunks, bytes or files."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        short_length: int = SHORT_HASH_LENGTH,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        self._chunk_size = chunk_size
        self._short_length = short_length

    def _fingerprint(self, digest) -> ContentFingerprint:
        full_hash = digest.hexdigest()
        return ContentFingerprint(
            full_hash=full_hash,
            short_hash=short_hash_of(full_hash, self._short_length),
        )

    def hash_stream(self, stream: BinaryIO, source: str = "<stream>") -> ContentFingerprint:
        """Hash a readable binary stream until EOF.

        Args:
            stream: Object with a read(n) method returning bytes.
            source: Label used in errors and logs (usually the object key).

        Raises:
            HashingError: If reading the stream fails midway.
        """
        digest = hashlib.sha256()
        total = 0
        try:
            while True:
                chunk = stream.read(self._chunk_size)
                if not chunk:
                    break
                digest.update(chunk)
                total += len(chunk)
        except Exception as exc:
            raise HashingError(source, str(exc)) from exc

        logger.debug("Hashed %s (%d bytes)", source, total)
        return self._fingerprint(digest)

    def hash_chunks(self, chunks: Iterable[bytes], source: str = "<chunks>") -> ContentFingerprint:
        """Hash an iterable of byte chunks (e.g. a streaming HTTP body)."""
        digest = hashlib.sha256()
        try:
            for chunk in chunks:
                digest.update(chunk)
        except Exception as exc:
            raise HashingError(source, str(exc)) from exc
        return self._fingerprint(digest)

    def hash_bytes(self, data: bytes) -> ContentFingerprint:
        digest = hashlib.sha256(data)
        return self._fingerprint(digest)

    def hash_file(self, path: Path) -> ContentFingerprint:
        """Hash a local file in chunk_size reads."""
        try:
            with open(path, "rb") as fh:
                return self.hash_stream(fh, source=str(path))
        except OSError as exc:
            raise HashingError(str(path), str(exc)) from exc
