# src/keys/codec.py — v1
"""Canonical object-key encoding and decoding.

Key grammar:
    library/originals/<trackId>[-version-<n>]-<shortHash>.<ext>
    users/<userId>/uploads/<uuid>-<slugify(title)>.<ext>

trackId matches [a-z0-9]+(-[a-z0-9]+)* (max 80 chars) and shortHash
matches [a-f0-9]{8,12}. decode_key() never raises: keys outside the
grammar come back as a KeyParseError value so scanners can skip them.

Known limitation: the hash is detected by shape alone. A key that carries
no hash but whose name ends in an 8-12 char hex-looking segment (for
example "cafe-deadbeef.mp3") decodes as track "cafe" with hash "deadbeef".
"""

from __future__ import annotations

import re
import unicodedata
from pathlib import PurePosixPath

from catalog_ingest.core.models import KeyParseError, ParsedKey

LIBRARY_PREFIX = "library/originals"
PREVIEW_PREFIX = "library/previews"
MAX_TRACK_ID_LENGTH = 80

TRACK_ID_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
SHORT_HASH_RE = re.compile(r"^[a-f0-9]{8,12}$")
_FILENAME_RE = re.compile(r"^(?P<stem>.+)-(?P<hash>[a-f0-9]{8,12})\.(?P<ext>[a-z0-9]+)$")
_VERSION_RE = re.compile(r"^(?P<track>.+)-version-(?P<version>[1-9][0-9]*)$")
_APOSTROPHES_RE = re.compile(r"['’]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

CONTENT_TYPES: dict[str, str] = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "flac": "audio/flac",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def strip_diacritics(text: str) -> str:
    """NFKD-normalize and drop combining marks."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify(text: str, max_length: int = MAX_TRACK_ID_LENGTH) -> str:
    """Turn free text into a track-id slug.

    Apostrophes are dropped rather than hyphenated so "Love's" becomes
    "loves", matching how curated titles were historically keyed.
    """
    slug = strip_diacritics(text).lower()
    slug = _APOSTROPHES_RE.sub("", slug)
    slug = _NON_ALNUM_RE.sub("-", slug).strip("-")
    return slug[:max_length].rstrip("-")


def is_valid_track_id(track_id: str) -> bool:
    return len(track_id) <= MAX_TRACK_ID_LENGTH and bool(TRACK_ID_RE.match(track_id))


def encode_library_key(
    track_id: str,
    short_hash: str,
    ext: str,
    prefix: str = LIBRARY_PREFIX,
    version: int = 1,
) -> str:
    """Build the content-addressed key for a library original.

    Args:
        track_id: Bare track id; the length bound applies to it alone.
        version: Track version; "-version-<n>" is emitted for n > 1.

    Raises:
        ValueError: If track_id, short_hash or version are outside the grammar.
    """
    if not is_valid_track_id(track_id):
        raise ValueError(f"Invalid track id: {track_id!r}")
    if not SHORT_HASH_RE.match(short_hash):
        raise ValueError(f"Invalid short hash: {short_hash!r}")
    if version < 1:
        raise ValueError(f"Invalid version: {version!r}")
    segment = f"-version-{version}" if version > 1 else ""
    return f"{prefix.rstrip('/')}/{track_id}{segment}-{short_hash}.{ext.lower()}"


def encode_user_upload_key(user_id: str, uuid: str, title: str, ext: str) -> str:
    """Key for a user upload; the user id in the path scopes ownership."""
    return f"users/{user_id}/uploads/{uuid}-{slugify(title)}.{ext.lower()}"


def encode_key(parsed: ParsedKey) -> str:
    """Inverse of decode_key()."""
    version = f"-version-{parsed.version}" if parsed.has_version_segment else ""
    return (
        f"{parsed.prefix}/{parsed.track_id}{version}"
        f"-{parsed.short_hash}.{parsed.extension}"
    )


def decode_key(key: str) -> ParsedKey | KeyParseError:
    """Decode a library key into its parts.

    Returns:
        ParsedKey on success, KeyParseError describing the mismatch otherwise.
    """
    prefix, sep, filename = key.rpartition("/")
    if not sep or not prefix:
        return KeyParseError(key=key, reason="missing key prefix")

    match = _FILENAME_RE.match(filename)
    if match is None:
        return KeyParseError(key=key, reason="no -<hash>.<ext> suffix")

    stem = match.group("stem")
    version = 1
    has_version_segment = False
    version_match = _VERSION_RE.match(stem)
    if version_match is not None:
        stem = version_match.group("track")
        version = int(version_match.group("version"))
        has_version_segment = True

    if not is_valid_track_id(stem):
        return KeyParseError(key=key, reason=f"invalid track id {stem!r}")

    return ParsedKey(
        prefix=prefix,
        track_id=stem,
        version=version,
        short_hash=match.group("hash"),
        extension=match.group("ext"),
        has_version_segment=has_version_segment,
    )


def preview_key(object_key: str) -> str:
    """Derived location of the preview rendition for an original."""
    path = PurePosixPath(object_key)
    parent = str(path.parent).replace(LIBRARY_PREFIX, PREVIEW_PREFIX, 1)
    return f"{parent}/{path.stem}-preview{path.suffix}"


def content_type_for(ext: str) -> str:
    return CONTENT_TYPES.get(ext.lower().lstrip("."), DEFAULT_CONTENT_TYPE)
