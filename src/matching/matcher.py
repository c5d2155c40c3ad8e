# src/matching/matcher.py — v1
"""Fuzzy matcher — align scanned track ids with curated metadata rows.

Workflow per object:
    1. Normalize the track id and every candidate title
    2. Score with normalized edit distance
    3. Keep the highest score; ties keep the first-seen candidate
    4. Reject the best candidate if it scores below the threshold
    5. Substitute the default candidate (genre "unknown", no tags)
"""

from __future__ import annotations

import logging
from collections import Counter

from catalog_ingest.core.models import (
    MatchResult,
    MetadataCandidate,
    StorageObject,
    default_candidate,
)
from catalog_ingest.core.similarity import normalize_name, similarity

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.70


class FuzzyMatcher:
    """Best-match lookup over a fixed candidate list.

    Args:
        candidates: Metadata rows, in spreadsheet order (order breaks ties).
        threshold: Minimum accepted similarity score.
    """

    def __init__(
        self,
        candidates: list[MetadataCandidate],
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        self._candidates = list(candidates)
        self._normalized = [normalize_name(c.title) for c in self._candidates]
        self._threshold = threshold
        self.match_counts: Counter[str] = Counter()
        self.unmatched: list[str] = []

    @property
    def threshold(self) -> float:
        return self._threshold

    def score(self, name: str, candidate: MetadataCandidate) -> float:
        return similarity(normalize_name(name), normalize_name(candidate.title))

    def best_match(self, name: str) -> tuple[MetadataCandidate, float] | None:
        """Return (candidate, score) for the best accepted match, or None."""
        target = normalize_name(name)
        best: MetadataCandidate | None = None
        best_score = -1.0

        for candidate, normalized in zip(self._candidates, self._normalized):
            score = similarity(target, normalized)
            if score > best_score:
                best, best_score = candidate, score

        if best is None or best_score < self._threshold:
            return None
        return best, best_score

    def match(
        self,
        storage_object: StorageObject,
        name: str,
        track_id: str | None = None,
        version: int = 1,
    ) -> MatchResult:
        """Match one scanned object, falling back to the default candidate.

        Args:
            storage_object: The scanned object.
            name: Bare track id compared against candidate titles. Every
                version of a track matches on the same name.
            track_id: Catalog identity of the object (defaults to name).
            version: Track version carried into the library key.
        """
        track_id = track_id or name
        found = self.best_match(name)
        if found is None:
            self.unmatched.append(track_id)
            logger.warning(
                "No metadata match for %s (key=%s), using default candidate",
                name, storage_object.key,
            )
            return MatchResult(
                storage_object=storage_object,
                track_id=track_id,
                candidate=default_candidate(name),
                score=0.0,
                is_default=True,
                base_track_id=name,
                version=version,
            )

        candidate, score = found
        self.match_counts[candidate.title] += 1
        logger.debug("Matched %s -> %r (score=%.3f)", track_id, candidate.title, score)
        return MatchResult(
            storage_object=storage_object,
            track_id=track_id,
            candidate=candidate,
            score=score,
            base_track_id=name,
            version=version,
        )

    def log_statistics(self) -> None:
        """Log how many objects matched each candidate (versions share rows)."""
        for title, count in self.match_counts.most_common():
            logger.info("Metadata %r matched %d object(s)", title, count)
        if self.unmatched:
            logger.info("%d object(s) fell back to default metadata", len(self.unmatched))
