# tests/unit/matching/test_matcher.py — v1
"""Tests for matching/matcher.py — best-match selection and default fallback."""

from __future__ import annotations

import logging

import pytest

from catalog_ingest.core.models import MetadataCandidate, StorageObject
from catalog_ingest.matching.matcher import DEFAULT_THRESHOLD, FuzzyMatcher


def _obj(track_id: str) -> StorageObject:
    return StorageObject(key=f"library/originals/{track_id}-0123456789.mp3")


class TestBestMatch:
    def test_exact_after_normalization(self, sample_candidates):
        matcher = FuzzyMatcher(sample_candidates)
        candidate, score = matcher.best_match("groove-on-the-beat")
        assert candidate.title == "Groove on the Beat"
        assert score == 1.0

    def test_apostrophe_title(self, sample_candidates):
        candidate, score = FuzzyMatcher(sample_candidates).best_match("this-loves-a-serenade")
        assert candidate.title == "This Love's a Serenade"
        assert score == 1.0

    def test_close_misspelling_accepted(self, sample_candidates):
        candidate, score = FuzzyMatcher(sample_candidates).best_match("dancing-thriling")
        assert candidate.title == "Dancing Thrilling"
        assert DEFAULT_THRESHOLD <= score < 1.0

    def test_no_candidate_clears_threshold(self, sample_candidates):
        assert FuzzyMatcher(sample_candidates).best_match("totally-unrelated-name") is None

    def test_empty_candidate_list(self):
        assert FuzzyMatcher([]).best_match("anything") is None

    def test_score_equal_to_threshold_accepted(self):
        # one edit over four chars -> 0.75
        matcher = FuzzyMatcher([MetadataCandidate(title="abcx")], threshold=0.75)
        found = matcher.best_match("abcd")
        assert found is not None
        assert found[1] == 0.75

    def test_score_just_below_threshold_rejected(self):
        matcher = FuzzyMatcher([MetadataCandidate(title="abcx")], threshold=0.76)
        assert matcher.best_match("abcd") is None

    def test_tie_keeps_first_seen(self):
        first = MetadataCandidate(title="Groove on the Beat", genre="house")
        second = MetadataCandidate(title="groove ON the beat!", genre="edm")
        candidate, _ = FuzzyMatcher([first, second]).best_match("groove-on-the-beat")
        assert candidate.genre == "house"

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            FuzzyMatcher([], threshold=1.5)


class TestMatch:
    def test_matched_result(self, sample_candidates):
        matcher = FuzzyMatcher(sample_candidates)
        result = matcher.match(_obj("break-the-chains"), "break-the-chains")
        assert result.is_default is False
        assert result.candidate.genre_list == ["r&b", "orchestral", "soul"]
        assert matcher.match_counts["Break the Chains"] == 1

    def test_default_fallback(self, sample_candidates, caplog):
        matcher = FuzzyMatcher(sample_candidates)
        with caplog.at_level(logging.WARNING, logger="catalog_ingest.matching.matcher"):
            result = matcher.match(_obj("totally-unrelated-name"), "totally-unrelated-name")
        assert result.is_default is True
        assert result.score == 0.0
        assert result.candidate.genre_list == ["unknown"]
        assert result.candidate.tag_list == []
        assert result.candidate.title == "totally-unrelated-name"
        assert matcher.unmatched == ["totally-unrelated-name"]
        assert "No metadata match" in caplog.text

    def test_versions_share_candidate(self, sample_candidates):
        matcher = FuzzyMatcher(sample_candidates)
        matcher.match(_obj("hot-honey-dripping"), "hot-honey-dripping")
        result = matcher.match(
            _obj("hot-honey-dripping-version-2"),
            "hot-honey-dripping",
            "hot-honey-dripping-version-2",
            2,
        )
        assert result.candidate.title == "Hot Honey Dripping"
        assert result.track_id == "hot-honey-dripping-version-2"
        assert result.bare_track_id == "hot-honey-dripping"
        assert result.version == 2
        assert matcher.match_counts["Hot Honey Dripping"] == 2

    def test_log_statistics(self, sample_candidates, caplog):
        matcher = FuzzyMatcher(sample_candidates)
        matcher.match(_obj("break-the-chains"), "break-the-chains")
        matcher.match(_obj("zzz"), "zzz")
        with caplog.at_level(logging.INFO, logger="catalog_ingest.matching.matcher"):
            matcher.log_statistics()
        assert "'Break the Chains' matched 1 object(s)" in caplog.text
        assert "1 object(s) fell back to default metadata" in caplog.text
