"""Tests for per-mention candidate search."""

import asyncio
import time

import pytest

from bioresolve.resolve.candidates import (
    filter_rows,
    mention_variants,
    row_cutoff,
    search_mention_candidates,
    target_hint_tokens,
)
from bioresolve.resolve.schemas import MentionCandidate
from bioresolve.sources.base import SearchHit

from fakes import IL6, RA, FakeBackend


class TestVariants:
    """Tests for lexical mention variants."""

    def test_symbol_variants(self):
        assert mention_variants("il6") == ["il6", "il-6", "il 6", "IL6"]

    def test_apostrophe_variant(self):
        assert mention_variants("crohn's disease") == ["crohn's disease", "crohns disease"]

    def test_mechanism_words_trimmed(self):
        assert mention_variants("il6 signaling") == ["il6 signaling", "il6"]

    def test_empty(self):
        assert mention_variants("  ") == []

    def test_target_hints(self):
        assert target_hint_tokens("il6") == {"il6", "il-6", "il 6", "interleukin 6"}
        assert target_hint_tokens("rheumatoid arthritis") == set()


class TestRowCutoff:
    """Per-category cutoffs."""

    @pytest.mark.parametrize(
        "entity_type,mention,expected",
        [
            ("target", "il6", 0.52),
            ("disease", "il6", 0.5),
            ("disease", "lupus", 0.66),
            ("disease", "kidney disease", 0.34),
            ("target", "brca1 variant", 0.4),
            ("drug", "lung cancer", 0.58),
        ],
    )
    def test_cutoff(self, entity_type, mention, expected):
        assert row_cutoff(entity_type, mention) == pytest.approx(expected)


class TestFilterRows:
    """Tests for filter_rows."""

    def test_symbol_mention_keeps_target_drops_weak_disease(self):
        rows = [
            MentionCandidate("IL6", "target", "ENSG00000136244", "Interleukin-6", score=0.6),
            MentionCandidate("IL6", "disease", "EFO_0000000", "Inflammation", score=0.3),
        ]
        kept = filter_rows("IL6", rows)
        assert [row.entity_type for row in kept] == ["target"]

    def test_duplicate_ids_keep_best_score(self):
        rows = [
            MentionCandidate("lupus", "disease", "EFO_0002690", "systemic lupus erythematosus", score=0.7),
            MentionCandidate("lupus", "disease", "EFO_0002690", "systemic lupus erythematosus", score=0.9),
        ]
        kept = filter_rows("lupus", rows)
        assert len(kept) == 1
        # lupus is a disease cue: +0.34
        assert kept[0].score == pytest.approx(1.24)

    def test_target_hint_boost(self):
        rows = [
            MentionCandidate("il6", "target", IL6.id, IL6.name, IL6.description, score=1.0),
            MentionCandidate("il6", "target", "ENSG00000000001", "IL6ST", "signal transducer", score=0.9),
        ]
        kept = filter_rows("il6", rows)
        assert kept[0].id == IL6.id
        assert kept[0].score == pytest.approx(1.45)


class TestSearchMentionCandidates:
    """Tests for search_mention_candidates."""

    def test_disease_rows_scored_and_filtered(self):
        backend = FakeBackend(
            diseases=[
                RA,
                SearchHit("EFO_0004634", "rheumatoid factor measurement"),
                SearchHit("Reactome_123", "rheumatoid arthritis pathway"),
            ],
            targets=[SearchHit("ENSG00000232810", "TNF", "tumor necrosis factor")],
        )
        rows = asyncio.run(search_mention_candidates("rheumatoid arthritis", backend, timeout=1.0))
        assert [row.id for row in rows] == [RA.id]
        assert rows[0].entity_type == "disease"
        assert rows[0].source == "opentargets"
        assert rows[0].score == pytest.approx(1.34)

    def test_chembl_drug_candidate(self):
        metformin = SearchHit("CHEMBL1431", "METFORMIN", "Small molecule, max phase 4")
        backend = FakeBackend(drugs=[metformin], drug_candidates=[metformin])
        rows = asyncio.run(search_mention_candidates("metformin", backend, timeout=1.0))
        assert len(rows) == 1
        assert rows[0].entity_type == "drug"
        assert rows[0].source == "chembl"

    def test_variants_all_searched(self):
        backend = FakeBackend()
        asyncio.run(search_mention_candidates("il6", backend, timeout=1.0))
        searched = {text for kind, text in backend.calls if kind == "targets"}
        assert searched == {"il6", "il-6", "il 6", "IL6"}

    def test_variants_searched_concurrently(self):
        """Four variants against a slow backend take about one lookup, not four."""
        backend = FakeBackend(targets=[IL6], delay=0.3)
        started = time.perf_counter()
        rows = asyncio.run(search_mention_candidates("il6", backend, timeout=1.0))
        elapsed = time.perf_counter() - started
        assert len({text for kind, text in backend.calls}) == 4
        assert elapsed < 0.9
        assert [row.id for row in rows] == [IL6.id]

    def test_all_lookups_time_out(self):
        """Every lookup past its deadline gives no rows, not an error."""
        backend = FakeBackend(diseases=[RA], delay=5.0)
        rows = asyncio.run(search_mention_candidates("rheumatoid arthritis", backend, timeout=0.01))
        assert rows == []

    def test_failing_backend(self):
        backend = FakeBackend(error=RuntimeError("upstream down"))
        assert asyncio.run(search_mention_candidates("lupus", backend, timeout=1.0)) == []

    def test_blank_mention(self):
        backend = FakeBackend(diseases=[RA])
        assert asyncio.run(search_mention_candidates("   ", backend)) == []
        assert backend.calls == []
