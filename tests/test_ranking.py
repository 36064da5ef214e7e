"""Tests for disease ranking and deterministic selection."""

import pytest

from bioresolve.config import ResolverThresholds
from bioresolve.resolve.ranking import (
    MAX_RANKED_OUTPUT,
    disease_candidates_from_rows,
    disease_id_priority,
    ontology_adjustment,
    pick_deterministic_disease_selection,
)
from bioresolve.resolve.schemas import DiseaseCandidate, MentionCandidate, RankedDiseaseCandidate

LUPUS_QUERY = "what is the connection between lupus and kidney disease"


def _ranked(*scores):
    return [
        RankedDiseaseCandidate(id=f"EFO_{index:07d}", name=f"disease {index}", score=score)
        for index, score in enumerate(scores)
    ]


class TestIdPriority:
    """Ontology preferences."""

    @pytest.mark.parametrize(
        "disease_id,expected",
        [
            ("EFO_0000685", 6),
            ("MONDO_0008383", 5),
            ("Orphanet_284", 4),
            ("DOID_7148", 3),
            ("HP_0001369", 2),
            ("NCIT_C1234", 1),
        ],
    )
    def test_priority(self, disease_id, expected):
        assert disease_id_priority(disease_id) == expected

    def test_ontology_adjustment(self):
        assert ontology_adjustment("MONDO_0008383") == 0.5
        assert ontology_adjustment("HP_0001369") == -0.3
        assert ontology_adjustment("NCIT_C1234") == 0.0


class TestDiseaseCandidatesFromRows:
    """Tests for disease_candidates_from_rows."""

    def test_ranking(self):
        rows = [
            MentionCandidate("rheumatoid arthritis", "disease", "EFO_0000685", "rheumatoid arthritis", score=1.34),
            MentionCandidate("arthritis", "disease", "EFO_0000685", "rheumatoid arthritis", score=0.82),
            MentionCandidate("arthritis", "disease", "HP_0001369", "Arthritis", score=1.0),
            MentionCandidate(
                "rheumatoid arthritis", "disease", "EFO_0004634", "rheumatoid factor measurement", score=0.9
            ),
            MentionCandidate("il6", "target", "ENSG00000136244", "IL6", score=1.45),
        ]
        ranked = disease_candidates_from_rows("rheumatoid arthritis treatment", rows)
        assert [candidate.id for candidate in ranked] == ["EFO_0000685", "HP_0001369"]
        assert ranked[0].score == pytest.approx(10.02)
        assert ranked[0].score > ranked[1].score

    def test_bounded_output(self):
        rows = [
            MentionCandidate("disease", "disease", f"EFO_{index:07d}", f"disease {index}", score=0.5)
            for index in range(30)
        ]
        assert len(disease_candidates_from_rows("disease", rows)) == MAX_RANKED_OUTPUT

    def test_no_disease_rows(self):
        rows = [MentionCandidate("il6", "target", "ENSG00000136244", "IL6", score=1.0)]
        assert disease_candidates_from_rows("il6", rows) == []


class TestDeterministicSelection:
    """Tests for pick_deterministic_disease_selection."""

    def test_empty(self):
        assert pick_deterministic_disease_selection("anything", []) is None

    def test_single_candidate(self):
        ranked = [RankedDiseaseCandidate(id="EFO_1234", name="amyotrophic lateral sclerosis", score=3.5)]
        selected = pick_deterministic_disease_selection("is als hereditary?", ranked)
        assert selected == DiseaseCandidate(id="EFO_1234", name="amyotrophic lateral sclerosis")
        assert not isinstance(selected, RankedDiseaseCandidate)

    def test_close_scores_with_relational_query(self):
        """Two diseases in a relational query: neither is primary."""
        ranked = [
            RankedDiseaseCandidate(id="EFO_0002690", name="systemic lupus erythematosus", score=2.6),
            RankedDiseaseCandidate(id="EFO_0003086", name="kidney disease", score=2.5),
        ]
        assert pick_deterministic_disease_selection(LUPUS_QUERY, ranked) is None

    def test_close_scores_without_relational_query(self):
        ranked = _ranked(2.6, 2.5)
        selected = pick_deterministic_disease_selection("lupus nephritis overview", ranked)
        assert selected.id == ranked[0].id

    def test_clear_leader_in_relational_query(self):
        ranked = _ranked(4.5, 2.0)
        assert pick_deterministic_disease_selection(LUPUS_QUERY, ranked).id == ranked[0].id

    def test_weak_single_with_non_disease_signal(self):
        ranked = _ranked(2.0)
        assert pick_deterministic_disease_selection("il6 in ra", ranked, has_non_disease_signal=True) is None
        selected = pick_deterministic_disease_selection(
            "il6 in ra", ranked, has_disease_anchor=True, has_non_disease_signal=True
        )
        assert selected.id == ranked[0].id

    def test_thresholds_override(self):
        ranked = _ranked(2.6, 2.5)
        loose = ResolverThresholds(clear_leader_margin=0.05)
        assert pick_deterministic_disease_selection(LUPUS_QUERY, ranked, thresholds=loose).id == ranked[0].id
